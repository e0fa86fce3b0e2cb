"""Typer CLI for parsing and inspecting IMAP mailbox state."""

from __future__ import annotations

import asyncio
import logging
import sys
from collections.abc import Sequence
from pathlib import Path

import typer
from pydantic import TypeAdapter
from rich.console import Console
from rich.table import Table

from imap_mailbox_state.config.settings import AppSettings, ImapSettings, load_settings
from imap_mailbox_state.imap.client import ImapClient, ImapError
from imap_mailbox_state.imap.fields import MalformedFieldError
from imap_mailbox_state.imap.listing import parse_list_response
from imap_mailbox_state.imap.select import parse_select, split_response_lines
from imap_mailbox_state.models.mailbox import MailboxState
from imap_mailbox_state.models.types import OutputFormat
from imap_mailbox_state.utils.logging import configure_logging

logger = logging.getLogger(__name__)

_STATES_ADAPTER = TypeAdapter(list[MailboxState])

app = typer.Typer(
    no_args_is_help=True,
    add_completion=False,
    help="Parse IMAP SELECT/EXAMINE and LIST responses into mailbox state.",
)


def load_app_settings(*, env_file: Path | None) -> AppSettings:
    """Load settings and configure logging for a CLI run.

    Args:
        env_file: Optional path to a .env file to load in addition to environment variables.

    Returns:
        Validated application settings.
    """
    settings = load_settings(env_file=env_file)
    configure_logging(settings=settings.logging)
    return settings


def _read_input(path: Path) -> str:
    """Read a saved response from a file, or stdin for ``-``."""
    if str(path) == "-":
        return sys.stdin.read()
    try:
        return path.read_text(encoding="utf-8", errors="replace")
    except OSError as exc:
        typer.echo(f"Cannot read {path}: {exc}", err=True)
        raise typer.Exit(code=2) from None


def _flag_text(flags: frozenset[str]) -> str:
    """Render a flag set as a sorted, space-separated string."""
    return " ".join(sorted(flags))


def _optional(value: object) -> str:
    """Render an optional value, blank when absent."""
    return "" if value is None else str(value)


def render_table(states: Sequence[MailboxState], *, console: Console) -> None:
    """Print mailbox states as a rich table.

    Args:
        states: States to render.
        console: Target console.
    """
    table = Table(show_lines=False)
    table.add_column("Name", style="bold")
    table.add_column("Delim")
    table.add_column("Flags")
    table.add_column("Permanent flags")
    table.add_column("EXISTS", justify="right")
    table.add_column("RECENT", justify="right")
    table.add_column("UIDNEXT", justify="right")
    table.add_column("UIDVALIDITY", justify="right")
    table.add_column("MODSEQ", justify="right")
    table.add_column("FETCH", justify="right")
    table.add_column("VANISHED")

    for state in states:
        modseq = "none" if state.no_mod_seq else _optional(state.highest_mod_seq)
        table.add_row(
            state.name,
            _optional(state.hierarchy_delimiter),
            _flag_text(state.flags),
            _flag_text(state.permanent_flags),
            _optional(state.count),
            _optional(state.recent),
            _optional(state.uid_next),
            _optional(state.uid_validity),
            modseq,
            str(len(state.fetch_lines)) if state.fetch_lines else "",
            _optional(state.vanished_line),
        )
    console.print(table)


def emit(states: Sequence[MailboxState], *, output: OutputFormat, single: bool = False) -> None:
    """Write states to stdout in the requested format.

    Args:
        states: States to write.
        output: Output format.
        single: Emit a single JSON object instead of a list.
    """
    if output is OutputFormat.table:
        render_table(states, console=Console())
        return
    if single and len(states) == 1:
        typer.echo(states[0].model_dump_json(indent=2))
    else:
        typer.echo(_STATES_ADAPTER.dump_json(list(states), indent=2).decode("utf-8"))


@app.command("select")
def select_cmd(
    path: Path = typer.Argument(help="Saved SELECT/EXAMINE response, or '-' for stdin."),
    *,
    folder: str = typer.Option(
        "INBOX",
        "--folder",
        "-f",
        help="Modified UTF-7 name of the mailbox the response belongs to.",
    ),
    strict: bool = typer.Option(
        False,
        "--strict",
        help="Fail on malformed numeric fields instead of coercing them to 0.",
    ),
    output: OutputFormat = typer.Option(OutputFormat.json, "--format", help="Output format."),
    env_file: Path | None = typer.Option(
        default=None,
        exists=True,
        dir_okay=False,
        help="Optional path to a .env file (in addition to environment variables).",
    ),
) -> None:
    """Parse a saved SELECT/EXAMINE response.

    Args:
        path: Response file path or '-'.
        folder: Encoded mailbox name.
        strict: Force strict parsing (also enabled by MBX_PARSER__STRICT_NUMBERS).
        output: Output format.
        env_file: Optional path to a .env file to load configuration from.
    """
    settings = load_app_settings(env_file=env_file)
    use_strict = strict or settings.parser.strict_numbers

    raw = _read_input(path)
    try:
        state = parse_select(folder, raw, strict=use_strict)
    except MalformedFieldError as exc:
        logger.error("Malformed select response: %s", exc, extra={"field": exc.field})
        typer.echo(str(exc), err=True)
        raise typer.Exit(code=1) from None

    emit([state], output=output, single=True)


@app.command("list")
def list_cmd(
    path: Path = typer.Argument(help="Saved LIST/LSUB/XLIST output, or '-' for stdin."),
    *,
    output: OutputFormat = typer.Option(OutputFormat.json, "--format", help="Output format."),
    env_file: Path | None = typer.Option(
        default=None,
        exists=True,
        dir_okay=False,
        help="Optional path to a .env file (in addition to environment variables).",
    ),
) -> None:
    """Parse saved LIST output, one mailbox per listing line.

    Args:
        path: Listing file path or '-'.
        output: Output format.
        env_file: Optional path to a .env file to load configuration from.
    """
    load_app_settings(env_file=env_file)
    raw = _read_input(path)
    states = parse_list_response(split_response_lines(raw))
    logger.info("Parsed %d listing entries", len(states), extra={"source": str(path)})
    emit(states, output=output)


async def inspect_mailboxes(
    *,
    imap: ImapSettings,
    folders: Sequence[str],
    strict: bool,
) -> tuple[list[MailboxState], list[MailboxState]]:
    """List folders and EXAMINE the requested ones over a live connection.

    Args:
        imap: Connection settings.
        folders: Decoded folder names to examine.
        strict: Strict parsing of SELECT fields.

    Returns:
        Listing entries and examined mailbox states.
    """
    client = ImapClient(
        host=imap.host,
        port=imap.port,
        ssl=imap.ssl,
        timeout_seconds=imap.timeout_seconds,
        strict=strict,
    )
    await client.connect()
    try:
        await client.login(username=imap.username, app_password=imap.app_password)
        listing = await client.list_mailboxes()
        examined = [await client.examine(folder) for folder in folders]
    finally:
        await client.logout()
    return listing, examined


@app.command("inspect")
def inspect_cmd(
    *,
    folder: list[str] = typer.Option(
        ["INBOX"],
        "--folder",
        "-f",
        help="Folder to EXAMINE (repeatable).",
    ),
    show_listing: bool = typer.Option(
        default=False,
        help="Also print the LIST entries for every folder.",
    ),
    output: OutputFormat = typer.Option(OutputFormat.table, "--format", help="Output format."),
    env_file: Path | None = typer.Option(
        default=None,
        exists=True,
        dir_okay=False,
        help="Optional path to a .env file (in addition to environment variables).",
    ),
) -> None:
    """Connect to the configured server and report mailbox state.

    Args:
        folder: Folders to examine.
        show_listing: Whether to print LIST entries too.
        output: Output format.
        env_file: Optional path to a .env file to load configuration from.
    """
    settings = load_app_settings(env_file=env_file)

    if settings.imap is None:
        typer.echo(
            "Missing IMAP settings. Set MBX_IMAP__HOST, MBX_IMAP__USERNAME and MBX_IMAP__APP_PASSWORD.",
            err=True,
        )
        raise typer.Exit(code=2)

    try:
        listing, examined = asyncio.run(
            inspect_mailboxes(
                imap=settings.imap,
                folders=folder,
                strict=settings.parser.strict_numbers,
            ),
        )
    except KeyboardInterrupt:
        raise typer.Exit(code=130) from None
    except (ImapError, MalformedFieldError, TimeoutError, OSError) as exc:
        logger.exception("Inspect failed")
        typer.echo(f"Inspect failed: {exc}", err=True)
        raise typer.Exit(code=1) from None

    if show_listing:
        emit(listing, output=output)
    emit(examined, output=output)
