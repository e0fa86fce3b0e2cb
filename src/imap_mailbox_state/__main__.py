"""Console entrypoint for `imap-mailbox-state`."""

from __future__ import annotations

from imap_mailbox_state.cli.app import app


def main() -> int:
    """Run the Typer CLI application.

    Returns:
        Process exit code.
    """
    app(prog_name="imap-mailbox-state")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
