"""Tests for the `inspect` command with a stubbed IMAP client."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import pytest
from typer.testing import CliRunner

from imap_mailbox_state.cli import app as cli_app
from imap_mailbox_state.imap.client import ImapError
from imap_mailbox_state.imap.fields import MalformedFieldError
from imap_mailbox_state.imap.listing import parse_list_entry
from imap_mailbox_state.imap.select import parse_select
from imap_mailbox_state.models.mailbox import MailboxState

runner = CliRunner()


@pytest.fixture(autouse=True)
def _imap_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    """Provide IMAP settings and keep logs off stdout."""
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("MBX_LOGGING__LEVEL", "CRITICAL")
    monkeypatch.setenv("MBX_IMAP__HOST", "imap.example.com")
    monkeypatch.setenv("MBX_IMAP__USERNAME", "user@example.com")
    monkeypatch.setenv("MBX_IMAP__APP_PASSWORD", "secret")


def _install_client(
    monkeypatch: pytest.MonkeyPatch,
    *,
    login_error: BaseException | None = None,
    examine_error: BaseException | None = None,
) -> list[str]:
    """Replace ImapClient with a recorder and return its call log."""
    calls: list[str] = []

    class _RecordingClient:
        def __init__(self, **kwargs: Any) -> None:
            calls.append(f"init:{kwargs['host']}:strict={kwargs['strict']}")

        async def connect(self) -> None:
            calls.append("connect")

        async def login(self, *, username: str, app_password: str) -> None:
            calls.append(f"login:{username}")
            if login_error is not None:
                raise login_error

        async def list_mailboxes(self) -> list[MailboxState]:
            calls.append("list")
            entry = parse_list_entry('* LIST (\\HasChildren) "/" "Archive"')
            assert entry is not None
            return [entry]

        async def examine(self, mailbox: str) -> MailboxState:
            calls.append(f"examine:{mailbox}")
            if examine_error is not None:
                raise examine_error
            return parse_select(mailbox, "* 3 EXISTS\r\n* OK [UIDNEXT 4] next\r\n")

        async def logout(self) -> None:
            calls.append("logout")

    monkeypatch.setattr(cli_app, "ImapClient", _RecordingClient)
    return calls


def test_inspect_emits_listing_and_examined_states(monkeypatch: pytest.MonkeyPatch) -> None:
    """A successful run should list, examine each folder and log out."""
    calls = _install_client(monkeypatch)

    result = runner.invoke(
        cli_app.app,
        ["inspect", "--format", "json", "--show-listing", "-f", "INBOX", "-f", "Archive"],
    )

    assert result.exit_code == 0, result.output
    decoder = json.JSONDecoder()
    listing, end = decoder.raw_decode(result.stdout)
    examined, _ = decoder.raw_decode(result.stdout[end:].lstrip())

    assert [entry["name"] for entry in listing] == ["Archive"]
    assert listing[0]["hierarchy_delimiter"] == "/"
    assert [state["name"] for state in examined] == ["INBOX", "Archive"]
    assert examined[0]["count"] == 3
    assert examined[1]["uid_next"] == 4
    assert calls == [
        "init:imap.example.com:strict=False",
        "connect",
        "login:user@example.com",
        "list",
        "examine:INBOX",
        "examine:Archive",
        "logout",
    ]


def test_inspect_passes_strict_setting(monkeypatch: pytest.MonkeyPatch) -> None:
    """MBX_PARSER__STRICT_NUMBERS should reach the client."""
    monkeypatch.setenv("MBX_PARSER__STRICT_NUMBERS", "true")
    calls = _install_client(monkeypatch)

    result = runner.invoke(cli_app.app, ["inspect", "--format", "json"])

    assert result.exit_code == 0, result.output
    assert calls[0] == "init:imap.example.com:strict=True"


def test_inspect_login_failure_exits_1_and_logs_out(monkeypatch: pytest.MonkeyPatch) -> None:
    """IMAP errors should exit with code 1 after logging out."""
    calls = _install_client(monkeypatch, login_error=ImapError("IMAP login failed: NO"))

    result = runner.invoke(cli_app.app, ["inspect", "--format", "json"])

    assert result.exit_code == 1
    assert "list" not in calls
    assert calls[-1] == "logout"


def test_inspect_malformed_field_exits_1_and_logs_out(monkeypatch: pytest.MonkeyPatch) -> None:
    """Strict parse failures during EXAMINE should exit with code 1."""
    error = MalformedFieldError("uid_next", "* OK [UIDNEXT x]", "not an integer: 'x'")
    calls = _install_client(monkeypatch, examine_error=error)

    result = runner.invoke(cli_app.app, ["inspect", "--format", "json"])

    assert result.exit_code == 1
    assert calls[-2:] == ["examine:INBOX", "logout"]


def test_inspect_keyboard_interrupt_exits_130(monkeypatch: pytest.MonkeyPatch) -> None:
    """An interrupted run should exit with code 130 after logging out."""
    calls = _install_client(monkeypatch, login_error=KeyboardInterrupt())

    result = runner.invoke(cli_app.app, ["inspect", "--format", "json"])

    assert result.exit_code == 130
    assert calls[-1] == "logout"
