"""Tests for the Typer CLI."""

from __future__ import annotations

import json
from pathlib import Path

import pytest
from typer.testing import CliRunner

from imap_mailbox_state.cli.app import app

runner = CliRunner()


@pytest.fixture(autouse=True)
def _quiet_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    """Keep logs off stdout and ignore any local configuration."""
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("MBX_LOGGING__LEVEL", "ERROR")
    for name in ("MBX_IMAP__HOST", "MBX_IMAP__USERNAME", "MBX_IMAP__APP_PASSWORD"):
        monkeypatch.delenv(name, raising=False)


def test_select_command_emits_json(tmp_path: Path) -> None:
    """The select command should print the parsed state as JSON."""
    response = tmp_path / "select.txt"
    response.write_bytes(
        b"* FLAGS (\\Seen \\Deleted)\r\n* OK [UIDVALIDITY 42]\r\n* OK [UIDNEXT 100]\r\n"
        b"* 5 EXISTS\r\n* 0 RECENT\r\n",
    )

    result = runner.invoke(app, ["select", str(response), "--folder", "INBOX"])

    assert result.exit_code == 0, result.output
    payload = json.loads(result.stdout)
    assert payload["name"] == "INBOX"
    assert payload["flags"] == ["\\Deleted", "\\Seen"]
    assert payload["uid_validity"] == 42
    assert payload["count"] == 5


def test_select_command_strict_failure(tmp_path: Path) -> None:
    """Strict mode should exit non-zero on malformed fields."""
    response = tmp_path / "select.txt"
    response.write_text("* OK [UIDNEXT nope]\r\n", encoding="utf-8")

    lenient = runner.invoke(app, ["select", str(response)])
    assert lenient.exit_code == 0
    assert json.loads(lenient.stdout)["uid_next"] == 0

    strict = runner.invoke(app, ["select", str(response), "--strict"])
    assert strict.exit_code == 1


def test_select_command_reads_stdin() -> None:
    """A '-' path should read the response from stdin."""
    result = runner.invoke(app, ["select", "-"], input="* 7 EXISTS\n")
    assert result.exit_code == 0
    assert json.loads(result.stdout)["count"] == 7


def test_select_command_missing_file(tmp_path: Path) -> None:
    """Unreadable input files should exit with code 2."""
    result = runner.invoke(app, ["select", str(tmp_path / "missing.txt")])
    assert result.exit_code == 2


def test_list_command(tmp_path: Path) -> None:
    """The list command should emit one entry per listing line."""
    listing = tmp_path / "list.txt"
    listing.write_text(
        '* LIST (\\HasNoChildren) "/" "INBOX"\r\n'
        '* LIST (\\HasChildren \\Noselect) "/" "Archive"\r\n'
        "A2 OK LIST completed\r\n",
        encoding="utf-8",
    )

    result = runner.invoke(app, ["list", str(listing)])

    assert result.exit_code == 0, result.output
    payload = json.loads(result.stdout)
    assert [entry["name"] for entry in payload] == ["INBOX", "Archive"]
    assert payload[1]["flags"] == ["\\HasChildren", "\\Noselect"]
    assert payload[0]["hierarchy_delimiter"] == "/"


def test_list_command_table(tmp_path: Path) -> None:
    """Table output should mention every folder."""
    listing = tmp_path / "list.txt"
    listing.write_text('* LIST () "." "Work"\n', encoding="utf-8")

    result = runner.invoke(app, ["list", str(listing), "--format", "table"])

    assert result.exit_code == 0
    assert "Work" in result.stdout


def test_inspect_requires_imap_settings() -> None:
    """Inspect should refuse to run without IMAP settings."""
    result = runner.invoke(app, ["inspect"])
    assert result.exit_code == 2
