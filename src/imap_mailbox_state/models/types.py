"""Shared enums."""

from __future__ import annotations

from enum import StrEnum


class OutputFormat(StrEnum):
    """Output formats supported by the CLI."""

    json = "json"
    table = "table"


class SelectCommand(StrEnum):
    """IMAP commands that open a mailbox and return its state."""

    select = "SELECT"
    examine = "EXAMINE"
