"""Validated domain models (Pydantic)."""

from __future__ import annotations

from imap_mailbox_state.models.mailbox import MailboxState, MailboxStateBuilder
from imap_mailbox_state.models.types import OutputFormat, SelectCommand

__all__ = [
    "MailboxState",
    "MailboxStateBuilder",
    "OutputFormat",
    "SelectCommand",
]
