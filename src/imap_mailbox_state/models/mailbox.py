"""Mailbox state snapshot and the builder that parsers fill in."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field

from pydantic import Field, field_serializer

from imap_mailbox_state.models.base import AppModel


class MailboxState(AppModel):
    """Observable state of one IMAP mailbox at a point in time.

    Listing entries only populate ``name``, ``flags`` and
    ``hierarchy_delimiter``. Everything else comes from a SELECT/EXAMINE
    response.
    """

    name: str = ""
    hierarchy_delimiter: str | None = None
    flags: frozenset[str] = Field(default_factory=frozenset)
    permanent_flags: frozenset[str] = Field(default_factory=frozenset)
    no_mod_seq: bool = False
    highest_mod_seq: int | None = None
    uid_next: int | None = None
    uid_validity: int | None = None
    count: int | None = None
    recent: int | None = None
    fetch_lines: tuple[str, ...] = ()
    vanished_line: str | None = None

    @field_serializer("flags", "permanent_flags")
    def _serialize_flag_set(self, value: frozenset[str]) -> list[str]:
        """Render flag sets as sorted lists for stable output."""
        return sorted(value)


@dataclass
class MailboxStateBuilder:
    """Mutable accumulator owned by a single parse call."""

    name: str = ""
    hierarchy_delimiter: str | None = None
    flags: set[str] = field(default_factory=set)
    permanent_flags: set[str] = field(default_factory=set)
    no_mod_seq: bool = False
    highest_mod_seq: int | None = None
    uid_next: int | None = None
    uid_validity: int | None = None
    count: int | None = None
    recent: int | None = None
    fetch_lines: list[str] = field(default_factory=list)
    vanished_line: str | None = None

    def add_flags(self, tokens: Iterable[str]) -> None:
        """Add session flags, ignoring duplicates."""
        self.flags.update(tokens)

    def add_permanent_flags(self, tokens: Iterable[str]) -> None:
        """Add permanent flags, ignoring duplicates."""
        self.permanent_flags.update(tokens)

    def add_fetch_line(self, line: str) -> None:
        """Append a raw FETCH line, keeping response order."""
        self.fetch_lines.append(line)

    def build(self) -> MailboxState:
        """Freeze the accumulated fields into a MailboxState.

        Returns:
            A new, independent MailboxState.
        """
        return MailboxState(
            name=self.name,
            hierarchy_delimiter=self.hierarchy_delimiter,
            flags=frozenset(self.flags),
            permanent_flags=frozenset(self.permanent_flags),
            no_mod_seq=self.no_mod_seq,
            highest_mod_seq=self.highest_mod_seq,
            uid_next=self.uid_next,
            uid_validity=self.uid_validity,
            count=self.count,
            recent=self.recent,
            fetch_lines=tuple(self.fetch_lines),
            vanished_line=self.vanished_line,
        )
