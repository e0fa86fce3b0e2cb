"""Parse EXAMINE/SELECT responses into MailboxState snapshots."""

from __future__ import annotations

import logging
from collections import Counter
from collections.abc import Callable
from dataclasses import dataclass

from imap_mailbox_state.imap.fields import (
    MalformedFieldError,
    bracket_value,
    coerce_int,
    paren_list,
)
from imap_mailbox_state.imap.utf7 import decode_folder_name
from imap_mailbox_state.models.mailbox import MailboxState, MailboxStateBuilder

FLAGS_PREFIX = "* FLAGS ("
NOMODSEQ_PREFIX = "* OK [NOMODSEQ]"
HIGHESTMODSEQ_PREFIX = "* OK [HIGHESTMODSEQ "
PERMANENTFLAGS_PREFIX = "* OK [PERMANENTFLAGS ("
UIDNEXT_PREFIX = "* OK [UIDNEXT "
UIDVALIDITY_PREFIX = "* OK [UIDVALIDITY "
VANISHED_PREFIX = "* VANISHED "
FETCH_MARKER = " FETCH "
EXISTS_SUFFIX = " EXISTS"
RECENT_SUFFIX = " RECENT"

logger = logging.getLogger(__name__)

_Extractor = Callable[[MailboxStateBuilder, str, bool], None]


@dataclass(frozen=True)
class _LineRule:
    """One recognized line shape and how to apply it."""

    name: str
    matches: Callable[[str], bool]
    apply: _Extractor


def _flags(builder: MailboxStateBuilder, line: str, strict: bool) -> None:
    """Add the session flags from a ``* FLAGS (...)`` line."""
    tokens = paren_list(line, FLAGS_PREFIX)
    if tokens is None:
        if strict:
            raise MalformedFieldError("flags", line, "missing closing parenthesis")
        logger.debug("Skipping FLAGS line without closing parenthesis: %r", line)
        return
    builder.add_flags(tokens)


def _no_mod_seq(builder: MailboxStateBuilder, line: str, strict: bool) -> None:
    """Record that the server has no mod-sequence support."""
    builder.no_mod_seq = True


def _highest_mod_seq(builder: MailboxStateBuilder, line: str, strict: bool) -> None:
    """Store the HIGHESTMODSEQ value."""
    value = bracket_value(line, HIGHESTMODSEQ_PREFIX)
    builder.highest_mod_seq = coerce_int(value, field="highest_mod_seq", line=line, strict=strict)


def _permanent_flags(builder: MailboxStateBuilder, line: str, strict: bool) -> None:
    """Add the flags from a PERMANENTFLAGS status code."""
    tokens = paren_list(line, PERMANENTFLAGS_PREFIX)
    if tokens is None:
        if strict:
            raise MalformedFieldError("permanent_flags", line, "missing closing parenthesis")
        logger.debug("Skipping PERMANENTFLAGS line without closing parenthesis: %r", line)
        return
    builder.add_permanent_flags(tokens)


def _uid_next(builder: MailboxStateBuilder, line: str, strict: bool) -> None:
    """Store the UIDNEXT value."""
    value = bracket_value(line, UIDNEXT_PREFIX)
    builder.uid_next = coerce_int(value, field="uid_next", line=line, strict=strict)


def _uid_validity(builder: MailboxStateBuilder, line: str, strict: bool) -> None:
    """Store the UIDVALIDITY value."""
    value = bracket_value(line, UIDVALIDITY_PREFIX)
    builder.uid_validity = coerce_int(value, field="uid_validity", line=line, strict=strict)


def _vanished(builder: MailboxStateBuilder, line: str, strict: bool) -> None:
    """Keep the raw identifier list of a VANISHED line."""
    builder.vanished_line = line[len(VANISHED_PREFIX) :]


def _fetch(builder: MailboxStateBuilder, line: str, strict: bool) -> None:
    """Keep an inline FETCH line verbatim."""
    builder.add_fetch_line(line)


def _count_before(line: str, suffix: str) -> str:
    """Return the token immediately preceding ``suffix``, or an empty string."""
    parts = line[: -len(suffix)].split()
    return parts[-1] if parts else ""


def _exists(builder: MailboxStateBuilder, line: str, strict: bool) -> None:
    """Store the message count from an EXISTS line."""
    token = _count_before(line, EXISTS_SUFFIX)
    builder.count = coerce_int(token, field="count", line=line, strict=strict)


def _recent(builder: MailboxStateBuilder, line: str, strict: bool) -> None:
    """Store the recent count from a RECENT line."""
    token = _count_before(line, RECENT_SUFFIX)
    builder.recent = coerce_int(token, field="recent", line=line, strict=strict)


# Order matters: FETCH containment is tested before the EXISTS/RECENT suffixes.
_RULES: tuple[_LineRule, ...] = (
    _LineRule("flags", lambda line: line.startswith(FLAGS_PREFIX), _flags),
    _LineRule("nomodseq", lambda line: line.startswith(NOMODSEQ_PREFIX), _no_mod_seq),
    _LineRule(
        "highestmodseq",
        lambda line: line.startswith(HIGHESTMODSEQ_PREFIX),
        _highest_mod_seq,
    ),
    _LineRule(
        "permanentflags",
        lambda line: line.startswith(PERMANENTFLAGS_PREFIX),
        _permanent_flags,
    ),
    _LineRule("uidnext", lambda line: line.startswith(UIDNEXT_PREFIX), _uid_next),
    _LineRule("uidvalidity", lambda line: line.startswith(UIDVALIDITY_PREFIX), _uid_validity),
    _LineRule("vanished", lambda line: line.startswith(VANISHED_PREFIX), _vanished),
    _LineRule("fetch", lambda line: FETCH_MARKER in line, _fetch),
    _LineRule("exists", lambda line: line.endswith(EXISTS_SUFFIX), _exists),
    _LineRule("recent", lambda line: line.endswith(RECENT_SUFFIX), _recent),
)


def split_response_lines(raw_response: str | None) -> list[str]:
    """Split a raw response into lines, accepting LF or CRLF endings.

    Args:
        raw_response: Raw response text, possibly None.

    Returns:
        Lines without terminators; empty for empty input.
    """
    if not raw_response:
        return []
    return raw_response.replace("\r", "").split("\n")


def parse_select(
    folder_name: str,
    raw_response: str | None,
    *,
    strict: bool = False,
) -> MailboxState:
    """Parse the untagged output of an EXAMINE or SELECT command.

    Args:
        folder_name: Modified UTF-7 name of the mailbox that was opened.
        raw_response: Raw response text.
        strict: Raise on malformed fields instead of coercing them.

    Returns:
        A fresh MailboxState describing the mailbox.

    Raises:
        MalformedFieldError: If strict and a recognized line has a malformed value.
    """
    builder = MailboxStateBuilder(name=decode_folder_name(folder_name))

    matched: Counter[str] = Counter()
    skipped = 0
    for line in split_response_lines(raw_response):
        for rule in _RULES:
            if rule.matches(line):
                rule.apply(builder, line, strict)
                matched[rule.name] += 1
                break
        else:
            skipped += 1

    state = builder.build()
    logger.debug(
        "Parsed select response for %r (rules=%s, skipped=%d)",
        state.name,
        ",".join(sorted(matched)) or "-",
        skipped,
        extra={"rules": dict(matched), "skipped": skipped},
    )
    return state
