"""Parse LIST/LSUB/XLIST output into MailboxState metadata."""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable

from imap_mailbox_state.imap.fields import split_flags, unquote
from imap_mailbox_state.imap.utf7 import decode_folder_name
from imap_mailbox_state.models.mailbox import MailboxState, MailboxStateBuilder

_LISTING_MARKERS = ("* LIST ", "* LSUB ", "* XLIST ")
_LITERAL_RE = re.compile(r"\{\d+\}$")

logger = logging.getLogger(__name__)


def parse_list_entry(line: str | None) -> MailboxState | None:
    """Parse one line of LIST, LSUB or XLIST output.

    Args:
        line: Raw listing line, e.g. ``* LIST (\\HasNoChildren) "/" "INBOX"``.

    Returns:
        MailboxState with name, flags and hierarchy delimiter set, or None if
        the line is not a listing entry.
    """
    if not line:
        return None
    line = line.rstrip("\r\n")

    start = line.find("(")
    if start == -1:
        return None
    end = line.find(")", start + 1)
    if end == -1:
        return None

    # The flag list is followed by a single space, then "<delimiter> <name>".
    remaining = line[end + 2 :].split(" ", 1)
    if len(remaining) != 2:
        return None
    delimiter_token, name_token = remaining

    delimiter = unquote(delimiter_token)
    builder = MailboxStateBuilder(
        name=decode_folder_name(unquote(name_token)),
        hierarchy_delimiter=None if delimiter.upper() == "NIL" else delimiter,
    )
    builder.add_flags(split_flags(line[start + 1 : end]))
    return builder.build()


def _as_text(line: str | bytes | bytearray) -> str:
    """Decode a bytes line from aioimaplib; text lines pass through."""
    if isinstance(line, bytes | bytearray):
        return bytes(line).decode("ascii", errors="replace")
    return line


def _quote(value: str) -> str:
    """Quote a literal folder name so it parses like an inline one."""
    escaped = value.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


def parse_list_response(lines: Iterable[str | bytes | bytearray]) -> list[MailboxState]:
    """Parse a full LIST/LSUB/XLIST response.

    Lines may carry the untagged marker or not (aioimaplib strips it), and a
    folder name sent as a ``{n}`` literal is read from the following line.

    Args:
        lines: Response lines as text or bytes.

    Returns:
        Listing entries in response order.
    """
    texts = [_as_text(line).rstrip("\r\n") for line in lines]
    out: list[MailboxState] = []
    idx = 0
    while idx < len(texts):
        line = texts[idx].strip()
        idx += 1
        if not line.startswith("(") and not line.startswith(_LISTING_MARKERS):
            continue

        literal = _LITERAL_RE.search(line)
        if literal and idx < len(texts):
            line = line[: literal.start()] + _quote(texts[idx])
            idx += 1

        entry = parse_list_entry(line)
        if entry is None:
            logger.debug("Skipping non-listing line: %r", line)
            continue
        out.append(entry)
    return out
