"""Modified UTF-7 codec for IMAP mailbox names.

See Also:
    `RFC 3501 5.1.3 <https://tools.ietf.org/html/rfc3501#section-5.1.3>`_
"""

from __future__ import annotations

import base64
import binascii
import logging

logger = logging.getLogger(__name__)

_SHIFT = "&"
_UNSHIFT = "-"


def _modified_b64encode(run: str) -> str:
    """Encode a run of non-printable characters as modified base64."""
    encoded = base64.b64encode(run.encode("utf-16-be")).rstrip(b"=")
    return encoded.replace(b"/", b",").decode("ascii")


def _modified_b64decode(chunk: str) -> str:
    """Decode a modified base64 chunk into text.

    Raises:
        ValueError: If the chunk is not valid modified base64 of UTF-16BE.
    """
    padded = chunk.replace(",", "/") + "=" * (-len(chunk) % 4)
    raw = base64.b64decode(padded.encode("ascii"), validate=True)
    return raw.decode("utf-16-be")


def encode_folder_name(name: str) -> str:
    """Encode a folder name using modified UTF-7.

    Args:
        name: Display folder name.

    Returns:
        ASCII-only folder name suitable for the wire.
    """
    parts: list[str] = []
    pending: list[str] = []
    for symbol in name:
        if 0x20 <= ord(symbol) <= 0x7E:
            if pending:
                parts.append(_SHIFT + _modified_b64encode("".join(pending)) + _UNSHIFT)
                pending.clear()
            parts.append("&-" if symbol == _SHIFT else symbol)
        else:
            pending.append(symbol)
    if pending:
        parts.append(_SHIFT + _modified_b64encode("".join(pending)) + _UNSHIFT)
    return "".join(parts)


def _decode_strict(raw: str) -> str:
    """Decode modified UTF-7, raising ValueError on a malformed shift sequence."""
    parts: list[str] = []
    pos = 0
    while pos < len(raw):
        shift = raw.find(_SHIFT, pos)
        if shift == -1:
            parts.append(raw[pos:])
            break
        parts.append(raw[pos:shift])
        unshift = raw.find(_UNSHIFT, shift + 1)
        if unshift == -1:
            raise ValueError(f"unterminated shift sequence at offset {shift}")
        chunk = raw[shift + 1 : unshift]
        parts.append(_modified_b64decode(chunk) if chunk else _SHIFT)
        pos = unshift + 1
    return "".join(parts)


def decode_folder_name(raw: str) -> str:
    """Decode a modified UTF-7 folder name into a display string.

    Decoding never fails: names that are not valid modified UTF-7 are
    returned unchanged.

    Args:
        raw: Folder name as sent by the server.

    Returns:
        Decoded folder name.
    """
    if _SHIFT not in raw:
        return raw
    try:
        return _decode_strict(raw)
    except (ValueError, binascii.Error) as exc:
        logger.debug("Folder name %r is not modified UTF-7 (%s); keeping raw", raw, exc)
        return raw
