"""Token helpers shared by the SELECT and LIST parsers."""

from __future__ import annotations

import logging
import re

_INT_RE = re.compile(r"^\s*[+-]?\d+\s*$")

logger = logging.getLogger(__name__)


class MalformedFieldError(ValueError):
    """Raised in strict mode when a recognized line carries a malformed value."""

    def __init__(self, field: str, line: str, reason: str) -> None:
        """Initialize the error.

        Args:
            field: Name of the MailboxState field being parsed.
            line: Offending response line.
            reason: Short description of what was wrong.
        """
        super().__init__(f"Malformed {field} ({reason}): {line!r}")
        self.field = field
        self.line = line


def split_flags(text: str) -> set[str]:
    """Split a space-separated flag list into a set of tokens.

    Args:
        text: Flag list without its parentheses.

    Returns:
        Distinct, non-empty flag tokens.
    """
    return {token for token in text.split(" ") if token}


def coerce_int(token: str | None, *, field: str, line: str, strict: bool) -> int:
    """Parse an integer token the lenient way.

    Args:
        token: Numeric text, or None if the delimiter was missing.
        field: Field name used in logs and errors.
        line: Source line used in logs and errors.
        strict: Raise instead of coercing to zero.

    Returns:
        Parsed integer, or 0 for malformed input when not strict.

    Raises:
        MalformedFieldError: If strict and the token is missing or not an integer.
    """
    if token is not None and _INT_RE.match(token):
        return int(token)
    reason = "missing value" if token is None else f"not an integer: {token!r}"
    if strict:
        raise MalformedFieldError(field, line, reason)
    logger.debug("Coercing %s to 0 (%s): %r", field, reason, line)
    return 0


def bracket_value(line: str, prefix: str) -> str | None:
    """Return the text between ``prefix`` and the next ``]``.

    Args:
        line: Response line starting with ``prefix``.
        prefix: Literal status-code prefix.

    Returns:
        The enclosed text, or None when no closing bracket follows.
    """
    rest = line[len(prefix) :]
    end = rest.find("]")
    if end == -1:
        return None
    return rest[:end]


def paren_list(line: str, prefix: str) -> set[str] | None:
    """Return the flag tokens between ``prefix`` (ending in ``(``) and the next ``)``.

    Args:
        line: Response line starting with ``prefix``.
        prefix: Literal prefix including the opening parenthesis.

    Returns:
        Flag tokens, or None when no closing parenthesis follows.
    """
    rest = line[len(prefix) :]
    end = rest.find(")")
    if end == -1:
        return None
    return split_flags(rest[:end])


def unquote(token: str) -> str:
    """Strip IMAP quoting from a token.

    Args:
        token: Quoted string or atom.

    Returns:
        The unquoted value with backslash escapes undone.
    """
    value = token.strip()
    if len(value) >= 2 and value.startswith('"') and value.endswith('"'):
        value = value[1:-1]
        return value.replace('\\"', '"').replace("\\\\", "\\")
    return value.replace('"', "")
