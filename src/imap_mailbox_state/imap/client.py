"""Async IMAP client wrapper that yields MailboxState snapshots."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterable

import aioimaplib

from imap_mailbox_state.imap.listing import parse_list_response
from imap_mailbox_state.imap.select import parse_select
from imap_mailbox_state.imap.utf7 import encode_folder_name
from imap_mailbox_state.models.mailbox import MailboxState
from imap_mailbox_state.models.types import SelectCommand

logger = logging.getLogger(__name__)


class ImapError(RuntimeError):
    """Raised for IMAP command errors."""


class ImapClient:
    """Async IMAP client that opens mailboxes and reports their state."""

    def __init__(
        self,
        *,
        host: str,
        port: int,
        ssl: bool,
        timeout_seconds: float = 120.0,
        strict: bool = False,
    ) -> None:
        """Initialize the IMAP client.

        Args:
            host: IMAP host.
            port: IMAP port.
            ssl: Whether to use SSL.
            timeout_seconds: Network timeout for IMAP operations.
            strict: Raise on malformed SELECT fields instead of coercing them.
        """
        self._host = host
        self._port = port
        self._ssl = ssl
        self._timeout = timeout_seconds
        self._strict = strict
        self._imap: aioimaplib.IMAP4 | aioimaplib.IMAP4_SSL | None = None
        self._lock = asyncio.Lock()

    async def connect(self) -> None:
        """Connect to the IMAP server."""
        async with self._lock:
            if self._imap is not None:
                return
            if self._ssl:
                self._imap = aioimaplib.IMAP4_SSL(self._host, self._port, timeout=self._timeout)
            else:
                self._imap = aioimaplib.IMAP4(self._host, self._port, timeout=self._timeout)
            await asyncio.wait_for(self._imap.wait_hello_from_server(), timeout=self._timeout)
            logger.debug("Connected to %s:%d (ssl=%s)", self._host, self._port, self._ssl)

    async def login(self, *, username: str, app_password: str) -> None:
        """Login to the IMAP server.

        Args:
            username: IMAP username.
            app_password: IMAP password or app-specific password.

        Raises:
            ImapError: If authentication fails.
        """
        async with self._lock:
            imap = self._require()
            resp = await asyncio.wait_for(imap.login(username, app_password), timeout=self._timeout)
            if resp.result != "OK":
                raise ImapError(f"IMAP login failed: {resp.result} {resp.lines!r}")

    async def logout(self) -> None:
        """Logout and close the IMAP connection."""
        async with self._lock:
            if self._imap is None:
                return
            try:
                await self._imap.logout()
            finally:
                self._imap = None

    async def list_mailboxes(self, *, reference: str = '""', pattern: str = "*") -> list[MailboxState]:
        """List mailboxes with their flags and hierarchy delimiter.

        Args:
            reference: LIST reference name.
            pattern: LIST mailbox pattern.

        Returns:
            One MailboxState per listed folder.

        Raises:
            ImapError: If the LIST command fails.
        """
        async with self._lock:
            imap = self._require()
            resp = await asyncio.wait_for(imap.list(reference, pattern), timeout=self._timeout)
            if resp.result != "OK":
                raise ImapError(f"IMAP LIST failed: {resp.result} {resp.lines!r}")
            mailboxes = parse_list_response(resp.lines)
            if not mailboxes:
                logger.debug("IMAP LIST raw lines: %r", resp.lines)
            return mailboxes

    async def select(self, mailbox: str) -> MailboxState:
        """Select a mailbox read-write and return its state.

        Args:
            mailbox: Decoded mailbox name.

        Returns:
            Parsed MailboxState.

        Raises:
            ImapError: If the SELECT command fails.
        """
        return await self._open(mailbox, command=SelectCommand.select)

    async def examine(self, mailbox: str) -> MailboxState:
        """Open a mailbox read-only and return its state.

        Args:
            mailbox: Decoded mailbox name.

        Returns:
            Parsed MailboxState.

        Raises:
            ImapError: If the EXAMINE command fails.
        """
        return await self._open(mailbox, command=SelectCommand.examine)

    async def _open(self, mailbox: str, *, command: SelectCommand) -> MailboxState:
        """Run SELECT or EXAMINE and parse the untagged response."""
        async with self._lock:
            imap = self._require()
            encoded = encode_folder_name(mailbox)
            if command is SelectCommand.select:
                coro = imap.select(_imap_quote(encoded))
            else:
                coro = imap.examine(_imap_quote(encoded))
            resp = await asyncio.wait_for(coro, timeout=self._timeout)
            if resp.result != "OK":
                raise ImapError(f"IMAP {command.value} failed ({mailbox}): {resp.result} {resp.lines!r}")
            return parse_select(encoded, _as_untagged_text(resp.lines), strict=self._strict)

    def _require(self) -> aioimaplib.IMAP4 | aioimaplib.IMAP4_SSL:
        """Return the underlying IMAP client or raise if not connected."""
        if self._imap is None:
            raise ImapError("IMAP client not connected")
        return self._imap


def _as_untagged_text(lines: Iterable[bytes | bytearray | str]) -> str:
    """Rebuild raw response text from aioimaplib lines.

    aioimaplib drops the leading ``* `` of untagged responses; it is restored
    so the text matches what the server sent.

    Args:
        lines: Response lines.

    Returns:
        CRLF-joined response text.
    """
    out: list[str] = []
    for line in lines:
        text = bytes(line).decode("utf-8", errors="replace") if not isinstance(line, str) else line
        text = text.rstrip("\r\n")
        out.append(text if text.startswith("* ") else f"* {text}")
    return "\r\n".join(out)


def _imap_quote(value: str) -> str:
    """Quote a string for use in IMAP commands.

    Leading and trailing spaces are legal in mailbox names and are kept.

    Args:
        value: Encoded mailbox name.

    Returns:
        Quoted string safe for IMAP commands.
    """
    escaped = value.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'
