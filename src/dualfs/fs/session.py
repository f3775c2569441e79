"""RemoteSession — the single long-lived FTP connection."""

from __future__ import annotations

import asyncio
import ftplib
import logging
from typing import TYPE_CHECKING, Any, BinaryIO

from .exceptions import ConnectionFailureError, RemoteCommandError, SessionClosedError

if TYPE_CHECKING:
    from collections.abc import Callable

logger = logging.getLogger(__name__)

# ftplib.all_errors minus the reply errors, which become RemoteCommandError
_NETWORK_ERRORS = (OSError, EOFError)
_REPLY_ERRORS = (ftplib.error_reply, ftplib.error_temp, ftplib.error_perm, ftplib.error_proto)


class RemoteSession:
    """One authenticated FTP control connection, shared by every operation.

    Commands are serialized with an ``asyncio.Lock``: FTP cannot multiplex
    commands on one control connection, so concurrent coroutines queue
    behind each other.  Blocking ``ftplib`` calls run in a worker thread.

    ``ftp_factory`` builds the unconnected client; tests inject a fake.
    """

    def __init__(
        self,
        host: str,
        username: str,
        password: str | None = None,
        *,
        port: int = 21,
        timeout: float = 30.0,
        passive: bool = True,
        ftp_factory: Callable[[], Any] | None = None,
    ) -> None:
        self.host = host
        self.port = port
        self.username = username
        self._password = password or ""
        self.timeout = timeout
        self.passive = passive
        self._ftp_factory = ftp_factory or ftplib.FTP
        self._ftp: Any = None
        self._lock = asyncio.Lock()

    def __repr__(self) -> str:
        state = "open" if self.is_open else "closed"
        return f"RemoteSession({self.username}@{self.host}:{self.port}, {state})"

    @property
    def is_open(self) -> bool:
        return self._ftp is not None

    # =========================================================================
    # Lifecycle
    # =========================================================================

    async def connect(self) -> None:
        """Connect and authenticate.  Raises ConnectionFailureError."""
        if self._ftp is not None:
            return

        def _connect() -> Any:
            ftp = self._ftp_factory()
            try:
                ftp.connect(self.host, self.port, timeout=self.timeout)
                ftp.login(self.username, self._password)
                ftp.set_pasv(self.passive)
            except Exception:
                ftp.close()
                raise
            return ftp

        async with self._lock:
            try:
                self._ftp = await asyncio.to_thread(_connect)
            except (*_NETWORK_ERRORS, *_REPLY_ERRORS) as e:
                msg = f"Cannot connect to {self.host}:{self.port} as {self.username}: {e}"
                raise ConnectionFailureError(msg) from e

        logger.info("Opened remote session %s@%s:%s", self.username, self.host, self.port)

    async def close(self) -> None:
        """Send QUIT and drop the connection.  Safe to call more than once."""
        async with self._lock:
            ftp, self._ftp = self._ftp, None
            if ftp is None:
                return

            def _quit() -> None:
                try:
                    ftp.quit()
                except (*_NETWORK_ERRORS, *_REPLY_ERRORS):
                    logger.debug("QUIT failed, closing socket", exc_info=True)
                    ftp.close()

            await asyncio.to_thread(_quit)

        logger.info("Closed remote session %s@%s", self.username, self.host)

    # =========================================================================
    # Commands
    # =========================================================================

    async def _run(self, command: str, fn: Callable[..., Any], *args: Any) -> Any:
        async with self._lock:
            if self._ftp is None:
                raise SessionClosedError(f"{command}: remote session is not open")
            logger.debug("FTP %s %s", command, " ".join(str(a) for a in args if isinstance(a, str)))
            try:
                return await asyncio.to_thread(fn, *args)
            except _REPLY_ERRORS as e:
                raise RemoteCommandError(command, str(e)) from e
            except _NETWORK_ERRORS as e:
                msg = f"{command}: connection to {self.host} lost: {e}"
                raise ConnectionFailureError(msg) from e

    async def upload(self, path: str, stream: BinaryIO) -> None:
        """Store *stream* (read from its current position) at *path*."""
        await self._run("STOR", lambda p: self._ftp.storbinary(f"STOR {p}", stream), path)

    async def download(self, path: str, stream: BinaryIO) -> None:
        """Write the content of *path* into *stream*."""
        await self._run("RETR", lambda p: self._ftp.retrbinary(f"RETR {p}", stream.write), path)

    async def delete(self, path: str) -> None:
        await self._run("DELE", lambda p: self._ftp.delete(p), path)

    async def rmdir(self, path: str) -> None:
        await self._run("RMD", lambda p: self._ftp.rmd(p), path)

    async def mkdir(self, path: str) -> None:
        await self._run("MKD", lambda p: self._ftp.mkd(p), path)

    async def rename(self, old_path: str, new_path: str) -> None:
        await self._run("RNFR", lambda o, n: self._ftp.rename(o, n), old_path, new_path)

    async def chmod(self, path: str, mode: int) -> None:
        """SITE CHMOD.  Servers that ignore it are not detected."""
        await self._run("SITE CHMOD", lambda p: self._ftp.sendcmd(f"SITE CHMOD {mode:o} {p}"), path)
