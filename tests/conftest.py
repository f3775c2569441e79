"""Shared fixtures for dualfs tests."""

from __future__ import annotations

import ftplib
import os
from typing import TYPE_CHECKING, Any

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlmodel import SQLModel

from dualfs.fs.config import FilesystemConfig
from dualfs.fs.facade import DualFileSystem

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Callable, Iterable
    from pathlib import Path

    from sqlalchemy.ext.asyncio import AsyncEngine

FTP_USER = "deploy"
FTP_PASSWORD = "s3cret"
WEB_UID = 33
DEPLOY_UID = 1000


# ---------------------------------------------------------------------------
# Fake FTP server
# ---------------------------------------------------------------------------


class FakeFTPServer:
    """In-process stand-in for an FTP server that serves the local disk.

    Server paths are host paths, so anything uploaded is visible to the
    test through ``pathlib``.  ``denied`` paths answer 550 to every
    command, and ``log`` records ``(command, path)`` in issue order.
    """

    def __init__(self) -> None:
        self.username = FTP_USER
        self.password = FTP_PASSWORD
        self.reachable = True
        self.denied: set[str] = set()
        self.log: list[tuple[str, str]] = []
        self.clients: list[FakeFTP] = []

    def deny(self, *paths: str | os.PathLike[str]) -> None:
        self.denied.update(os.fspath(p) for p in paths)

    def commands(self, name: str) -> list[str]:
        return [path for command, path in self.log if command == name]

    def factory(self) -> FakeFTP:
        client = FakeFTP(self)
        self.clients.append(client)
        return client


class FakeFTP:
    """Implements the slice of ``ftplib.FTP`` that RemoteSession uses."""

    def __init__(self, server: FakeFTPServer) -> None:
        self.server = server
        self.connected = False
        self.logged_in = False
        self.passive: bool | None = None
        self.closed = False

    # -- session -----------------------------------------------------------

    def connect(self, host: str, port: int = 21, timeout: float = -999) -> str:
        if not self.server.reachable:
            raise ConnectionRefusedError(111, "Connection refused")
        self.connected = True
        return "220 Fake FTP ready"

    def login(self, user: str = "", passwd: str = "") -> str:
        if (user, passwd) != (self.server.username, self.server.password):
            raise ftplib.error_perm("530 Login incorrect.")
        self.logged_in = True
        return "230 Login successful."

    def set_pasv(self, val: bool) -> None:
        self.passive = val

    def quit(self) -> str:
        self.closed = True
        return "221 Goodbye."

    def close(self) -> None:
        self.closed = True

    # -- commands ----------------------------------------------------------

    def _check(self, command: str, path: str) -> None:
        if not self.logged_in or self.closed:
            raise ftplib.error_temp("421 Not logged in.")
        self.server.log.append((command, path))
        if path in self.server.denied:
            raise ftplib.error_perm("550 Permission denied.")

    def storbinary(self, cmd: str, fp: Any, blocksize: int = 8192) -> str:
        path = cmd.removeprefix("STOR ")
        self._check("STOR", path)
        if not os.path.isdir(os.path.dirname(path)):
            raise ftplib.error_perm("553 Could not create file.")
        with open(path, "wb") as f:
            f.write(fp.read())
        return "226 Transfer complete."

    def retrbinary(self, cmd: str, callback: Callable[[bytes], Any], blocksize: int = 8192) -> str:
        path = cmd.removeprefix("RETR ")
        self._check("RETR", path)
        if not os.path.isfile(path):
            raise ftplib.error_perm("550 Failed to open file.")
        with open(path, "rb") as f:
            callback(f.read())
        return "226 Transfer complete."

    def delete(self, path: str) -> str:
        self._check("DELE", path)
        if not os.path.isfile(path):
            raise ftplib.error_perm("550 No such file or directory.")
        os.unlink(path)
        return "250 Delete operation successful."

    def rmd(self, path: str) -> str:
        self._check("RMD", path)
        try:
            os.rmdir(path)
        except OSError:
            raise ftplib.error_perm("550 Remove directory operation failed.") from None
        return "250 Remove directory operation successful."

    def mkd(self, path: str) -> str:
        self._check("MKD", path)
        try:
            os.mkdir(path)
        except OSError:
            raise ftplib.error_perm("550 Create directory operation failed.") from None
        return path

    def rename(self, fromname: str, toname: str) -> str:
        self._check("RNFR", fromname)
        self._check("RNTO", toname)
        if not os.path.lexists(fromname):
            raise ftplib.error_perm("550 RNFR command failed.")
        os.rename(fromname, toname)
        return "250 Rename successful."

    def sendcmd(self, cmd: str) -> str:
        if not cmd.startswith("SITE CHMOD "):
            raise ftplib.error_perm("500 Unknown command.")
        mode, path = cmd.removeprefix("SITE CHMOD ").split(" ", 1)
        self._check("SITE CHMOD", path)
        if not os.path.lexists(path):
            raise ftplib.error_perm("550 SITE CHMOD command failed.")
        os.chmod(path, int(mode, 8))
        return "200 SITE CHMOD command ok."


# ---------------------------------------------------------------------------
# Scriptable ownership
# ---------------------------------------------------------------------------


class FakeOwnership:
    """Ownership probe with scripted answers over a real directory tree.

    Existing paths under one of ``web_owned`` belong to the web service
    (``process_uid``); every other existing path belongs to
    ``root_owner``.  A path is writable iff it exists and the process
    owns it.
    """

    def __init__(
        self,
        *,
        process_uid: int = WEB_UID,
        root_owner: int = DEPLOY_UID,
        web_owned: Iterable[str | os.PathLike[str]] = (),
    ) -> None:
        self.process_uid = process_uid
        self.root_owner = root_owner
        self.web_owned = {os.fspath(p) for p in web_owned}
        self.overrides: dict[str, tuple[bool, int]] = {}

    def set(self, path: str | os.PathLike[str], *, writable: bool, owner: int) -> None:
        self.overrides[os.fspath(path)] = (writable, owner)

    def process_owner(self) -> int:
        return self.process_uid

    def owner(self, path: str) -> int | None:
        if path in self.overrides:
            return self.overrides[path][1]
        if not os.path.lexists(path):
            return None
        for prefix in self.web_owned:
            if path == prefix or path.startswith(prefix + os.sep):
                return self.process_uid
        return self.root_owner

    def is_writable(self, path: str) -> bool:
        if path in self.overrides:
            return self.overrides[path][0]
        return self.owner(path) == self.process_uid


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def root(tmp_path: Path) -> Path:
    """Application root directory."""
    r = tmp_path / "www"
    r.mkdir()
    return r


@pytest.fixture
def ftp_server() -> FakeFTPServer:
    return FakeFTPServer()


@pytest.fixture
def remote_config(root: Path) -> FilesystemConfig:
    return FilesystemConfig(
        root=str(root),
        remote_host="ftp.example.test",
        remote_username=FTP_USER,
        remote_password=FTP_PASSWORD,
    )


@pytest.fixture
def ownership() -> FakeOwnership:
    """Process runs as the web user; the tree belongs to the deploy user."""
    return FakeOwnership()


@pytest.fixture
async def native_fs(root: Path) -> AsyncIterator[DualFileSystem]:
    """Facade over a root the test process owns, so native mode."""
    async with DualFileSystem(FilesystemConfig(root=str(root))) as fs:
        yield fs


@pytest.fixture
async def remote_fs(
    remote_config: FilesystemConfig,
    ownership: FakeOwnership,
    ftp_server: FakeFTPServer,
) -> AsyncIterator[DualFileSystem]:
    """Facade in remote mode, talking to the fake FTP server."""
    async with DualFileSystem(
        remote_config, ownership=ownership, ftp_factory=ftp_server.factory
    ) as fs:
        yield fs


@pytest.fixture
async def async_engine() -> AsyncIterator[AsyncEngine]:
    """Async in-memory SQLite engine with all tables created."""
    eng = create_async_engine("sqlite+aiosqlite://", echo=False)
    async with eng.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
    yield eng
    await eng.dispose()


@pytest.fixture
async def async_session(async_engine: AsyncEngine) -> AsyncIterator[AsyncSession]:
    """Async SQLModel session."""
    factory = async_sessionmaker(
        async_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )
    async with factory() as session:
        yield session
