"""FilesystemConfig and the settings-table loader."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from sqlmodel import select

from dualfs.models.settings import Setting

from .exceptions import ConfigurationError
from .utils import normalize_path

if TYPE_CHECKING:
    from collections.abc import Mapping

    from sqlalchemy.ext.asyncio import AsyncSession

DEFAULT_FTP_PORT = 21
DEFAULT_TIMEOUT = 30.0

# Setting names as stored by the CMS
SETTING_KEYS = ("ftp_host", "ftp_username", "ftp_password", "ftp_port", "ftp_root")


@dataclass
class FilesystemConfig:
    """Read-only configuration consumed by ``DualFileSystem.open()``."""

    root: str
    """Application root; its ownership decides the capability mode."""

    remote_host: str | None = None
    remote_username: str | None = None
    remote_password: str | None = None

    remote_port: int = DEFAULT_FTP_PORT
    remote_timeout: float = DEFAULT_TIMEOUT
    """Socket timeout for the FTP control and data connections."""

    remote_passive: bool = True

    remote_root: str | None = None
    """Where the application root appears on the FTP server; ``None`` sends host paths as is."""

    def __post_init__(self) -> None:
        self.root = normalize_path(self.root)
        if self.remote_root is not None:
            self.remote_root = "/" + self.remote_root.strip().strip("/")

    @property
    def has_remote_credentials(self) -> bool:
        return bool(self.remote_host) and bool(self.remote_username)

    def require_remote(self) -> None:
        """Raise ConfigurationError unless host and username are set."""
        if self.has_remote_credentials:
            return
        missing = [
            name
            for name, value in (
                ("remote_host", self.remote_host),
                ("remote_username", self.remote_username),
            )
            if not value
        ]
        if missing:
            msg = f"Remote mode requires configuration: {', '.join(missing)}"
            raise ConfigurationError(msg)

    @classmethod
    def from_mapping(cls, root: str, settings: Mapping[str, Any]) -> FilesystemConfig:
        """Build a config from CMS-style ``ftp_*`` settings."""
        port_raw = settings.get("ftp_port")
        try:
            port = int(port_raw) if port_raw not in (None, "") else DEFAULT_FTP_PORT
        except (TypeError, ValueError):
            raise ConfigurationError(f"Invalid ftp_port setting: {port_raw!r}") from None

        return cls(
            root=root,
            remote_host=settings.get("ftp_host") or None,
            remote_username=settings.get("ftp_username"),
            remote_password=settings.get("ftp_password"),
            remote_port=port,
            remote_root=settings.get("ftp_root") or None,
        )


async def load_config(session: AsyncSession, root: str) -> FilesystemConfig:
    """Read the ``ftp_*`` rows of the settings table into a FilesystemConfig."""
    result = await session.execute(
        select(Setting).where(Setting.name.in_(SETTING_KEYS))  # type: ignore[union-attr]
    )
    rows = {row.name: row.value for row in result.scalars().all()}
    return FilesystemConfig.from_mapping(root, rows)
