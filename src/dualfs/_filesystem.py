"""Filesystem — synchronous wrapper around DualFileSystem."""

from __future__ import annotations

import asyncio
import logging
import threading
from typing import TYPE_CHECKING, Any

from dualfs.fs.exceptions import ConnectionFailureError
from dualfs.fs.facade import DualFileSystem

if TYPE_CHECKING:
    from collections.abc import Callable

    from dualfs.fs.config import FilesystemConfig
    from dualfs.fs.ownership import OwnershipProbe
    from dualfs.fs.types import FacadeState, OpenResult

logger = logging.getLogger(__name__)


class Filesystem:
    """Blocking facade for request handlers and scripts.

    Presents a synchronous API backed by a private event loop in a
    background thread.  Every call blocks until the underlying
    ``DualFileSystem`` operation finishes.  Calls from several threads share
    the one loop and therefore the one remote session.

    Mutations return ``True`` on success; the full result of the last
    call is kept on ``last_result`` for callers that need the reason.

    Usage::

        with Filesystem(config) as fs:
            fs.create_dir("/srv/www/media/2024")
            fs.copy("/tmp/upload-1f3a", "/srv/www/media/2024/clip.mp4")
    """

    def __init__(
        self,
        config: FilesystemConfig,
        *,
        ownership: OwnershipProbe | None = None,
        ftp_factory: Callable[[], Any] | None = None,
    ) -> None:
        self._closed = False
        self.last_result: Any = None

        # Private event loop in a daemon thread
        self._loop = asyncio.new_event_loop()
        self._thread = threading.Thread(target=self._loop.run_forever, daemon=True)
        self._thread.start()

        self._fs = DualFileSystem(config, ownership=ownership, ftp_factory=ftp_factory)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def open(self) -> bool:
        """Resolve the capability mode and connect if needed."""
        result: OpenResult = self._call(self._fs.open())
        return result.success

    def close(self) -> None:
        """Release the remote session, stop the event loop and join the thread."""
        if self._closed:
            return
        self._closed = True

        try:
            self._run(self._fs.close())
        finally:
            self._loop.call_soon_threadsafe(self._loop.stop)
            self._thread.join(timeout=5)

    def __enter__(self) -> Filesystem:
        if not self.open():
            message = self.last_result.message
            self.close()
            raise ConnectionFailureError(message)
        return self

    def __exit__(self, exc_type: object, exc_val: object, exc_tb: object) -> None:
        self.close()

    # ------------------------------------------------------------------
    # Filesystem wrappers (sync)
    # ------------------------------------------------------------------

    def create_dir(self, path: str) -> bool:
        """Create *path* and missing ancestors."""
        return self._call(self._fs.create_dir(path)).success

    def create(self, path: str) -> bool:
        """Create an empty file at *path*."""
        return self._call(self._fs.create(path)).success

    def write(self, path: str, content: str | bytes) -> bool:
        """Append *content* to *path*."""
        return self._call(self._fs.write(path, content)).success

    def copy(self, src: str, dst: str) -> bool:
        return self._call(self._fs.copy(src, dst)).success

    def copy_dir(self, src_dir: str, dst_dir: str) -> bool:
        return self._call(self._fs.copy_dir(src_dir, dst_dir)).success

    def delete(self, path: str) -> bool:
        """Delete a file or a whole directory tree."""
        return self._call(self._fs.delete(path)).success

    def set_permissions(self, path: str, mode: int) -> bool:
        return self._call(self._fs.set_permissions(path, mode)).success

    def rename(self, old_path: str, new_path: str) -> bool:
        return self._call(self._fs.rename(old_path, new_path)).success

    def extract(self, archive_path: str, dest_dir: str | None = None) -> bool:
        """Unpack a zip archive, by default next to it."""
        return self._call(self._fs.extract(archive_path, dest_dir)).success

    def can_use_native(self, path: str) -> bool:
        return self._fs.can_use_native(path)

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _run(self, coro: Any) -> Any:
        """Submit *coro* to the private loop and block for the result."""
        future = asyncio.run_coroutine_threadsafe(coro, self._loop)
        return future.result()

    def _call(self, coro: Any) -> Any:
        if self._closed:
            coro.close()
            msg = "Filesystem is closed"
            raise RuntimeError(msg)
        self.last_result = self._run(coro)
        if not self.last_result.success:
            logger.debug("Filesystem call failed: %s", self.last_result.message)
        return self.last_result

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def fs(self) -> DualFileSystem:
        """The underlying ``DualFileSystem`` (for advanced async use)."""
        return self._fs

    @property
    def state(self) -> FacadeState:
        return self._fs.state

    @property
    def native(self) -> bool:
        """True once opened in native mode."""
        mode = self._fs.mode
        return mode is not None and mode.native
