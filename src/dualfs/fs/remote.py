"""RemoteBackend — mutations issued over the shared RemoteSession."""

from __future__ import annotations

import asyncio
import io
import logging
import os
import tempfile
from typing import TYPE_CHECKING

from .exceptions import DualFSError
from .types import (
    ChmodResult,
    DeleteResult,
    Dispatch,
    MkdirResult,
    MoveResult,
    WriteResult,
)
from .utils import error_kind_for, to_remote_path

if TYPE_CHECKING:
    from .session import RemoteSession

logger = logging.getLogger(__name__)

# Transfers larger than this spill from memory to a temporary file
SPOOL_MAX_MEMORY = 4 * 1024 * 1024


class RemoteBackend:
    """Performs each mutation as the FTP identity.

    Implements the FileBackend protocol.  Callers pass host paths; they
    are mapped to server paths with ``to_remote_path`` before every
    command.  Content changes are whole-file transfers: there is no
    server-side copy or append.
    """

    def __init__(
        self,
        session: RemoteSession,
        root: str,
        remote_root: str | None = None,
    ) -> None:
        self.session = session
        self.root = root
        self.remote_root = remote_root

    @property
    def kind(self) -> Dispatch:
        return Dispatch.REMOTE

    def remote_path(self, path: str) -> str:
        return to_remote_path(path, self.root, self.remote_root)

    # =========================================================================
    # Files
    # =========================================================================

    async def create(self, path: str) -> WriteResult:
        """Upload a zero-length stream to *path*."""
        try:
            await self.session.upload(self.remote_path(path), io.BytesIO())
        except DualFSError as e:
            return self._write_failure("create", path, e)

        return WriteResult(
            success=True,
            message=f"Created: {path}",
            file_path=path,
            created=True,
            dispatch=Dispatch.REMOTE,
        )

    async def append(self, path: str, data: bytes) -> WriteResult:
        """Download *path*, append *data*, upload the result.

        Existence is checked on the host tree: FTP servers word a missing
        file like a permission problem.  A missing file starts empty, so
        the first write creates it.
        """
        rpath = self.remote_path(path)
        created = not await asyncio.to_thread(os.path.exists, path)
        with tempfile.SpooledTemporaryFile(max_size=SPOOL_MAX_MEMORY) as spool:
            if not created:
                try:
                    await self.session.download(rpath, spool)
                except DualFSError as e:
                    return self._write_failure("write", path, e)

            spool.write(data)
            size = spool.tell()
            spool.seek(0)

            try:
                await self.session.upload(rpath, spool)
            except DualFSError as e:
                return self._write_failure("write", path, e)

        return WriteResult(
            success=True,
            message=f"{'Created' if created else 'Updated'}: {path}",
            file_path=path,
            created=created,
            dispatch=Dispatch.REMOTE,
            bytes_written=size,
        )

    async def copy(self, src: str, dst: str) -> WriteResult:
        """Download *src* into a spool and upload it to *dst*."""
        with tempfile.SpooledTemporaryFile(max_size=SPOOL_MAX_MEMORY) as spool:
            try:
                await self.session.download(self.remote_path(src), spool)
                size = spool.tell()
                spool.seek(0)
                await self.session.upload(self.remote_path(dst), spool)
            except DualFSError as e:
                return self._write_failure("copy", dst, e, detail=f"{src} -> {dst}")

        return WriteResult(
            success=True,
            message=f"Copied {src} to {dst}",
            file_path=dst,
            created=True,
            dispatch=Dispatch.REMOTE,
            bytes_written=size,
        )

    async def remove_file(self, path: str) -> DeleteResult:
        try:
            await self.session.delete(self.remote_path(path))
        except DualFSError as e:
            logger.warning("Remote delete failed for %s: %s", path, e)
            return DeleteResult(
                success=False,
                message=f"Failed to delete {path}: {e}",
                error=error_kind_for(e),
                file_path=path,
            )
        return DeleteResult(
            success=True, message=f"Deleted: {path}", file_path=path, total_deleted=1
        )

    # =========================================================================
    # Directories
    # =========================================================================

    async def mkdir(self, path: str) -> MkdirResult:
        try:
            await self.session.mkdir(self.remote_path(path))
        except DualFSError as e:
            logger.warning("Remote mkdir failed for %s: %s", path, e)
            return MkdirResult(
                success=False,
                message=f"Failed to create directory {path}: {e}",
                error=error_kind_for(e),
                path=path,
            )
        return MkdirResult(
            success=True,
            message=f"Created directory: {path}",
            path=path,
            created_dirs=[path],
        )

    async def remove_dir(self, path: str) -> DeleteResult:
        try:
            await self.session.rmdir(self.remote_path(path))
        except DualFSError as e:
            logger.warning("Remote rmdir failed for %s: %s", path, e)
            return DeleteResult(
                success=False,
                message=f"Failed to remove directory {path}: {e}",
                error=error_kind_for(e),
                file_path=path,
            )
        return DeleteResult(
            success=True, message=f"Removed directory: {path}", file_path=path, total_deleted=1
        )

    # =========================================================================
    # Metadata
    # =========================================================================

    async def rename(self, old_path: str, new_path: str) -> MoveResult:
        try:
            await self.session.rename(self.remote_path(old_path), self.remote_path(new_path))
        except DualFSError as e:
            logger.warning("Remote rename failed %s -> %s: %s", old_path, new_path, e)
            return MoveResult(
                success=False,
                message=f"Failed to rename {old_path} to {new_path}: {e}",
                error=error_kind_for(e),
                old_path=old_path,
                new_path=new_path,
            )
        return MoveResult(
            success=True,
            message=f"Renamed {old_path} to {new_path}",
            old_path=old_path,
            new_path=new_path,
        )

    async def chmod(self, path: str, mode: int) -> ChmodResult:
        try:
            await self.session.chmod(self.remote_path(path), mode)
        except DualFSError as e:
            logger.warning("Remote chmod %o failed for %s: %s", mode, path, e)
            return ChmodResult(
                success=False,
                message=f"Failed to set mode {mode:o} on {path}: {e}",
                error=error_kind_for(e),
                path=path,
                mode=mode,
            )
        return ChmodResult(
            success=True, message=f"Set mode {mode:o} on {path}", path=path, mode=mode
        )

    # =========================================================================
    # Helpers
    # =========================================================================

    @staticmethod
    def _write_failure(
        op: str, path: str, exc: DualFSError, detail: str | None = None
    ) -> WriteResult:
        logger.warning("Remote %s failed for %s: %s", op, detail or path, exc)
        return WriteResult(
            success=False,
            message=f"Failed to {op} {detail or path}: {exc}",
            error=error_kind_for(exc),
            file_path=path,
            dispatch=Dispatch.REMOTE,
        )
