"""NativeBackend — direct OS calls, no intermediary."""

from __future__ import annotations

import asyncio
import logging
import os
import shutil

from .types import (
    ChmodResult,
    DeleteResult,
    Dispatch,
    MkdirResult,
    MoveResult,
    WriteResult,
)
from .utils import error_kind_for

logger = logging.getLogger(__name__)


class NativeBackend:
    """Performs each mutation with the process's own identity.

    Implements the FileBackend protocol.  Blocking calls run in a worker
    thread so the facade's event loop stays responsive.
    """

    @property
    def kind(self) -> Dispatch:
        return Dispatch.NATIVE

    # =========================================================================
    # Files
    # =========================================================================

    async def create(self, path: str) -> WriteResult:
        """Create *path* empty, truncating any existing content."""

        def _create() -> bool:
            existed = os.path.exists(path)
            with open(path, "wb"):
                pass
            return not existed

        try:
            created = await asyncio.to_thread(_create)
        except OSError as e:
            return self._write_failure("create", path, e)

        return WriteResult(
            success=True,
            message=f"Created: {path}",
            file_path=path,
            created=created,
            dispatch=Dispatch.NATIVE,
        )

    async def append(self, path: str, data: bytes) -> WriteResult:
        """Read the whole file, add *data*, and write the whole file back."""

        def _append() -> tuple[bool, int]:
            try:
                with open(path, "rb") as f:
                    current = f.read()
                created = False
            except FileNotFoundError:
                current = b""
                created = True
            content = current + data
            with open(path, "wb") as f:
                f.write(content)
            return created, len(content)

        try:
            created, size = await asyncio.to_thread(_append)
        except OSError as e:
            return self._write_failure("write", path, e)

        return WriteResult(
            success=True,
            message=f"{'Created' if created else 'Updated'}: {path}",
            file_path=path,
            created=created,
            dispatch=Dispatch.NATIVE,
            bytes_written=size,
        )

    async def copy(self, src: str, dst: str) -> WriteResult:
        """Copy content and mode bits of *src* to *dst*."""

        def _copy() -> tuple[bool, int]:
            existed = os.path.exists(dst)
            shutil.copy(src, dst)
            return not existed, os.path.getsize(dst)

        try:
            created, size = await asyncio.to_thread(_copy)
        except OSError as e:
            return self._write_failure("copy", dst, e, detail=f"{src} -> {dst}")

        return WriteResult(
            success=True,
            message=f"Copied {src} to {dst}",
            file_path=dst,
            created=created,
            dispatch=Dispatch.NATIVE,
            bytes_written=size,
        )

    async def remove_file(self, path: str) -> DeleteResult:
        try:
            await asyncio.to_thread(os.unlink, path)
        except OSError as e:
            logger.warning("Native delete failed for %s: %s", path, e)
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
            await asyncio.to_thread(os.mkdir, path)
        except OSError as e:
            logger.warning("Native mkdir failed for %s: %s", path, e)
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
            await asyncio.to_thread(os.rmdir, path)
        except OSError as e:
            logger.warning("Native rmdir failed for %s: %s", path, e)
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
            await asyncio.to_thread(os.rename, old_path, new_path)
        except OSError as e:
            logger.warning("Native rename failed %s -> %s: %s", old_path, new_path, e)
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
            await asyncio.to_thread(os.chmod, path, mode)
        except OSError as e:
            logger.warning("Native chmod %o failed for %s: %s", mode, path, e)
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
        op: str, path: str, exc: OSError, detail: str | None = None
    ) -> WriteResult:
        logger.warning("Native %s failed for %s: %s", op, detail or path, exc)
        return WriteResult(
            success=False,
            message=f"Failed to {op} {detail or path}: {exc}",
            error=error_kind_for(exc),
            file_path=path,
            dispatch=Dispatch.NATIVE,
        )
