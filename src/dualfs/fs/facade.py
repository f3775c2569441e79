"""DualFileSystem — one mutation API over native and remote backends."""

from __future__ import annotations

import asyncio
import errno
import logging
import os
from typing import TYPE_CHECKING, Any

from .archive import ArchiveExtractor
from .exceptions import ConfigurationError, ConnectionFailureError
from .native import NativeBackend
from .ownership import CapabilityMode, OwnershipProbe, PathOwnership
from .remote import RemoteBackend
from .session import RemoteSession
from .types import (
    DEFAULT_DIR_MODE,
    DEFAULT_FILE_MODE,
    ChmodResult,
    CopyResult,
    DeleteResult,
    Dispatch,
    ErrorKind,
    ExtractResult,
    FacadeState,
    MkdirResult,
    MoveResult,
    OpenResult,
    WriteResult,
)
from .utils import error_kind_for, missing_ancestors, normalize_path, validate_path

if TYPE_CHECKING:
    from collections.abc import Callable

    from .config import FilesystemConfig
    from .protocol import FileBackend

logger = logging.getLogger(__name__)


class DualFileSystem:
    """Filesystem facade choosing native or remote I/O for every path.

    ``open()`` decides the capability mode once: native when the process
    owns and can write the application root, remote otherwise.  In remote
    mode a single RemoteSession is opened and reused by every operation,
    yet each path can still opt back into native I/O (see
    ``can_use_native``), so one recursive walk may mix both backends.

    Operations return result objects; filesystem and network failures
    never raise.  Nothing is retried and partially completed tree
    operations are not rolled back.

    Usage::

        async with DualFileSystem(FilesystemConfig(root="/srv/www")) as fs:
            await fs.create_dir("/srv/www/media/2024")
            await fs.write("/srv/www/media/2024/log.txt", "uploaded\\n")
    """

    def __init__(
        self,
        config: FilesystemConfig,
        *,
        ownership: OwnershipProbe | None = None,
        ftp_factory: Callable[[], Any] | None = None,
    ) -> None:
        self.config = config
        self._ownership: OwnershipProbe = ownership or PathOwnership()
        self._ftp_factory = ftp_factory
        self._state = FacadeState.UNINITIALIZED
        self._mode: CapabilityMode | None = None
        self._session: RemoteSession | None = None
        self._native = NativeBackend()
        self._remote: RemoteBackend | None = None
        self._extractor = ArchiveExtractor()

    def __repr__(self) -> str:
        return f"DualFileSystem(root={self.config.root!r}, state={self._state.value})"

    # =========================================================================
    # Lifecycle
    # =========================================================================

    @property
    def state(self) -> FacadeState:
        return self._state

    @property
    def mode(self) -> CapabilityMode | None:
        """The capability mode chosen by ``open()``, or ``None`` before it."""
        return self._mode

    @property
    def session(self) -> RemoteSession | None:
        return self._session

    async def open(self) -> OpenResult:
        """Resolve the capability mode and, in remote mode, log in."""
        if self._state is not FacadeState.UNINITIALIZED:
            closed = self._state is FacadeState.CLOSED
            return OpenResult(
                success=False,
                message=f"Filesystem already {self._state.value}; create a new instance",
                error=ErrorKind.NOT_OPEN if closed else ErrorKind.BACKEND_FAILURE,
                state=self._state,
            )

        mode = await asyncio.to_thread(
            CapabilityMode.resolve, self.config.root, self._ownership
        )

        if mode.native:
            self._mode = mode
            self._state = FacadeState.NATIVE
            logger.info("Filesystem opened in native mode for %s", mode.root)
            return OpenResult(
                success=True, message=f"Native mode for {mode.root}", state=self._state
            )

        try:
            self.config.require_remote()
            session = RemoteSession(
                self.config.remote_host,  # type: ignore[arg-type]
                self.config.remote_username,  # type: ignore[arg-type]
                self.config.remote_password,
                port=self.config.remote_port,
                timeout=self.config.remote_timeout,
                passive=self.config.remote_passive,
                ftp_factory=self._ftp_factory,
            )
            await session.connect()
        except (ConfigurationError, ConnectionFailureError) as e:
            logger.error("Filesystem open failed for %s: %s", mode.root, e)
            return OpenResult(
                success=False,
                message=str(e),
                error=ErrorKind.CONNECTION_FAILURE,
                state=self._state,
            )

        self._mode = mode
        self._session = session
        self._remote = RemoteBackend(session, mode.root, self.config.remote_root)
        self._state = FacadeState.REMOTE
        logger.info(
            "Filesystem opened in remote mode for %s via %s@%s",
            mode.root,
            session.username,
            session.host,
        )
        return OpenResult(
            success=True,
            message=f"Remote mode for {mode.root} via {session.host}",
            state=self._state,
        )

    async def close(self) -> None:
        """Release the remote session, if any.  Idempotent."""
        if self._state is FacadeState.CLOSED:
            return
        self._state = FacadeState.CLOSED
        session, self._session = self._session, None
        self._remote = None
        if session is not None:
            await session.close()

    async def __aenter__(self) -> DualFileSystem:
        result = await self.open()
        if not result.success:
            await self.close()
            raise ConnectionFailureError(result.message)
        return self

    async def __aexit__(
        self,
        exc_type: object,
        exc_val: object,
        exc_tb: object,
    ) -> None:
        await self.close()

    # =========================================================================
    # Dispatch
    # =========================================================================

    @property
    def is_open(self) -> bool:
        return self._state in (FacadeState.NATIVE, FacadeState.REMOTE)

    def can_use_native(self, path: str) -> bool:
        """True when *path* should be handled with native I/O.

        Always true in native mode.  In remote mode, true only for paths
        the process can write that are not owned by the application
        root's owner.
        """
        if self._mode is None:
            return False
        return self._mode.can_use_native(path, self._ownership)

    def dispatch(self, path: str) -> Dispatch:
        return Dispatch.NATIVE if self.can_use_native(path) else Dispatch.REMOTE

    def _backend_for(self, path: str) -> FileBackend:
        decision = self.dispatch(path)
        logger.debug("Dispatch %s -> %s", path, decision.value)
        if decision is Dispatch.NATIVE or self._remote is None:
            return self._native
        return self._remote

    def _not_open(self) -> str | None:
        if self.is_open:
            return None
        return f"Filesystem is not open (state: {self._state.value})"

    # =========================================================================
    # Directories
    # =========================================================================

    async def create_dir(self, path: str) -> MkdirResult:
        """Create *path* and any missing ancestors, shallowest first.

        Each new directory gets ``DEFAULT_DIR_MODE``.  An existing target
        only has its mode normalized.
        """
        if (err := self._not_open()) is not None:
            return MkdirResult(success=False, message=err, error=ErrorKind.NOT_OPEN)

        valid, error = validate_path(path)
        if not valid:
            return MkdirResult(success=False, message=error, error=ErrorKind.BACKEND_FAILURE)
        path = normalize_path(path)

        created: list[str] = []
        for ancestor in [*missing_ancestors(path), path]:
            if await asyncio.to_thread(os.path.exists, ancestor):
                if ancestor == path:
                    chmod = await self.set_permissions(path, DEFAULT_DIR_MODE)
                    if not chmod.success:
                        return MkdirResult(
                            success=False,
                            message=chmod.message,
                            error=chmod.error,
                            path=path,
                            created_dirs=created,
                        )
                continue

            result = await self._backend_for(ancestor).mkdir(ancestor)
            if not result.success:
                result.created_dirs = created
                return result

            chmod = await self.set_permissions(ancestor, DEFAULT_DIR_MODE)
            if not chmod.success:
                return MkdirResult(
                    success=False,
                    message=chmod.message,
                    error=chmod.error,
                    path=ancestor,
                    created_dirs=created,
                )
            created.append(ancestor)

        return MkdirResult(
            success=True,
            message=f"Created directory: {path}" if created else f"Directory exists: {path}",
            path=path,
            created_dirs=created,
        )

    async def _ensure_parent(self, path: str) -> MkdirResult | None:
        """Create the parent of *path* if missing; return the failure, if any."""
        parent = os.path.dirname(path)
        if await asyncio.to_thread(os.path.exists, parent):
            return None
        result = await self.create_dir(parent)
        return None if result.success else result

    # =========================================================================
    # Files
    # =========================================================================

    async def create(self, path: str) -> WriteResult:
        """Create an empty file with ``DEFAULT_FILE_MODE``."""
        if (err := self._not_open()) is not None:
            return WriteResult(success=False, message=err, error=ErrorKind.NOT_OPEN)

        valid, error = validate_path(path)
        if not valid:
            return WriteResult(success=False, message=error, error=ErrorKind.BACKEND_FAILURE)
        path = normalize_path(path)

        parent_failure = await self._ensure_parent(path)
        if parent_failure is not None:
            return WriteResult(
                success=False,
                message=parent_failure.message,
                error=parent_failure.error,
                file_path=path,
            )

        result = await self._backend_for(path).create(path)
        if not result.success:
            return result

        chmod = await self.set_permissions(path, DEFAULT_FILE_MODE)
        if not chmod.success:
            result.success = False
            result.message = chmod.message
            result.error = chmod.error
        return result

    async def write(self, path: str, content: str | bytes) -> WriteResult:
        """Append *content* to *path* by rewriting the whole file.

        ``str`` content is encoded as UTF-8.  A missing file is treated
        as empty and created with ``DEFAULT_FILE_MODE``.
        """
        if (err := self._not_open()) is not None:
            return WriteResult(success=False, message=err, error=ErrorKind.NOT_OPEN)

        valid, error = validate_path(path)
        if not valid:
            return WriteResult(success=False, message=error, error=ErrorKind.BACKEND_FAILURE)
        path = normalize_path(path)

        data = content.encode("utf-8") if isinstance(content, str) else bytes(content)
        result = await self._backend_for(path).append(path, data)
        if not result.success or not result.created:
            return result

        chmod = await self.set_permissions(path, DEFAULT_FILE_MODE)
        if not chmod.success:
            result.success = False
            result.message = chmod.message
            result.error = chmod.error
        return result

    async def copy(self, src: str, dst: str) -> WriteResult:
        """Copy file *src* to *dst*, creating *dst*'s parent if needed.

        Native copies keep the source's mode bits.  Remote copies are
        normalized to ``DEFAULT_FILE_MODE``.
        """
        if (err := self._not_open()) is not None:
            return WriteResult(success=False, message=err, error=ErrorKind.NOT_OPEN)

        valid, error = validate_path(dst)
        if not valid:
            return WriteResult(success=False, message=error, error=ErrorKind.BACKEND_FAILURE)
        src, dst = normalize_path(src), normalize_path(dst)

        if not await asyncio.to_thread(os.path.isfile, src):
            return WriteResult(
                success=False,
                message=f"Source not found: {src}",
                error=ErrorKind.NOT_FOUND,
                file_path=dst,
            )

        parent_failure = await self._ensure_parent(dst)
        if parent_failure is not None:
            return WriteResult(
                success=False,
                message=parent_failure.message,
                error=parent_failure.error,
                file_path=dst,
            )

        backend = self._backend_for(dst)
        result = await backend.copy(src, dst)
        if not result.success or backend.kind is Dispatch.NATIVE:
            return result

        chmod = await self.set_permissions(dst, DEFAULT_FILE_MODE)
        if not chmod.success:
            result.success = False
            result.message = chmod.message
            result.error = chmod.error
        return result

    async def copy_dir(self, src_dir: str, dst_dir: str) -> CopyResult:
        """Copy the tree under *src_dir* to *dst_dir*, depth-first.

        Empty source directories become empty destination directories.
        Symlinks are followed: a link to a directory is copied as a
        directory, a link to a file as a file.  A link back into its own
        ancestry fails the walk.
        Stops at the first failing entry and leaves whatever was already
        copied in place.
        """
        if (err := self._not_open()) is not None:
            return CopyResult(success=False, message=err, error=ErrorKind.NOT_OPEN)

        valid, error = validate_path(dst_dir)
        if not valid:
            return CopyResult(success=False, message=error, error=ErrorKind.BACKEND_FAILURE)
        src_dir, dst_dir = normalize_path(src_dir), normalize_path(dst_dir)

        if not await asyncio.to_thread(os.path.isdir, src_dir):
            return CopyResult(
                success=False,
                message=f"Source directory not found: {src_dir}",
                error=ErrorKind.NOT_FOUND,
                src=src_dir,
                dst=dst_dir,
            )

        copied: list[str] = []
        # (is_dir, src, dst); popped LIFO, children pushed in reverse order
        stack: list[tuple[bool, str, str]] = [(True, src_dir, dst_dir)]

        while stack:
            is_dir, src, dst = stack.pop()

            if not is_dir:
                result: WriteResult | MkdirResult = await self.copy(src, dst)
            else:
                try:
                    children = await asyncio.to_thread(_list_children, src, True)
                except OSError as e:
                    return self._tree_failure(
                        CopyResult,
                        src,
                        f"Cannot list {src}: {e}",
                        copied,
                        e,
                        src=src_dir,
                        dst=dst_dir,
                    )
                if children:
                    for name, child_is_dir in reversed(children):
                        stack.append(
                            (child_is_dir, os.path.join(src, name), os.path.join(dst, name))
                        )
                    continue
                result = await self.create_dir(dst)

            if not result.success:
                return self._tree_failure(
                    CopyResult, dst, result.message, copied, result.error, src=src_dir, dst=dst_dir
                )
            copied.append(dst)

        return CopyResult(
            success=True,
            message=f"Copied {src_dir} to {dst_dir} ({len(copied)} entries)",
            src=src_dir,
            dst=dst_dir,
            copied=copied,
        )

    async def delete(self, path: str) -> DeleteResult:
        """Delete a file, or a directory and everything below it.

        Directory contents go first (children before parents), each entry
        dispatched on its own path.  Stops at the first failure.
        """
        if (err := self._not_open()) is not None:
            return DeleteResult(success=False, message=err, error=ErrorKind.NOT_OPEN)

        path = normalize_path(path)
        if not await asyncio.to_thread(os.path.lexists, path):
            return DeleteResult(
                success=False,
                message=f"File not found: {path}",
                error=ErrorKind.NOT_FOUND,
                file_path=path,
            )

        deleted: list[str] = []
        is_dir = await asyncio.to_thread(_is_real_dir, path)
        # (path, is_dir, expanded); a directory is removed on its second visit
        stack: list[tuple[str, bool, bool]] = [(path, is_dir, False)]

        while stack:
            current, is_dir, expanded = stack.pop()

            if is_dir and not expanded:
                try:
                    children = await asyncio.to_thread(_list_children, current)
                except OSError as e:
                    return self._tree_failure(
                        DeleteResult, current, f"Cannot list {current}: {e}", deleted, e
                    )
                stack.append((current, True, True))
                for name, child_is_dir in reversed(children):
                    stack.append((os.path.join(current, name), child_is_dir, False))
                continue

            backend = self._backend_for(current)
            result = await (backend.remove_dir(current) if is_dir else backend.remove_file(current))
            if not result.success:
                return self._tree_failure(
                    DeleteResult, current, result.message, deleted, result.error
                )
            deleted.append(current)

        return DeleteResult(
            success=True,
            message=f"Deleted: {path}",
            file_path=path,
            total_deleted=len(deleted),
        )

    # =========================================================================
    # Metadata
    # =========================================================================

    async def set_permissions(self, path: str, mode: int) -> ChmodResult:
        """Apply *mode* via the backend dispatched for *path*."""
        if (err := self._not_open()) is not None:
            return ChmodResult(success=False, message=err, error=ErrorKind.NOT_OPEN)
        path = normalize_path(path)
        return await self._backend_for(path).chmod(path, mode)

    async def rename(self, old_path: str, new_path: str) -> MoveResult:
        """Rename *old_path* to *new_path* on the backend dispatched for *old_path*."""
        if (err := self._not_open()) is not None:
            return MoveResult(success=False, message=err, error=ErrorKind.NOT_OPEN)

        valid, error = validate_path(new_path)
        if not valid:
            return MoveResult(success=False, message=error, error=ErrorKind.BACKEND_FAILURE)
        old_path, new_path = normalize_path(old_path), normalize_path(new_path)

        if not await asyncio.to_thread(os.path.lexists, old_path):
            return MoveResult(
                success=False,
                message=f"Source not found: {old_path}",
                error=ErrorKind.NOT_FOUND,
                old_path=old_path,
                new_path=new_path,
            )

        return await self._backend_for(old_path).rename(old_path, new_path)

    async def extract(self, archive_path: str, dest_dir: str | None = None) -> ExtractResult:
        """Unpack a zip archive natively, by default next to the archive."""
        if (err := self._not_open()) is not None:
            return ExtractResult(success=False, message=err, error=ErrorKind.NOT_OPEN)
        return await self._extractor.extract(archive_path, dest_dir)

    # =========================================================================
    # Helpers
    # =========================================================================

    @staticmethod
    def _tree_failure(
        result_type: type[Any],
        failed_path: str,
        message: str,
        completed: list[str],
        cause: ErrorKind | BaseException | None,
        **fields: Any,
    ) -> Any:
        """Build the failure result of an aborted tree walk.

        Once any step has completed, the failure is a partial tree failure
        regardless of what stopped the walk.
        """
        if completed:
            kind = ErrorKind.PARTIAL_TREE_FAILURE
        elif isinstance(cause, BaseException):
            kind = error_kind_for(cause)
        else:
            kind = cause or ErrorKind.BACKEND_FAILURE

        logger.warning(
            "Tree operation stopped at %s after %d completed steps: %s",
            failed_path,
            len(completed),
            message,
        )

        if result_type is CopyResult:
            return CopyResult(
                success=False,
                message=message,
                error=kind,
                copied=completed,
                failed_path=failed_path,
                **fields,
            )
        return DeleteResult(
            success=False,
            message=message,
            error=kind,
            file_path=failed_path,
            total_deleted=len(completed),
        )


def _list_children(path: str, follow_symlinks: bool = False) -> list[tuple[str, bool]]:
    """Immediate entries of *path* as ``(name, is_dir)``, sorted by name.

    With *follow_symlinks* a link to a directory counts as a directory, and
    a link to *path* or one of its ancestors raises ``ELOOP``.
    """
    entries: list[tuple[str, bool]] = []
    with os.scandir(path) as it:
        for entry in it:
            is_dir = entry.is_dir(follow_symlinks=follow_symlinks)
            if is_dir and follow_symlinks and entry.is_symlink():
                here = os.path.realpath(path)
                target = os.path.realpath(entry.path)
                if os.path.commonpath([here, target]) == target:
                    raise OSError(errno.ELOOP, os.strerror(errno.ELOOP), entry.path)
            entries.append((entry.name, is_dir))
    entries.sort()
    return entries


def _is_real_dir(path: str) -> bool:
    return os.path.isdir(path) and not os.path.islink(path)
