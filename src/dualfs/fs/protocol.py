"""FileBackend protocol — the mutation capability set both backends provide.

The facade never branches on the capability mode inside an operation;
it asks ``DualFileSystem.dispatch(path)`` for a Dispatch and calls the
matching backend through this interface.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from .types import (
        ChmodResult,
        DeleteResult,
        Dispatch,
        MkdirResult,
        MoveResult,
        WriteResult,
    )


@runtime_checkable
class FileBackend(Protocol):
    """Single-path mutations.  Tree walks and parent creation live in the facade.

    Every method reports failure through its result; none raises for
    filesystem or network errors.
    """

    @property
    def kind(self) -> Dispatch: ...

    async def create(self, path: str) -> WriteResult:
        """Create or truncate *path* as an empty file."""
        ...

    async def append(self, path: str, data: bytes) -> WriteResult:
        """Rewrite *path* as its current content followed by *data*."""
        ...

    async def copy(self, src: str, dst: str) -> WriteResult:
        """Copy file *src* to *dst*, overwriting."""
        ...

    async def mkdir(self, path: str) -> MkdirResult:
        """Create one directory whose parent already exists."""
        ...

    async def remove_file(self, path: str) -> DeleteResult: ...

    async def remove_dir(self, path: str) -> DeleteResult:
        """Remove an empty directory."""
        ...

    async def rename(self, old_path: str, new_path: str) -> MoveResult: ...

    async def chmod(self, path: str, mode: int) -> ChmodResult: ...
