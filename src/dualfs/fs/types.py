"""Result types, dispatch and state enums, default permission modes."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

DEFAULT_FILE_MODE = 0o644
DEFAULT_DIR_MODE = 0o755


class Dispatch(str, Enum):
    """Which backend a single path operation runs on."""

    NATIVE = "native"
    REMOTE = "remote"


class FacadeState(str, Enum):
    """Lifecycle state of a DualFileSystem."""

    UNINITIALIZED = "uninitialized"
    NATIVE = "native"
    REMOTE = "remote"
    CLOSED = "closed"


class ErrorKind(str, Enum):
    """Failure taxonomy carried on every unsuccessful result."""

    CONNECTION_FAILURE = "connection_failure"
    PERMISSION_DENIED = "permission_denied"
    NOT_FOUND = "not_found"
    PARTIAL_TREE_FAILURE = "partial_tree_failure"
    ARCHIVE_OPEN_FAILURE = "archive_open_failure"
    BACKEND_FAILURE = "backend_failure"
    NOT_OPEN = "not_open"


@dataclass
class OpenResult:
    """Result of opening a filesystem facade."""

    success: bool
    message: str
    error: ErrorKind | None = None
    state: FacadeState = FacadeState.UNINITIALIZED


@dataclass
class WriteResult:
    """Result of a create, write or copy operation."""

    success: bool
    message: str
    error: ErrorKind | None = None
    file_path: str | None = None
    created: bool = False
    dispatch: Dispatch | None = None
    bytes_written: int = 0


@dataclass
class MkdirResult:
    """Result of a mkdir operation."""

    success: bool
    message: str
    error: ErrorKind | None = None
    path: str | None = None
    created_dirs: list[str] = field(default_factory=list)


@dataclass
class DeleteResult:
    """Result of a delete operation."""

    success: bool
    message: str
    error: ErrorKind | None = None
    file_path: str | None = None
    total_deleted: int = 0


@dataclass
class CopyResult:
    """Result of a directory copy."""

    success: bool
    message: str
    error: ErrorKind | None = None
    src: str | None = None
    dst: str | None = None
    copied: list[str] = field(default_factory=list)
    failed_path: str | None = None


@dataclass
class MoveResult:
    """Result of a rename operation."""

    success: bool
    message: str
    error: ErrorKind | None = None
    old_path: str | None = None
    new_path: str | None = None


@dataclass
class ChmodResult:
    """Result of a permission change."""

    success: bool
    message: str
    error: ErrorKind | None = None
    path: str | None = None
    mode: int | None = None


@dataclass
class ExtractResult:
    """Result of an archive extraction."""

    success: bool
    message: str
    error: ErrorKind | None = None
    archive_path: str | None = None
    destination: str | None = None
    entries: list[str] = field(default_factory=list)
