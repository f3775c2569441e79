"""Filesystem layer — capability mode, backends, remote session, facade."""

from dualfs.fs.archive import ArchiveExtractor
from dualfs.fs.config import FilesystemConfig, load_config
from dualfs.fs.exceptions import (
    ConfigurationError,
    ConnectionFailureError,
    DualFSError,
    RemoteCommandError,
    SessionClosedError,
)
from dualfs.fs.facade import DualFileSystem
from dualfs.fs.native import NativeBackend
from dualfs.fs.ownership import CapabilityMode, OwnershipProbe, PathOwnership
from dualfs.fs.protocol import FileBackend
from dualfs.fs.remote import RemoteBackend
from dualfs.fs.session import RemoteSession
from dualfs.fs.types import (
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

__all__ = [
    "DEFAULT_DIR_MODE",
    "DEFAULT_FILE_MODE",
    "ArchiveExtractor",
    "CapabilityMode",
    "ChmodResult",
    "ConfigurationError",
    "ConnectionFailureError",
    "CopyResult",
    "DeleteResult",
    "Dispatch",
    "DualFSError",
    "DualFileSystem",
    "ErrorKind",
    "ExtractResult",
    "FacadeState",
    "FileBackend",
    "FilesystemConfig",
    "MkdirResult",
    "MoveResult",
    "NativeBackend",
    "OpenResult",
    "OwnershipProbe",
    "PathOwnership",
    "RemoteBackend",
    "RemoteCommandError",
    "RemoteSession",
    "SessionClosedError",
    "WriteResult",
    "load_config",
]
