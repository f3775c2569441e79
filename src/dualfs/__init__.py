"""dualfs: filesystem mutations through native I/O or a shared FTP session.

Each call is routed per path, so a process that does not own its
application root can still write the files it created itself.
"""

__version__ = "0.1.0"

from dualfs._filesystem import Filesystem
from dualfs.fs.config import FilesystemConfig, load_config
from dualfs.fs.exceptions import (
    ConfigurationError,
    ConnectionFailureError,
    DualFSError,
)
from dualfs.fs.facade import DualFileSystem
from dualfs.fs.types import (
    DEFAULT_DIR_MODE,
    DEFAULT_FILE_MODE,
    Dispatch,
    ErrorKind,
    FacadeState,
)

__all__ = [
    "DEFAULT_DIR_MODE",
    "DEFAULT_FILE_MODE",
    "ConfigurationError",
    "ConnectionFailureError",
    "Dispatch",
    "DualFSError",
    "DualFileSystem",
    "ErrorKind",
    "FacadeState",
    "Filesystem",
    "FilesystemConfig",
    "__version__",
    "load_config",
]
