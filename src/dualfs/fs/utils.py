"""Path utilities and error classification shared by both backends."""

from __future__ import annotations

import ftplib
import os
import posixpath

from .exceptions import (
    ConnectionFailureError,
    RemoteCommandError,
    SessionClosedError,
)
from .types import ErrorKind

MAX_PATH_LENGTH = 4096
MAX_NAME_LENGTH = 255

# FTP replies that mean the target is missing rather than protected
_NOT_FOUND_MARKERS = ("no such file", "not found", "does not exist", "can't find")


# =============================================================================
# Path Utilities
# =============================================================================


def normalize_path(path: str | os.PathLike[str]) -> str:
    """Normalize a host filesystem path.

    - Makes the path absolute (relative to the current directory)
    - Resolves .. and . references
    - Removes double and trailing slashes

    Symlinks are left alone; ownership is judged on the link target by
    the OS calls that consume the path.

    Examples:
        normalize_path("/srv/www//media/") -> "/srv/www/media"
        normalize_path("/srv/www/a/../b") -> "/srv/www/b"
    """
    return os.path.abspath(os.fspath(path))


def validate_path(path: str) -> tuple[bool, str]:
    """Validate a path for characters and lengths the OS or FTP would reject.

    Returns:
        (is_valid, error_message) - error_message is empty if valid
    """
    if not path:
        return False, "Path is empty"

    if "\x00" in path:
        return False, "Path contains null bytes"

    # CR/LF would split an FTP command line
    if "\r" in path or "\n" in path:
        return False, "Path contains line breaks"

    if len(path) > MAX_PATH_LENGTH:
        return False, f"Path too long (max {MAX_PATH_LENGTH} characters)"

    name = os.path.basename(path.rstrip(os.sep))
    if len(name) > MAX_NAME_LENGTH:
        return False, f"Filename too long (max {MAX_NAME_LENGTH} characters)"

    return True, ""


def missing_ancestors(path: str) -> list[str]:
    """Return the ancestors of *path* that do not exist, shallowest first.

    Examples:
        With only "/srv" on disk:
        missing_ancestors("/srv/a/b/c") -> ["/srv/a", "/srv/a/b"]
    """
    missing: list[str] = []
    current = os.path.dirname(path)
    while current and not os.path.exists(current):
        missing.append(current)
        parent = os.path.dirname(current)
        if parent == current:
            break
        current = parent
    missing.reverse()
    return missing


def to_remote_path(path: str, root: str, remote_root: str | None) -> str:
    """Map a host path onto the path the FTP server expects.

    Without a *remote_root* the host path is sent unchanged, which is
    correct when the FTP account sees the same tree as the process.
    With one, paths under *root* are rebased onto it (chrooted accounts).
    """
    if remote_root is None:
        return path.replace(os.sep, "/")

    try:
        rel = os.path.relpath(path, root)
    except ValueError:
        return path.replace(os.sep, "/")

    if rel == os.curdir:
        return remote_root
    if rel == os.pardir or rel.startswith(os.pardir + os.sep):
        return path.replace(os.sep, "/")

    return posixpath.join(remote_root, rel.replace(os.sep, "/"))


# =============================================================================
# Error Classification
# =============================================================================


def error_kind_for(exc: BaseException) -> ErrorKind:
    """Map an OS, ftplib or dualfs exception onto the result taxonomy."""
    if isinstance(exc, FileNotFoundError):
        return ErrorKind.NOT_FOUND
    if isinstance(exc, PermissionError):
        return ErrorKind.PERMISSION_DENIED
    if isinstance(exc, RemoteCommandError):
        return _kind_for_reply(exc.reply)
    if isinstance(exc, ftplib.error_perm):
        return _kind_for_reply(str(exc))
    if isinstance(exc, (ConnectionFailureError, SessionClosedError)):
        return ErrorKind.CONNECTION_FAILURE
    if isinstance(exc, (ConnectionError, TimeoutError, EOFError)):
        return ErrorKind.CONNECTION_FAILURE
    return ErrorKind.BACKEND_FAILURE


def _kind_for_reply(reply: str) -> ErrorKind:
    code = reply[:3]
    lowered = reply.lower()
    if code in ("550", "553"):
        if any(marker in lowered for marker in _NOT_FOUND_MARKERS):
            return ErrorKind.NOT_FOUND
        return ErrorKind.PERMISSION_DENIED
    if code in ("421", "425", "426"):
        return ErrorKind.CONNECTION_FAILURE
    return ErrorKind.BACKEND_FAILURE
