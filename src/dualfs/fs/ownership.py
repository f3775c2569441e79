"""Path ownership probes and the process-wide capability mode."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Protocol, runtime_checkable

from .types import Dispatch
from .utils import normalize_path

logger = logging.getLogger(__name__)


@runtime_checkable
class OwnershipProbe(Protocol):
    """Read-only view of the host's ownership and write-access answers."""

    def process_owner(self) -> int: ...

    def owner(self, path: str) -> int | None: ...

    def is_writable(self, path: str) -> bool: ...


class PathOwnership:
    """OS-backed ownership probe. Stateless; every call hits the filesystem.

    ``owner`` returns ``None`` for paths that cannot be stat'ed, and
    ``is_writable`` is ``False`` for paths that do not exist.
    """

    def process_owner(self) -> int:
        return os.geteuid()

    def owner(self, path: str) -> int | None:
        try:
            return os.stat(path).st_uid
        except OSError:
            return None

    def is_writable(self, path: str) -> bool:
        # effective_ids matches PHP/POSIX semantics for setuid workers
        use_effective = os.access in os.supports_effective_ids
        try:
            return os.access(path, os.W_OK, effective_ids=use_effective)
        except OSError:
            return False


@dataclass(frozen=True)
class CapabilityMode:
    """Whether the process may write its application root natively.

    Resolved once per facade, at open time, and never recomputed.
    """

    native: bool
    root: str
    root_owner: int | None

    @classmethod
    def resolve(cls, root: str, probe: OwnershipProbe) -> CapabilityMode:
        """Native iff the effective uid owns *root* and can write to it."""
        root = normalize_path(root)
        root_owner = probe.owner(root)
        native = probe.is_writable(root) and root_owner == probe.process_owner()
        logger.debug(
            "Capability mode for %s: %s (root owner %s)",
            root,
            "native" if native else "remote",
            root_owner,
        )
        return cls(native=native, root=root, root_owner=root_owner)

    def can_use_native(self, path: str, probe: OwnershipProbe) -> bool:
        """Per-path opt-out of remote mode.

        In remote mode a path is still handled natively when the process
        can write it and it is not owned by the application root's owner,
        i.e. it was created by the running service rather than deployed
        over FTP.
        """
        if self.native:
            return True
        return probe.is_writable(path) and probe.owner(path) != self.root_owner

    def dispatch(self, path: str, probe: OwnershipProbe) -> Dispatch:
        return Dispatch.NATIVE if self.can_use_native(path, probe) else Dispatch.REMOTE
