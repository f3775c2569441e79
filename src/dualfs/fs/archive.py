"""ArchiveExtractor — unpack zip archives with native I/O only."""

from __future__ import annotations

import asyncio
import logging
import os
import zipfile

from .types import ErrorKind, ExtractResult
from .utils import error_kind_for, normalize_path

logger = logging.getLogger(__name__)


class ArchiveExtractor:
    """Extracts every entry of a zip archive into a directory.

    The archive is opened locally, so extraction never goes through the
    remote session even when the facade is in remote mode.
    """

    async def extract(self, archive_path: str, dest_dir: str | None = None) -> ExtractResult:
        """Extract *archive_path* into *dest_dir* (default: the archive's directory)."""
        archive_path = normalize_path(archive_path)
        destination = normalize_path(dest_dir) if dest_dir else os.path.dirname(archive_path)

        def _extract() -> list[str]:
            with zipfile.ZipFile(archive_path) as zf:
                names = zf.namelist()
                os.makedirs(destination, exist_ok=True)
                zf.extractall(destination)
            return names

        try:
            entries = await asyncio.to_thread(_extract)
        except (zipfile.BadZipFile, zipfile.LargeZipFile) as e:
            logger.warning("Cannot open archive %s: %s", archive_path, e)
            return ExtractResult(
                success=False,
                message=f"Cannot open archive {archive_path}: {e}",
                error=ErrorKind.ARCHIVE_OPEN_FAILURE,
                archive_path=archive_path,
                destination=destination,
            )
        except OSError as e:
            # Failures before the archive opened are open failures; later ones are I/O
            opened = os.path.isfile(archive_path) and zipfile.is_zipfile(archive_path)
            kind = error_kind_for(e) if opened else ErrorKind.ARCHIVE_OPEN_FAILURE
            logger.warning("Extraction of %s failed: %s", archive_path, e)
            return ExtractResult(
                success=False,
                message=f"Failed to extract {archive_path}: {e}",
                error=kind,
                archive_path=archive_path,
                destination=destination,
            )

        return ExtractResult(
            success=True,
            message=f"Extracted {len(entries)} entries to {destination}",
            archive_path=archive_path,
            destination=destination,
            entries=entries,
        )
