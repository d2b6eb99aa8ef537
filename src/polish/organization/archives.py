"""Archive expansion into a temporary workspace."""

from __future__ import annotations

import logging
import shutil
import zipfile
from pathlib import Path, PurePosixPath
from typing import Optional

LOGGER = logging.getLogger(__name__)

_IGNORED_SEGMENTS = {"__MACOSX"}


class ArchiveError(Exception):
    """Raised when an archive cannot be read."""


def sanitize_member_path(name: str) -> Optional[PurePosixPath]:
    """Return a safe relative path for an archive member, or ``None`` to skip it.

    Leading slashes, drive-like prefixes, ``.`` and ``..`` segments are dropped so the member
    can never escape the extraction directory.
    """
    parts = [
        part
        for part in name.replace("\\", "/").split("/")
        if part and part not in (".", "..") and not part.endswith(":")
    ]
    if not parts:
        return None
    return PurePosixPath(*parts)


class ArchiveExpander:
    """Extract supported archives with member-count and size ceilings.

    Attributes:
        max_members: Maximum number of files extracted from one archive.
        max_total_bytes: Maximum total uncompressed bytes extracted from one archive.
    """

    SUPPORTED_EXTENSIONS = frozenset({"zip"})

    def __init__(self, max_members: int = 500, max_total_bytes: int = 200 * 1024 * 1024) -> None:
        self.max_members = max_members
        self.max_total_bytes = max_total_bytes

    def supports(self, path: Path) -> bool:
        return path.suffix[1:].lower() in self.SUPPORTED_EXTENSIONS

    def expand(self, archive: Path, destination: Path) -> list[Path]:
        """Extract the files of ``archive`` beneath ``destination``.

        Args:
            archive: Archive to read.
            destination: Existing directory receiving the members.

        Returns:
            list[Path]: Extracted files in archive order; empty for unsupported formats.

        Raises:
            ArchiveError: If the archive is corrupt or cannot be read.
        """
        if not self.supports(archive):
            LOGGER.warning("Archive format of %s is not supported; skipping expansion.", archive.name)
            return []

        try:
            with zipfile.ZipFile(archive) as bundle:
                return self._extract_zip(bundle, archive, destination)
        except (zipfile.BadZipFile, zipfile.LargeZipFile, OSError) as exc:
            raise ArchiveError(f"Failed to read {archive.name}: {exc}") from exc

    def _extract_zip(
        self, bundle: zipfile.ZipFile, archive: Path, destination: Path
    ) -> list[Path]:
        extracted: list[Path] = []
        total_bytes = 0
        for member in bundle.infolist():
            if member.is_dir():
                continue
            relative = sanitize_member_path(member.filename)
            if relative is None:
                continue
            if any(part.startswith(".") or part in _IGNORED_SEGMENTS for part in relative.parts):
                continue
            if len(extracted) >= self.max_members:
                LOGGER.warning(
                    "Archive %s has more than %d members; remaining entries skipped.",
                    archive.name,
                    self.max_members,
                )
                break
            if total_bytes + member.file_size > self.max_total_bytes:
                LOGGER.warning(
                    "Skipping %s in %s: archive size limit reached.", relative, archive.name
                )
                continue

            target = destination.joinpath(*relative.parts)
            target.parent.mkdir(parents=True, exist_ok=True)
            with bundle.open(member) as source, target.open("wb") as sink:
                shutil.copyfileobj(source, sink)
            total_bytes += member.file_size
            extracted.append(target)
        return extracted


__all__ = ["ArchiveError", "ArchiveExpander", "sanitize_member_path"]
