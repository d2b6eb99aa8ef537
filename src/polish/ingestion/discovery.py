"""File discovery utilities."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterable, Iterator, Optional, Sequence

from polish.config.models import ProcessingOptions, SourceSettings

from .classifier import classify
from .models import FileInfo

LOGGER = logging.getLogger(__name__)

_IGNORED_DIRECTORIES = {"node_modules", ".git"}


def _is_ignored(relative: Path) -> bool:
    for part in relative.parts:
        if part in (".", ".."):
            continue
        if part.startswith(".") or part in _IGNORED_DIRECTORIES:
            return True
    return False


def build_file_info(path: Path, *, origin: Optional[str] = None) -> FileInfo:
    """Stat a file and wrap it into a classified ``FileInfo`` record.

    Args:
        path: File to describe.
        origin: Optional source reference overriding the on-disk path in notes.

    Returns:
        FileInfo: Immutable record describing the file.

    Raises:
        OSError: If the file cannot be stat'd.
    """
    stat = path.stat()
    extension = path.suffix[1:].lower()
    birth = getattr(stat, "st_birthtime", None) or stat.st_ctime
    return FileInfo(
        path=path,
        name=path.name,
        extension=extension,
        size_bytes=stat.st_size,
        created_at=datetime.fromtimestamp(birth, tz=timezone.utc),
        modified_at=datetime.fromtimestamp(stat.st_mtime, tz=timezone.utc),
        type=classify(extension),
        origin=origin,
    )


class FileScanner:
    """Discover candidate files under configured source roots."""

    def __init__(self, processing: ProcessingOptions) -> None:
        self.supported_formats = set(processing.supported_formats)
        self.max_size_bytes: int | None = None
        if processing.max_file_size_mb > 0:
            self.max_size_bytes = processing.max_file_size_mb * 1024 * 1024

    def scan(
        self,
        sources: Iterable[SourceSettings],
        filter_extensions: Sequence[str] | None = None,
    ) -> list[FileInfo]:
        """Return supported files found under every source, in discovery order.

        Args:
            sources: Source roots to walk.
            filter_extensions: Optional extra allow-list applied after the configured one.

        Returns:
            list[FileInfo]: Files to hand to the organization engine.
        """
        wanted = {ext.lower().lstrip(".") for ext in filter_extensions or [] if ext.strip()}
        found: list[FileInfo] = []
        for source in sources:
            for info in self.scan_root(Path(source.path), recursive=source.include_subfolders):
                if info.extension not in self.supported_formats:
                    continue
                if wanted and info.extension not in wanted:
                    continue
                found.append(info)
        return found

    def scan_root(self, root: Path, *, recursive: bool) -> Iterator[FileInfo]:
        """Yield files under a single root, skipping hidden and oversized entries."""
        root = root.expanduser().resolve()
        if not root.exists():
            LOGGER.warning("Source directory %s does not exist; skipping.", root)
            return

        try:
            paths = sorted(self._iter_paths(root, recursive))
        except OSError as exc:
            LOGGER.warning("Failed to scan directory %s: %s", root, exc)
            return

        for path in paths:
            if not path.is_file():
                continue
            try:
                relative = path.relative_to(root)
            except ValueError:
                relative = Path(path.name)
            if _is_ignored(relative):
                continue
            try:
                info = build_file_info(path)
            except OSError:
                continue
            if self.max_size_bytes is not None and info.size_bytes > self.max_size_bytes:
                LOGGER.info("Skipping %s: larger than the configured maximum.", path)
                continue
            yield info

    def _iter_paths(self, root: Path, recursive: bool) -> Iterable[Path]:
        if root.is_file():
            return [root]
        if recursive:
            return root.rglob("*")
        return root.iterdir()


__all__ = ["FileScanner", "build_file_info"]
