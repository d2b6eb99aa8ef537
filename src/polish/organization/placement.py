"""Destination path computation for notes and relocated originals."""

from __future__ import annotations

from datetime import datetime
from pathlib import Path
from typing import Optional

from polish.config.models import OriginalsSettings, VaultSettings
from polish.ingestion.models import FileInfo
from polish.rendering.formatting import get_date_path, sanitize_filename


class PlacementPlanner:
    """Compute vault and originals destinations, resolving name collisions.

    Paths already handed out during the current batch are tracked so two files with the
    same name never share a destination, whether or not anything has been written yet.
    """

    def __init__(self, vault: VaultSettings, originals: OriginalsSettings) -> None:
        self.vault = vault
        self.originals = originals
        self._occupied: set[Path] = set()

    @property
    def vault_root(self) -> Path:
        return Path(self.vault.path).expanduser()

    @property
    def originals_root(self) -> Path:
        return Path(self.originals.path).expanduser()

    def reset(self) -> None:
        """Forget destinations reserved by a previous batch."""
        self._occupied.clear()

    def release(self, *paths: Path) -> None:
        """Return reservations for a file that failed before it was placed."""
        self._occupied.difference_update(paths)

    def folder_for_category(self, category: str) -> str:
        """Map a category to one of the configured vault folders (case-insensitive)."""
        structure = self.vault.structure
        key = category.strip().lower()
        if key == "document":
            return structure.documents
        if key in ("image", "media"):
            return structure.media
        if key == "code":
            return structure.code
        return structure.references

    def markdown_path(self, file: FileInfo, category: str) -> Path:
        """Return ``<vault>/<folder>/<sanitized stem>.md`` for a file."""
        folder = self.vault_root / self.folder_for_category(category)
        candidate = folder / sanitize_filename(f"{file.stem}.md")
        return self.reserve(candidate)

    def original_path(self, file: FileInfo, category: str, processed_at: datetime) -> Path:
        """Return the organized location of the original file.

        Layout: ``<originals>[/<year>][/<style segment>]/<name>``. The year is the file's
        modification year; the style segment is the category (``type-based``), the processing
        ``YYYY/MM`` (``date-based``), or the source directory name (``project-based``).
        """
        target = self.originals_root
        if self.originals.create_year_folders:
            target = target / f"{file.modified_at.year:04d}"

        segment = self._style_segment(file, category, processed_at)
        if segment:
            target = target / segment
        return self.reserve(target / file.name)

    def reserve(self, candidate: Path) -> Path:
        """Apply the conflict strategy to ``candidate`` and mark the result as taken.

        Raises:
            FileExistsError: If the strategy is ``fail`` and the destination is taken.
        """
        strategy = self.originals.conflict_resolution
        if strategy == "overwrite" or not self._is_taken(candidate):
            self._occupied.add(candidate)
            return candidate
        if strategy == "fail":
            raise FileExistsError(f"Destination already exists: {candidate}")

        counter = 1
        final_candidate = candidate
        while self._is_taken(final_candidate):
            final_candidate = candidate.with_name(f"{candidate.stem}-{counter}{candidate.suffix}")
            counter += 1
        self._occupied.add(final_candidate)
        return final_candidate

    # ------------------------------------------------------------------ #
    # Helpers                                                            #
    # ------------------------------------------------------------------ #

    def _is_taken(self, path: Path) -> bool:
        return path in self._occupied or path.exists()

    def _style_segment(
        self, file: FileInfo, category: str, processed_at: datetime
    ) -> Optional[str]:
        style = self.originals.organization_style
        if style == "type-based":
            return sanitize_filename(category) or None
        if style == "date-based":
            return get_date_path(processed_at)
        project = Path(file.source_reference).parent.name
        return sanitize_filename(project) or None


__all__ = ["PlacementPlanner"]
