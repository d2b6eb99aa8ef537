"""Organization engine turning scanned files into vault notes and relocated originals.

Files are processed sequentially in input order. Every top-level file yields exactly one
terminal outcome: one or more :class:`ProcessedFile` records (archives contribute their
members first, then their summary) or a single :class:`FailedFile`.
"""

from __future__ import annotations

import logging
import shutil
import tempfile
import time
from collections import Counter
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Iterable, Mapping, Optional, Sequence

from polish.config.models import OriginalsSettings, PolishConfig, VaultSettings
from polish.ingestion.discovery import build_file_info
from polish.ingestion.extractors import ContentExtractor, ExtractionLimits
from polish.ingestion.models import FileInfo, FileType
from polish.rendering.markdown import Frontmatter, MarkdownRenderer
from polish.suggestion.engine import SuggestionProvider, build_provider, rank_tags

from .archives import ArchiveError, ArchiveExpander
from .models import FailedFile, OrganizationResult, OrganizationSummary, ProcessedFile
from .placement import PlacementPlanner

LOGGER = logging.getLogger(__name__)

ProgressCallback = Callable[[int, int, FileInfo], None]
Clock = Callable[[], datetime]

MAX_CONTAINS_TAGS = 5


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class OrganizationEngine:
    """Run the extract, suggest, render, and place pipeline over a list of files."""

    def __init__(
        self,
        vault: VaultSettings,
        originals: OriginalsSettings,
        *,
        provider: SuggestionProvider,
        extractor: ContentExtractor | None = None,
        renderer: MarkdownRenderer | None = None,
        expander: ArchiveExpander | None = None,
        max_tags: int = 10,
        max_archive_depth: int = 1,
        clock: Clock | None = None,
    ) -> None:
        self.placement = PlacementPlanner(vault, originals)
        self.provider = provider
        self.extractor = extractor or ContentExtractor()
        self.renderer = renderer or MarkdownRenderer()
        self.expander = expander or ArchiveExpander()
        self.max_tags = max_tags
        self.max_archive_depth = max_archive_depth
        self._clock = clock or _utcnow

    @classmethod
    def from_config(
        cls,
        config: PolishConfig,
        *,
        provider: SuggestionProvider | None = None,
        extractor: ContentExtractor | None = None,
        clock: Clock | None = None,
    ) -> "OrganizationEngine":
        """Wire an engine from a resolved configuration.

        Raises:
            ConfigError: If the configured suggestion mode cannot be constructed.
        """
        processing = config.processing
        return cls(
            config.vault,
            config.originals,
            provider=provider or build_provider(config.api, config.tagging),
            extractor=extractor or ContentExtractor(ExtractionLimits.from_processing(processing)),
            expander=ArchiveExpander(
                max_members=processing.max_archive_members,
                max_total_bytes=processing.max_archive_size_mb * 1024 * 1024,
            ),
            max_tags=config.tagging.max_tags,
            max_archive_depth=processing.max_archive_depth,
            clock=clock,
        )

    def process_files(
        self,
        files: Iterable[FileInfo],
        *,
        dry_run: bool = False,
        copy: bool = False,
        batch_size: int = 10,
        on_progress: ProgressCallback | None = None,
    ) -> OrganizationResult:
        """Organize files one at a time, collecting successes and failures.

        Args:
            files: Files to organize, in processing order.
            dry_run: Compute every output without touching the filesystem.
            copy: Copy originals instead of moving them.
            batch_size: Number of files between progress log lines.
            on_progress: Called with the 1-based index, total, and file before each file.

        Returns:
            OrganizationResult: Processed records, failures, and a summary.

        Raises:
            ValueError: If ``batch_size`` is not positive.
        """
        if batch_size < 1:
            raise ValueError("batch_size must be a positive integer.")

        pending = list(files)
        total = len(pending)
        started = time.perf_counter()
        self.placement.reset()
        result = OrganizationResult()
        successful = 0

        for index, file in enumerate(pending, start=1):
            if on_progress is not None:
                on_progress(index, total, file)
            try:
                records = self._process_entry(file, depth=0, dry_run=dry_run, copy=copy)
            except Exception as exc:
                LOGGER.warning("Failed to organize %s: %s", file.name, exc)
                result.failed.append(FailedFile(file=file, error=str(exc)))
            else:
                result.processed.extend(records)
                successful += 1

            if index % batch_size == 0 or index == total:
                LOGGER.info("Processed %d/%d files.", index, total)

        result.summary = OrganizationSummary(
            total=total,
            successful=successful,
            failed=len(result.failed),
            duration_seconds=time.perf_counter() - started,
        )
        return result

    # ------------------------------------------------------------------ #
    # Per-file pipeline                                                  #
    # ------------------------------------------------------------------ #

    def _process_entry(
        self, file: FileInfo, *, depth: int, dry_run: bool, copy: bool
    ) -> list[ProcessedFile]:
        if file.type is FileType.ARCHIVE and self._can_expand(depth):
            records = self._process_archive(file, depth=depth, dry_run=dry_run, copy=copy)
            if records is not None:
                return records
        return [self._process_file(file, dry_run=dry_run, copy=copy)]

    def _process_file(self, file: FileInfo, *, dry_run: bool, copy: bool) -> ProcessedFile:
        self._require_source(file)
        content = self.extractor.extract(file)
        candidates = self.provider.suggest_tags(file, content)
        tags = [candidate.tag for candidate in rank_tags(candidates, self.max_tags)]
        decision = self.provider.suggest_category(file, self._existing_folders())
        return self._place(file, content, tags, decision.category, dry_run=dry_run, copy=copy)

    def _place(
        self,
        file: FileInfo,
        content: Optional[str],
        tags: list[str],
        category: str,
        *,
        dry_run: bool,
        copy: bool,
        groups: Mapping[str, Sequence[tuple[str, str]]] | None = None,
        extracted_files: int = 0,
    ) -> ProcessedFile:
        processed_at = self._clock()
        markdown_path = self.placement.markdown_path(file, category)
        reserved = [markdown_path]
        try:
            original_path = self.placement.original_path(file, category, processed_at)
            reserved.append(original_path)

            frontmatter = Frontmatter(
                title=file.stem,
                original_file=f"[[{original_path}]]",
                source_path=file.source_reference,
                file_type=file.extension,
                created=file.created_at.isoformat(),
                processed=processed_at.isoformat(),
                tags=tags,
                archive_type=file.extension if groups is not None else None,
                extracted_files=extracted_files if groups is not None else None,
            )
            if groups is None:
                document = self.renderer.render(file, content, frontmatter, location=original_path)
            else:
                document = self.renderer.render_archive_summary(
                    file, frontmatter, groups, location=original_path
                )

            if not dry_run:
                self._write(file, document, markdown_path, original_path, copy=copy)
        except Exception:
            self.placement.release(*reserved)
            raise

        return ProcessedFile(
            original=file,
            markdown_path=markdown_path,
            original_path=original_path,
            content=document,
            frontmatter=frontmatter,
            tags=tags,
            category=category,
            extracted_files=extracted_files,
        )

    def _write(
        self,
        file: FileInfo,
        document: str,
        markdown_path: Path,
        original_path: Path,
        *,
        copy: bool,
    ) -> None:
        markdown_path.parent.mkdir(parents=True, exist_ok=True)
        original_path.parent.mkdir(parents=True, exist_ok=True)
        markdown_path.write_text(document, encoding="utf-8")
        if copy:
            shutil.copy2(file.path, original_path)
        else:
            shutil.move(str(file.path), str(original_path))

    # ------------------------------------------------------------------ #
    # Archives                                                           #
    # ------------------------------------------------------------------ #

    def _can_expand(self, depth: int) -> bool:
        return self.extractor.capabilities.archives and depth < self.max_archive_depth

    def _process_archive(
        self, file: FileInfo, *, depth: int, dry_run: bool, copy: bool
    ) -> Optional[list[ProcessedFile]]:
        """Expand an archive and organize its members followed by a summary note.

        Returns ``None`` when nothing could be extracted so the caller treats the archive as
        an opaque file.
        """
        self._require_source(file)
        workspace = Path(tempfile.mkdtemp(prefix="polish-archive-"))
        try:
            try:
                members = self.expander.expand(file.path, workspace)
            except ArchiveError as exc:
                LOGGER.warning("Failed to expand archive %s: %s", file.name, exc)
                members = []
            if not members:
                return None

            children: list[ProcessedFile] = []
            for member in members:
                relative = member.relative_to(workspace).as_posix()
                try:
                    info = build_file_info(member, origin=f"{file.source_reference}/{relative}")
                    children.extend(
                        self._process_entry(info, depth=depth + 1, dry_run=dry_run, copy=copy)
                    )
                except Exception as exc:
                    LOGGER.warning(
                        "Failed to process %s from archive %s: %s", relative, file.name, exc
                    )

            summary = self._summarize_archive(file, children, dry_run=dry_run, copy=copy)
            return [*children, summary]
        finally:
            shutil.rmtree(workspace, ignore_errors=True)

    def _summarize_archive(
        self,
        file: FileInfo,
        children: list[ProcessedFile],
        *,
        dry_run: bool,
        copy: bool,
    ) -> ProcessedFile:
        modified = file.modified_at
        tags = [
            "type/archive",
            f"format/{file.extension}",
            "source/expanded",
            f"date/{modified.year:04d}/{modified.month:02d}",
        ]
        frequency: Counter[str] = Counter()
        for child in children:
            frequency.update(
                tag
                for tag in dict.fromkeys(child.tags)
                if not tag.startswith(("type/", "format/"))
            )
        tags.extend(f"contains/{tag}" for tag, _ in frequency.most_common(MAX_CONTAINS_TAGS))
        tags = list(dict.fromkeys(tags))[: self.max_tags]

        groups: dict[str, list[tuple[str, str]]] = {}
        for child in children:
            groups.setdefault(child.category, []).append(
                (child.original.name, self._vault_link(child.markdown_path))
            )

        decision = self.provider.suggest_category(file, self._existing_folders())
        return self._place(
            file,
            None,
            tags,
            decision.category,
            dry_run=dry_run,
            copy=copy,
            groups=groups,
            extracted_files=len(children),
        )

    # ------------------------------------------------------------------ #
    # Helpers                                                            #
    # ------------------------------------------------------------------ #

    def _existing_folders(self) -> list[str]:
        root = self.placement.vault_root
        try:
            return sorted(
                entry.name
                for entry in root.iterdir()
                if entry.is_dir() and not entry.name.startswith(".")
            )
        except OSError:
            return []

    def _vault_link(self, markdown_path: Path) -> str:
        try:
            relative = markdown_path.relative_to(self.placement.vault_root)
        except ValueError:
            return markdown_path.stem
        return relative.with_suffix("").as_posix()

    def _require_source(self, file: FileInfo) -> None:
        if not file.path.is_file():
            raise FileNotFoundError(f"Source file not found: {file.path}")


__all__ = ["OrganizationEngine", "ProgressCallback", "MAX_CONTAINS_TAGS"]
