"""Support helpers shared by the Polish CLI commands."""

from __future__ import annotations

import logging
from collections import Counter
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Iterable, Sequence

from rich.logging import RichHandler

from polish.config.models import PolishConfig, SourceSettings
from polish.ingestion.discovery import FileScanner
from polish.ingestion.models import FileInfo
from polish.organization.models import OrganizationResult, ProcessedFile
from polish.rendering.formatting import format_duration

TOP_EXTENSIONS = 10


def configure_logging(level: str) -> None:
    """Install a rich handler on the ``polish`` logger at ``level``.

    Unknown level names fall back to ``WARNING``.
    """
    logger = logging.getLogger("polish")
    resolved = logging.getLevelName(level.upper())
    if not isinstance(resolved, int):
        resolved = logging.WARNING
    logger.setLevel(resolved)
    if not any(isinstance(handler, RichHandler) for handler in logger.handlers):
        logger.addHandler(RichHandler(show_path=False, rich_tracebacks=True))


def resolve_sources(config: PolishConfig, source: str | None) -> list[SourceSettings]:
    """Return the explicit SOURCE as a single recursive source, or the configured list."""
    if source:
        return [SourceSettings(path=str(Path(source).expanduser().resolve()))]
    return list(config.sources)


def parse_types(types: str | None) -> list[str]:
    """Split a comma-separated extension filter."""
    if not types:
        return []
    return [item.strip().lower().lstrip(".") for item in types.split(",") if item.strip()]


def scan_sources(
    config: PolishConfig, sources: Sequence[SourceSettings], types: Sequence[str]
) -> list[FileInfo]:
    scanner = FileScanner(config.processing)
    return scanner.scan(sources, filter_extensions=types or None)


def analyze_files(files: Iterable[FileInfo]) -> dict[str, Any]:
    """Build an inventory report for scanned files.

    Returns:
        dict[str, Any]: Totals, per-type counts and sizes, the most common extensions,
        and the oldest/newest modification dates.
    """
    entries = list(files)
    by_type: dict[str, dict[str, int]] = {}
    extensions: Counter[str] = Counter()
    for info in entries:
        bucket = by_type.setdefault(info.type.value, {"count": 0, "size_bytes": 0})
        bucket["count"] += 1
        bucket["size_bytes"] += info.size_bytes
        extensions[info.extension or "(none)"] += 1

    modified = [info.modified_at for info in entries]
    return {
        "generated_at": datetime.now(timezone.utc).isoformat(),
        "total_files": len(entries),
        "total_size_bytes": sum(info.size_bytes for info in entries),
        "by_type": dict(sorted(by_type.items(), key=lambda item: -item[1]["count"])),
        "top_extensions": [
            {"extension": extension, "count": count}
            for extension, count in extensions.most_common(TOP_EXTENSIONS)
        ],
        "oldest_modified": min(modified).isoformat() if modified else None,
        "newest_modified": max(modified).isoformat() if modified else None,
    }


def processed_payload(record: ProcessedFile) -> dict[str, Any]:
    return {
        "source": record.original.source_reference,
        "markdown_path": record.markdown_path.as_posix(),
        "original_path": record.original_path.as_posix(),
        "category": record.category,
        "tags": list(record.tags),
        "extracted_files": record.extracted_files,
    }


def result_payload(
    result: OrganizationResult, *, dry_run: bool, copy: bool, profile: str | None
) -> dict[str, Any]:
    """Return the JSON document emitted by ``polish organize --json``."""
    summary = result.summary
    return {
        "context": {"profile": profile, "dry_run": dry_run, "copy": copy},
        "summary": {
            "total": summary.total,
            "successful": summary.successful,
            "failed": summary.failed,
            "processed_records": len(result.processed),
            "duration_seconds": round(summary.duration_seconds, 3),
        },
        "processed": [processed_payload(record) for record in result.processed],
        "failed": [
            {"file": failure.file.path.as_posix(), "error": failure.error}
            for failure in result.failed
        ],
    }


def describe_summary(result: OrganizationResult) -> str:
    summary = result.summary
    return (
        f"processed={summary.successful}, failed={summary.failed}, "
        f"notes={len(result.processed)}, duration={format_duration(summary.duration_seconds)}"
    )


__all__ = [
    "analyze_files",
    "configure_logging",
    "describe_summary",
    "parse_types",
    "processed_payload",
    "resolve_sources",
    "result_payload",
    "scan_sources",
]
