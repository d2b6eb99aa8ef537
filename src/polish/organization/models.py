"""Organization result data models."""

from __future__ import annotations

from pathlib import Path
from typing import List

from pydantic import BaseModel, ConfigDict, Field

from polish.ingestion.models import FileInfo
from polish.rendering.markdown import Frontmatter


class ProcessedFile(BaseModel):
    """Outcome of organizing a single file.

    Attributes:
        original: File record the note was generated from.
        markdown_path: Destination of the generated note inside the vault.
        original_path: Destination of the relocated original file.
        content: Rendered markdown document.
        frontmatter: Metadata header used for the note.
        tags: Final ranked tag list.
        category: Category chosen for the file.
        extracted_files: Number of organized members, only set for expanded archives.
    """

    model_config = ConfigDict(frozen=True)

    original: FileInfo
    markdown_path: Path
    original_path: Path
    content: str
    frontmatter: Frontmatter
    tags: List[str] = Field(default_factory=list)
    category: str
    extracted_files: int = 0


class FailedFile(BaseModel):
    """A file that could not be organized, with the error message."""

    model_config = ConfigDict(frozen=True)

    file: FileInfo
    error: str


class OrganizationSummary(BaseModel):
    """Aggregate counts for a batch.

    Attributes:
        total: Number of top-level files handed to the engine.
        successful: Number of top-level files organized successfully.
        failed: Number of top-level files that failed.
        duration_seconds: Wall-clock duration of the batch.
    """

    total: int = 0
    successful: int = 0
    failed: int = 0
    duration_seconds: float = 0.0


class OrganizationResult(BaseModel):
    """Successes, failures, and summary for one batch."""

    processed: List[ProcessedFile] = Field(default_factory=list)
    failed: List[FailedFile] = Field(default_factory=list)
    summary: OrganizationSummary = Field(default_factory=OrganizationSummary)


__all__ = ["ProcessedFile", "FailedFile", "OrganizationSummary", "OrganizationResult"]
