"""Ingestion data models."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, ConfigDict


class FileType(str, Enum):
    """Coarse file classification derived from the extension."""

    DOCUMENT = "document"
    IMAGE = "image"
    CODE = "code"
    DATA = "data"
    ARCHIVE = "archive"
    MEDIA = "media"
    UNKNOWN = "unknown"

    @property
    def label(self) -> str:
        """Return the capitalized display name, e.g. ``Document``."""
        return self.value.capitalize()


class FileInfo(BaseModel):
    """Immutable description of a file produced by the scanner.

    Attributes:
        path: Absolute path of the file on disk.
        name: Filename including extension.
        extension: Lowercase extension without the leading dot.
        size_bytes: File size in bytes.
        created_at: Creation (birth) time, falling back to the inode change time.
        modified_at: Last modification time.
        type: Classified coarse type.
        origin: Human-readable source reference when the file was extracted from an archive.
    """

    model_config = ConfigDict(frozen=True)

    path: Path
    name: str
    extension: str
    size_bytes: int
    created_at: datetime
    modified_at: datetime
    type: FileType
    origin: Optional[str] = None

    @property
    def stem(self) -> str:
        """Return the filename without its extension."""
        return Path(self.name).stem

    @property
    def source_reference(self) -> str:
        """Return the path reported as the file's source in generated notes."""
        return self.origin or str(self.path)
