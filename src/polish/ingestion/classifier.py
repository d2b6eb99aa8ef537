"""Extension based file classification."""

from __future__ import annotations

from typing import Dict, List

from .models import FileType

SUPPORTED_TYPES: Dict[FileType, tuple[str, ...]] = {
    FileType.DOCUMENT: ("pdf", "docx", "doc", "txt", "rtf", "odt", "md", "markdown"),
    FileType.IMAGE: ("png", "jpg", "jpeg", "gif", "bmp", "svg", "webp"),
    FileType.CODE: ("js", "ts", "py", "java", "cpp", "c", "go", "rs", "rb", "php", "swift", "kt"),
    FileType.DATA: ("json", "csv", "xml", "yaml", "yml", "sql"),
    FileType.ARCHIVE: ("zip", "tar", "gz", "rar", "7z", "bz2"),
    FileType.MEDIA: ("mp3", "mp4", "avi", "mov", "wav", "flac"),
}

_EXTENSION_MAP: Dict[str, FileType] = {
    extension: file_type
    for file_type, extensions in SUPPORTED_TYPES.items()
    for extension in extensions
}


def classify(extension: str) -> FileType:
    """Return the coarse type for an extension; unmatched extensions are ``UNKNOWN``."""
    return _EXTENSION_MAP.get(extension.lower().lstrip("."), FileType.UNKNOWN)


def default_supported_formats() -> List[str]:
    """Return every extension known to the classifier."""
    return list(_EXTENSION_MAP)


__all__ = ["SUPPORTED_TYPES", "classify", "default_supported_formats"]
