"""Content extraction for classified files.

Extraction never raises: oversize files, unsupported formats, binary content, missing
optional libraries, and I/O failures all yield ``None``. Optional format support (PDF, DOCX,
ZIP) is described by :class:`ExtractionCapabilities`, which is resolved once and injected so
the "library unavailable" branches are explicit.
"""

from __future__ import annotations

import importlib.util
import logging
import re
from dataclasses import dataclass
from typing import Optional

from PIL import Image

from polish.config.models import ProcessingOptions
from polish.rendering.formatting import format_bytes

from .models import FileInfo, FileType

LOGGER = logging.getLogger(__name__)

MIB = 1024 * 1024
_CONTROL_CHARACTERS = re.compile(r"[\x00-\x08\x0B\x0C\x0E-\x1F]")
_PLAIN_TEXT_DOCUMENTS = {"txt", "md", "markdown", "rtf"}


@dataclass(frozen=True)
class ExtractionCapabilities:
    """Optional format support available to the extractor.

    Attributes:
        pdf: Whether ``pdfplumber`` can be used for PDF text.
        docx: Whether ``python-docx`` can be used for Word documents.
        archives: Whether the organization engine expands ZIP archives. The stdlib
            ``zipfile`` module always provides this, so it acts as a toggle.
    """

    pdf: bool = False
    docx: bool = False
    archives: bool = True

    @classmethod
    def detect(cls) -> "ExtractionCapabilities":
        """Probe the environment for the optional PDF and DOCX libraries."""
        return cls(
            pdf=importlib.util.find_spec("pdfplumber") is not None,
            docx=importlib.util.find_spec("docx") is not None,
        )


@dataclass(frozen=True)
class ExtractionLimits:
    """Size ceilings applied before any read is attempted.

    Attributes:
        max_text_bytes: Ceiling for documents, code, data, archives, and unknown files.
        max_media_bytes: Ceiling for images and media, which only have metadata probed.
        extract_text: When False, extraction is skipped entirely.
    """

    max_text_bytes: int = 10 * MIB
    max_media_bytes: int = 50 * MIB
    extract_text: bool = True

    @classmethod
    def from_processing(cls, processing: ProcessingOptions) -> "ExtractionLimits":
        """Build limits from the processing section of a configuration."""
        return cls(
            max_text_bytes=processing.max_text_size_mb * MIB,
            max_media_bytes=processing.max_media_size_mb * MIB,
            extract_text=processing.extract_text,
        )

    def ceiling_for(self, file_type: FileType) -> int:
        if file_type in (FileType.IMAGE, FileType.MEDIA):
            return self.max_media_bytes
        return self.max_text_bytes


def looks_like_text(content: str) -> bool:
    """Return True when fewer than 10% of characters are control characters.

    Tab, newline, and carriage return are not counted.
    """
    if not content:
        return True
    control_count = len(_CONTROL_CHARACTERS.findall(content))
    return control_count < len(content) * 0.1


class ContentExtractor:
    """Produce an optional text representation for a classified file."""

    def __init__(
        self,
        limits: ExtractionLimits | None = None,
        capabilities: ExtractionCapabilities | None = None,
    ) -> None:
        self.limits = limits or ExtractionLimits()
        self.capabilities = capabilities or ExtractionCapabilities.detect()

    def extract(self, file: FileInfo) -> Optional[str]:
        """Return text for the file, or ``None`` when no text representation exists.

        Args:
            file: File record produced by the scanner.

        Returns:
            Optional[str]: Extracted text or a metadata summary; ``None`` otherwise.
        """
        if not self.limits.extract_text:
            return None
        if file.size_bytes > self.limits.ceiling_for(file.type):
            return None

        try:
            if file.type is FileType.DOCUMENT:
                return self._extract_document(file)
            if file.type in (FileType.CODE, FileType.DATA):
                return self._read_text(file)
            if file.type is FileType.IMAGE:
                return self._describe_image(file)
            if file.type is FileType.MEDIA:
                return self._describe_media(file)
            if file.type is FileType.ARCHIVE:
                return self._describe_archive(file)
            return self._extract_unknown(file)
        except Exception as exc:
            LOGGER.warning("Failed to extract content from %s: %s", file.name, exc)
            return None

    # ------------------------------------------------------------------ #
    # Per-type helpers                                                   #
    # ------------------------------------------------------------------ #

    def _extract_document(self, file: FileInfo) -> Optional[str]:
        extension = file.extension
        if extension in _PLAIN_TEXT_DOCUMENTS:
            return self._read_text(file)
        if extension == "pdf":
            if not self.capabilities.pdf:
                return None
            return self._extract_pdf(file)
        if extension in ("docx", "doc"):
            if not self.capabilities.docx:
                return None
            return self._extract_docx(file)
        # odt and anything else: no extractor.
        return None

    def _read_text(self, file: FileInfo) -> str:
        return file.path.read_bytes().decode("utf-8", errors="replace")

    def _extract_pdf(self, file: FileInfo) -> Optional[str]:
        import pdfplumber

        pages: list[str] = []
        with pdfplumber.open(file.path) as pdf:
            for page in pdf.pages:
                text = page.extract_text()
                if text:
                    pages.append(text)
        return "\n".join(pages) or None

    def _extract_docx(self, file: FileInfo) -> Optional[str]:
        import docx

        document = docx.Document(str(file.path))
        paragraphs = [paragraph.text for paragraph in document.paragraphs]
        return "\n".join(paragraphs) or None

    def _describe_image(self, file: FileInfo) -> str:
        try:
            with Image.open(file.path) as img:
                width, height = img.size
                image_format = img.format or file.extension.upper()
                channels = len(img.getbands())
                has_exif = bool(img.getexif())
                mode = img.mode
        except Exception as exc:  # corrupt or unsupported image
            LOGGER.warning("Failed to read image metadata for %s: %s", file.name, exc)
            return f"Image: {file.extension.upper()} file {file.name}"

        return (
            f"Image: {image_format}\n"
            f"Dimensions: {width}x{height}\n"
            f"Color space: {mode}\n"
            f"Channels: {channels}\n"
            f"EXIF data: {'yes' if has_exif else 'no'}"
        )

    def _describe_media(self, file: FileInfo) -> str:
        return (
            f"Media file: {file.name}\n"
            f"Format: {file.extension.upper()}\n"
            f"Size: {format_bytes(file.size_bytes)}\n"
            f"Created: {file.created_at.date().isoformat()}"
        )

    def _describe_archive(self, file: FileInfo) -> str:
        return (
            f"Archive file ({file.extension.upper()})\n"
            f"Size: {format_bytes(file.size_bytes)}\n"
            "Contents are not inspected for security reasons."
        )

    def _extract_unknown(self, file: FileInfo) -> Optional[str]:
        content = self._read_text(file)
        if looks_like_text(content):
            return content
        return None


__all__ = [
    "ContentExtractor",
    "ExtractionCapabilities",
    "ExtractionLimits",
    "looks_like_text",
]
