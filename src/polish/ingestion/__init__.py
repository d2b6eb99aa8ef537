"""File ingestion: classification, discovery, and content extraction."""

from .classifier import SUPPORTED_TYPES, classify, default_supported_formats
from .models import FileInfo, FileType

__all__ = ["FileInfo", "FileType", "SUPPORTED_TYPES", "classify", "default_supported_formats"]
