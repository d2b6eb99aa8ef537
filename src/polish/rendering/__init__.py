"""Markdown rendering and formatting helpers."""

from .formatting import format_bytes, format_duration, get_date_path, sanitize_filename

__all__ = ["format_bytes", "format_duration", "get_date_path", "sanitize_filename"]
