"""Formatting helpers shared by the renderer, the engine, and the CLI."""

from __future__ import annotations

import re
from datetime import datetime

_BYTE_UNITS = ("Bytes", "KB", "MB", "GB")
_INVALID_FILENAME_CHARS = re.compile(r'[<>:"/\\|?*\s]+')
_REPEATED_UNDERSCORES = re.compile(r"_+")


def format_bytes(size: int) -> str:
    """Return a binary-unit size rounded to at most two decimals, e.g. ``1.5 KB``."""
    if size <= 0:
        return "0 Bytes"
    value = float(size)
    index = 0
    while value >= 1024 and index < len(_BYTE_UNITS) - 1:
        value /= 1024
        index += 1
    rendered = f"{value:.2f}".rstrip("0").rstrip(".")
    return f"{rendered} {_BYTE_UNITS[index]}"


def format_duration(seconds: float) -> str:
    """Return a compact duration: ``500ms``, ``1.5s``, or ``2m 5s``."""
    milliseconds = int(round(seconds * 1000))
    if milliseconds < 1000:
        return f"{milliseconds}ms"
    if milliseconds < 60_000:
        rendered = f"{milliseconds / 1000:.1f}".rstrip("0").rstrip(".")
        return f"{rendered}s"
    minutes, remainder = divmod(milliseconds // 1000, 60)
    return f"{minutes}m {remainder}s"


def sanitize_filename(name: str) -> str:
    """Replace characters that are invalid in filenames (and whitespace) with underscores."""
    cleaned = _INVALID_FILENAME_CHARS.sub("_", name)
    return _REPEATED_UNDERSCORES.sub("_", cleaned)


def get_date_path(moment: datetime) -> str:
    """Return ``YYYY/MM`` for the supplied moment."""
    return f"{moment.year:04d}/{moment.month:02d}"


__all__ = ["format_bytes", "format_duration", "sanitize_filename", "get_date_path"]
