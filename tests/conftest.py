"""Shared fixtures for the Polish test suite."""

from __future__ import annotations

import os
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable

import pytest

from polish.ingestion.discovery import build_file_info
from polish.ingestion.models import FileInfo

FIXED_NOW = datetime(2024, 5, 17, 9, 30, tzinfo=timezone.utc)


@pytest.fixture
def make_file(tmp_path: Path) -> Callable[..., FileInfo]:
    """Return a factory writing a file under ``tmp_path/src`` and describing it."""

    def _make(
        name: str,
        content: str | bytes = "hello",
        *,
        modified: datetime | None = None,
        directory: Path | None = None,
    ) -> FileInfo:
        path = (directory or tmp_path / "src") / name
        path.parent.mkdir(parents=True, exist_ok=True)
        if isinstance(content, bytes):
            path.write_bytes(content)
        else:
            path.write_text(content, encoding="utf-8")
        if modified is not None:
            stamp = modified.timestamp()
            os.utime(path, (stamp, stamp))
        return build_file_info(path)

    return _make


@pytest.fixture
def fixed_clock() -> Callable[[], datetime]:
    return lambda: FIXED_NOW
