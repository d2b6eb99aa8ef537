"""Tests for classification and file discovery."""

import os
from datetime import datetime, timezone
from pathlib import Path

import pytest

from polish.config.models import ProcessingOptions, SourceSettings
from polish.ingestion import SUPPORTED_TYPES, FileType, classify, default_supported_formats
from polish.ingestion.discovery import FileScanner, build_file_info


@pytest.mark.parametrize(
    ("extension", "expected"),
    [
        ("pdf", FileType.DOCUMENT),
        ("MD", FileType.DOCUMENT),
        (".png", FileType.IMAGE),
        ("py", FileType.CODE),
        ("csv", FileType.DATA),
        ("zip", FileType.ARCHIVE),
        ("flac", FileType.MEDIA),
        ("exe", FileType.UNKNOWN),
        ("", FileType.UNKNOWN),
    ],
)
def test_classify_maps_extensions(extension: str, expected: FileType) -> None:
    assert classify(extension) is expected


def test_every_listed_extension_classifies_to_its_type() -> None:
    for file_type, extensions in SUPPORTED_TYPES.items():
        for extension in extensions:
            assert classify(extension) is file_type


def test_default_supported_formats_cover_table() -> None:
    formats = set(default_supported_formats())

    assert {"pdf", "md", "markdown", "zip", "py"} <= formats
    assert "exe" not in formats


def test_build_file_info_populates_record(tmp_path: Path) -> None:
    path = tmp_path / "Report.PDF"
    path.write_bytes(b"%PDF-1.4")

    info = build_file_info(path, origin="bundle.zip/Report.PDF")

    assert info.name == "Report.PDF"
    assert info.extension == "pdf"
    assert info.type is FileType.DOCUMENT
    assert info.size_bytes == 8
    assert info.stem == "Report"
    assert info.source_reference == "bundle.zip/Report.PDF"
    assert info.modified_at.tzinfo == timezone.utc


def _tree(root: Path) -> None:
    (root / "nested").mkdir(parents=True)
    (root / ".hidden").mkdir()
    (root / "node_modules").mkdir()
    (root / "notes.md").write_text("# notes", encoding="utf-8")
    (root / "script.py").write_text("print('x')", encoding="utf-8")
    (root / "binary.exe").write_bytes(b"\x00\x01")
    (root / ".secret.txt").write_text("hidden", encoding="utf-8")
    (root / "nested" / "data.csv").write_text("a,b", encoding="utf-8")
    (root / ".hidden" / "inside.txt").write_text("x", encoding="utf-8")
    (root / "node_modules" / "lib.js").write_text("x", encoding="utf-8")


def test_scanner_skips_hidden_ignored_and_unsupported(tmp_path: Path) -> None:
    root = tmp_path / "inbox"
    _tree(root)
    scanner = FileScanner(ProcessingOptions())

    found = scanner.scan([SourceSettings(path=str(root))])

    assert sorted(info.name for info in found) == ["data.csv", "notes.md", "script.py"]


def test_scanner_respects_include_subfolders(tmp_path: Path) -> None:
    root = tmp_path / "inbox"
    _tree(root)
    scanner = FileScanner(ProcessingOptions())

    found = scanner.scan([SourceSettings(path=str(root), include_subfolders=False)])

    assert sorted(info.name for info in found) == ["notes.md", "script.py"]


def test_scanner_applies_extension_filter(tmp_path: Path) -> None:
    root = tmp_path / "inbox"
    _tree(root)
    scanner = FileScanner(ProcessingOptions())

    found = scanner.scan([SourceSettings(path=str(root))], filter_extensions=[".PY"])

    assert [info.name for info in found] == ["script.py"]


def test_scanner_skips_files_over_size_limit(tmp_path: Path) -> None:
    root = tmp_path / "inbox"
    root.mkdir()
    (root / "big.txt").write_bytes(b"x" * (1024 * 1024 + 1))
    (root / "small.txt").write_text("ok", encoding="utf-8")
    scanner = FileScanner(ProcessingOptions(max_file_size_mb=1))

    found = scanner.scan([SourceSettings(path=str(root))])

    assert [info.name for info in found] == ["small.txt"]


def test_scanner_skips_missing_roots(tmp_path: Path) -> None:
    scanner = FileScanner(ProcessingOptions())

    assert scanner.scan([SourceSettings(path=str(tmp_path / "nope"))]) == []


def test_scanner_records_modification_time(tmp_path: Path) -> None:
    root = tmp_path / "inbox"
    root.mkdir()
    path = root / "old.txt"
    path.write_text("x", encoding="utf-8")
    stamp = datetime(2021, 3, 4, tzinfo=timezone.utc).timestamp()
    os.utime(path, (stamp, stamp))

    (info,) = FileScanner(ProcessingOptions()).scan([SourceSettings(path=str(root))])

    assert (info.modified_at.year, info.modified_at.month) == (2021, 3)
