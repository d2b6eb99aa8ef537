"""Tests for shared formatting helpers."""

from datetime import datetime

import pytest

from polish.rendering import format_bytes, format_duration, get_date_path, sanitize_filename


@pytest.mark.parametrize(
    ("size", "expected"),
    [
        (0, "0 Bytes"),
        (512, "512 Bytes"),
        (1024, "1 KB"),
        (1536, "1.5 KB"),
        (1_048_576, "1 MB"),
        (1_073_741_824, "1 GB"),
        (1234567, "1.18 MB"),
    ],
)
def test_format_bytes(size: int, expected: str) -> None:
    assert format_bytes(size) == expected


@pytest.mark.parametrize(
    ("seconds", "expected"),
    [(0.5, "500ms"), (1.5, "1.5s"), (2.0, "2s"), (65, "1m 5s")],
)
def test_format_duration(seconds: float, expected: str) -> None:
    assert format_duration(seconds) == expected


@pytest.mark.parametrize(
    ("name", "expected"),
    [
        ("file<>name.txt", "file_name.txt"),
        ('a:b"c|d?e*f.md', "a_b_c_d_e_f.md"),
        ("with  spaces.md", "with_spaces.md"),
        ("path/to\\file.md", "path_to_file.md"),
        ("plain.md", "plain.md"),
    ],
)
def test_sanitize_filename(name: str, expected: str) -> None:
    assert sanitize_filename(name) == expected


def test_get_date_path_zero_pads_month() -> None:
    assert get_date_path(datetime(2024, 3, 9)) == "2024/03"
