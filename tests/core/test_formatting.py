"""Tests for core.formatting utilities.

Tests the summary formatting utilities used for consistent terminal output.
"""

from __future__ import annotations

import pytest

from coderank.core.formatting import (
    compress_path,
    format_age,
    pluralize,
    truncate_query,
)


class TestCompressPath:
    """Tests for compress_path function."""

    def test_short_path_unchanged(self) -> None:
        """Paths under max_len are returned unchanged."""
        assert compress_path("short/path.py", max_len=30) == "short/path.py"

    def test_path_at_max_len_unchanged(self) -> None:
        """Path exactly at max_len is unchanged."""
        path = "a" * 30
        assert compress_path(path, max_len=30) == path

    def test_long_path_compressed(self) -> None:
        """Long paths are compressed to first/last segments."""
        result = compress_path("src/coderank/contextual/retriever.py", max_len=30)
        assert result == "src/.../retriever.py"

    def test_very_long_path_uses_filename_only(self) -> None:
        """When even compressed form is too long, use filename only."""
        result = compress_path("very_long_directory_name/another_long_name/filename.py", max_len=20)
        assert result == "filename.py"

    def test_two_segment_path_unchanged(self) -> None:
        """Paths with two segments cannot be compressed further."""
        path = "a_rather_long_directory_name/file.py"
        assert compress_path(path, max_len=10) == path


class TestPluralize:
    """Tests for pluralize function."""

    @pytest.mark.parametrize(
        ("count", "expected"),
        [(0, "0 results"), (1, "1 result"), (2, "2 results")],
    )
    def test_regular_plural(self, count: int, expected: str) -> None:
        assert pluralize(count, "result") == expected

    def test_irregular_plural(self) -> None:
        assert pluralize(3, "directory", "directories") == "3 directories"


class TestTruncateQuery:
    """Tests for truncate_query function."""

    def test_short_query_unchanged(self) -> None:
        assert truncate_query("parse config") == "parse config"

    def test_long_query_truncated_with_ellipsis(self) -> None:
        query = "where is the config parser wired into the command line interface"
        result = truncate_query(query)
        assert len(result) == 40
        assert result.endswith("...")


class TestFormatAge:
    """Tests for format_age function."""

    @pytest.mark.parametrize(
        ("age_ms", "expected"),
        [
            (345, "0.3s"),
            (90_000, "1m 30s"),
            (3_661_000, "1h 1m"),
            (90_000_000, "1d 1h"),
        ],
    )
    def test_formats_each_unit(self, age_ms: int, expected: str) -> None:
        assert format_age(age_ms) == expected

    def test_negative_age_rejected(self) -> None:
        with pytest.raises(ValueError, match="non-negative"):
            format_age(-1)
