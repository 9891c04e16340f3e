"""Tests for utility functions."""

from pathlib import Path

import pytest

from filecacher.utils import (
    expand_path_variables,
    filename_from_url,
    parse_offset_range,
    resolve_filename,
    validate_filename,
)


class TestResolveFilename:
    """Test filename collision resolution."""

    def test_free_name_unchanged(self):
        assert resolve_filename("a.txt", set()) == "a.txt"

    def test_first_collision(self):
        assert resolve_filename("a.txt", {"a.txt"}) == "1a.txt"

    def test_second_collision(self):
        assert resolve_filename("a.txt", {"a.txt", "1a.txt"}) == "2a.txt"

    def test_gap_in_counter(self):
        """Test that the first free counter wins, even if later ones are taken."""
        assert resolve_filename("a.txt", {"a.txt", "2a.txt"}) == "1a.txt"

    def test_many_collisions(self):
        existing = {"f"} | {f"{i}f" for i in range(1, 50)}
        assert resolve_filename("f", existing) == "50f"

    def test_accepts_any_iterable(self):
        assert resolve_filename("a", ["a", "1a"]) == "2a"


class TestFilenameFromUrl:
    """Test deriving filenames from URLs."""

    @pytest.mark.parametrize(
        "url,expected",
        [
            ("https://example.com/files/data.tar.gz", "data.tar.gz"),
            ("https://example.com/files/data.csv?version=2", "data.csv"),
            ("https://example.com/dir/", "dir"),
            ("https://example.com/my%20file.txt", "my file.txt"),
            ("https://example.com", "download"),
            ("https://example.com/", "download"),
            ("gs://bucket/path/model.bin", "model.bin"),
        ],
    )
    def test_filename_from_url(self, url, expected):
        assert filename_from_url(url) == expected


class TestValidateFilename:
    """Test filename validation."""

    @pytest.mark.parametrize("name", ["file.bin", "1file.bin", ".hidden", "a b"])
    def test_valid(self, name):
        validate_filename(name)

    @pytest.mark.parametrize(
        "name", ["", " file", "file ", "a/b", "a\\b", ".", "..", "x" * 256]
    )
    def test_invalid(self, name):
        with pytest.raises(ValueError):
            validate_filename(name)


class TestParseOffsetRange:
    """Test range parsing."""

    def test_string(self):
        assert parse_offset_range("-36000..36001") == (-36000, 36001)

    def test_sequence(self):
        assert parse_offset_range([-5, 5]) == (-5, 5)
        assert parse_offset_range((0, 1)) == (0, 1)

    @pytest.mark.parametrize(
        "value", ["1..2..3", "10", "a..b", "5..5", "6..5", [1], [1, 2, 3], (3, 1)]
    )
    def test_invalid(self, value):
        with pytest.raises(ValueError):
            parse_offset_range(value)


class TestExpandPathVariables:
    """Test path expansion."""

    def test_env_variable(self, monkeypatch):
        monkeypatch.setenv("CACHE_ROOT", "/tmp/cache-root")
        expected = Path("/tmp/cache-root/files")
        assert expand_path_variables("$CACHE_ROOT/files") == expected

    def test_braced_variable(self, monkeypatch):
        monkeypatch.setenv("CACHE_ROOT", "/tmp/cache-root")
        expected = Path("/tmp/cache-root/x.json")
        assert expand_path_variables("${CACHE_ROOT}/x.json") == expected

    def test_home(self, monkeypatch):
        monkeypatch.setenv("HOME", "/home/tester")
        assert expand_path_variables("~/cache") == Path("/home/tester/cache")

    def test_plain_path(self):
        assert expand_path_variables(Path("/var/cache")) == Path("/var/cache")
