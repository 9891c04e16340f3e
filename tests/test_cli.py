"""Tests for the file-cacher CLI.

These tests verify:
- Every command works against a temporary cache
- Errors produce a message and a non-zero exit code
- Mutating commands persist the index
"""

import json
from pathlib import Path
from unittest.mock import patch

import pytest
from click.testing import CliRunner

from filecacher.cache.errors import TransportError
from filecacher.cache.metadata import load_index
from filecacher.cli.main import cli


@pytest.fixture
def config_file(tmp_path, monkeypatch):
    """Write a config file pointing the cache into tmp_path."""
    monkeypatch.setenv("HOME", str(tmp_path / "home"))
    path = tmp_path / "config.json"
    path.write_text(
        json.dumps(
            {
                "cache_db": str(tmp_path / "cache.json"),
                "cache_dir": str(tmp_path / "cache"),
                "random_offset_range": "0..1",
                "file_default_lifetime": 1000,
            }
        )
    )
    return path


@pytest.fixture
def fetched():
    """Patch the transport; records fetched URLs."""
    calls = []

    def fetcher(url):
        calls.append(url)
        return b"0123456789"

    with patch("filecacher.cache.manager.make_fetcher", return_value=fetcher):
        yield calls


def run(config_file, *args, **kwargs):
    runner = CliRunner()
    return runner.invoke(cli, ["--config", str(config_file), *args], **kwargs)


class TestGet:
    """Test the get command."""

    def test_get_prints_path_and_saves(self, config_file, fetched, tmp_path):
        result = run(config_file, "get", "http://x/file", "-o", "file.bin")

        assert result.exit_code == 0, result.output
        path = result.output.strip()
        assert Path(path) == (tmp_path / "cache" / "file.bin").absolute()
        assert Path(path).read_bytes() == b"0123456789"
        assert "http://x/file" in load_index(tmp_path / "cache.json")

    def test_second_get_is_a_hit(self, config_file, fetched):
        first = run(config_file, "get", "http://x/file", "-o", "file.bin")
        second = run(config_file, "get", "http://x/file", "-o", "file.bin")

        assert first.output == second.output
        assert fetched == ["http://x/file"]

    def test_refresh(self, config_file, fetched):
        run(config_file, "get", "http://x/file", "-o", "file.bin")
        result = run(config_file, "get", "http://x/file", "-o", "file.bin", "--refresh")

        assert result.exit_code == 0
        assert len(fetched) == 2

    def test_default_filename_from_url(self, config_file, fetched):
        result = run(config_file, "get", "http://x/dir/data.csv")

        assert result.exit_code == 0
        assert Path(result.output.strip()).name == "data.csv"

    def test_expire_in(self, config_file, fetched, tmp_path):
        result = run(config_file, "get", "http://x/file", "--expire-in", "60")

        assert result.exit_code == 0
        record = load_index(tmp_path / "cache.json")["http://x/file"]
        assert record.explicit_expiry == record.cached_at + 60

    def test_negative_expire_in_rejected(self, config_file, fetched):
        result = run(config_file, "get", "http://x/file", "--expire-in", "-5")

        assert result.exit_code != 0
        assert fetched == []

    def test_transport_error(self, config_file, tmp_path):
        def failing(url):
            raise TransportError(f"HTTP 404 fetching {url}")

        with patch("filecacher.cache.manager.make_fetcher", return_value=failing):
            result = run(config_file, "get", "http://x/missing", "-o", "m.bin")

        assert result.exit_code == 1
        assert "HTTP 404 fetching http://x/missing" in result.output
        assert load_index(tmp_path / "cache.json") == {}

    def test_failed_fetch_saves_swept_index(self, config_file, fetched, tmp_path):
        """Test that records swept before a failed fetch are not left on disk."""
        run(config_file, "get", "http://x/old", "-o", "old.bin", "--expire-in", "0")
        assert "http://x/old" in load_index(tmp_path / "cache.json")

        def failing(url):
            raise TransportError(f"Timed out fetching {url}")

        with patch("filecacher.cache.manager.make_fetcher", return_value=failing):
            with patch(
                "filecacher.cache.manager.time.time", return_value=4_000_000_000
            ):
                result = run(config_file, "get", "http://x/new", "-o", "new.bin")

        assert result.exit_code == 1
        assert "Timed out fetching http://x/new" in result.output
        assert not (tmp_path / "cache" / "old.bin").exists()
        assert load_index(tmp_path / "cache.json") == {}

    def test_invalid_filename(self, config_file, fetched):
        result = run(config_file, "get", "http://x/file", "-o", "../evil")

        assert result.exit_code == 1
        assert "path separators" in result.output


class TestStats:
    """Test the stats command."""

    def test_empty(self, config_file):
        result = run(config_file, "stats")

        assert result.exit_code == 0
        assert "Cache is empty" in result.output

    def test_report(self, config_file, fetched):
        run(config_file, "get", "http://x/a", "-o", "a.bin")
        result = run(config_file, "stats")

        assert result.exit_code == 0
        assert "Number of files in cache: 1" in result.output
        assert "Total cache size: 10 B" in result.output
        assert "a.bin" in result.output


class TestCleanExpired:
    """Test the clean-expired command."""

    def test_nothing_expired(self, config_file, fetched):
        run(config_file, "get", "http://x/a", "-o", "a.bin")
        result = run(config_file, "clean-expired")

        assert result.exit_code == 0
        assert "Removed 0 expired file(s)" in result.output

    def test_removes_expired(self, config_file, fetched, tmp_path):
        run(config_file, "get", "http://x/a", "-o", "a.bin", "--expire-in", "0")

        with patch("filecacher.cache.manager.time.time", return_value=4_000_000_000):
            result = run(config_file, "clean-expired")

        assert result.exit_code == 0
        assert "Removed 1 expired file(s)" in result.output
        assert load_index(tmp_path / "cache.json") == {}
        assert not (tmp_path / "cache" / "a.bin").exists()


class TestDelete:
    """Test the delete command."""

    def test_delete_with_yes(self, config_file, fetched, tmp_path):
        run(config_file, "get", "http://x/a", "-o", "a.bin")
        run(config_file, "get", "http://x/b", "-o", "b.bin")

        result = run(config_file, "delete", "-y")

        assert result.exit_code == 0
        assert "Deleted 2 cached file(s)" in result.output
        assert load_index(tmp_path / "cache.json") == {}
        assert list((tmp_path / "cache").iterdir()) == []

    def test_delete_cancelled(self, config_file, fetched, tmp_path):
        run(config_file, "get", "http://x/a", "-o", "a.bin")

        result = run(config_file, "delete", input="n\n")

        assert result.exit_code == 0
        assert "Cancelled" in result.output
        assert "http://x/a" in load_index(tmp_path / "cache.json")

    def test_delete_confirmed(self, config_file, fetched, tmp_path):
        run(config_file, "get", "http://x/a", "-o", "a.bin")

        result = run(config_file, "delete", input="y\n")

        assert result.exit_code == 0
        assert "Deleted 1 cached file(s)" in result.output


class TestInitConfig:
    """Test the init-config command."""

    def test_writes_default(self, tmp_path):
        path = tmp_path / "new" / "config.json"

        result = CliRunner().invoke(cli, ["--config", str(path), "init-config"])

        assert result.exit_code == 0
        assert "Wrote default config" in result.output
        assert json.loads(path.read_text())["file_default_lifetime"] == 1728000

    def test_existing_config_untouched(self, config_file):
        before = config_file.read_text()

        result = run(config_file, "init-config")

        assert result.exit_code == 0
        assert "Config already exists" in result.output
        assert config_file.read_text() == before


def test_malformed_config(tmp_path):
    path = tmp_path / "config.json"
    path.write_text("{oops")

    result = CliRunner().invoke(cli, ["--config", str(path), "stats"])

    assert result.exit_code == 1
    assert "Cannot load config" in result.output


def test_version():
    result = CliRunner().invoke(cli, ["--version"])
    assert result.exit_code == 0
    assert "0.1.0" in result.output
