"""Cache manager for local copies of remote files."""

import logging
import os
import random
import tempfile
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Dict, Optional, Tuple

from filecacher.cache.config import CacheConfig
from filecacher.cache.errors import StorageError
from filecacher.cache.metadata import (
    CacheRecord,
    ensure_cache_dir,
    load_index,
    save_index,
)
from filecacher.cache.validation import compute_expiry, draw_jitter, is_expired
from filecacher.storage.backend import Fetcher, make_fetcher
from filecacher.utils import resolve_filename, validate_filename

logger = logging.getLogger(__name__)


@dataclass
class StatsSummary:
    """Aggregate statistics over the live files in the cache.

    The extrema are None when no cached file exists on disk.
    """

    number_of_cached_files: int = 0
    total_size: int = 0
    max_file_size: Optional[Tuple[str, int]] = None
    min_file_size: Optional[Tuple[str, int]] = None
    first_to_expire: Optional[Tuple[str, int]] = None
    last_to_expire: Optional[Tuple[str, int]] = None

    @property
    def is_empty(self) -> bool:
        return self.number_of_cached_files == 0


def _now() -> int:
    return int(time.time())


class CacheManager:
    """Manages a directory of downloaded files and its URL index.

    The index is loaded once on construction and kept in memory. Operations
    mutate it in place; ``save()`` persists it. Not safe for concurrent use
    from several processes.
    """

    def __init__(
        self,
        config: Optional[CacheConfig] = None,
        fetcher: Optional[Fetcher] = None,
        clock: Optional[Callable[[], int]] = None,
        rng: Optional[random.Random] = None,
    ):
        """Initialize cache manager.

        Args:
            config: Cache configuration (defaults if None)
            fetcher: Callable returning the bytes for a URL
            clock: Callable returning the current Unix time in seconds
            rng: Random generator used for jitter
        """
        self.config = config or CacheConfig()
        self.fetcher = fetcher or make_fetcher(self.config.fetch_timeout)
        self.clock = clock or _now
        self.rng = rng
        self.index: Dict[str, CacheRecord] = load_index(self.config.cache_json)
        logger.debug(
            f"Loaded {len(self.index)} cache records from {self.config.cache_json}"
        )

    def __len__(self) -> int:
        return len(self.index)

    def __contains__(self, url: str) -> bool:
        return url in self.index

    def get_record(self, url: str) -> Optional[CacheRecord]:
        return self.index.get(url)

    def get(
        self,
        url: str,
        filename: str,
        refresh: bool = False,
        expire_in: Optional[int] = None,
    ) -> str:
        """Get the local path of a URL, downloading it on a miss.

        Expired records are swept first. A hit requires the recorded file to
        still exist. The index is not saved; call ``save()`` afterwards.

        Args:
            url: Remote URL
            filename: Desired name of the cached file
            refresh: Download again even if a valid copy exists
            expire_in: Seconds from now after which this file expires,
                overriding the configured lifetime

        Returns:
            Absolute path of the cached file

        Raises:
            ValueError: If the filename is not a plain file name
            TransportError: If the download fails
            StorageError: If the file cannot be written
        """
        validate_filename(filename)
        self.clean_expired()

        if not refresh:
            record = self.index.get(url)
            if record is not None:
                if Path(record.path).is_file():
                    logger.debug(f"Cache hit for {url}: {record.path}")
                    return record.path
                logger.info(f"Cached file for {url} is missing, downloading again")

        previous = self.index.pop(url, None)
        data = self.fetcher(url)

        existing_names = {record.filename for record in self.index.values()}
        resolved = resolve_filename(filename, existing_names)
        cache_path = (Path(self.config.cache_dir) / resolved).absolute()

        ensure_cache_dir(self.config.cache_dir)
        self._write_file(cache_path, data)

        now = self.clock()
        record = CacheRecord(
            url=url,
            path=str(cache_path),
            cached_at=now,
            jitter=draw_jitter(self.config.offset_range, self.rng),
            explicit_expiry=now + expire_in if expire_in is not None else None,
        )
        self.index[url] = record
        logger.info(f"Cached {url} as {record.path} ({len(data)} bytes)")

        if previous is not None and previous.path != record.path:
            self._remove_file(previous.path)

        return record.path

    def _write_file(self, cache_path: Path, data: bytes) -> None:
        """Write bytes to a temp file and rename it into place."""
        temp_path = None
        try:
            fd, temp_name = tempfile.mkstemp(
                dir=cache_path.parent, prefix=f".{cache_path.name}.", suffix=".part"
            )
            temp_path = Path(temp_name)
            with os.fdopen(fd, "wb") as f:
                f.write(data)
            temp_path.replace(cache_path)
        except OSError as e:
            if temp_path is not None and temp_path.exists():
                try:
                    temp_path.unlink()
                except OSError as cleanup_error:
                    logger.warning(
                        f"Failed to clean up temp file {temp_path}: {cleanup_error}"
                    )
            raise StorageError(f"Cannot write cache file {cache_path}: {e}") from e

    def _remove_file(self, path: str) -> None:
        """Delete a cached file, logging instead of raising on failure."""
        try:
            Path(path).unlink()
        except OSError as e:
            logger.warning(f"Could not delete cached file {path}: {e}")

    def clean_expired(self) -> int:
        """Remove every expired record and its file.

        Records are removed from the index even when their file cannot be
        deleted.

        Returns:
            Number of records removed
        """
        now = self.clock()
        lifetime = self.config.file_lifetime
        expired = [
            url
            for url, record in self.index.items()
            if is_expired(record, lifetime, now)
        ]

        for url in expired:
            record = self.index.pop(url)
            logger.debug(f"Expired {url}")
            self._remove_file(record.path)

        if expired:
            logger.info(f"Removed {len(expired)} expired file(s)")
        return len(expired)

    def clear(self) -> int:
        """Delete every cached file and save the empty index.

        Returns:
            Number of records that were in the index

        Raises:
            StorageError: If the empty index cannot be written
        """
        count = len(self.index)
        for record in self.index.values():
            self._remove_file(record.path)
        self.index.clear()
        self.save()
        return count

    def stats(self) -> StatsSummary:
        """Compute statistics over records whose file still exists.

        Read-only: records pointing at missing files are skipped, not removed.
        """
        summary = StatsSummary()
        lifetime = self.config.file_lifetime

        for record in self.index.values():
            path = Path(record.path)
            try:
                if not path.is_file():
                    continue
                size = path.stat().st_size
            except OSError as e:
                logger.debug(f"Skipping {record.path} in stats: {e}")
                continue

            summary.number_of_cached_files += 1
            summary.total_size += size

            if summary.max_file_size is None or size > summary.max_file_size[1]:
                summary.max_file_size = (record.path, size)
            if summary.min_file_size is None or size < summary.min_file_size[1]:
                summary.min_file_size = (record.path, size)

            expiry = compute_expiry(record, lifetime)
            if summary.last_to_expire is None or expiry > summary.last_to_expire[1]:
                summary.last_to_expire = (record.path, expiry)
            if summary.first_to_expire is None or expiry < summary.first_to_expire[1]:
                summary.first_to_expire = (record.path, expiry)

        return summary

    def save(self) -> None:
        """Persist the index.

        Raises:
            StorageError: If the index file cannot be written
            SerializationError: If the index cannot be encoded
        """
        save_index(self.index, self.config.cache_json)
        logger.debug(
            f"Saved {len(self.index)} cache records to {self.config.cache_json}"
        )
