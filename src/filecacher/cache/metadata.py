"""Cache index persistence.

The index file is a single JSON object mapping each URL to its record:

    {
      "https://example.com/data.bin": {
        "url": "https://example.com/data.bin",
        "path": "/home/me/.cache/file-cacher/cache/data.bin",
        "cached_at": 1700000000,
        "jitter": -1234,
        "explicit_expiry": 1700003600
      }
    }

``explicit_expiry`` is only present when the file was fetched with an
explicit expiry offset.
"""

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional, Union

from filecacher.cache.errors import SerializationError, StorageError

logger = logging.getLogger(__name__)


@dataclass
class CacheRecord:
    """Metadata for one cached URL.

    Attributes:
        url: Source URL (also the index key)
        path: Absolute path of the cached file
        cached_at: Unix timestamp of when the file was downloaded
        jitter: Random offset in seconds added to the file lifetime
        explicit_expiry: Absolute Unix timestamp overriding the computed expiry
    """

    url: str
    path: str
    cached_at: int
    jitter: int
    explicit_expiry: Optional[int] = None

    @property
    def filename(self) -> str:
        """Final path component of the cached file."""
        return Path(self.path).name

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "url": self.url,
            "path": self.path,
            "cached_at": self.cached_at,
            "jitter": self.jitter,
        }
        if self.explicit_expiry is not None:
            data["explicit_expiry"] = self.explicit_expiry
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CacheRecord":
        """Build a record from its JSON form.

        Raises:
            KeyError: If a required field is missing
            ValueError: If a field has the wrong type
        """
        explicit_expiry = data.get("explicit_expiry")
        record = cls(
            url=data["url"],
            path=data["path"],
            cached_at=data["cached_at"],
            jitter=data["jitter"],
            explicit_expiry=explicit_expiry,
        )
        if not isinstance(record.url, str) or not isinstance(record.path, str):
            raise ValueError("url and path must be strings")
        for value in (record.cached_at, record.jitter):
            if isinstance(value, bool) or not isinstance(value, int):
                raise ValueError(f"expected integer timestamp/offset, got {value!r}")
        if explicit_expiry is not None and (
            isinstance(explicit_expiry, bool) or not isinstance(explicit_expiry, int)
        ):
            raise ValueError(
                f"expected integer explicit_expiry, got {explicit_expiry!r}"
            )
        return record


def load_index(path: Union[str, Path]) -> Dict[str, CacheRecord]:
    """Load the cache index from disk.

    A missing, unreadable or malformed index is not fatal: an empty index is
    returned and the problem is logged.

    Args:
        path: Path to the JSON index file

    Returns:
        Dict mapping URLs to their records
    """
    path = Path(path)

    try:
        with open(path, "r") as f:
            data = json.load(f)
    except FileNotFoundError:
        return {}
    except (OSError, UnicodeDecodeError) as e:
        logger.warning(f"Cannot read cache index {path}: {e}")
        return {}
    except json.JSONDecodeError as e:
        logger.warning(f"Corrupted cache index {path}, starting fresh: {e}")
        return {}

    if not isinstance(data, dict):
        logger.warning(
            f"Corrupted cache index {path}: expected an object, "
            f"got {type(data).__name__}"
        )
        return {}

    index: Dict[str, CacheRecord] = {}
    try:
        for url, entry in data.items():
            record = CacheRecord.from_dict(entry)
            index[url] = record
    except (KeyError, TypeError, ValueError, AttributeError) as e:
        logger.warning(f"Corrupted cache index {path}, starting fresh: {e!r}")
        return {}

    return index


def save_index(index: Dict[str, CacheRecord], path: Union[str, Path]) -> None:
    """Write the cache index to disk.

    The index is written to a temp file next to the target and renamed into
    place, so a reader never sees a partially written file.

    Args:
        index: Mapping of URL to record
        path: Path to the JSON index file

    Raises:
        SerializationError: If the index cannot be encoded as JSON
        StorageError: If the file cannot be written
    """
    path = Path(path)

    try:
        text = json.dumps(
            {url: record.to_dict() for url, record in index.items()}, indent=2
        )
    except (TypeError, ValueError) as e:
        raise SerializationError(f"Cannot serialize cache index: {e}") from e

    temp_path = path.with_name(path.name + ".tmp")
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(temp_path, "w") as f:
            f.write(text)
        temp_path.replace(path)
    except OSError as e:
        if temp_path.exists():
            try:
                temp_path.unlink()
            except OSError as cleanup_error:
                logger.warning(
                    f"Failed to clean up temp file {temp_path}: {cleanup_error}"
                )
        raise StorageError(f"Cannot write cache index {path}: {e}") from e


def ensure_cache_dir(cache_dir: Union[str, Path]) -> None:
    """Create the cache directory tree if it does not exist.

    Raises:
        StorageError: If the directory cannot be created
    """
    try:
        Path(cache_dir).mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise StorageError(f"Cannot create cache directory {cache_dir}: {e}") from e
