"""Expiration policy for cached files.

A record expires ``file_lifetime + jitter`` seconds after it was cached,
unless it carries an explicit expiry timestamp. The jitter is drawn once per
record so that files downloaded together do not all expire together.
"""

import random
from typing import Optional, Tuple

from filecacher.cache.metadata import CacheRecord


def compute_expiry(record: CacheRecord, file_lifetime: int) -> int:
    """Compute the absolute expiry timestamp of a record.

    Args:
        record: Cache record
        file_lifetime: Base lifetime in seconds

    Returns:
        Unix timestamp after which the record is expired

    Examples:
        >>> compute_expiry(CacheRecord("u", "/p", 1000, -10), 100)
        1090
        >>> compute_expiry(CacheRecord("u", "/p", 1000, -10, explicit_expiry=5), 100)
        5
    """
    if record.explicit_expiry is not None:
        return record.explicit_expiry
    return record.cached_at + file_lifetime + record.jitter


def draw_jitter(
    offset_range: Tuple[int, int], rng: Optional[random.Random] = None
) -> int:
    """Draw a random lifetime offset from the half-open range [start, end).

    Args:
        offset_range: (start, end) bounds, end exclusive
        rng: Random generator to use (module-level generator if None)

    Returns:
        Offset in seconds

    Raises:
        ValueError: If the range is empty
    """
    start, end = offset_range
    if start >= end:
        raise ValueError(f"Empty offset range: [{start}, {end})")
    return (rng or random).randrange(start, end)


def is_expired(record: CacheRecord, file_lifetime: int, now: int) -> bool:
    """Check whether a record has expired.

    A record whose expiry equals ``now`` is still valid.
    """
    return compute_expiry(record, file_lifetime) < now


def get_expiry_remaining(record: CacheRecord, file_lifetime: int, now: int) -> int:
    """Get the signed number of seconds until a record expires.

    Returns:
        Seconds remaining; negative if the expiry is in the past
    """
    return compute_expiry(record, file_lifetime) - now
