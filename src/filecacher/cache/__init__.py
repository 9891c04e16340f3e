"""Local cache of remote files.

Key components:
- CacheManager: Main cache interface (get, clean_expired, clear, stats, save)
- CacheConfig: Configuration management
- CacheRecord: One entry of the URL index
- Expiration policy: compute_expiry, draw_jitter, is_expired
"""

from filecacher.cache.config import CacheConfig
from filecacher.cache.errors import (
    CacheError,
    SerializationError,
    StorageError,
    TransportError,
    TransportTimeoutError,
)
from filecacher.cache.manager import CacheManager, StatsSummary
from filecacher.cache.metadata import CacheRecord

__all__ = [
    "CacheManager",
    "CacheConfig",
    "CacheRecord",
    "StatsSummary",
    "CacheError",
    "TransportError",
    "TransportTimeoutError",
    "StorageError",
    "SerializationError",
]
