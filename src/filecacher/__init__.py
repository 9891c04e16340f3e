"""file-cacher: keep local copies of remote files with jittered expiry."""

__version__ = "0.1.0"

from filecacher.cache import CacheConfig, CacheError, CacheManager

__all__ = ["CacheManager", "CacheConfig", "CacheError", "__version__"]
