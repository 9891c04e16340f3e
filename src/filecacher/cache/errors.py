"""Exceptions raised by the file cache."""


class CacheError(Exception):
    """Base exception for cache-related errors."""

    pass


class TransportError(CacheError):
    """Raised when remote bytes cannot be fetched."""

    pass


class TransportTimeoutError(TransportError):
    """Raised when a fetch times out or is cancelled."""

    pass


class StorageError(CacheError):
    """Raised when the cache directory or index file cannot be written."""

    pass


class SerializationError(CacheError):
    """Raised when the index cannot be encoded."""

    pass
