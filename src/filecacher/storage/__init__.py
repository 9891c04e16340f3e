"""Remote transport for file-cacher."""

from filecacher.storage.backend import fetch_bytes, make_fetcher

__all__ = ["fetch_bytes", "make_fetcher"]
