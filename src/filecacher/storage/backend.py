"""Transport for downloading remote files.

HTTP(S) URLs are fetched with requests. Cloud storage URLs (gs://, s3://, ...)
are fetched through cloudfiles.
"""

import logging
from typing import Callable

import requests
from requests.exceptions import HTTPError, RequestException, Timeout

from filecacher.cache.errors import TransportError, TransportTimeoutError

logger = logging.getLogger(__name__)

Fetcher = Callable[[str], bytes]

HTTP_PREFIXES = ("http://", "https://")
CLOUD_PREFIXES = ("s3://", "gs://", "gcs://", "az://", "azure://", "file://")

USER_AGENT = "file-cacher/0.1"


def is_http_url(url: str) -> bool:
    """Check if a URL is fetched over HTTP(S).

    Examples:
        >>> is_http_url('https://example.com/file.bin')
        True
        >>> is_http_url('gs://bucket/file.bin')
        False
    """
    return url.lower().startswith(HTTP_PREFIXES)


def is_cloud_url(url: str) -> bool:
    """Check if a URL points at cloud storage."""
    return url.lower().startswith(CLOUD_PREFIXES)


def fetch_bytes(url: str, timeout: float = 60.0) -> bytes:
    """Download the full contents of a URL.

    Args:
        url: Remote URL
        timeout: Timeout in seconds for connecting and reading

    Returns:
        Response body

    Raises:
        TransportTimeoutError: If the request timed out
        TransportError: If the request failed or the scheme is unsupported
    """
    if is_http_url(url):
        return _fetch_http(url, timeout)
    if is_cloud_url(url):
        return _fetch_cloud(url)
    raise TransportError(f"Unsupported URL scheme: {url}")


def make_fetcher(timeout: float) -> Fetcher:
    """Bind a timeout to ``fetch_bytes``."""

    def fetcher(url: str) -> bytes:
        return fetch_bytes(url, timeout=timeout)

    return fetcher


def _fetch_http(url: str, timeout: float) -> bytes:
    logger.debug(f"Fetching {url} over HTTP")
    try:
        response = requests.get(
            url,
            timeout=timeout,
            headers={"User-Agent": USER_AGENT},
            allow_redirects=True,
        )
        response.raise_for_status()
    except Timeout as e:
        raise TransportTimeoutError(f"Timed out fetching {url}: {e}") from e
    except HTTPError as e:
        raise TransportError(
            f"HTTP {e.response.status_code} fetching {url}"
        ) from e
    except RequestException as e:
        raise TransportError(f"Failed to fetch {url}: {e}") from e

    logger.debug(f"Fetched {len(response.content)} bytes from {url}")
    return response.content


def _fetch_cloud(url: str) -> bytes:
    logger.debug(f"Fetching {url} from cloud storage")
    from cloudfiles import CloudFiles

    parts = url.rsplit("/", 1)
    if len(parts) != 2 or not parts[1]:
        raise TransportError(f"Cannot determine file name in {url}")
    dir_path, filename = parts

    try:
        content = CloudFiles(dir_path).get(filename)
    except Exception as e:
        raise TransportError(f"Failed to fetch {url}: {e}") from e

    if content is None:
        raise TransportError(f"Not found: {url}")
    return content
