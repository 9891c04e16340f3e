"""Utility functions for file-cacher."""

import os
from pathlib import Path
from typing import Iterable, Tuple, Union
from urllib.parse import unquote, urlparse

DEFAULT_FILENAME = "download"


def resolve_filename(desired_name: str, existing_names: Iterable[str]) -> str:
    """Pick a filename that does not collide with already cached files.

    If ``desired_name`` is taken, an increasing counter is prefixed to it
    until a free name is found.

    Args:
        desired_name: Requested filename
        existing_names: Filenames already present in the index

    Returns:
        A filename not in ``existing_names``

    Examples:
        >>> resolve_filename('a.txt', set())
        'a.txt'
        >>> resolve_filename('a.txt', {'a.txt'})
        '1a.txt'
        >>> resolve_filename('a.txt', {'a.txt', '1a.txt'})
        '2a.txt'
    """
    taken = set(existing_names)
    candidate = desired_name
    counter = 0
    while candidate in taken:
        counter += 1
        candidate = f"{counter}{desired_name}"
    return candidate


def filename_from_url(url: str) -> str:
    """Derive a filename from the last path segment of a URL.

    Examples:
        >>> filename_from_url('https://example.com/files/data.tar.gz?x=1')
        'data.tar.gz'
        >>> filename_from_url('https://example.com/')
        'download'
    """
    segment = unquote(urlparse(url).path).rstrip("/").rsplit("/", 1)[-1]
    if segment in ("", ".", ".."):
        return DEFAULT_FILENAME
    return segment


def validate_filename(name: str) -> None:
    """Validate that a filename stays inside the cache directory.

    Raises:
        ValueError: If the name is empty, padded with whitespace, or contains
            path separators
    """
    if not name:
        raise ValueError("Filename cannot be empty")

    if name != name.strip():
        raise ValueError(
            f"Filename '{name}' cannot have leading or trailing whitespace"
        )

    if "/" in name or "\\" in name or name in (".", ".."):
        raise ValueError(f"Filename '{name}' must not contain path separators")

    if len(name) > 255:
        raise ValueError(f"Filename '{name}' is too long (max 255 characters)")


def expand_path_variables(path: Union[str, Path]) -> Path:
    """Expand ``$VAR``/``${VAR}`` and ``~`` in a path.

    Examples:
        >>> os.environ['CACHE_ROOT'] = '/tmp/c'
        >>> str(expand_path_variables('$CACHE_ROOT/files'))
        '/tmp/c/files'
    """
    return Path(os.path.expanduser(os.path.expandvars(str(path))))


def parse_offset_range(value: Union[str, Iterable[int]]) -> Tuple[int, int]:
    """Parse a half-open integer range.

    Accepts either ``"start..end"`` or a two-item sequence.

    Raises:
        ValueError: If the value cannot be parsed or the range is empty

    Examples:
        >>> parse_offset_range('-36000..36001')
        (-36000, 36001)
        >>> parse_offset_range([-5, 5])
        (-5, 5)
    """
    if isinstance(value, str):
        if value.count("..") != 1:
            raise ValueError(f"Invalid range '{value}': expected 'start..end'")
        start_str, end_str = value.split("..")
        try:
            start, end = int(start_str), int(end_str)
        except ValueError as e:
            raise ValueError(f"Invalid range '{value}': {e}") from e
    else:
        items = list(value)
        if len(items) != 2:
            raise ValueError(f"Invalid range {items!r}: expected [start, end]")
        start, end = int(items[0]), int(items[1])

    if start >= end:
        raise ValueError(f"Invalid range {start}..{end}: start must be below end")
    return start, end
