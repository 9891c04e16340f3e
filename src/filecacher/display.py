"""Display formatting for cache statistics.

This module turns a StatsSummary into a human-readable report with scaled
file sizes and relative expiry times.
"""

from typing import List, Optional, Tuple

from filecacher.cache.manager import StatsSummary

TIME_UNITS = (("d", 86400), ("h", 3600), ("m", 60), ("s", 1))


def format_filesize(size_bytes: int) -> str:
    """Format file size in bytes to human-readable string.

    Args:
        size_bytes: File size in bytes

    Returns:
        Human-readable file size string (e.g., "1.46 MB", "512 B")

    Examples:
        >>> format_filesize(512)
        '512 B'
        >>> format_filesize(1024)
        '1.00 KB'
        >>> format_filesize(1530000)
        '1.46 MB'
    """
    units = ["B", "KB", "MB", "GB", "TB"]
    size = float(size_bytes)
    unit_index = 0

    while size >= 1024 and unit_index < len(units) - 1:
        size /= 1024
        unit_index += 1

    if unit_index == 0:
        return f"{int(size)} {units[unit_index]}"
    return f"{size:.2f} {units[unit_index]}"


def format_relative_time(delta_seconds: int) -> str:
    """Format a signed offset from now as relative time.

    At most two units are shown: the largest non-zero unit and, if non-zero,
    the one after it.

    Examples:
        >>> format_relative_time(3 * 86400 + 4 * 3600 + 59)
        'in 3d 4h'
        >>> format_relative_time(-7200)
        '2h ago'
        >>> format_relative_time(0)
        'now'
    """
    if delta_seconds == 0:
        return "now"

    remaining = abs(delta_seconds)
    amounts = []
    for unit, seconds in TIME_UNITS:
        amounts.append((remaining // seconds, unit))
        remaining %= seconds

    parts: List[str] = []
    for i, (amount, unit) in enumerate(amounts):
        if amount:
            parts.append(f"{amount}{unit}")
            if i + 1 < len(amounts) and amounts[i + 1][0]:
                parts.append(f"{amounts[i + 1][0]}{amounts[i + 1][1]}")
            break

    text = " ".join(parts)
    return f"in {text}" if delta_seconds > 0 else f"{text} ago"


class StatsFormatter:
    """Formatter for the ``stats`` report."""

    def __init__(self, summary: StatsSummary, now: int):
        """Initialize StatsFormatter.

        Args:
            summary: Statistics to report
            now: Current Unix time, used for relative expiry times
        """
        self._summary = summary
        self._now = now

    def describe(self) -> str:
        """Generate the multi-line report.

        Examples:
            >>> print(StatsFormatter(StatsSummary(), 0).describe())
            Cache is empty
        """
        summary = self._summary
        if summary.is_empty:
            return "Cache is empty"

        lines = [
            f"Number of files in cache: {summary.number_of_cached_files}",
            f"Total cache size: {format_filesize(summary.total_size)}",
        ]
        lines.extend(self._size_lines("Largest file", summary.max_file_size))
        lines.extend(self._size_lines("Smallest file", summary.min_file_size))
        lines.extend(self._expiry_lines("Next file to expire", summary.first_to_expire))
        lines.extend(self._expiry_lines("Last file to expire", summary.last_to_expire))
        return "\n".join(lines)

    def _size_lines(self, label: str, entry: Optional[Tuple[str, int]]) -> List[str]:
        if entry is None:
            return []
        path, size = entry
        return [f"{label}: {path}", f"  size: {format_filesize(size)}"]

    def _expiry_lines(self, label: str, entry: Optional[Tuple[str, int]]) -> List[str]:
        if entry is None:
            return []
        path, expiry = entry
        relative = format_relative_time(expiry - self._now)
        return [f"{label}: {path}", f"  expires {relative}"]
