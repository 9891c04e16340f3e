"""Cache configuration management."""

import json
import logging
import os
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

from filecacher.utils import expand_path_variables, parse_offset_range

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = "$HOME/.config/file-cacher/config.json"
DEFAULT_CACHE_JSON = "$HOME/.cache/file-cacher/cache.json"
DEFAULT_CACHE_DIR = "$HOME/.cache/file-cacher/cache/"

# Environment variable -> config-file key
ENV_VARS = {
    "FILE_CACHER_CACHE_DB": "cache_db",
    "FILE_CACHER_CACHE_DIR": "cache_dir",
    "FILE_CACHER_OFFSET_RANGE": "random_offset_range",
    "FILE_CACHER_LIFETIME": "file_default_lifetime",
    "FILE_CACHER_TIMEOUT": "fetch_timeout",
}


@dataclass
class CacheConfig:
    """Configuration for the file cache.

    Attributes:
        cache_json: Path of the JSON index file
        cache_dir: Directory where downloaded files are stored
        offset_range: Half-open (start, end) range the per-file jitter is
            drawn from, in seconds
        file_lifetime: Base lifetime of a cached file in seconds (20 days)
        fetch_timeout: Network timeout for a single download in seconds
    """

    cache_json: Path = field(
        default_factory=lambda: expand_path_variables(DEFAULT_CACHE_JSON)
    )
    cache_dir: Path = field(
        default_factory=lambda: expand_path_variables(DEFAULT_CACHE_DIR)
    )
    offset_range: Tuple[int, int] = (-36000, 36001)
    file_lifetime: int = 1728000  # 20 days
    fetch_timeout: float = 60.0

    def __post_init__(self):
        """Expand path variables and validate numeric settings."""
        self.cache_json = expand_path_variables(self.cache_json)
        self.cache_dir = expand_path_variables(self.cache_dir)
        self.offset_range = parse_offset_range(self.offset_range)
        self.file_lifetime = _parse_lifetime(self.file_lifetime)
        self.fetch_timeout = _parse_timeout(self.fetch_timeout)

    def update(self, data: Dict[str, Any]) -> None:
        """Apply settings from a config-file mapping.

        Unknown keys and unparsable values are skipped with a warning and the
        current value is kept.

        Args:
            data: Mapping using the config-file key names
        """
        for key, value in data.items():
            try:
                if key == "cache_db":
                    self.cache_json = expand_path_variables(value)
                elif key == "cache_dir":
                    self.cache_dir = expand_path_variables(value)
                elif key == "random_offset_range":
                    self.offset_range = parse_offset_range(value)
                elif key == "file_default_lifetime":
                    self.file_lifetime = _parse_lifetime(value)
                elif key == "fetch_timeout":
                    self.fetch_timeout = _parse_timeout(value)
                else:
                    logger.warning(f"Ignoring unknown config key '{key}'")
            except (TypeError, ValueError) as e:
                logger.warning(f"Ignoring invalid value for '{key}': {e}")

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CacheConfig":
        config = cls()
        config.update(data)
        return config

    @classmethod
    def load(cls, config_path: Optional[Path] = None) -> "CacheConfig":
        """Load configuration from file.

        Args:
            config_path: Path to config file. If None, uses default location.

        Returns:
            CacheConfig instance (defaults if the file does not exist)

        Raises:
            ValueError: If the file is not a JSON object
        """
        config_path = _config_path(config_path)

        if not config_path.exists():
            return cls()

        with open(config_path, "r") as f:
            try:
                data = json.load(f)
            except json.JSONDecodeError as e:
                raise ValueError(f"Malformed config file {config_path}: {e}") from e

        if not isinstance(data, dict):
            raise ValueError(f"Malformed config file {config_path}: expected an object")

        return cls.from_dict(data)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "cache_db": str(self.cache_json),
            "cache_dir": str(self.cache_dir),
            "random_offset_range": f"{self.offset_range[0]}..{self.offset_range[1]}",
            "file_default_lifetime": self.file_lifetime,
            "fetch_timeout": self.fetch_timeout,
        }

    def save(self, config_path: Optional[Path] = None) -> None:
        """Save configuration to file.

        Args:
            config_path: Path to config file. If None, uses default location.
        """
        config_path = _config_path(config_path)
        config_path.parent.mkdir(parents=True, exist_ok=True)

        with open(config_path, "w") as f:
            json.dump(self.to_dict(), f, indent=2)

    @classmethod
    def write_default(cls, config_path: Optional[Path] = None) -> bool:
        """Write a default config file unless one already exists.

        Returns:
            True if a file was written, False if it already existed
        """
        config_path = _config_path(config_path)
        if config_path.exists():
            return False

        cls().save(config_path)
        return True

    @classmethod
    def from_env(cls, base: Optional["CacheConfig"] = None) -> "CacheConfig":
        """Create configuration from environment variables.

        Environment variables:
            FILE_CACHER_CACHE_DB: Index file path
            FILE_CACHER_CACHE_DIR: Cache directory path
            FILE_CACHER_OFFSET_RANGE: Jitter range as 'start..end'
            FILE_CACHER_LIFETIME: File lifetime in seconds
            FILE_CACHER_TIMEOUT: Fetch timeout in seconds

        Args:
            base: Configuration to start from (defaults if None); it is
                copied, not modified

        Returns:
            CacheConfig instance
        """
        config = replace(base) if base is not None else cls()
        config.update(
            {key: os.environ[name] for name, key in ENV_VARS.items() if os.getenv(name)}
        )
        return config


def _config_path(config_path: Optional[Path]) -> Path:
    if config_path is None:
        config_path = DEFAULT_CONFIG_PATH
    return expand_path_variables(config_path)


def _parse_lifetime(value: Any) -> int:
    lifetime = int(value)
    if lifetime < 0:
        raise ValueError(f"lifetime must be >= 0, got {lifetime}")
    return lifetime


def _parse_timeout(value: Any) -> float:
    timeout = float(value)
    if not timeout > 0:
        raise ValueError(f"fetch timeout must be > 0, got {timeout}")
    return timeout
