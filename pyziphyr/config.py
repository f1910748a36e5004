"""Configuration management for pyziphyr.

Values are resolved in this order (later wins):

1. Built-in defaults
2. ``KEY=VALUE`` lines in ``~/.config/pyziphyr/config``
3. Environment variables
"""

import logging
import os
from pathlib import Path
from typing import Optional

from .exceptions import ZiphyrConfigError
from .utils import (
    DEFAULT_API_URL,
    DEFAULT_MAX_WORKERS,
    DEFAULT_RAW_URL,
    DEFAULT_TIMEOUT,
)

logger = logging.getLogger(__name__)

TOKEN_ENV_VARS = ("ZIPHYR_TOKEN", "GITHUB_TOKEN")


class Config:
    """Configuration manager for pyziphyr."""

    def __init__(self, config_dir: Optional[Path] = None):
        """Initialize configuration.

        Args:
            config_dir: Directory holding the config file. Defaults to
                        ~/.config/pyziphyr/
        """
        if config_dir is None:
            config_dir = Path.home() / ".config" / "pyziphyr"
        self.config_dir = config_dir
        self._file_values: Optional[dict[str, str]] = None

    def get_config_path(self) -> Path:
        """Get the path to the config file."""
        return self.config_dir / "config"

    def _load_file(self) -> dict[str, str]:
        """Read ``KEY=VALUE`` pairs from the config file, if present."""
        if self._file_values is not None:
            return self._file_values

        values: dict[str, str] = {}
        config_path = self.get_config_path()
        if config_path.exists():
            try:
                with open(config_path, encoding="utf-8") as f:
                    for line in f:
                        line = line.strip()
                        if not line or line.startswith("#") or "=" not in line:
                            continue
                        key, value = line.split("=", 1)
                        values[key.strip()] = value.strip().strip('"').strip("'")
            except OSError as e:
                logger.warning(f"Failed to read config file {config_path}: {e}")

        self._file_values = values
        return values

    def _get(self, key: str) -> Optional[str]:
        value = os.environ.get(key)
        if value:
            return value
        return self._load_file().get(key) or None

    @property
    def token(self) -> Optional[str]:
        """Bearer token for API calls, or None for anonymous access."""
        for key in TOKEN_ENV_VARS:
            value = self._get(key)
            if value:
                return value
        return None

    @property
    def api_url(self) -> str:
        return (self._get("ZIPHYR_API_URL") or DEFAULT_API_URL).rstrip("/")

    @property
    def raw_url(self) -> str:
        return (self._get("ZIPHYR_RAW_URL") or DEFAULT_RAW_URL).rstrip("/")

    @property
    def timeout(self) -> float:
        value = self._get("ZIPHYR_TIMEOUT")
        if value is None:
            return DEFAULT_TIMEOUT
        try:
            timeout = float(value)
        except ValueError as e:
            raise ZiphyrConfigError(
                f"ZIPHYR_TIMEOUT must be a number, got '{value}'"
            ) from e
        if timeout <= 0:
            raise ZiphyrConfigError("ZIPHYR_TIMEOUT must be positive")
        return timeout

    @property
    def max_workers(self) -> int:
        value = self._get("ZIPHYR_WORKERS")
        if value is None:
            return DEFAULT_MAX_WORKERS
        try:
            workers = int(value)
        except ValueError as e:
            raise ZiphyrConfigError(
                f"ZIPHYR_WORKERS must be an integer, got '{value}'"
            ) from e
        if workers < 1:
            raise ZiphyrConfigError("ZIPHYR_WORKERS must be at least 1")
        return workers


config = Config()
