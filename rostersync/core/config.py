"""Configuration management for Roster Sync.

This module handles loading and saving application configuration to/from
a JSON file. The config directory can be customized via CLI argument.

Layout of config.json:
    {
        "cache_file": ".../roster_cache.json",
        "server": {"host", "port", "require_api_key", "max_content_length"},
        "sync": {"apiUrl", "apiKey", "syncEnabled", "lastSync",
                 "interval_seconds", "initial_delay_seconds", "timeout_seconds"}
    }
"""

from __future__ import annotations

import copy
import json
import logging
from pathlib import Path
from typing import Any, Dict, Optional

from .validation import ValidationError

logger = logging.getLogger(__name__)

__all__ = ["Config", "DEFAULT_API_URL", "DEFAULT_SYNC_INTERVAL"]

DEFAULT_API_URL = "http://127.0.0.1:3000"
DEFAULT_SYNC_INTERVAL = 2 * 60
DEFAULT_INITIAL_DELAY = 3
DEFAULT_TIMEOUT = 30
DEFAULT_CACHE_CHECK_INTERVAL = 1
DEFAULT_MAX_CONTENT_LENGTH = 50 * 1024 * 1024


def _default_config(config_dir: Path) -> Dict[str, Any]:
    return {
        "cache_file": str(config_dir / "roster_cache.json"),
        "server": {
            "host": "127.0.0.1",
            "port": 3000,
            "require_api_key": False,
            "max_content_length": DEFAULT_MAX_CONTENT_LENGTH,
        },
        "sync": {
            "apiUrl": DEFAULT_API_URL,
            "apiKey": None,
            "syncEnabled": True,
            "lastSync": None,
            "interval_seconds": DEFAULT_SYNC_INTERVAL,
            "initial_delay_seconds": DEFAULT_INITIAL_DELAY,
            "timeout_seconds": DEFAULT_TIMEOUT,
            "cache_check_seconds": DEFAULT_CACHE_CHECK_INTERVAL,
        },
    }


class Config:
    """Manages application configuration stored in JSON format.

    Attributes:
        config_dir: Path to the configuration directory
        config_file: Path to config.json
        config_data: Loaded configuration (defaults merged with file contents)
    """

    def __init__(self, config_dir: Optional[Path] = None) -> None:
        """Initialize configuration manager.

        Args:
            config_dir: Custom config directory path. If None, uses ~/.config/rostersync/
        """
        if config_dir is None:
            config_dir = Path.home() / ".config" / "rostersync"
        self.config_dir = Path(config_dir)
        self.config_dir.mkdir(parents=True, exist_ok=True)
        self.config_file = self.config_dir / "config.json"
        self.config_data = self.load_config()

    def load_config(self) -> Dict[str, Any]:
        """Load configuration, creating the file with defaults if missing.

        Sections missing from the file are filled from the defaults. A corrupt
        file is logged and replaced by defaults in memory only.
        """
        config = _default_config(self.config_dir)

        if not self.config_file.exists():
            self.save_config(config)
            return config

        try:
            with open(self.config_file, "r", encoding="utf-8") as f:
                loaded = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.error(f"Failed to read {self.config_file}: {e}. Using defaults.")
            return config

        if not isinstance(loaded, dict):
            logger.error(f"Ignoring {self.config_file}: top level is not an object")
            return config

        for key, value in loaded.items():
            if isinstance(value, dict) and isinstance(config.get(key), dict):
                config[key].update(value)
            else:
                config[key] = value
        return config

    def save_config(self, config: Optional[Dict[str, Any]] = None) -> None:
        """Write configuration to config.json."""
        if config is not None:
            self.config_data = config
        with open(self.config_file, "w", encoding="utf-8") as f:
            json.dump(self.config_data, f, indent=2)

    def get(self, key: str, default: Any = None) -> Any:
        """Get a top-level configuration value."""
        return self.config_data.get(key, default)

    def set(self, key: str, value: Any) -> None:
        """Set a top-level configuration value and save to file."""
        self.config_data[key] = value
        self.save_config()

    def get_config_dir(self) -> Path:
        """Get the configuration directory path."""
        return self.config_dir

    def get_cache_file(self) -> Path:
        """Path of the client's local roster cache."""
        return Path(self.config_data["cache_file"])

    # ===== Server Configuration Methods =====

    def get_server_config(self) -> Dict[str, Any]:
        """Get a copy of the server section."""
        return copy.deepcopy(self.config_data["server"])

    def is_api_key_required(self) -> bool:
        return bool(self.config_data["server"].get("require_api_key", False))

    def set_api_key_required(self, required: bool) -> None:
        self.config_data["server"]["require_api_key"] = bool(required)
        self.save_config()

    def get_max_content_length(self) -> int:
        return int(self.config_data["server"].get(
            "max_content_length", DEFAULT_MAX_CONTENT_LENGTH
        ))

    # ===== Sync Configuration Methods =====

    def get_sync_config(self) -> Dict[str, Any]:
        """Get a copy of the sync section."""
        return copy.deepcopy(self.config_data["sync"])

    def get_api_url(self) -> str:
        return str(self.config_data["sync"].get("apiUrl") or DEFAULT_API_URL).rstrip("/")

    def set_api_url(self, url: str) -> None:
        if not isinstance(url, str) or not url.startswith(("http://", "https://")):
            raise ValidationError("apiUrl", "must start with http:// or https://")
        self.config_data["sync"]["apiUrl"] = url.rstrip("/")
        self.save_config()

    def get_api_key(self) -> Optional[str]:
        return self.config_data["sync"].get("apiKey") or None

    def set_api_key(self, api_key: Optional[str]) -> None:
        self.config_data["sync"]["apiKey"] = api_key
        self.save_config()

    def is_sync_enabled(self) -> bool:
        """Check if sync is enabled."""
        return bool(self.config_data["sync"].get("syncEnabled", True))

    def set_sync_enabled(self, enabled: bool) -> None:
        """Enable or disable sync."""
        self.config_data["sync"]["syncEnabled"] = bool(enabled)
        self.save_config()

    def get_last_sync(self) -> Optional[str]:
        return self.config_data["sync"].get("lastSync")

    def set_last_sync(self, timestamp: str) -> None:
        self.config_data["sync"]["lastSync"] = timestamp
        self.save_config()

    def get_sync_interval(self) -> float:
        return float(self.config_data["sync"].get("interval_seconds", DEFAULT_SYNC_INTERVAL))

    def get_initial_delay(self) -> float:
        return float(self.config_data["sync"].get("initial_delay_seconds", DEFAULT_INITIAL_DELAY))

    def get_request_timeout(self) -> float:
        return float(self.config_data["sync"].get("timeout_seconds", DEFAULT_TIMEOUT))

    def get_cache_check_interval(self) -> float:
        """Seconds between checks of the cache file for outside edits."""
        return float(self.config_data["sync"].get(
            "cache_check_seconds", DEFAULT_CACHE_CHECK_INTERVAL
        ))
