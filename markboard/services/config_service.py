"""
Configuration service for MarkBoard.

This module handles loading, saving, and managing application settings.
Configuration is stored as JSON in ~/.config/markboard/config.json following
the XDG Base Directory Specification. The Supabase connection can also be
supplied through the MARKBOARD_SUPABASE_URL and MARKBOARD_SUPABASE_KEY
environment variables, which take precedence over the file.
"""

import copy
import json
import os
from pathlib import Path
from typing import Any, Dict, Optional

from markboard.services.logging_service import get_logger

# Default configuration directory following XDG Base Directory Specification
DEFAULT_CONFIG_DIR = Path.home() / ".config" / "markboard"
DEFAULT_CONFIG_FILE = DEFAULT_CONFIG_DIR / "config.json"

ENV_SUPABASE_URL = "MARKBOARD_SUPABASE_URL"
ENV_SUPABASE_KEY = "MARKBOARD_SUPABASE_KEY"

# Default configuration values
DEFAULT_CONFIG: Dict[str, Any] = {
    # Hosted backend; empty means run against the in-memory repository
    "supabase_url": "",
    "supabase_anon_key": "",
    # Denormalized onto every mark this client creates
    "author_id": "",
    "author_name": "Current User",
    "author_email": "",
    # Drawing session defaults
    "default_color": "blue",
    "default_shape": "circle",
    # How often the remote subscription checks for collaborator changes
    "poll_interval_ms": 5000,
    # Seconds before a repository HTTP request is abandoned
    "request_timeout": 10,
    # Email collaborators through the send-notifications edge function
    "notifications": True,
    # Per-logger levels, e.g. {"markboard.services.supabase_repository": "DEBUG"}
    "log_levels": {},
}


class ConfigService:
    """
    Service for managing application configuration.

    Handles loading, saving, and accessing configuration values.
    Provides sensible defaults when config file is missing or corrupted.
    """

    def __init__(self, config_path: Optional[Path] = None) -> None:
        """
        Initialize the ConfigService.

        Args:
            config_path: Optional path to config file. Defaults to
                        ~/.config/markboard/config.json
        """
        self._logger = get_logger(__name__)
        self._config_path = config_path or DEFAULT_CONFIG_FILE
        self._config: Dict[str, Any] = {}

        self._load()

    def _load(self) -> None:
        """Load configuration from file, using defaults if needed."""
        self._config = copy.deepcopy(DEFAULT_CONFIG)

        if not self._config_path.exists():
            self._logger.info(
                f"Config file not found at {self._config_path}. Using defaults."
            )
            self._save_to_file()
            return

        try:
            with open(self._config_path, "r", encoding="utf-8") as f:
                loaded_config = json.load(f)

            if isinstance(loaded_config, dict):
                self._deep_merge(self._config, loaded_config)
                self._logger.info(f"Configuration loaded from {self._config_path}")
                # Save back so new default keys are persisted
                self._save_to_file()
            else:
                raise ValueError("Config file does not contain a valid JSON object")

        except (json.JSONDecodeError, ValueError) as e:
            self._logger.warning(
                f"Config file corrupted or invalid: {e}. Recreating with defaults."
            )
            self._config = copy.deepcopy(DEFAULT_CONFIG)
            self._save_to_file()

        except (OSError, PermissionError) as e:
            self._logger.warning(
                f"Could not read config file: {e}. Using defaults."
            )

    def _deep_merge(self, base: Dict, override: Dict) -> None:
        """Recursively merge override dict into base dict."""
        for key, value in override.items():
            if key in base and isinstance(base[key], dict) and isinstance(value, dict):
                self._deep_merge(base[key], value)
            else:
                base[key] = value

    def _save_to_file(self) -> None:
        """Save current configuration to file."""
        try:
            self._config_path.parent.mkdir(parents=True, exist_ok=True)

            with open(self._config_path, "w", encoding="utf-8") as f:
                json.dump(self._config, f, indent=2)

            self._logger.debug(f"Configuration saved to {self._config_path}")

        except (OSError, PermissionError) as e:
            self._logger.error(f"Could not save config file: {e}")

    def get(self, key: str, default: Any = None) -> Any:
        """
        Get a configuration value.

        Args:
            key: The configuration key to retrieve.
            default: Default value if key doesn't exist.

        Returns:
            The configuration value, or default if not found.
        """
        return self._config.get(key, default)

    def set(self, key: str, value: Any) -> None:
        """
        Set a configuration value (in memory only).

        Call save() to persist changes to disk.
        """
        self._config[key] = value
        self._logger.debug(f"Config key '{key}' set to '{value}'")

    def save(self) -> None:
        """Persist current configuration to disk."""
        self._save_to_file()

    # ─── Backend Settings ─────────────────────────────────────────────────

    @property
    def supabase_url(self) -> str:
        """Base URL of the Supabase project, without a trailing slash."""
        url = os.environ.get(ENV_SUPABASE_URL) or self.get("supabase_url", "")
        return url.rstrip("/")

    @property
    def supabase_anon_key(self) -> str:
        return os.environ.get(ENV_SUPABASE_KEY) or self.get("supabase_anon_key", "")

    @property
    def has_remote_backend(self) -> bool:
        """True when both the Supabase URL and key are configured."""
        return bool(self.supabase_url and self.supabase_anon_key)

    @property
    def request_timeout(self) -> float:
        return float(self.get("request_timeout", 10))

    @property
    def poll_interval_ms(self) -> int:
        return int(self.get("poll_interval_ms", 5000))

    @property
    def notifications(self) -> bool:
        return bool(self.get("notifications", True))

    # ─── Author Settings ──────────────────────────────────────────────────

    @property
    def author_id(self) -> str:
        return self.get("author_id", "")

    @property
    def author_name(self) -> str:
        return self.get("author_name", "Current User")

    @property
    def author_email(self) -> str:
        return self.get("author_email", "")

    # ─── Logging ──────────────────────────────────────────────────────────

    @property
    def log_levels(self) -> Dict[str, str]:
        levels = self.get("log_levels", {})
        return dict(levels) if isinstance(levels, dict) else {}

    # ─── Drawing Defaults ─────────────────────────────────────────────────

    @property
    def default_color(self) -> str:
        return self.get("default_color", "blue")

    @property
    def default_shape(self) -> str:
        return self.get("default_shape", "circle")
