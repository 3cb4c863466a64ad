"""
Configuration utility for the viewer.
"""

import copy
import logging
import os
import json
from typing import Dict, Any, Optional
import threading

logger = logging.getLogger(__name__)

DEFAULT_USER_AGENT = "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36"

DEFAULT_CONFIG: Dict[str, Any] = {
    "viewer": {
        "home_page": "https://www.example.com"
    },
    "network": {
        "timeout": 30,
        "retries": 3,
        "user_agent": DEFAULT_USER_AGENT,
        "proxy": {
            "enabled": False,
            "url": ""
        }
    },
    "render": {
        # Seconds the previous display handle outlives its replacement
        "release_delay": 5.0,
        "max_handle_bytes": 32 * 1024 * 1024
    },
    "logging": {
        "console_level": "INFO",
        "file_level": "DEBUG",
        "log_to_file": True
    }
}


def _merge(base: Dict[str, Any], overrides: Dict[str, Any]) -> Dict[str, Any]:
    """Recursively merge ``overrides`` into a copy of ``base``."""
    merged = copy.deepcopy(base)
    for key, value in overrides.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _merge(merged[key], value)
        else:
            merged[key] = value
    return merged


class Config:
    """Configuration manager for the viewer."""

    def __init__(self, config_path: Optional[str] = None):
        """
        Initialize the configuration manager.

        Args:
            config_path: Path to the config file, defaults to ~/.proxy_viewer/config.json
        """
        if not config_path:
            config_path = os.path.join(os.path.expanduser("~"), ".proxy_viewer", "config.json")

        self.config_path = config_path
        self.config: Dict[str, Any] = {}
        self._lock = threading.Lock()

        self.load()

        logger.debug(f"Configuration initialized (config_path: {config_path})")

    def load(self) -> None:
        """Load configuration from file, layered over the defaults."""
        overrides: Dict[str, Any] = {}
        try:
            if os.path.exists(self.config_path):
                with open(self.config_path, 'r') as f:
                    overrides = json.load(f)
                logger.debug(f"Configuration loaded from {self.config_path}")
            else:
                logger.debug(f"Configuration file not found at {self.config_path}, using defaults")
        except (OSError, ValueError) as e:
            logger.error(f"Error loading configuration: {e}")
            overrides = {}

        if not isinstance(overrides, dict):
            logger.error(f"Ignoring configuration in {self.config_path}: top level is not an object")
            overrides = {}

        with self._lock:
            self.config = _merge(DEFAULT_CONFIG, overrides)

    def get(self, key: str, default: Any = None) -> Any:
        """
        Get a configuration value.

        Args:
            key: Configuration key (can be nested using dots, e.g. 'network.timeout')
            default: Default value if key doesn't exist

        Returns:
            Any: Configuration value or default
        """
        with self._lock:
            config = self.config
            parts = key.split('.')

            for part in parts[:-1]:
                if part not in config or not isinstance(config[part], dict):
                    return default
                config = config[part]

            return config.get(parts[-1], default)

    def set(self, key: str, value: Any) -> None:
        """
        Set a configuration value for this session.

        Args:
            key: Configuration key (can be nested using dots, e.g. 'network.timeout')
            value: Configuration value
        """
        with self._lock:
            config = self.config
            parts = key.split('.')

            for part in parts[:-1]:
                if not isinstance(config.get(part), dict):
                    config[part] = {}
                config = config[part]

            config[parts[-1]] = value
