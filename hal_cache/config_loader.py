"""
Configuration loader for the HAL cache.

Looks for config.yaml in this order:
1. Explicitly passed path
2. Environment variable HAL_CACHE_CONFIG
3. ./config.yaml (local development)
4. Falls back to default config
"""

import logging
import os
from pathlib import Path
from typing import Any

import yaml

from .models import ItemFetchStrategy

logger = logging.getLogger(__name__)


class Config:
    def __init__(self, config_path: str | None = None):
        # Determine config path in order of priority
        if config_path:
            self.config_path = Path(config_path)
        elif os.getenv("HAL_CACHE_CONFIG"):
            self.config_path = Path(os.getenv("HAL_CACHE_CONFIG"))
        elif Path("./config.yaml").exists():
            self.config_path = Path("./config.yaml")
        else:
            self.config_path = None

        self._config = self._load_config()

    def _load_config(self) -> dict[str, Any]:
        """
        Load configuration from the YAML file.

        Returns default config if file not found or unreadable.
        """
        if self.config_path and self.config_path.exists():
            try:
                with open(self.config_path, encoding="utf-8") as f:
                    config_data = yaml.safe_load(f) or {}
                logger.info("Loaded config from: %s", self.config_path)
                return config_data
            except (OSError, yaml.YAMLError) as e:
                logger.warning("Error loading config from %s: %s", self.config_path, e)
        elif self.config_path:
            logger.warning("Config file not found, using defaults (tried: %s)", self.config_path)

        return {
            "hal_cache": {
                "base_url": "",
                "avoid_n_plus_one_requests": True,
                "force_requested_self_link": False,
                "normalize_cache_size": 1024,
                "transport": {
                    "timeout": 30,
                    "user_agent": "hal-cache/1.0",
                    "headers": {},
                },
            }
        }

    def _section(self, *keys: str) -> dict[str, Any]:
        section = self._config.get("hal_cache", {}) or {}
        for key in keys:
            section = section.get(key, {}) or {}
        return section

    @property
    def base_url(self) -> str:
        # Environment variable override for containerized deployments
        env_url = os.getenv("HAL_API_BASE_URL")
        if env_url:
            return env_url
        return self._section().get("base_url", "") or ""

    @property
    def avoid_n_plus_one_requests(self) -> bool:
        return bool(self._section().get("avoid_n_plus_one_requests", True))

    @property
    def item_fetch_strategy(self) -> ItemFetchStrategy:
        """Fetch strategy derived from avoid_n_plus_one_requests."""
        if self.avoid_n_plus_one_requests:
            return ItemFetchStrategy.AVOID_N_PLUS_ONE
        return ItemFetchStrategy.PER_ITEM_FETCH

    @property
    def force_requested_self_link(self) -> bool:
        return bool(self._section().get("force_requested_self_link", False))

    @property
    def normalize_cache_size(self) -> int:
        """Maximum number of memoized URI normalizations."""
        return int(self._section().get("normalize_cache_size", 1024))

    @property
    def transport_timeout(self) -> float:
        return float(self._section("transport").get("timeout", 30))

    @property
    def transport_user_agent(self) -> str:
        return self._section("transport").get("user_agent", "hal-cache/1.0")

    @property
    def transport_headers(self) -> dict[str, str]:
        """Extra HTTP headers sent with every request."""
        headers = self._section("transport").get("headers", {})
        return headers if isinstance(headers, dict) else {}


# Global config singleton providing defaults for cache instances
config = Config()
