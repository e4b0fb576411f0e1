"""
Configuration utilities for the sales tax engine.
"""

import os
from pathlib import Path
from typing import Any, Dict, List, Optional

from dotenv import load_dotenv


class Config:
    """Configuration manager for the sales tax engine."""

    def __init__(self, env_file: Optional[str] = None) -> None:
        """Initialize configuration.

        If an env_file path is provided, load environment variables from it.
        Otherwise, do not auto-load a .env file to keep defaults predictable.
        """
        self.env_file = env_file
        self._load_environment()
        self._config = self._load_config()

    def _load_environment(self) -> None:
        """Load environment variables from explicit .env file if provided."""
        if not self.env_file:
            return
        env_path = Path(self.env_file)
        if env_path.exists():
            load_dotenv(env_path)

    def _load_config(self) -> Dict[str, Any]:
        """Load configuration from environment variables."""
        return {
            # Core settings
            "log_level": self._get_str("LOG_LEVEL", default="INFO"),
            # MongoDB settings for the tax rate lookup table
            "mongo_url": self._get_str("DB_CONNECTION_URL", default=""),
            "mongo_db": self._get_str("DB_NAME", default="SALES_TAX"),
            "mongo_collection": self._get_str("RATES_COLLECTION", default="ZIP_TAX_RATES"),
            # TaxJar settings
            "taxjar_api_key": self._get_str("TAXJAR_API_KEY", default=""),
            "taxjar_api_url": self._get_str("TAXJAR_API_URL", default=""),
            "taxjar_cache_ttl": self._get_int("TAXJAR_CACHE_TTL", default=600),
            "taxjar_cache_size": self._get_int("TAXJAR_CACHE_SIZE", default=1024),
            # MaxMind city database used for the VAT-exempt territory check
            "geoip_database": self._get_str("GEOIP_DATABASE_PATH", default=""),
            # Tax policy
            "active_features": self._get_list("ACTIVE_FEATURES"),
            "taxable_us_states": self._get_list("TAXABLE_US_STATES"),
        }

    def _get_str(self, key: str, default: str = "") -> str:
        """Get string configuration value."""
        if self.env_file is None:
            return default
        return os.getenv(key, default)

    def _get_int(self, key: str, default: int = 0) -> int:
        """Get integer configuration value."""
        if self.env_file is None:
            return default
        try:
            return int(os.getenv(key, str(default)))
        except ValueError:
            return default

    def _get_list(self, key: str) -> List[str]:
        """Get a comma separated configuration value as a list."""
        raw = self._get_str(key, default="")
        return [item.strip() for item in raw.split(",") if item.strip()]

    def get(self, key: str, default: Any = None) -> Any:
        """Get configuration value."""
        return self._config.get(key, default)

    def __getitem__(self, key: str) -> Any:
        """Get configuration value using bracket notation."""
        return self._config[key]

    def __contains__(self, key: str) -> bool:
        """Check if configuration key exists."""
        return key in self._config
