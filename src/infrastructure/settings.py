"""Application Settings and Configuration.

This module provides application-wide settings that combine the engine
configuration from the configuration manager with application-specific
defaults.
"""

import os
from typing import Optional

from src.infrastructure.config_manager import ConfigManager, EngineConfig, get_engine_config

# Application metadata
APP_NAME = "Ward-Census"
APP_VERSION = "1.0.0"


class Settings:
    """Application settings loaded from configuration manager and environment.

    This class provides a unified interface for accessing application settings,
    combining values from the configuration manager with environment variables
    and sensible defaults.
    """

    def __init__(self):
        """Initialize settings from configuration manager and environment."""
        self._engine_config: Optional[EngineConfig] = None
        self._config_manager: Optional[ConfigManager] = None

        # Application settings from environment
        self.app_name = os.getenv("WARD_APP_NAME", APP_NAME)
        self.app_version = APP_VERSION

        # Logging
        self.log_level = os.getenv("WARD_LOG_LEVEL", "INFO")
        self.json_logs = os.getenv("WARD_JSON_LOGS", "false").lower() == "true"

        # Dashboard API
        self.cors_origins = [
            origin.strip()
            for origin in os.getenv("WARD_CORS_ORIGINS", "http://localhost:3000").split(",")
            if origin.strip()
        ]

    @property
    def engine_config(self) -> EngineConfig:
        """Get engine configuration.

        Returns:
            EngineConfig instance loaded lazily on first access
        """
        if self._engine_config is None:
            self._engine_config = get_engine_config()
        return self._engine_config

    @property
    def config_manager(self) -> ConfigManager:
        """Get configuration manager instance.

        Returns:
            ConfigManager instance
        """
        if self._config_manager is None:
            self._config_manager = ConfigManager.from_environment()
        return self._config_manager

    def get_snapshot_path(self) -> Optional[str]:
        """Default snapshot file, if one is configured."""
        return self.engine_config.snapshot_path


# Global settings instance
settings = Settings()
