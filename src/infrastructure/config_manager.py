"""Configuration Manager for Engine Deployment Options.

This module loads the deployment options of the analytics engine (local time
zone, week start, breakdown truncation, census window, critical diagnoses,
enabled units and the default snapshot location) from environment variables
or a JSON file.

Architecture:
    - Follows Hexagonal Architecture: Infrastructure layer isolated from domain
    - Type-safe configuration using Pydantic models
    - Fail-fast validation: an unknown time zone or unit is rejected on load,
      never at query time
"""

import json
import os
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import BaseModel, Field, field_validator

from src.domain.enums import Unit
from src.domain.services.analytics_engine import EngineOptions
from src.domain.services.distribution_builder import DEFAULT_TOP_N
from src.domain.services.risk_classifier import DEFAULT_CRITICAL_DIAGNOSES
from src.domain.services.time_series import DEFAULT_LAST_N_DAYS

logger = logging.getLogger(__name__)

WEEKDAY_NAMES = ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")


class EngineConfig(BaseModel):
    """Engine configuration model.

    Parameters:
        timezone: IANA zone name used as the ward's local time; None uses the
            host's local time with naive datetimes
        first_day_of_week: Weekday the "This Week" period starts on, as 0-6
            (Monday-Sunday) or a weekday name
        top_n: Number of groups shown for diagnosis and referral breakdowns
        census_window: Number of most recent days shown on the census chart
        critical_diagnoses: Diagnosis keywords that mark a patient as high risk
        enabled_units: Units that exist in this deployment
        snapshot_path: Default record-store export to read
    """

    timezone: Optional[str] = Field(None, description="IANA time zone (e.g. Africa/Nairobi)")
    first_day_of_week: int = Field(default=6, description="0 = Monday ... 6 = Sunday")
    top_n: int = Field(default=DEFAULT_TOP_N, gt=0, description="Breakdown truncation")
    census_window: int = Field(default=DEFAULT_LAST_N_DAYS, gt=0, description="Census chart days")
    critical_diagnoses: List[str] = Field(default_factory=lambda: list(DEFAULT_CRITICAL_DIAGNOSES))
    enabled_units: List[Unit] = Field(default_factory=lambda: list(Unit))
    snapshot_path: Optional[str] = Field(None, description="Default snapshot file")

    @field_validator("timezone")
    @classmethod
    def validate_timezone(cls, v: Optional[str]) -> Optional[str]:
        """Validate the zone exists in the IANA database."""
        if v is None or not v.strip():
            return None
        try:
            ZoneInfo(v.strip())
        except (ZoneInfoNotFoundError, ValueError) as e:
            raise ValueError(f"Unknown time zone: {v}") from e
        return v.strip()

    @field_validator("first_day_of_week", mode="before")
    @classmethod
    def validate_first_day_of_week(cls, v: Any) -> int:
        """Accept weekday numbers or names."""
        if isinstance(v, str):
            text = v.strip().lower()
            if text in WEEKDAY_NAMES:
                return WEEKDAY_NAMES.index(text)
            if not text.isdigit():
                raise ValueError(f"Unknown weekday: {v}")
            v = int(text)
        if not 0 <= int(v) <= 6:
            raise ValueError(f"first_day_of_week must be 0 (Monday) to 6 (Sunday). Got: {v}")
        return int(v)

    @field_validator("critical_diagnoses", "enabled_units", mode="before")
    @classmethod
    def split_comma_separated(cls, v: Any) -> Any:
        """Accept comma-separated strings as lists."""
        if isinstance(v, str):
            return [item.strip() for item in v.split(",") if item.strip()]
        return v

    @property
    def tzinfo(self) -> Optional[ZoneInfo]:
        return ZoneInfo(self.timezone) if self.timezone else None

    def to_engine_options(self) -> EngineOptions:
        """Convert to the options object the domain engine consumes."""
        return EngineOptions(
            tz=self.tzinfo,
            first_day_of_week=self.first_day_of_week,
            top_n=self.top_n,
            census_window=self.census_window,
            critical_diagnoses=tuple(self.critical_diagnoses),
            enabled_units=tuple(self.enabled_units),
        )


class ConfigManager:
    """Configuration manager for engine settings.

    Example Usage:
        ```python
        # Load from environment variables
        config = ConfigManager.from_environment()
        engine_config = config.get_engine_config()

        # Load from file
        config = ConfigManager.from_file("ward_census.json")
        engine_config = config.get_engine_config()
        ```
    """

    def __init__(self, config_data: Dict[str, Any]):
        """Initialize configuration manager.

        Parameters:
            config_data: Configuration dictionary
        """
        self._config_data = config_data
        self._engine_config: Optional[EngineConfig] = None

    @classmethod
    def from_environment(cls) -> 'ConfigManager':
        """Load configuration from environment variables.

        Environment Variables:
            - WARD_TIMEZONE: IANA time zone
            - WARD_FIRST_DAY_OF_WEEK: 0-6 or weekday name
            - WARD_TOP_N: Breakdown truncation
            - WARD_CENSUS_WINDOW: Census chart days
            - WARD_CRITICAL_DIAGNOSES: Comma-separated diagnosis keywords
            - WARD_ENABLED_UNITS: Comma-separated unit names
            - WARD_SNAPSHOT_PATH: Default snapshot file

        Returns:
            ConfigManager instance
        """
        env_map = {
            "timezone": "WARD_TIMEZONE",
            "first_day_of_week": "WARD_FIRST_DAY_OF_WEEK",
            "top_n": "WARD_TOP_N",
            "census_window": "WARD_CENSUS_WINDOW",
            "critical_diagnoses": "WARD_CRITICAL_DIAGNOSES",
            "enabled_units": "WARD_ENABLED_UNITS",
            "snapshot_path": "WARD_SNAPSHOT_PATH",
        }
        engine = {
            key: os.getenv(variable)
            for key, variable in env_map.items()
            if os.getenv(variable)
        }
        return cls({"engine": engine})

    @classmethod
    def from_file(cls, config_path: str) -> 'ConfigManager':
        """Load configuration from a JSON file.

        The file holds an ``engine`` object with the EngineConfig fields.

        Parameters:
            config_path: Path to configuration file

        Returns:
            ConfigManager instance

        Raises:
            FileNotFoundError: If config file doesn't exist
            ValueError: If config file is invalid
        """
        config_file = Path(config_path)
        if not config_file.exists():
            raise FileNotFoundError(f"Configuration file not found: {config_path}")

        try:
            with open(config_file, 'r') as f:
                config_data = json.load(f)
        except json.JSONDecodeError as e:
            raise ValueError(f"Invalid JSON in configuration file: {str(e)}") from e

        if not isinstance(config_data, dict):
            raise ValueError(f"Configuration file must contain a JSON object: {config_path}")
        logger.debug(f"Loaded configuration from {config_path}")
        return cls(config_data)

    def get_engine_config(self) -> EngineConfig:
        """Get engine configuration.

        Returns:
            EngineConfig instance (validated on first access)
        """
        if self._engine_config is None:
            self._engine_config = EngineConfig(**self._config_data.get("engine", {}))
        return self._engine_config

    def get(self, key: str, default: Any = None) -> Any:
        """Get configuration value by key.

        Parameters:
            key: Configuration key (supports dot notation, e.g., "engine.timezone")
            default: Default value if key not found

        Returns:
            Configuration value
        """
        keys = key.split(".")
        value = self._config_data

        for k in keys:
            if isinstance(value, dict):
                value = value.get(k)
            else:
                return default

        return value if value is not None else default


# ============================================================================
# Convenience Functions
# ============================================================================

def get_engine_config() -> EngineConfig:
    """Convenience function to get engine configuration from environment.

    Returns:
        EngineConfig instance
    """
    config_manager = ConfigManager.from_environment()
    return config_manager.get_engine_config()
