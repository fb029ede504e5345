"""
tokenvest Configuration Manager

Centralized configuration management supporting:
- Environment-based configs (development/staging/production/testnet)
- Config file loading (YAML/JSON)
- Command-line override support
- Environment variable support (TOKENVEST_*)
- Config validation
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import asdict, dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import yaml
from dotenv import load_dotenv

from tokenvest.vesting.models import (
    DEFAULT_ALLOWED_DURATIONS,
    DEFAULT_CUSTODIAN,
    DEFAULT_UNLOCK_PERIOD,
    VestingConfig,
)

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_DIR = Path(__file__).resolve().parent.parent / "config"
ENV_PREFIX = "TOKENVEST_"


class ConfigurationError(Exception):
    """Raised when required configuration is missing or invalid."""
    pass


class Environment(Enum):
    """Environment types"""
    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"
    TESTNET = "testnet"


@dataclass
class VestingSettings:
    """Vesting ledger settings"""
    allowed_durations: List[int] = field(default_factory=lambda: list(DEFAULT_ALLOWED_DURATIONS))
    unlock_period: int = DEFAULT_UNLOCK_PERIOD
    custodian: str = DEFAULT_CUSTODIAN
    asset: Optional[str] = None

    def validate(self):
        """Validate vesting configuration"""
        if not isinstance(self.allowed_durations, list) or not self.allowed_durations:
            raise ConfigurationError("allowed_durations must be a non-empty list")
        if not isinstance(self.unlock_period, int) or self.unlock_period <= 0:
            raise ConfigurationError(
                f"Invalid unlock_period: {self.unlock_period}. Must be a positive integer"
            )
        for duration in self.allowed_durations:
            if not isinstance(duration, int) or duration <= 0:
                raise ConfigurationError(f"Invalid duration: {duration}. Must be a positive integer")
            if duration < self.unlock_period:
                raise ConfigurationError(
                    f"Invalid duration: {duration}. Must be >= unlock_period ({self.unlock_period})"
                )
        if not self.custodian:
            raise ConfigurationError("custodian cannot be empty")
        if self.asset is not None and not str(self.asset).strip():
            raise ConfigurationError("asset cannot be blank")


@dataclass
class LoggingConfig:
    """Logging configuration settings"""
    level: str = "INFO"
    log_file: Optional[str] = None
    json_format: bool = True

    def validate(self):
        """Validate logging configuration"""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if str(self.level).upper() not in valid_levels:
            raise ConfigurationError(f"Invalid log level: {self.level}. Must be one of {valid_levels}")


@dataclass
class MetricsConfig:
    """Metrics configuration settings"""
    enabled: bool = True

    def validate(self):
        if not isinstance(self.enabled, bool):
            raise ConfigurationError(f"Invalid metrics.enabled: {self.enabled}. Must be a boolean")


class ConfigManager:
    """
    Configuration Manager for tokenvest

    Sources, highest priority first:
    1. Command-line arguments
    2. Environment variables (TOKENVEST_SECTION_KEY)
    3. Environment-specific config file
    4. Default config file
    5. Built-in defaults
    """

    SECTIONS = ("vesting", "logging", "metrics")

    def __init__(
        self,
        environment: Optional[str] = None,
        config_dir: Optional[str] = None,
        cli_overrides: Optional[Dict[str, Any]] = None,
    ):
        load_dotenv()

        self.environment = self._determine_environment(environment)
        self.config_dir = Path(config_dir).resolve() if config_dir else DEFAULT_CONFIG_DIR
        self.cli_overrides = cli_overrides or {}

        self.vesting: VestingSettings = VestingSettings()
        self.logging: LoggingConfig = LoggingConfig()
        self.metrics: MetricsConfig = MetricsConfig()

        self._raw_config: Dict[str, Any] = {}

        self._load_configuration()

    def _determine_environment(self, environment: Optional[str]) -> Environment:
        env_str = (environment or os.getenv(f"{ENV_PREFIX}ENVIRONMENT", "development")).lower()

        env_mapping = {
            "dev": Environment.DEVELOPMENT,
            "development": Environment.DEVELOPMENT,
            "staging": Environment.STAGING,
            "stage": Environment.STAGING,
            "prod": Environment.PRODUCTION,
            "production": Environment.PRODUCTION,
            "testnet": Environment.TESTNET,
            "test": Environment.TESTNET,
        }
        return env_mapping.get(env_str, Environment.DEVELOPMENT)

    def _load_configuration(self):
        """Load configuration from all sources with proper precedence"""
        default_config = self._load_config_file("default")
        env_config = self._load_config_file(self.environment.value)

        merged_config = self._merge_configs(default_config, env_config)
        merged_config = self._apply_env_variables(merged_config)
        merged_config = self._apply_cli_overrides(merged_config)

        self._raw_config = merged_config

        self._parse_configuration(merged_config)
        self._validate_configuration()
        logger.debug(
            "Configuration loaded",
            extra={"event": "config.loaded", "environment": self.environment.value},
        )

    def _load_config_file(self, filename: str) -> Dict[str, Any]:
        yaml_path = self.config_dir / f"{filename}.yaml"
        if yaml_path.exists():
            with open(yaml_path, "r") as f:
                return yaml.safe_load(f) or {}

        json_path = self.config_dir / f"{filename}.json"
        if json_path.exists():
            with open(json_path, "r") as f:
                return json.load(f)

        return {}

    def _merge_configs(self, base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
        """Deep merge two configuration dictionaries"""
        result = base.copy()

        for key, value in override.items():
            if key in result and isinstance(result[key], dict) and isinstance(value, dict):
                result[key] = self._merge_configs(result[key], value)
            else:
                result[key] = value

        return result

    def _apply_env_variables(self, config: Dict[str, Any]) -> Dict[str, Any]:
        """
        Apply environment variable overrides.

        Example:
        TOKENVEST_VESTING_UNLOCK_PERIOD=2592000
        TOKENVEST_VESTING_ALLOWED_DURATIONS=7776000,15552000
        """
        result = {key: (value.copy() if isinstance(value, dict) else value) for key, value in config.items()}

        for key, value in os.environ.items():
            if not key.startswith(ENV_PREFIX) or key == f"{ENV_PREFIX}ENVIRONMENT":
                continue

            parts = key[len(ENV_PREFIX):].lower().split("_")
            if len(parts) < 2:
                continue

            section = parts[0]
            config_key = "_".join(parts[1:])
            if section not in self.SECTIONS:
                continue

            if not isinstance(result.get(section), dict):
                result[section] = {}
            result[section][config_key] = self._parse_env_value(value)

        return result

    def _parse_env_value(self, value: str) -> Union[str, int, float, bool, list]:
        """Parse environment variable value to appropriate type"""
        if "," in value:
            return [self._parse_env_value(item.strip()) for item in value.split(",") if item.strip()]

        if value.lower() in ("true", "yes", "on"):
            return True
        if value.lower() in ("false", "no", "off"):
            return False

        try:
            return int(value)
        except ValueError:
            pass

        try:
            return float(value)
        except ValueError:
            pass

        return value

    def _apply_cli_overrides(self, config: Dict[str, Any]) -> Dict[str, Any]:
        result = config.copy()

        for key, value in self.cli_overrides.items():
            parts = key.split(".")

            if len(parts) == 1:
                result[key] = value
            elif len(parts) == 2:
                section, config_key = parts
                if not isinstance(result.get(section), dict):
                    result[section] = {}
                else:
                    result[section] = dict(result[section])
                result[section][config_key] = value

        return result

    def _parse_configuration(self, config: Dict[str, Any]):
        try:
            self.vesting = VestingSettings(**(config.get("vesting") or {}))
            self.logging = LoggingConfig(**(config.get("logging") or {}))
            self.metrics = MetricsConfig(**(config.get("metrics") or {}))
        except TypeError as exc:
            raise ConfigurationError(f"Unknown configuration key: {exc}") from exc

        if isinstance(self.vesting.allowed_durations, int):
            self.vesting.allowed_durations = [self.vesting.allowed_durations]

    def _validate_configuration(self):
        self.vesting.validate()
        self.logging.validate()
        self.metrics.validate()

    def get(self, key: str, default: Any = None) -> Any:
        """
        Get configuration value by dot-notation key (e.g., "vesting.unlock_period")
        """
        value: Any = self.to_dict()
        for part in key.split("."):
            if isinstance(value, dict) and part in value:
                value = value[part]
            else:
                return default
        return value

    def get_section(self, section: str) -> Optional[Dict[str, Any]]:
        return self.to_dict().get(section)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "environment": self.environment.value,
            "vesting": asdict(self.vesting),
            "logging": asdict(self.logging),
            "metrics": asdict(self.metrics),
        }

    def to_vesting_config(self) -> VestingConfig:
        """Build the runtime ledger configuration."""
        return VestingConfig(
            allowed_durations=tuple(self.vesting.allowed_durations),
            unlock_period=self.vesting.unlock_period,
            custodian=self.vesting.custodian,
        )

    def reload(self):
        self._load_configuration()

    def __repr__(self) -> str:
        return f"ConfigManager(environment={self.environment.value})"


_config_manager: Optional[ConfigManager] = None


def get_config_manager(
    environment: Optional[str] = None,
    config_dir: Optional[str] = None,
    cli_overrides: Optional[Dict[str, Any]] = None,
    force_reload: bool = False,
) -> ConfigManager:
    """
    Get or create the ConfigManager singleton instance.
    """
    global _config_manager

    if _config_manager is None or force_reload:
        _config_manager = ConfigManager(
            environment=environment,
            config_dir=config_dir,
            cli_overrides=cli_overrides,
        )

    return _config_manager
