"""
================================================================================
Configuration Loader
================================================================================

YAML-based configuration management with environment variable override support.

Features:
    - Optional YAML defaults (config/config.yaml)
    - Environment variable override (API_URL overrides api.url)
    - .env / .env.<ENVIRONMENT> loading through python-dotenv
    - Required-key validation with the variable name in the error

Author: Automation Team
License: MIT
================================================================================
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Dict, Iterable, Optional

import yaml
from dotenv import load_dotenv
from loguru import logger


PROJECT_ROOT = Path(__file__).parent.parent.parent

# Default configuration file paths
DEFAULT_CONFIG_PATH = PROJECT_ROOT / "config" / "config.yaml"

# Keys every example needs before it can talk to Dock Health.
REQUIRED_KEYS = (
    "auth.url",
    "api.url",
    "api.key",
    "client.id",
    "client.secret",
    "domain",
    "email",
    "callback.local_port",
    "ngrok.authtoken",
)


class ConfigurationError(Exception):
    """Raised when configuration loading or access fails."""
    pass


def env_name(key: str) -> str:
    """Return the environment variable that overrides a dot-notation key."""
    return key.upper().replace(".", "_")


def load_environment(
    environment: Optional[str] = None,
    directory: Optional[Path] = None,
) -> None:
    """
    Load `.env` and then `.env.<environment>` into os.environ.

    Variables already present in the process environment win, so CI can
    always override the files.

    Args:
        environment: Environment name; defaults to ENVIRONMENT, then ENV.
        directory: Directory holding the files; defaults to the repo root.
    """
    directory = directory or PROJECT_ROOT
    environment = environment or os.getenv("ENVIRONMENT", os.getenv("ENV"))

    candidates = [directory / ".env"]
    if environment and environment != "production":
        # Later files do not override earlier ones, so load the specific one first.
        candidates.insert(0, directory / f".env.{environment}")

    for path in candidates:
        if path.exists():
            load_dotenv(path, override=False)
            logger.debug(f"Loaded environment file: {path}")


class ConfigLoader:
    """
    Configuration loader with YAML and environment variable support.

    Configuration hierarchy (highest to lowest priority):
        1. Environment variables (API_URL)
        2. YAML configuration file
        3. Default values

    Usage:
        >>> config = ConfigLoader()
        >>> config.get("api.url")
        'https://api.dock.health'

        >>> config.require("api.url", "api.key")

    Environment Variable Mapping:
        - auth.url -> AUTH_URL
        - client.secret -> CLIENT_SECRET
        - organization.identifier -> ORGANIZATION_IDENTIFIER
    """

    _instance: Optional["ConfigLoader"] = None
    _config: Dict[str, Any] = {}

    def __new__(cls, config_path: Optional[Path] = None) -> "ConfigLoader":
        """Singleton pattern - return existing instance if available."""
        if cls._instance is None:
            cls._instance = super().__new__(cls)
            cls._instance._initialized = False
        return cls._instance

    def __init__(self, config_path: Optional[Path] = None) -> None:
        """
        Initialize configuration loader.

        Args:
            config_path: Path to YAML configuration file.
                        Uses DEFAULT_CONFIG_PATH if not specified.
        """
        if getattr(self, "_initialized", False):
            return

        self._config_path = config_path or DEFAULT_CONFIG_PATH
        self._load_config()
        self._initialized = True

    def _load_config(self) -> None:
        """Load configuration from YAML file."""
        if not self._config_path.exists():
            logger.debug(
                f"Configuration file not found: {self._config_path}. "
                f"Using defaults and environment variables only."
            )
            self._config = {}
            return

        try:
            with open(self._config_path, "r", encoding="utf-8") as f:
                self._config = yaml.safe_load(f) or {}
            logger.debug(f"Loaded configuration from: {self._config_path}")
        except yaml.YAMLError as e:
            raise ConfigurationError(
                f"Invalid YAML in configuration file: {e}"
            ) from e

    def get(self, key: str, default: Any = None) -> Any:
        """
        Get configuration value by dot-notation path.

        First checks environment variables, then YAML config, then default.
        Empty environment variables count as unset.

        Args:
            key: Dot-notation path (e.g., "api.url")
            default: Default value if key not found

        Returns:
            Configuration value or default
        """
        env_value = os.environ.get(env_name(key))
        if env_value:
            return self._convert_type(env_value, default)

        value = self._config
        for part in key.split("."):
            if isinstance(value, dict):
                value = value.get(part)
            else:
                value = None

            if value is None:
                return default

        return value

    def require(self, *keys: str) -> None:
        """
        Ensure configuration keys are set.

        Args:
            keys: Dot-notation keys; REQUIRED_KEYS when none are given.

        Raises:
            ConfigurationError: Naming the environment variable of the
                first missing key.
        """
        for key in keys or REQUIRED_KEYS:
            if self.get(key) in (None, ""):
                raise ConfigurationError(f"{env_name(key)} is undefined!")

    def missing(self, keys: Iterable[str] = REQUIRED_KEYS) -> list:
        """Return the environment variable names of unset keys."""
        return [env_name(key) for key in keys if self.get(key) in (None, "")]

    def get_section(self, section: str) -> Dict[str, Any]:
        """
        Get entire configuration section.

        Args:
            section: Section name (e.g., "api", "callback")

        Returns:
            Section dictionary or empty dict if not found
        """
        return self._config.get(section, {})

    def reload(self) -> None:
        """Reload configuration from file."""
        self._load_config()
        logger.info(f"Configuration reloaded from: {self._config_path}")

    def _convert_type(self, value: str, reference: Any) -> Any:
        """
        Convert string value to match reference type.

        Used for environment variables which are always strings.
        """
        if reference is None:
            return value

        if isinstance(reference, bool):
            return value.lower() in ("true", "1", "yes", "on")
        if isinstance(reference, int):
            try:
                return int(value)
            except ValueError:
                return value
        if isinstance(reference, float):
            try:
                return float(value)
            except ValueError:
                return value

        return value

    @classmethod
    def reset(cls) -> None:
        """
        Reset singleton instance.

        Useful for testing when configuration needs to be reloaded
        with different settings.
        """
        cls._instance = None
        cls._config = {}


__all__ = [
    "ConfigLoader",
    "ConfigurationError",
    "REQUIRED_KEYS",
    "env_name",
    "load_environment",
]
