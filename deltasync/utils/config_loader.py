"""Configuration loader for the delta sync engine."""

import os
import re
from pathlib import Path
from typing import Any, Dict, Optional

import structlog
import yaml
from pydantic import ValidationError

from deltasync.models.config import AppConfig

log = structlog.stdlib.get_logger()


class ConfigurationError(Exception):
    """Raised when configuration is invalid or missing."""

    pass


class ConfigLoader:
    """Loads and validates sync configuration from YAML files and environment variables."""

    def __init__(self, config_dir: Optional[Path] = None) -> None:
        """Initialize the ConfigLoader.

        Args:
            config_dir: Directory holding <env>.yaml files. Defaults to ./config
        """
        self.env_var_pattern = re.compile(r"\$\{([^}]+)\}")
        self.config_dir = Path(config_dir) if config_dir is not None else Path.cwd() / "config"

    def load_config(self, config_path: Optional[str] = None) -> AppConfig:
        """Load configuration from YAML file with environment variable substitution.

        Args:
            config_path: Path to the configuration YAML file. If None, uses
                config/<DELTASYNC_ENV>.yaml or config/default.yaml

        Returns:
            AppConfig: Validated application configuration

        Raises:
            ConfigurationError: If configuration is missing or invalid
        """
        if config_path is None:
            config_path = self._get_default_config_path()

        log.info("loading_configuration", config_path=config_path)

        config_dict = self._load_yaml_file(config_path)
        config_dict = self._substitute_env_vars(config_dict)

        try:
            app_config = AppConfig(**config_dict)
            log.info("configuration_loaded_successfully")
            return app_config
        except ValidationError as e:
            log.error("configuration_validation_failed", error=str(e))
            raise ConfigurationError(f"Configuration validation failed: {e}") from e

    def _get_default_config_path(self) -> str:
        env = os.getenv("DELTASYNC_ENV", "default")
        config_file = self.config_dir / f"{env}.yaml"

        if not config_file.exists():
            config_file = self.config_dir / "default.yaml"

        if not config_file.exists():
            raise ConfigurationError(
                f"Configuration file not found: {config_file}. "
                f"Please create config/default.yaml or set DELTASYNC_ENV to a valid environment."
            )

        return str(config_file)

    def _load_yaml_file(self, config_path: str) -> Dict[str, Any]:
        """Load YAML configuration file.

        Raises:
            ConfigurationError: If file cannot be read or parsed
        """
        try:
            with open(config_path, "r") as f:
                config_dict = yaml.safe_load(f)
        except FileNotFoundError as e:
            raise ConfigurationError(f"Configuration file not found: {config_path}") from e
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Failed to parse YAML file {config_path}: {e}") from e
        except OSError as e:
            raise ConfigurationError(f"Failed to load configuration file {config_path}: {e}") from e

        if config_dict is None:
            raise ConfigurationError(f"Configuration file is empty: {config_path}")
        if not isinstance(config_dict, dict):
            raise ConfigurationError(f"Configuration file must contain a mapping: {config_path}")

        log.debug("yaml_file_loaded", config_path=config_path)
        return config_dict

    def _substitute_env_vars(self, config: Any) -> Any:
        """Recursively substitute ${VAR_NAME} references."""
        if isinstance(config, dict):
            return {key: self._substitute_env_vars(value) for key, value in config.items()}
        elif isinstance(config, list):
            return [self._substitute_env_vars(item) for item in config]
        elif isinstance(config, str):
            return self._substitute_env_var_in_string(config)
        else:
            return config

    def _substitute_env_var_in_string(self, value: str) -> str:
        matches = self.env_var_pattern.findall(value)

        for var_name in matches:
            env_value = os.getenv(var_name)
            if env_value is None:
                raise ConfigurationError(
                    f"Required environment variable not set: {var_name}. "
                    f"Please set {var_name} in your environment or .env file."
                )
            value = value.replace(f"${{{var_name}}}", env_value)

        return value

    def validate_config(self, config: AppConfig) -> list[str]:
        """Validate configuration and return any warnings.

        Pydantic rejects invalid values at load time; this only reports
        settings that are legal but probably unintended.

        Args:
            config: Application configuration to validate

        Returns:
            List of warning messages (empty if no warnings)
        """
        warnings = []
        sync = config.sync

        if not sync.endpoint.startswith(("http://", "https://")):
            warnings.append(
                f"sync.endpoint '{sync.endpoint}' is not an http(s) URL; "
                f"HttpTransport will not be able to reach it"
            )

        first_delay = sync.retry_base_delay * 2
        if (
            sync.retry_attempts > 1
            and sync.retry_max_delay is not None
            and sync.retry_max_delay < first_delay
        ):
            warnings.append(
                f"sync.retry_max_delay ({sync.retry_max_delay}) is below the first backoff "
                f"delay ({first_delay}); every retry will wait the same time"
            )

        if sync.batch_size > 1000:
            warnings.append(
                f"sync.batch_size ({sync.batch_size}) is large; a single failed batch "
                f"will hold back up to {sync.batch_size} patches"
            )

        if warnings:
            log.warning("configuration_validation_warnings", warnings=warnings)

        return warnings
