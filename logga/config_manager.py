#!/usr/bin/env python3
"""
Configuration Manager for Logga
Loads and validates the YAML configuration

Resolves the three inputs the agent needs before it starts: the file to
tail, the directory to watch for archives and the target bucket.
"""

import logging
import os
from pathlib import Path
from typing import Any, Dict

import yaml

logger = logging.getLogger(__name__)

DEFAULT_REGION = 'us-east-1'
DEFAULT_POLL_INTERVAL_MS = 100
DEFAULT_BUFFER_SIZE = 65536
DEFAULT_ARCHIVE_EXTENSION = 'zip'


class ConfigValidationError(Exception):
    """
    Raised when configuration validation fails.

    The config file is malformed, missing required fields, or contains
    invalid values.
    """

    pass


class ConfigManager:
    """
    Manages agent configuration from a YAML file.

    Example:
        >>> config = ConfigManager('/etc/logga/config.yaml')
        >>> bucket = config.get('s3.bucket')
        >>> interval = config.get('tail.poll_interval_ms', 100)

    Attributes:
        config_path (Path): Path to the configuration file
        config (dict): Loaded configuration dictionary
    """

    def __init__(self, config_path: str, overrides: Dict[str, Any] = None):
        """
        Initialize config manager and load configuration.

        Args:
            config_path: Path to YAML config file
            overrides: Dot-notation values applied before validation
                (e.g. {'tail.path': '/var/log/access.log'} from CLI flags)

        Raises:
            FileNotFoundError: If config file doesn't exist
            yaml.YAMLError: If YAML syntax is invalid
            ConfigValidationError: If validation fails
        """
        self.config_path = Path(config_path)
        self.overrides = overrides or {}
        self.config = {}
        self.load_config()

    def load_config(self) -> Dict[str, Any]:
        """Load, apply overrides and validate configuration from YAML file."""
        if not self.config_path.exists():
            raise FileNotFoundError(f"Config file not found: {self.config_path}")

        with open(self.config_path, "r") as f:
            self.config = yaml.safe_load(f)

        if self.config is None:
            raise ConfigValidationError("Config file is empty or contains only whitespace")

        if not isinstance(self.config, dict):
            raise ConfigValidationError("Config file must contain a mapping at the top level")

        self.config = self._expand_env_vars(self.config)

        for key, value in self.overrides.items():
            if value is not None:
                self._set(key, value)

        self._apply_defaults(self.config)
        self.validate_config(self.config)
        logger.info(f"Loaded config from {self.config_path}")
        return self.config

    def _expand_env_vars(self, config: Any) -> Any:
        """
        Recursively expand ~ and ${VAR} in string values.

        Examples:
            "${HOME}/.logga" -> "/home/ABC/.logga"
            "~/logs" -> "/home/ABC/logs"
        """
        if isinstance(config, dict):
            return {key: self._expand_env_vars(value) for key, value in config.items()}
        elif isinstance(config, list):
            return [self._expand_env_vars(item) for item in config]
        elif isinstance(config, str):
            return os.path.expandvars(os.path.expanduser(config))
        else:
            return config

    def _set(self, key: str, value: Any):
        keys = key.split(".")
        target = self.config
        for k in keys[:-1]:
            if not isinstance(target.get(k), dict):
                target[k] = {}
            target = target[k]
        target[keys[-1]] = value

    def _apply_defaults(self, config: Dict[str, Any]):
        for section in ("s3", "tail", "watch"):
            if config.get(section) is None:
                config[section] = {}

        if isinstance(config["s3"], dict):
            config["s3"].setdefault("region", DEFAULT_REGION)
        if isinstance(config["tail"], dict):
            config["tail"].setdefault("poll_interval_ms", DEFAULT_POLL_INTERVAL_MS)
            config["tail"].setdefault("buffer_size", DEFAULT_BUFFER_SIZE)
        if isinstance(config["watch"], dict):
            config["watch"].setdefault("extension", DEFAULT_ARCHIVE_EXTENSION)

    def validate_config(self, config: Dict[str, Any]) -> bool:
        """Validate configuration schema and values."""
        for key in ("s3", "tail", "watch"):
            if not isinstance(config.get(key), dict):
                raise ConfigValidationError(f"{key} must be a mapping")

        self._validate_s3_config(config["s3"])
        self._validate_tail_config(config["tail"])
        self._validate_watch_config(config["watch"])

        logger.info("Configuration validated successfully")
        return True

    def _validate_s3_config(self, s3_config: Dict[str, Any]) -> None:
        """Validate S3 configuration section."""
        for key in ("bucket", "region"):
            value = s3_config.get(key)
            if not isinstance(value, str) or not value:
                raise ConfigValidationError(f"s3.{key} must be a non-empty string")

        if "endpoint" in s3_config and s3_config["endpoint"] is not None:
            if not isinstance(s3_config["endpoint"], str) or not s3_config["endpoint"]:
                raise ConfigValidationError("s3.endpoint must be a non-empty string")

        if "profile" in s3_config and s3_config["profile"] is not None:
            if not isinstance(s3_config["profile"], str):
                raise ConfigValidationError("s3.profile must be a string")

    def _validate_tail_config(self, tail_config: Dict[str, Any]) -> None:
        """Validate tail configuration section."""
        path = tail_config.get("path")
        if not isinstance(path, str) or not path:
            raise ConfigValidationError("tail.path must be a non-empty string")

        for key in ("poll_interval_ms", "buffer_size"):
            value = tail_config[key]
            if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
                raise ConfigValidationError(f"tail.{key} must be a positive integer, got: {value}")

        if tail_config.get("checkpoint_file") is not None:
            if not isinstance(tail_config["checkpoint_file"], str):
                raise ConfigValidationError("tail.checkpoint_file must be string")

    def _validate_watch_config(self, watch_config: Dict[str, Any]) -> None:
        """Validate watch configuration section."""
        directory = watch_config.get("directory")
        if not isinstance(directory, str) or not directory:
            raise ConfigValidationError("watch.directory must be a non-empty string")

        extension = watch_config["extension"]
        if not isinstance(extension, str) or not extension.lstrip("."):
            raise ConfigValidationError("watch.extension must be a non-empty string")

    def get(self, key: str, default=None) -> Any:
        """
        Get configuration value by dot-separated key path.

        Examples:
            >>> config.get('s3.bucket')  # 'log-archive'
            >>> config.get('missing.key', 'default')  # 'default'
        """
        keys = key.split(".")
        value = self.config

        for k in keys:
            if isinstance(value, dict) and k in value:
                value = value[k]
            else:
                return default

        return value
