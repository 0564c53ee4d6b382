"""
Configuration loading and validation for the anonymizing MySQL dumper.
"""

import os
import re
from typing import Any, Optional

import yaml

from .exceptions import ConfigurationError
from .models import ConnectionSettings, DumpOptions


class ConfigLoader:
    """Loads configuration from a YAML file and builds typed settings."""

    ENV_VAR_PATTERN = re.compile(r'\$\{([^}]+)\}')

    def __init__(self, config_path: str):
        self.config_path = config_path
        self.config = self._load_config()

    def _load_config(self) -> dict[str, Any]:
        """Load configuration from YAML file."""
        with open(self.config_path, 'r') as f:
            config = yaml.safe_load(f) or {}

        if not isinstance(config, dict):
            raise ConfigurationError(f"'{self.config_path}' must contain a mapping")
        return self._resolve_env_vars(config)

    def _resolve_env_vars(self, obj: Any) -> Any:
        """Recursively resolve environment variables in config."""
        if isinstance(obj, str):
            for match in self.ENV_VAR_PATTERN.findall(obj):
                obj = obj.replace(f'${{{match}}}', os.environ.get(match, ''))
            return obj
        elif isinstance(obj, dict):
            return {k: self._resolve_env_vars(v) for k, v in obj.items()}
        elif isinstance(obj, list):
            return [self._resolve_env_vars(item) for item in obj]
        return obj

    def _section(self, name: str) -> dict[str, Any]:
        section = self.config.get(name) or {}
        if not isinstance(section, dict):
            raise ConfigurationError(f"Section '{name}' must be a mapping")
        return section

    def get_connection_settings(self) -> ConnectionSettings:
        """Connection pool settings; raises ConfigurationError without a database."""
        return ConnectionSettings.from_config(self._section('connection'))

    def get_dump_options(self) -> DumpOptions:
        """What to dump and how."""
        return DumpOptions.from_config(self._section('dump'))

    def get_matcher_hints(self) -> dict[str, Any]:
        """Seed hint tree."""
        return self._section('matcher_hints')

    def get_detector_settings(self) -> Optional[dict[str, Any]]:
        """Detector class and options, if configured."""
        return self.config.get('detector')

    def get_logging_settings(self) -> dict[str, Any]:
        """Get logging settings."""
        return self._section('logging')
