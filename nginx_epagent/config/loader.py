"""YAML configuration loading for the forwarder."""

import os
import re
from typing import Any

import yaml

from .models import AgentConfig


# ${VAR} or ${VAR:-fallback}
ENV_PLACEHOLDER = re.compile(r'\$\{(\w+)(?::-([^}]*))?\}')


class ConfigLoader:
    """Load and validate forwarder configuration."""

    @staticmethod
    def load_from_file(config_path: str) -> AgentConfig:
        """
        Read a YAML file, expand environment placeholders and validate it.

        Raises:
            FileNotFoundError: If config file doesn't exist
            yaml.YAMLError: If YAML parsing fails
            pydantic.ValidationError: If configuration validation fails
        """
        with open(config_path, 'r') as f:
            raw_config = yaml.safe_load(f) or {}

        return AgentConfig(**ConfigLoader._substitute_env_vars(raw_config))

    @staticmethod
    def _substitute_env_vars(obj: Any) -> Any:
        """
        Expand ``${VAR}`` / ``${VAR:-fallback}`` in every string value.

        An unset variable without a fallback becomes an empty string.
        """
        if isinstance(obj, str):
            return ENV_PLACEHOLDER.sub(
                lambda m: os.environ.get(m.group(1), m.group(2) or ''), obj
            )
        if isinstance(obj, dict):
            return {k: ConfigLoader._substitute_env_vars(v) for k, v in obj.items()}
        if isinstance(obj, list):
            return [ConfigLoader._substitute_env_vars(item) for item in obj]
        return obj
