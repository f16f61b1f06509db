import os
import re
from pathlib import Path
from string import Template
from typing import Any, Optional

import structlog
import yaml
from dotenv import load_dotenv
from pydantic import ValidationError

from medsearch.models.config import OrchestratorConfig
from medsearch.utils.exceptions import ConfigValidationError

logger = structlog.get_logger()

DEFAULT_CONFIG_PATH = "config/medsearch.yaml"

_UNRESOLVED_VAR = re.compile(r"^\$\{\w+\}$")


class ConfigManager:
    """Loads and validates the orchestrator configuration"""

    def __init__(self, config_path: str = DEFAULT_CONFIG_PATH):
        self.config_path = Path(config_path)
        self.env_loaded = False
        self._config: Optional[OrchestratorConfig] = None

    def load_config(self) -> OrchestratorConfig:
        """Load and validate configuration"""
        if self._config:
            return self._config

        # 1. Load environment
        if not self.env_loaded:  # pragma: no cover
            load_dotenv()
            self.env_loaded = True

        # 2. Check file existence
        if not self.config_path.exists():
            raise FileNotFoundError(f"Configuration file not found: {self.config_path}")

        # 3. Read YAML
        try:
            with open(self.config_path) as f:
                raw_content = f.read()
        except OSError as e:
            raise ConfigValidationError(f"Failed to read config file: {e}")

        # 4. Substitute ${VAR} references from the environment
        try:
            template = Template(raw_content)
            substituted_content = template.safe_substitute(os.environ)
            config_data = yaml.safe_load(substituted_content) or {}
        except yaml.YAMLError as e:
            raise ConfigValidationError(
                f"Failed to parse YAML or substitute variables: {e}"
            )

        if not isinstance(config_data, dict):
            raise ConfigValidationError("Configuration root must be a mapping")

        # Unset variables fall back to model defaults
        config_data = _drop_unresolved(config_data)

        # 5. Validate with Pydantic
        try:
            self._config = OrchestratorConfig(**config_data)
        except ValidationError as e:
            raise ConfigValidationError(f"Invalid configuration: {e}")

        logger.info(
            "config_loaded",
            path=str(self.config_path),
            providers=[p.name for p in self._config.enabled_providers],
            cache_backend=self._config.cache.backend.value,
        )
        return self._config


def _drop_unresolved(data: Any) -> Any:
    """Remove mapping keys whose value is a bare, unsubstituted ${VAR}."""
    if isinstance(data, dict):
        return {
            key: _drop_unresolved(value)
            for key, value in data.items()
            if not (isinstance(value, str) and _UNRESOLVED_VAR.match(value))
        }
    if isinstance(data, list):
        return [_drop_unresolved(item) for item in data]
    return data
