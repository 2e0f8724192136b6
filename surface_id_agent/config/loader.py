"""
Configuration loader for the Surface ID Agent.

Loads a TOML or JSON file with the sections:
- desktop-app (array): surface id rules
- desktop-app-default: default id range for unmatched applications
- redis-server: registry endpoint
"""

import json
import logging
import os
import tomllib
from pathlib import Path
from typing import Any, Dict, Optional

from pydantic import ValidationError

from ..errors import ConfigLoadError, ErrorCode
from ..models import AgentConfig, DefaultRange, RegistryEndpoint, SurfaceRule

logger = logging.getLogger(__name__)

CONFIG_ENV_VAR = "SURFACE_ID_AGENT_CONFIG"
DEFAULT_CONFIG_PATH = Path.home() / ".config" / "surface-id-agent" / "config.toml"

RULE_SECTION = "desktop-app"
DEFAULT_SECTION = "desktop-app-default"
REGISTRY_SECTION = "redis-server"


def resolve_config_path(config_path: Optional[Path] = None) -> Path:
    """Explicit path, then $SURFACE_ID_AGENT_CONFIG, then the default path."""
    if config_path is not None:
        return Path(config_path)
    env_path = os.environ.get(CONFIG_ENV_VAR)
    if env_path:
        return Path(env_path)
    return DEFAULT_CONFIG_PATH


class ConfigLoader:
    """Loads agent configuration from TOML or JSON files."""

    def __init__(self, config_path: Optional[Path] = None):
        """
        Initialize configuration loader.

        Args:
            config_path: Path to the configuration file (see resolve_config_path)
        """
        self.config_path = resolve_config_path(config_path)

    def read(self) -> Dict[str, Any]:
        """
        Read the raw configuration document.

        Raises:
            ConfigLoadError: If the file is missing or has invalid syntax
        """
        if not self.config_path.exists():
            raise ConfigLoadError(
                str(self.config_path), "file does not exist", code=ErrorCode.CONFIG_NOT_FOUND
            )

        try:
            if self.config_path.suffix == ".json":
                with open(self.config_path, "r") as f:
                    data = json.load(f)
            else:
                with open(self.config_path, "rb") as f:
                    data = tomllib.load(f)
        except (json.JSONDecodeError, tomllib.TOMLDecodeError) as e:
            raise ConfigLoadError(str(self.config_path), f"syntax error: {e}")
        except OSError as e:
            raise ConfigLoadError(str(self.config_path), str(e))

        if not isinstance(data, dict):
            raise ConfigLoadError(str(self.config_path), "top level must be a table/object")

        return data

    def load(self) -> AgentConfig:
        """
        Load and validate the configuration.

        Returns:
            AgentConfig with rules in declaration order

        Raises:
            ConfigLoadError: On syntax errors, schema violations, or when
                neither rules nor a default range are configured
        """
        data = self.read()
        config = self.parse(data)
        logger.info(
            f"Loaded configuration from {self.config_path}: {len(config.rules)} rules, "
            f"default range {'set' if config.default_range else 'not set'}, "
            f"registry {config.registry}"
        )
        return config

    def parse(self, data: Dict[str, Any]) -> AgentConfig:
        """Build an AgentConfig from a raw configuration document."""
        path = str(self.config_path)

        try:
            rules_data = data.get(RULE_SECTION, [])
            if isinstance(rules_data, dict):
                rules_data = [rules_data]
            if not isinstance(rules_data, list):
                raise ConfigLoadError(path, f"[{RULE_SECTION}] must be a list of tables",
                                      code=ErrorCode.SCHEMA_ERROR)

            rules = []
            for index, rule_data in enumerate(rules_data):
                if not isinstance(rule_data, dict):
                    raise ConfigLoadError(path, f"[{RULE_SECTION}] entry {index} must be a table",
                                          code=ErrorCode.SCHEMA_ERROR)
                if "surface-id" not in rule_data and "surface_id" not in rule_data:
                    raise ConfigLoadError(path, f"surface-id is not set in [{RULE_SECTION}] entry {index}",
                                          code=ErrorCode.SCHEMA_ERROR)
                rules.append(SurfaceRule(**rule_data))

            default_range = None
            if DEFAULT_SECTION in data:
                default_range = DefaultRange(**self._section(data, DEFAULT_SECTION))

            registry = RegistryEndpoint()
            if REGISTRY_SECTION in data:
                registry_data = dict(self._section(data, REGISTRY_SECTION))
                # A section without a server key turns the registry off.
                registry_data.setdefault("server", None)
                registry = RegistryEndpoint(**registry_data)

            log_level = data.get("log_level", data.get("log-level", "INFO"))
            config = AgentConfig(
                rules=rules,
                default_range=default_range,
                registry=registry,
                log_level=log_level,
            )
        except ValidationError as e:
            raise ConfigLoadError(path, f"invalid configuration: {e}", code=ErrorCode.SCHEMA_ERROR)
        except TypeError as e:
            raise ConfigLoadError(path, f"invalid section: {e}", code=ErrorCode.SCHEMA_ERROR)

        if not config.rules and config.default_range is None:
            raise ConfigLoadError(
                path,
                f"no [{RULE_SECTION}] rules and no [{DEFAULT_SECTION}] range",
                code=ErrorCode.NO_VALID_CONFIG,
            )

        return config

    def _section(self, data: Dict[str, Any], name: str) -> Dict[str, Any]:
        section = data[name]
        if not isinstance(section, dict):
            raise ConfigLoadError(str(self.config_path), f"[{name}] must be a table",
                                  code=ErrorCode.SCHEMA_ERROR)
        return section
