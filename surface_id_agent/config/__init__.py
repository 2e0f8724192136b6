"""
Configuration subsystem for the Surface ID Agent.

Modules:
- loader: Load and validate TOML/JSON configuration files
"""

from .loader import ConfigLoader, resolve_config_path

__all__ = [
    "ConfigLoader",
    "resolve_config_path",
]
