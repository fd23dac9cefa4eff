"""
Core module for net-exporter.

Provides configuration, logging, exceptions and the fan-out helper.
"""

from .config import Settings, get_settings, build_settings, load_config_file
from .exceptions import (
    NetExporterError,
    InvalidConfigError,
    RegistryError,
    ResolveError,
    DialError,
)

__all__ = [
    # Config
    "Settings",
    "get_settings",
    "build_settings",
    "load_config_file",
    # Exceptions
    "NetExporterError",
    "InvalidConfigError",
    "RegistryError",
    "ResolveError",
    "DialError",
]
