"""
Razor DEX Configuration

Loads all sections of config.toml at startup.
Environment variables override TOML values.
"""

from .loader import (
    DexConfig,
    LoggingSectionConfig,
    RegistrySectionConfig,
    load_config,
)

__all__ = [
    "DexConfig",
    "LoggingSectionConfig",
    "RegistrySectionConfig",
    "load_config",
]
