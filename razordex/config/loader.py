"""
Razor DEX TOML Configuration Loader

Loads the sections of config.toml at startup with environment variable
overrides (dataclass + from_dict + from_file).

Environment variable mapping:
    [registry] admin          → RAZORDEX_ADMIN
    [registry] fee_to         → RAZORDEX_FEE_TO
    [registry] swap_fee_bps   → RAZORDEX_SWAP_FEE_BPS
    [logging]  level          → RAZORDEX_LOG_LEVEL
    ...
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

try:
    import tomllib as tomli  # Python 3.11+
except ImportError:
    import tomli  # type: ignore[no-redef]

from ..constants import (
    BPS_DENOMINATOR,
    DEFAULT_PROTOCOL_FEE_DENOMINATOR,
    DEFAULT_PROTOCOL_FEE_ENABLED,
    DEFAULT_SWAP_FEE_BPS,
    parse_bool,
)
from ..dex.registry import RegistryConfig
from ..exceptions import ConfigurationError

logger = logging.getLogger(__name__)

_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


# ---------------------------------------------------------------------------
# Section dataclasses
# ---------------------------------------------------------------------------


@dataclass
class RegistrySectionConfig:
    """[registry] section."""
    admin: str = ""
    fee_to: str = ""
    swap_fee_bps: int = DEFAULT_SWAP_FEE_BPS
    protocol_fee_denominator: int = DEFAULT_PROTOCOL_FEE_DENOMINATOR
    protocol_fee_enabled: bool = DEFAULT_PROTOCOL_FEE_ENABLED
    paused: bool = False

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RegistrySectionConfig":
        return cls(
            admin=data.get("admin", ""),
            fee_to=data.get("fee_to", ""),
            swap_fee_bps=data.get("swap_fee_bps", DEFAULT_SWAP_FEE_BPS),
            protocol_fee_denominator=data.get(
                "protocol_fee_denominator", DEFAULT_PROTOCOL_FEE_DENOMINATOR
            ),
            protocol_fee_enabled=data.get("protocol_fee_enabled", DEFAULT_PROTOCOL_FEE_ENABLED),
            paused=data.get("paused", False),
        )

    def apply_env(self) -> None:
        """Override from environment variables."""
        if v := os.environ.get("RAZORDEX_ADMIN"):
            self.admin = v
        if v := os.environ.get("RAZORDEX_FEE_TO"):
            self.fee_to = v
        if v := os.environ.get("RAZORDEX_SWAP_FEE_BPS"):
            self.swap_fee_bps = int(v)
        if v := os.environ.get("RAZORDEX_PROTOCOL_FEE_DENOMINATOR"):
            self.protocol_fee_denominator = int(v)
        if v := os.environ.get("RAZORDEX_PROTOCOL_FEE_ENABLED"):
            self.protocol_fee_enabled = parse_bool(v)
        if v := os.environ.get("RAZORDEX_PAUSED"):
            self.paused = parse_bool(v)

    def validate(self) -> None:
        if not self.admin:
            raise ConfigurationError("registry.admin must be set")
        if not 0 <= self.swap_fee_bps < BPS_DENOMINATOR:
            raise ConfigurationError(
                f"registry.swap_fee_bps must be in [0, {BPS_DENOMINATOR}), got {self.swap_fee_bps}"
            )
        if self.protocol_fee_denominator < 1:
            raise ConfigurationError("registry.protocol_fee_denominator must be >= 1")


@dataclass
class LoggingSectionConfig:
    """[logging] section."""
    level: str = "INFO"
    console: bool = True
    file_enabled: bool = False
    file: str = "logs/razordex.log"

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "LoggingSectionConfig":
        return cls(
            level=str(data.get("level", "INFO")).upper(),
            console=data.get("console", True),
            file_enabled=data.get("file_enabled", False),
            file=data.get("file", "logs/razordex.log"),
        )

    def apply_env(self) -> None:
        if v := os.environ.get("RAZORDEX_LOG_LEVEL"):
            self.level = v.upper()
        if v := os.environ.get("RAZORDEX_LOG_FILE"):
            self.file = v
            self.file_enabled = True

    def validate(self) -> None:
        if self.level not in _LOG_LEVELS:
            raise ConfigurationError(f"Invalid logging.level: {self.level}")


# ---------------------------------------------------------------------------
# Top-level config
# ---------------------------------------------------------------------------


@dataclass
class DexConfig:
    """Complete exchange configuration (all sections of config.toml)."""
    registry: RegistrySectionConfig = field(default_factory=RegistrySectionConfig)
    logging: LoggingSectionConfig = field(default_factory=LoggingSectionConfig)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DexConfig":
        return cls(
            registry=RegistrySectionConfig.from_dict(data.get("registry", {})),
            logging=LoggingSectionConfig.from_dict(data.get("logging", {})),
        )

    @classmethod
    def from_file(cls, config_path: str) -> "DexConfig":
        """
        Load configuration from a TOML file.

        A missing file yields defaults with environment overrides applied.
        """
        path = Path(config_path)
        if not path.exists():
            logger.warning("Config file not found: %s, using defaults", config_path)
            cfg = cls()
            cfg.apply_env()
            return cfg

        try:
            with open(path, "rb") as f:
                raw = tomli.load(f)
        except tomli.TOMLDecodeError as e:
            raise ConfigurationError(f"Invalid TOML in {config_path}: {e}") from e

        cfg = cls.from_dict(raw)
        cfg.apply_env()
        return cfg

    def apply_env(self) -> None:
        """Apply environment variable overrides to all sections."""
        self.registry.apply_env()
        self.logging.apply_env()

    def validate(self) -> bool:
        """
        Validate all configuration sections.

        Raises:
            ConfigurationError: on invalid config
        """
        self.registry.validate()
        self.logging.validate()
        return True

    def to_registry_config(self) -> RegistryConfig:
        """Build the runtime registry configuration."""
        self.validate()
        section = self.registry
        return RegistryConfig(
            admin=section.admin,
            fee_to=section.fee_to or section.admin,
            swap_fee_bps=section.swap_fee_bps,
            protocol_fee_denominator=section.protocol_fee_denominator,
            protocol_fee_enabled=section.protocol_fee_enabled,
            paused=section.paused,
        )

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to dict (for diagnostics)."""
        return {
            "registry": {
                "admin": self.registry.admin,
                "fee_to": self.registry.fee_to,
                "swap_fee_bps": self.registry.swap_fee_bps,
                "protocol_fee_denominator": self.registry.protocol_fee_denominator,
                "protocol_fee_enabled": self.registry.protocol_fee_enabled,
                "paused": self.registry.paused,
            },
            "logging": {
                "level": self.logging.level,
                "console": self.logging.console,
                "file_enabled": self.logging.file_enabled,
                "file": self.logging.file,
            },
        }


# -----------------------------------------------------------------------
# Convenience function
# -----------------------------------------------------------------------

def load_config(path: Optional[str] = None) -> DexConfig:
    """
    Load exchange configuration.

    Resolution order:
        1. Explicit *path* argument
        2. RAZORDEX_CONFIG env var
        3. ./config.toml in current directory
        4. Defaults (with env overrides)
    """
    if path is None:
        path = os.environ.get("RAZORDEX_CONFIG", "config.toml")

    return DexConfig.from_file(path)
