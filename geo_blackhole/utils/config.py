#!/usr/bin/env python3
"""
Configuration Management for geo-blackhole

Provides configuration handling with:
- JSON (or YAML) configuration file support
- Environment variable overrides
- Default values and validation
- Immutable configuration values handed to each component
"""

import ipaddress
import json
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import yaml

from geo_blackhole.utils.error_handling import ConfigurationError


@dataclass(frozen=True)
class BlackholeSection:
    """Blocked countries, allow-list and announcement attributes"""

    countries: Tuple[str, ...] = ()
    allow_list: Tuple[str, ...] = ()
    next_hop: Optional[str] = None
    communities: Tuple[str, ...] = ()


@dataclass(frozen=True)
class GeoIPConfig:
    """Country database location"""

    path: str = "/usr/share/GeoIP/GeoIP2-Country.mmdb"


@dataclass(frozen=True)
class GoBGPConfig:
    """gobgp CLI invocation settings"""

    binary: str = "gobgp"
    host: str = "127.0.0.1"
    port: int = 50051
    command_timeout: int = 30


@dataclass(frozen=True)
class LoggingConfig:
    """Logging configuration"""

    level: str = "INFO"
    log_file: Optional[str] = None

    @property
    def log_to_file(self) -> bool:
        return bool(self.log_file)


@dataclass(frozen=True)
class BlackholeConfig:
    """Main configuration container"""

    blackhole: BlackholeSection = field(default_factory=BlackholeSection)
    geoip: GeoIPConfig = field(default_factory=GeoIPConfig)
    gobgp: GoBGPConfig = field(default_factory=GoBGPConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


# (environment variable, section, key, converter)
ENV_OVERRIDES = [
    ("GEO_BLACKHOLE_GEOIP_PATH", "geoip", "path", str),
    ("GEO_BLACKHOLE_NEXT_HOP", "blackhole", "next_hop", str),
    ("GEO_BLACKHOLE_COUNTRIES", "blackhole", "countries",
     lambda v: [c.strip() for c in v.split(",") if c.strip()]),
    ("GEO_BLACKHOLE_GOBGP_HOST", "gobgp", "host", str),
    ("GEO_BLACKHOLE_GOBGP_PORT", "gobgp", "port", int),
    ("GEO_BLACKHOLE_LOG_LEVEL", "logging", "level", lambda v: v.upper()),
    ("GEO_BLACKHOLE_LOG_FILE", "logging", "log_file", str),
]

SECTION_TYPES = {
    "blackhole": BlackholeSection,
    "geoip": GeoIPConfig,
    "gobgp": GoBGPConfig,
    "logging": LoggingConfig,
}

LIST_FIELDS = {"countries", "allow_list", "communities"}

# Scalar keys and the type their value must have
SCALAR_TYPES = {
    "next_hop": str,
    "path": str,
    "binary": str,
    "host": str,
    "port": int,
    "command_timeout": int,
    "level": str,
    "log_file": str,
}

OPTIONAL_FIELDS = {"next_hop", "log_file"}


def _check_scalar(section: str, key: str, value: Any):
    """Raise ConfigurationError unless value has the type declared for key"""
    expected = SCALAR_TYPES[key]
    if value is None and key in OPTIONAL_FIELDS:
        return
    # bool is an int subclass but never a valid port or timeout
    if isinstance(value, bool) or not isinstance(value, expected):
        raise ConfigurationError(
            f"Configuration key '{section}.{key}' must be {expected.__name__}, "
            f"got {type(value).__name__}: {value!r}"
        )


class ConfigManager:
    """Configuration loading and validation for geo-blackhole"""

    DEFAULT_CONFIG_PATHS = [
        Path.home() / ".config/geo-blackhole/config.json",
        Path("/etc/geo-blackhole/config.json"),
        Path("./config.json"),
    ]

    def __init__(self, config_path: Optional[Path] = None, environ: Optional[Dict[str, str]] = None):
        """
        Initialize configuration manager

        Args:
            config_path: Optional path to configuration file
            environ: Environment mapping used for overrides (default: os.environ)

        Raises:
            ConfigurationError: If an explicit or discovered file cannot be loaded
        """
        self.logger = logging.getLogger("geo-blackhole.config")
        self.config_path = Path(config_path) if config_path else None
        self.environ = os.environ if environ is None else environ
        self.loaded_from: Optional[Path] = None
        self.config = self._load_config()

    def _load_config(self) -> BlackholeConfig:
        """Load configuration from file and environment"""
        data: Dict[str, Any] = {}

        config_file = self._find_config_file()
        if config_file:
            data = self._load_from_file(config_file)
            self.loaded_from = config_file
            self.logger.info(f"Loaded configuration from {config_file}")
        else:
            self.logger.warning("No configuration file found, using defaults and environment")

        self._apply_env_overrides(data)
        return self._build_from_dict(data)

    def _find_config_file(self) -> Optional[Path]:
        """Find configuration file in default locations"""
        if self.config_path:
            if not self.config_path.exists():
                raise ConfigurationError(
                    f"Configuration file not found: {self.config_path}",
                    guidance="Pass an existing file with --config",
                )
            return self.config_path

        for path in self.DEFAULT_CONFIG_PATHS:
            if path.exists():
                return path

        return None

    def _load_from_file(self, config_path: Path) -> Dict[str, Any]:
        """Load configuration from JSON or YAML file"""
        try:
            with open(config_path, "r") as f:
                if config_path.suffix in (".yaml", ".yml"):
                    data = yaml.safe_load(f) or {}
                else:
                    data = json.load(f)
        except (OSError, ValueError, yaml.YAMLError) as e:
            raise ConfigurationError(
                f"Cannot read configuration file {config_path}",
                technical_details=str(e),
                guidance="Check that the file exists and is valid JSON or YAML",
            )

        if not isinstance(data, dict):
            raise ConfigurationError(
                f"Configuration file {config_path} must contain an object at the top level"
            )
        return data

    def _apply_env_overrides(self, data: Dict[str, Any]):
        """Merge GEO_BLACKHOLE_* environment variables into raw config data"""
        for env_name, section, key, convert in ENV_OVERRIDES:
            raw = self.environ.get(env_name)
            if not raw:
                continue
            try:
                value = convert(raw)
            except ValueError:
                self.logger.warning(f"Ignoring invalid value for {env_name}: {raw!r}")
                continue
            data.setdefault(section, {})[key] = value
            self.logger.debug(f"Environment override {env_name} -> {section}.{key}")

    @staticmethod
    def _build_from_dict(data: Dict[str, Any]) -> BlackholeConfig:
        """Build the frozen configuration tree from raw data"""
        sections = {}
        for name, section_type in SECTION_TYPES.items():
            raw = data.get(name) or {}
            if not isinstance(raw, dict):
                raise ConfigurationError(f"Configuration section '{name}' must be an object")

            values = {}
            for key, value in raw.items():
                if key not in section_type.__dataclass_fields__:
                    raise ConfigurationError(
                        f"Unknown configuration key '{name}.{key}'"
                    )
                if key in LIST_FIELDS:
                    if isinstance(value, str) or not isinstance(value, (list, tuple)):
                        raise ConfigurationError(
                            f"Configuration key '{name}.{key}' must be a list"
                        )
                    value = tuple(str(v).strip() for v in value)
                    if key == "countries":
                        value = tuple(v.upper() for v in value if v)
                else:
                    _check_scalar(name, key, value)
                values[key] = value
            try:
                sections[name] = section_type(**values)
            except TypeError as e:
                raise ConfigurationError(f"Invalid configuration section '{name}'", technical_details=str(e))

        return BlackholeConfig(**sections)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> BlackholeConfig:
        """Build configuration from a dictionary without touching files or environment"""
        return cls._build_from_dict(dict(data))

    def get_config(self) -> BlackholeConfig:
        """Get current configuration"""
        return self.config

    def validate_config(self) -> List[str]:
        """
        Validate configuration and return list of issues

        Returns:
            List of validation error messages
        """
        return validate_config(self.config)

    def print_config(self):
        """Print current configuration"""
        cfg = self.config
        print("geo-blackhole Configuration:")
        print(f"  Source: {self.loaded_from or 'defaults'}")
        print("  Blackhole:")
        print(f"    Countries: {', '.join(cfg.blackhole.countries) or 'None'}")
        print(f"    Allow-list entries: {len(cfg.blackhole.allow_list)}")
        print(f"    Next hop: {cfg.blackhole.next_hop or 'Not set'}")
        print(f"    Communities: {', '.join(cfg.blackhole.communities) or 'None'}")
        print("  GeoIP:")
        print(f"    Database: {cfg.geoip.path}")
        print("  GoBGP:")
        print(f"    Binary: {cfg.gobgp.binary}")
        print(f"    API: {cfg.gobgp.host}:{cfg.gobgp.port}")
        print(f"    Command timeout: {cfg.gobgp.command_timeout}s")
        print("  Logging:")
        print(f"    Level: {cfg.logging.level}")
        if cfg.logging.log_file:
            print(f"    Log file: {cfg.logging.log_file}")


def validate_config(config: BlackholeConfig) -> List[str]:
    """Return human-readable problems with a configuration value"""
    issues = []

    if not config.blackhole.countries:
        issues.append("No blocked countries configured (blackhole.countries)")
    for code in config.blackhole.countries:
        if len(code) != 2 or not code.isalpha():
            issues.append(f"Country code is not a two-letter ISO code: {code}")

    if not config.blackhole.next_hop:
        issues.append("Next hop not configured (blackhole.next_hop or GEO_BLACKHOLE_NEXT_HOP)")
    else:
        try:
            ipaddress.IPv4Address(config.blackhole.next_hop)
        except ValueError:
            issues.append(f"Next hop is not a valid IPv4 host address: {config.blackhole.next_hop}")

    if not (1 <= config.gobgp.port <= 65535):
        issues.append(f"GoBGP port must be between 1-65535, got {config.gobgp.port}")
    if config.gobgp.command_timeout <= 0:
        issues.append(f"GoBGP command timeout must be positive, got {config.gobgp.command_timeout}")

    if config.logging.level.upper() not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
        issues.append(f"Unknown log level: {config.logging.level}")

    return issues
