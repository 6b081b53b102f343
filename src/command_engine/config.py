"""
Engine configuration management.

This module handles loading and accessing engine configuration from multiple sources
with a clear priority order:

    1. Environment variables (highest priority) - for containerized deployments
    2. Config file (config/engine.ini) - for static deployments
    3. Built-in defaults (lowest priority) - sensible fallbacks

Configuration is loaded once at module import time and cached. The EngineConfig
dataclass provides typed access to all settings.

Usage:
    from command_engine.config import config

    # Access settings
    print(config.catalog.absolute_path)
    print(config.grammar.unknown_field_policy)
    print(config.dispatch.match_policy)

Environment Variable Mapping:
    CMD_LOG_LEVEL       -> logging.level
    CMD_LOG_FORMAT      -> logging.format
    CMD_CATALOG_PATH    -> catalog.path
    CMD_STRICT_FIELDS   -> grammar.strict_fields
    CMD_FORMAT_TARGET   -> dispatch.format_target
    CMD_MATCH_POLICY    -> dispatch.match_policy
"""

import configparser
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Literal

from command_engine.dispatch.formatting import FormatTarget
from command_engine.grammar.compiler import UnknownFieldPolicy

# =============================================================================
# PATH CONFIGURATION
# =============================================================================

# Project root directory (contains src/, config/, data/)
PROJECT_ROOT = Path(__file__).parent.parent.parent

# Config file paths
CONFIG_DIR = PROJECT_ROOT / "config"
CONFIG_FILE = CONFIG_DIR / "engine.ini"
CONFIG_EXAMPLE = CONFIG_DIR / "engine.example.ini"

MatchPolicy = Literal["all", "first", "one"]
MATCH_POLICIES = ("all", "first", "one")
LOG_FORMATS = ("simple", "detailed", "json")


# =============================================================================
# CONFIGURATION DATACLASSES
# =============================================================================


@dataclass
class LoggingSettings:
    """Logging configuration."""

    level: str = "INFO"
    format: Literal["simple", "detailed", "json"] = "detailed"


@dataclass
class GrammarSettings:
    """Grammar compiler configuration."""

    strict_fields: bool = True

    @property
    def unknown_field_policy(self) -> UnknownFieldPolicy:
        """Policy handed to GrammarBuilder for unregistered field references."""
        return UnknownFieldPolicy.STRICT if self.strict_fields else UnknownFieldPolicy.LENIENT


@dataclass
class DispatchSettings:
    """Dispatcher configuration."""

    format_target: FormatTarget = FormatTarget.TEXT
    match_policy: MatchPolicy = "one"


@dataclass
class CatalogSettings:
    """Command catalog location."""

    path: str = "data/commands.yaml"

    @property
    def absolute_path(self) -> Path:
        """Get absolute path to the catalog file."""
        p = Path(self.path)
        if p.is_absolute():
            return p
        return PROJECT_ROOT / p


@dataclass
class EngineConfig:
    """
    Complete engine configuration.

    This is the main configuration object that aggregates all settings sections.
    Access via the module-level `config` singleton.
    """

    logging: LoggingSettings = field(default_factory=LoggingSettings)
    grammar: GrammarSettings = field(default_factory=GrammarSettings)
    dispatch: DispatchSettings = field(default_factory=DispatchSettings)
    catalog: CatalogSettings = field(default_factory=CatalogSettings)


# =============================================================================
# CONFIGURATION LOADING
# =============================================================================


def _parse_bool(value: str) -> bool:
    """Parse a string value to boolean."""
    return value.lower() in ("true", "yes", "1", "on", "enabled")


def _parse_target(value: str, current: FormatTarget) -> FormatTarget:
    """Parse a format target name, keeping ``current`` for unknown values."""
    try:
        return FormatTarget(value.strip().lower())
    except ValueError:
        return current


def _load_from_ini(parser: configparser.ConfigParser, cfg: EngineConfig) -> None:
    """Load configuration from parsed INI file into EngineConfig."""
    # Logging section
    if parser.has_section("logging"):
        if parser.has_option("logging", "level"):
            cfg.logging.level = parser.get("logging", "level").upper()
        if parser.has_option("logging", "format"):
            val = parser.get("logging", "format").lower()
            if val in LOG_FORMATS:
                cfg.logging.format = val  # type: ignore[assignment]

    # Grammar section
    if parser.has_section("grammar"):
        if parser.has_option("grammar", "strict_fields"):
            cfg.grammar.strict_fields = _parse_bool(parser.get("grammar", "strict_fields"))

    # Dispatch section
    if parser.has_section("dispatch"):
        if parser.has_option("dispatch", "format_target"):
            cfg.dispatch.format_target = _parse_target(
                parser.get("dispatch", "format_target"), cfg.dispatch.format_target
            )
        if parser.has_option("dispatch", "match_policy"):
            val = parser.get("dispatch", "match_policy").lower()
            if val in MATCH_POLICIES:
                cfg.dispatch.match_policy = val  # type: ignore[assignment]

    # Catalog section
    if parser.has_section("catalog"):
        if parser.has_option("catalog", "path"):
            cfg.catalog.path = parser.get("catalog", "path")


def _apply_env_overrides(cfg: EngineConfig) -> None:
    """Apply environment variable overrides to configuration."""
    # Logging settings
    if env_log := os.getenv("CMD_LOG_LEVEL"):
        cfg.logging.level = env_log.upper()
    if env_format := os.getenv("CMD_LOG_FORMAT"):
        if env_format.lower() in LOG_FORMATS:
            cfg.logging.format = env_format.lower()  # type: ignore[assignment]

    # Catalog settings
    if env_catalog := os.getenv("CMD_CATALOG_PATH"):
        cfg.catalog.path = env_catalog

    # Grammar settings
    if env_strict := os.getenv("CMD_STRICT_FIELDS"):
        cfg.grammar.strict_fields = _parse_bool(env_strict)

    # Dispatch settings
    if env_target := os.getenv("CMD_FORMAT_TARGET"):
        cfg.dispatch.format_target = _parse_target(env_target, cfg.dispatch.format_target)
    if env_policy := os.getenv("CMD_MATCH_POLICY"):
        if env_policy.lower() in MATCH_POLICIES:
            cfg.dispatch.match_policy = env_policy.lower()  # type: ignore[assignment]


def load_config() -> EngineConfig:
    """
    Load configuration from all sources with proper priority.

    Priority (highest wins):
        1. Environment variables
        2. config/engine.ini
        3. config/engine.example.ini (fallback for development)
        4. Built-in defaults

    Returns:
        EngineConfig: Fully populated configuration object.
    """
    cfg = EngineConfig()

    # Determine which config file to use
    config_file = None
    if CONFIG_FILE.exists():
        config_file = CONFIG_FILE
    elif CONFIG_EXAMPLE.exists():
        config_file = CONFIG_EXAMPLE

    if config_file:
        parser = configparser.ConfigParser()
        parser.read(config_file)
        _load_from_ini(parser, cfg)

    # Apply environment variable overrides (highest priority)
    _apply_env_overrides(cfg)

    return cfg


def reload_config() -> "EngineConfig":
    """
    Reload configuration from disk and environment.

    This updates the module-level `config` singleton. Dispatchers that were
    already built keep the settings they were built with.

    Returns:
        EngineConfig: The newly loaded configuration.
    """
    global config
    config = load_config()
    return config


# =============================================================================
# MODULE-LEVEL SINGLETON
# =============================================================================

# Load configuration once at module import time
config = load_config()


# =============================================================================
# UTILITY FUNCTIONS
# =============================================================================


def get_config_status() -> dict:
    """
    Get configuration status for diagnostics.

    Returns a dictionary with configuration source information,
    useful for debugging the CLI.
    """
    return {
        "config_file_exists": CONFIG_FILE.exists(),
        "config_file_path": str(CONFIG_FILE),
        "using_example": not CONFIG_FILE.exists() and CONFIG_EXAMPLE.exists(),
        "catalog_path": str(config.catalog.absolute_path),
        "catalog_exists": config.catalog.absolute_path.exists(),
        "strict_fields": config.grammar.strict_fields,
        "match_policy": config.dispatch.match_policy,
    }


def print_config_summary() -> None:
    """Print a summary of current configuration to stdout."""
    status = get_config_status()
    print("\n" + "=" * 60)
    print("ENGINE CONFIGURATION")
    print("=" * 60)
    print(f"Config file: {status['config_file_path']}")
    print(f"File exists: {status['config_file_exists']}")
    if status["using_example"]:
        print("NOTE: Using example config (copy to engine.ini to customise)")
    print("-" * 60)
    print(f"Catalog:       {status['catalog_path']}")
    print(f"Strict fields: {config.grammar.strict_fields}")
    print(f"Match policy:  {config.dispatch.match_policy}")
    print(f"Format target: {config.dispatch.format_target.value}")
    print(f"Log level:     {config.logging.level} ({config.logging.format})")
    print("=" * 60 + "\n")


# =============================================================================
# TEST HELPERS
# =============================================================================


class use_catalog:
    """
    Context manager for pointing the config at a temporary catalog.

    Usage:
        from command_engine.config import use_catalog

        def test_something(tmp_path):
            catalog_path = tmp_path / "commands.yaml"
            with use_catalog(catalog_path):
                # The CLI will load catalog_path
                ...

    Args:
        catalog_path: Path to the catalog file
    """

    def __init__(self, catalog_path: Path | str):
        self.catalog_path = Path(catalog_path)
        self.original_path: str | None = None

    def __enter__(self) -> Path:
        """Point the catalog setting at the temporary path."""
        self.original_path = config.catalog.path
        config.catalog.path = str(self.catalog_path)
        return self.catalog_path

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        """Restore original catalog path."""
        if self.original_path is not None:
            config.catalog.path = self.original_path
        return None
