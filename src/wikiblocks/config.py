"""Configuration loader for wikiblocks.toml."""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

try:
    import tomllib
except ImportError:
    import tomli as tomllib  # type: ignore

from .core.errors import ConfigError, SyntaxParseError
from .core.syntax import Syntax, XWIKI_2_0
from .transform.macro import DEFAULT_MAX_EXECUTIONS, DEFAULT_MAX_RECURSIONS

CONFIG_FILENAME = "wikiblocks.toml"
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass
class RenderingConfig:
    """Syntax of the documents read and written."""
    syntax: Syntax = XWIKI_2_0


@dataclass
class MacrosConfig:
    """Macro transformation limits and YAML macro definition files."""
    max_recursions: int = DEFAULT_MAX_RECURSIONS
    max_executions: int = DEFAULT_MAX_EXECUTIONS
    definitions: list[Path] = field(default_factory=list)


@dataclass
class LoggingConfig:
    level: str = "WARNING"

    @property
    def level_number(self) -> int:
        return getattr(logging, self.level)


@dataclass
class WikiBlocksConfig:
    """Complete wikiblocks configuration."""
    rendering: RenderingConfig
    macros: MacrosConfig
    logging: LoggingConfig
    path: Path | None = None  # file the values came from, if any


def _positive_int(section: dict[str, Any], key: str, default: int) -> int:
    value = section.get(key, default)
    if isinstance(value, bool) or not isinstance(value, int) or value < 1:
        raise ConfigError(f"[macros] {key} must be a positive integer, got {value!r}")
    return value


def load_config(config_path: Path | None = None, base_path: Path | None = None) -> WikiBlocksConfig:
    """
    Load configuration from wikiblocks.toml.

    Search order:
    1. config_path (if provided)
    2. cwd/wikiblocks.toml
    3. base_path/wikiblocks.toml

    Relative macro definition paths are resolved against the directory of
    the file they appear in.

    Args:
        config_path: Explicit path to config file
        base_path: Directory for fallback search

    Returns:
        WikiBlocksConfig with resolved settings

    Raises:
        FileNotFoundError: if config_path is given but doesn't exist
        ConfigError: on invalid TOML or invalid values
    """
    toml_data: dict[str, Any] = {}
    found: Path | None = None

    if config_path is not None and not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    # Search for config file
    search_paths = []
    if config_path:
        search_paths.append(config_path)
    search_paths.append(Path.cwd() / CONFIG_FILENAME)
    if base_path:
        search_paths.append(base_path / CONFIG_FILENAME)

    for path in search_paths:
        if path.exists():
            with open(path, "rb") as f:
                try:
                    toml_data = tomllib.load(f)
                except tomllib.TOMLDecodeError as e:
                    raise ConfigError(f"Invalid TOML in {path}: {e}") from e
            found = path
            break

    # Parse rendering config
    rendering_data = toml_data.get("rendering", {})
    try:
        syntax = Syntax.parse(rendering_data.get("syntax", XWIKI_2_0.id))
    except SyntaxParseError as e:
        raise ConfigError(str(e)) from e
    rendering_config = RenderingConfig(syntax=syntax)

    # Parse macros config
    macros_data = toml_data.get("macros", {})
    root = found.parent if found else Path.cwd()
    definitions = macros_data.get("definitions", [])
    if not isinstance(definitions, list):
        raise ConfigError("[macros] definitions must be a list of paths")
    macros_config = MacrosConfig(
        max_recursions=_positive_int(macros_data, "max_recursions", DEFAULT_MAX_RECURSIONS),
        max_executions=_positive_int(macros_data, "max_executions", DEFAULT_MAX_EXECUTIONS),
        definitions=[root / Path(p) for p in definitions],
    )

    # Parse logging config
    logging_data = toml_data.get("logging", {})
    level = str(logging_data.get("level", "WARNING")).upper()
    if level not in LOG_LEVELS:
        raise ConfigError(f"[logging] level must be one of {', '.join(LOG_LEVELS)}, got {level}")
    logging_config = LoggingConfig(level=level)

    return WikiBlocksConfig(
        rendering=rendering_config,
        macros=macros_config,
        logging=logging_config,
        path=found,
    )
