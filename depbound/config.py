"""Configuration file loader for depbound.

Handles discovery, loading, parsing, and validation of configuration files.
Supports two formats:

- ``depbound.toml``: settings under ``[depbound]`` table
- ``Cargo.toml``: settings under ``[workspace.metadata.depbound]`` or
  ``[package.metadata.depbound]``

Discovery order:

1. Explicit path from ``--config`` or ``DEPBOUND_CONFIG``
2. ``depbound.toml`` in current directory
3. ``Cargo.toml`` with a depbound metadata table

Configuration precedence: defaults < config file < environment < CLI args.

Example (``depbound.toml``)::

    [depbound]
    include_yanked = false
    count = "all"
    lockfile = "Cargo.lock"
    cache_ttl = 86400
    max_rust_version = "1.70"
"""

from __future__ import annotations

import tomli as tomllib
from pathlib import Path
from typing import Any, Dict, Optional
from dataclasses import dataclass, field

from depbound.exceptions import ConfigError
from depbound.utils.logger import get_logger
from depbound.constants import (
    DEFAULT_CACHE_TTL,
    DEFAULT_COUNT,
    DEFAULT_INCLUDE_YANKED,
    DEFAULT_LOCKFILE,
    DEFAULT_USE_CACHE,
)

logger = get_logger("config")

#: Value of ``count`` meaning "list every compatible version".
COUNT_ALL = "all"

_KNOWN_KEYS = frozenset(
    {"include_yanked", "count", "lockfile", "cache", "cache_ttl", "max_rust_version"}
)


@dataclass
class DepBoundConfig:
    """Parsed and validated depbound configuration.

    All fields have defaults, so empty config files are valid.

    Attributes:
        include_yanked: List yanked releases as well.
        count: How many versions to list; ``None`` lists all of them.
        lockfile: Path of the lockfile to read.
        cache: Keep registry responses on disk between runs.
        cache_ttl: Seconds after which a cached response is refetched.
        max_rust_version: Hide releases that need a newer Rust toolchain.
        source_path: Path to loaded config file, or ``None`` if using defaults.
    """

    include_yanked: bool = DEFAULT_INCLUDE_YANKED
    count: Optional[int] = DEFAULT_COUNT
    lockfile: str = DEFAULT_LOCKFILE
    cache: bool = DEFAULT_USE_CACHE
    cache_ttl: int = DEFAULT_CACHE_TTL
    max_rust_version: Optional[str] = None

    # Metadata (not a user-facing option)
    source_path: Optional[Path] = field(default=None, repr=False)

    def to_log_dict(self) -> Dict[str, Any]:
        """Return configuration as dictionary for debug logging."""
        return {
            "include_yanked": self.include_yanked,
            "count": COUNT_ALL if self.count is None else self.count,
            "lockfile": self.lockfile,
            "cache": self.cache,
            "cache_ttl": self.cache_ttl,
            "max_rust_version": self.max_rust_version,
        }


def discover_config_file(explicit_path: Optional[Path] = None) -> Optional[Path]:
    """Find the configuration file to load.

    Args:
        explicit_path: Explicit config path. If provided, must exist.

    Returns:
        Resolved path to config file, or ``None`` if not found.

    Raises:
        ConfigError: Explicit path provided but does not exist.
    """
    if explicit_path is not None:
        resolved = explicit_path.resolve()
        if not resolved.is_file():
            raise ConfigError(
                f"Configuration file not found: {explicit_path}",
                config_path=str(explicit_path),
            )
        logger.debug("Using explicit config: %s", resolved)
        return resolved

    cwd = Path.cwd()

    depbound_toml = cwd / "depbound.toml"
    if depbound_toml.is_file():
        logger.debug("Found depbound.toml: %s", depbound_toml)
        return depbound_toml

    cargo_toml = cwd / "Cargo.toml"
    if cargo_toml.is_file() and _cargo_has_depbound_section(cargo_toml):
        logger.debug("Found depbound metadata in Cargo.toml: %s", cargo_toml)
        return cargo_toml

    logger.debug("No configuration file found")
    return None


def _cargo_section(raw: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    """Return the depbound table of a parsed ``Cargo.toml``, if any."""
    for table in ("workspace", "package"):
        section = raw.get(table, {}).get("metadata", {}).get("depbound")
        if section is not None:
            return section
    return None


def _cargo_has_depbound_section(path: Path) -> bool:
    """Check if Cargo.toml carries depbound metadata.

    An unparseable Cargo.toml is not ours to report; it is skipped.
    """
    try:
        return _cargo_section(_read_toml(path)) is not None
    except ConfigError:
        return False


def load_config(config_path: Optional[Path] = None) -> DepBoundConfig:
    """Load and validate depbound configuration.

    Args:
        config_path: Explicit path to config file. If ``None``, uses
            auto-discovery (see :func:`discover_config_file`).

    Returns:
        Validated :class:`DepBoundConfig` with values from file or defaults.

    Raises:
        ConfigError: File cannot be parsed, has unknown keys, or invalid values.
    """
    resolved = discover_config_file(config_path)

    if resolved is None:
        logger.debug("No config file found, using defaults")
        return DepBoundConfig()

    logger.info("Loading configuration from %s", resolved)
    raw = _read_toml(resolved)

    if resolved.name == "Cargo.toml":
        section = _cargo_section(raw) or {}
    else:
        section = raw.get("depbound", {})

    if not isinstance(section, dict):
        raise ConfigError(
            "The depbound configuration must be a table",
            config_path=str(resolved),
        )

    if not section:
        logger.debug("Config file found but no depbound section, using defaults")
        return DepBoundConfig(source_path=resolved)

    config = _parse_section(section, config_path=str(resolved))
    config.source_path = resolved

    logger.debug("Loaded configuration: %s", config.to_log_dict())
    return config


def _read_toml(path: Path) -> Dict[str, Any]:
    """Read and parse a TOML file.

    Raises:
        ConfigError: File cannot be read or is not valid TOML.
    """
    try:
        with open(path, "rb") as fh:
            return tomllib.load(fh)
    except tomllib.TOMLDecodeError as exc:
        raise ConfigError(
            f"Invalid TOML in {path.name}: {exc}",
            config_path=str(path),
        ) from exc
    except OSError as exc:
        raise ConfigError(
            f"Cannot read configuration file {path}: {exc}",
            config_path=str(path),
        ) from exc


def parse_count(value: Any, *, config_path: Optional[str] = None) -> Optional[int]:
    """Validate a ``count`` setting: a positive integer or ``"all"``.

    Returns:
        The count, or ``None`` for ``"all"``.

    Raises:
        ConfigError: Any other value.
    """
    if value == COUNT_ALL:
        return None
    if isinstance(value, str) and value.isdigit():
        value = int(value)
    if isinstance(value, bool) or not isinstance(value, int) or value < 1:
        raise ConfigError(
            f"count must be a positive integer or {COUNT_ALL!r}, got {value!r}",
            config_path=config_path,
            option="count",
        )
    return value


def _require_type(section: Dict[str, Any], key: str, expected: type, config_path: str) -> Any:
    value = section[key]
    # bool is an int subclass; never accept it where an int is expected
    if not isinstance(value, expected) or (expected is int and isinstance(value, bool)):
        raise ConfigError(
            f"{key} must be of type {expected.__name__}, got {type(value).__name__}",
            config_path=config_path,
            option=key,
        )
    return value


def _parse_section(
    section: Dict[str, Any],
    *,
    config_path: str,
) -> DepBoundConfig:
    """Parse and validate a depbound configuration table.

    Raises:
        ConfigError: Unknown keys or incorrect types.
    """
    config = DepBoundConfig()

    unknown = set(section.keys()) - _KNOWN_KEYS
    if unknown:
        raise ConfigError(
            f"Unknown configuration keys: {', '.join(sorted(unknown))}",
            config_path=config_path,
        )

    if "include_yanked" in section:
        config.include_yanked = _require_type(section, "include_yanked", bool, config_path)

    if "count" in section:
        config.count = parse_count(section["count"], config_path=config_path)

    if "lockfile" in section:
        config.lockfile = _require_type(section, "lockfile", str, config_path)

    if "cache" in section:
        config.cache = _require_type(section, "cache", bool, config_path)

    if "cache_ttl" in section:
        ttl = _require_type(section, "cache_ttl", int, config_path)
        if ttl < 0:
            raise ConfigError(
                f"cache_ttl must not be negative, got {ttl}",
                config_path=config_path,
                option="cache_ttl",
            )
        config.cache_ttl = ttl

    if "max_rust_version" in section:
        config.max_rust_version = _require_type(section, "max_rust_version", str, config_path)

    return config
