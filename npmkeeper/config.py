"""Configuration file loader for npmkeeper.

Handles discovery, loading, parsing, and validation of ``npmkeeper.toml``,
whose settings live under an ``[npmkeeper]`` table.

Discovery order:

1. Explicit path from ``--config`` or ``NPMKEEPER_CONFIG``
2. ``npmkeeper.toml`` in current directory

Configuration precedence: defaults < config file < CLI args.

Typical usage::

    config = load_config()  # Auto-discover
    config = load_config(Path("custom.toml"))  # Explicit path

Example (``npmkeeper.toml``)::

    [npmkeeper]
    registry = "https://registry.npmjs.org"
    allow_prerelease = false
    ignored_packages = ["protractor"]
"""

from __future__ import annotations

import tomli as tomllib
from pathlib import Path
from typing import Any, Dict, List, Optional
from dataclasses import dataclass, field

from npmkeeper.exceptions import ConfigError
from npmkeeper.utils.logger import get_logger
from npmkeeper.constants import (
    CONFIG_FILE_NAME,
    DEFAULT_ALLOW_PRERELEASE,
    DEFAULT_CONCURRENT_LIMIT,
    DEFAULT_FORCE,
    DEFAULT_REGISTRY,
    DEFAULT_TIMEOUT,
)

logger = get_logger("config")


@dataclass
class NpmKeeperConfig:
    """Parsed and validated npmkeeper configuration.

    All fields have defaults, so empty config files are valid.

    Attributes:
        registry: Base URL of the npm registry.
        allow_prerelease: Let pre-release versions satisfy peer ranges.
        force: Return the update plan even when peer dependencies are
            incompatible.
        ignored_packages: Dependents whose peer ranges are not enforced, in
            addition to the built-in list of deprecated packages.
        concurrent_limit: Maximum number of registry requests in flight.
        timeout: HTTP request timeout in seconds.
        source_path: Path to loaded config file, or ``None`` if using defaults.
    """

    registry: str = DEFAULT_REGISTRY
    allow_prerelease: bool = DEFAULT_ALLOW_PRERELEASE
    force: bool = DEFAULT_FORCE
    ignored_packages: List[str] = field(default_factory=list)
    concurrent_limit: int = DEFAULT_CONCURRENT_LIMIT
    timeout: int = DEFAULT_TIMEOUT

    # Metadata (not a user-facing option)
    source_path: Optional[Path] = field(default=None, repr=False)

    def to_log_dict(self) -> Dict[str, Any]:
        """Return configuration as dictionary for debug logging.

        Excludes ``source_path`` metadata.
        """
        return {
            "registry": self.registry,
            "allow_prerelease": self.allow_prerelease,
            "force": self.force,
            "ignored_packages": list(self.ignored_packages),
            "concurrent_limit": self.concurrent_limit,
            "timeout": self.timeout,
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
    # 1. Explicit path takes priority
    if explicit_path is not None:
        resolved = explicit_path.resolve()
        if not resolved.is_file():
            raise ConfigError(
                f"Configuration file not found: {explicit_path}",
                config_path=str(explicit_path),
            )
        logger.debug("Using explicit config: %s", resolved)
        return resolved

    # 2. npmkeeper.toml in current directory
    candidate = Path.cwd() / CONFIG_FILE_NAME
    if candidate.is_file():
        logger.debug("Found %s: %s", CONFIG_FILE_NAME, candidate)
        return candidate

    logger.debug("No configuration file found")
    return None


def load_config(config_path: Optional[Path] = None) -> NpmKeeperConfig:
    """Load and validate npmkeeper configuration.

    Args:
        config_path: Explicit path to config file. If ``None``, uses
            auto-discovery (see :func:`discover_config_file`).

    Returns:
        Validated :class:`NpmKeeperConfig` with values from file or defaults.

    Raises:
        ConfigError: File cannot be parsed, has unknown keys, or invalid values.
    """
    resolved = discover_config_file(config_path)

    if resolved is None:
        logger.debug("No config file found, using defaults")
        return NpmKeeperConfig()

    logger.info("Loading configuration from %s", resolved)
    raw = _read_toml(resolved)

    section = raw.get("npmkeeper", {})
    if not section:
        logger.debug("Config file found but no [npmkeeper] section, using defaults")
        return NpmKeeperConfig(source_path=resolved)

    if not isinstance(section, dict):
        raise ConfigError(
            "[npmkeeper] must be a table",
            config_path=str(resolved),
        )

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


def _parse_section(
    section: Dict[str, Any],
    *,
    config_path: str,
) -> NpmKeeperConfig:
    """Parse and validate the ``[npmkeeper]`` table.

    Rejects unknown keys and type mismatches.

    Args:
        section: Raw config dictionary from TOML file.
        config_path: Path string for error messages.

    Returns:
        Validated :class:`NpmKeeperConfig` with values from section and defaults.

    Raises:
        ConfigError: Unknown keys or incorrect types (e.g., string for boolean).
    """
    config = NpmKeeperConfig()

    # Known npmkeeper configuration options
    known_top = {
        "registry",
        "allow_prerelease",
        "force",
        "ignored_packages",
        "concurrent_limit",
        "timeout",
    }

    # Validate that no unknown keys are present
    unknown_top = set(section.keys()) - known_top
    if unknown_top:
        raise ConfigError(
            f"Unknown configuration keys: {', '.join(sorted(unknown_top))}",
            config_path=config_path,
        )

    if "registry" in section:
        val = section["registry"]
        if not isinstance(val, str) or not val.startswith(("http://", "https://")):
            raise ConfigError(
                f"registry must be an http(s) URL, got {val!r}",
                config_path=config_path,
                option="registry",
            )
        config.registry = val.rstrip("/")

    for option in ("allow_prerelease", "force"):
        if option in section:
            val = section[option]
            if not isinstance(val, bool):
                raise ConfigError(
                    f"{option} must be a boolean, got {type(val).__name__}",
                    config_path=config_path,
                    option=option,
                )
            setattr(config, option, val)

    if "ignored_packages" in section:
        val = section["ignored_packages"]
        if not isinstance(val, list) or not all(isinstance(v, str) for v in val):
            raise ConfigError(
                "ignored_packages must be a list of package names",
                config_path=config_path,
                option="ignored_packages",
            )
        config.ignored_packages = list(val)

    for option in ("concurrent_limit", "timeout"):
        if option in section:
            val = section[option]
            # bool is an int subclass
            if isinstance(val, bool) or not isinstance(val, int) or val <= 0:
                raise ConfigError(
                    f"{option} must be a positive integer, got {val!r}",
                    config_path=config_path,
                    option=option,
                )
            setattr(config, option, val)

    return config
