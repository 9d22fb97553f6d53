"""
Centralized constants for npmkeeper.

This module defines immutable configuration values used across npmkeeper,
including registry endpoints, network settings, update-workflow tuning,
and logging formats. All values are intended to be treated as read-only.
"""

from typing import Final, FrozenSet, Sequence

# ---------------------------------------------------------------------------
# Project metadata
# ---------------------------------------------------------------------------

#: HTTP User-Agent template used for outbound requests.
USER_AGENT_TEMPLATE: Final[str] = "npmkeeper/{version}"

# ---------------------------------------------------------------------------
# npm registry endpoints
# ---------------------------------------------------------------------------

#: Default npm registry base URL.
DEFAULT_REGISTRY: Final[str] = "https://registry.npmjs.org"

#: Packument (all versions) endpoint, relative to the registry.
REGISTRY_PACKUMENT_PATH: Final[str] = "{registry}/{package}"

#: Single-version manifest endpoint, relative to the registry.
REGISTRY_MANIFEST_PATH: Final[str] = "{registry}/{package}/{version}"

# ---------------------------------------------------------------------------
# HTTP configuration
# ---------------------------------------------------------------------------

#: Default network timeout in seconds.
DEFAULT_TIMEOUT: Final[int] = 30

#: Maximum number of retries for failed HTTP requests.
DEFAULT_MAX_RETRIES: Final[int] = 3

#: Maximum number of registry fetches in flight at once.
DEFAULT_CONCURRENT_LIMIT: Final[int] = 10

#: Times a 429 response is retried before giving up.
DEFAULT_MAX_RATE_LIMIT_RETRIES: Final[int] = 5

#: Upper bound for a single backoff or Retry-After delay, in seconds.
MAX_RETRY_DELAY: Final[float] = 30.0

#: Server errors worth retrying.
RETRYABLE_STATUS_CODES: Final[FrozenSet[int]] = frozenset({500, 502, 503, 504})

#: Environment variable holding a registry bearer token.
NPM_TOKEN_ENV: Final[str] = "NPM_TOKEN"

# ---------------------------------------------------------------------------
# Workspace files
# ---------------------------------------------------------------------------

#: Name of the workspace manifest.
PACKAGE_JSON: Final[str] = "package.json"

#: Directory holding locally installed packages.
NODE_MODULES: Final[str] = "node_modules"

#: Workspace manifest sections that declare installable dependencies.
WORKSPACE_DEPENDENCY_FIELDS: Final[Sequence[str]] = (
    "dependencies",
    "devDependencies",
    "optionalDependencies",
)

#: Maximum allowed file size (in bytes) when reading manifests.
MAX_FILE_SIZE: Final[int] = 10 * 1024 * 1024  # 10 MB

# ---------------------------------------------------------------------------
# Update workflow
# ---------------------------------------------------------------------------

#: Manifest key holding package-group / migration metadata.
UPDATE_METADATA_KEY: Final[str] = "ng-update"

#: Dist-tag consulted when a package is requested without a version.
LATEST_DIST_TAG: Final[str] = "latest"

#: Requested version token meaning "most recent release".
MOST_RECENT_TOKEN: Final[str] = "next"

#: Highest major probed when widening a peer range; above it the range is
#: treated as unbounded.
COMPAT_MAJOR_CAP: Final[int] = 99

#: Number of pre-release minors admitted for the extra major.
COMPAT_MINOR_COUNT: Final[int] = 20

#: Dependents whose peer mismatches are never reported. They are deprecated
#: and removed by migrations.
DEFAULT_IGNORED_DEPENDENTS: Final[Sequence[str]] = (
    "codelyzer",
    "@schematics/update",
    "@angular-devkit/build-ng-packagr",
    "tsickle",
    "@nguniversal/builders",
)

# ---------------------------------------------------------------------------
# Configuration defaults
# ---------------------------------------------------------------------------

#: Name of the auto-discovered configuration file.
CONFIG_FILE_NAME: Final[str] = "npmkeeper.toml"

#: Admit pre-releases when checking peer ranges.
DEFAULT_ALLOW_PRERELEASE: Final[bool] = False

#: Return the plan even when peer dependencies are incompatible.
DEFAULT_FORCE: Final[bool] = False

# ---------------------------------------------------------------------------
# Logging configuration
# ---------------------------------------------------------------------------

#: Timestamp format for verbose logging.
LOG_DATE_FORMAT: Final[str] = "%Y-%m-%d %H:%M:%S"

#: Default log format (non-verbose).
LOG_DEFAULT_FORMAT: Final[str] = "%(levelname)s: %(message)s"

#: Verbose log format including timestamp and logger name.
LOG_VERBOSE_FORMAT: Final[str] = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
