"""
Utility helpers for npmkeeper.

This package provides reusable utilities used across npmkeeper, including:

- Console output helpers (Rich-based)
- Logging configuration and retrieval
- Read-only filesystem helpers for ``package.json`` and ``node_modules``
- Async HTTP client utilities
- npm semver helpers

Only symbols listed in ``__all__`` are considered part of the public API.
"""

from __future__ import annotations

# ---------------------------------------------------------------------------
# Filesystem utilities
# ---------------------------------------------------------------------------

from npmkeeper.utils.filesystem import (
    find_installed_manifest,
    find_workspace_manifest,
    read_json_file,
    read_workspace_dependencies,
    safe_read_file,
    validate_path,
)

# ---------------------------------------------------------------------------
# Logging utilities
# ---------------------------------------------------------------------------

from npmkeeper.utils.logger import (
    get_capped_logger,
    get_logger,
    setup_logging,
)

# ---------------------------------------------------------------------------
# Console utilities
# ---------------------------------------------------------------------------

from npmkeeper.utils.console import (
    colorize_update_type,
    get_raw_console,
    print_error,
    print_success,
    print_table,
    print_unresolved,
    print_violations,
    print_warning,
    reconfigure_console,
)

# ---------------------------------------------------------------------------
# HTTP utilities
# ---------------------------------------------------------------------------

from npmkeeper.utils.http import HTTPClient

# ---------------------------------------------------------------------------
# Version utilities
# ---------------------------------------------------------------------------

from npmkeeper.utils.version_utils import (
    get_update_type,
    gtr,
    lte,
    max_satisfying,
    satisfies,
    valid_range,
)

# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

__all__ = [
    # Console
    "print_error",
    "print_table",
    "print_success",
    "print_warning",
    "print_unresolved",
    "print_violations",
    "get_raw_console",
    "reconfigure_console",
    "colorize_update_type",
    # Logging
    "get_logger",
    "get_capped_logger",
    "setup_logging",
    # Filesystem
    "safe_read_file",
    "read_json_file",
    "read_workspace_dependencies",
    "find_workspace_manifest",
    "find_installed_manifest",
    "validate_path",
    # HTTP
    "HTTPClient",
    # Version utilities
    "get_update_type",
    "gtr",
    "lte",
    "max_satisfying",
    "satisfies",
    "valid_range",
]
