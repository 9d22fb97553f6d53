"""
npmkeeper version information.

Single source of truth for the package version, read by ``pyproject.toml``
and reported by ``npmkeeper --version`` and the HTTP ``User-Agent``.
"""

from __future__ import annotations

__version__ = "0.1.0.dev0"

#: Human-readable version (for CLI and logs)
VERSION_STRING = f"npmkeeper {__version__}"
