"""
npmkeeper: npm multi-package update planning

npmkeeper computes a consistent, validated set of version updates for an
npm workspace from a handful of directly requested upgrades.

Features include:
    • Package group expansion (packages released in lockstep move together)
    • Peer dependency propagation to a fixed point
    • Forward and reverse peer dependency validation
    • Major-version compatibility widening for framework peers
    • Read-only planning from the command line or as a library
"""

from __future__ import annotations

from npmkeeper.__version__ import __version__

# ---------------------------------------------------------------------------
# Package Metadata
# ---------------------------------------------------------------------------

__author__ = "npmkeeper Contributors"
__license__ = "Apache-2.0"
__description__ = "Multi-package update resolution and peer dependency validation for npm."

# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

__all__ = [
    "__version__",
]
