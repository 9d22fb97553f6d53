"""
Core functionality exports for npmkeeper.

This module provides convenient access to the core subsystems of npmkeeper.
Importing from here keeps user-facing imports clean and stable:

    from npmkeeper.core import UpdateWorkflow, NpmRegistryProvider
"""

from __future__ import annotations

from npmkeeper.core.compat import (
    DEFAULT_PEER_TRANSFORMS,
    PeerVersionTransform,
    angular_major_compat_guarantee,
    apply_peer_transform,
)
from npmkeeper.core.provider import NpmRegistryProvider, PackageProvider
from npmkeeper.core.resolver import PackageInfoResolver
from npmkeeper.core.expander import PackageExpander
from npmkeeper.core.validator import PeerDependencyValidator
from npmkeeper.core.workflow import UpdateWorkflow

__all__ = [
    "DEFAULT_PEER_TRANSFORMS",
    "PeerVersionTransform",
    "angular_major_compat_guarantee",
    "apply_peer_transform",
    "PackageProvider",
    "NpmRegistryProvider",
    "PackageInfoResolver",
    "PackageExpander",
    "PeerDependencyValidator",
    "UpdateWorkflow",
]
