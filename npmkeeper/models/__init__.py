"""
Unified data model exports for npmkeeper.

This module re-exports all core data models to provide a stable and
convenient public API. Users can import models directly from
``npmkeeper.models`` instead of individual submodules.

Example:
    >>> from npmkeeper.models import PackageInfo, PackageManifest, PeerViolation
"""

from __future__ import annotations

from npmkeeper.models.manifest import InstalledPackage, PackageManifest, PackageMetadata
from npmkeeper.models.update_metadata import (
    MalformedPackageGroup,
    NoPackageGroup,
    PackageGroup,
    PackageGroupList,
    PackageGroupMap,
    UpdateMetadata,
    normalize_package_group,
)
from npmkeeper.models.package_info import PackageInfo, PackageVersionInfo
from npmkeeper.models.violation import PeerViolation, ViolationKind

__all__ = [
    "InstalledPackage",
    "PackageManifest",
    "PackageMetadata",
    "PackageGroup",
    "NoPackageGroup",
    "PackageGroupList",
    "PackageGroupMap",
    "MalformedPackageGroup",
    "normalize_package_group",
    "UpdateMetadata",
    "PackageInfo",
    "PackageVersionInfo",
    "PeerViolation",
    "ViolationKind",
]
