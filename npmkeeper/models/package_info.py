"""
Resolved package state for npmkeeper.

A :class:`PackageInfo` is the outcome of resolving one package name during
an update analysis: the registry metadata, what is installed now, what it
would move to (if anything), and the range the workspace declares for it.
Instances are immutable and live only for one analysis.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional

from npmkeeper.models.manifest import PackageManifest, PackageMetadata
from npmkeeper.models.update_metadata import UpdateMetadata
from npmkeeper.utils.version_utils import get_update_type


@dataclass(frozen=True)
class PackageVersionInfo:
    """One version stance of a package (installed or target).

    Attributes:
        version: Concrete version string.
        manifest: Manifest of that version.
        update_metadata: ``ng-update`` metadata derived from *manifest*.
    """

    version: str
    manifest: PackageManifest
    update_metadata: UpdateMetadata

    @classmethod
    def from_manifest(cls, version: str, manifest: PackageManifest) -> "PackageVersionInfo":
        """Build a stance, deriving its update metadata from *manifest*."""
        return cls(
            version=version,
            manifest=manifest,
            update_metadata=UpdateMetadata.from_manifest(manifest),
        )


@dataclass(frozen=True)
class PackageInfo:
    """Resolved installed/target state of a single package.

    Attributes:
        name: Package name (unique key of the analysis result).
        metadata: Registry metadata for the name.
        installed: Currently installed stance. Always present.
        package_json_range: Range declared in the workspace ``package.json``.
        target: Stance the package would move to; ``None`` when no update
            is warranted.
    """

    name: str
    metadata: PackageMetadata
    installed: PackageVersionInfo
    package_json_range: str
    target: Optional[PackageVersionInfo] = None

    # ------------------------------------------------------------------
    # Derived state
    # ------------------------------------------------------------------

    @property
    def active(self) -> PackageVersionInfo:
        """The stance that will be on disk after the update."""
        return self.target or self.installed

    @property
    def resolved_version(self) -> str:
        """Version that will be installed: the target's, else the installed one."""
        if self.target is not None:
            return self.target.manifest.version
        return self.installed.version

    @property
    def group_name(self) -> str:
        """``packageGroupName`` of the active stance, falling back to :attr:`name`."""
        return self.active.update_metadata.package_group_name or self.name

    def has_update(self) -> bool:
        """Return True if the package would move to a new version."""
        return self.target is not None

    @property
    def update_type(self) -> Optional[str]:
        """Classification of the move (``major``/``minor``/...), if any."""
        if self.target is None:
            return None
        return get_update_type(self.installed.version, self.target.version)

    # ------------------------------------------------------------------
    # Reporting & serialization
    # ------------------------------------------------------------------

    def to_json(self) -> Dict[str, Any]:
        """Serialize to a JSON-compatible dictionary."""
        entry: Dict[str, Any] = {
            "name": self.name,
            "range": self.package_json_range,
            "installed": self.installed.version,
            "status": "update" if self.has_update() else "unchanged",
        }

        if self.target is not None:
            entry["target"] = self.target.version
            entry["update_type"] = self.update_type
            migrations = self.target.update_metadata.migrations
            if migrations:
                entry["migrations"] = migrations

        if self.active.update_metadata.package_group_name:
            entry["group"] = self.active.update_metadata.package_group_name

        return entry

    def __str__(self) -> str:
        if self.target is not None:
            return f"{self.name} {self.installed.version} -> {self.target.version}"
        return f"{self.name} {self.installed.version}"

    def __repr__(self) -> str:
        target = self.target.version if self.target else None
        return (
            "PackageInfo("
            f"name={self.name!r}, "
            f"installed={self.installed.version!r}, "
            f"target={target!r}, "
            f"range={self.package_json_range!r}"
            ")"
        )
