"""
Package-group and migration metadata for npmkeeper.

Packages may publish an ``ng-update`` block in their manifest::

    "ng-update": {
        "packageGroupName": "@angular/core",
        "packageGroup": ["@angular/core", "@angular/common", "@angular/router"],
        "migrations": "./schematics/migrations.json"
    }

``packageGroup`` is loosely specified: registries contain arrays of names,
objects mapping names to versions, and occasionally garbage. The raw value
is classified once by :func:`normalize_package_group` into one of the
:data:`PackageGroup` variants, each of which knows how to turn itself into
a ``name -> version`` mapping.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional, Tuple, Union

from npmkeeper.utils.logger import get_logger
from npmkeeper.models.manifest import PackageManifest

logger = get_logger("models.update_metadata")

__all__ = [
    "NoPackageGroup",
    "PackageGroupList",
    "PackageGroupMap",
    "MalformedPackageGroup",
    "PackageGroup",
    "normalize_package_group",
    "UpdateMetadata",
]


# ---------------------------------------------------------------------------
# packageGroup variants
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class NoPackageGroup:
    """The manifest declares no package group."""

    @property
    def warning(self) -> Optional[str]:
        return None

    def as_mapping(self, version: str) -> Dict[str, str]:
        return {}


@dataclass(frozen=True)
class PackageGroupList:
    """``packageGroup`` declared as an array of member names.

    Members carry no version of their own; :meth:`as_mapping` assigns the
    version the caller is moving the group to.
    """

    members: Tuple[str, ...]

    @property
    def warning(self) -> Optional[str]:
        return None

    def as_mapping(self, version: str) -> Dict[str, str]:
        return {member: version for member in self.members}


@dataclass(frozen=True)
class PackageGroupMap:
    """``packageGroup`` declared as an object of ``name -> version``."""

    members: Tuple[Tuple[str, str], ...]

    @property
    def warning(self) -> Optional[str]:
        return None

    def as_mapping(self, version: str) -> Dict[str, str]:
        return dict(self.members)


@dataclass(frozen=True)
class MalformedPackageGroup:
    """``packageGroup`` is present but neither a string array nor a string map.

    Treated as "no group"; :attr:`warning` holds the message to log.
    """

    owner: str

    @property
    def warning(self) -> Optional[str]:
        return f"packageGroup metadata of package {self.owner} is malformed. Ignoring."

    def as_mapping(self, version: str) -> Dict[str, str]:
        return {}


PackageGroup = Union[NoPackageGroup, PackageGroupList, PackageGroupMap, MalformedPackageGroup]


def normalize_package_group(raw: Any, owner: str) -> PackageGroup:
    """Classify a raw ``packageGroup`` value.

    Args:
        raw: The ``packageGroup`` value from an ``ng-update`` block.
        owner: Name of the package declaring it (used in the warning).

    Returns:
        The matching :data:`PackageGroup` variant.

    Example::

        >>> normalize_package_group(["a", "b"], "a").as_mapping("2.0.0")
        {'a': '2.0.0', 'b': '2.0.0'}
        >>> normalize_package_group(["a", 3], "a").warning
        'packageGroup metadata of package a is malformed. Ignoring.'
    """
    if raw is None:
        return NoPackageGroup()

    if isinstance(raw, list):
        if all(isinstance(member, str) for member in raw):
            return PackageGroupList(tuple(raw))
        return MalformedPackageGroup(owner)

    if isinstance(raw, Mapping):
        if all(isinstance(value, str) for value in raw.values()):
            return PackageGroupMap(tuple(raw.items()))
        return MalformedPackageGroup(owner)

    return MalformedPackageGroup(owner)


# ---------------------------------------------------------------------------
# Derived metadata
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class UpdateMetadata:
    """Normalized ``ng-update`` block of one manifest.

    Attributes:
        package_group: Group members mapped to versions; empty when the
            package declares no (valid) group.
        package_group_name: Explicit ``packageGroupName``, otherwise the
            first member of the group.
        migrations: Path of the migration collection, if declared.
    """

    package_group: Dict[str, str] = field(default_factory=dict)
    package_group_name: Optional[str] = None
    migrations: Optional[str] = None

    @classmethod
    def from_manifest(cls, manifest: PackageManifest) -> "UpdateMetadata":
        """Derive update metadata from *manifest*.

        Array-style groups map every member to the manifest's own version.
        Malformed ``packageGroup`` and ``migrations`` values are logged and
        ignored.
        """
        block = manifest.update_block
        if not block:
            return cls()

        package_group: Dict[str, str] = {}
        group_name: Optional[str] = None

        raw_group = block.get("packageGroup")
        if raw_group:
            group = normalize_package_group(raw_group, manifest.name)
            if group.warning:
                logger.warning(group.warning)
            package_group = group.as_mapping(manifest.version)
            group_name = next(iter(package_group), None)

        explicit_name = block.get("packageGroupName")
        if isinstance(explicit_name, str):
            group_name = explicit_name

        migrations: Optional[str] = None
        raw_migrations = block.get("migrations")
        if raw_migrations:
            if isinstance(raw_migrations, str):
                migrations = raw_migrations
            else:
                logger.warning(
                    "migrations metadata of package %s is malformed. Ignoring.",
                    manifest.name,
                )

        return cls(
            package_group=package_group,
            package_group_name=group_name,
            migrations=migrations,
        )
