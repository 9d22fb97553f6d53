"""
Registry document models for npmkeeper.

This module turns loosely-typed JSON from the npm registry and from
``node_modules`` into validated, immutable records:

- :class:`PackageManifest` — one exact version of a package
  (``package.json`` shape).
- :class:`PackageMetadata` — every published version of a package name
  (the registry *packument*).
- :class:`InstalledPackage` — what is currently present on disk.

Validation happens once, in the ``from_dict`` constructors, so downstream
code can rely on required fields being present and on every version string
being valid semver.
"""

from __future__ import annotations

from pathlib import Path
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional, Tuple

from npmkeeper.exceptions import ManifestError
from npmkeeper.constants import UPDATE_METADATA_KEY
from npmkeeper.utils.version_utils import parse_version, valid_version


def _string_map(value: Any) -> Dict[str, str]:
    """Keep only the ``str -> str`` entries of a JSON object."""
    if not isinstance(value, Mapping):
        return {}
    return {k: v for k, v in value.items() if isinstance(k, str) and isinstance(v, str)}


def _require_name(data: Mapping[str, Any]) -> str:
    name = data.get("name")
    if not isinstance(name, str) or not name.strip():
        raise ManifestError("Document has no package name", field="name")
    return name.strip()


@dataclass(frozen=True)
class PackageManifest:
    """Manifest of a single published (or installed) package version.

    Attributes:
        name: Package name, e.g. ``"@angular/core"``.
        version: Normalized semver version of this manifest.
        dependencies: Declared ``dependencies`` (``name -> range``).
        peer_dependencies: Declared ``peerDependencies``.
        peer_dependencies_meta: ``peerDependenciesMeta`` reduced to the
            ``optional`` flag of each peer.
        update_block: Raw ``ng-update`` object, or ``None`` when absent or
            not an object. Interpreted by
            :meth:`~npmkeeper.models.update_metadata.UpdateMetadata.from_manifest`.
    """

    name: str
    version: str
    dependencies: Dict[str, str] = field(default_factory=dict)
    peer_dependencies: Dict[str, str] = field(default_factory=dict)
    peer_dependencies_meta: Dict[str, bool] = field(default_factory=dict)
    update_block: Optional[Mapping[str, Any]] = field(default=None, compare=False)

    @classmethod
    def from_dict(cls, data: Any) -> "PackageManifest":
        """Validate a raw ``package.json`` object.

        Raises:
            ManifestError: *data* is not an object, or ``name``/``version``
                is missing or invalid.
        """
        if not isinstance(data, Mapping):
            raise ManifestError("Manifest must be a JSON object")

        name = _require_name(data)

        version = valid_version(data.get("version"))
        if version is None:
            raise ManifestError(
                f"Manifest of {name} has an invalid version: {data.get('version')!r}",
                package_name=name,
                field="version",
            )

        meta: Dict[str, bool] = {}
        raw_meta = data.get("peerDependenciesMeta")
        if isinstance(raw_meta, Mapping):
            for peer, entry in raw_meta.items():
                if isinstance(entry, Mapping):
                    meta[peer] = bool(entry.get("optional"))

        update_block = data.get(UPDATE_METADATA_KEY)

        return cls(
            name=name,
            version=version,
            dependencies=_string_map(data.get("dependencies")),
            peer_dependencies=_string_map(data.get("peerDependencies")),
            peer_dependencies_meta=meta,
            update_block=update_block if isinstance(update_block, Mapping) else None,
        )

    def is_optional_peer(self, peer: str) -> bool:
        """Return True if *peer* is flagged ``optional`` in ``peerDependenciesMeta``."""
        return self.peer_dependencies_meta.get(peer, False)


@dataclass(frozen=True)
class PackageMetadata:
    """Registry metadata for a package name across all versions.

    Attributes:
        name: Package name as reported by the registry.
        versions: Published versions that are valid semver, in registry
            order.
        dist_tags: ``dist-tags`` mapping, e.g. ``{"latest": "17.0.0"}``.
        raw_manifests: Per-version manifest objects embedded in a full
            packument. Parsed on demand by :meth:`manifest_for`.
    """

    name: str
    versions: Tuple[str, ...] = ()
    dist_tags: Dict[str, str] = field(default_factory=dict)
    raw_manifests: Dict[str, Mapping[str, Any]] = field(
        default_factory=dict,
        repr=False,
        compare=False,
    )

    @classmethod
    def from_dict(cls, data: Any) -> "PackageMetadata":
        """Validate a registry packument.

        ``versions`` may be the registry's object keyed by version or a
        plain list of version strings. Entries that are not valid semver
        are dropped.

        Raises:
            ManifestError: *data* is not an object or has no name.
        """
        if not isinstance(data, Mapping):
            raise ManifestError("Registry metadata must be a JSON object")

        name = _require_name(data)
        raw_versions = data.get("versions") or {}

        manifests: Dict[str, Mapping[str, Any]] = {}
        if isinstance(raw_versions, Mapping):
            candidates = list(raw_versions.keys())
            manifests = {
                k: v for k, v in raw_versions.items() if isinstance(v, Mapping)
            }
        elif isinstance(raw_versions, (list, tuple)):
            candidates = [v for v in raw_versions if isinstance(v, str)]
        else:
            raise ManifestError(
                f"Registry metadata of {name} has malformed versions",
                package_name=name,
                field="versions",
            )

        versions = tuple(v for v in candidates if parse_version(v) is not None)

        return cls(
            name=name,
            versions=versions,
            dist_tags=_string_map(data.get("dist-tags")),
            raw_manifests=manifests,
        )

    def resolve_tag(self, tag: str) -> Optional[str]:
        """Return the version a dist-tag points at, or ``None``."""
        return self.dist_tags.get(tag)

    def has_version(self, version: str) -> bool:
        """Return True if *version* is published."""
        return version in self.versions

    def manifest_for(self, version: str) -> Optional[PackageManifest]:
        """Build the embedded manifest for *version*, if the packument had one.

        Raises:
            ManifestError: The embedded manifest is malformed.
        """
        raw = self.raw_manifests.get(version)
        if raw is None:
            return None
        return PackageManifest.from_dict(raw)


@dataclass(frozen=True)
class InstalledPackage:
    """A package found in the workspace's ``node_modules``.

    Attributes:
        name: Package name.
        version: Installed version.
        path: Directory holding the installed ``package.json``, if known.
    """

    name: str
    version: str
    path: Optional[Path] = None
