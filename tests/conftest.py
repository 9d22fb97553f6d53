from __future__ import annotations

import logging
from collections import Counter
from typing import Any, Dict, Generator, List, Mapping, Optional, Tuple

import pytest

from npmkeeper.exceptions import RegistryError
from npmkeeper.utils.version_utils import parse_version
from npmkeeper.models import (
    InstalledPackage,
    PackageInfo,
    PackageManifest,
    PackageMetadata,
    PackageVersionInfo,
)


# ==============================================================================
# Builders
# ==============================================================================


def make_manifest(
    name: str,
    version: str,
    *,
    peers: Optional[Mapping[str, str]] = None,
    optional_peers: Tuple[str, ...] = (),
    ng_update: Optional[Mapping[str, Any]] = None,
    dependencies: Optional[Mapping[str, str]] = None,
) -> PackageManifest:
    """Build a validated manifest the way the registry would serve it."""
    data: Dict[str, Any] = {"name": name, "version": version}
    if peers:
        data["peerDependencies"] = dict(peers)
    if optional_peers:
        data["peerDependenciesMeta"] = {p: {"optional": True} for p in optional_peers}
    if ng_update is not None:
        data["ng-update"] = dict(ng_update)
    if dependencies:
        data["dependencies"] = dict(dependencies)
    return PackageManifest.from_dict(data)


def make_info(
    installed: PackageManifest,
    target: Optional[PackageManifest] = None,
    *,
    package_json_range: Optional[str] = None,
) -> PackageInfo:
    """Build a resolved package info from its installed and target manifests."""
    versions = [installed.version] + ([target.version] if target else [])
    return PackageInfo(
        name=installed.name,
        metadata=PackageMetadata(name=installed.name, versions=tuple(versions)),
        installed=PackageVersionInfo.from_manifest(installed.version, installed),
        package_json_range=package_json_range or f"^{installed.version}",
        target=PackageVersionInfo.from_manifest(target.version, target) if target else None,
    )


class FakeProvider:
    """In-memory package provider.

    Stable versions become the ``latest`` dist-tag in publication order.
    Every call is counted in :attr:`calls` keyed by ``(method, name)``.
    """

    def __init__(self) -> None:
        self._versions: Dict[str, List[str]] = {}
        self._tags: Dict[str, Dict[str, str]] = {}
        self._manifests: Dict[Tuple[str, str], PackageManifest] = {}
        self._installed: Dict[str, PackageManifest] = {}
        self._failures: Dict[str, Exception] = {}
        self.calls: Counter = Counter()

    # ------------------------------------------------------------------
    # Setup
    # ------------------------------------------------------------------

    def publish(self, name: str, version: str, **manifest_fields: Any) -> PackageManifest:
        manifest = make_manifest(name, version, **manifest_fields)
        self._versions.setdefault(name, []).append(version)
        tags = self._tags.setdefault(name, {})
        parsed = parse_version(version)
        if parsed is not None and not parsed.prerelease:
            tags["latest"] = version
        self._manifests[(name, version)] = manifest
        return manifest

    def tag(self, name: str, tag: str, version: str) -> None:
        self._tags.setdefault(name, {})[tag] = version

    def install(self, name: str, version: str, **manifest_fields: Any) -> PackageManifest:
        """Publish *version* if needed and mark it installed."""
        if (name, version) not in self._manifests:
            self.publish(name, version, **manifest_fields)
        self._installed[name] = self._manifests[(name, version)]
        return self._installed[name]

    def fail(self, name: str, exc: Optional[Exception] = None) -> None:
        self._failures[name] = exc or RegistryError(
            f"Package '{name}' not found on the registry",
            package_name=name,
            status_code=404,
        )

    # ------------------------------------------------------------------
    # PackageProvider
    # ------------------------------------------------------------------

    async def get_installed_package(self, name: str) -> Optional[InstalledPackage]:
        self.calls["installed_package", name] += 1
        manifest = self._installed.get(name)
        if manifest is None:
            return None
        return InstalledPackage(name=name, version=manifest.version)

    async def get_installed_manifest(self, name: str) -> Optional[PackageManifest]:
        self.calls["installed_manifest", name] += 1
        return self._installed.get(name)

    async def get_registry_metadata(self, name: str) -> PackageMetadata:
        self.calls["metadata", name] += 1
        if name in self._failures:
            raise self._failures[name]
        if name not in self._versions:
            raise RegistryError(
                f"Package '{name}' not found on the registry",
                package_name=name,
                status_code=404,
            )
        return PackageMetadata(
            name=name,
            versions=tuple(self._versions[name]),
            dist_tags=dict(self._tags.get(name, {})),
        )

    async def get_registry_manifest(self, name: str, version: str) -> Optional[PackageManifest]:
        self.calls["manifest", name] += 1
        return self._manifests.get((name, version))


# ==============================================================================
# Fixtures
# ==============================================================================


@pytest.fixture
def manifest_factory() -> Any:
    """Return the :func:`make_manifest` builder."""
    return make_manifest


@pytest.fixture
def info_factory() -> Any:
    """Return the :func:`make_info` builder."""
    return make_info


@pytest.fixture
def provider() -> FakeProvider:
    """Empty in-memory provider."""
    return FakeProvider()


@pytest.fixture(autouse=True)
def restore_npmkeeper_logger() -> Generator[None, None, None]:
    """Undo logging configuration done by a test (e.g. through the CLI)."""
    root_logger = logging.getLogger("npmkeeper")
    handlers = list(root_logger.handlers)
    level = root_logger.level
    propagate = root_logger.propagate

    yield

    root_logger.handlers[:] = handlers
    root_logger.setLevel(level)
    root_logger.propagate = propagate
