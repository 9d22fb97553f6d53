"""Package metadata providers for npmkeeper.

Every piece of outside state the update analysis needs (registry
packuments, per-version manifests and what is installed in
``node_modules``) is obtained through a :class:`PackageProvider`. The
analysis only ever awaits provider calls, so tests substitute an
in-memory implementation and the CLI uses :class:`NpmRegistryProvider`.

Typical usage::

    from npmkeeper.utils.http import HTTPClient
    from npmkeeper.core.provider import NpmRegistryProvider

    async with HTTPClient() as client:
        provider = NpmRegistryProvider(client, project_root=".")
        metadata = await provider.get_registry_metadata("@angular/core")
        print(metadata.dist_tags["latest"])     # e.g. "17.0.0"
"""

from __future__ import annotations

import asyncio
from pathlib import Path
from urllib.parse import quote
from typing import Dict, Hashable, Optional, Protocol, Tuple, Union

from npmkeeper.utils.http import HTTPClient
from npmkeeper.utils.logger import get_logger
from npmkeeper.exceptions import FileOperationError, ManifestError, RegistryError
from npmkeeper.models.manifest import InstalledPackage, PackageManifest, PackageMetadata
from npmkeeper.utils.filesystem import find_installed_manifest, read_json_file
from npmkeeper.constants import (
    DEFAULT_CONCURRENT_LIMIT,
    DEFAULT_REGISTRY,
    REGISTRY_MANIFEST_PATH,
    REGISTRY_PACKUMENT_PATH,
)

logger = get_logger("provider")

# Public API
__all__ = ["PackageProvider", "NpmRegistryProvider"]


# ---------------------------------------------------------------------------
# Contract
# ---------------------------------------------------------------------------


class PackageProvider(Protocol):
    """Source of registry and on-disk package state.

    Implementations may cache freely; callers assume answers do not change
    during one analysis.
    """

    async def get_installed_package(self, name: str) -> Optional[InstalledPackage]:
        """Return what is installed for *name*, or ``None``."""
        ...

    async def get_installed_manifest(self, name: str) -> Optional[PackageManifest]:
        """Return the on-disk manifest of *name*, or ``None`` if not installed."""
        ...

    async def get_registry_metadata(self, name: str) -> PackageMetadata:
        """Return registry metadata for *name*.

        Raises:
            NpmKeeperError: The package is unknown or could not be fetched.
        """
        ...

    async def get_registry_manifest(
        self,
        name: str,
        version: str,
    ) -> Optional[PackageManifest]:
        """Return the manifest of ``name@version``, or ``None`` if unpublished."""
        ...


# ---------------------------------------------------------------------------
# npm registry + node_modules implementation
# ---------------------------------------------------------------------------


class NpmRegistryProvider:
    """Async-safe provider backed by an npm registry and a local project.

    Each package name triggers **at most one** packument request and each
    ``name@version`` at most one manifest request: concurrent callers for
    the same key wait on a per-key :class:`asyncio.Lock` and then read the
    cache. A :class:`asyncio.Semaphore` limits fetches in flight.

    Args:
        http_client: A pre-configured :class:`HTTPClient` instance.
        project_root: Directory containing ``node_modules``.
        registry: Registry base URL.
        concurrent_limit: Maximum number of registry fetches in flight.

    Example::

        async with HTTPClient() as client:
            provider = NpmRegistryProvider(client, concurrent_limit=5)
            core = await provider.get_registry_metadata("@angular/core")
            common = await provider.get_registry_manifest("@angular/common", "17.0.0")
    """

    def __init__(
        self,
        http_client: HTTPClient,
        project_root: Union[str, Path] = ".",
        *,
        registry: str = DEFAULT_REGISTRY,
        concurrent_limit: int = DEFAULT_CONCURRENT_LIMIT,
    ) -> None:
        self.http_client = http_client
        self.project_root = Path(project_root)
        self.registry = registry.rstrip("/")
        self._semaphore = asyncio.Semaphore(concurrent_limit)

        self._metadata: Dict[str, PackageMetadata] = {}
        self._manifests: Dict[Tuple[str, str], Optional[PackageManifest]] = {}
        self._installed: Dict[str, Optional[PackageManifest]] = {}
        self._locks: Dict[Hashable, asyncio.Lock] = {}

    # ------------------------------------------------------------------
    # Registry
    # ------------------------------------------------------------------

    async def get_registry_metadata(self, name: str) -> PackageMetadata:
        """Fetch (or return cached) packument for *name*.

        Raises:
            RegistryError: The package does not exist or its packument is
                malformed.
            NetworkError: The registry could not be reached.
        """
        # Fast path: already cached
        if name in self._metadata:
            return self._metadata[name]

        async with self._lock_for(name):
            if name in self._metadata:
                return self._metadata[name]

            url = REGISTRY_PACKUMENT_PATH.format(
                registry=self.registry,
                package=_encode_name(name),
            )
            try:
                async with self._semaphore:
                    data = await self.http_client.get_json(url)
            except RegistryError as exc:
                raise RegistryError(
                    f"Package '{name}' not found on the registry",
                    package_name=name,
                    url=url,
                    status_code=exc.status_code,
                ) from exc

            try:
                metadata = PackageMetadata.from_dict(data)
            except ManifestError as exc:
                raise RegistryError(
                    f"Malformed registry metadata for '{name}': {exc.message}",
                    package_name=name,
                    url=url,
                ) from exc

            self._metadata[name] = metadata
            return metadata

    async def get_registry_manifest(
        self,
        name: str,
        version: str,
    ) -> Optional[PackageManifest]:
        """Return the manifest of ``name@version``.

        Resolution order (fastest first):

        1. Per-version manifest cache.
        2. The manifest embedded in the cached packument.
        3. A targeted ``/{name}/{version}`` fetch.

        Unpublished versions and malformed manifests yield ``None``.
        """
        key = (name, version)
        if key in self._manifests:
            return self._manifests[key]

        metadata = self._metadata.get(name)
        if metadata is not None and version in metadata.raw_manifests:
            manifest = self._parse_embedded(metadata, version)
            self._manifests[key] = manifest
            return manifest

        async with self._lock_for(key):
            if key in self._manifests:
                return self._manifests[key]

            async with self._semaphore:
                manifest = await self._fetch_manifest(name, version)
            self._manifests[key] = manifest
            return manifest

    def _lock_for(self, key: Hashable) -> asyncio.Lock:
        lock = self._locks.get(key)
        if lock is None:
            lock = self._locks[key] = asyncio.Lock()
        return lock

    # ------------------------------------------------------------------
    # node_modules
    # ------------------------------------------------------------------

    async def get_installed_manifest(self, name: str) -> Optional[PackageManifest]:
        """Read ``node_modules/<name>/package.json``.

        Missing packages yield ``None``; unreadable or malformed manifests
        are logged and treated as missing so resolution can fall back to
        the registry.
        """
        if name in self._installed:
            return self._installed[name]

        manifest: Optional[PackageManifest] = None
        path = find_installed_manifest(self.project_root, name)
        if path is not None:
            try:
                manifest = PackageManifest.from_dict(read_json_file(path))
            except (ManifestError, FileOperationError) as exc:
                logger.warning("Ignoring installed manifest %s: %s", path, exc)

        self._installed[name] = manifest
        return manifest

    async def get_installed_package(self, name: str) -> Optional[InstalledPackage]:
        """Describe the installed copy of *name*, if any."""
        manifest = await self.get_installed_manifest(name)
        if manifest is None:
            return None

        path = find_installed_manifest(self.project_root, name)
        return InstalledPackage(
            name=name,
            version=manifest.version,
            path=path.parent if path is not None else None,
        )

    # ------------------------------------------------------------------
    # Helpers (private)
    # ------------------------------------------------------------------

    async def _fetch_manifest(self, name: str, version: str) -> Optional[PackageManifest]:
        """Hit ``/{name}/{version}``; a 404 means the version is unpublished."""
        url = REGISTRY_MANIFEST_PATH.format(
            registry=self.registry,
            package=_encode_name(name),
            version=quote(version, safe=""),
        )

        try:
            data = await self.http_client.get_json(url)
        except RegistryError:
            logger.debug("No manifest for %s@%s", name, version)
            return None

        try:
            return PackageManifest.from_dict(data)
        except ManifestError as exc:
            logger.warning("Malformed manifest for %s@%s: %s", name, version, exc)
            return None

    @staticmethod
    def _parse_embedded(metadata: PackageMetadata, version: str) -> Optional[PackageManifest]:
        try:
            return metadata.manifest_for(version)
        except ManifestError as exc:
            logger.warning(
                "Malformed manifest for %s@%s: %s",
                metadata.name,
                version,
                exc,
            )
            return None


# ---------------------------------------------------------------------------
# Module-level helpers
# ---------------------------------------------------------------------------


def _encode_name(name: str) -> str:
    """Encode a package name for use as a registry URL path segment.

    Example::

        >>> _encode_name("@angular/core")
        '@angular%2Fcore'
    """
    return quote(name, safe="@")
