"""
Package info resolution for npmkeeper.

Given the registry metadata of one package, the current request map and the
workspace's declared ranges, :class:`PackageInfoResolver` works out what is
installed now and what the package would move to. Results are memoized per
``(name, requested token)`` for the lifetime of the resolver, which is one
analysis run.
"""

from __future__ import annotations

from typing import Dict, Mapping, Optional, Tuple

from npmkeeper.utils.logger import get_logger
from npmkeeper.core.provider import PackageProvider
from npmkeeper.constants import LATEST_DIST_TAG, MOST_RECENT_TOKEN
from npmkeeper.utils.version_utils import lte, max_satisfying
from npmkeeper.exceptions import PackageNotInWorkspaceError, VersionResolutionError
from npmkeeper.models import PackageInfo, PackageManifest, PackageMetadata, PackageVersionInfo

logger = get_logger("resolver")

__all__ = ["PackageInfoResolver", "RequestMap"]

#: Requested updates: package name -> version token (exact version, range,
#: dist-tag name, ``"next"``, or ``None`` for the latest release).
RequestMap = Mapping[str, Optional[str]]

# Memo key marker for names absent from the request map
_NOT_REQUESTED = object()


class PackageInfoResolver:
    """Resolve installed and target stances of packages.

    Args:
        provider: Source of registry and on-disk state.
        all_dependencies: Every range declared in the workspace
            ``package.json``, keyed by package name.

    Example::

        resolver = PackageInfoResolver(provider, {"rxjs": "^7.0.0"})
        info = await resolver.resolve(metadata, {"rxjs": "7.8.1"})
        print(info)   # rxjs 7.5.0 -> 7.8.1
    """

    def __init__(
        self,
        provider: PackageProvider,
        all_dependencies: Mapping[str, str],
    ) -> None:
        self.provider = provider
        self.all_dependencies = all_dependencies
        self._memo: Dict[Tuple[str, object], PackageInfo] = {}

    async def resolve(self, metadata: PackageMetadata, packages: RequestMap) -> PackageInfo:
        """Build the :class:`PackageInfo` of ``metadata.name``.

        The target is only computed when the name is present in *packages*;
        packages that are merely installed resolve with ``target=None``.

        Args:
            metadata: Registry metadata of the package.
            packages: Current request map. Only this package's entry is read.

        Returns:
            The resolved, immutable package info.

        Raises:
            PackageNotInWorkspaceError: The workspace declares no range for
                the package.
            VersionResolutionError: No installed version or installed
                manifest can be determined.
        """
        name = metadata.name
        token = packages[name] if name in packages else _NOT_REQUESTED
        key = (name, token)

        cached = self._memo.get(key)
        if cached is not None:
            return cached

        info = await self._build(metadata, token)
        self._memo[key] = info
        return info

    # ------------------------------------------------------------------
    # Resolution steps (private)
    # ------------------------------------------------------------------

    async def _build(self, metadata: PackageMetadata, token: object) -> PackageInfo:
        name = metadata.name

        package_json_range = self.all_dependencies.get(name)
        if not package_json_range:
            raise PackageNotInWorkspaceError(name)

        installed = await self._resolve_installed(metadata, package_json_range)

        target: Optional[PackageVersionInfo] = None
        if token is not _NOT_REQUESTED:
            target = await self._resolve_target(metadata, token, installed.version)  # type: ignore[arg-type]

        return PackageInfo(
            name=name,
            metadata=metadata,
            installed=installed,
            package_json_range=package_json_range,
            target=target,
        )

    async def _resolve_installed(
        self,
        metadata: PackageMetadata,
        package_json_range: str,
    ) -> PackageVersionInfo:
        """Determine the installed version and its manifest."""
        name = metadata.name
        local_manifest = await self.provider.get_installed_manifest(name)

        version: Optional[str] = None
        if local_manifest is not None:
            version = local_manifest.version
        else:
            installed = await self.provider.get_installed_package(name)
            if installed is not None:
                version = installed.version
            else:
                # Not on disk: assume the best match of the declared range
                version = max_satisfying(metadata.versions, package_json_range)

        if version is None:
            raise VersionResolutionError(
                f"Could not determine the installed version of package {name}.",
                package_name=name,
            )

        manifest: Optional[PackageManifest] = local_manifest
        if manifest is None and metadata.has_version(version):
            manifest = await self.provider.get_registry_manifest(name, version)

        if manifest is None:
            raise VersionResolutionError(
                f"Package {name} has no manifest for installed version {version}.",
                package_name=name,
                version=version,
            )

        return PackageVersionInfo.from_manifest(version, manifest)

    async def _resolve_target(
        self,
        metadata: PackageMetadata,
        token: Optional[str],
        installed_version: str,
    ) -> Optional[PackageVersionInfo]:
        """Turn a requested token into a concrete newer version, if any."""
        name = metadata.name
        version = self._select_version(metadata, token)

        if version is None:
            logger.debug("No published version of %s matches %r.", name, token)
            return None

        if lte(version, installed_version):
            logger.debug(
                "Package %s already satisfied by package.json (%s).",
                name,
                self.all_dependencies.get(name),
            )
            return None

        manifest = await self.provider.get_registry_manifest(name, version)
        if manifest is None:
            logger.warning("No manifest for %s@%s; leaving it without a target.", name, version)
            return None

        return PackageVersionInfo.from_manifest(version, manifest)

    @staticmethod
    def _select_version(metadata: PackageMetadata, token: Optional[str]) -> Optional[str]:
        """Map a token onto a published version.

        Dist-tag names win, ``"next"`` falls back to the ``latest`` tag and
        anything else is treated as a range. A missing tag degrades to the
        highest published release.
        """
        if token is None:
            token = LATEST_DIST_TAG

        tagged = metadata.resolve_tag(token)
        if tagged is None and token == MOST_RECENT_TOKEN:
            tagged = metadata.resolve_tag(LATEST_DIST_TAG)
        if tagged is not None:
            return tagged

        if token in (LATEST_DIST_TAG, MOST_RECENT_TOKEN):
            return max_satisfying(metadata.versions, "*")

        return max_satisfying(metadata.versions, token)
