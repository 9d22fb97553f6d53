"""
Package group and peer expansion for npmkeeper.

Updating one package often forces others to move with it: members of the
same ``ng-update`` package group are released in lockstep, and a new
version may require peers the workspace does not satisfy yet.
:class:`PackageExpander` grows the request map until a full pass over the
metadata universe adds nothing.

The loop terminates because every productive pass adds at least one name
and names are only ever added, never removed or re-tokenized.
"""

from __future__ import annotations

from typing import Dict, Mapping, MutableMapping, Optional, Set, Tuple

from npmkeeper.utils.logger import get_logger
from npmkeeper.core.provider import PackageProvider
from npmkeeper.utils.version_utils import max_satisfying, satisfies
from npmkeeper.constants import LATEST_DIST_TAG
from npmkeeper.core.resolver import PackageInfoResolver
from npmkeeper.models import PackageManifest, PackageMetadata, normalize_package_group

logger = get_logger("expander")

__all__ = ["PackageExpander"]


class PackageExpander:
    """Grow a request map to its fixed point.

    Args:
        resolver: Resolver shared with the rest of the analysis.
        provider: Source of target manifests.
        all_dependencies: Ranges declared in the workspace ``package.json``.
        universe: Registry metadata of every package that could be fetched.
            Fixed for the lifetime of the expander.
    """

    def __init__(
        self,
        resolver: PackageInfoResolver,
        provider: PackageProvider,
        all_dependencies: Mapping[str, str],
        universe: Mapping[str, PackageMetadata],
    ) -> None:
        self.resolver = resolver
        self.provider = provider
        self.all_dependencies = all_dependencies
        self.universe = universe
        self._manifests: Dict[Tuple[str, str], Optional[PackageManifest]] = {}

    async def expand(self, packages: MutableMapping[str, Optional[str]]) -> Set[str]:
        """Add group members and unmet peers to *packages* in place.

        Args:
            packages: Request map (name -> version token). Existing entries
                are never overwritten.

        Returns:
            Requested or added names that have no registry metadata and
            therefore could not be expanded through.
        """
        passes = 0
        while True:
            passes += 1
            size_before = len(packages)

            for metadata in self.universe.values():
                await self._add_package_group(metadata, packages)
                await self._add_peer_dependencies(metadata, packages)

            if len(packages) <= size_before:
                break

        unresolvable = {name for name in packages if name not in self.universe}
        for name in sorted(unresolvable):
            logger.debug("Cannot expand through %s: no registry metadata", name)

        logger.debug(
            "Expansion reached a fixed point after %d pass(es): %d package(s)",
            passes,
            len(packages),
        )
        return unresolvable

    # ------------------------------------------------------------------
    # Expansion rules (private)
    # ------------------------------------------------------------------

    async def _add_package_group(
        self,
        metadata: PackageMetadata,
        packages: MutableMapping[str, Optional[str]],
    ) -> None:
        """Request every workspace-declared member of the package's group."""
        name = metadata.name
        if name not in packages:
            return

        token = packages[name]
        manifest = await self._effective_manifest(metadata, packages)
        if manifest is None or not manifest.update_block:
            return

        raw_group = manifest.update_block.get("packageGroup")
        if not raw_group:
            return

        group = normalize_package_group(raw_group, name)
        if group.warning:
            logger.warning(group.warning)
            return

        for member, member_token in group.as_mapping(token or LATEST_DIST_TAG).items():
            # Command-line requests win; uninstalled members are not pulled in
            if member not in packages and member in self.all_dependencies:
                logger.debug("Adding %s@%s from package group of %s", member, member_token, name)
                packages[member] = member_token

    async def _add_peer_dependencies(
        self,
        metadata: PackageMetadata,
        packages: MutableMapping[str, Optional[str]],
    ) -> None:
        """Request peers of the target manifest that the workspace does not satisfy."""
        name = metadata.name
        if name not in packages:
            return

        manifest = await self._effective_manifest(metadata, packages)
        if manifest is None:
            return

        for peer, peer_range in manifest.peer_dependencies.items():
            if peer in packages:
                continue

            peer_metadata = self.universe.get(peer)
            if peer_metadata is not None:
                peer_info = await self.resolver.resolve(peer_metadata, packages)
                if satisfies(peer_info.installed.version, peer_range):
                    continue

            logger.debug("Adding peer %s@%s required by %s", peer, peer_range, name)
            packages[peer] = peer_range

    async def _effective_manifest(
        self,
        metadata: PackageMetadata,
        packages: Mapping[str, Optional[str]],
    ) -> Optional[PackageManifest]:
        """Manifest of the version a requested package is moving to.

        That is the resolved target, else whatever the token names when
        nothing newer exists: a dist-tag, an exact version or the best match
        of a range. Tokens matching no published version yield ``None``.
        """
        name = metadata.name
        token = packages[name]
        info = await self.resolver.resolve(metadata, packages)

        if info.target is not None:
            return info.target.manifest

        version = metadata.resolve_tag(token or LATEST_DIST_TAG) or token
        if version is not None and not metadata.has_version(version):
            version = max_satisfying(metadata.versions, version)
        if version is None:
            return None

        key = (name, version)
        if key not in self._manifests:
            self._manifests[key] = await self.provider.get_registry_manifest(name, version)
        return self._manifests[key]
