"""
Update workflow orchestration for npmkeeper.

:class:`UpdateWorkflow` ties the analysis together:

1. fetch registry metadata for every requested and workspace-declared
   package concurrently, tolerating individual failures;
2. expand the request map with package groups and unmet peers until it
   stops growing;
3. resolve a :class:`~npmkeeper.models.PackageInfo` for every package with
   metadata;
4. validate peer dependencies of the plan.

Example::

    async with HTTPClient() as client:
        provider = NpmRegistryProvider(client, project_root=".")
        workflow = UpdateWorkflow(provider)
        plan = await workflow.analyze(
            {"@angular/core": "17.0.0"},
            read_workspace_dependencies("package.json"),
        )
"""

from __future__ import annotations

import asyncio
import logging
from typing import Dict, Iterable, List, Mapping, Optional, Set

from npmkeeper.utils.logger import get_logger
from npmkeeper.core.provider import PackageProvider
from npmkeeper.core.expander import PackageExpander
from npmkeeper.core.validator import PeerDependencyValidator
from npmkeeper.constants import DEFAULT_IGNORED_DEPENDENTS
from npmkeeper.exceptions import IncompatiblePeerDependenciesError
from npmkeeper.core.resolver import PackageInfoResolver, RequestMap
from npmkeeper.models import PackageInfo, PackageMetadata, PeerViolation
from npmkeeper.core.compat import DEFAULT_PEER_TRANSFORMS, PeerVersionTransform

logger = get_logger("workflow")

__all__ = ["UpdateWorkflow"]


class UpdateWorkflow:
    """Compute a validated update plan for an npm workspace.

    Args:
        provider: Source of registry and on-disk state.
        transforms: Peer range widening table handed to the validator.
        ignored_dependents: Dependents exempt from reverse peer checks.

    Attributes:
        unresolved: Names whose registry metadata could not be fetched in
            the most recent :meth:`analyze` call.
        violations: Peer violations found by the most recent call.
    """

    def __init__(
        self,
        provider: PackageProvider,
        transforms: Mapping[str, PeerVersionTransform] = DEFAULT_PEER_TRANSFORMS,
        ignored_dependents: Iterable[str] = DEFAULT_IGNORED_DEPENDENTS,
    ) -> None:
        self.provider = provider
        self.transforms = transforms
        self.ignored_dependents = tuple(ignored_dependents)

        self.unresolved: Set[str] = set()
        self.violations: List[PeerViolation] = []

    async def analyze(
        self,
        packages: RequestMap,
        all_dependencies: Mapping[str, str],
        verbose: bool = False,
        allow_prerelease: bool = False,
        force: bool = False,
    ) -> Dict[str, PackageInfo]:
        """Resolve and validate the updates requested in *packages*.

        Args:
            packages: Requested updates, name -> version token. Not modified;
                the expansion works on a copy.
            all_dependencies: Ranges declared in the workspace
                ``package.json``.
            verbose: Log the planned updates at INFO instead of DEBUG.
            allow_prerelease: Let pre-releases satisfy peer ranges.
            force: Return the plan even when peer dependencies are
                incompatible.

        Returns:
            :class:`PackageInfo` for every package with registry metadata,
            in metadata fetch order.

        Raises:
            IncompatiblePeerDependenciesError: Violations were found and
                *force* is not set.
            PackageNotInWorkspaceError: A requested package is not declared
                in the workspace.
            VersionResolutionError: A package's installed version
                cannot be determined.
        """
        requested: Dict[str, Optional[str]] = dict(packages)

        universe = await self._fetch_universe([*requested, *all_dependencies])
        self.unresolved = {name for name in all_dependencies if name not in universe}

        resolver = PackageInfoResolver(self.provider, all_dependencies)
        expander = PackageExpander(resolver, self.provider, all_dependencies, universe)
        self.unresolved |= await expander.expand(requested)

        info_map: Dict[str, PackageInfo] = {}
        for name, metadata in universe.items():
            info_map[name] = await resolver.resolve(metadata, requested)

        self._log_plan(info_map, verbose)

        self.violations = []
        if requested:
            validator = PeerDependencyValidator(
                self.transforms,
                self.ignored_dependents,
                allow_prerelease=allow_prerelease,
            )
            self.violations = validator.check(info_map)

        if self.violations:
            if not force:
                raise IncompatiblePeerDependenciesError(self.violations)
            logger.warning(
                "Ignoring %d incompatible peer dependenc%s (--force): %s",
                len(self.violations),
                "y" if len(self.violations) == 1 else "ies",
                "; ".join(v.to_short_string() for v in self.violations),
            )

        return info_map

    # ------------------------------------------------------------------
    # Helpers (private)
    # ------------------------------------------------------------------

    async def _fetch_universe(self, names: Iterable[str]) -> Dict[str, PackageMetadata]:
        """Fetch metadata for *names* concurrently; failures are excluded."""
        unique = list(dict.fromkeys(names))
        results = await asyncio.gather(
            *(self.provider.get_registry_metadata(name) for name in unique),
            return_exceptions=True,
        )

        universe: Dict[str, PackageMetadata] = {}
        for name, result in zip(unique, results):
            if isinstance(result, BaseException):
                if not isinstance(result, Exception):
                    raise result
                logger.warning("Package %s was not found on the registry: %s", name, result)
                continue
            universe[name] = result

        logger.debug("Fetched metadata for %d of %d package(s)", len(universe), len(unique))
        return universe

    @staticmethod
    def _log_plan(info_map: Mapping[str, PackageInfo], verbose: bool) -> None:
        level = logging.INFO if verbose else logging.DEBUG
        for info in info_map.values():
            if info.target is not None:
                logger.log(level, "  %s => %s", info.name, info.target.version)
