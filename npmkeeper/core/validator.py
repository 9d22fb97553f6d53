"""
Peer dependency validation for npmkeeper.

Checks a resolved update plan in both directions:

- **forward**: every package that moves must have its own peer ranges
  satisfied by what will be installed;
- **reverse**: every other package must still accept the new version of a
  package it peers on. Declared ranges are first widened through the peer
  transform table (see :mod:`npmkeeper.core.compat`).

Every violation is collected in a single pass; nothing here raises. The
caller decides whether violations are fatal.
"""

from __future__ import annotations

from typing import Iterable, List, Mapping, Optional

from npmkeeper.utils.logger import get_capped_logger
from npmkeeper.utils.version_utils import satisfies
from npmkeeper.constants import DEFAULT_IGNORED_DEPENDENTS
from npmkeeper.models import PackageInfo, PackageVersionInfo, PeerViolation, ViolationKind
from npmkeeper.core.compat import (
    DEFAULT_PEER_TRANSFORMS,
    PeerVersionTransform,
    apply_peer_transform,
)

# Validation findings are reported, never escalated above WARNING
logger = get_capped_logger("validation")

__all__ = ["PeerDependencyValidator"]


class PeerDependencyValidator:
    """Forward and reverse peer dependency checker.

    Args:
        transforms: Peer range widening table keyed by package group name.
        ignored_dependents: Packages whose peer ranges are never enforced in
            the reverse check.
        allow_prerelease: Let pre-release versions satisfy any range.

    Example::

        validator = PeerDependencyValidator(allow_prerelease=True)
        for violation in validator.check(info_map):
            print(violation)
    """

    def __init__(
        self,
        transforms: Mapping[str, PeerVersionTransform] = DEFAULT_PEER_TRANSFORMS,
        ignored_dependents: Iterable[str] = DEFAULT_IGNORED_DEPENDENTS,
        *,
        allow_prerelease: bool = False,
    ) -> None:
        self.transforms = transforms
        self.ignored_dependents = frozenset(ignored_dependents)
        self.allow_prerelease = allow_prerelease

    def check(self, info_map: Mapping[str, PackageInfo]) -> List[PeerViolation]:
        """Return every peer violation of the plan in *info_map*."""
        logger.debug("Updating the following packages:")
        for info in info_map.values():
            if info.target is not None:
                logger.debug("  %s => %s", info.name, info.target.version)

        violations: List[PeerViolation] = []
        for info in info_map.values():
            target = info.target
            if target is None:
                continue

            logger.debug("%s...", info.name)
            violations.extend(self._check_forward(info, target, info_map))
            violations.extend(self._check_reverse(info, target, info_map))

        return violations

    def validate(self, info_map: Mapping[str, PackageInfo]) -> bool:
        """Return ``True`` when the plan has at least one violation."""
        return bool(self.check(info_map))

    # ------------------------------------------------------------------
    # Checks (private)
    # ------------------------------------------------------------------

    def _check_forward(
        self,
        info: PackageInfo,
        target: PackageVersionInfo,
        info_map: Mapping[str, PackageInfo],
    ) -> List[PeerViolation]:
        manifest = target.manifest
        violations: List[PeerViolation] = []

        for peer, peer_range in manifest.peer_dependencies.items():
            logger.debug("Checking forward peer %s...", peer)
            peer_info = info_map.get(peer)

            if peer_info is None:
                if not manifest.is_optional_peer(peer):
                    logger.warning(
                        'Package "%s" has a missing peer dependency of "%s" @ "%s".',
                        info.name,
                        peer,
                        peer_range,
                    )
                continue

            peer_version = peer_info.resolved_version
            if satisfies(peer_version, peer_range, include_prerelease=self.allow_prerelease):
                continue

            violation = PeerViolation(
                kind=ViolationKind.FORWARD,
                dependent=info.name,
                peer=peer,
                required_range=peer_range,
                would_install=peer_version,
            )
            logger.error(violation.to_display_string())
            violations.append(violation)

        return violations

    def _check_reverse(
        self,
        info: PackageInfo,
        target: PackageVersionInfo,
        info_map: Mapping[str, PackageInfo],
    ) -> List[PeerViolation]:
        version = target.version
        violations: List[PeerViolation] = []

        for dependent, dependent_info in info_map.items():
            if dependent == info.name:
                continue

            peer_range: Optional[str] = dependent_info.active.manifest.peer_dependencies.get(
                info.name
            )
            if peer_range is None:
                continue

            # Deprecated packages removed by migrations
            if dependent in self.ignored_dependents:
                logger.debug("Ignoring peer range of %s on %s", dependent, info.name)
                continue

            extended = apply_peer_transform(self.transforms, info.group_name, peer_range)
            if satisfies(version, extended, include_prerelease=self.allow_prerelease):
                continue

            violation = PeerViolation(
                kind=ViolationKind.REVERSE,
                dependent=dependent,
                peer=info.name,
                required_range=peer_range,
                would_install=version,
                extended_range=extended,
            )
            logger.error(violation.to_display_string())
            violations.append(violation)

        return violations
