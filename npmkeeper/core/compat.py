"""
Peer range widening for npmkeeper.

Some packages guarantee that code built against major ``N`` keeps working
with major ``N + 1`` (Angular's "major compatibility guarantee"). When a
dependent declares ``"@angular/core": "^16.0.0"`` as a peer, updating the
framework to 17 would otherwise always look incompatible. The helpers in
this module widen such peer ranges before they are checked.

Example::

    >>> angular_major_compat_guarantee("^16.0.0")  # doctest: +ELLIPSIS
    '^16.0.0 || ^17.0.0-alpha.0 || ^17.1.0-alpha.0 || ... || ^17.19.0-alpha.0'
"""

from __future__ import annotations

from types import MappingProxyType
from typing import Callable, Mapping, Union

from npmkeeper.utils.logger import get_logger
from npmkeeper.utils.version_utils import gtr, valid_range
from npmkeeper.constants import COMPAT_MAJOR_CAP, COMPAT_MINOR_COUNT

logger = get_logger("compat")

__all__ = [
    "PeerVersionTransform",
    "DEFAULT_PEER_TRANSFORMS",
    "angular_major_compat_guarantee",
    "apply_peer_transform",
]

#: A transform table value: either a fixed replacement range or a function
#: mapping the declared range to a wider one.
PeerVersionTransform = Union[str, Callable[[str], str]]


def angular_major_compat_guarantee(range_expr: str) -> str:
    """Widen *range_expr* to also admit the next major, including pre-releases.

    The smallest major ``M`` such that ``M.0.0`` is above the range is
    found by probing upward from 1. The result is the range OR-ed with
    ``^M.m.0-alpha.0`` for every minor ``m`` below 20, so pre-releases of
    the next major's early minors are admitted too.

    Args:
        range_expr: npm range as declared by a dependent.

    Returns:
        The widened range. Invalid input is returned verbatim; ranges with
        no upper bound below major 99 are returned unchanged.
    """
    validated = valid_range(range_expr)
    if validated is None:
        return range_expr

    major = 1
    while not gtr(f"{major}.0.0", validated):
        major += 1
        if major >= COMPAT_MAJOR_CAP:
            # Range is most likely unbounded, e.g. ">=5.0.0"
            return validated

    widened = " || ".join(
        [range_expr.strip()]
        + [f"^{major}.{minor}.0-alpha.0" for minor in range(COMPAT_MINOR_COUNT)]
    )

    result = valid_range(widened)
    if result is None:
        logger.debug("Widened range for %r is invalid, keeping original", range_expr)
        return range_expr

    return result


#: Peer ranges widened before validation, keyed by package group name.
DEFAULT_PEER_TRANSFORMS: Mapping[str, PeerVersionTransform] = MappingProxyType(
    {"@angular/core": angular_major_compat_guarantee}
)


def apply_peer_transform(
    transforms: Mapping[str, PeerVersionTransform],
    name: str,
    range_expr: str,
) -> str:
    """Look *name* up in *transforms* and apply the entry to *range_expr*.

    A string entry replaces the range, a callable entry is called with it
    and a missing entry leaves it unchanged.
    """
    transform = transforms.get(name)
    if transform is None:
        return range_expr
    if isinstance(transform, str):
        return transform
    return transform(range_expr)
