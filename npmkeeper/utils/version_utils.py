"""
npm semver helpers for npmkeeper.

Thin wrappers over :mod:`semantic_version` giving node-semver style
answers (``valid``, ``validRange``, ``satisfies``, ``maxSatisfying``,
``gtr``) without ever raising on malformed input: an unparseable version
or range simply does not match anything.

Examples:
    >>> satisfies("17.0.0", "^16.0.0 || ^17.0.0")
    True
    >>> max_satisfying(["1.0.0", "1.4.2", "2.0.0"], "^1.0.0")
    '1.4.2'
    >>> gtr("3.0.0", "^2.1.0")
    True
"""

from __future__ import annotations

from typing import Iterable, Optional, Tuple, Union

from semantic_version import NpmSpec, Version
from semantic_version.base import AllOf, Always, AnyOf, Never, Range

# Sentinels for range upper bounds
_UNBOUNDED = "unbounded"
_EMPTY = "empty"

_Bound = Union[str, Tuple[Version, bool]]


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------


def parse_version(value: Optional[str]) -> Optional[Version]:
    """Parse a strict semver version, tolerating a leading ``v`` or ``=``.

    Returns:
        The parsed :class:`~semantic_version.Version`, or ``None``.
    """
    if not isinstance(value, str):
        return None

    text = value.strip().lstrip("=v").strip()
    try:
        return Version(text)
    except ValueError:
        return None


def parse_range(value: Optional[str]) -> Optional[NpmSpec]:
    """Parse an npm range expression, returning ``None`` when invalid."""
    if not isinstance(value, str):
        return None
    try:
        return NpmSpec(value.strip())
    except ValueError:
        return None


def valid_version(value: Optional[str]) -> Optional[str]:
    """Return the normalized version string, or ``None`` if invalid."""
    parsed = parse_version(value)
    return str(parsed) if parsed is not None else None


def valid_range(value: Optional[str]) -> Optional[str]:
    """Return the stripped range if npm would accept it, else ``None``.

    Examples:
        >>> valid_range(" ^5.0.0 ")
        '^5.0.0'
        >>> valid_range("latest") is None
        True
    """
    if parse_range(value) is None:
        return None
    return value.strip()  # type: ignore[union-attr]


# ---------------------------------------------------------------------------
# Matching
# ---------------------------------------------------------------------------


def satisfies(
    version: Optional[str],
    range_expr: Optional[str],
    *,
    include_prerelease: bool = False,
) -> bool:
    """Check whether *version* is admitted by *range_expr*.

    By default npm's pre-release rule applies: ``1.2.3-rc.1`` only
    matches comparators on the same ``major.minor.patch`` tuple that
    themselves carry a pre-release. With *include_prerelease* every
    comparator is evaluated directly, except that a pre-release of an
    exclusive release upper bound (``2.0.0-rc.1`` against ``<2.0.0``) stays
    excluded.

    Args:
        version: Concrete version string.
        range_expr: npm range expression.
        include_prerelease: Admit pre-releases in any comparator set.

    Returns:
        ``False`` whenever either argument cannot be parsed.
    """
    parsed = parse_version(version)
    spec = parse_range(range_expr)
    if parsed is None or spec is None:
        return False

    if spec.match(parsed):
        return True

    if include_prerelease and parsed.prerelease:
        return _match_ignoring_prerelease_policy(spec.clause, parsed)

    return False


def max_satisfying(versions: Iterable[str], range_expr: Optional[str]) -> Optional[str]:
    """Return the highest entry of *versions* that satisfies *range_expr*.

    Unparseable entries are skipped. The original string is returned so
    that it can be used as a lookup key in registry documents.
    """
    spec = parse_range(range_expr)
    if spec is None:
        return None

    best: Optional[Tuple[str, Version]] = None
    for raw in versions:
        parsed = parse_version(raw)
        if parsed is None or not spec.match(parsed):
            continue
        if best is None or parsed > best[1]:
            best = (raw, parsed)

    return best[0] if best else None


def gtr(version: Optional[str], range_expr: Optional[str]) -> bool:
    """Return ``True`` if *version* is above every version *range_expr* admits.

    Ranges without an upper bound (``>=5.0.0``, ``*``) are never exceeded.
    Invalid arguments return ``False``.

    Examples:
        >>> gtr("6.0.0", "^5.0.0")
        True
        >>> gtr("5.9.0", "^5.0.0")
        False
    """
    parsed = parse_version(version)
    spec = parse_range(range_expr)
    if parsed is None or spec is None:
        return False

    bound = _upper_bound(spec.clause)
    if bound == _UNBOUNDED or bound == _EMPTY:
        return False

    target, inclusive = bound  # type: ignore[misc]
    return parsed > target or (parsed == target and not inclusive)


def lte(left: Optional[str], right: Optional[str]) -> bool:
    """``left <= right`` for two versions; ``False`` if either is invalid."""
    a = parse_version(left)
    b = parse_version(right)
    if a is None or b is None:
        return False
    return a <= b


# ---------------------------------------------------------------------------
# Reporting
# ---------------------------------------------------------------------------


def get_update_type(
    current_version: Optional[str],
    target_version: Optional[str],
) -> str:
    """Determine the semantic update type between two versions.

    Args:
        current_version: Currently installed version, or ``None`` if not installed.
        target_version: Target version to compare against.

    Returns:
        One of ``"new"``, ``"same"``, ``"downgrade"``, ``"major"``,
        ``"minor"``, ``"patch"``, ``"update"`` (pre-release or build only)
        or ``"unknown"``.

    Examples:
        >>> get_update_type("16.2.0", "17.0.0")
        'major'
        >>> get_update_type(None, "1.0.0")
        'new'
    """
    if current_version is None and target_version is None:
        return "unknown"

    if current_version is None:
        return "new"

    current = parse_version(current_version)
    target = parse_version(target_version)
    if current is None or target is None:
        return "unknown"

    if target == current:
        return "same"

    if target < current:
        return "downgrade"

    if current.major != target.major:
        return "major"

    if current.minor != target.minor:
        return "minor"

    if current.patch != target.patch:
        return "patch"

    return "update"


# ---------------------------------------------------------------------------
# Clause walkers (private)
# ---------------------------------------------------------------------------


def _upper_bound(clause: object) -> _Bound:
    """Compute the least upper bound of the versions a clause admits.

    Unknown clause shapes are treated as unbounded, which can only make
    :func:`gtr` answer ``False``.
    """
    if isinstance(clause, Range):
        if clause.operator == Range.OP_LT:
            return (clause.target, False)
        if clause.operator in (Range.OP_LTE, Range.OP_EQ):
            return (clause.target, True)
        return _UNBOUNDED

    if isinstance(clause, AllOf):
        bounds = [_upper_bound(sub) for sub in clause.clauses]
        if _EMPTY in bounds:
            return _EMPTY
        finite = [b for b in bounds if b != _UNBOUNDED]
        if not finite:
            return _UNBOUNDED
        # (v, False) sorts below (v, True): "<v" admits less than "<=v"
        return min(finite)  # type: ignore[type-var]

    if isinstance(clause, AnyOf):
        bounds = [_upper_bound(sub) for sub in clause.clauses]
        if _UNBOUNDED in bounds:
            return _UNBOUNDED
        finite = [b for b in bounds if b != _EMPTY]
        if not finite:
            return _EMPTY
        return max(finite)  # type: ignore[type-var]

    if isinstance(clause, Never):
        return _EMPTY

    return _UNBOUNDED


def _match_ignoring_prerelease_policy(clause: object, version: Version) -> bool:
    """Evaluate *clause* comparing *version* directly against each comparator."""
    if isinstance(clause, Range):
        target = clause.target
        op = clause.operator
        if op == Range.OP_LT:
            same_release = (version.major, version.minor, version.patch) == (
                target.major,
                target.minor,
                target.patch,
            )
            if same_release and not target.prerelease:
                return False
            return version < target
        if op == Range.OP_LTE:
            return version <= target
        if op == Range.OP_GT:
            return version > target
        if op == Range.OP_GTE:
            return version >= target
        if op == Range.OP_EQ:
            return version == target
        if op == Range.OP_NEQ:
            return version != target
        return clause.match(version)

    if isinstance(clause, AllOf):
        return all(_match_ignoring_prerelease_policy(c, version) for c in clause.clauses)

    if isinstance(clause, AnyOf):
        return any(_match_ignoring_prerelease_policy(c, version) for c in clause.clauses)

    if isinstance(clause, Always):
        return True

    if isinstance(clause, Never):
        return False

    return bool(clause.match(version))  # type: ignore[attr-defined]
