"""
Peer-dependency violation model for npmkeeper.

A violation is produced by the peer dependency validator whenever a planned
update leaves a peer range unsatisfied, either because the updated package
requires something that will not be installed (*forward*) or because an
installed package does not accept the updated version (*reverse*).
"""

from __future__ import annotations

from enum import Enum
from dataclasses import dataclass
from typing import Dict, Optional


class ViolationKind(Enum):
    """Direction of a peer-dependency check."""

    FORWARD = "forward"
    REVERSE = "reverse"


@dataclass(frozen=True)
class PeerViolation:
    """An unsatisfied peer dependency.

    Args:
        kind: Forward or reverse check.
        dependent: Package declaring the peer dependency.
        peer: Package the range applies to.
        required_range: Range as declared by *dependent*.
        would_install: Version of *peer* the update would leave installed.
        extended_range: Range after compatibility widening, when it differs
            from *required_range*.
    """

    kind: ViolationKind
    dependent: str
    peer: str
    required_range: str
    would_install: str
    extended_range: Optional[str] = None

    @property
    def is_extended(self) -> bool:
        """True when the declared range was widened before checking."""
        return self.extended_range is not None and self.extended_range != self.required_range

    def to_display_string(self) -> str:
        """Return a human-readable description of the violation."""
        suffix = " (extended)" if self.is_extended else ""
        return (
            f'Package "{self.dependent}" has an incompatible peer dependency to '
            f'"{self.peer}" (requires "{self.required_range}"{suffix}, '
            f'would install "{self.would_install}").'
        )

    def to_short_string(self) -> str:
        """Return a compact summary."""
        return f"{self.dependent} needs {self.peer}@{self.required_range}"

    def to_json(self) -> Dict[str, Optional[str]]:
        """Return a JSON-serializable representation."""
        return {
            "kind": self.kind.value,
            "dependent": self.dependent,
            "peer": self.peer,
            "required_range": self.required_range,
            "extended_range": self.extended_range if self.is_extended else None,
            "would_install": self.would_install,
        }

    def __str__(self) -> str:
        return self.to_display_string()
