from __future__ import annotations

import pytest

from npmkeeper.models import PeerViolation, ViolationKind


@pytest.fixture
def reverse_violation() -> PeerViolation:
    return PeerViolation(
        kind=ViolationKind.REVERSE,
        dependent="@ng-bootstrap/ng-bootstrap",
        peer="@angular/core",
        required_range="^15.0.0",
        would_install="17.0.0",
        extended_range="^15.0.0 || ^16.0.0-alpha.0",
    )


@pytest.mark.unit
class TestPeerViolation:
    """Tests for PeerViolation reporting."""

    def test_display_string_forward(self) -> None:
        violation = PeerViolation(
            kind=ViolationKind.FORWARD,
            dependent="@angular/core",
            peer="zone.js",
            required_range="~0.14.0",
            would_install="0.13.3",
        )

        assert violation.is_extended is False
        assert violation.to_display_string() == (
            'Package "@angular/core" has an incompatible peer dependency to '
            '"zone.js" (requires "~0.14.0", would install "0.13.3").'
        )
        assert str(violation) == violation.to_display_string()

    def test_display_string_extended(self, reverse_violation: PeerViolation) -> None:
        assert reverse_violation.is_extended is True
        assert '(requires "^15.0.0" (extended), would install "17.0.0")' in (
            reverse_violation.to_display_string()
        )

    def test_unchanged_extension_is_not_extended(self) -> None:
        violation = PeerViolation(
            kind=ViolationKind.REVERSE,
            dependent="ngx-toastr",
            peer="rxjs",
            required_range="^6.0.0",
            would_install="7.8.1",
            extended_range="^6.0.0",
        )

        assert violation.is_extended is False
        assert violation.to_json()["extended_range"] is None

    def test_short_string(self, reverse_violation: PeerViolation) -> None:
        assert reverse_violation.to_short_string() == (
            "@ng-bootstrap/ng-bootstrap needs @angular/core@^15.0.0"
        )

    def test_to_json(self, reverse_violation: PeerViolation) -> None:
        assert reverse_violation.to_json() == {
            "kind": "reverse",
            "dependent": "@ng-bootstrap/ng-bootstrap",
            "peer": "@angular/core",
            "required_range": "^15.0.0",
            "extended_range": "^15.0.0 || ^16.0.0-alpha.0",
            "would_install": "17.0.0",
        }

    def test_hashable(self, reverse_violation: PeerViolation) -> None:
        assert len({reverse_violation, reverse_violation}) == 1
