from __future__ import annotations

import logging
from typing import Callable, Dict

import pytest

from npmkeeper.core.validator import PeerDependencyValidator
from npmkeeper.models import PackageInfo, PackageManifest, PackageVersionInfo, ViolationKind

ManifestFactory = Callable[..., PackageManifest]
InfoFactory = Callable[..., PackageInfo]


def _info_map(*infos: PackageInfo) -> Dict[str, PackageInfo]:
    return {info.name: info for info in infos}


@pytest.fixture
def core_update(manifest_factory: ManifestFactory, info_factory: InfoFactory) -> PackageInfo:
    """@angular/core 16.2.0 -> 17.0.0, peering on rxjs and zone.js."""
    return info_factory(
        manifest_factory("@angular/core", "16.2.0"),
        manifest_factory(
            "@angular/core",
            "17.0.0",
            peers={"rxjs": "^6.5.3 || ^7.4.0", "zone.js": "~0.14.0"},
            ng_update={"packageGroupName": "@angular/core"},
        ),
    )


@pytest.fixture
def rxjs(manifest_factory: ManifestFactory, info_factory: InfoFactory) -> PackageInfo:
    return info_factory(manifest_factory("rxjs", "7.5.0"))


@pytest.mark.unit
class TestForwardCheck:
    """Tests for peers of updated packages."""

    def test_satisfied(
        self,
        core_update: PackageInfo,
        rxjs: PackageInfo,
        manifest_factory: ManifestFactory,
        info_factory: InfoFactory,
    ) -> None:
        zone = info_factory(
            manifest_factory("zone.js", "0.13.3"), manifest_factory("zone.js", "0.14.2")
        )

        violations = PeerDependencyValidator().check(_info_map(core_update, rxjs, zone))

        assert violations == []

    def test_peer_left_behind(
        self,
        core_update: PackageInfo,
        rxjs: PackageInfo,
        manifest_factory: ManifestFactory,
        info_factory: InfoFactory,
    ) -> None:
        zone = info_factory(manifest_factory("zone.js", "0.13.3"))

        violations = PeerDependencyValidator().check(_info_map(core_update, rxjs, zone))

        assert len(violations) == 1
        violation = violations[0]
        assert violation.kind is ViolationKind.FORWARD
        assert violation.dependent == "@angular/core"
        assert violation.peer == "zone.js"
        assert violation.required_range == "~0.14.0"
        assert violation.would_install == "0.13.3"

    def test_missing_peer_only_warns(
        self,
        core_update: PackageInfo,
        rxjs: PackageInfo,
        caplog: pytest.LogCaptureFixture,
    ) -> None:
        with caplog.at_level(logging.DEBUG, logger="npmkeeper"):
            violations = PeerDependencyValidator().check(_info_map(core_update, rxjs))

        assert violations == []
        assert (
            'Package "@angular/core" has a missing peer dependency of "zone.js" @ "~0.14.0".'
            in caplog.text
        )

    def test_missing_optional_peer_silent(
        self,
        manifest_factory: ManifestFactory,
        info_factory: InfoFactory,
        caplog: pytest.LogCaptureFixture,
    ) -> None:
        bootstrap = info_factory(
            manifest_factory("@ng-bootstrap/ng-bootstrap", "15.0.0"),
            manifest_factory(
                "@ng-bootstrap/ng-bootstrap",
                "16.0.0",
                peers={"@popperjs/core": "^2.11.6"},
                optional_peers=("@popperjs/core",),
            ),
        )

        with caplog.at_level(logging.WARNING, logger="npmkeeper"):
            violations = PeerDependencyValidator().check(_info_map(bootstrap))

        assert violations == []
        assert "missing peer dependency" not in caplog.text


@pytest.mark.unit
class TestReverseCheck:
    """Tests for dependents of updated packages."""

    def test_dependent_rejects_new_version(
        self, manifest_factory: ManifestFactory, info_factory: InfoFactory
    ) -> None:
        rxjs = info_factory(manifest_factory("rxjs", "7.8.1"), manifest_factory("rxjs", "8.0.0"))
        toastr = info_factory(manifest_factory("ngx-toastr", "17.0.2", peers={"rxjs": "^7.0.0"}))

        violations = PeerDependencyValidator().check(_info_map(rxjs, toastr))

        assert len(violations) == 1
        violation = violations[0]
        assert violation.kind is ViolationKind.REVERSE
        assert violation.dependent == "ngx-toastr"
        assert violation.peer == "rxjs"
        assert violation.would_install == "8.0.0"
        assert violation.is_extended is False

    def test_next_major_admitted_for_angular(
        self,
        core_update: PackageInfo,
        rxjs: PackageInfo,
        manifest_factory: ManifestFactory,
        info_factory: InfoFactory,
    ) -> None:
        bootstrap = info_factory(
            manifest_factory(
                "@ng-bootstrap/ng-bootstrap", "15.1.0", peers={"@angular/core": "^16.0.0"}
            )
        )
        zone = info_factory(
            manifest_factory("zone.js", "0.13.3"), manifest_factory("zone.js", "0.14.2")
        )

        violations = PeerDependencyValidator().check(
            _info_map(core_update, rxjs, zone, bootstrap)
        )

        assert violations == []

    def test_two_majors_behind_still_fails(
        self,
        core_update: PackageInfo,
        rxjs: PackageInfo,
        manifest_factory: ManifestFactory,
        info_factory: InfoFactory,
    ) -> None:
        legacy = info_factory(
            manifest_factory("ngx-legacy", "1.0.0", peers={"@angular/core": "^15.0.0"})
        )
        zone = info_factory(
            manifest_factory("zone.js", "0.13.3"), manifest_factory("zone.js", "0.14.2")
        )

        violations = PeerDependencyValidator().check(
            _info_map(core_update, rxjs, zone, legacy)
        )

        assert len(violations) == 1
        assert violations[0].dependent == "ngx-legacy"
        assert violations[0].is_extended is True
        assert "^16.0.0-alpha.0" in (violations[0].extended_range or "")

    def test_transform_keyed_by_group_name(
        self, manifest_factory: ManifestFactory, info_factory: InfoFactory
    ) -> None:
        """Test a group member is widened through its group's transform."""
        router = info_factory(
            manifest_factory("@angular/router", "16.2.0"),
            manifest_factory(
                "@angular/router", "17.0.0", ng_update={"packageGroupName": "@angular/core"}
            ),
        )
        dependent = info_factory(
            manifest_factory("ngx-router-store", "1.0.0", peers={"@angular/router": "^16.0.0"})
        )

        assert PeerDependencyValidator().check(_info_map(router, dependent)) == []

    def test_custom_transform_table(
        self, manifest_factory: ManifestFactory, info_factory: InfoFactory
    ) -> None:
        rxjs = info_factory(manifest_factory("rxjs", "7.8.1"), manifest_factory("rxjs", "8.0.0"))
        toastr = info_factory(manifest_factory("ngx-toastr", "17.0.2", peers={"rxjs": "^7.0.0"}))
        validator = PeerDependencyValidator(transforms={"rxjs": "^7.0.0 || ^8.0.0"})

        assert validator.check(_info_map(rxjs, toastr)) == []

    def test_ignored_dependents_skipped(
        self, core_update: PackageInfo, manifest_factory: ManifestFactory, info_factory: InfoFactory
    ) -> None:
        codelyzer = info_factory(
            manifest_factory("codelyzer", "6.0.2", peers={"@angular/core": ">=2.3.1 <13.0.0"})
        )
        protractor = info_factory(
            manifest_factory("protractor", "7.0.0", peers={"@angular/core": "^12.0.0"})
        )
        infos = _info_map(core_update, codelyzer, protractor)

        default_violations = PeerDependencyValidator().check(infos)
        custom_violations = PeerDependencyValidator(
            ignored_dependents=["codelyzer", "protractor"]
        ).check(infos)

        assert [v.dependent for v in default_violations] == ["protractor"]
        assert custom_violations == []

    def test_dependent_target_manifest_used(
        self, manifest_factory: ManifestFactory, info_factory: InfoFactory
    ) -> None:
        rxjs = info_factory(manifest_factory("rxjs", "7.8.1"), manifest_factory("rxjs", "8.0.0"))
        toastr = info_factory(
            manifest_factory("ngx-toastr", "17.0.2", peers={"rxjs": "^7.0.0"}),
            manifest_factory("ngx-toastr", "18.0.0", peers={"rxjs": "^7.0.0 || ^8.0.0"}),
        )

        assert PeerDependencyValidator().check(_info_map(rxjs, toastr)) == []


@pytest.mark.unit
class TestValidatorBehaviour:
    """Tests for aggregation, pre-releases and logging."""

    def test_collects_every_violation(
        self, manifest_factory: ManifestFactory, info_factory: InfoFactory
    ) -> None:
        rxjs = info_factory(manifest_factory("rxjs", "7.8.1"), manifest_factory("rxjs", "8.0.0"))
        first = info_factory(manifest_factory("ngx-toastr", "17.0.2", peers={"rxjs": "^7.0.0"}))
        second = info_factory(manifest_factory("ngrx-store", "16.0.0", peers={"rxjs": "^7.5.0"}))
        validator = PeerDependencyValidator()

        violations = validator.check(_info_map(rxjs, first, second))

        assert sorted(v.dependent for v in violations) == ["ngrx-store", "ngx-toastr"]
        assert validator.validate(_info_map(rxjs, first, second)) is True

    def test_no_updates_no_violations(self, rxjs: PackageInfo) -> None:
        assert PeerDependencyValidator().validate(_info_map(rxjs)) is False

    def test_allow_prerelease(
        self, manifest_factory: ManifestFactory, info_factory: InfoFactory
    ) -> None:
        lib = info_factory(
            manifest_factory("ngx-charts", "2.0.0"), manifest_factory("ngx-charts", "2.1.0-beta.1")
        )
        dependent = info_factory(
            manifest_factory("ngx-dashboard", "1.0.0", peers={"ngx-charts": "^2.0.0"})
        )
        infos = _info_map(lib, dependent)

        assert len(PeerDependencyValidator().check(infos)) == 1
        assert PeerDependencyValidator(allow_prerelease=True).check(infos) == []

    def test_violations_logged_as_warnings(
        self,
        manifest_factory: ManifestFactory,
        info_factory: InfoFactory,
        caplog: pytest.LogCaptureFixture,
    ) -> None:
        rxjs = info_factory(manifest_factory("rxjs", "7.8.1"), manifest_factory("rxjs", "8.0.0"))
        toastr = info_factory(manifest_factory("ngx-toastr", "17.0.2", peers={"rxjs": "^7.0.0"}))

        with caplog.at_level(logging.DEBUG, logger="npmkeeper"):
            PeerDependencyValidator().check(_info_map(rxjs, toastr))

        records = [r for r in caplog.records if "incompatible peer dependency" in r.getMessage()]
        assert records
        assert all(r.levelno == logging.WARNING for r in records)
        assert not any(r.levelno > logging.WARNING for r in caplog.records)

    def test_reverse_check_uses_given_target(
        self, manifest_factory: ManifestFactory, info_factory: InfoFactory
    ) -> None:
        """Test the checks take the target as an argument, not from the info."""
        rxjs = info_factory(manifest_factory("rxjs", "7.8.1"))
        toastr = info_factory(manifest_factory("ngx-toastr", "17.0.2", peers={"rxjs": "^7.0.0"}))
        target = PackageVersionInfo.from_manifest("8.0.0", manifest_factory("rxjs", "8.0.0"))

        violations = PeerDependencyValidator()._check_reverse(
            rxjs, target, _info_map(rxjs, toastr)
        )

        assert [(v.dependent, v.would_install) for v in violations] == [("ngx-toastr", "8.0.0")]
