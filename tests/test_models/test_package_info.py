from __future__ import annotations

from typing import Callable

import pytest

from npmkeeper.models import PackageInfo, PackageManifest


@pytest.fixture
def core_update(
    manifest_factory: Callable[..., PackageManifest],
    info_factory: Callable[..., PackageInfo],
) -> PackageInfo:
    """@angular/core moving from 16.2.0 to 17.0.0."""
    installed = manifest_factory("@angular/core", "16.2.0")
    target = manifest_factory(
        "@angular/core",
        "17.0.0",
        ng_update={
            "packageGroupName": "@angular/core",
            "packageGroup": ["@angular/core", "@angular/common"],
            "migrations": "./schematics/migrations.json",
        },
    )
    return info_factory(installed, target, package_json_range="^16.2.0")


@pytest.fixture
def rxjs_unchanged(
    manifest_factory: Callable[..., PackageManifest],
    info_factory: Callable[..., PackageInfo],
) -> PackageInfo:
    return info_factory(manifest_factory("rxjs", "7.8.1"), package_json_range="~7.8.0")


@pytest.mark.unit
class TestPackageInfoState:
    """Tests for derived PackageInfo state."""

    def test_update(self, core_update: PackageInfo) -> None:
        assert core_update.has_update() is True
        assert core_update.resolved_version == "17.0.0"
        assert core_update.active is core_update.target
        assert core_update.update_type == "major"

    def test_no_update(self, rxjs_unchanged: PackageInfo) -> None:
        assert rxjs_unchanged.has_update() is False
        assert rxjs_unchanged.resolved_version == "7.8.1"
        assert rxjs_unchanged.active is rxjs_unchanged.installed
        assert rxjs_unchanged.update_type is None

    def test_group_name_from_active_stance(self, core_update: PackageInfo) -> None:
        assert core_update.group_name == "@angular/core"

    def test_group_name_falls_back_to_name(self, rxjs_unchanged: PackageInfo) -> None:
        assert rxjs_unchanged.group_name == "rxjs"

    def test_target_update_metadata_derived(self, core_update: PackageInfo) -> None:
        assert core_update.target is not None
        assert core_update.target.update_metadata.package_group == {
            "@angular/core": "17.0.0",
            "@angular/common": "17.0.0",
        }
        assert core_update.installed.update_metadata.package_group == {}


@pytest.mark.unit
class TestPackageInfoSerialization:
    """Tests for PackageInfo.to_json and string forms."""

    def test_to_json_update(self, core_update: PackageInfo) -> None:
        assert core_update.to_json() == {
            "name": "@angular/core",
            "range": "^16.2.0",
            "installed": "16.2.0",
            "status": "update",
            "target": "17.0.0",
            "update_type": "major",
            "migrations": "./schematics/migrations.json",
            "group": "@angular/core",
        }

    def test_to_json_unchanged(self, rxjs_unchanged: PackageInfo) -> None:
        assert rxjs_unchanged.to_json() == {
            "name": "rxjs",
            "range": "~7.8.0",
            "installed": "7.8.1",
            "status": "unchanged",
        }

    def test_str(self, core_update: PackageInfo, rxjs_unchanged: PackageInfo) -> None:
        assert str(core_update) == "@angular/core 16.2.0 -> 17.0.0"
        assert str(rxjs_unchanged) == "rxjs 7.8.1"

    def test_repr(self, core_update: PackageInfo) -> None:
        assert repr(core_update) == (
            "PackageInfo(name='@angular/core', installed='16.2.0', "
            "target='17.0.0', range='^16.2.0')"
        )
