from __future__ import annotations

from pathlib import Path
from unittest.mock import patch

import pytest

from npmkeeper.config import (
    NpmKeeperConfig,
    discover_config_file,
    load_config,
    _parse_section,
    _read_toml,
)
from npmkeeper.constants import DEFAULT_REGISTRY, DEFAULT_TIMEOUT
from npmkeeper.exceptions import ConfigError


@pytest.mark.unit
class TestNpmKeeperConfig:
    """Tests for NpmKeeperConfig dataclass."""

    def test_default_initialization(self) -> None:
        """Test NpmKeeperConfig initializes with correct defaults."""
        config = NpmKeeperConfig()

        assert config.registry == DEFAULT_REGISTRY
        assert config.allow_prerelease is False
        assert config.force is False
        assert config.ignored_packages == []
        assert config.timeout == DEFAULT_TIMEOUT
        assert config.source_path is None

    def test_ignored_packages_not_shared(self) -> None:
        """Test each instance owns its ignored_packages list."""
        first = NpmKeeperConfig()
        second = NpmKeeperConfig()

        first.ignored_packages.append("protractor")

        assert second.ignored_packages == []

    def test_to_log_dict(self) -> None:
        """Test to_log_dict returns configuration without metadata."""
        config = NpmKeeperConfig(
            force=True,
            ignored_packages=["protractor"],
            source_path=Path("/test/npmkeeper.toml"),
        )

        result = config.to_log_dict()

        assert result["force"] is True
        assert result["ignored_packages"] == ["protractor"]
        assert "source_path" not in result


@pytest.mark.unit
class TestDiscoverConfigFile:
    """Tests for discover_config_file function."""

    def test_explicit_path_priority(self, tmp_path: Path) -> None:
        """Test explicit path is used when provided and exists."""
        config_file = tmp_path / "custom.toml"
        config_file.write_text("[npmkeeper]\n", encoding="utf-8")
        (tmp_path / "npmkeeper.toml").write_text("[npmkeeper]\n", encoding="utf-8")

        with patch("npmkeeper.config.Path.cwd", return_value=tmp_path):
            result = discover_config_file(config_file)

        assert result == config_file.resolve()

    def test_explicit_path_not_found_raises_error(self, tmp_path: Path) -> None:
        """Test ConfigError raised when explicit path doesn't exist."""
        with pytest.raises(ConfigError) as exc_info:
            discover_config_file(tmp_path / "nonexistent.toml")

        assert "not found" in str(exc_info.value).lower()

    def test_discovers_npmkeeper_toml(self, tmp_path: Path) -> None:
        """Test discovers npmkeeper.toml in current directory."""
        config_file = tmp_path / "npmkeeper.toml"
        config_file.write_text("[npmkeeper]\n", encoding="utf-8")

        with patch("npmkeeper.config.Path.cwd", return_value=tmp_path):
            result = discover_config_file()

        assert result == config_file

    def test_returns_none_when_no_config_found(self, tmp_path: Path) -> None:
        """Test returns None when no configuration file exists."""
        with patch("npmkeeper.config.Path.cwd", return_value=tmp_path):
            assert discover_config_file() is None


@pytest.mark.unit
class TestReadToml:
    """Tests for _read_toml helper."""

    def test_reads_valid_toml(self, tmp_path: Path) -> None:
        """Test successfully reads and parses valid TOML file."""
        toml_file = tmp_path / "test.toml"
        toml_file.write_text("[npmkeeper]\nforce = true\n", encoding="utf-8")

        result = _read_toml(toml_file)

        assert result["npmkeeper"]["force"] is True

    def test_raises_error_on_invalid_toml(self, tmp_path: Path) -> None:
        """Test raises ConfigError when TOML is invalid."""
        toml_file = tmp_path / "invalid.toml"
        toml_file.write_text("invalid ][[ toml", encoding="utf-8")

        with pytest.raises(ConfigError) as exc_info:
            _read_toml(toml_file)

        assert "Invalid TOML" in str(exc_info.value)

    def test_raises_error_when_file_not_found(self, tmp_path: Path) -> None:
        """Test raises ConfigError when file doesn't exist."""
        with pytest.raises(ConfigError) as exc_info:
            _read_toml(tmp_path / "nonexistent.toml")

        assert "Cannot read" in str(exc_info.value)


@pytest.mark.unit
class TestParseSection:
    """Tests for _parse_section configuration validator."""

    def test_parses_empty_section(self) -> None:
        """Test parsing empty section returns defaults."""
        result = _parse_section({}, config_path="test.toml")

        assert result == NpmKeeperConfig()

    def test_parses_all_options(self) -> None:
        """Test parsing all configuration options."""
        section = {
            "registry": "https://npm.example.com/",
            "allow_prerelease": True,
            "force": True,
            "ignored_packages": ["protractor", "tslint"],
            "concurrent_limit": 4,
            "timeout": 60,
        }

        result = _parse_section(section, config_path="test.toml")

        assert result.registry == "https://npm.example.com"
        assert result.allow_prerelease is True
        assert result.force is True
        assert result.ignored_packages == ["protractor", "tslint"]
        assert result.concurrent_limit == 4
        assert result.timeout == 60

    def test_raises_error_on_unknown_keys(self) -> None:
        """Test raises ConfigError when unknown keys are present."""
        section = {"unknown_key": "value", "another_unknown": True}

        with pytest.raises(ConfigError) as exc_info:
            _parse_section(section, config_path="test.toml")

        assert "Unknown configuration keys" in str(exc_info.value)
        assert "unknown_key" in str(exc_info.value)

    @pytest.mark.parametrize(
        "option, value, message",
        [
            ("force", "true", "force must be a boolean"),
            ("allow_prerelease", 1, "allow_prerelease must be a boolean"),
            ("registry", "registry.npmjs.org", "registry must be an http(s) URL"),
            ("ignored_packages", "protractor", "ignored_packages must be a list"),
            ("ignored_packages", ["ok", 3], "ignored_packages must be a list"),
            ("concurrent_limit", 0, "concurrent_limit must be a positive integer"),
            ("timeout", True, "timeout must be a positive integer"),
            ("timeout", 2.5, "timeout must be a positive integer"),
        ],
    )
    def test_raises_error_on_invalid_values(
        self,
        option: str,
        value: object,
        message: str,
    ) -> None:
        """Test raises ConfigError naming the offending option."""
        with pytest.raises(ConfigError) as exc_info:
            _parse_section({option: value}, config_path="test.toml")

        assert message in str(exc_info.value)
        assert exc_info.value.option == option


@pytest.mark.unit
class TestLoadConfig:
    """Tests for load_config main function."""

    def test_returns_defaults_when_no_config_found(self, tmp_path: Path) -> None:
        """Test returns defaults when no configuration file exists."""
        with patch("npmkeeper.config.Path.cwd", return_value=tmp_path):
            result = load_config()

        assert result.force is False
        assert result.source_path is None

    def test_loads_npmkeeper_toml(self, tmp_path: Path) -> None:
        """Test loads configuration from npmkeeper.toml."""
        config_file = tmp_path / "npmkeeper.toml"
        config_file.write_text(
            '[npmkeeper]\nignored_packages = ["protractor"]\n',
            encoding="utf-8",
        )

        with patch("npmkeeper.config.Path.cwd", return_value=tmp_path):
            result = load_config()

        assert result.ignored_packages == ["protractor"]
        assert result.source_path == config_file

    def test_loads_explicit_config_path(self, tmp_path: Path) -> None:
        """Test loads configuration from explicitly specified path."""
        config_file = tmp_path / "custom.toml"
        config_file.write_text("[npmkeeper]\nallow_prerelease = true\n", encoding="utf-8")

        result = load_config(config_file)

        assert result.allow_prerelease is True
        assert result.source_path == config_file.resolve()

    def test_raises_error_on_unknown_keys(self, tmp_path: Path) -> None:
        """Test raises ConfigError when config contains unknown keys."""
        config_file = tmp_path / "npmkeeper.toml"
        config_file.write_text("[npmkeeper]\nstrict_peers = true\n", encoding="utf-8")

        with patch("npmkeeper.config.Path.cwd", return_value=tmp_path):
            with pytest.raises(ConfigError) as exc_info:
                load_config()

        assert "Unknown configuration keys" in str(exc_info.value)

    def test_handles_missing_section(self, tmp_path: Path) -> None:
        """Test a file without [npmkeeper] yields defaults."""
        config_file = tmp_path / "npmkeeper.toml"
        config_file.write_text("[other]\nkey = 1\n", encoding="utf-8")

        with patch("npmkeeper.config.Path.cwd", return_value=tmp_path):
            result = load_config()

        assert result.force is False
        assert result.source_path == config_file

    def test_raises_error_when_section_not_a_table(self, tmp_path: Path) -> None:
        """Test a scalar npmkeeper key is rejected."""
        config_file = tmp_path / "npmkeeper.toml"
        config_file.write_text('npmkeeper = "yes"\n', encoding="utf-8")

        with patch("npmkeeper.config.Path.cwd", return_value=tmp_path):
            with pytest.raises(ConfigError):
                load_config()
