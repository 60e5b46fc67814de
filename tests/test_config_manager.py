"""Tests for the TOML-backed settings."""

from pathlib import Path

import pytest
import toml

from groupcode_cli import config_manager


class TestLoad:

    def test_defaults_without_file(self, isolated_config: Path):
        assert not isolated_config.exists()
        cfg = config_manager.load_refactoring_config()
        assert cfg == config_manager.DEFAULT_REFACTORING_CONFIG
        assert config_manager.load_scan_config()["respect_gitignore"] is True

    def test_defaults_are_not_shared(self):
        cfg = config_manager.load_refactoring_config()
        cfg["enabled_checks"].append("too_large")
        assert "too_large" not in config_manager.DEFAULT_REFACTORING_CONFIG["enabled_checks"]

    def test_stored_values_override_defaults(self, isolated_config: Path):
        isolated_config.parent.mkdir(parents=True)
        isolated_config.write_text(
            "[refactoring]\nsimilarity_threshold = 0.7\norphaned_threshold = 30\n"
            "unknown_key = 1\n"
        )
        cfg = config_manager.load_refactoring_config()
        assert cfg["similarity_threshold"] == 0.7
        assert cfg["orphaned_threshold"] == 30
        assert "unknown_key" not in cfg

    def test_bad_types_are_ignored(self, isolated_config: Path):
        isolated_config.parent.mkdir(parents=True)
        isolated_config.write_text('[scan]\nrespect_gitignore = "nope"\n')
        assert config_manager.load_scan_config()["respect_gitignore"] is True

    def test_broken_file_yields_defaults(self, isolated_config: Path):
        isolated_config.parent.mkdir(parents=True)
        isolated_config.write_text("[refactoring\n")
        assert config_manager.load_full_config() == {}
        assert config_manager.load_refactoring_config()["too_large_threshold"] == 50

    def test_unknown_section(self):
        with pytest.raises(KeyError):
            config_manager.load_section("llm")


class TestSave:

    def test_save_setting_round_trip(self, isolated_config: Path):
        assert config_manager.save_setting("refactoring", "too_small_threshold", 4)
        assert toml.load(str(isolated_config))["refactoring"]["too_small_threshold"] == 4
        assert config_manager.load_refactoring_config()["too_small_threshold"] == 4

    def test_save_preserves_other_sections(self):
        config_manager.save_setting("scan", "respect_gitignore", False)
        config_manager.save_setting("refactoring", "orphaned_threshold", 10)
        full = config_manager.load_full_config()
        assert full["scan"]["respect_gitignore"] is False
        assert full["refactoring"]["orphaned_threshold"] == 10

    def test_unknown_setting(self):
        with pytest.raises(KeyError):
            config_manager.save_setting("refactoring", "nope", 1)

    def test_reset_section(self):
        config_manager.save_setting("refactoring", "orphaned_threshold", 10)
        config_manager.save_setting("scan", "respect_gitignore", False)
        assert config_manager.reset_section("refactoring")

        assert config_manager.load_refactoring_config()["orphaned_threshold"] == 90
        assert config_manager.load_scan_config()["respect_gitignore"] is False


class TestParseSettingValue:

    def test_types_follow_defaults(self):
        parse = config_manager.parse_setting_value
        assert parse("scan", "respect_gitignore", "off") is False
        assert parse("refactoring", "orphaned_threshold", "30") == 30
        assert parse("refactoring", "similarity_threshold", "0.75") == 0.75
        assert parse("refactoring", "enabled_checks", "duplicate, too_large") == ["duplicate", "too_large"]

    def test_invalid_values(self):
        with pytest.raises(ValueError):
            config_manager.parse_setting_value("scan", "respect_gitignore", "maybe")
        with pytest.raises(ValueError):
            config_manager.parse_setting_value("refactoring", "orphaned_threshold", "many")
