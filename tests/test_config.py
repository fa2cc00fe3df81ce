"""Tests for YAML configuration loading and typed settings."""

from __future__ import annotations

from pathlib import Path

import pytest

from config.controller import DEFAULT_OS_FILES, ConfigController
from config.settings import DiagnosticSettings


def test_missing_files_fall_back_to_defaults(tmp_path: Path) -> None:
    config = ConfigController.get_instance(config_dir=tmp_path).get_config()

    assert config["logging_level"] == "INFO"
    assert config["target"]["volume"] == "C:"
    assert config["target"]["require_elevation"] is True
    assert config["checks"]["os_files"] == DEFAULT_OS_FILES
    assert config["evidence"]["max_items_per_tier"] == 50


def test_override_is_deep_merged(tmp_path: Path) -> None:
    (tmp_path / "default.yaml").write_text(
        "target:\n  volume: 'C:'\n  require_elevation: true\nprobes:\n  command_timeout_s: 30\n",
        encoding="utf-8",
    )
    (tmp_path / "override.yaml").write_text("target:\n  volume: 'E:'\n", encoding="utf-8")

    config = ConfigController.get_instance(config_dir=tmp_path).get_config()

    assert config["target"]["volume"] == "E:"
    assert config["target"]["require_elevation"] is True
    assert config["probes"]["command_timeout_s"] == 30.0


def test_controller_is_a_singleton(tmp_path: Path) -> None:
    controller = ConfigController.get_instance(config_dir=tmp_path)

    assert ConfigController.get_instance() is controller
    with pytest.raises(RuntimeError):
        ConfigController(config_dir=tmp_path)


def test_driver_fragments_are_lowercased(tmp_path: Path) -> None:
    (tmp_path / "default.yaml").write_text(
        "stages:\n  critical_driver_fragments:\n    - StorNVMe\n    - iaStorVD\n",
        encoding="utf-8",
    )

    config = ConfigController.get_instance(config_dir=tmp_path).get_config()

    assert config["stages"]["critical_driver_fragments"] == ["stornvme", "iastorvd"]


def test_shipped_default_yaml_matches_built_in_defaults() -> None:
    config_dir = Path(__file__).resolve().parents[1] / "config"

    settings = DiagnosticSettings.from_config(ConfigController.get_instance(config_dir=config_dir).get_config())

    assert settings == DiagnosticSettings()


def test_settings_from_config_and_overrides(tmp_path: Path) -> None:
    (tmp_path / "default.yaml").write_text(
        "target:\n  volume: 'D:'\n  store_dump: ~/bcd.txt\nprobes:\n  encryption_timeout_s: 5\n",
        encoding="utf-8",
    )
    settings = DiagnosticSettings.from_config(ConfigController.get_instance(config_dir=tmp_path).get_config())

    assert settings.target_volume == "D:"
    assert settings.store_dump == Path("~/bcd.txt").expanduser()
    assert settings.encryption_timeout_s == 5.0

    changed = settings.with_overrides(target_volume="F:", store_dump=None)

    assert changed.target_volume == "F:"
    assert changed.store_dump == settings.store_dump
