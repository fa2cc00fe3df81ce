"""Configuration controller for YAML-based settings."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml


DEFAULT_OS_FILES = [
    "ntoskrnl.exe",
    "hal.dll",
    "winload.efi",
    "config/SYSTEM",
]

DEFAULT_BOOT_FILES = [
    "EFI/Microsoft/Boot/bootmgfw.efi",
    "EFI/Microsoft/Boot/bootmgr.efi",
    "EFI/Boot/bootx64.efi",
]

DEFAULT_CRITICAL_DRIVER_FRAGMENTS = [
    "acpi",
    "pci.sys",
    "disk.sys",
    "classpnp",
    "partmgr",
    "volmgr",
    "volume.sys",
    "ntfs",
    "storport",
    "stornvme",
    "storahci",
    "iastor",
    "vmd",
    "fvevol",
]

DEFAULT_STORAGE_SERVICES = [
    "stornvme",
    "storahci",
    "iaStorV",
    "iaStorAVC",
    "iaStorAC",
    "vmd",
    "disk",
    "partmgr",
    "volmgr",
]


@dataclass(frozen=True)
class ConfigPaths:
    """Filesystem paths for configuration files."""

    config_dir: Path
    config_file: Path
    override_file: Path


class ConfigController:
    """Singleton controller for loading configuration."""

    _instance: "ConfigController | None" = None

    def __init__(self, config_file: str = "default.yaml", config_dir: Path | None = None) -> None:
        if ConfigController._instance is not None:
            raise RuntimeError("You cannot create another ConfigController class")

        config_dir = config_dir if config_dir is not None else Path("config")
        self.paths = ConfigPaths(
            config_dir=config_dir,
            config_file=config_dir / config_file,
            override_file=config_dir / "override.yaml",
        )
        self.config: dict[str, Any] = {}
        self.load_config()
        ConfigController._instance = self

    @classmethod
    def get_instance(cls, config_dir: Path | None = None) -> "ConfigController":
        """Return the singleton instance of the controller."""

        if cls._instance is None:
            cls._instance = cls(config_dir=config_dir)
        return cls._instance

    def load_config(self) -> None:
        """Load configuration from default and override YAML files."""

        config: dict[str, Any] = {}
        if self.paths.config_file.exists():
            with self.paths.config_file.open("r", encoding="utf-8") as file:
                config = yaml.safe_load(file) or {}

        if self.paths.override_file.exists():
            with self.paths.override_file.open("r", encoding="utf-8") as file:
                override_config = yaml.safe_load(file) or {}
            if override_config:
                config = self._deep_merge(config, override_config)

        self.config = self._normalize_config(config)

    def get_config(self) -> dict[str, Any]:
        """Return the currently loaded configuration."""

        return dict(self.config)

    def _deep_merge(self, base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
        """Deep merge dictionaries, overriding base values with override values."""

        merged = dict(base)
        for key, value in override.items():
            if (
                key in merged
                and isinstance(merged[key], dict)
                and isinstance(value, dict)
            ):
                merged[key] = self._deep_merge(merged[key], value)
            else:
                merged[key] = value
        return merged

    def _normalize_config(self, config: dict[str, Any]) -> dict[str, Any]:
        """Fill every section with defaults so callers never probe for keys."""

        normalized = dict(config)
        normalized["logging_level"] = str(normalized.get("logging_level", "INFO"))
        normalized["file_logging_enabled"] = bool(normalized.get("file_logging_enabled", False))
        normalized["log_file"] = str(normalized.get("log_file", "./log/bootdoctor.log"))

        target_cfg = dict(normalized.get("target") or {})
        target_cfg["volume"] = str(target_cfg.get("volume", "C:"))
        target_cfg["store_dump"] = target_cfg.get("store_dump")
        target_cfg["store_path"] = target_cfg.get("store_path")
        target_cfg["firmware_partition_path"] = target_cfg.get("firmware_partition_path")
        target_cfg["firmware_partition_filesystem"] = target_cfg.get("firmware_partition_filesystem")
        target_cfg["require_elevation"] = bool(target_cfg.get("require_elevation", True))
        normalized["target"] = target_cfg

        probes_cfg = dict(normalized.get("probes") or {})
        probes_cfg["check_timeout_s"] = float(probes_cfg.get("check_timeout_s", 60.0))
        probes_cfg["command_timeout_s"] = float(probes_cfg.get("command_timeout_s", 30.0))
        probes_cfg["encryption_timeout_s"] = float(probes_cfg.get("encryption_timeout_s", 15.0))
        normalized["probes"] = probes_cfg

        checks_cfg = dict(normalized.get("checks") or {})
        checks_cfg["os_files"] = [str(item) for item in checks_cfg.get("os_files") or DEFAULT_OS_FILES]
        checks_cfg["boot_files"] = [
            str(item) for item in checks_cfg.get("boot_files") or DEFAULT_BOOT_FILES
        ]
        normalized["checks"] = checks_cfg

        stages_cfg = dict(normalized.get("stages") or {})
        stages_cfg["critical_driver_fragments"] = [
            str(item).lower()
            for item in stages_cfg.get("critical_driver_fragments") or DEFAULT_CRITICAL_DRIVER_FRAGMENTS
        ]
        normalized["stages"] = stages_cfg

        evidence_cfg = dict(normalized.get("evidence") or {})
        evidence_cfg["storage_services"] = [
            str(item) for item in evidence_cfg.get("storage_services") or DEFAULT_STORAGE_SERVICES
        ]
        evidence_cfg["max_items_per_tier"] = int(evidence_cfg.get("max_items_per_tier", 50))
        normalized["evidence"] = evidence_cfg
        return normalized
