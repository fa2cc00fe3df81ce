"""Typed, immutable view of the diagnostics configuration."""

from __future__ import annotations

from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any

from config.controller import (
    DEFAULT_BOOT_FILES,
    DEFAULT_CRITICAL_DRIVER_FRAGMENTS,
    DEFAULT_OS_FILES,
    DEFAULT_STORAGE_SERVICES,
)


def _optional_path(value: Any) -> Path | None:
    if value in (None, ""):
        return None
    return Path(str(value)).expanduser()


@dataclass(frozen=True)
class DiagnosticSettings:
    """Settings consumed by one diagnostic pass."""

    target_volume: str = "C:"
    store_dump: Path | None = None
    store_path: Path | None = None
    firmware_partition_path: Path | None = None
    firmware_partition_filesystem: str | None = None
    require_elevation: bool = True
    check_timeout_s: float = 60.0
    command_timeout_s: float = 30.0
    encryption_timeout_s: float = 15.0
    os_files: tuple[str, ...] = tuple(DEFAULT_OS_FILES)
    boot_files: tuple[str, ...] = tuple(DEFAULT_BOOT_FILES)
    critical_driver_fragments: tuple[str, ...] = tuple(DEFAULT_CRITICAL_DRIVER_FRAGMENTS)
    storage_services: tuple[str, ...] = tuple(DEFAULT_STORAGE_SERVICES)
    max_items_per_tier: int = 50

    @classmethod
    def from_config(cls, config: dict[str, Any]) -> "DiagnosticSettings":
        """Build settings from a normalized ``ConfigController`` config."""

        target_cfg = config.get("target") or {}
        probes_cfg = config.get("probes") or {}
        checks_cfg = config.get("checks") or {}
        stages_cfg = config.get("stages") or {}
        evidence_cfg = config.get("evidence") or {}
        filesystem = target_cfg.get("firmware_partition_filesystem")
        return cls(
            target_volume=str(target_cfg.get("volume", "C:")),
            store_dump=_optional_path(target_cfg.get("store_dump")),
            store_path=_optional_path(target_cfg.get("store_path")),
            firmware_partition_path=_optional_path(target_cfg.get("firmware_partition_path")),
            firmware_partition_filesystem=str(filesystem) if filesystem else None,
            require_elevation=bool(target_cfg.get("require_elevation", True)),
            check_timeout_s=float(probes_cfg.get("check_timeout_s", 60.0)),
            command_timeout_s=float(probes_cfg.get("command_timeout_s", 30.0)),
            encryption_timeout_s=float(probes_cfg.get("encryption_timeout_s", 15.0)),
            os_files=tuple(checks_cfg.get("os_files") or DEFAULT_OS_FILES),
            boot_files=tuple(checks_cfg.get("boot_files") or DEFAULT_BOOT_FILES),
            critical_driver_fragments=tuple(
                stages_cfg.get("critical_driver_fragments") or DEFAULT_CRITICAL_DRIVER_FRAGMENTS
            ),
            storage_services=tuple(evidence_cfg.get("storage_services") or DEFAULT_STORAGE_SERVICES),
            max_items_per_tier=int(evidence_cfg.get("max_items_per_tier", 50)),
        )

    def with_overrides(self, **changes: Any) -> "DiagnosticSettings":
        """Return a copy with non-``None`` overrides applied."""

        return replace(self, **{key: value for key, value in changes.items() if value is not None})
