"""The fixed, weighted boot health check battery.

Each check inspects one aspect of the target and awards partial credit
against its own weight. Checks never write to the target.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from pathlib import Path
import threading

from bcd.models import BootEntryKind
from bcd.store import StoreSnapshot
from core.errors import BootDiagnosticsError, ErrorKind, ProbeError
from core.logging import logger as LOGGER
from diagnostics.models import CheckStatus, HealthCheck, HealthIssue
from target.firmware import FirmwarePartition
from target.volume import TargetVolume

OS_FILES_WEIGHT = 25
FIRMWARE_PARTITION_WEIGHT = 25
BOOT_STORE_WEIGHT = 25
BOOT_FILES_WEIGHT = 15
BOOT_ENTRIES_WEIGHT = 10

ESP_PRESENT_POINTS = 15
ESP_FORMAT_POINTS = 5
ESP_STRUCTURE_POINTS = 5

STORE_PRESENT_POINTS = 10
STORE_ACCESSIBLE_POINTS = 10
STORE_NON_EMPTY_POINTS = 5

STORE_FILE_ON_ESP = "EFI/Microsoft/Boot/BCD"
STORE_FILE_LEGACY = "Boot/BCD"


def partial_credit(satisfied: int, total: int, weight: int) -> int:
    """Award credit for ``satisfied`` of ``total`` binary sub-conditions.

    All satisfied earns the full weight, two or more earns the rounded
    proportional share, fewer than two earns nothing.
    """

    if total <= 0 or satisfied <= 0:
        return 0
    if satisfied >= total:
        return weight
    if satisfied < 2:
        return 0
    return round(satisfied / total * weight)


def _windows_path(relative: str) -> str:
    return relative.replace("/", "\\")


def status_for(awarded: int, weight: int) -> CheckStatus:
    if awarded >= weight:
        return CheckStatus.PASS
    if awarded > 0:
        return CheckStatus.PARTIAL
    return CheckStatus.FAIL


@dataclass
class CheckContext:
    """Inputs shared by every check in one pass.

    The firmware partition probe runs at most once; its value or its error
    is replayed to every check that asks for it.
    """

    volume: TargetVolume
    store: StoreSnapshot
    firmware_probe: Callable[[], FirmwarePartition]
    os_files: tuple[str, ...]
    boot_files: tuple[str, ...]
    store_path: Path | None = None
    _firmware_lock: threading.Lock = field(default_factory=threading.Lock, repr=False)
    _firmware_value: FirmwarePartition | None = field(default=None, repr=False)
    _firmware_error: BaseException | None = field(default=None, repr=False)

    def firmware(self) -> FirmwarePartition:
        with self._firmware_lock:
            if self._firmware_value is None and self._firmware_error is None:
                try:
                    self._firmware_value = self.firmware_probe()
                except Exception as exc:  # noqa: BLE001 - replayed to each caller
                    LOGGER.warning("Firmware partition probe failed: %s", exc)
                    self._firmware_error = exc
            if self._firmware_error is not None:
                raise self._firmware_error
            return self._firmware_value


def _result(
    name: str,
    weight: int,
    awarded: int,
    details: str,
    issues: Sequence[HealthIssue] = (),
    error_kind: ErrorKind | None = None,
) -> HealthCheck:
    return HealthCheck(
        name=name,
        max_weight=weight,
        awarded_score=awarded,
        status=status_for(awarded, weight),
        details=details,
        issues=tuple(issues),
        error_kind=error_kind,
    )


def check_os_files(context: CheckContext) -> HealthCheck:
    """Kernel, HAL, loader and registry hive presence."""

    context.volume.require_system_dir()
    found: list[str] = []
    issues: list[HealthIssue] = []
    for relative in context.os_files:
        if context.volume.system_file(relative).is_file():
            found.append(relative)
        else:
            issues.append(
                HealthIssue(
                    code="os_files.missing",
                    message=f"Missing Windows\\System32\\{_windows_path(relative)}",
                    critical=True,
                )
            )
    total = len(context.os_files)
    awarded = partial_credit(len(found), total, OS_FILES_WEIGHT)
    return _result(
        "os_files",
        OS_FILES_WEIGHT,
        awarded,
        f"{len(found)}/{total} core OS files present",
        issues,
    )


def check_firmware_partition(context: CheckContext) -> HealthCheck:
    """Firmware partition presence, FAT format and boot folder structure."""

    partition = context.firmware()
    if not partition.present:
        return _result(
            "firmware_partition",
            FIRMWARE_PARTITION_WEIGHT,
            0,
            "No firmware system partition found",
            [HealthIssue("esp.missing", "Firmware system partition not found", critical=True)],
        )

    awarded = ESP_PRESENT_POINTS
    issues: list[HealthIssue] = []
    notes = [f"present ({partition.source})"]
    if partition.is_fat:
        awarded += ESP_FORMAT_POINTS
        notes.append(f"formatted {partition.filesystem}")
    else:
        issues.append(
            HealthIssue(
                "esp.not_fat",
                f"Firmware partition filesystem is {partition.filesystem or 'unknown'}, expected FAT32",
                critical=True,
            )
        )
    if partition.mount_path is None:
        issues.append(
            HealthIssue("esp.unreadable", "Firmware partition has no readable access path")
        )
    elif partition.has_boot_structure():
        awarded += ESP_STRUCTURE_POINTS
        notes.append("EFI\\Microsoft\\Boot present")
    else:
        issues.append(
            HealthIssue("esp.no_boot_folder", "EFI\\Microsoft\\Boot folder missing", critical=True)
        )
    return _result(
        "firmware_partition",
        FIRMWARE_PARTITION_WEIGHT,
        awarded,
        ", ".join(notes),
        issues,
    )


def _store_candidates(context: CheckContext) -> list[Path]:
    candidates: list[Path] = []
    if context.store_path is not None:
        candidates.append(context.store_path)
    try:
        partition = context.firmware()
    except (BootDiagnosticsError, OSError) as exc:
        LOGGER.debug("Store lookup without firmware partition: %s", exc)
    else:
        esp_store = partition.path(STORE_FILE_ON_ESP)
        if esp_store is not None:
            candidates.append(esp_store)
    candidates.append(context.volume.path(STORE_FILE_LEGACY))
    return candidates


def check_boot_store(context: CheckContext) -> HealthCheck:
    """Boot store presence, accessibility and content."""

    store = context.store
    awarded = 0
    issues: list[HealthIssue] = []
    notes: list[str] = []
    error_kind: ErrorKind | None = None

    located = next((path for path in _store_candidates(context) if path.is_file()), None)
    if located is not None or store.live:
        awarded += STORE_PRESENT_POINTS
        notes.append(f"present at {located}" if located is not None else "system store present")
    else:
        issues.append(HealthIssue("store.missing", "Boot configuration store file not found", critical=True))

    if store.available:
        awarded += STORE_ACCESSIBLE_POINTS
        notes.append(f"readable via {store.source}")
    else:
        error_kind = store.error_kind
        issues.append(
            HealthIssue(
                "store.inaccessible",
                f"Boot configuration store could not be read: {store.error or 'no source'}",
                critical=True,
            )
        )

    if store.entries:
        awarded += STORE_NON_EMPTY_POINTS
        notes.append(f"{len(store.entries)} entries")
    elif store.parse_incomplete:
        error_kind = ErrorKind.PARSE_INCOMPLETE
        issues.append(
            HealthIssue(
                "store.parse_incomplete",
                "Boot store output was returned but no entries were recognised",
            )
        )
    elif store.available:
        issues.append(HealthIssue("store.empty", "Boot configuration store has no entries", critical=True))

    return _result(
        "boot_store",
        BOOT_STORE_WEIGHT,
        awarded,
        ", ".join(notes) or "boot store unavailable",
        issues,
        error_kind,
    )


def check_boot_files(context: CheckContext) -> HealthCheck:
    """Boot manager binaries on the firmware partition."""

    partition = context.firmware()
    if not partition.present or partition.mount_path is None:
        reason = "not found" if not partition.present else "not readable"
        return _result(
            "boot_files",
            BOOT_FILES_WEIGHT,
            0,
            f"Firmware partition {reason}; boot files unavailable",
            [
                HealthIssue(
                    "boot_files.missing",
                    f"Boot files cannot be verified, firmware partition {reason}",
                    critical=True,
                )
            ],
        )

    found = 0
    issues: list[HealthIssue] = []
    for relative in context.boot_files:
        path = partition.path(relative)
        if path is not None and path.is_file():
            found += 1
        else:
            issues.append(
                HealthIssue(
                    "boot_files.missing",
                    f"Missing {_windows_path(relative)} on firmware partition",
                    critical=True,
                )
            )
    total = len(context.boot_files)
    awarded = partial_credit(found, total, BOOT_FILES_WEIGHT)
    return _result(
        "boot_files",
        BOOT_FILES_WEIGHT,
        awarded,
        f"{found}/{total} boot files present",
        issues,
    )


def _is_resolvable(device: str | None, path: str | None) -> bool:
    if not device or not path:
        return False
    return "unknown" not in device.lower()


def check_boot_entries(context: CheckContext) -> HealthCheck:
    """At least one loader entry with a resolvable device and path."""

    store = context.store
    if not store.available:
        raise ProbeError(store.error or "Boot store unavailable")

    loaders = store.entries_of(BootEntryKind.LOADER)
    valid = [entry for entry in loaders if _is_resolvable(entry.device, entry.path)]
    if valid:
        return _result(
            "boot_entries",
            BOOT_ENTRIES_WEIGHT,
            BOOT_ENTRIES_WEIGHT,
            f"{len(valid)}/{len(loaders)} loader entries resolvable",
        )
    if not loaders:
        issue = HealthIssue("entries.no_loader", "Boot store contains no loader entries", critical=True)
    else:
        issue = HealthIssue(
            "entries.invalid_loader",
            f"None of {len(loaders)} loader entries has a resolvable device and path",
            critical=True,
        )
    return _result(
        "boot_entries",
        BOOT_ENTRIES_WEIGHT,
        0,
        f"0/{len(loaders)} loader entries resolvable",
        [issue],
    )


@dataclass(frozen=True)
class CheckSpec:
    """A named, weighted check in the battery."""

    name: str
    weight: int
    run: Callable[[CheckContext], HealthCheck]


BATTERY: tuple[CheckSpec, ...] = (
    CheckSpec("os_files", OS_FILES_WEIGHT, check_os_files),
    CheckSpec("firmware_partition", FIRMWARE_PARTITION_WEIGHT, check_firmware_partition),
    CheckSpec("boot_store", BOOT_STORE_WEIGHT, check_boot_store),
    CheckSpec("boot_files", BOOT_FILES_WEIGHT, check_boot_files),
    CheckSpec("boot_entries", BOOT_ENTRIES_WEIGHT, check_boot_entries),
)


def validate_battery(specs: Sequence[CheckSpec]) -> None:
    """Raise ``ValueError`` unless the battery weights total 100."""

    total = sum(spec.weight for spec in specs)
    if total != 100:
        raise ValueError(f"Battery weights sum to {total}, expected 100")


validate_battery(BATTERY)
