"""Static rule table mapping tier sub-signals to findings.

Recommendation strings may use ``{target}`` and ``{esp}`` placeholders;
the fuser fills them in.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass

from evidence.bugchecks import STORAGE_BUGCHECKS, describe_bugcheck
from evidence.models import EvidenceItem, EvidenceTier, TierScan

STORAGE_REPORT_CATEGORIES = ("STORAGE", "STORPORT", "STORNVME", "NVME", "STORAHCI", "IASTOR")
STORAGE_MODE_MARKERS = ("vmd", "raid", "rapid storage", "iastor")

STORAGE_MODE_RECOMMENDATION = (
    "Compare the firmware storage controller mode (AHCI/RAID/VMD) with the "
    "storage driver installed in {target}\\Windows"
)
WINDBG_RECOMMENDATION = "Open the newest dump with WinDbg and run !analyze -v to identify the faulting module"


@dataclass(frozen=True)
class RuleMatch:
    statement: str
    recommendations: tuple[str, ...] = ()


@dataclass(frozen=True)
class EvidenceRule:
    name: str
    tier: EvidenceTier
    evaluate: Callable[[TierScan], RuleMatch | None]


def _newest(items: list[EvidenceItem]) -> EvidenceItem:
    return max(items, key=lambda item: (item.timestamp is not None, item.timestamp or 0, item.source))


def _is_storage_related(text: str, markers: tuple[str, ...]) -> bool:
    lowered = text.lower()
    return any(marker.lower() in lowered for marker in markers)


def crash_dumps_present(scan: TierScan) -> RuleMatch | None:
    dumps = scan.of_kind("minidump") + scan.of_kind("memory_dump")
    if not dumps:
        return None
    newest = _newest(dumps)
    when = f" (written {newest.timestamp:%Y-%m-%d %H:%M})" if newest.timestamp else ""
    return RuleMatch(
        statement=(
            f"{len(dumps)} crash dump(s) found; the system stopped with a bug check. "
            f"Newest: {newest.source}{when}"
        ),
        recommendations=(WINDBG_RECOMMENDATION,),
    )


def storage_live_kernel_report(scan: TierScan) -> RuleMatch | None:
    reports = scan.of_kind("live_kernel_report")
    if not reports:
        return None
    categories = sorted({item.attributes.get("category", "") for item in reports} - {""})
    storage = [name for name in categories if _is_storage_related(name, STORAGE_REPORT_CATEGORIES)]
    if storage:
        return RuleMatch(
            statement=f"Storage-category live kernel report present ({', '.join(storage)})",
            recommendations=(
                STORAGE_MODE_RECOMMENDATION,
                "Run chkdsk {target} /scan and check the disk's SMART health",
            ),
        )
    return RuleMatch(
        statement=f"Live kernel report(s) present ({', '.join(categories) or 'uncategorised'})",
        recommendations=(WINDBG_RECOMMENDATION,),
    )


def critical_driver_not_loaded(scan: TierScan) -> RuleMatch | None:
    for item in scan.of_kind("boot_log"):
        drivers = item.attributes.get("critical_failures", "")
        if drivers:
            return RuleMatch(
                statement=f"Boot log shows boot-critical drivers that did not load: {drivers}",
                recommendations=(
                    "DISM /Image:{target}\\ /Get-Drivers /Format:Table",
                    STORAGE_MODE_RECOMMENDATION,
                ),
            )
    return None


def startup_repair_root_cause(scan: TierScan) -> RuleMatch | None:
    for item in scan.of_kind("startup_repair_log"):
        cause = item.attributes.get("root_cause")
        if cause:
            return RuleMatch(
                statement=f"Startup Repair reported root cause: {cause}",
                recommendations=("Review {target}\\Windows\\System32\\LogFiles\\Srt\\SrtTrail.txt",),
            )
    return None


def wer_kernel_bugcheck(scan: TierScan) -> RuleMatch | None:
    codes = sorted({item.attributes.get("bugcheck", "") for item in scan.of_kind("wer_report")} - {""})
    if not codes:
        return None
    described = []
    recommendations = [WINDBG_RECOMMENDATION]
    for code in codes:
        normalized, name, _ = describe_bugcheck(code)
        described.append(f"{normalized} {name}")
        if normalized in STORAGE_BUGCHECKS:
            recommendations.append(STORAGE_MODE_RECOMMENDATION)
    return RuleMatch(
        statement=f"Kernel error reports record bug check(s): {', '.join(described)}",
        recommendations=tuple(recommendations),
    )


def system_event_log_missing(scan: TierScan) -> RuleMatch | None:
    for item in scan.of_kind("event_log_missing"):
        if item.attributes.get("channel") == "System":
            return RuleMatch(
                statement="System event log is missing; the volume may be damaged or was never booted",
                recommendations=("chkdsk {target} /scan",),
            )
    return None


def disabled_storage_driver(scan: TierScan) -> RuleMatch | None:
    disabled = [
        item.attributes.get("service", "")
        for item in scan.of_kind("service_start")
        if item.attributes.get("start") == "disabled"
    ]
    if not disabled:
        return None
    return RuleMatch(
        statement=f"Boot-start storage driver disabled in configuration: {', '.join(disabled)}",
        recommendations=tuple(
            f"reg add HKLM\\SYSTEM\\CurrentControlSet\\Services\\{service} /v Start /t REG_DWORD /d 0 /f"
            for service in disabled
        ),
    )


def missing_default_entry(scan: TierScan) -> RuleMatch | None:
    for item in scan.of_kind("boot_store"):
        if item.size_or_count and item.attributes.get("has_default") == "no":
            return RuleMatch(
                statement="Boot store has no default entry resolving to a Windows loader",
                recommendations=("bcdedit /default {{current}}", "bcdboot {target}\\Windows /s {esp} /f UEFI"),
            )
    return None


def empty_store(scan: TierScan) -> RuleMatch | None:
    for item in scan.of_kind("boot_store"):
        if not item.size_or_count:
            return RuleMatch(
                statement="Boot store returned no recognisable entries",
                recommendations=("bcdboot {target}\\Windows /s {esp} /f UEFI", "bootrec /rebuildbcd"),
            )
    return None


def storage_controller_mode(scan: TierScan) -> RuleMatch | None:
    flagged = []
    for item in scan.of_kind("storage_controller"):
        text = f"{item.attributes.get('name', '')} {item.attributes.get('driver', '')}"
        if _is_storage_related(text, STORAGE_MODE_MARKERS):
            flagged.append(item.attributes.get("name") or item.source)
    if not flagged:
        return None
    return RuleMatch(
        statement=f"Storage controller runs in RAID/VMD mode: {', '.join(flagged)}",
        recommendations=(STORAGE_MODE_RECOMMENDATION,),
    )


def volume_locked(scan: TierScan) -> RuleMatch | None:
    for item in scan.of_kind("encryption"):
        if item.attributes.get("lock", "").lower() == "locked":
            return RuleMatch(
                statement=f"Volume {item.source} is BitLocker-locked",
                recommendations=("manage-bde -unlock {target} -RecoveryPassword <key>",),
            )
    return None


EVIDENCE_RULES: tuple[EvidenceRule, ...] = (
    EvidenceRule("crash_dumps_present", EvidenceTier.CRASH_DUMP, crash_dumps_present),
    EvidenceRule("storage_live_kernel_report", EvidenceTier.CRASH_DUMP, storage_live_kernel_report),
    EvidenceRule("critical_driver_not_loaded", EvidenceTier.BOOT_LOG, critical_driver_not_loaded),
    EvidenceRule("startup_repair_root_cause", EvidenceTier.BOOT_LOG, startup_repair_root_cause),
    EvidenceRule("wer_kernel_bugcheck", EvidenceTier.EVENT_LOG, wer_kernel_bugcheck),
    EvidenceRule("system_event_log_missing", EvidenceTier.EVENT_LOG, system_event_log_missing),
    EvidenceRule("disabled_storage_driver", EvidenceTier.CONFIGURATION, disabled_storage_driver),
    EvidenceRule("missing_default_entry", EvidenceTier.CONFIGURATION, missing_default_entry),
    EvidenceRule("empty_store", EvidenceTier.CONFIGURATION, empty_store),
    EvidenceRule("storage_controller_mode", EvidenceTier.HARDWARE, storage_controller_mode),
    EvidenceRule("volume_locked", EvidenceTier.HARDWARE, volume_locked),
)
