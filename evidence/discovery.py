"""Artifact discovery, one collector per evidence tier.

Collectors only read. A source that cannot be read is noted on its tier
scan; a tier whose every source failed or was skipped is NOT_CHECKED,
which is reported differently from a tier that was read and found clean.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
import re

from bcd.store import StoreSnapshot
from core.commands import CommandRunner, run_tool
from core.deadline import OutcomeKind, run_with_deadline
from core.errors import BootDiagnosticsError
from core.logging import logger as LOGGER
from evidence.bugchecks import normalize_code
from evidence.models import EvidenceItem, EvidenceSet, EvidenceTier, TierScan, TierState
from target.hardware import (
    START_TYPE_NAMES,
    query_encryption_status,
    query_service_start_types,
    query_storage_controllers,
)
from target.logs import driver_name, parse_srt_root_cause, read_log_text, summarize_driver_load
from target.volume import TargetVolume

MINIDUMP_DIR = "Windows/Minidump"
MEMORY_DUMP = "Windows/MEMORY.DMP"
LIVE_KERNEL_REPORTS_DIR = "Windows/LiveKernelReports"
BOOT_LOG = "Windows/ntbtlog.txt"
SRT_TRAIL = "Windows/System32/LogFiles/Srt/SrtTrail.txt"
SETUP_LOG = "Windows/Panther/setupact.log"
EVENT_LOG_DIR = "Windows/System32/winevt/Logs"
EVENT_LOG_CHANNELS = ("System", "Application", "Setup")
WER_REPORT_DIRS = (
    "ProgramData/Microsoft/Windows/WER/ReportArchive",
    "ProgramData/Microsoft/Windows/WER/ReportQueue",
)
WER_KERNEL_RE = re.compile(r"^Kernel_(?:0x)?(?P<code>[0-9a-fA-F]+)_", re.IGNORECASE)

# Read failures that are local to one source.
SOURCE_ERRORS = (OSError, ValueError, TypeError, BootDiagnosticsError)


@dataclass(frozen=True)
class DiscoveryContext:
    """Everything the collectors read from."""

    volume: TargetVolume
    store: StoreSnapshot
    critical_driver_fragments: tuple[str, ...] = ()
    storage_services: tuple[str, ...] = ()
    runner: CommandRunner = run_tool
    command_timeout_s: float = 30.0
    encryption_timeout_s: float = 15.0
    max_items_per_tier: int = 50
    # None means "ask the volume".
    live_system: bool | None = None

    @property
    def reads_live_registry(self) -> bool:
        if self.live_system is not None:
            return self.live_system
        return self.volume.is_running_system()


def _modified(path: Path) -> datetime | None:
    try:
        return datetime.fromtimestamp(path.stat().st_mtime)
    except OSError:
        return None


def _file_size(path: Path) -> int:
    try:
        return path.stat().st_size
    except OSError:
        return 0


def _files_with_suffix(directory: Path, suffix: str) -> list[Path]:
    if not directory.is_dir():
        return []
    return sorted(
        (child for child in directory.iterdir() if child.is_file() and child.suffix.lower() == suffix),
        key=lambda child: child.name.lower(),
    )


def _sort_key(item: EvidenceItem) -> tuple:
    stamp = item.timestamp.timestamp() if item.timestamp is not None else 0.0
    return (item.kind, -stamp, item.source.lower())


@dataclass
class _TierCollector:
    """Accumulates items and per-source notes for one tier."""

    tier: EvidenceTier
    limit: int
    items: list[EvidenceItem] = field(default_factory=list)
    notes: list[str] = field(default_factory=list)
    read_sources: int = 0

    def item(self, kind: str, source: Path | str, **kwargs) -> EvidenceItem:
        return EvidenceItem(tier=self.tier, kind=kind, source=str(source), **kwargs)

    def read(self, label: str, collect: Callable[[], Iterable[EvidenceItem] | None]) -> None:
        try:
            found = list(collect() or ())
        except SOURCE_ERRORS as exc:
            LOGGER.warning("Evidence source %s could not be read: %s", label, exc)
            self.notes.append(f"{label}: could not be read ({exc})")
            return
        self.read_sources += 1
        self.items.extend(found)

    def skip(self, label: str, reason: str) -> None:
        self.notes.append(f"{label}: not checked ({reason})")

    def scan(self) -> TierScan:
        if not self.read_sources:
            return TierScan(tier=self.tier, state=TierState.NOT_CHECKED, notes=tuple(self.notes))
        items = sorted(self.items, key=_sort_key)
        notes = list(self.notes)
        if len(items) > self.limit:
            notes.append(f"{len(items) - self.limit} further items omitted")
            items = items[: self.limit]
        state = TierState.FINDINGS if items else TierState.CLEAN
        return TierScan(tier=self.tier, state=state, items=tuple(items), notes=tuple(notes))


def collect_crash_dumps(context: DiscoveryContext) -> TierScan:
    volume = context.volume
    tier = _TierCollector(EvidenceTier.CRASH_DUMP, context.max_items_per_tier)

    def minidumps() -> list[EvidenceItem]:
        return [
            tier.item("minidump", path, size_or_count=_file_size(path), timestamp=_modified(path))
            for path in _files_with_suffix(volume.path(MINIDUMP_DIR), ".dmp")
        ]

    def memory_dump() -> list[EvidenceItem]:
        path = volume.path(MEMORY_DUMP)
        if not path.is_file():
            return []
        return [tier.item("memory_dump", path, size_or_count=_file_size(path), timestamp=_modified(path))]

    def live_kernel_reports() -> list[EvidenceItem]:
        root = volume.path(LIVE_KERNEL_REPORTS_DIR)
        if not root.is_dir():
            return []
        found = []
        for category in sorted(root.iterdir(), key=lambda child: child.name.lower()):
            if not category.is_dir():
                continue
            for path in _files_with_suffix(category, ".dmp"):
                found.append(
                    tier.item(
                        "live_kernel_report",
                        path,
                        size_or_count=_file_size(path),
                        timestamp=_modified(path),
                        attributes={"category": category.name},
                    )
                )
        return found

    tier.read("minidumps", minidumps)
    tier.read("memory dump", memory_dump)
    tier.read("live kernel reports", live_kernel_reports)
    return tier.scan()


def collect_boot_logs(context: DiscoveryContext) -> TierScan:
    volume = context.volume
    tier = _TierCollector(EvidenceTier.BOOT_LOG, context.max_items_per_tier)

    def boot_log() -> list[EvidenceItem]:
        path = volume.path(BOOT_LOG)
        if not path.is_file():
            return []
        summary = summarize_driver_load(read_log_text(path), context.critical_driver_fragments)
        return [
            tier.item(
                "boot_log",
                path,
                size_or_count=len(summary.failed_drivers),
                timestamp=_modified(path),
                attributes={
                    "critical_failures": ", ".join(driver_name(d) for d in summary.critical_failures),
                },
            )
        ]

    def startup_repair_log() -> list[EvidenceItem]:
        path = volume.path(SRT_TRAIL)
        if not path.is_file():
            return []
        cause = parse_srt_root_cause(read_log_text(path))
        return [
            tier.item(
                "startup_repair_log",
                path,
                size_or_count=_file_size(path),
                timestamp=_modified(path),
                attributes={"root_cause": cause} if cause else {},
            )
        ]

    def setup_log() -> list[EvidenceItem]:
        path = volume.path(SETUP_LOG)
        if not path.is_file():
            return []
        return [tier.item("setup_log", path, size_or_count=_file_size(path), timestamp=_modified(path))]

    tier.read("boot log", boot_log)
    tier.read("startup repair log", startup_repair_log)
    tier.read("setup log", setup_log)
    return tier.scan()


def collect_event_logs(context: DiscoveryContext) -> TierScan:
    volume = context.volume
    tier = _TierCollector(EvidenceTier.EVENT_LOG, context.max_items_per_tier)

    log_dir = volume.path(EVENT_LOG_DIR)
    if log_dir.is_dir():

        def event_logs() -> list[EvidenceItem]:
            found = []
            for channel in EVENT_LOG_CHANNELS:
                path = volume.path(f"{EVENT_LOG_DIR}/{channel}.evtx")
                if path.is_file():
                    found.append(
                        tier.item(
                            "event_log",
                            path,
                            size_or_count=_file_size(path),
                            timestamp=_modified(path),
                            attributes={"channel": channel},
                        )
                    )
                else:
                    found.append(tier.item("event_log_missing", path, attributes={"channel": channel}))
            return found

        tier.read("event logs", event_logs)
    else:
        tier.skip("event logs", f"{log_dir} not found")

    def wer_reports() -> list[EvidenceItem]:
        found = []
        for relative in WER_REPORT_DIRS:
            root = volume.path(relative)
            if not root.is_dir():
                continue
            for folder in sorted(root.iterdir(), key=lambda child: child.name.lower()):
                match = WER_KERNEL_RE.match(folder.name)
                if not folder.is_dir() or not match:
                    continue
                found.append(
                    tier.item(
                        "wer_report",
                        folder,
                        timestamp=_modified(folder),
                        attributes={"bugcheck": normalize_code(match.group("code"))},
                    )
                )
        return found

    tier.read("error reports", wer_reports)
    return tier.scan()


def collect_configuration(context: DiscoveryContext) -> TierScan:
    store = context.store
    tier = _TierCollector(EvidenceTier.CONFIGURATION, context.max_items_per_tier)

    if store.available:

        def boot_store() -> list[EvidenceItem]:
            return [
                tier.item(
                    "boot_store",
                    store.source,
                    size_or_count=len(store.entries),
                    attributes={
                        "entries": str(len(store.entries)),
                        "has_default": "yes" if store.has_default_entry else "no",
                    },
                )
            ]

        tier.read("boot store", boot_store)
    else:
        tier.skip("boot store", store.error or "store unavailable")

    if not context.storage_services:
        tier.skip("service start types", "no storage services configured")
    elif context.reads_live_registry:

        def service_starts() -> list[EvidenceItem]:
            start_types = query_service_start_types(
                context.storage_services,
                context.runner,
                context.command_timeout_s,
            )
            return [
                tier.item(
                    "service_start",
                    f"HKLM\\SYSTEM\\CurrentControlSet\\Services\\{service}",
                    size_or_count=value,
                    attributes={"service": service, "start": START_TYPE_NAMES.get(value, str(value))},
                )
                for service, value in sorted(start_types.items())
            ]

        tier.read("service start types", service_starts)
    else:
        tier.skip("service start types", "offline registry hives are not loaded")
    return tier.scan()


def collect_hardware(context: DiscoveryContext) -> TierScan:
    tier = _TierCollector(EvidenceTier.HARDWARE, context.max_items_per_tier)

    def controllers() -> list[EvidenceItem]:
        return [
            tier.item(
                "storage_controller",
                controller.name,
                attributes={
                    "name": controller.name,
                    "driver": controller.driver or "",
                    "status": controller.status or "",
                },
            )
            for controller in query_storage_controllers(context.runner, context.command_timeout_s)
        ]

    tier.read("storage controllers", controllers)

    volume = context.volume
    if not volume.is_drive:
        tier.skip("volume encryption", "target is not a drive letter")
        return tier.scan()

    def encryption() -> list[EvidenceItem]:
        outcome = run_with_deadline(
            lambda: query_encryption_status(volume.identifier, context.runner, context.command_timeout_s),
            context.encryption_timeout_s,
            name="encryption",
        )
        if outcome.kind is OutcomeKind.TIMED_OUT:
            raise TimeoutError(f"manage-bde did not answer within {context.encryption_timeout_s}s")
        if outcome.kind is OutcomeKind.ERRORED:
            raise outcome.error
        status = outcome.value
        return [
            tier.item(
                "encryption",
                volume.identifier,
                attributes={
                    "lock": status.lock or "",
                    "protection": status.protection or "",
                    "conversion": status.conversion or "",
                },
            )
        ]

    tier.read("volume encryption", encryption)
    return tier.scan()


COLLECTORS: tuple[Callable[[DiscoveryContext], TierScan], ...] = (
    collect_crash_dumps,
    collect_boot_logs,
    collect_event_logs,
    collect_configuration,
    collect_hardware,
)


def discover_evidence(
    context: DiscoveryContext,
    collectors: Iterable[Callable[[DiscoveryContext], TierScan]] = COLLECTORS,
) -> EvidenceSet:
    """Run every collector and return the scans ordered by tier."""

    scans = []
    for collector in collectors:
        scan = collector(context)
        LOGGER.debug("Tier %d (%s): %d items", scan.tier, scan.state.value, len(scan.items))
        scans.append(scan)
    return EvidenceSet(scans=tuple(sorted(scans, key=lambda scan: scan.tier)))
