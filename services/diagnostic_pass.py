"""One complete, read-only diagnostic pass over a target volume."""

from __future__ import annotations

from collections.abc import Callable, Iterable
from dataclasses import dataclass
import threading

from bcd.conflicts import BootConflict, detect_conflicts
from bcd.models import BootEntry
from bcd.store import StoreSnapshot, take_snapshot
from config.settings import DiagnosticSettings
from core.commands import CommandRunner, run_tool
from core.logging import logger as LOGGER
from core.privileges import ensure_elevated
from diagnostics.checks import CheckContext
from diagnostics.models import BatteryResult, BootProbability, ProbabilityBand
from diagnostics.runner import run_battery
from diagnostics.scorer import score_checks
from evidence.discovery import DiscoveryContext, discover_evidence
from evidence.fuser import fuse_evidence
from evidence.models import EvidenceSet, RootCauseFinding
from stages.machine import StageEvidence, evaluate_stages
from stages.models import StageReport
from target.firmware import (
    DEFAULT_ESP_LABEL,
    FirmwarePartition,
    configured_partition,
    detect_firmware_partition,
)
from target.volume import OsInstallation, TargetVolume, discover_installations

HEALTHY_BANDS = frozenset({ProbabilityBand.EXCELLENT, ProbabilityBand.GOOD, ProbabilityBand.FAIR})


@dataclass(frozen=True)
class DiagnosticReport:
    """Everything one pass produced."""

    target: str
    store: StoreSnapshot
    battery: BatteryResult
    probability: BootProbability
    stages: StageReport
    conflicts: tuple[BootConflict, ...]
    evidence: EvidenceSet
    finding: RootCauseFinding
    esp: str = DEFAULT_ESP_LABEL

    @property
    def entries(self) -> tuple[BootEntry, ...]:
        return self.store.entries

    @property
    def healthy(self) -> bool:
        return self.probability.band in HEALTHY_BANDS and self.stages.first_failed is None


class DiagnosticPass:
    """Runs preflight, store snapshot, battery, scorer, stages, conflicts and evidence.

    ``AccessDeniedError`` from preflight or the store enumeration aborts the
    pass before any check runs. Everything else is contained by the check,
    stage or tier that raised it.
    """

    def __init__(
        self,
        settings: DiagnosticSettings,
        *,
        runner: CommandRunner = run_tool,
        installations_provider: Callable[[], Iterable[OsInstallation]] = discover_installations,
        elevation_check: Callable[[], None] = ensure_elevated,
        live_system: bool | None = None,
    ) -> None:
        self.settings = settings
        self.runner = runner
        self.installations_provider = installations_provider
        self.elevation_check = elevation_check
        self.live_system = live_system
        self.volume = TargetVolume.from_identifier(settings.target_volume)

    def _firmware_probe(self) -> FirmwarePartition:
        settings = self.settings
        if settings.firmware_partition_path is not None:
            return configured_partition(
                settings.firmware_partition_path,
                settings.firmware_partition_filesystem,
            )
        return detect_firmware_partition(self.runner, settings.command_timeout_s)

    def _preflight(self) -> None:
        if self.settings.require_elevation:
            self.elevation_check()

    def _snapshot(self) -> StoreSnapshot:
        settings = self.settings
        return take_snapshot(
            dump_path=settings.store_dump,
            store_path=settings.store_path,
            runner=self.runner,
            timeout_s=settings.command_timeout_s,
        )

    @staticmethod
    def _esp_label(context: CheckContext) -> str:
        try:
            return context.firmware().label
        except Exception:  # noqa: BLE001 - already reported by the firmware check
            return DEFAULT_ESP_LABEL

    def _installations(self) -> list[OsInstallation]:
        try:
            return list(self.installations_provider())
        except OSError as exc:
            LOGGER.warning("OS installation discovery failed: %s", exc)
            return []

    def run(self, cancel_event: threading.Event | None = None) -> DiagnosticReport:
        """Run one pass and return its report.

        Raises:
            AccessDeniedError: The process cannot read protected boot state.
        """

        settings = self.settings
        volume = self.volume
        LOGGER.info("Diagnosing %s", volume.identifier)
        self._preflight()
        store = self._snapshot()
        LOGGER.info("Boot store: %d entries from %s", len(store.entries), store.source)

        context = CheckContext(
            volume=volume,
            store=store,
            firmware_probe=self._firmware_probe,
            os_files=settings.os_files,
            boot_files=settings.boot_files,
            store_path=settings.store_path,
        )
        battery = run_battery(context, timeout_s=settings.check_timeout_s, cancel_event=cancel_event)
        esp = self._esp_label(context)
        probability = score_checks(battery.checks, target=volume.identifier, esp=esp)
        LOGGER.info("Boot probability %d%% (%s)", probability.score, probability.band.value)

        stages = evaluate_stages(
            StageEvidence(
                volume=volume,
                store=store,
                critical_driver_fragments=settings.critical_driver_fragments,
            ),
            esp=esp,
        )

        conflicts = tuple(detect_conflicts(store.entries, self._installations()))
        for conflict in conflicts:
            LOGGER.warning("Boot conflict (%s): %s", conflict.severity.value, conflict.subject)

        evidence = discover_evidence(
            DiscoveryContext(
                volume=volume,
                store=store,
                critical_driver_fragments=settings.critical_driver_fragments,
                storage_services=settings.storage_services,
                runner=self.runner,
                command_timeout_s=settings.command_timeout_s,
                encryption_timeout_s=settings.encryption_timeout_s,
                max_items_per_tier=settings.max_items_per_tier,
                live_system=self.live_system,
            )
        )
        finding = fuse_evidence(evidence, target=volume.identifier, esp=esp)

        return DiagnosticReport(
            target=volume.identifier,
            store=store,
            battery=battery,
            probability=probability,
            stages=stages,
            conflicts=conflicts,
            evidence=evidence,
            finding=finding,
            esp=esp,
        )

