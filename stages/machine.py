"""Diagnostic boot stage state machine.

Each stage's status is derived independently from direct evidence; the
failure locator then scans stages in their fixed order. Stages are not
simulated causally, so a failed stage may follow an unknown one or precede
a passed one, and is reported exactly as evaluated.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping, Sequence
from dataclasses import dataclass

from bcd.store import StoreSnapshot
from core.logging import logger as LOGGER
from stages import catalog
from stages.catalog import STAGE_CATALOG, StageDefinition
from stages.models import BootStage, StageReport, StageStatus
from target.logs import driver_name, read_log_text, summarize_driver_load
from target.volume import TargetVolume

BOOT_LOG = "Windows/ntbtlog.txt"


@dataclass(frozen=True)
class StageEvidence:
    """Inputs the stage evaluators read."""

    volume: TargetVolume
    store: StoreSnapshot
    critical_driver_fragments: tuple[str, ...]


Evaluation = tuple[StageStatus, str]


def _files_present(evidence: StageEvidence, names: Sequence[str]) -> tuple[list[str], list[str]]:
    present, missing = [], []
    for name in names:
        (present if evidence.volume.system_file(name).is_file() else missing).append(name)
    return present, missing


def evaluate_firmware(evidence: StageEvidence) -> Evaluation:
    system32 = evidence.volume.system32
    if not system32.is_dir():
        return StageStatus.FAILED, f"System directory {system32} not found"
    try:
        next(system32.iterdir(), None)
    except OSError as exc:
        return StageStatus.FAILED, f"System directory unreadable: {exc}"
    return StageStatus.PASSED, f"System directory {system32} readable"


def evaluate_boot_manager(evidence: StageEvidence) -> Evaluation:
    store = evidence.store
    if not store.available:
        return StageStatus.UNKNOWN, f"Boot store unavailable: {store.error or 'no source'}"
    if store.manager is None:
        return StageStatus.FAILED, "Boot store has no boot manager entry"
    return StageStatus.PASSED, "Boot manager entry present"


def evaluate_boot_loader(evidence: StageEvidence) -> Evaluation:
    present, _ = _files_present(evidence, ("winload.efi", "winload.exe"))
    if present:
        return StageStatus.PASSED, f"Boot loader present: {', '.join(present)}"
    return StageStatus.FAILED, "winload.efi and winload.exe missing"


def evaluate_kernel(evidence: StageEvidence) -> Evaluation:
    _, missing = _files_present(evidence, ("ntoskrnl.exe", "hal.dll"))
    if missing:
        return StageStatus.FAILED, f"Missing {', '.join(missing)}"
    return StageStatus.PASSED, "ntoskrnl.exe and hal.dll present"


def evaluate_drivers(evidence: StageEvidence) -> Evaluation:
    log_path = evidence.volume.path(BOOT_LOG)
    if not log_path.is_file():
        return StageStatus.UNKNOWN, "No boot log (ntbtlog.txt); boot logging not enabled"
    summary = summarize_driver_load(read_log_text(log_path), evidence.critical_driver_fragments)
    if summary.critical_failures:
        names = ", ".join(driver_name(driver) for driver in summary.critical_failures)
        return StageStatus.FAILED, f"Critical drivers did not load: {names}"
    return (
        StageStatus.PASSED,
        f"No critical driver failures ({len(summary.failed_drivers)} non-critical)",
    )


def evaluate_session_manager(evidence: StageEvidence) -> Evaluation:
    _, missing = _files_present(evidence, ("smss.exe",))
    if missing:
        return StageStatus.FAILED, "smss.exe missing"
    return StageStatus.PASSED, "smss.exe present"


def evaluate_logon(evidence: StageEvidence) -> Evaluation:
    _, missing = _files_present(evidence, ("winlogon.exe",))
    if missing:
        return StageStatus.FAILED, "winlogon.exe missing"
    return StageStatus.PASSED, "winlogon.exe present"


EVALUATORS: Mapping[int, Callable[[StageEvidence], Evaluation]] = {
    catalog.FIRMWARE: evaluate_firmware,
    catalog.BOOT_MANAGER: evaluate_boot_manager,
    catalog.BOOT_LOADER: evaluate_boot_loader,
    catalog.KERNEL: evaluate_kernel,
    catalog.DRIVERS: evaluate_drivers,
    catalog.SESSION_MANAGER: evaluate_session_manager,
    catalog.LOGON: evaluate_logon,
}


def locate_failure(stages: Iterable[BootStage]) -> tuple[BootStage | None, BootStage | None]:
    """Return ``(last_passed, first_failed)`` from an in-order scan."""

    last_passed: BootStage | None = None
    for stage in sorted(stages, key=lambda item: item.order):
        if stage.status is StageStatus.FAILED:
            return last_passed, stage
        if stage.status is StageStatus.PASSED:
            last_passed = stage
    return last_passed, None


def build_report(
    stages: Sequence[BootStage],
    *,
    stage_catalog: Mapping[int, StageDefinition] = STAGE_CATALOG,
    target: str = "C:",
    esp: str = "S:",
) -> StageReport:
    last_passed, first_failed = locate_failure(stages)
    remedy = stage_catalog[first_failed.order].remedy if first_failed is not None else None
    return StageReport(
        stages=tuple(sorted(stages, key=lambda item: item.order)),
        last_passed=last_passed,
        first_failed=first_failed,
        remedy=remedy,
        commands=remedy.formatted_commands(target, esp) if remedy is not None else (),
    )


def evaluate_stages(
    evidence: StageEvidence,
    *,
    stage_catalog: Mapping[int, StageDefinition] = STAGE_CATALOG,
    evaluators: Mapping[int, Callable[[StageEvidence], Evaluation]] = EVALUATORS,
    esp: str = "S:",
) -> StageReport:
    """Evaluate every stage and locate the failure point."""

    stages: list[BootStage] = []
    for order, definition in sorted(stage_catalog.items()):
        evaluator = evaluators.get(order)
        if evaluator is None:
            status, details = StageStatus.UNKNOWN, "No evaluator for this stage"
        else:
            try:
                status, details = evaluator(evidence)
            except Exception as exc:  # noqa: BLE001 - one stage must not abort the scan
                LOGGER.exception("Stage %s could not be evaluated", definition.name)
                status, details = StageStatus.UNKNOWN, f"Could not evaluate: {exc}"
        stages.append(BootStage(name=definition.name, order=order, status=status, details=details))

    return build_report(
        stages,
        stage_catalog=stage_catalog,
        target=evidence.volume.identifier,
        esp=esp,
    )


def format_stage_report(report: StageReport) -> str:
    """Return a human-friendly stage report."""

    lines = ["Boot stages", "-" * 60]
    for stage in report.stages:
        lines.append(f"[{stage.status.value}] {stage.order}. {stage.name}: {stage.details}")
    if report.first_failed is None:
        lines.append("All stages passed (unknown stages lacked evidence)")
    else:
        passed = report.last_passed.name if report.last_passed else "none"
        lines.append(f"Last passed: {passed}; first failed: {report.first_failed.name}")
        if report.remedy is not None:
            lines.append(f"Likely cause: {report.remedy.root_cause}")
            for code, meaning in report.remedy.error_codes:
                lines.append(f"    code {code}: {meaning}")
            for command in report.commands:
                lines.append(f"    > {command}")
    lines.append("-" * 60)
    return "\n".join(lines)
