"""Tests for the boot stage state machine."""

from __future__ import annotations

from pathlib import Path

from bcd.store import StoreSnapshot, snapshot_from_text
from stages import catalog
from stages.catalog import STAGE_CATALOG
from stages.machine import StageEvidence, evaluate_stages, format_stage_report, locate_failure
from stages.models import BootStage, StageStatus
from target.volume import TargetVolume
from tests.samples import HEALTHY_STORE, touch

FRAGMENTS = ("stornvme", "storahci", "disk.sys")


def _evidence(volume: Path, store: StoreSnapshot | None = None) -> StageEvidence:
    return StageEvidence(
        volume=TargetVolume.from_identifier(str(volume)),
        store=store if store is not None else snapshot_from_text(HEALTHY_STORE, "dump"),
        critical_driver_fragments=FRAGMENTS,
    )


def _stage(order: int, status: StageStatus) -> BootStage:
    return BootStage(name=f"stage {order}", order=order, status=status, details="")


def test_catalog_has_seven_ordered_stages() -> None:
    assert sorted(STAGE_CATALOG) == list(range(1, 8))
    assert all(definition.remedy.commands for definition in STAGE_CATALOG.values())


def test_locate_failure_returns_last_passed_and_first_failed() -> None:
    stages = [
        _stage(1, StageStatus.PASSED),
        _stage(2, StageStatus.PASSED),
        _stage(3, StageStatus.FAILED),
        _stage(4, StageStatus.FAILED),
    ]

    last_passed, first_failed = locate_failure(stages)

    assert last_passed.order == 2
    assert first_failed.order == 3


def test_unknown_stages_do_not_count_as_failures() -> None:
    stages = [_stage(1, StageStatus.PASSED), _stage(2, StageStatus.UNKNOWN), _stage(3, StageStatus.PASSED)]

    last_passed, first_failed = locate_failure(stages)

    assert first_failed is None
    assert last_passed.order == 3


def test_out_of_order_evidence_is_reported_as_scanned() -> None:
    stages = [
        _stage(3, StageStatus.PASSED),
        _stage(1, StageStatus.UNKNOWN),
        _stage(2, StageStatus.FAILED),
        _stage(4, StageStatus.PASSED),
    ]

    last_passed, first_failed = locate_failure(stages)

    assert first_failed.order == 2
    assert last_passed is None


def test_healthy_volume_passes_all_evidenced_stages(healthy_volume: Path) -> None:
    report = evaluate_stages(_evidence(healthy_volume))

    statuses = {stage.order: stage.status for stage in report.stages}
    assert statuses[catalog.DRIVERS] is StageStatus.UNKNOWN
    assert all(
        status is StageStatus.PASSED for order, status in statuses.items() if order != catalog.DRIVERS
    )
    assert report.first_failed is None
    assert report.all_passed
    assert report.last_passed.order == catalog.LOGON


def test_critical_driver_failure_fails_driver_stage(healthy_volume: Path) -> None:
    touch(
        healthy_volume / "Windows" / "ntbtlog.txt",
        "Loaded driver \\SystemRoot\\system32\\ntoskrnl.exe\n"
        "Did not load driver \\SystemRoot\\System32\\drivers\\stornvme.sys\n"
        "Did not load driver \\SystemRoot\\System32\\drivers\\serial.sys\n",
    )

    report = evaluate_stages(_evidence(healthy_volume), esp="Q:")

    assert report.first_failed.order == catalog.DRIVERS
    assert report.last_passed.order == catalog.KERNEL
    assert "stornvme.sys" in report.first_failed.details
    assert report.remedy is STAGE_CATALOG[catalog.DRIVERS].remedy
    assert any("DISM /Image:" in command for command in report.commands)


def test_non_critical_driver_failures_pass(healthy_volume: Path) -> None:
    touch(healthy_volume / "Windows" / "ntbtlog.txt", "Did not load driver \\SystemRoot\\System32\\drivers\\serial.sys\n")

    report = evaluate_stages(_evidence(healthy_volume))

    assert {stage.order: stage.status for stage in report.stages}[catalog.DRIVERS] is StageStatus.PASSED


def test_missing_boot_manager_fails_stage_two(healthy_volume: Path) -> None:
    store = snapshot_from_text("Windows Boot Loader\n---\nidentifier {default}\n", "dump")

    report = evaluate_stages(_evidence(healthy_volume, store), esp="S:")

    assert report.first_failed.order == catalog.BOOT_MANAGER
    assert report.last_passed.order == catalog.FIRMWARE
    assert "bcdboot " in report.commands[0]
    assert report.commands[0].endswith("/s S: /f UEFI")


def test_unavailable_store_leaves_boot_manager_unknown(healthy_volume: Path) -> None:
    store = StoreSnapshot(available=False, source="bcdedit", error="Access failure")

    report = evaluate_stages(_evidence(healthy_volume, store))

    assert report.stages[1].status is StageStatus.UNKNOWN
    assert "Access failure" in report.stages[1].details


def test_raising_evaluator_gives_unknown(healthy_volume: Path) -> None:
    def broken(evidence: StageEvidence):
        raise OSError("device not ready")

    evaluators = {order: (lambda evidence: (StageStatus.PASSED, "ok")) for order in STAGE_CATALOG}
    evaluators[catalog.KERNEL] = broken

    report = evaluate_stages(_evidence(healthy_volume), evaluators=evaluators)

    kernel = report.stages[catalog.KERNEL - 1]
    assert kernel.status is StageStatus.UNKNOWN
    assert "device not ready" in kernel.details
    assert report.first_failed is None


def test_missing_system_dir_fails_firmware_stage(tmp_path: Path) -> None:
    report = evaluate_stages(_evidence(tmp_path / "absent"))

    assert report.first_failed.order == catalog.FIRMWARE
    assert report.last_passed is None
    assert "Last passed: none" in format_stage_report(report)
