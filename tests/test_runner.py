"""Tests for the guarded battery runner."""

from __future__ import annotations

from pathlib import Path
import threading
import time

from bcd.store import StoreSnapshot
from core.errors import ErrorKind, ProbeTimeoutError
from diagnostics.checks import CheckContext, CheckSpec
from diagnostics.models import CheckStatus, HealthCheck
from diagnostics.runner import format_results, run_battery, run_check
from target.firmware import FirmwarePartition, detect_firmware_partition
from target.volume import TargetVolume


def _context(tmp_path: Path) -> CheckContext:
    return CheckContext(
        volume=TargetVolume.from_identifier(str(tmp_path)),
        store=StoreSnapshot(available=False, source="test"),
        firmware_probe=lambda: FirmwarePartition(present=False, source="test"),
        os_files=(),
        boot_files=(),
    )


def _passing(name: str, weight: int) -> CheckSpec:
    return CheckSpec(
        name,
        weight,
        lambda context: HealthCheck(name, weight, weight, CheckStatus.PASS, "ok"),
    )


def _battery(*first: CheckSpec) -> tuple[CheckSpec, ...]:
    used = sum(spec.weight for spec in first)
    return first + (_passing("rest", 100 - used),)


def test_timeout_marks_check_skipped_not_failed(tmp_path: Path) -> None:
    release = threading.Event()

    def slow(context: CheckContext) -> HealthCheck:
        release.wait(5.0)
        return HealthCheck("slow", 40, 40, CheckStatus.PASS, "late")

    try:
        result = run_check(CheckSpec("slow", 40, slow), _context(tmp_path), timeout_s=0.05)
    finally:
        release.set()

    assert result.status is CheckStatus.SKIPPED
    assert result.awarded_score == 0
    assert result.error_kind is ErrorKind.PROBE_TIMEOUT
    assert result.issues[0].code == "check.timeout"


def test_exception_marks_check_error_with_kind(tmp_path: Path) -> None:
    def broken(context: CheckContext) -> HealthCheck:
        raise PermissionError("denied")

    result = run_check(CheckSpec("broken", 40, broken), _context(tmp_path), timeout_s=1.0)

    assert result.status is CheckStatus.ERROR
    assert result.error_kind is ErrorKind.ACCESS_DENIED
    assert result.issues[0].code == "check.access_denied"


def test_invalid_result_is_reported_as_error(tmp_path: Path) -> None:
    spec = CheckSpec("wrong", 40, lambda context: HealthCheck("wrong", 10, 10, CheckStatus.PASS, "ok"))

    result = run_check(spec, _context(tmp_path), timeout_s=1.0)

    assert result.status is CheckStatus.ERROR
    assert result.max_weight == 40


def test_cancelled_checks_are_skipped_before_start(tmp_path: Path) -> None:
    cancel = threading.Event()
    started = []

    def first(context: CheckContext) -> HealthCheck:
        started.append("first")
        cancel.set()
        return HealthCheck("first", 30, 30, CheckStatus.PASS, "ok")

    battery = run_battery(
        _context(tmp_path),
        _battery(CheckSpec("first", 30, first)),
        timeout_s=1.0,
        cancel_event=cancel,
    )

    assert started == ["first"]
    assert [check.status for check in battery.checks] == [CheckStatus.PASS, CheckStatus.SKIPPED]
    assert battery.checks[1].details == "Cancelled before start"
    assert battery.score == 30
    assert battery.max_score == 100


def test_battery_runs_in_fixed_order(tmp_path: Path) -> None:
    order = []

    def record(name: str, weight: int) -> CheckSpec:
        def run(context: CheckContext) -> HealthCheck:
            order.append(name)
            time.sleep(0.001)
            return HealthCheck(name, weight, 0, CheckStatus.FAIL, "no")

        return CheckSpec(name, weight, run)

    run_battery(_context(tmp_path), (record("a", 50), record("b", 30), record("c", 20)), timeout_s=1.0)

    assert order == ["a", "b", "c"]


def test_format_results_states_every_outcome() -> None:
    text = format_results(
        [
            HealthCheck("os_files", 25, 25, CheckStatus.PASS, "4/4 core OS files present"),
            HealthCheck("boot_files", 15, 0, CheckStatus.SKIPPED, "Cancelled before start"),
        ]
    )

    assert "[PASS] os_files (25/25)" in text
    assert "[SKIPPED] boot_files (0/15): Cancelled before start" in text


def test_tool_timeout_during_firmware_lookup_skips_dependent_checks(tmp_path: Path) -> None:
    def runner(args, timeout_s):
        raise ProbeTimeoutError(f"{args[0]} did not finish within {timeout_s:.0f}s")

    context = CheckContext(
        volume=TargetVolume.from_identifier(str(tmp_path)),
        store=StoreSnapshot(available=False, source="test"),
        firmware_probe=lambda: detect_firmware_partition(runner, 30.0),
        os_files=(),
        boot_files=("EFI/Boot/bootx64.efi",),
    )

    battery = run_battery(context, timeout_s=5.0)

    by_name = {check.name: check for check in battery.checks}
    for name in ("firmware_partition", "boot_files"):
        assert by_name[name].status is CheckStatus.SKIPPED
        assert by_name[name].error_kind is ErrorKind.PROBE_TIMEOUT
        assert by_name[name].issues[0].code == "check.timeout"
        assert "did not finish within 30s" in by_name[name].details
