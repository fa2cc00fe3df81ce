"""Tests for the end-to-end diagnostic pass."""

from __future__ import annotations

from pathlib import Path

import pytest

from config.settings import DiagnosticSettings
from core.commands import CommandResult
from core.errors import AccessDeniedError
from diagnostics.models import CheckStatus, ProbabilityBand
from evidence.models import EvidenceTier, TierState
from services.diagnostic_pass import DiagnosticPass
from services.report import format_report
from tests.samples import FakeRunner, touch


def _settings(volume: Path, esp: Path | None = None, store_dump: Path | None = None) -> DiagnosticSettings:
    return DiagnosticSettings(
        target_volume=str(volume),
        store_dump=store_dump,
        firmware_partition_path=esp,
        firmware_partition_filesystem="FAT32",
        check_timeout_s=10.0,
    )


def _pass(settings: DiagnosticSettings, runner: FakeRunner | None = None, **kwargs) -> DiagnosticPass:
    kwargs.setdefault("elevation_check", lambda: None)
    return DiagnosticPass(
        settings,
        runner=runner or FakeRunner(),
        installations_provider=lambda: [],
        live_system=False,
        **kwargs,
    )


def test_healthy_target_is_reported_healthy(healthy_volume: Path, esp: Path, store_dump: Path) -> None:
    report = _pass(_settings(healthy_volume, esp, store_dump)).run()

    assert report.probability.score == 100
    assert report.probability.band is ProbabilityBand.EXCELLENT
    assert report.stages.first_failed is None
    assert report.conflicts == ()
    assert len(report.entries) == 2
    assert report.healthy is True
    assert report.finding.inconclusive is True


def test_passes_over_unchanged_inputs_agree(healthy_volume: Path, esp: Path, store_dump: Path) -> None:
    diagnostic_pass = _pass(_settings(healthy_volume, esp, store_dump))

    first = diagnostic_pass.run()
    second = diagnostic_pass.run()

    assert first.battery.checks == second.battery.checks
    assert first.probability == second.probability
    assert first.conflicts == second.conflicts
    assert first.finding == second.finding


def test_failed_elevation_aborts_before_any_probe(healthy_volume: Path) -> None:
    runner = FakeRunner()

    def deny() -> None:
        raise AccessDeniedError("Administrator rights are required")

    settings = _settings(healthy_volume).with_overrides(require_elevation=True)

    with pytest.raises(AccessDeniedError):
        _pass(settings, runner, elevation_check=deny).run()

    assert runner.calls == []


def test_store_access_denied_aborts_pass(healthy_volume: Path, esp: Path) -> None:
    runner = FakeRunner({"bcdedit": CommandResult(1, "", "The boot configuration data store could not be opened.\nAccess is denied.")})

    with pytest.raises(AccessDeniedError):
        _pass(_settings(healthy_volume, esp), runner).run()

    assert [call[0] for call in runner.calls] == ["bcdedit"]


def test_unreadable_store_degrades_instead_of_aborting(healthy_volume: Path, esp: Path) -> None:
    runner = FakeRunner({"bcdedit": CommandResult(1, "", "The boot configuration data store could not be found.")})

    report = _pass(_settings(healthy_volume, esp), runner).run()

    statuses = {check.name: check.status for check in report.battery.checks}
    assert statuses["boot_entries"] is CheckStatus.ERROR
    assert report.store.available is False


def test_crash_dump_drives_the_finding(healthy_volume: Path, esp: Path, store_dump: Path) -> None:
    touch(healthy_volume / "Windows" / "Minidump" / "101524-1234-01.dmp")

    report = _pass(_settings(healthy_volume, esp, store_dump)).run()

    assert report.evidence.scan(EvidenceTier.CRASH_DUMP).state is TierState.FINDINGS
    assert report.finding.lead.tier is EvidenceTier.CRASH_DUMP
    assert report.finding.summary[0].startswith("Primary finding:")


def test_report_lists_every_check_stage_and_tier(healthy_volume: Path, esp: Path, store_dump: Path) -> None:
    report = _pass(_settings(healthy_volume, esp, store_dump)).run()

    text = format_report(report)

    assert text.startswith(f"Boot diagnostics for {healthy_volume}")
    for name in ("os_files", "firmware_partition", "boot_store", "boot_files", "boot_entries"):
        assert f"] {name} (" in text
    assert "100% (Excellent)" in text
    assert "No conflicts found" in text
    for tier in EvidenceTier:
        assert f"Tier {int(tier)} " in text
    assert "Recommendations:" in text
