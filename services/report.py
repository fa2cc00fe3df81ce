"""Text rendering of a diagnostic report."""

from __future__ import annotations

from bcd.conflicts import BootConflict
from bcd.store import StoreSnapshot
from diagnostics.models import BootProbability
from diagnostics.runner import format_results
from evidence.fuser import format_finding
from evidence.models import TIER_LABELS, EvidenceSet
from services.diagnostic_pass import DiagnosticReport
from stages.machine import format_stage_report

RULE = "-" * 60


def format_store(store: StoreSnapshot) -> str:
    lines = ["Boot store", RULE]
    if not store.available:
        lines.append(f"[not read] {store.source}: {store.error or 'unavailable'}")
    else:
        lines.append(f"Source: {store.source} ({len(store.entries)} entries)")
        if store.skipped_lines:
            lines.append(f"Skipped {store.skipped_lines} unrecognised lines")
        for entry in store.entries:
            lines.append(f"    {entry.kind.value:<8} {entry.id or '<no identifier>'}  {entry.label}")
    lines.append(RULE)
    return "\n".join(lines)


def format_probability(probability: BootProbability) -> str:
    lines = ["Boot probability", RULE, f"{probability.score}% ({probability.band.value})"]
    for message in probability.critical_issues:
        lines.append(f"    ! {message}")
    for message in probability.warnings:
        lines.append(f"    - {message}")
    if probability.recommendations:
        lines.append("Recommendations:")
        lines.extend(f"    > {item}" for item in probability.recommendations)
    lines.append(RULE)
    return "\n".join(lines)


def format_conflicts(conflicts: tuple[BootConflict, ...]) -> str:
    lines = ["Boot entry conflicts", RULE]
    if not conflicts:
        lines.append("No conflicts found")
    for conflict in conflicts:
        lines.append(f"[{conflict.severity.value.upper()}] {conflict.kind.value}: {conflict.subject}")
        lines.append(f"    > {conflict.remediation}")
    lines.append(RULE)
    return "\n".join(lines)


def format_evidence(evidence: EvidenceSet) -> str:
    lines = ["Evidence", RULE]
    for scan in evidence.scans:
        lines.append(f"[{scan.state.value}] Tier {int(scan.tier)} {TIER_LABELS[scan.tier]}: {len(scan.items)} items")
        for item in scan.items:
            lines.append(f"    - {item.kind}: {item.source}")
        for note in scan.notes:
            lines.append(f"    ~ {note}")
    lines.append(RULE)
    return "\n".join(lines)


def format_report(report: DiagnosticReport) -> str:
    """Render every section; each check, stage and tier states whether it ran."""

    sections = [
        f"Boot diagnostics for {report.target}",
        format_store(report.store),
        format_results(report.battery.checks),
        format_probability(report.probability),
        format_stage_report(report.stages),
        format_conflicts(report.conflicts),
        format_evidence(report.evidence),
        format_finding(report.finding),
    ]
    return "\n\n".join(sections)
