"""Fuse tiered evidence into one ranked root-cause narrative."""

from __future__ import annotations

from collections.abc import Iterable, Sequence

from core.logging import logger as LOGGER
from evidence.models import (
    TIER_LABELS,
    EvidenceSet,
    EvidenceTier,
    FindingStatement,
    RootCauseFinding,
    TierScan,
    TierState,
)
from evidence.rules import EVIDENCE_RULES, STORAGE_MODE_RECOMMENDATION, WINDBG_RECOMMENDATION, EvidenceRule

INCONCLUSIVE_STATEMENT = (
    "Evidence is inconclusive: no crash dump, log, configuration or hardware signal "
    "explains the failure. Most such cases trace to a hardware or firmware configuration "
    "change, typically the storage controller mode."
)
INCONCLUSIVE_RECOMMENDATIONS = (
    STORAGE_MODE_RECOMMENDATION,
    "Undo recent firmware, disk or hardware changes and retry the boot",
    "bcdedit /set {{default}} bootlog yes, then reboot to capture ntbtlog.txt",
)


def _dedupe(values: Iterable[str]) -> tuple[str, ...]:
    return tuple(dict.fromkeys(values))


def _crash_artifact_statement(scan: TierScan) -> FindingStatement:
    kinds = sorted({item.kind for item in scan.items})
    return FindingStatement(
        tier=scan.tier,
        rule="crash_artifact",
        text=f"{len(scan.items)} crash artifact(s) found ({', '.join(kinds)}): {scan.items[0].source}",
    )


def fuse_evidence(
    evidence: EvidenceSet,
    *,
    rules: Sequence[EvidenceRule] = EVIDENCE_RULES,
    target: str = "C:",
    esp: str = "S:",
) -> RootCauseFinding:
    """Visit tiers from highest to lowest priority and build the narrative.

    Tier order is a hard precedence: any crash artifact leads, and lower
    tiers only add corroborating statements. When no rule matches the
    finding is marked inconclusive with an explicit statement.
    """

    statements: list[FindingStatement] = []
    recommendations: list[str] = []
    tier_states = []

    for tier in sorted(EvidenceTier):
        scan = evidence.scan(tier)
        tier_states.append((tier, scan.state))
        if scan.state is not TierState.FINDINGS:
            continue
        tier_statements = []
        for rule in rules:
            if rule.tier is not tier:
                continue
            match = rule.evaluate(scan)
            if match is None:
                continue
            tier_statements.append(FindingStatement(tier=tier, rule=rule.name, text=match.statement))
            recommendations.extend(match.recommendations)
        if tier is EvidenceTier.CRASH_DUMP and not tier_statements:
            tier_statements.append(_crash_artifact_statement(scan))
            recommendations.append(WINDBG_RECOMMENDATION)
        statements.extend(tier_statements)

    inconclusive = not statements
    if inconclusive:
        unchecked = [TIER_LABELS[tier] for tier, state in tier_states if state is TierState.NOT_CHECKED]
        text = INCONCLUSIVE_STATEMENT
        if unchecked:
            text += f" Not checked: {', '.join(unchecked)}."
        statements.append(FindingStatement(tier=None, rule="inconclusive", text=text))
        recommendations.extend(INCONCLUSIVE_RECOMMENDATIONS)

    LOGGER.debug("Fused %d statements from %d rules", len(statements), len(rules))
    return RootCauseFinding(
        statements=tuple(statements),
        recommendations=_dedupe(item.format(target=target, esp=esp) for item in recommendations),
        tier_states=tuple(tier_states),
        inconclusive=inconclusive,
    )


def format_finding(finding: RootCauseFinding) -> str:
    """Return a human-friendly root-cause narrative."""

    lines = ["Root cause", "-" * 60]
    for tier, state in finding.tier_states:
        lines.append(f"[{state.value}] Tier {int(tier)}: {TIER_LABELS[tier]}")
    lines.append("")
    lines.extend(finding.summary)
    if finding.recommendations:
        lines.append("Recommendations:")
        for index, recommendation in enumerate(finding.recommendations, start=1):
            lines.append(f"    {index}. {recommendation}")
    lines.append("-" * 60)
    return "\n".join(lines)
