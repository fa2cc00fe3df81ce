"""Tiered evidence discovery and root-cause fusion."""

from evidence.discovery import DiscoveryContext, discover_evidence
from evidence.fuser import format_finding, fuse_evidence
from evidence.models import (
    EvidenceItem,
    EvidenceSet,
    EvidenceTier,
    FindingStatement,
    RootCauseFinding,
    TierScan,
    TierState,
)
from evidence.rules import EVIDENCE_RULES, EvidenceRule, RuleMatch

__all__ = [
    "EVIDENCE_RULES",
    "DiscoveryContext",
    "EvidenceItem",
    "EvidenceRule",
    "EvidenceSet",
    "EvidenceTier",
    "FindingStatement",
    "RootCauseFinding",
    "RuleMatch",
    "TierScan",
    "TierState",
    "discover_evidence",
    "format_finding",
    "fuse_evidence",
]
