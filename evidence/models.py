"""Models for tiered root-cause evidence."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum, IntEnum
from types import MappingProxyType


class EvidenceTier(IntEnum):
    """Fixed priority buckets; lower numbers take precedence."""

    CRASH_DUMP = 1
    BOOT_LOG = 2
    EVENT_LOG = 3
    CONFIGURATION = 4
    HARDWARE = 5


TIER_LABELS: Mapping[EvidenceTier, str] = MappingProxyType(
    {
        EvidenceTier.CRASH_DUMP: "crash dumps",
        EvidenceTier.BOOT_LOG: "boot pipeline logs",
        EvidenceTier.EVENT_LOG: "event logs and error reports",
        EvidenceTier.CONFIGURATION: "boot store and registry state",
        EvidenceTier.HARDWARE: "hardware and image context",
    }
)


class TierState(str, Enum):
    NOT_CHECKED = "not checked"
    CLEAN = "checked, clean"
    FINDINGS = "checked, items found"


def _frozen(attributes: Mapping[str, str] | None) -> Mapping[str, str]:
    return MappingProxyType(dict(attributes or {}))


@dataclass(frozen=True)
class EvidenceItem:
    """One artifact or signal discovered for root-cause fusion."""

    tier: EvidenceTier
    kind: str
    source: str
    size_or_count: int = 0
    timestamp: datetime | None = None
    attributes: Mapping[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "tier", EvidenceTier(self.tier))
        object.__setattr__(self, "attributes", _frozen(self.attributes))

    def __hash__(self) -> int:
        return hash((self.tier, self.kind, self.source, self.size_or_count, self.timestamp))


@dataclass(frozen=True)
class TierScan:
    """Discovery outcome for one tier."""

    tier: EvidenceTier
    state: TierState
    items: tuple[EvidenceItem, ...] = ()
    notes: tuple[str, ...] = ()

    def of_kind(self, kind: str) -> list[EvidenceItem]:
        return [item for item in self.items if item.kind == kind]


@dataclass(frozen=True)
class EvidenceSet:
    """Scans for all five tiers."""

    scans: tuple[TierScan, ...]

    def scan(self, tier: EvidenceTier) -> TierScan:
        for scan in self.scans:
            if scan.tier == tier:
                return scan
        return TierScan(tier=tier, state=TierState.NOT_CHECKED, notes=("No collector ran",))

    @property
    def items(self) -> tuple[EvidenceItem, ...]:
        return tuple(item for scan in self.scans for item in scan.items)


@dataclass(frozen=True)
class FindingStatement:
    """One sentence of the root-cause narrative."""

    tier: EvidenceTier | None
    rule: str
    text: str


@dataclass(frozen=True)
class RootCauseFinding:
    """Fused narrative with ranked statements and ordered recommendations."""

    statements: tuple[FindingStatement, ...]
    recommendations: tuple[str, ...]
    tier_states: tuple[tuple[EvidenceTier, TierState], ...] = ()
    inconclusive: bool = False

    @property
    def lead(self) -> FindingStatement | None:
        return self.statements[0] if self.statements else None

    @property
    def summary(self) -> tuple[str, ...]:
        """Statements as prose lines; the first is the primary finding."""

        lines = []
        for index, statement in enumerate(self.statements):
            prefix = "Primary finding" if index == 0 else "Corroborating"
            if self.inconclusive:
                prefix = "Inconclusive"
            lines.append(f"{prefix}: {statement.text}")
        return tuple(lines)
