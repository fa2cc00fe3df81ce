"""Models for health check results and boot probability."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from core.errors import ErrorKind


class CheckStatus(str, Enum):
    """Status for a health check."""

    PASS = "PASS"
    PARTIAL = "PARTIAL"
    FAIL = "FAIL"
    SKIPPED = "SKIPPED"
    ERROR = "ERROR"


@dataclass(frozen=True)
class HealthIssue:
    """A discrete problem found by a check.

    ``code`` names the failing sub-condition and keys the recommendation table.
    """

    code: str
    message: str
    critical: bool = False


@dataclass(frozen=True)
class HealthCheck:
    """Result for a single weighted health check."""

    name: str
    max_weight: int
    awarded_score: int
    status: CheckStatus
    details: str
    issues: tuple[HealthIssue, ...] = ()
    error_kind: ErrorKind | None = None

    def __post_init__(self) -> None:
        if not 0 <= self.awarded_score <= self.max_weight:
            raise ValueError(
                f"{self.name}: awarded score {self.awarded_score} outside 0..{self.max_weight}"
            )

    @property
    def ran(self) -> bool:
        return self.status not in (CheckStatus.SKIPPED, CheckStatus.ERROR)


@dataclass(frozen=True)
class BatteryResult:
    """Checks in execution order with cumulative scores."""

    checks: tuple[HealthCheck, ...]

    @property
    def score(self) -> int:
        return sum(check.awarded_score for check in self.checks)

    @property
    def max_score(self) -> int:
        return sum(check.max_weight for check in self.checks)


class ProbabilityBand(str, Enum):
    """Qualitative band for a boot probability score."""

    EXCELLENT = "Excellent"
    GOOD = "Good"
    FAIR = "Fair"
    POOR = "Poor"
    CRITICAL = "Critical"

    @classmethod
    def for_score(cls, score: int) -> "ProbabilityBand":
        if score >= 90:
            return cls.EXCELLENT
        if score >= 75:
            return cls.GOOD
        if score >= 50:
            return cls.FAIR
        if score >= 25:
            return cls.POOR
        return cls.CRITICAL


@dataclass(frozen=True)
class BootProbability:
    """Aggregate boot health derived from the battery."""

    score: int
    band: ProbabilityBand
    critical_issues: tuple[str, ...] = ()
    warnings: tuple[str, ...] = ()
    recommendations: tuple[str, ...] = ()
