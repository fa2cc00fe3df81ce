"""Boot health check battery and probability scoring."""

from diagnostics.checks import BATTERY, CheckContext, CheckSpec
from diagnostics.models import (
    BatteryResult,
    BootProbability,
    CheckStatus,
    HealthCheck,
    HealthIssue,
    ProbabilityBand,
)
from diagnostics.runner import format_results, run_battery
from diagnostics.scorer import score_checks

__all__ = [
    "BATTERY",
    "BatteryResult",
    "BootProbability",
    "CheckContext",
    "CheckSpec",
    "CheckStatus",
    "HealthCheck",
    "HealthIssue",
    "ProbabilityBand",
    "format_results",
    "run_battery",
    "score_checks",
]
