"""Boot stage evaluation and failure location."""

from stages.machine import StageEvidence, evaluate_stages, format_stage_report, locate_failure
from stages.models import BootStage, StageRemedy, StageReport, StageStatus

__all__ = [
    "BootStage",
    "StageEvidence",
    "StageRemedy",
    "StageReport",
    "StageStatus",
    "evaluate_stages",
    "format_stage_report",
    "locate_failure",
]
