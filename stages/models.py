"""Models for the boot stage locator."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class StageStatus(str, Enum):
    UNKNOWN = "UNKNOWN"
    PASSED = "PASSED"
    FAILED = "FAILED"


@dataclass(frozen=True)
class BootStage:
    """One canonical step of Windows startup and its evidence-derived status."""

    name: str
    order: int
    status: StageStatus
    details: str


@dataclass(frozen=True)
class StageRemedy:
    """Static root cause and remediation for a failed stage."""

    root_cause: str
    commands: tuple[str, ...]
    error_codes: tuple[tuple[str, str], ...]

    def formatted_commands(self, target: str, esp: str) -> tuple[str, ...]:
        return tuple(command.format(target=target, esp=esp) for command in self.commands)


@dataclass(frozen=True)
class StageReport:
    """Stages in order plus the derived failure locator."""

    stages: tuple[BootStage, ...]
    last_passed: BootStage | None
    first_failed: BootStage | None
    remedy: StageRemedy | None = None
    commands: tuple[str, ...] = ()

    @property
    def all_passed(self) -> bool:
        """True when no stage failed; unknown stages do not count as failures."""

        return self.first_failed is None
