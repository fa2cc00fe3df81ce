"""Duplicate and missing boot entry detection."""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from enum import Enum

from bcd.models import BootEntry, BootEntryKind
from target.volume import OsInstallation

MANAGER_LABEL = "Windows Boot Manager"

DUPLICATE_REMEDIATION = (
    "Multiple boot entries are named '{subject}'. Review them with "
    "'bcdedit /enum osloader' and remove stale ones with 'bcdedit /delete <identifier>' "
    "or rename with 'bcdedit /set <identifier> description \"<new name>\"'."
)
MISSING_ENTRY_REMEDIATION = (
    "No boot entry points at the installation on {subject}. Add one with "
    "'bcdboot {subject}\\Windows' and verify it with 'bcdedit /enum osloader'."
)


class Severity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class ConflictKind(str, Enum):
    DUPLICATE_DESCRIPTION = "duplicate_description"
    MISSING_ENTRY = "missing_entry"


@dataclass(frozen=True)
class BootConflict:
    """A boot store inconsistency with its fixed remediation text."""

    kind: ConflictKind
    severity: Severity
    subject: str
    entries: tuple[BootEntry, ...]
    remediation: str


def _normalized_description(entry: BootEntry) -> str | None:
    description = (entry.description or "").strip()
    if not description or description == MANAGER_LABEL:
        return None
    return description


def find_duplicate_descriptions(entries: Iterable[BootEntry]) -> list[BootConflict]:
    """Group loader entries sharing a description; groups keep source order."""

    groups: dict[str, list[BootEntry]] = {}
    for entry in entries:
        if entry.kind is not BootEntryKind.LOADER:
            continue
        description = _normalized_description(entry)
        if description is None:
            continue
        groups.setdefault(description, []).append(entry)

    return [
        BootConflict(
            kind=ConflictKind.DUPLICATE_DESCRIPTION,
            severity=Severity.MEDIUM,
            subject=description,
            entries=tuple(group),
            remediation=DUPLICATE_REMEDIATION.format(subject=description),
        )
        for description, group in groups.items()
        if len(group) > 1
    ]


def _references_volume(entry: BootEntry, volume: str) -> bool:
    needle = volume.lower()
    return any(
        needle in value.lower()
        for value in (entry.device, entry.os_device, entry.path)
        if value
    )


def find_missing_entries(
    installations: Iterable[OsInstallation],
    entries: Sequence[BootEntry],
) -> list[BootConflict]:
    """Return installations that no boot entry references."""

    conflicts = []
    for installation in installations:
        if any(_references_volume(entry, installation.volume) for entry in entries):
            continue
        conflicts.append(
            BootConflict(
                kind=ConflictKind.MISSING_ENTRY,
                severity=Severity.HIGH,
                subject=installation.volume,
                entries=(),
                remediation=MISSING_ENTRY_REMEDIATION.format(subject=installation.volume),
            )
        )
    return conflicts


def detect_conflicts(
    entries: Sequence[BootEntry],
    installations: Iterable[OsInstallation] = (),
) -> list[BootConflict]:
    """Return duplicate-name conflicts followed by missing-entry conflicts."""

    return find_duplicate_descriptions(entries) + find_missing_entries(installations, entries)
