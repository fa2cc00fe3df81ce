"""Tests for duplicate and missing boot entry detection."""

from __future__ import annotations

from pathlib import Path

from bcd.conflicts import ConflictKind, Severity, detect_conflicts, find_duplicate_descriptions
from bcd.models import BootEntry, BootEntryKind
from bcd.parser import parse_entries
from target.volume import OsInstallation
from tests.samples import MANAGER_BLOCK, loader_block


def test_two_loaders_with_same_description_form_one_group() -> None:
    entries = parse_entries(loader_block("{a}", "Windows") + "\n" + loader_block("{b}", "Windows"))

    conflicts = detect_conflicts(entries)

    assert len(conflicts) == 1
    conflict = conflicts[0]
    assert conflict.kind is ConflictKind.DUPLICATE_DESCRIPTION
    assert conflict.severity is Severity.MEDIUM
    assert [entry.id for entry in conflict.entries] == ["{a}", "{b}"]
    assert "bcdedit /delete" in conflict.remediation


def test_descriptions_are_trimmed_before_grouping() -> None:
    entries = [
        BootEntry(kind=BootEntryKind.LOADER, id="{a}", description="Windows 11 "),
        BootEntry(kind=BootEntryKind.LOADER, id="{b}", description=" Windows 11"),
        BootEntry(kind=BootEntryKind.LOADER, id="{c}", description="Windows 10"),
    ]

    groups = find_duplicate_descriptions(entries)

    assert len(groups) == 1
    assert groups[0].subject == "Windows 11"
    assert len(groups[0].entries) == 2


def test_unique_descriptions_yield_no_groups() -> None:
    entries = parse_entries(
        "\n".join(loader_block(f"{{{index}}}", f"Windows {index}") for index in range(5))
    )

    assert find_duplicate_descriptions(entries) == []


def test_manager_label_empty_and_non_loader_entries_are_ignored() -> None:
    entries = [
        BootEntry(kind=BootEntryKind.LOADER, id="{a}", description="Windows Boot Manager"),
        BootEntry(kind=BootEntryKind.LOADER, id="{b}", description="Windows Boot Manager"),
        BootEntry(kind=BootEntryKind.LOADER, id="{c}", description="   "),
        BootEntry(kind=BootEntryKind.LOADER, id="{d}", description=None),
        BootEntry(kind=BootEntryKind.LEGACY, id="{e}", description="Legacy"),
        BootEntry(kind=BootEntryKind.LEGACY, id="{f}", description="Legacy"),
    ]

    assert find_duplicate_descriptions(entries) == []


def test_installation_without_entry_is_high_severity_conflict() -> None:
    entries = parse_entries(MANAGER_BLOCK + "\n" + loader_block("{default}", "Windows 10", "partition=C:"))
    installations = [
        OsInstallation(volume="C:", windows_dir=Path("C:/Windows")),
        OsInstallation(volume="D:", windows_dir=Path("D:/Windows")),
    ]

    conflicts = detect_conflicts(entries, installations)

    assert [conflict.kind for conflict in conflicts] == [ConflictKind.MISSING_ENTRY]
    assert conflicts[0].subject == "D:"
    assert conflicts[0].severity is Severity.HIGH
    assert "bcdboot D:\\Windows" in conflicts[0].remediation


def test_volume_match_is_case_insensitive() -> None:
    entries = parse_entries(loader_block("{default}", "Windows 10", "partition=c:"))

    conflicts = detect_conflicts(entries, [OsInstallation(volume="C:", windows_dir=Path("C:/Windows"))])

    assert conflicts == []
