"""Boot configuration store parsing and consistency checks."""

from bcd.conflicts import BootConflict, ConflictKind, Severity, detect_conflicts
from bcd.models import BootEntry, BootEntryKind, EntryProperties
from bcd.parser import parse_entries, parse_store
from bcd.store import StoreSnapshot, take_snapshot

__all__ = [
    "BootConflict",
    "BootEntry",
    "BootEntryKind",
    "ConflictKind",
    "EntryProperties",
    "Severity",
    "StoreSnapshot",
    "detect_conflicts",
    "parse_entries",
    "parse_store",
    "take_snapshot",
]
