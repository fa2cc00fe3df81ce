"""Parser for verbose boot configuration store enumerations.

The enumeration text is classified line by line first, then folded into
``BootEntry`` records. Only the classifier looks at raw text; everything
downstream works on typed entries.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
import re

from bcd.models import BootEntry, BootEntryKind, EntryProperties, PropertyValue
from core.logging import logger as LOGGER

HEADER_PATTERNS = (
    (re.compile(r"^windows boot manager$", re.IGNORECASE), BootEntryKind.MANAGER),
    (re.compile(r"^windows boot loader$", re.IGNORECASE), BootEntryKind.LOADER),
    (re.compile(r"^windows legacy os loader$", re.IGNORECASE), BootEntryKind.LEGACY),
)
SEPARATOR_RE = re.compile(r"^-{3,}$")
KEY_RE = re.compile(r"^[A-Za-z][A-Za-z0-9_.\-]*$")

IDENTIFIER_KEY = "identifier"
DESCRIPTION_KEY = "description"


class LineKind(str, Enum):
    """Classification of one enumeration line."""

    BLANK = "blank"
    SEPARATOR = "separator"
    HEADER = "header"
    SECTION = "section"
    CONTINUATION = "continuation"
    BODY = "body"
    MALFORMED = "malformed"


@dataclass(frozen=True)
class LineToken:
    """A classified line of enumeration output."""

    kind: LineKind
    text: str
    entry_kind: BootEntryKind | None = None
    key: str | None = None
    value: PropertyValue | None = None


@dataclass(frozen=True)
class ParseResult:
    """Entries parsed from one enumeration plus skipped-line accounting."""

    entries: tuple[BootEntry, ...]
    skipped_lines: int = 0


def _header_kind(stripped: str) -> BootEntryKind | None:
    for pattern, kind in HEADER_PATTERNS:
        if pattern.match(stripped):
            return kind
    return None


def _classify_body(line: str) -> LineToken:
    parts = line.split(None, 1)
    key = parts[0]
    if not KEY_RE.match(key):
        return LineToken(kind=LineKind.MALFORMED, text=line)
    if len(parts) == 1:
        return LineToken(kind=LineKind.BODY, text=line, key=key, value=True)
    return LineToken(kind=LineKind.BODY, text=line, key=key, value=parts[1].strip())


def classify_lines(text: str) -> list[LineToken]:
    """Classify every line of the enumeration text."""

    lines = text.splitlines()
    tokens: list[LineToken] = []
    for index, raw in enumerate(lines):
        line = raw.rstrip().lstrip("\ufeff")
        stripped = line.strip()
        if not stripped:
            tokens.append(LineToken(kind=LineKind.BLANK, text=line))
            continue
        if SEPARATOR_RE.match(stripped):
            tokens.append(LineToken(kind=LineKind.SEPARATOR, text=line))
            continue
        entry_kind = _header_kind(stripped)
        if entry_kind is not None:
            tokens.append(LineToken(kind=LineKind.HEADER, text=line, entry_kind=entry_kind))
            continue
        next_line = lines[index + 1].strip() if index + 1 < len(lines) else ""
        if not line[0].isspace() and SEPARATOR_RE.match(next_line):
            tokens.append(LineToken(kind=LineKind.SECTION, text=line))
            continue
        if line[0].isspace():
            tokens.append(LineToken(kind=LineKind.CONTINUATION, text=line, value=stripped))
            continue
        tokens.append(_classify_body(line))
    return tokens


class _EntryBuilder:
    def __init__(self, kind: BootEntryKind) -> None:
        self.kind = kind
        self.id: str | None = None
        self.description: str | None = None
        self.pairs: dict[str, PropertyValue] = {}
        self.last_key: str | None = None

    def add(self, key: str, value: PropertyValue) -> None:
        self.last_key = key
        if key == IDENTIFIER_KEY:
            if self.id is None and isinstance(value, str):
                self.id = value
            return
        if key == DESCRIPTION_KEY:
            if self.description is None and isinstance(value, str):
                self.description = value
            return
        if key not in self.pairs:
            self.pairs[key] = value

    def extend(self, value: str) -> bool:
        key = self.last_key
        if key is None or key not in self.pairs:
            return False
        current = self.pairs[key]
        self.pairs[key] = value if current is True else f"{current}\n{value}"
        return True

    def build(self) -> BootEntry:
        return BootEntry(
            kind=self.kind,
            id=self.id,
            description=self.description,
            properties=EntryProperties(self.pairs.items()),
        )


def parse_store(text: str) -> ParseResult:
    """Parse enumeration text into entries. Never raises."""

    entries: list[BootEntry] = []
    skipped = 0
    current: _EntryBuilder | None = None

    for token in classify_lines(text or ""):
        if token.kind is LineKind.HEADER:
            if current is not None:
                entries.append(current.build())
            current = _EntryBuilder(token.entry_kind)
            continue
        if token.kind is LineKind.SECTION:
            if current is not None:
                entries.append(current.build())
            current = None
            continue
        if token.kind in (LineKind.BLANK, LineKind.SEPARATOR) or current is None:
            continue
        if token.kind is LineKind.MALFORMED:
            skipped += 1
        elif token.kind is LineKind.CONTINUATION:
            if not current.extend(str(token.value)):
                skipped += 1
        else:
            current.add(str(token.key), token.value)

    if current is not None:
        entries.append(current.build())

    seen_ids: set[str] = set()
    for entry in entries:
        if entry.id is None:
            continue
        if entry.id in seen_ids:
            LOGGER.warning("Boot store lists identifier %s more than once", entry.id)
        seen_ids.add(entry.id)

    if skipped:
        LOGGER.debug("Skipped %d malformed boot store lines", skipped)
    return ParseResult(entries=tuple(entries), skipped_lines=skipped)


def parse_entries(text: str) -> list[BootEntry]:
    """Return the ordered boot entries found in ``text``."""

    return list(parse_store(text).entries)
