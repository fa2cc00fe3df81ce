"""Models for boot configuration store entries."""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass, field
from enum import Enum

PropertyValue = str | bool


class BootEntryKind(str, Enum):
    """Entry type fixed by the header line that opened the entry."""

    MANAGER = "manager"
    LOADER = "loader"
    LEGACY = "legacy"


class EntryProperties(Mapping[str, PropertyValue]):
    """Immutable ordered mapping of entry properties.

    Iteration follows source order. A bare key is stored as ``True``.
    """

    __slots__ = ("_items",)

    def __init__(self, pairs: Iterable[tuple[str, PropertyValue]] = ()) -> None:
        items: dict[str, PropertyValue] = {}
        for key, value in pairs:
            if key not in items:
                items[key] = value
        self._items = items

    def __getitem__(self, key: str) -> PropertyValue:
        return self._items[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._items)

    def __len__(self) -> int:
        return len(self._items)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, EntryProperties):
            return list(self._items.items()) == list(other._items.items())
        return NotImplemented

    def __hash__(self) -> int:
        return hash(tuple(self._items.items()))

    def __repr__(self) -> str:
        return f"EntryProperties({list(self._items.items())!r})"

    def get_text(self, key: str) -> str | None:
        """Return a string value, or ``None`` for missing keys and flags."""

        value = self._items.get(key)
        return value if isinstance(value, str) else None

    def get_list(self, key: str) -> list[str]:
        """Return a multi-line value split into its parts."""

        value = self.get_text(key)
        if value is None:
            return []
        return [part for part in value.splitlines() if part]


@dataclass(frozen=True)
class BootEntry:
    """One record from the boot configuration store."""

    kind: BootEntryKind
    id: str | None = None
    description: str | None = None
    properties: EntryProperties = field(default_factory=EntryProperties)

    @property
    def device(self) -> str | None:
        return self.properties.get_text("device")

    @property
    def os_device(self) -> str | None:
        return self.properties.get_text("osdevice")

    @property
    def path(self) -> str | None:
        return self.properties.get_text("path")

    @property
    def label(self) -> str:
        """Return a short label for reports."""

        return self.description or self.id or self.kind.value
