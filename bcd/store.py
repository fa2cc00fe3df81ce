"""Read-only acquisition of the boot configuration store."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from bcd.models import BootEntry, BootEntryKind
from bcd.parser import parse_store
from core.commands import CommandRunner, run_tool
from core.errors import AccessDeniedError, ErrorKind, ProbeError, ProbeTimeoutError, error_kind_of
from core.logging import logger as LOGGER

ACCESS_DENIED_MARKERS = (
    "access is denied",
    "access denied",
    "0xc0000022",
)

DEFAULT_ENTRY_ID = "{default}"
CURRENT_ENTRY_ID = "{current}"


@dataclass(frozen=True)
class StoreSnapshot:
    """Parsed state of the boot configuration store for one pass."""

    available: bool
    source: str
    entries: tuple[BootEntry, ...] = ()
    skipped_lines: int = 0
    raw_text: str = ""
    error: str | None = None
    error_kind: ErrorKind | None = None
    live: bool = False

    @property
    def parse_incomplete(self) -> bool:
        """True when text was returned but no entry could be recognised."""

        return self.available and bool(self.raw_text.strip()) and not self.entries

    def entries_of(self, kind: BootEntryKind) -> list[BootEntry]:
        return [entry for entry in self.entries if entry.kind is kind]

    @property
    def manager(self) -> BootEntry | None:
        managers = self.entries_of(BootEntryKind.MANAGER)
        return managers[0] if managers else None

    @property
    def has_default_entry(self) -> bool:
        """True when the manager names a default that resolves to a loader."""

        loaders = self.entries_of(BootEntryKind.LOADER)
        if any(entry.id in (DEFAULT_ENTRY_ID, CURRENT_ENTRY_ID) for entry in loaders):
            return True
        manager = self.manager
        if manager is None:
            return False
        default_id = manager.properties.get_text("default")
        return default_id is not None and any(entry.id == default_id for entry in loaders)


def _is_access_denied(text: str) -> bool:
    lowered = text.lower()
    return any(marker in lowered for marker in ACCESS_DENIED_MARKERS)


def enumerate_store(
    store_path: Path | None = None,
    *,
    runner: CommandRunner = run_tool,
    timeout_s: float = 30.0,
) -> str:
    """Return verbose enumeration text for the active or an offline store.

    Raises:
        AccessDeniedError: The enumeration requires elevation.
        ProbeError: The store could not be opened.
    """

    args = ["bcdedit"]
    if store_path is not None:
        args += ["/store", str(store_path)]
    args += ["/enum", "all", "/v"]
    result = runner(args, timeout_s)
    if _is_access_denied(result.output):
        raise AccessDeniedError("bcdedit reported access denied; run elevated")
    if result.returncode != 0:
        message = result.output.strip() or f"bcdedit exited with status {result.returncode}"
        raise ProbeError(message)
    return result.stdout


def load_store_dump(path: Path) -> str:
    """Read a pre-captured enumeration dump (UTF-16 or UTF-8)."""

    data = path.read_bytes()
    if data.startswith((b"\xff\xfe", b"\xfe\xff")):
        return data.decode("utf-16", errors="replace")
    return data.decode("utf-8-sig", errors="replace")


def snapshot_from_text(text: str, source: str, *, live: bool = False) -> StoreSnapshot:
    """Build a snapshot from already-captured enumeration text."""

    result = parse_store(text)
    return StoreSnapshot(
        available=True,
        source=source,
        entries=result.entries,
        skipped_lines=result.skipped_lines,
        raw_text=text,
        live=live,
    )


def take_snapshot(
    *,
    dump_path: Path | None = None,
    store_path: Path | None = None,
    runner: CommandRunner = run_tool,
    timeout_s: float = 30.0,
) -> StoreSnapshot:
    """Capture and parse the store once for the whole pass.

    ``AccessDeniedError`` propagates; every other failure yields an
    unavailable snapshot that checks and stages report on.
    """

    if dump_path is not None:
        source = str(dump_path)
        try:
            text = load_store_dump(dump_path)
        except OSError as exc:
            LOGGER.warning("Unable to read boot store dump %s: %s", dump_path, exc)
            return StoreSnapshot(available=False, source=source, error=str(exc), error_kind=error_kind_of(exc))
        return snapshot_from_text(text, source)

    source = f"bcdedit /store {store_path}" if store_path is not None else "bcdedit"
    try:
        text = enumerate_store(store_path, runner=runner, timeout_s=timeout_s)
    except (ProbeError, ProbeTimeoutError) as exc:
        LOGGER.warning("Boot store enumeration failed: %s", exc)
        return StoreSnapshot(available=False, source=source, error=str(exc), error_kind=exc.kind)
    return snapshot_from_text(text, source, live=True)
