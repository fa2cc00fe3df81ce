"""Tokenizers for boot pipeline log files."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from pathlib import Path
import re

DRIVER_FAILURE_RE = re.compile(r"did not load driver\s+(?P<driver>\S.*?)\s*$", re.IGNORECASE)
SRT_ROOT_CAUSE_RE = re.compile(r"root cause found:\s*(?P<cause>.*)$", re.IGNORECASE)
SRT_DETAIL_RE = re.compile(r"^\s*-{3,}\s*$")


@dataclass(frozen=True)
class DriverLoadSummary:
    """Driver load outcome extracted from the boot log."""

    failed_drivers: tuple[str, ...]
    critical_failures: tuple[str, ...]


def read_log_text(path: Path) -> str:
    """Read a log that may be UTF-16 (boot log) or UTF-8."""

    data = path.read_bytes()
    if data.startswith((b"\xff\xfe", b"\xfe\xff")):
        return data.decode("utf-16", errors="replace")
    if len(data) > 1 and data[1:2] == b"\x00":
        return data.decode("utf-16-le", errors="replace")
    return data.decode("utf-8-sig", errors="replace")


def parse_driver_failures(text: str) -> list[str]:
    """Return driver paths from "did not load driver" lines, deduplicated in order."""

    drivers: list[str] = []
    for line in text.splitlines():
        match = DRIVER_FAILURE_RE.search(line.replace("\x00", ""))
        if match:
            driver = match.group("driver").strip()
            if driver not in drivers:
                drivers.append(driver)
    return drivers


def driver_name(driver_path: str) -> str:
    """Return the file name part of a driver path."""

    return re.split(r"[\\/]", driver_path)[-1]


def is_critical_driver(driver_path: str, fragments: Iterable[str]) -> bool:
    name = driver_name(driver_path).lower()
    return any(fragment.lower() in name for fragment in fragments)


def summarize_driver_load(text: str, fragments: Iterable[str]) -> DriverLoadSummary:
    """Split boot log failures into all failures and critical boot-start ones."""

    fragments = tuple(fragments)
    failed = parse_driver_failures(text)
    critical = [driver for driver in failed if is_critical_driver(driver, fragments)]
    return DriverLoadSummary(failed_drivers=tuple(failed), critical_failures=tuple(critical))


def parse_srt_root_cause(text: str) -> str | None:
    """Return the last root cause reported in a Startup Repair trail log."""

    causes: list[str] = []
    lines = text.splitlines()
    for index, line in enumerate(lines):
        match = SRT_ROOT_CAUSE_RE.search(line)
        if not match:
            continue
        cause = match.group("cause").strip()
        if not cause:
            following = lines[index + 1 : index + 4]
            parts = [item.strip() for item in following if item.strip() and not SRT_DETAIL_RE.match(item)]
            cause = parts[0] if parts else ""
        if cause and not cause.lower().startswith("no root cause"):
            causes.append(cause)
    return causes[-1] if causes else None
