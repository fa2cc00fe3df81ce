"""Read-only queries for registry service state and hardware context."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
import json
import re

from core.commands import CommandRunner, run_powershell
from core.errors import AccessDeniedError, ProbeError

SERVICES_KEY = r"HKLM\SYSTEM\CurrentControlSet\Services"
START_VALUE_RE = re.compile(r"^\s*Start\s+REG_DWORD\s+0x(?P<value>[0-9a-fA-F]+)", re.MULTILINE)
SERVICE_DISABLED = 4

START_TYPE_NAMES = {
    0: "boot",
    1: "system",
    2: "automatic",
    3: "manual",
    4: "disabled",
}

CONTROLLER_QUERY = r"""
Get-CimInstance Win32_SCSIController -ErrorAction SilentlyContinue |
  Select-Object Name, DriverName, Status |
  ConvertTo-Json -Depth 2
"""

LOCK_STATUS_RE = re.compile(r"^\s*Lock Status:\s*(?P<value>.+?)\s*$", re.MULTILINE | re.IGNORECASE)
PROTECTION_RE = re.compile(r"^\s*Protection Status:\s*(?P<value>.+?)\s*$", re.MULTILINE | re.IGNORECASE)
CONVERSION_RE = re.compile(r"^\s*Conversion Status:\s*(?P<value>.+?)\s*$", re.MULTILINE | re.IGNORECASE)


@dataclass(frozen=True)
class StorageController:
    name: str
    driver: str | None = None
    status: str | None = None


@dataclass(frozen=True)
class EncryptionStatus:
    """BitLocker state of the target volume."""

    conversion: str | None
    protection: str | None
    lock: str | None

    @property
    def locked(self) -> bool:
        return (self.lock or "").lower() == "locked"


def parse_start_value(text: str) -> int | None:
    """Return the ``Start`` DWORD from ``reg query`` output."""

    match = START_VALUE_RE.search(text)
    if not match:
        return None
    return int(match.group("value"), 16)


def query_service_start_types(
    services: Iterable[str],
    runner: CommandRunner,
    timeout_s: float,
) -> dict[str, int]:
    """Return start types of installed services from the live registry.

    Services that are not installed are omitted.
    """

    start_types: dict[str, int] = {}
    for service in services:
        result = runner(["reg", "query", f"{SERVICES_KEY}\\{service}", "/v", "Start"], timeout_s)
        if "access is denied" in result.output.lower():
            raise AccessDeniedError(f"Registry access denied for service {service}")
        if result.returncode != 0:
            continue
        value = parse_start_value(result.stdout)
        if value is not None:
            start_types[service] = value
    return start_types


def parse_controllers(raw: str) -> list[StorageController]:
    raw = raw.strip()
    if not raw:
        return []
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise ProbeError(f"Unreadable controller query output: {exc}") from exc
    if data is None:
        return []
    if isinstance(data, dict):
        data = [data]
    if not isinstance(data, list):
        raise ProbeError(f"Unexpected controller query output: {raw[:80]}")
    controllers = []
    for item in data:
        if isinstance(item, dict) and item.get("Name"):
            controllers.append(
                StorageController(
                    name=str(item["Name"]),
                    driver=str(item["DriverName"]) if item.get("DriverName") else None,
                    status=str(item["Status"]) if item.get("Status") else None,
                )
            )
    return controllers


def query_storage_controllers(runner: CommandRunner, timeout_s: float) -> list[StorageController]:
    return parse_controllers(run_powershell(CONTROLLER_QUERY, runner, timeout_s))


def parse_encryption_status(text: str) -> EncryptionStatus:
    def _value(pattern: re.Pattern[str]) -> str | None:
        match = pattern.search(text)
        return match.group("value") if match else None

    return EncryptionStatus(
        conversion=_value(CONVERSION_RE),
        protection=_value(PROTECTION_RE),
        lock=_value(LOCK_STATUS_RE),
    )


def query_encryption_status(volume: str, runner: CommandRunner, timeout_s: float) -> EncryptionStatus:
    """Query BitLocker status; this call can hang in recovery environments."""

    result = runner(["manage-bde", "-status", volume], timeout_s)
    if "access is denied" in result.output.lower():
        raise AccessDeniedError("manage-bde requires elevation")
    if result.returncode != 0:
        raise ProbeError(result.output.strip() or f"manage-bde exited with status {result.returncode}")
    return parse_encryption_status(result.stdout)
