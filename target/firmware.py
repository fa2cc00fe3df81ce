"""Firmware (EFI system) partition detection."""

from __future__ import annotations

from dataclasses import dataclass
import json
from pathlib import Path
import sys

from core.commands import CommandRunner, run_powershell, run_tool
from core.errors import ProbeError
from core.logging import logger as LOGGER
from target.volume import resolve_relative

ESP_GPT_TYPE = "{c12a7328-f81f-11d2-ba4b-00a0c93ec93b}"
FAT_FILESYSTEMS = frozenset({"FAT", "FAT12", "FAT16", "FAT32", "VFAT", "MSDOS"})
BOOT_FOLDER = "EFI/Microsoft/Boot"
DEFAULT_ESP_LABEL = "S:"

ESP_QUERY = rf"""
$esp = Get-Partition -ErrorAction SilentlyContinue |
  Where-Object {{ $_.GptType -eq '{ESP_GPT_TYPE}' }} |
  Select-Object -First 1
if ($esp) {{
  $vol = $esp | Get-Volume -ErrorAction SilentlyContinue
  [PsCustomObject]@{{
    DiskNumber = $esp.DiskNumber
    PartitionNumber = $esp.PartitionNumber
    FileSystem = $vol.FileSystem
    AccessPaths = @($esp.AccessPaths)
  }} | ConvertTo-Json -Depth 3
}}
"""


@dataclass(frozen=True)
class FirmwarePartition:
    """State of the firmware system partition."""

    present: bool
    source: str
    filesystem: str | None = None
    mount_path: Path | None = None

    @property
    def is_fat(self) -> bool:
        return (self.filesystem or "").upper() in FAT_FILESYSTEMS

    @property
    def boot_folder(self) -> Path | None:
        if self.mount_path is None:
            return None
        return resolve_relative(self.mount_path, BOOT_FOLDER)

    def has_boot_structure(self) -> bool:
        folder = self.boot_folder
        return folder is not None and folder.is_dir()

    def path(self, relative: str) -> Path | None:
        if self.mount_path is None:
            return None
        return resolve_relative(self.mount_path, relative)

    @property
    def label(self) -> str:
        """Drive label used in remediation commands."""

        if self.mount_path is not None:
            text = str(self.mount_path)
            if len(text) >= 2 and text[1] == ":":
                return text[:2].upper()
        return DEFAULT_ESP_LABEL


def configured_partition(path: Path, filesystem: str | None) -> FirmwarePartition:
    """Describe a partition the caller mounted and named explicitly."""

    present = path.is_dir()
    return FirmwarePartition(
        present=present,
        source="configured",
        filesystem=filesystem if present else None,
        mount_path=path if present else None,
    )


def _first_access_path(paths: object) -> Path | None:
    if isinstance(paths, str):
        paths = [paths]
    if not isinstance(paths, list):
        return None
    candidates = [item for item in paths if isinstance(item, str) and item]
    for candidate in candidates:
        if not candidate.startswith("\\\\?\\"):
            return Path(candidate)
    return Path(candidates[0]) if candidates else None


def parse_partition_query(raw: str) -> FirmwarePartition:
    """Turn the PowerShell partition query output into a ``FirmwarePartition``."""

    raw = raw.strip()
    if not raw:
        return FirmwarePartition(present=False, source="Get-Partition")
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise ProbeError(f"Unreadable partition query output: {exc}") from exc
    if isinstance(data, list):
        data = data[0] if data else {}
    if not isinstance(data, dict) or not data:
        return FirmwarePartition(present=False, source="Get-Partition")
    filesystem = data.get("FileSystem")
    return FirmwarePartition(
        present=True,
        source="Get-Partition",
        filesystem=str(filesystem) if filesystem else None,
        mount_path=_first_access_path(data.get("AccessPaths")),
    )


def detect_firmware_partition(
    runner: CommandRunner = run_tool,
    timeout_s: float = 30.0,
) -> FirmwarePartition:
    """Locate the firmware partition without mounting it.

    Raises:
        ProbeError: Detection is unsupported here or the query failed.
    """

    if sys.platform != "win32" and runner is run_tool:
        raise ProbeError("Firmware partition detection requires Windows; configure a mounted path")
    raw = run_powershell(ESP_QUERY, runner, timeout_s)
    partition = parse_partition_query(raw)
    LOGGER.debug("Firmware partition detection: %s", partition)
    return partition
