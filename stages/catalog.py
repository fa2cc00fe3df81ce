"""Static stage definitions with root causes, commands and error codes."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from types import MappingProxyType

from stages.models import StageRemedy


@dataclass(frozen=True)
class StageDefinition:
    order: int
    name: str
    remedy: StageRemedy


FIRMWARE = 1
BOOT_MANAGER = 2
BOOT_LOADER = 3
KERNEL = 4
DRIVERS = 5
SESSION_MANAGER = 6
LOGON = 7

_DEFINITIONS = (
    StageDefinition(
        FIRMWARE,
        "Firmware initialization",
        StageRemedy(
            root_cause="Firmware or storage could not present the Windows volume",
            commands=(
                "Check the firmware storage mode (AHCI/RAID/VMD) against the installed storage driver",
                "chkdsk {target} /scan",
                "diskpart, then list volume to confirm the Windows volume letter",
            ),
            error_codes=(
                ("0xc000000e", "Required boot device is not connected or accessible"),
                ("0x0000007B", "INACCESSIBLE_BOOT_DEVICE"),
                ("0x000000ED", "UNMOUNTABLE_BOOT_VOLUME"),
            ),
        ),
    ),
    StageDefinition(
        BOOT_MANAGER,
        "Boot manager",
        StageRemedy(
            root_cause="Boot manager or boot configuration store missing or corrupt",
            commands=(
                "bcdboot {target}\\Windows /s {esp} /f UEFI",
                "bootrec /rebuildbcd",
                "bcdedit /enum all",
            ),
            error_codes=(
                ("0xc000000f", "Boot configuration data missing or unreadable"),
                ("0xc0000034", "Boot configuration data file missing"),
                ("0xc0000098", "Boot configuration entry points to a missing loader"),
            ),
        ),
    ),
    StageDefinition(
        BOOT_LOADER,
        "Boot loader",
        StageRemedy(
            root_cause="Windows boot loader (winload) missing or damaged",
            commands=(
                "bcdboot {target}\\Windows /s {esp} /f UEFI",
                "sfc /scannow /offbootdir={target}\\ /offwindir={target}\\Windows",
            ),
            error_codes=(
                ("0xc0000428", "Digital signature of winload could not be verified"),
                ("0xc000000e", "winload.efi missing or corrupt"),
            ),
        ),
    ),
    StageDefinition(
        KERNEL,
        "Kernel initialization",
        StageRemedy(
            root_cause="Kernel or hardware abstraction layer missing or damaged",
            commands=(
                "DISM /Image:{target}\\ /Cleanup-Image /RestoreHealth /Source:<install media>",
                "sfc /scannow /offbootdir={target}\\ /offwindir={target}\\Windows",
            ),
            error_codes=(
                ("0xc0000221", "Image checksum mismatch in a kernel component"),
                ("0x00000074", "BAD_SYSTEM_CONFIG_INFO"),
                ("0x0000007E", "SYSTEM_THREAD_EXCEPTION_NOT_HANDLED"),
            ),
        ),
    ),
    StageDefinition(
        DRIVERS,
        "Driver loading",
        StageRemedy(
            root_cause="A boot-critical driver failed to load",
            commands=(
                "DISM /Image:{target}\\ /Get-Drivers /Format:Table",
                "Check the start value of storage drivers in the offline SYSTEM hive "
                "(reg load HKLM\\Offline {target}\\Windows\\System32\\config\\SYSTEM)",
                "bcdedit /set {{default}} bootlog yes, then reboot to capture ntbtlog.txt",
            ),
            error_codes=(
                ("0x0000007B", "INACCESSIBLE_BOOT_DEVICE"),
                ("0x000000D1", "DRIVER_IRQL_NOT_LESS_OR_EQUAL"),
                ("0xc0000359", "A boot driver is the wrong architecture or missing"),
            ),
        ),
    ),
    StageDefinition(
        SESSION_MANAGER,
        "Session manager",
        StageRemedy(
            root_cause="Session manager could not start the Windows subsystem",
            commands=(
                "sfc /scannow /offbootdir={target}\\ /offwindir={target}\\Windows",
                "DISM /Image:{target}\\ /Cleanup-Image /RestoreHealth /Source:<install media>",
            ),
            error_codes=(
                ("0xc000021a", "STATUS_SYSTEM_PROCESS_TERMINATED"),
                ("0x000000F4", "CRITICAL_OBJECT_TERMINATION"),
                ("0x000000EF", "CRITICAL_PROCESS_DIED"),
            ),
        ),
    ),
    StageDefinition(
        LOGON,
        "User logon",
        StageRemedy(
            root_cause="Logon components missing or failing",
            commands=(
                "sfc /scannow /offbootdir={target}\\ /offwindir={target}\\Windows",
                "Boot into Safe Mode: bcdedit /set {{default}} safeboot minimal",
            ),
            error_codes=(
                ("0xc000021a", "Winlogon terminated unexpectedly"),
                ("0x000000EF", "CRITICAL_PROCESS_DIED"),
            ),
        ),
    ),
)

STAGE_CATALOG: Mapping[int, StageDefinition] = MappingProxyType(
    {definition.order: definition for definition in _DEFINITIONS}
)
