"""Stop code names and explanations for crash and error report evidence."""

from __future__ import annotations

from collections.abc import Mapping
from types import MappingProxyType

BUGCHECK_NAMES: Mapping[str, tuple[str, str]] = MappingProxyType(
    {
        "0x0000000a": (
            "IRQL_NOT_LESS_OR_EQUAL",
            "Kernel-mode code touched invalid memory at high IRQL. Often RAM or driver issues.",
        ),
        "0x0000001e": (
            "KMODE_EXCEPTION_NOT_HANDLED",
            "Unhandled kernel exception. Typically buggy or outdated drivers.",
        ),
        "0x00000024": ("NTFS_FILE_SYSTEM", "NTFS driver hit corruption; run chkdsk on the volume."),
        "0x0000003b": (
            "SYSTEM_SERVICE_EXCEPTION",
            "Exception in a system service. Often display, antivirus hooks or drivers.",
        ),
        "0x00000050": (
            "PAGE_FAULT_IN_NONPAGED_AREA",
            "Invalid memory reference in nonpaged region. RAM, disk corruption or drivers.",
        ),
        "0x00000074": (
            "BAD_SYSTEM_CONFIG_INFO",
            "The SYSTEM registry hive is damaged or inconsistent.",
        ),
        "0x0000007a": (
            "KERNEL_DATA_INPAGE_ERROR",
            "Kernel data could not be paged in from disk. Storage path or disk fault.",
        ),
        "0x0000007b": (
            "INACCESSIBLE_BOOT_DEVICE",
            "Windows lost access to the system volume during startup. Storage driver or controller mode.",
        ),
        "0x0000007e": (
            "SYSTEM_THREAD_EXCEPTION_NOT_HANDLED",
            "Unhandled system thread exception. Drivers or low-level software.",
        ),
        "0x0000009f": (
            "DRIVER_POWER_STATE_FAILURE",
            "Driver did not handle a power transition.",
        ),
        "0x000000d1": (
            "DRIVER_IRQL_NOT_LESS_OR_EQUAL",
            "A driver accessed pageable memory at high IRQL.",
        ),
        "0x000000ed": (
            "UNMOUNTABLE_BOOT_VOLUME",
            "The boot volume could not be mounted. File system corruption or storage fault.",
        ),
        "0x000000ef": ("CRITICAL_PROCESS_DIED", "A critical system process exited unexpectedly."),
        "0x000000f4": (
            "CRITICAL_OBJECT_TERMINATION",
            "A critical process or thread terminated. Often storage errors during paging.",
        ),
        "0x00000116": ("VIDEO_TDR_FAILURE", "GPU timeout detection and recovery failed."),
        "0x00000124": (
            "WHEA_UNCORRECTABLE_ERROR",
            "Uncorrectable hardware error (CPU, memory, PCIe). Often thermals or hardware.",
        ),
        "0x00000133": ("DPC_WATCHDOG_VIOLATION", "A deferred procedure call ran too long. Often storage drivers."),
        "0x00000154": ("UNEXPECTED_STORE_EXCEPTION", "The store component hit an unexpected error. Often failing disks."),
        "0xc000021a": (
            "STATUS_SYSTEM_PROCESS_TERMINATED",
            "Winlogon or the client/server runtime terminated. System files or registry damage.",
        ),
    }
)

STORAGE_BUGCHECKS = frozenset(
    {"0x00000024", "0x0000007a", "0x0000007b", "0x000000ed", "0x000000f4", "0x00000133", "0x00000154"}
)


def normalize_code(code: str | None) -> str:
    """Return a stop code as ``0x`` plus eight lowercase hex digits."""

    if not code:
        return ""
    text = code.strip().lower()
    try:
        value = int(text, 16)
    except ValueError:
        return text
    return f"0x{value:08x}"


def describe_bugcheck(code: str | None) -> tuple[str, str, str]:
    """Return ``(code, name, explanation)``; unknown codes get a generic hint."""

    normalized = normalize_code(code)
    name, explanation = BUGCHECK_NAMES.get(
        normalized,
        ("Unknown stop code", "No built-in description. Analyse the dump with WinDbg."),
    )
    return normalized, name, explanation
