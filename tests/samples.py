"""Sample tool output and file layouts shared by the tests."""

from __future__ import annotations

from collections.abc import Sequence
from pathlib import Path

from core.commands import CommandResult

MANAGER_BLOCK = """Windows Boot Manager
--------------------
identifier              {bootmgr}
device                  partition=\\Device\\HarddiskVolume1
path                    \\EFI\\Microsoft\\Boot\\bootmgfw.efi
description             Windows Boot Manager
locale                  en-US
default                 {default}
displayorder            {default}
timeout                 30
"""

LOADER_BLOCK = """Windows Boot Loader
-------------------
identifier              {default}
device                  partition=C:
path                    \\Windows\\system32\\winload.efi
description             Windows 10
locale                  en-US
osdevice                partition=C:
systemroot              \\Windows
nx                      OptIn
"""

HEALTHY_STORE = f"{MANAGER_BLOCK}\n{LOADER_BLOCK}"

OS_FILES = ("ntoskrnl.exe", "hal.dll", "winload.efi", "config/SYSTEM")
STAGE_FILES = ("smss.exe", "winlogon.exe")
BOOT_FILES = (
    "EFI/Microsoft/Boot/bootmgfw.efi",
    "EFI/Microsoft/Boot/bootmgr.efi",
    "EFI/Boot/bootx64.efi",
)


def loader_block(identifier: str, description: str, device: str = "partition=C:") -> str:
    return (
        "Windows Boot Loader\n"
        "-------------------\n"
        f"identifier              {identifier}\n"
        f"device                  {device}\n"
        "path                    \\Windows\\system32\\winload.efi\n"
        f"description             {description}\n"
        f"osdevice                {device}\n"
    )


def touch(path: Path, content: str = "x") -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
    return path


class FakeRunner:
    """Command runner that answers from canned results keyed by executable."""

    def __init__(self, responses: dict[str, CommandResult] | None = None) -> None:
        self.responses = responses or {}
        self.calls: list[list[str]] = []

    def __call__(self, args: Sequence[str], timeout_s: float) -> CommandResult:
        self.calls.append(list(args))
        return self.responses.get(args[0], CommandResult(returncode=1, stdout="", stderr="not available"))
