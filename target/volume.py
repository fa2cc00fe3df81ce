"""Target volume access and OS installation discovery."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
import os
from pathlib import Path
import re
import string
import sys

from core.errors import TargetNotFoundError

DRIVE_RE = re.compile(r"^([A-Za-z]):\\?$")


def _case_insensitive_child(parent: Path, name: str) -> Path:
    candidate = parent / name
    if candidate.exists() or not parent.is_dir():
        return candidate
    lowered = name.lower()
    try:
        for child in parent.iterdir():
            if child.name.lower() == lowered:
                return child
    except OSError:
        return candidate
    return candidate


def resolve_relative(root: Path, relative: str) -> Path:
    """Resolve a backslash- or slash-separated path below ``root``.

    Windows paths are case-insensitive; mounted images on other hosts are
    not, so every component is matched without regard to case.
    """

    current = root
    for part in re.split(r"[\\/]+", relative.strip("\\/")):
        if part:
            current = _case_insensitive_child(current, part)
    return current


@dataclass(frozen=True)
class TargetVolume:
    """The volume holding the Windows installation under diagnosis."""

    identifier: str
    root: Path

    @classmethod
    def from_identifier(cls, identifier: str) -> "TargetVolume":
        """Accept a drive letter (``C:``) or a mounted image directory."""

        match = DRIVE_RE.match(identifier.strip())
        if match:
            letter = match.group(1).upper()
            return cls(identifier=f"{letter}:", root=Path(f"{letter}:\\"))
        return cls(identifier=identifier, root=Path(identifier).expanduser())

    @property
    def is_drive(self) -> bool:
        return DRIVE_RE.match(self.identifier) is not None

    @property
    def windows_dir(self) -> Path:
        return resolve_relative(self.root, "Windows")

    @property
    def system32(self) -> Path:
        return resolve_relative(self.root, "Windows/System32")

    def path(self, relative: str) -> Path:
        """Return a path relative to the volume root."""

        return resolve_relative(self.root, relative)

    def system_file(self, relative: str) -> Path:
        """Return a path relative to ``Windows\\System32``."""

        return resolve_relative(self.system32, relative)

    def require_system_dir(self) -> Path:
        """Return the system directory or raise ``TargetNotFoundError``."""

        system32 = self.system32
        if not system32.is_dir():
            raise TargetNotFoundError(f"System directory not found at {system32}")
        return system32

    def is_running_system(self) -> bool:
        """True when the target is the volume the current Windows booted from."""

        if sys.platform != "win32" or not self.is_drive:
            return False
        system_drive = os.environ.get("SystemDrive", "C:").upper()
        return system_drive == self.identifier.upper()


@dataclass(frozen=True)
class OsInstallation:
    """A Windows installation found on a volume."""

    volume: str
    windows_dir: Path


def candidate_volumes() -> list[TargetVolume]:
    """Return every mounted drive letter on Windows; nothing elsewhere."""

    if sys.platform != "win32":
        return []
    volumes = []
    for letter in string.ascii_uppercase:
        root = Path(f"{letter}:\\")
        if root.exists():
            volumes.append(TargetVolume(identifier=f"{letter}:", root=root))
    return volumes


def discover_installations(volumes: Iterable[TargetVolume] | None = None) -> list[OsInstallation]:
    """Return volumes that contain a Windows system directory."""

    installations: list[OsInstallation] = []
    for volume in volumes if volumes is not None else candidate_volumes():
        try:
            if volume.system32.is_dir():
                installations.append(
                    OsInstallation(volume=volume.identifier, windows_dir=volume.windows_dir)
                )
        except OSError:
            continue
    return installations
