"""Read-only access to the volume and partitions under diagnosis."""

from target.firmware import FirmwarePartition
from target.volume import OsInstallation, TargetVolume, discover_installations

__all__ = [
    "FirmwarePartition",
    "OsInstallation",
    "TargetVolume",
    "discover_installations",
]
