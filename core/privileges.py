"""Elevation checks performed before a diagnostic pass."""

from __future__ import annotations

import ctypes
import os
import sys

from core.errors import AccessDeniedError


def is_elevated() -> bool:
    """Return True when the process can read protected boot state."""

    if sys.platform == "win32":
        try:
            return bool(ctypes.windll.shell32.IsUserAnAdmin())
        except (AttributeError, OSError):
            return False
    geteuid = getattr(os, "geteuid", None)
    return geteuid is not None and geteuid() == 0


def ensure_elevated() -> None:
    """Raise ``AccessDeniedError`` unless the process is elevated."""

    if not is_elevated():
        raise AccessDeniedError(
            "Administrator rights are required to read the boot configuration store"
        )
