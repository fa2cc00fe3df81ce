"""Shared fixtures: offline volume trees, firmware partitions and fake tools."""

from __future__ import annotations

from pathlib import Path

import pytest

from config.controller import ConfigController
from tests.samples import BOOT_FILES, HEALTHY_STORE, OS_FILES, STAGE_FILES, FakeRunner, touch


@pytest.fixture(autouse=True)
def _reset_singletons():
    ConfigController._instance = None
    yield
    ConfigController._instance = None


@pytest.fixture
def healthy_volume(tmp_path: Path) -> Path:
    """An offline Windows tree with every file the checks and stages look for."""

    root = tmp_path / "volume"
    system32 = root / "Windows" / "System32"
    for relative in OS_FILES + STAGE_FILES:
        touch(system32 / relative)
    return root


@pytest.fixture
def esp(tmp_path: Path) -> Path:
    """A mounted firmware partition with boot files and a store file."""

    root = tmp_path / "esp"
    for relative in BOOT_FILES:
        touch(root / relative)
    touch(root / "EFI" / "Microsoft" / "Boot" / "BCD")
    return root


@pytest.fixture
def store_dump(tmp_path: Path) -> Path:
    return touch(tmp_path / "bcd.txt", HEALTHY_STORE)


@pytest.fixture
def fake_runner() -> FakeRunner:
    return FakeRunner()
