"""Tests for target volume access and read-only system queries."""

from __future__ import annotations

from pathlib import Path

import pytest

from core.commands import CommandResult
from core.errors import AccessDeniedError, ProbeError, TargetNotFoundError
from target.firmware import (
    DEFAULT_ESP_LABEL,
    FirmwarePartition,
    configured_partition,
    detect_firmware_partition,
    parse_partition_query,
)
from target.hardware import (
    parse_controllers,
    parse_encryption_status,
    parse_start_value,
    query_encryption_status,
    query_service_start_types,
)
from target.logs import parse_driver_failures, parse_srt_root_cause, read_log_text, summarize_driver_load
from target.volume import TargetVolume, discover_installations, resolve_relative
from tests.samples import FakeRunner, touch


def test_drive_letters_are_normalized() -> None:
    volume = TargetVolume.from_identifier("d:\\")

    assert volume.identifier == "D:"
    assert volume.is_drive is True


def test_mounted_image_directory_is_not_a_drive(tmp_path: Path) -> None:
    volume = TargetVolume.from_identifier(str(tmp_path))

    assert volume.is_drive is False
    assert volume.root == tmp_path


def test_require_system_dir_raises_when_missing(tmp_path: Path) -> None:
    volume = TargetVolume.from_identifier(str(tmp_path))

    with pytest.raises(TargetNotFoundError):
        volume.require_system_dir()


def test_paths_resolve_without_regard_to_case(tmp_path: Path) -> None:
    touch(tmp_path / "WINDOWS" / "system32" / "NTOSKRNL.EXE")

    resolved = resolve_relative(tmp_path, "Windows\\System32\\ntoskrnl.exe")

    assert resolved.is_file()


def test_discover_installations_filters_volumes(healthy_volume: Path, tmp_path: Path) -> None:
    empty = tmp_path / "empty"
    empty.mkdir()
    volumes = [TargetVolume.from_identifier(str(healthy_volume)), TargetVolume.from_identifier(str(empty))]

    installations = discover_installations(volumes)

    assert [item.volume for item in installations] == [str(healthy_volume)]


def test_driver_failures_are_deduplicated_in_order() -> None:
    text = (
        "Loaded driver \\SystemRoot\\system32\\ntoskrnl.exe\n"
        "Did not load driver \\SystemRoot\\System32\\drivers\\stornvme.sys\n"
        "Did not load driver \\SystemRoot\\System32\\drivers\\serial.sys\n"
        "Did not load driver \\SystemRoot\\System32\\drivers\\stornvme.sys\n"
    )

    assert parse_driver_failures(text) == [
        "\\SystemRoot\\System32\\drivers\\stornvme.sys",
        "\\SystemRoot\\System32\\drivers\\serial.sys",
    ]
    summary = summarize_driver_load(text, ("STORNVME",))
    assert summary.critical_failures == ("\\SystemRoot\\System32\\drivers\\stornvme.sys",)


def test_utf16_boot_log_is_decoded(tmp_path: Path) -> None:
    path = tmp_path / "ntbtlog.txt"
    path.write_bytes("Did not load driver \\drivers\\disk.sys\r\n".encode("utf-16"))

    assert parse_driver_failures(read_log_text(path)) == ["\\drivers\\disk.sys"]


@pytest.mark.parametrize(
    ("text", "expected"),
    [
        ("Root cause found:\n---------------------------\nBoot configuration is corrupt.\n", "Boot configuration is corrupt."),
        ("Root cause found: Unspecified changes to system configuration\n", "Unspecified changes to system configuration"),
        ("Root cause found:\n---------------------------\nNo root cause found.\n", None),
        ("Startup Repair diagnosis completed\n", None),
    ],
)
def test_srt_root_cause(text: str, expected: str | None) -> None:
    assert parse_srt_root_cause(text) == expected


def test_parse_start_value() -> None:
    output = "HKEY_LOCAL_MACHINE\\...\\stornvme\n    Start    REG_DWORD    0x3\n"

    assert parse_start_value(output) == 3
    assert parse_start_value("nothing here") is None


def test_service_query_raises_on_access_denied() -> None:
    runner = FakeRunner({"reg": CommandResult(1, "", "ERROR: Access is denied.")})

    with pytest.raises(AccessDeniedError):
        query_service_start_types(["stornvme"], runner, 5.0)


def test_controllers_accept_single_object_and_list() -> None:
    single = parse_controllers('{"Name": "Standard NVM Express Controller", "DriverName": "stornvme"}')
    many = parse_controllers('[{"Name": "A"}, {"Name": "B", "Status": "OK"}, {"DriverName": "nameless"}]')

    assert single[0].driver == "stornvme"
    assert [controller.name for controller in many] == ["A", "B"]
    assert parse_controllers("") == []
    assert parse_controllers("null") == []
    with pytest.raises(ProbeError):
        parse_controllers("not json")
    with pytest.raises(ProbeError):
        parse_controllers("5")


def test_encryption_status_parsing_and_failure() -> None:
    status = parse_encryption_status("    Lock Status:          Unlocked\n    Protection Status:    Protection Off\n")

    assert status.lock == "Unlocked"
    assert status.locked is False
    assert status.conversion is None

    with pytest.raises(ProbeError):
        query_encryption_status("C:", FakeRunner(), 5.0)


def test_partition_query_prefers_drive_access_path() -> None:
    raw = '{"DiskNumber": 0, "PartitionNumber": 1, "FileSystem": "FAT32", "AccessPaths": ["\\\\\\\\?\\\\Volume{abc}\\\\", "S:\\\\"]}'

    partition = parse_partition_query(raw)

    assert partition.present is True
    assert partition.is_fat is True
    assert partition.mount_path == Path("S:\\")


def test_partition_query_without_result_is_absent() -> None:
    assert parse_partition_query("").present is False
    assert parse_partition_query("[]").present is False


def test_detection_off_windows_requires_configuration(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr("target.firmware.sys.platform", "linux")

    with pytest.raises(ProbeError):
        detect_firmware_partition()


def test_configured_partition(esp: Path, tmp_path: Path) -> None:
    partition = configured_partition(esp, "FAT32")
    missing = configured_partition(tmp_path / "absent", "FAT32")

    assert partition.present and partition.has_boot_structure()
    assert partition.label == DEFAULT_ESP_LABEL
    assert missing.present is False
    assert missing.filesystem is None


def test_label_comes_from_drive_mount() -> None:
    partition = FirmwarePartition(present=True, source="Get-Partition", mount_path=Path("z:\\"))

    assert partition.label == "Z:"
