"""Command-line entry point for Windows boot diagnostics."""

from __future__ import annotations

import argparse
from pathlib import Path
import sys

from config import ConfigController, DiagnosticSettings
from core.errors import AccessDeniedError
from core.logging import enable_file_logging, log_error, log_info, logger, set_level
from services.diagnostic_pass import DiagnosticPass
from services.report import format_report

EXIT_HEALTHY = 0
EXIT_DEGRADED = 1
EXIT_ACCESS_DENIED = 2


def parse_args(argv: list[str]) -> argparse.Namespace:
    """Parse command-line arguments.

    Args:
        argv: Raw command-line arguments.

    Returns:
        Parsed arguments namespace.
    """

    parser = argparse.ArgumentParser(
        description="Diagnose why a Windows installation fails to start. Read-only."
    )
    parser.add_argument(
        "--target",
        type=str,
        help="Target volume: a drive letter such as C: or a mounted image directory.",
    )
    parser.add_argument(
        "--store-dump",
        type=Path,
        help="Read 'bcdedit /enum all /v' output from a file instead of running bcdedit.",
    )
    parser.add_argument(
        "--esp-path",
        type=Path,
        help="Directory where the firmware system partition is mounted.",
    )
    parser.add_argument(
        "--esp-filesystem",
        type=str,
        help="File system of the mounted firmware partition (for example FAT32).",
    )
    parser.add_argument(
        "--skip-elevation-check",
        action="store_true",
        help="Do not require administrator rights before the pass.",
    )
    parser.add_argument(
        "--config-dir",
        type=Path,
        help="Directory holding default.yaml and override.yaml.",
    )
    parser.add_argument("--log-level", type=str, help="Logging level name.")
    parser.add_argument("--log-file", type=Path, help="Also write logs to this file.")
    return parser.parse_args(argv)


def build_settings(args: argparse.Namespace, config: dict) -> DiagnosticSettings:
    settings = DiagnosticSettings.from_config(config)
    return settings.with_overrides(
        target_volume=args.target,
        store_dump=args.store_dump,
        firmware_partition_path=args.esp_path,
        firmware_partition_filesystem=args.esp_filesystem,
        require_elevation=False if args.skip_elevation_check else None,
    )


def main(argv: list[str] | None = None) -> int:
    """Application entry point.

    Args:
        argv: Optional list of command-line arguments.

    Returns:
        Process exit code: 0 healthy, 1 degraded, 2 access denied.
    """

    if argv is None:
        argv = sys.argv[1:]

    args = parse_args(argv)
    config = ConfigController.get_instance(config_dir=args.config_dir).get_config()
    set_level(args.log_level or config.get("logging_level", "INFO"))

    log_file = args.log_file
    if log_file is None and config.get("file_logging_enabled", False):
        log_file = Path(config["log_file"])
    if log_file is not None:
        enable_file_logging(log_file)
        logger.info("Writing logs to %s", log_file)

    settings = build_settings(args, config)
    try:
        report = DiagnosticPass(settings).run()
    except AccessDeniedError as exc:
        log_error(f"Access denied: {exc.detail}")
        return EXIT_ACCESS_DENIED

    print(format_report(report))
    if report.healthy:
        log_info("Target looks bootable", style="bold green")
        return EXIT_HEALTHY
    return EXIT_DEGRADED


if __name__ == "__main__":
    raise SystemExit(main())
