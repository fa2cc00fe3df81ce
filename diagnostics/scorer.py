"""Boot probability scoring from health check results."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from types import MappingProxyType

from diagnostics.models import BootProbability, HealthCheck, ProbabilityBand

RECOMMENDATIONS: Mapping[str, str] = MappingProxyType(
    {
        "os_files.missing": (
            "Restore missing system files offline: "
            "sfc /scannow /offbootdir={target}\\ /offwindir={target}\\Windows, then "
            "DISM /Image:{target}\\ /Cleanup-Image /RestoreHealth /Source:<install media>"
        ),
        "esp.missing": (
            "Recreate the firmware system partition (FAT32, ~260 MB) from recovery media, "
            "then run: bcdboot {target}\\Windows /s {esp} /f UEFI"
        ),
        "esp.not_fat": (
            "The firmware cannot read a non-FAT system partition; back it up, reformat it as "
            "FAT32 and run: bcdboot {target}\\Windows /s {esp} /f UEFI"
        ),
        "esp.unreadable": (
            "Assign a temporary letter to the firmware partition (mountvol {esp} /s) so boot "
            "files can be verified"
        ),
        "esp.no_boot_folder": "Rebuild the boot folder: bcdboot {target}\\Windows /s {esp} /f UEFI",
        "store.missing": "Recreate the boot store: bcdboot {target}\\Windows /s {esp} /f ALL",
        "store.inaccessible": (
            "Check the boot store for corruption with bcdedit /enum all; if it cannot be "
            "opened, rebuild it with bootrec /rebuildbcd"
        ),
        "store.parse_incomplete": (
            "Capture bcdedit /enum all /v output in English and rerun the diagnosis"
        ),
        "store.empty": "Populate the boot store: bootrec /rebuildbcd",
        "boot_files.missing": "Copy boot files to the firmware partition: bcdboot {target}\\Windows /s {esp} /f UEFI",
        "entries.no_loader": "Add a loader entry for this installation: bcdboot {target}\\Windows",
        "entries.invalid_loader": (
            "Point the loader at the installation: bcdedit /set {{default}} device partition={target} "
            "and bcdedit /set {{default}} osdevice partition={target}"
        ),
        "check.target_not_found": (
            "Confirm the target volume letter; in recovery environments Windows is often not on C: "
            "(use diskpart, list volume)"
        ),
        "check.timeout": "Rerun the diagnosis; a probe timed out and its result is unknown",
        "check.probe_timeout": "Rerun the diagnosis; a probe timed out and its result is unknown",
        "check.access_denied": "Rerun the diagnosis from an elevated prompt",
        "check.probe_error": "Review the log for the probe error and rerun the diagnosis",
    }
)


def _fill(template: str, target: str, esp: str) -> str:
    return template.format(target=target, esp=esp)


def score_checks(
    checks: Iterable[HealthCheck],
    *,
    target: str = "C:",
    esp: str = "S:",
    recommendations: Mapping[str, str] = RECOMMENDATIONS,
) -> BootProbability:
    """Sum check scores into a clamped probability with advice.

    Recommendations follow check order, then issue order, and appear once
    per issue code.
    """

    checks = list(checks)
    score = max(0, min(100, sum(check.awarded_score for check in checks)))
    critical: list[str] = []
    warnings: list[str] = []
    advice: list[str] = []
    seen_codes: set[str] = set()

    for check in checks:
        for issue in check.issues:
            (critical if issue.critical else warnings).append(issue.message)
            if issue.code in seen_codes:
                continue
            seen_codes.add(issue.code)
            template = recommendations.get(issue.code)
            if template is not None:
                advice.append(_fill(template, target, esp))

    return BootProbability(
        score=score,
        band=ProbabilityBand.for_score(score),
        critical_issues=tuple(critical),
        warnings=tuple(warnings),
        recommendations=tuple(advice),
    )

