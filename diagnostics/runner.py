"""Diagnostics runner utilities."""

from __future__ import annotations

from collections.abc import Iterable, Sequence
import threading

from core.deadline import OutcomeKind, run_with_deadline
from core.errors import ErrorKind, error_kind_of
from core.logging import logger as LOGGER
from diagnostics.checks import BATTERY, CheckContext, CheckSpec, validate_battery
from diagnostics.models import BatteryResult, CheckStatus, HealthCheck, HealthIssue


def _skipped(spec: CheckSpec, reason: str, code: str, error_kind: ErrorKind | None = None) -> HealthCheck:
    return HealthCheck(
        name=spec.name,
        max_weight=spec.weight,
        awarded_score=0,
        status=CheckStatus.SKIPPED,
        details=reason,
        issues=(HealthIssue(code=code, message=f"{spec.name}: {reason}"),),
        error_kind=error_kind,
    )


def _errored(spec: CheckSpec, exc: BaseException) -> HealthCheck:
    kind = error_kind_of(exc)
    return HealthCheck(
        name=spec.name,
        max_weight=spec.weight,
        awarded_score=0,
        status=CheckStatus.ERROR,
        details=f"Probe raised exception: {exc}",
        issues=(
            HealthIssue(
                code=f"check.{kind.value}",
                message=f"{spec.name} could not run: {exc}",
                critical=kind is ErrorKind.TARGET_NOT_FOUND,
            ),
        ),
        error_kind=kind,
    )


def run_check(spec: CheckSpec, context: CheckContext, timeout_s: float | None) -> HealthCheck:
    """Run one check under the timeout guard and return its result."""

    outcome = run_with_deadline(lambda: spec.run(context), timeout_s, name=spec.name)
    if outcome.kind is OutcomeKind.TIMED_OUT:
        return _skipped(
            spec,
            f"Probe did not finish within {timeout_s:.0f}s; result unknown",
            "check.timeout",
            ErrorKind.PROBE_TIMEOUT,
        )
    if outcome.kind is OutcomeKind.ERRORED and error_kind_of(outcome.error) is ErrorKind.PROBE_TIMEOUT:
        LOGGER.warning("Check %s timed out: %s", spec.name, outcome.error)
        return _skipped(spec, f"{outcome.error}; result unknown", "check.timeout", ErrorKind.PROBE_TIMEOUT)
    if outcome.kind is OutcomeKind.ERRORED:
        LOGGER.warning("Check %s failed: %s", spec.name, outcome.error)
        return _errored(spec, outcome.error)

    result = outcome.value
    if not isinstance(result, HealthCheck) or result.max_weight != spec.weight:
        return _errored(spec, TypeError(f"{spec.name} returned an invalid result"))
    return result


def run_battery(
    context: CheckContext,
    specs: Sequence[CheckSpec] = BATTERY,
    *,
    timeout_s: float | None = 60.0,
    cancel_event: threading.Event | None = None,
) -> BatteryResult:
    """Run checks in their fixed order and return every result.

    A set ``cancel_event`` skips checks that have not started yet.
    """

    validate_battery(specs)
    results: list[HealthCheck] = []
    for spec in specs:
        if cancel_event is not None and cancel_event.is_set():
            results.append(_skipped(spec, "Cancelled before start", "check.cancelled"))
            continue
        result = run_check(spec, context, timeout_s)
        LOGGER.info(
            "Check %s: %s (%d/%d)",
            result.name,
            result.status.value,
            result.awarded_score,
            result.max_weight,
        )
        results.append(result)
    return BatteryResult(checks=tuple(results))


def format_results(results: Iterable[HealthCheck]) -> str:
    """Return a human-friendly health check report."""

    lines = ["Health checks", "-" * 60]
    for result in results:
        status = result.status.value
        lines.append(
            f"[{status}] {result.name} ({result.awarded_score}/{result.max_weight}): {result.details}"
        )
        for issue in result.issues:
            marker = "!" if issue.critical else "-"
            lines.append(f"    {marker} {issue.message}")
    lines.append("-" * 60)
    return "\n".join(lines)
