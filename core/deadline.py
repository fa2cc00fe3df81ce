"""Bounded-timeout execution for probes that may hang."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
import threading
import time
from typing import Any

from core.logging import logger as LOGGER


class OutcomeKind(str, Enum):
    """How a guarded probe call ended."""

    COMPLETED = "completed"
    TIMED_OUT = "timed_out"
    ERRORED = "errored"


@dataclass(frozen=True)
class ProbeOutcome:
    """Result of a guarded probe call."""

    kind: OutcomeKind
    value: Any = None
    error: BaseException | None = None
    elapsed_s: float = 0.0

    @property
    def completed(self) -> bool:
        return self.kind is OutcomeKind.COMPLETED


def run_with_deadline(
    func: Callable[[], Any],
    timeout_s: float | None,
    *,
    name: str = "probe",
) -> ProbeOutcome:
    """Run ``func`` on a daemon worker and wait at most ``timeout_s`` seconds.

    A worker still running at the deadline is abandoned; it cannot block
    the caller or interpreter shutdown. ``timeout_s`` of ``None`` waits
    without a deadline.
    """

    box: dict[str, Any] = {}

    def _target() -> None:
        try:
            box["value"] = func()
        except Exception as exc:  # noqa: BLE001 - reported through the outcome
            box["error"] = exc

    started = time.monotonic()
    worker = threading.Thread(target=_target, name=f"probe-{name}", daemon=True)
    worker.start()
    worker.join(timeout=timeout_s)
    elapsed = time.monotonic() - started

    if worker.is_alive():
        LOGGER.warning("Probe %s did not finish within %.2fs; abandoning it.", name, timeout_s)
        return ProbeOutcome(kind=OutcomeKind.TIMED_OUT, elapsed_s=elapsed)
    if "error" in box:
        return ProbeOutcome(kind=OutcomeKind.ERRORED, error=box["error"], elapsed_s=elapsed)
    return ProbeOutcome(kind=OutcomeKind.COMPLETED, value=box.get("value"), elapsed_s=elapsed)
