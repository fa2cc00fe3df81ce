"""Tests for the bounded-timeout probe guard."""

from __future__ import annotations

import threading

from core.deadline import OutcomeKind, run_with_deadline


def test_completed_outcome_carries_value() -> None:
    outcome = run_with_deadline(lambda: 42, 1.0, name="answer")

    assert outcome.kind is OutcomeKind.COMPLETED
    assert outcome.completed is True
    assert outcome.value == 42


def test_errored_outcome_carries_exception() -> None:
    def boom() -> None:
        raise RuntimeError("boom")

    outcome = run_with_deadline(boom, 1.0)

    assert outcome.kind is OutcomeKind.ERRORED
    assert isinstance(outcome.error, RuntimeError)
    assert outcome.value is None


def test_hung_probe_times_out_without_blocking() -> None:
    release = threading.Event()

    try:
        outcome = run_with_deadline(lambda: release.wait(5.0), 0.05, name="hang")
    finally:
        release.set()

    assert outcome.kind is OutcomeKind.TIMED_OUT
    assert outcome.completed is False
    assert outcome.elapsed_s < 5.0
