from __future__ import annotations

import pytest

from tapzone_lab.outcomes import AcquisitionStep, AttemptOutcome
from tapzone_lab.results import session_result_from_outcomes


def _outcome(*, success: bool, terminal: bool, elapsed_ms: int = 0, failed: int = 0) -> AttemptOutcome:
    return AttemptOutcome(
        trial_index=1,
        target_index=0,
        value=100.0,
        success=success,
        failed_attempts=failed,
        elapsed_ms=elapsed_ms,
        distance=5.0,
        step=AcquisitionStep.TAP,
        terminal=terminal,
    )


def test_only_terminal_outcomes_count_as_attempted() -> None:
    outcomes = [
        _outcome(success=False, terminal=False, elapsed_ms=100, failed=1),
        _outcome(success=True, terminal=True, elapsed_ms=900, failed=1),
        _outcome(success=False, terminal=True, elapsed_ms=300, failed=2),
        _outcome(success=True, terminal=True, elapsed_ms=600),
    ]
    result = session_result_from_outcomes(outcomes, experiment="tap_zone", seed=5, total_trials=20)
    assert result.experiment == "tap_zone"
    assert result.seed == 5
    assert result.total_trials == 20
    assert result.attempted == 3
    assert result.successes == 2
    assert result.accuracy == pytest.approx(2 / 3)
    assert result.misses == 2
    assert result.mean_failed_attempts == pytest.approx(1.0)
    assert result.mean_elapsed_ms == pytest.approx(600.0)
    assert result.median_elapsed_ms == 600.0
    assert len(result.outcomes) == 3


def test_even_count_median_and_empty_session() -> None:
    outcomes = [
        _outcome(success=True, terminal=True, elapsed_ms=200),
        _outcome(success=True, terminal=True, elapsed_ms=400),
    ]
    assert session_result_from_outcomes(outcomes, experiment="x").median_elapsed_ms == 300.0

    empty = session_result_from_outcomes([], experiment="x")
    assert empty.attempted == 0
    assert empty.accuracy == 0.0
    assert empty.mean_elapsed_ms is None
    assert empty.median_elapsed_ms is None
