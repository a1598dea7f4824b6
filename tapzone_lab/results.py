from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass

from .outcomes import AttemptOutcome


@dataclass(frozen=True, slots=True)
class SessionResult:
    """Summary of a finished block of trials plus the terminal outcomes it covers."""

    experiment: str
    seed: int | None
    total_trials: int

    attempted: int
    successes: int
    accuracy: float
    misses: int
    mean_failed_attempts: float
    mean_elapsed_ms: float | None
    median_elapsed_ms: float | None

    outcomes: list[AttemptOutcome]


def session_result_from_outcomes(
    outcomes: Iterable[AttemptOutcome],
    *,
    experiment: str,
    seed: int | None = None,
    total_trials: int = 0,
) -> SessionResult:
    """Build a SessionResult from an engine's outcome stream.

    Only terminal outcomes count as attempted trials; non-terminal misses only
    add to ``misses``.
    """

    all_outcomes = list(outcomes)
    terminal = [o for o in all_outcomes if o.terminal]
    misses = sum(1 for o in all_outcomes if not o.success)
    successes = sum(1 for o in terminal if o.success)
    attempted = len(terminal)
    elapsed = sorted(int(o.elapsed_ms) for o in terminal)

    mean_ms: float | None
    median_ms: float | None
    if not elapsed:
        mean_ms = None
        median_ms = None
    else:
        mean_ms = float(sum(elapsed)) / float(len(elapsed))
        mid = len(elapsed) // 2
        if len(elapsed) % 2 == 1:
            median_ms = float(elapsed[mid])
        else:
            median_ms = float(elapsed[mid - 1] + elapsed[mid]) / 2.0

    mean_failed = 0.0 if attempted == 0 else sum(o.failed_attempts for o in terminal) / attempted

    return SessionResult(
        experiment=str(experiment),
        seed=None if seed is None else int(seed),
        total_trials=int(total_trials),
        attempted=attempted,
        successes=successes,
        accuracy=0.0 if attempted == 0 else successes / attempted,
        misses=misses,
        mean_failed_attempts=float(mean_failed),
        mean_elapsed_ms=mean_ms,
        median_elapsed_ms=median_ms,
        outcomes=terminal,
    )
