from __future__ import annotations

import logging
from enum import StrEnum
from typing import Protocol

from .outcomes import AttemptOutcome, OutcomeListener
from .results import SessionResult, session_result_from_outcomes
from .trial_log import OutcomeLog

logger = logging.getLogger(__name__)


class AcquisitionEngine(Protocol):
    @property
    def trial_index(self) -> int: ...
    def start_trial(self) -> bool: ...
    def pointer_down(self, x: float, y: float) -> AttemptOutcome | None: ...
    def pointer_move(self, x: float, y: float) -> bool: ...
    def pointer_up(self) -> None: ...
    def regenerate_targets(self, count: int, width: float, height: float) -> None: ...
    def add_listener(self, listener: OutcomeListener) -> None: ...
    def outcomes(self) -> list[AttemptOutcome]: ...
    def rejections(self) -> list[str]: ...


class SessionPhase(StrEnum):
    READY = "ready"
    RUNNING = "running"
    COMPLETE = "complete"


class TrialSession:
    """Runs a fixed number of trials on one engine and feeds every outcome to a log.

    With ``auto_advance`` the next trial starts as soon as one completes;
    otherwise the caller advances with ``next_trial()``.
    """

    def __init__(
        self,
        engine: AcquisitionEngine,
        *,
        experiment: str,
        total_trials: int = 20,
        log: OutcomeLog | None = None,
        auto_advance: bool = True,
        seed: int | None = None,
    ) -> None:
        if total_trials < 1:
            raise ValueError("total_trials must be >= 1")
        self._engine = engine
        self._experiment = experiment
        self._total = int(total_trials)
        self._log = log
        self._auto_advance = auto_advance
        self._seed = seed

        self._phase = SessionPhase.READY
        self._completed = 0
        self._outcomes: list[AttemptOutcome] = []

        engine.add_listener(self._on_outcome)

    @property
    def phase(self) -> SessionPhase:
        return self._phase

    @property
    def engine(self) -> AcquisitionEngine:
        return self._engine

    @property
    def completed_trials(self) -> int:
        return self._completed

    @property
    def total_trials(self) -> int:
        return self._total

    @property
    def auto_advance(self) -> bool:
        return self._auto_advance

    def start(self) -> bool:
        if self._phase is SessionPhase.RUNNING:
            logger.warning("session %s already running", self._experiment)
            return False
        self._phase = SessionPhase.RUNNING
        self._completed = 0
        self._outcomes.clear()
        if not self._engine.start_trial():
            self._phase = SessionPhase.READY
            return False
        logger.info("session %s started (%d trials)", self._experiment, self._total)
        return True

    def next_trial(self) -> bool:
        if self._phase is not SessionPhase.RUNNING:
            return False
        return self._engine.start_trial()

    def status_text(self) -> str:
        if self._phase is SessionPhase.READY:
            return "Press Enter to start"
        if self._phase is SessionPhase.COMPLETE:
            return "Experiment completed!"
        current = min(self._total, self._completed + 1)
        return f"Trial {current} of {self._total}"

    def result(self) -> SessionResult:
        return session_result_from_outcomes(
            self._outcomes,
            experiment=self._experiment,
            seed=self._seed,
            total_trials=self._total,
        )

    def close(self) -> None:
        if self._log is not None:
            self._log.close()

    def _on_outcome(self, outcome: AttemptOutcome) -> None:
        if self._phase is not SessionPhase.RUNNING:
            return
        self._outcomes.append(outcome)
        if self._log is not None:
            self._log.log(outcome)
        if not outcome.terminal:
            return

        self._completed += 1
        if self._completed >= self._total:
            self._phase = SessionPhase.COMPLETE
            logger.info("session %s complete", self._experiment)
            return
        if self._auto_advance:
            self._engine.start_trial()
