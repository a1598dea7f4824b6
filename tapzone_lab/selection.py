from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import StrEnum

from .clock import Clock, elapsed_ms
from .config import EngineConfig
from .escalation import EscalationPolicy
from .geometry import Point, ZoomTransform, distance
from .outcomes import (
    AcquisitionStep,
    AssistListener,
    AttemptOutcome,
    OutcomeFeed,
    OutcomeListener,
    TargetView,
)
from .resolver import NO_TARGET_DISTANCE
from .targets import SeededRng, Target, scattered_targets

logger = logging.getLogger(__name__)


class SelectionPhase(StrEnum):
    IDLE = "idle"
    COARSE_STEP = "coarse_step"
    PRECISE_STEP = "precise_step"


@dataclass(frozen=True, slots=True)
class TwoStepSnapshot:
    phase: SelectionPhase
    trial_index: int
    targets: tuple[TargetView, ...]
    active_index: int | None
    zoom_center: Point | None
    zoom_scale: float
    zoom_radius: float
    failed_attempts: int
    assist_zoom_level: float
    instruction: str


class TwoStepSelectionEngine:
    """Coarse tap near the target, then a precise tap inside a magnified view.

    IDLE -> COARSE_STEP -> PRECISE_STEP -> IDLE. Both steps use fixed radii
    around the true target position; the precise step first maps the raw
    pointer back through the magnification. Misses during the coarse step
    also feed the escalation policy, whose assists the view may apply.
    """

    def __init__(
        self,
        *,
        clock: Clock,
        seed: int,
        config: EngineConfig | None = None,
        target_count: int = 10,
        width: float = 800.0,
        height: float = 600.0,
    ) -> None:
        cfg = config or EngineConfig()
        cfg.validate()

        self._clock = clock
        self._seed = int(seed)
        self._cfg = cfg
        self._rng = SeededRng(self._seed)
        self._feed = OutcomeFeed()
        self._escalation = EscalationPolicy.from_config(cfg)

        self._targets: list[Target] = []
        self._phase = SelectionPhase.IDLE
        self._active: Target | None = None
        self._zoom_center: Point | None = None
        self._failed_attempts = 0
        self._started_at_s: float | None = None
        self._trial_index = 0

        self.regenerate_targets(target_count, width, height)

    @property
    def seed(self) -> int:
        return self._seed

    @property
    def config(self) -> EngineConfig:
        return self._cfg

    @property
    def phase(self) -> SelectionPhase:
        return self._phase

    @property
    def trial_index(self) -> int:
        return self._trial_index

    @property
    def failed_attempts(self) -> int:
        return self._failed_attempts

    @property
    def active_target(self) -> TargetView | None:
        return None if self._active is None else TargetView.of(self._active)

    @property
    def zoom_center(self) -> Point | None:
        return self._zoom_center

    def zoom_transform(self) -> ZoomTransform | None:
        if self._phase is not SelectionPhase.PRECISE_STEP or self._zoom_center is None:
            return None
        return ZoomTransform(center=self._zoom_center, scale=self._cfg.zoom_scale)

    def targets(self) -> list[TargetView]:
        return [TargetView.of(t) for t in self._targets]

    def add_listener(self, listener: OutcomeListener) -> None:
        self._feed.add_listener(listener)

    def add_assist_listener(self, listener: AssistListener) -> None:
        self._feed.add_assist_listener(listener)

    def outcomes(self) -> list[AttemptOutcome]:
        return self._feed.outcomes()

    def rejections(self) -> list[str]:
        return self._feed.rejections()

    def regenerate_targets(self, count: int, width: float, height: float) -> None:
        aborted: AttemptOutcome | None = None
        if self._phase is not SelectionPhase.IDLE:
            logger.info("regenerating targets aborts trial %d", self._trial_index)
            aborted = self._abort_outcome()
            self._to_idle()
        self._targets = scattered_targets(count, width, height, rng=self._rng, config=self._cfg)
        # Emitted after the new layout exists so a listener may start the next trial on it.
        if aborted is not None:
            self._feed.emit(aborted)

    def start_trial(self) -> bool:
        if self._phase is not SelectionPhase.IDLE:
            self._reject(f"start_trial while {self._phase.value}")
            return False
        if not self._targets:
            self._reject("start_trial with no targets")
            return False

        self._active = self._targets[self._rng.randrange(len(self._targets))]
        self._phase = SelectionPhase.COARSE_STEP
        self._failed_attempts = 0
        self._zoom_center = None
        self._escalation.reset()
        self._escalation.reset_zoom()
        self._started_at_s = self._clock.now()
        self._trial_index += 1
        logger.debug("trial %d targets index %d", self._trial_index, self._active.index)
        return True

    def abort_trial(self) -> bool:
        if self._phase is SelectionPhase.IDLE:
            self._reject("abort_trial while idle")
            return False
        self._finish(self._abort_outcome())
        return True

    def pointer_down(self, x: float, y: float) -> AttemptOutcome | None:
        if self._phase is SelectionPhase.IDLE:
            self._reject("pointer_down while idle")
            return None

        assert self._active is not None
        raw = Point(float(x), float(y))

        if self._phase is SelectionPhase.COARSE_STEP:
            d = distance(raw, self._active.position)
            if d <= self._cfg.coarse_radius:
                self._zoom_center = raw
                self._phase = SelectionPhase.PRECISE_STEP
                self._escalation.on_success()
                return None

            self._failed_attempts += 1
            action = self._escalation.on_miss(center=raw)
            if action is not None:
                self._feed.emit_assist(action)
            return self._feed.emit(
                self._outcome(success=False, distance=d, step=AcquisitionStep.COARSE, terminal=False)
            )

        transform = self.zoom_transform()
        assert transform is not None
        true_point = transform.to_true(raw)
        d = distance(true_point, self._active.position)
        if d <= self._cfg.precise_radius:
            return self._finish(
                self._outcome(success=True, distance=d, step=AcquisitionStep.PRECISE, terminal=True)
            )

        self._failed_attempts += 1
        if self._cfg.retry_on_precise_miss:
            return self._feed.emit(
                self._outcome(success=False, distance=d, step=AcquisitionStep.PRECISE, terminal=False)
            )

        return self._finish(
            self._outcome(success=False, distance=d, step=AcquisitionStep.PRECISE, terminal=True)
        )

    def pointer_move(self, x: float, y: float) -> bool:
        # The precise view is anchored at the coarse tap; nothing follows the pointer.
        _ = (x, y)
        return False

    def pointer_up(self) -> None:
        return None

    def snapshot(self) -> TwoStepSnapshot:
        return TwoStepSnapshot(
            phase=self._phase,
            trial_index=self._trial_index,
            targets=tuple(self.targets()),
            active_index=None if self._active is None else self._active.index,
            zoom_center=self._zoom_center if self._phase is SelectionPhase.PRECISE_STEP else None,
            zoom_scale=self._cfg.zoom_scale,
            zoom_radius=self._cfg.zoom_radius,
            failed_attempts=self._failed_attempts,
            assist_zoom_level=self._escalation.zoom_level,
            instruction=self._instruction(),
        )

    def _instruction(self) -> str:
        if self._phase is SelectionPhase.COARSE_STEP:
            return "Tap near the red target"
        if self._phase is SelectionPhase.PRECISE_STEP:
            return "Now tap precisely on the target"
        return ""

    def _outcome(
        self,
        *,
        success: bool,
        distance: float,
        step: AcquisitionStep,
        terminal: bool,
    ) -> AttemptOutcome:
        assert self._active is not None
        return AttemptOutcome(
            trial_index=self._trial_index,
            target_index=self._active.index,
            value=self._active.value,
            success=success,
            failed_attempts=self._failed_attempts,
            elapsed_ms=elapsed_ms(self._clock, self._started_at_s),
            distance=distance,
            step=step,
            terminal=terminal,
        )

    def _abort_outcome(self) -> AttemptOutcome:
        if self._phase is SelectionPhase.PRECISE_STEP:
            step = AcquisitionStep.PRECISE
        else:
            step = AcquisitionStep.COARSE
        return self._outcome(success=False, distance=NO_TARGET_DISTANCE, step=step, terminal=True)

    def _finish(self, outcome: AttemptOutcome) -> AttemptOutcome:
        # Back to IDLE before listeners run so they may start the next trial.
        self._to_idle()
        return self._feed.emit(outcome)

    def _to_idle(self) -> None:
        self._phase = SelectionPhase.IDLE
        self._active = None
        self._zoom_center = None
        self._started_at_s = None

    def _reject(self, reason: str) -> None:
        logger.warning("rejected: %s", reason)
        self._feed.reject(reason)


def build_two_step_selection(
    *,
    clock: Clock,
    seed: int,
    config: EngineConfig | None = None,
    target_count: int = 10,
    width: float = 800.0,
    height: float = 600.0,
) -> TwoStepSelectionEngine:
    return TwoStepSelectionEngine(
        clock=clock,
        seed=seed,
        config=config,
        target_count=target_count,
        width=width,
        height=height,
    )
