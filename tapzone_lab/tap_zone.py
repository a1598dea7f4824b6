from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import StrEnum

from .clock import Clock, elapsed_ms
from .config import EngineConfig
from .density import RegionDensityModel
from .escalation import EscalationPolicy
from .geometry import Point
from .outcomes import (
    NO_TARGET_INDEX,
    AcquisitionStep,
    AssistListener,
    AttemptOutcome,
    OutcomeFeed,
    OutcomeListener,
    TargetView,
)
from .performance import PerformanceTracker
from .radius import AdaptiveRadiusController, RadiusLimits
from .resolver import resolve
from .targets import SeededRng, Target, price_series_targets

logger = logging.getLogger(__name__)


class TrialState(StrEnum):
    IDLE = "idle"
    ACTIVE = "active"


@dataclass(frozen=True, slots=True)
class TapZoneSnapshot:
    state: TrialState
    trial_index: int
    targets: tuple[TargetView, ...]
    selected_index: int | None
    magnifier_center: Point | None
    magnifier_radius: float
    zoom_level: float
    failed_attempts: int
    region_success_rates: tuple[float, ...]


class TapZoneEngine:
    """Single-shot acquisition over a price scatter with adaptive tap zones.

    Each pointer-down resolves to the nearest point. A hit completes the trial
    and contracts that point's zone; a miss widens it and counts toward the
    magnifier assist. Radii, history and region rates persist across trials
    until the targets are regenerated.
    """

    def __init__(
        self,
        *,
        clock: Clock,
        seed: int,
        config: EngineConfig | None = None,
        target_count: int = 50,
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
        self._limits = RadiusLimits.from_config(cfg)

        self._targets: list[Target] = []
        self._regions = RegionDensityModel([], region_count=cfg.region_count)
        self._tracker = PerformanceTracker(self._regions)
        self._controller = AdaptiveRadiusController(self._tracker, limits=self._limits)

        self._state = TrialState.IDLE
        self._trial_index = 0
        self._failed_attempts = 0
        self._started_at_s: float | None = None
        self._selected: Target | None = None
        self._magnifier_center: Point | None = None

        self.regenerate_targets(target_count, width, height)

    @property
    def seed(self) -> int:
        return self._seed

    @property
    def config(self) -> EngineConfig:
        return self._cfg

    @property
    def state(self) -> TrialState:
        return self._state

    @property
    def trial_index(self) -> int:
        return self._trial_index

    @property
    def failed_attempts(self) -> int:
        return self._failed_attempts

    @property
    def zoom_level(self) -> float:
        return self._escalation.zoom_level

    @property
    def magnifier_center(self) -> Point | None:
        return self._magnifier_center

    @property
    def regions(self) -> RegionDensityModel:
        return self._regions

    def targets(self) -> list[TargetView]:
        return [TargetView.of(t) for t in self._targets]

    def radius_of(self, index: int) -> float:
        return self._targets[index].hit_radius

    def history(self, index: int) -> list[float]:
        return self._tracker.history(index)

    def region_success_rate(self, region: int) -> float:
        return self._tracker.region_success_rate(region)

    def add_listener(self, listener: OutcomeListener) -> None:
        self._feed.add_listener(listener)

    def add_assist_listener(self, listener: AssistListener) -> None:
        self._feed.add_assist_listener(listener)

    def outcomes(self) -> list[AttemptOutcome]:
        return self._feed.outcomes()

    def rejections(self) -> list[str]:
        return self._feed.rejections()

    def regenerate_targets(self, count: int, width: float, height: float) -> None:
        self._targets = price_series_targets(count, width, height, rng=self._rng, config=self._cfg)
        self._regions = RegionDensityModel(self._targets, region_count=self._cfg.region_count)
        self._tracker = PerformanceTracker(self._regions)
        self._controller = AdaptiveRadiusController(self._tracker, limits=self._limits)
        self._selected = None
        self._clear_magnifier()
        logger.info("generated %d targets for %.0fx%.0f viewport", len(self._targets), width, height)

    def start_trial(self) -> bool:
        if self._state is not TrialState.IDLE:
            self._reject(f"start_trial while {self._state.value}")
            return False
        if not self._targets:
            self._reject("start_trial with no targets")
            return False
        self._state = TrialState.ACTIVE
        self._trial_index += 1
        self._failed_attempts = 0
        self._escalation.reset()
        self._clear_magnifier()
        self._started_at_s = self._clock.now()
        return True

    def pointer_down(self, x: float, y: float) -> AttemptOutcome | None:
        if self._state is not TrialState.ACTIVE:
            self._reject("pointer_down while idle")
            return None

        p = Point(float(x), float(y))
        res = resolve(p, self._targets)
        target = res.target

        if target is None:
            self._register_miss(p)
            return self._feed.emit(
                self._outcome(target=None, success=False, distance=res.distance, terminal=False)
            )

        region = self._regions.region_of(target.index)
        density = self._regions.density(region)
        rate_before = self._tracker.region_success_rate(region)
        self._tracker.record_attempt(target.index, res.distance, res.within_radius)
        new_radius = self._controller.update_radius(
            target,
            res.distance,
            res.within_radius,
            density,
            rate_before,
        )
        logger.debug(
            "tap %.1f from %s (%s), radius now %.2f",
            res.distance,
            target.label,
            "hit" if res.within_radius else "miss",
            new_radius,
        )

        if res.within_radius:
            self._selected = target
            self._escalation.on_success()
            self._clear_magnifier()
            outcome = self._outcome(target=target, success=True, distance=res.distance, terminal=True)
            # Back to IDLE before listeners run so they may start the next trial.
            self._state = TrialState.IDLE
            self._started_at_s = None
            return self._feed.emit(outcome)

        self._register_miss(p)
        return self._feed.emit(
            self._outcome(target=target, success=False, distance=res.distance, terminal=False)
        )

    def pointer_move(self, x: float, y: float) -> bool:
        if self._magnifier_center is None:
            return False
        self._magnifier_center = Point(float(x), float(y))
        return True

    def pointer_up(self) -> None:
        self._clear_magnifier()

    def snapshot(self) -> TapZoneSnapshot:
        return TapZoneSnapshot(
            state=self._state,
            trial_index=self._trial_index,
            targets=tuple(self.targets()),
            selected_index=None if self._selected is None else self._selected.index,
            magnifier_center=self._magnifier_center,
            magnifier_radius=self._cfg.magnifier_radius,
            zoom_level=self._escalation.zoom_level,
            failed_attempts=self._failed_attempts,
            region_success_rates=tuple(
                self._tracker.region_success_rate(i) for i in range(self._regions.region_count)
            ),
        )

    def _register_miss(self, p: Point) -> None:
        self._failed_attempts += 1
        action = self._escalation.on_miss(center=p)
        if action is not None:
            self._magnifier_center = p
            self._feed.emit_assist(action)

    def _clear_magnifier(self) -> None:
        self._magnifier_center = None
        self._escalation.reset_zoom()

    def _outcome(
        self,
        *,
        target: Target | None,
        success: bool,
        distance: float,
        terminal: bool,
    ) -> AttemptOutcome:
        return AttemptOutcome(
            trial_index=self._trial_index,
            target_index=NO_TARGET_INDEX if target is None else target.index,
            value=0.0 if target is None else target.value,
            success=success,
            failed_attempts=self._failed_attempts,
            elapsed_ms=elapsed_ms(self._clock, self._started_at_s),
            distance=distance,
            step=AcquisitionStep.TAP,
            terminal=terminal,
        )

    def _reject(self, reason: str) -> None:
        logger.warning("rejected: %s", reason)
        self._feed.reject(reason)


def build_tap_zone_engine(
    *,
    clock: Clock,
    seed: int,
    config: EngineConfig | None = None,
    target_count: int = 50,
    width: float = 800.0,
    height: float = 600.0,
) -> TapZoneEngine:
    return TapZoneEngine(
        clock=clock,
        seed=seed,
        config=config,
        target_count=target_count,
        width=width,
        height=height,
    )
