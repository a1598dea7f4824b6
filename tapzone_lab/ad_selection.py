from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import StrEnum

from .clock import Clock, elapsed_ms
from .geometry import Point, Rect
from .outcomes import (
    NO_TARGET_INDEX,
    AcquisitionStep,
    AttemptOutcome,
    OutcomeFeed,
    OutcomeListener,
)
from .resolver import resolve
from .targets import Target

logger = logging.getLogger(__name__)

CLOSE_BUTTON_INSET = 30.0
CLOSE_BUTTON_SIZE = 80.0
CLICKABLE_AREA_SIZE = 200.0
CLICKABLE_AREA_OFFSET_Y = 250.0
MORE_BUTTON_WIDTH = 200.0
MORE_BUTTON_HEIGHT = 60.0
MORE_BUTTON_OFFSET_Y = 50.0


class AdTrialKind(StrEnum):
    STANDARD = "standard"  # dismiss via the close button
    IMAGE_LINK = "image_link"  # product image is the link
    HIGHLIGHTED = "highlighted"  # same area, visibly highlighted


@dataclass(frozen=True, slots=True)
class AdLayout:
    close_button: Rect
    clickable_area: Rect
    more_button: Rect

    @classmethod
    def for_viewport(cls, width: float, height: float) -> "AdLayout":
        w = float(width)
        cx = w / 2.0
        cy = float(height) / 2.0
        close = Rect(
            w - CLOSE_BUTTON_INSET - CLOSE_BUTTON_SIZE,
            CLOSE_BUTTON_INSET,
            w - CLOSE_BUTTON_INSET,
            CLOSE_BUTTON_INSET + CLOSE_BUTTON_SIZE,
        )
        top = cy - CLICKABLE_AREA_OFFSET_Y
        clickable = Rect(
            cx - CLICKABLE_AREA_SIZE / 2.0,
            top,
            cx + CLICKABLE_AREA_SIZE / 2.0,
            top + CLICKABLE_AREA_SIZE,
        )
        more = Rect.from_center(
            Point(cx, cy + MORE_BUTTON_OFFSET_Y),
            MORE_BUTTON_WIDTH,
            MORE_BUTTON_HEIGHT,
        )
        return cls(close_button=close, clickable_area=clickable, more_button=more)

    def region_for(self, kind: AdTrialKind) -> Rect:
        if kind is AdTrialKind.STANDARD:
            return self.close_button
        return self.clickable_area


@dataclass(frozen=True, slots=True)
class AdSelectionSnapshot:
    trial_index: int
    kind: AdTrialKind
    active: bool
    layout: AdLayout
    failed_attempts: int
    last_touch: Point | None
    instruction: str
    feedback: str | None


class AdSelectionEngine:
    """Fixed rectangular hit regions: no adaptive radius, no magnifier.

    Trial kinds cycle STANDARD -> IMAGE_LINK -> HIGHLIGHTED by trial number.
    A tap inside the live region completes the trial; anything else is a
    counted miss.
    """

    def __init__(self, *, clock: Clock, width: float = 800.0, height: float = 1200.0) -> None:
        self._clock = clock
        self._feed = OutcomeFeed()
        self._layout = AdLayout.for_viewport(width, height)

        self._kind = AdTrialKind.STANDARD
        self._active = False
        self._trial_index = 0
        self._failed_attempts = 0
        self._started_at_s: float | None = None
        self._last_touch: Point | None = None

    @property
    def kind(self) -> AdTrialKind:
        return self._kind

    @property
    def active(self) -> bool:
        return self._active

    @property
    def trial_index(self) -> int:
        return self._trial_index

    @property
    def failed_attempts(self) -> int:
        return self._failed_attempts

    @property
    def layout(self) -> AdLayout:
        return self._layout

    def add_listener(self, listener: OutcomeListener) -> None:
        self._feed.add_listener(listener)

    def outcomes(self) -> list[AttemptOutcome]:
        return self._feed.outcomes()

    def rejections(self) -> list[str]:
        return self._feed.rejections()

    def regenerate_targets(self, count: int, width: float, height: float) -> None:
        _ = count  # the regions are fixed by the viewport
        self._layout = AdLayout.for_viewport(width, height)

    def start_trial(self) -> bool:
        if self._active:
            self._reject("start_trial while active")
            return False
        kinds = tuple(AdTrialKind)
        self._kind = kinds[self._trial_index % len(kinds)]
        self._trial_index += 1
        self._active = True
        self._failed_attempts = 0
        self._last_touch = None
        self._started_at_s = self._clock.now()
        return True

    def pointer_down(self, x: float, y: float) -> AttemptOutcome | None:
        if not self._active:
            self._reject("pointer_down while idle")
            return None

        p = Point(float(x), float(y))
        self._last_touch = p
        region = self._layout.region_for(self._kind)
        zone = Target(
            index=0,
            position=region.center,
            hit_radius=0.0,
            label=self._kind.value,
            bounds=region,
        )
        res = resolve(p, [zone])

        if res.within_radius:
            outcome = self._outcome(success=True, distance=res.distance, terminal=True)
            self._active = False
            return self._feed.emit(outcome)

        self._failed_attempts += 1
        return self._feed.emit(self._outcome(success=False, distance=res.distance, terminal=False))

    def pointer_move(self, x: float, y: float) -> bool:
        _ = (x, y)
        return False

    def pointer_up(self) -> None:
        return None

    def snapshot(self) -> AdSelectionSnapshot:
        return AdSelectionSnapshot(
            trial_index=self._trial_index,
            kind=self._kind,
            active=self._active,
            layout=self._layout,
            failed_attempts=self._failed_attempts,
            last_touch=self._last_touch,
            instruction=self._instruction(),
            feedback=self._feedback(),
        )

    def _instruction(self) -> str:
        if self._kind is AdTrialKind.STANDARD:
            return "Tap the X button to close the ad"
        if self._kind is AdTrialKind.IMAGE_LINK:
            return "Tap the product image to visit the store"
        return "Tap the highlighted area to proceed"

    def _feedback(self) -> str | None:
        if self._failed_attempts <= 0:
            return None
        if self._failed_attempts == 1:
            return "Try again!"
        if self._failed_attempts == 2:
            return "Be more precise!"
        return "Watch your finger size!"

    def _outcome(self, *, success: bool, distance: float, terminal: bool) -> AttemptOutcome:
        return AttemptOutcome(
            trial_index=self._trial_index,
            target_index=NO_TARGET_INDEX,
            value=0.0,
            success=success,
            failed_attempts=self._failed_attempts,
            elapsed_ms=elapsed_ms(self._clock, self._started_at_s),
            distance=distance,
            step=AcquisitionStep.REGION,
            terminal=terminal,
        )

    def _reject(self, reason: str) -> None:
        logger.warning("rejected: %s", reason)
        self._feed.reject(reason)


def build_ad_selection(*, clock: Clock, width: float = 800.0, height: float = 1200.0) -> AdSelectionEngine:
    return AdSelectionEngine(clock=clock, width=width, height=height)
