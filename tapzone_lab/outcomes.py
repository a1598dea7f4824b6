from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from enum import StrEnum

from .geometry import Point
from .targets import Target

NO_TARGET_INDEX = -1


class AcquisitionStep(StrEnum):
    TAP = "tap"  # single-shot adaptive tap
    COARSE = "coarse"
    PRECISE = "precise"
    REGION = "region"  # fixed rectangular hit region


@dataclass(frozen=True, slots=True)
class AttemptOutcome:
    trial_index: int
    target_index: int
    value: float
    success: bool
    failed_attempts: int
    elapsed_ms: int
    distance: float
    step: AcquisitionStep
    terminal: bool


@dataclass(frozen=True, slots=True)
class AssistAction:
    zoom_level: float
    clamped_at_max_zoom: bool
    center: Point | None = None


@dataclass(frozen=True, slots=True)
class TargetView:
    """Read-only copy of a target for presentation."""

    index: int
    x: float
    y: float
    hit_radius: float
    label: str
    value: float

    @classmethod
    def of(cls, t: Target) -> "TargetView":
        return cls(
            index=t.index,
            x=t.position.x,
            y=t.position.y,
            hit_radius=t.hit_radius,
            label=t.label,
            value=t.value,
        )


OutcomeListener = Callable[[AttemptOutcome], None]
AssistListener = Callable[[AssistAction], None]


class OutcomeFeed:
    """Outcome/assist fan-out plus the rejected-call log an engine keeps."""

    def __init__(self) -> None:
        self._outcomes: list[AttemptOutcome] = []
        self._rejections: list[str] = []
        self._outcome_listeners: list[OutcomeListener] = []
        self._assist_listeners: list[AssistListener] = []

    def add_listener(self, listener: OutcomeListener) -> None:
        self._outcome_listeners.append(listener)

    def add_assist_listener(self, listener: AssistListener) -> None:
        self._assist_listeners.append(listener)

    def emit(self, outcome: AttemptOutcome) -> AttemptOutcome:
        self._outcomes.append(outcome)
        for listener in list(self._outcome_listeners):
            listener(outcome)
        return outcome

    def emit_assist(self, action: AssistAction) -> AssistAction:
        for listener in list(self._assist_listeners):
            listener(action)
        return action

    def reject(self, reason: str) -> None:
        self._rejections.append(reason)

    def outcomes(self) -> list[AttemptOutcome]:
        return list(self._outcomes)

    def rejections(self) -> list[str]:
        return list(self._rejections)
