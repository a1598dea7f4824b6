from __future__ import annotations

import logging

from .config import EngineConfig
from .geometry import Point
from .outcomes import AssistAction

logger = logging.getLogger(__name__)


class EscalationPolicy:
    """Counts consecutive misses on one acquisition task and raises zoom assist.

    Every ``max_failed_attempts`` misses in a row produce one AssistAction and
    the count starts again from zero.
    """

    def __init__(
        self,
        *,
        max_failed_attempts: int = 3,
        zoom_step: float = 0.5,
        min_zoom_level: float = 1.0,
        max_zoom_level: float = 5.0,
    ) -> None:
        if max_failed_attempts < 1:
            raise ValueError("max_failed_attempts must be >= 1")
        self._threshold = int(max_failed_attempts)
        self._step = float(zoom_step)
        self._min_zoom = float(min_zoom_level)
        self._max_zoom = float(max_zoom_level)
        self._consecutive = 0
        self._zoom_level = self._min_zoom

    @classmethod
    def from_config(cls, cfg: EngineConfig) -> "EscalationPolicy":
        return cls(
            max_failed_attempts=cfg.max_failed_attempts,
            zoom_step=cfg.zoom_step,
            min_zoom_level=cfg.min_zoom_level,
            max_zoom_level=cfg.max_zoom_level,
        )

    @property
    def consecutive_misses(self) -> int:
        return self._consecutive

    @property
    def zoom_level(self) -> float:
        return self._zoom_level

    def on_miss(self, *, center: Point | None = None) -> AssistAction | None:
        self._consecutive += 1
        if self._consecutive < self._threshold:
            return None

        raised = self._zoom_level + self._step
        clamped = raised >= self._max_zoom
        self._zoom_level = min(raised, self._max_zoom)
        self._consecutive = 0
        logger.info("escalating assist to zoom %.1fx", self._zoom_level)
        return AssistAction(zoom_level=self._zoom_level, clamped_at_max_zoom=clamped, center=center)

    def on_success(self) -> None:
        self._consecutive = 0

    def reset(self) -> None:
        self._consecutive = 0

    def reset_zoom(self) -> None:
        self._zoom_level = self._min_zoom
