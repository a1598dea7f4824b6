from __future__ import annotations

from dataclasses import dataclass

from .config import EngineConfig
from .geometry import clamp
from .performance import PerformanceTracker
from .targets import Target

SHRINK_GAIN = 0.1
DENSITY_DIVISOR = 10.0


@dataclass(frozen=True, slots=True)
class RadiusLimits:
    min_radius: float
    max_radius: float

    @classmethod
    def from_config(cls, cfg: EngineConfig) -> "RadiusLimits":
        return cls(min_radius=float(cfg.min_radius), max_radius=float(cfg.max_radius))


def next_radius(
    current: float,
    *,
    success: bool,
    mean_distance: float,
    density: float,
    region_success_rate: float,
    limits: RadiusLimits,
) -> float:
    """One closed-loop radius step.

    Hits shrink the zone in proportion to the target's mean tap distance;
    misses grow it faster in dense or poorly performing regions.
    """

    if success:
        r = current * (1.0 - (mean_distance / limits.max_radius) * SHRINK_GAIN)
    else:
        density_factor = 1.0 + density / DENSITY_DIVISOR
        performance_factor = 1.0 + (1.0 - region_success_rate)
        r = current * density_factor * performance_factor
    return clamp(r, limits.min_radius, limits.max_radius)


class AdaptiveRadiusController:
    def __init__(self, tracker: PerformanceTracker, *, limits: RadiusLimits) -> None:
        self._tracker = tracker
        self._limits = limits

    def update_radius(
        self,
        target: Target,
        distance: float,
        success: bool,
        density: float,
        region_success_rate: float,
    ) -> float:
        """Apply one attempt to ``target.hit_radius`` and return the new value.

        The tracker must already hold this attempt's distance so the mean
        includes it; ``region_success_rate`` is the rate from before it.
        """

        mean = self._tracker.mean_distance(target.index)
        if mean is None:
            mean = float(distance)
        target.hit_radius = next_radius(
            target.hit_radius,
            success=success,
            mean_distance=mean,
            density=density,
            region_success_rate=region_success_rate,
            limits=self._limits,
        )
        return target.hit_radius
