from __future__ import annotations

from .density import RegionDensityModel

SUCCESS_RATE_PRIOR = 0.5
SUCCESS_RATE_KEEP = 0.7
SUCCESS_RATE_GAIN = 0.3


class PerformanceTracker:
    """Per-target miss-distance history and per-region EMA success rate.

    Maps are owned here; callers only get copies.
    """

    def __init__(self, regions: RegionDensityModel) -> None:
        self._regions = regions
        self._history: dict[int, list[float]] = {}
        self._region_rate: dict[int, float] = {}

    def record_attempt(self, target_index: int, distance: float, success: bool) -> None:
        self._history.setdefault(target_index, []).append(float(distance))

        region = self._regions.region_of(target_index)
        old = self._region_rate.get(region, SUCCESS_RATE_PRIOR)
        hit = 1.0 if success else 0.0
        self._region_rate[region] = old * SUCCESS_RATE_KEEP + hit * SUCCESS_RATE_GAIN

    def history(self, target_index: int) -> list[float]:
        return list(self._history.get(target_index, ()))

    def mean_distance(self, target_index: int) -> float | None:
        values = self._history.get(target_index)
        if not values:
            return None
        return sum(values) / len(values)

    def region_success_rate(self, region: int) -> float:
        return self._region_rate.get(region, SUCCESS_RATE_PRIOR)

    def success_rate_for(self, target_index: int) -> float:
        return self.region_success_rate(self._regions.region_of(target_index))
