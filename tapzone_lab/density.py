from __future__ import annotations

import math
from collections.abc import Sequence

from .targets import Target


def compute_density(targets: Sequence[Target], region_count: int) -> dict[int, float]:
    """Targets per unit of index width for each of ``region_count`` bands.

    Band ``i`` covers ``[i*w, (i+1)*w)`` with ``w = len(targets) / region_count``;
    the last band also takes its upper bound so the final index is never lost
    to rounding.
    """

    if region_count < 1:
        raise ValueError("region_count must be >= 1")
    n = len(targets)
    if n == 0:
        return {i: 0.0 for i in range(region_count)}

    width = n / float(region_count)
    density: dict[int, float] = {}
    for i in range(region_count):
        lo = i * width
        hi = (i + 1) * width
        last = i == region_count - 1
        count = sum(1 for t in targets if lo <= t.index < hi or (last and t.index == hi))
        density[i] = count / width
    return density


class RegionDensityModel:
    """Fixed partition of the target index domain into density bands."""

    def __init__(self, targets: Sequence[Target], *, region_count: int = 5) -> None:
        self._region_count = int(region_count)
        self._target_count = len(targets)
        self._density = compute_density(targets, self._region_count)

    @property
    def region_count(self) -> int:
        return self._region_count

    def region_of(self, index: int) -> int:
        if self._target_count == 0:
            return 0
        width = self._target_count / float(self._region_count)
        region = int(math.floor(index / width))
        return max(0, min(self._region_count - 1, region))

    def density(self, region: int) -> float:
        return self._density.get(region, 0.0)

    def density_for(self, index: int) -> float:
        return self.density(self.region_of(index))

    def densities(self) -> dict[int, float]:
        return dict(self._density)
