from __future__ import annotations

import random
from dataclasses import dataclass

from .config import EngineConfig
from .geometry import Circle, Point, Rect, clamp


class SeededRng:
    """Seeded RNG wrapper to keep deterministic streams explicit."""

    def __init__(self, seed: int) -> None:
        self._rng = random.Random(int(seed))

    def randrange(self, n: int) -> int:
        return self._rng.randrange(n)

    def uniform(self, a: float, b: float) -> float:
        return self._rng.uniform(a, b)


@dataclass(slots=True)
class Target:
    index: int
    position: Point
    hit_radius: float
    label: str = ""
    value: float = 0.0
    bounds: Rect | None = None  # fixed-region targets ignore hit_radius

    @property
    def zone(self) -> Circle | Rect:
        if self.bounds is not None:
            return self.bounds
        return Circle(self.position, self.hit_radius)


def price_series(count: int, *, rng: SeededRng) -> list[float]:
    """Random walk of prices starting at 100, steps in [-5, 5], kept in [50, 150]."""

    prices: list[float] = []
    price = 100.0
    for _ in range(max(0, count)):
        price = clamp(price + rng.uniform(-5.0, 5.0), 50.0, 150.0)
        prices.append(price)
    return prices


def price_series_targets(
    count: int,
    width: float,
    height: float,
    *,
    rng: SeededRng,
    config: EngineConfig,
) -> list[Target]:
    """Lay a price series out as a time/price scatter inside the padded chart area.

    Index maps to x, price to y (higher price is higher on screen).
    """

    prices = price_series(count, rng=rng)
    if not prices:
        return []

    pad = config.chart_padding
    chart_w = max(0.0, float(width) - 2.0 * pad)
    chart_h = max(0.0, float(height) - 2.0 * pad)
    lo = min(prices)
    hi = max(prices)
    scale_x = 0.0 if len(prices) < 2 else chart_w / float(len(prices) - 1)
    scale_y = 0.0 if hi <= lo else chart_h / (hi - lo)

    targets: list[Target] = []
    for i, price in enumerate(prices):
        x = pad + i * scale_x
        if scale_y == 0.0:
            y = pad + chart_h / 2.0
        else:
            y = float(height) - pad - (price - lo) * scale_y
        targets.append(
            Target(
                index=i,
                position=Point(x, y),
                hit_radius=config.base_radius,
                label=f"T{i + 1}",
                value=price,
            )
        )
    return targets


def scattered_targets(
    count: int,
    width: float,
    height: float,
    *,
    rng: SeededRng,
    config: EngineConfig,
) -> list[Target]:
    """Uniformly placed targets inside the viewport minus ``target_padding``."""

    pad = config.target_padding
    targets: list[Target] = []
    for i in range(max(0, count)):
        targets.append(
            Target(
                index=i,
                position=Point(_axis_pick(rng, float(width), pad), _axis_pick(rng, float(height), pad)),
                hit_radius=config.base_radius,
                label=f"P{i + 1}",
            )
        )
    return targets


def _axis_pick(rng: SeededRng, extent: float, pad: float) -> float:
    if extent - 2.0 * pad <= 0.0:
        return max(0.0, extent) / 2.0
    return rng.uniform(pad, extent - pad)
