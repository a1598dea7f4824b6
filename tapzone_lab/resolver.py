from __future__ import annotations

import sys
from collections.abc import Iterable
from dataclasses import dataclass

from .geometry import Point, distance
from .targets import Target

NO_TARGET_DISTANCE = sys.float_info.max


@dataclass(frozen=True, slots=True)
class Resolution:
    target: Target | None
    distance: float
    within_radius: bool

    @property
    def has_target(self) -> bool:
        return self.target is not None


def resolve(pointer: Point, targets: Iterable[Target]) -> Resolution:
    """Nearest target to ``pointer`` and whether the pointer lies in its zone.

    Candidates are scanned in iteration order with a strict ``<``, so on ties
    the earliest (lowest index) target wins. Circle zones use the target's
    current ``hit_radius``; fixed-region targets use their rectangle.
    """

    best: Target | None = None
    best_d = NO_TARGET_DISTANCE
    for t in targets:
        d = distance(pointer, t.position)
        if best is None or d < best_d:
            best = t
            best_d = d

    if best is None:
        return Resolution(target=None, distance=NO_TARGET_DISTANCE, within_radius=False)
    return Resolution(target=best, distance=best_d, within_radius=best.zone.contains(pointer))
