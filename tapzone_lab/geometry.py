from __future__ import annotations

import math
from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class Point:
    x: float
    y: float


@dataclass(frozen=True, slots=True)
class Circle:
    center: Point
    radius: float

    def contains(self, p: Point) -> bool:
        return distance(self.center, p) <= self.radius


@dataclass(frozen=True, slots=True)
class Rect:
    """Axis-aligned rectangle; edges count as inside."""

    left: float
    top: float
    right: float
    bottom: float

    @classmethod
    def from_center(cls, center: Point, width: float, height: float) -> "Rect":
        hw = width / 2.0
        hh = height / 2.0
        return cls(center.x - hw, center.y - hh, center.x + hw, center.y + hh)

    @property
    def width(self) -> float:
        return self.right - self.left

    @property
    def height(self) -> float:
        return self.bottom - self.top

    @property
    def center(self) -> Point:
        return Point((self.left + self.right) / 2.0, (self.top + self.bottom) / 2.0)

    def contains(self, p: Point) -> bool:
        return self.left <= p.x <= self.right and self.top <= p.y <= self.bottom


@dataclass(frozen=True, slots=True)
class ZoomTransform:
    """Magnification about ``center``.

    ``to_screen`` maps true coordinates into the magnified view; ``to_true``
    maps a raw pointer position inside the magnified view back again.
    """

    center: Point
    scale: float

    def to_screen(self, p: Point) -> Point:
        c = self.center
        return Point(c.x + (p.x - c.x) * self.scale, c.y + (p.y - c.y) * self.scale)

    def to_true(self, raw: Point) -> Point:
        c = self.center
        return Point(c.x + (raw.x - c.x) / self.scale, c.y + (raw.y - c.y) / self.scale)


def distance(a: Point, b: Point) -> float:
    return math.hypot(b.x - a.x, b.y - a.y)


def clamp(x: float, lo: float, hi: float) -> float:
    return lo if x <= lo else hi if x >= hi else float(x)
