from __future__ import annotations

import pytest

from tapzone_lab.density import RegionDensityModel
from tapzone_lab.geometry import Point
from tapzone_lab.performance import SUCCESS_RATE_PRIOR, PerformanceTracker
from tapzone_lab.targets import Target


def _tracker(n: int = 10) -> PerformanceTracker:
    targets = [Target(index=i, position=Point(0.0, 0.0), hit_radius=30.0) for i in range(n)]
    return PerformanceTracker(RegionDensityModel(targets, region_count=5))


def test_prior_before_any_observation() -> None:
    tracker = _tracker()
    assert tracker.region_success_rate(2) == SUCCESS_RATE_PRIOR == 0.5
    assert tracker.mean_distance(3) is None
    assert tracker.history(3) == []


def test_ema_update() -> None:
    tracker = _tracker()
    tracker.record_attempt(0, 5.0, True)
    assert tracker.region_success_rate(0) == pytest.approx(0.5 * 0.7 + 0.3)
    tracker.record_attempt(1, 50.0, False)
    assert tracker.region_success_rate(0) == pytest.approx(0.65 * 0.7)
    # Target 1 shares region 0 with target 0.
    assert tracker.success_rate_for(1) == tracker.region_success_rate(0)


def test_history_and_mean() -> None:
    tracker = _tracker()
    for d in (10.0, 20.0, 30.0):
        tracker.record_attempt(4, d, False)
    assert tracker.history(4) == [10.0, 20.0, 30.0]
    assert tracker.mean_distance(4) == pytest.approx(20.0)

    copy = tracker.history(4)
    copy.append(99.0)
    assert tracker.history(4) == [10.0, 20.0, 30.0]


def test_success_rate_stays_in_unit_interval() -> None:
    tracker = _tracker()
    for i in range(200):
        tracker.record_attempt(i % 10, float(i), i % 3 == 0)
        for region in range(5):
            assert 0.0 <= tracker.region_success_rate(region) <= 1.0
