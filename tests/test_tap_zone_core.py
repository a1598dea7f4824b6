from __future__ import annotations

import random
from dataclasses import dataclass

import pytest

from tapzone_lab.config import EngineConfig
from tapzone_lab.outcomes import NO_TARGET_INDEX, AcquisitionStep, AssistAction
from tapzone_lab.tap_zone import TrialState, build_tap_zone_engine


@dataclass
class FakeClock:
    t: float = 0.0

    def now(self) -> float:
        return self.t

    def advance(self, dt: float) -> None:
        self.t += dt


def _engine(clock: FakeClock, *, count: int = 5, config: EngineConfig | None = None):
    # Five points across 800px sit 175px apart, so offsets below that stay on one target.
    return build_tap_zone_engine(clock=clock, seed=99, config=config, target_count=count, width=800.0, height=600.0)


def test_price_scatter_layout() -> None:
    engine = _engine(FakeClock())
    targets = engine.targets()
    assert [t.label for t in targets] == ["T1", "T2", "T3", "T4", "T5"]
    assert [t.x for t in targets] == pytest.approx([50.0, 225.0, 400.0, 575.0, 750.0])
    for t in targets:
        assert 50.0 <= t.y <= 550.0
        assert 50.0 <= t.value <= 150.0
        assert t.hit_radius == 30.0

    highest = max(targets, key=lambda t: t.value)
    lowest = min(targets, key=lambda t: t.value)
    assert highest.y == pytest.approx(50.0)
    assert lowest.y == pytest.approx(550.0)


def test_hit_completes_trial_and_contracts_radius() -> None:
    clock = FakeClock()
    engine = _engine(clock)
    assert engine.start_trial() is True
    t = engine.targets()[2]

    clock.advance(0.4)
    outcome = engine.pointer_down(t.x, t.y + 15.0)
    assert outcome is not None
    assert outcome.success and outcome.terminal
    assert outcome.step is AcquisitionStep.TAP
    assert outcome.target_index == 2
    assert outcome.value == pytest.approx(t.value)
    assert outcome.elapsed_ms == 400
    assert engine.state is TrialState.IDLE
    assert engine.snapshot().selected_index == 2
    assert engine.radius_of(2) == pytest.approx(30.0 * (1.0 - (15.0 / 150.0) * 0.1))
    assert engine.history(2) == [15.0]
    assert engine.region_success_rate(2) == pytest.approx(0.65)


def test_miss_grows_radius_and_keeps_trial_open() -> None:
    engine = _engine(FakeClock())
    engine.start_trial()
    t = engine.targets()[0]

    outcome = engine.pointer_down(t.x, t.y + 40.0)
    assert outcome is not None
    assert not outcome.success
    assert not outcome.terminal
    assert outcome.target_index == 0
    assert outcome.failed_attempts == 1
    assert engine.state is TrialState.ACTIVE
    # density 1.0 per band, prior rate 0.5
    assert engine.radius_of(0) == pytest.approx(30.0 * 1.1 * 1.5)


def test_three_misses_open_magnifier_at_pointer() -> None:
    engine = _engine(FakeClock())
    assists: list[AssistAction] = []
    engine.add_assist_listener(assists.append)
    engine.start_trial()
    t = engine.targets()[1]

    for _ in range(3):
        engine.pointer_down(t.x, t.y + 120.0)

    assert len(assists) == 1
    assert engine.zoom_level == 1.5
    assert engine.magnifier_center is not None
    assert engine.magnifier_center.x == pytest.approx(t.x)
    assert engine.failed_attempts == 3
    for i in range(5):
        assert 20.0 <= engine.radius_of(i) <= 150.0

    assert engine.pointer_move(10.0, 20.0) is True
    assert engine.magnifier_center is not None
    assert (engine.magnifier_center.x, engine.magnifier_center.y) == (10.0, 20.0)

    engine.pointer_up()
    assert engine.magnifier_center is None
    assert engine.zoom_level == 1.0
    assert engine.pointer_move(1.0, 1.0) is False


def test_no_targets_reports_sentinel_index() -> None:
    engine = _engine(FakeClock())
    engine.start_trial()
    engine.regenerate_targets(0, 800.0, 600.0)
    outcome = engine.pointer_down(100.0, 100.0)
    assert outcome is not None
    assert outcome.target_index == NO_TARGET_INDEX
    assert not outcome.success


def test_invalid_calls_are_rejected_without_state_change() -> None:
    engine = _engine(FakeClock())
    assert engine.pointer_down(1.0, 1.0) is None
    engine.start_trial()
    assert engine.start_trial() is False
    assert engine.state is TrialState.ACTIVE
    assert engine.trial_index == 1
    assert engine.rejections() == ["pointer_down while idle", "start_trial while active"]


def test_regenerate_resets_radii_and_statistics() -> None:
    engine = _engine(FakeClock())
    engine.start_trial()
    t = engine.targets()[0]
    engine.pointer_down(t.x, t.y + 40.0)
    assert engine.radius_of(0) > 30.0

    engine.regenerate_targets(10, 1000.0, 700.0)
    assert len(engine.targets()) == 10
    assert all(v.hit_radius == 30.0 for v in engine.targets())
    assert engine.history(0) == []
    assert engine.region_success_rate(0) == 0.5


def test_radius_invariant_over_random_taps() -> None:
    rng = random.Random(7)
    engine = _engine(FakeClock(), count=50)
    for _ in range(300):
        if engine.state is TrialState.IDLE:
            engine.start_trial()
        engine.pointer_down(rng.uniform(0.0, 800.0), rng.uniform(0.0, 600.0))
        for view in engine.targets():
            assert 20.0 <= view.hit_radius <= 150.0
