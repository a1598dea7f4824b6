from __future__ import annotations

from dataclasses import dataclass

import pytest

from tapzone_lab.ad_selection import build_ad_selection
from tapzone_lab.selection import SelectionPhase, build_two_step_selection
from tapzone_lab.session import SessionPhase, TrialSession
from tapzone_lab.tap_zone import build_tap_zone_engine
from tapzone_lab.trial_log import MemoryTrialLog


@dataclass
class FakeClock:
    t: float = 0.0

    def now(self) -> float:
        return self.t

    def advance(self, dt: float) -> None:
        self.t += dt


def test_tap_zone_session_runs_twenty_trials() -> None:
    clock = FakeClock()
    engine = build_tap_zone_engine(clock=clock, seed=2024, target_count=5, width=800.0, height=600.0)
    log = MemoryTrialLog()
    session = TrialSession(engine, experiment="tap_zone", log=log, seed=2024)
    assert session.phase is SessionPhase.READY
    assert session.start() is True
    assert session.status_text() == "Trial 1 of 20"

    target = engine.targets()[3]
    for trial in range(20):
        if trial % 4 == 0:
            engine.pointer_down(target.x, target.y + 160.0)  # beyond max_radius
        clock.advance(0.5)
        engine.pointer_down(target.x, target.y)

    assert session.phase is SessionPhase.COMPLETE
    assert session.completed_trials == 20
    assert engine.trial_index == 20
    assert session.status_text() == "Experiment completed!"

    result = session.result()
    assert result.attempted == 20
    assert result.successes == 20
    assert result.misses == 5
    assert result.seed == 2024
    assert len(log.rows) == 25
    assert not log.closed

    # Further taps after completion are ignored by the session.
    engine.start_trial()
    engine.pointer_down(target.x, target.y)
    assert len(log.rows) == 25

    session.close()
    assert log.closed


def test_two_step_session_with_terminal_precise_misses() -> None:
    clock = FakeClock()
    engine = build_two_step_selection(clock=clock, seed=11, target_count=1)
    session = TrialSession(engine, experiment="two_step", total_trials=4)
    session.start()

    for trial in range(4):
        target = engine.active_target
        assert target is not None
        engine.pointer_down(target.x, target.y)
        offset = 60.0 if trial % 2 else 0.0
        engine.pointer_down(target.x + offset, target.y)

    assert session.phase is SessionPhase.COMPLETE
    result = session.result()
    assert result.attempted == 4
    assert result.successes == 2
    assert result.accuracy == pytest.approx(0.5)


def test_ad_session_advances_manually() -> None:
    engine = build_ad_selection(clock=FakeClock())
    session = TrialSession(engine, experiment="ad_selection", total_trials=3, auto_advance=False)
    session.start()

    for _ in range(3):
        center = engine.layout.region_for(engine.kind).center
        engine.pointer_down(center.x, center.y)
        assert not engine.active
        session.next_trial()

    assert session.phase is SessionPhase.COMPLETE
    assert engine.trial_index == 3
    assert session.next_trial() is False


def test_restart_after_completion() -> None:
    engine = build_ad_selection(clock=FakeClock())
    session = TrialSession(engine, experiment="ad_selection", total_trials=1, auto_advance=False)
    session.start()
    center = engine.layout.region_for(engine.kind).center
    engine.pointer_down(center.x, center.y)
    assert session.phase is SessionPhase.COMPLETE

    assert session.start() is True
    assert session.phase is SessionPhase.RUNNING
    assert session.completed_trials == 0
    assert session.result().attempted == 0


def test_start_twice_and_bad_trial_count() -> None:
    engine = build_ad_selection(clock=FakeClock())
    session = TrialSession(engine, experiment="ad_selection")
    assert session.start() is True
    assert session.start() is False
    with pytest.raises(ValueError):
        TrialSession(engine, experiment="ad_selection", total_trials=0)


def test_two_step_session_recovers_from_resize_and_abort() -> None:
    engine = build_two_step_selection(clock=FakeClock(), seed=5, target_count=10)
    log = MemoryTrialLog()
    session = TrialSession(engine, experiment="two_step", total_trials=3, log=log)
    session.start()

    # Window resize mid-trial: the trial fails and the next one starts on the new layout.
    engine.regenerate_targets(10, 640.0, 480.0)
    assert session.phase is SessionPhase.RUNNING
    assert session.completed_trials == 1
    assert engine.phase is SelectionPhase.COARSE_STEP
    assert engine.trial_index == 2
    target = engine.active_target
    assert target is not None
    assert target in engine.targets()

    engine.pointer_down(target.x, target.y)
    assert engine.abort_trial() is True
    assert session.completed_trials == 2
    assert engine.phase is SelectionPhase.COARSE_STEP

    target = engine.active_target
    assert target is not None
    engine.pointer_down(target.x, target.y)
    engine.pointer_down(target.x, target.y)

    assert session.phase is SessionPhase.COMPLETE
    result = session.result()
    assert result.attempted == 3
    assert result.successes == 1
    assert [o.terminal for o in log.rows] == [True, True, True]
