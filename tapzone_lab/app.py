"""Pygame shell for the touch-target acquisition experiments.

Three experiments sit under the main menu:
- Adaptive Tap Zones (price scatter, adaptive radii, magnifier assist)
- Two-Step Selection (coarse tap, then precise tap in a zoomed view)
- Ad Selection (fixed close-button / image-link regions)

Deterministic timing/geometry/RNG/state lives in tapzone_lab/* (core modules);
this module only renders snapshots and forwards mouse events.
"""

from __future__ import annotations

import logging
import os
import random
from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol, cast

import pygame

from .ad_selection import AdSelectionEngine, AdTrialKind, build_ad_selection
from .clock import RealClock
from .config import EngineConfig, config_from_env
from .geometry import Point, Rect, ZoomTransform, distance
from .outcomes import TargetView
from .selection import SelectionPhase, TwoStepSelectionEngine, build_two_step_selection
from .session import SessionPhase, TrialSession
from .tap_zone import TapZoneEngine, build_tap_zone_engine
from .trial_log import CsvTrialLog, OutcomeLog, default_log_path

logger = logging.getLogger(__name__)

WINDOW_SIZE = (960, 640)
TARGET_FPS = 60
TRIALS_PER_SESSION = 20
TAP_ZONE_TARGETS = 50
TWO_STEP_TARGETS = 10

LOG_DIR_ENV = "TAPZONE_LOG_DIR"

BG = (3, 9, 78)
PANEL_BG = (8, 18, 104)
BORDER = (226, 236, 255)
TEXT_MAIN = (238, 245, 255)
TEXT_MUTED = (186, 200, 224)
TARGET_COLOR = (92, 160, 255)
ACTIVE_COLOR = (235, 64, 64)
SELECTED_COLOR = (72, 208, 120)
ZONE_COLOR = (120, 142, 196)
TARGET_MARKER_RADIUS = 8


class Screen(Protocol):
    def handle_event(self, event: pygame.event.Event) -> None: ...
    def render(self, surface: pygame.Surface) -> None: ...


@dataclass(frozen=True, slots=True)
class MenuItem:
    label: str
    action: Callable[[], None]


class App:
    def __init__(self, surface: pygame.Surface, font: pygame.font.Font) -> None:
        self._surface = surface
        self._font = font
        self._screens: list[Screen] = []
        self._running = True

    @property
    def running(self) -> bool:
        return self._running

    @property
    def font(self) -> pygame.font.Font:
        return self._font

    @property
    def size(self) -> tuple[int, int]:
        return self._surface.get_size()

    def push(self, screen: Screen) -> None:
        self._screens.append(screen)

    def pop(self) -> None:
        # Never pop the root screen; it handles its own quit.
        if len(self._screens) > 1:
            self._screens.pop()

    def quit(self) -> None:
        self._running = False

    def handle_event(self, event: pygame.event.Event) -> None:
        if event.type == pygame.QUIT:
            self.quit()
            return
        if not self._screens:
            return
        self._screens[-1].handle_event(event)

    def render(self) -> None:
        if not self._screens:
            return
        self._screens[-1].render(self._surface)


class MenuScreen:
    def __init__(self, app: App, title: str, items: list[MenuItem], *, is_root: bool = False) -> None:
        self._app = app
        self._title = title
        self._items = items
        self._selected = 0
        self._is_root = is_root
        self._title_font = pygame.font.Font(None, 42)
        self._item_font = pygame.font.Font(None, 32)
        self._hint_font = pygame.font.Font(None, 22)

    def handle_event(self, event: pygame.event.Event) -> None:
        if event.type != pygame.KEYDOWN:
            return
        if event.key in (pygame.K_UP, pygame.K_w):
            self._move(-1)
        elif event.key in (pygame.K_DOWN, pygame.K_s):
            self._move(1)
        elif event.key in (pygame.K_RETURN, pygame.K_KP_ENTER, pygame.K_SPACE):
            self._activate()
        elif event.key in (pygame.K_ESCAPE, pygame.K_BACKSPACE):
            self._back()

    def _move(self, delta: int) -> None:
        if not self._items:
            return
        self._selected = (self._selected + delta) % len(self._items)

    def _activate(self) -> None:
        if not self._items:
            return
        self._items[self._selected].action()

    def _back(self) -> None:
        if self._is_root:
            self._app.quit()
        else:
            self._app.pop()

    def render(self, surface: pygame.Surface) -> None:
        w, h = surface.get_size()
        surface.fill(BG)

        margin = max(10, min(26, w // 34))
        frame = pygame.Rect(margin, margin, max(260, w - margin * 2), max(220, h - margin * 2))
        pygame.draw.rect(surface, PANEL_BG, frame)
        pygame.draw.rect(surface, BORDER, frame, 2)

        title = self._title_font.render(self._title, True, TEXT_MAIN)
        surface.blit(title, title.get_rect(center=(frame.centerx, frame.y + 40)))

        row_h = 44
        y = frame.y + 90
        for idx, item in enumerate(self._items):
            row = pygame.Rect(frame.x + 24, y, frame.w - 48, row_h)
            selected = idx == self._selected
            if selected:
                pygame.draw.rect(surface, (244, 248, 255), row)
            else:
                pygame.draw.rect(surface, (9, 20, 106), row)
                pygame.draw.rect(surface, (62, 84, 152), row, 1)
            color = (14, 26, 74) if selected else TEXT_MAIN
            text = self._item_font.render(item.label, True, color)
            surface.blit(text, (row.x + 10, row.y + (row.h - text.get_height()) // 2))
            y += row_h + 8

        foot = self._hint_font.render("Enter/Space: Select  |  Esc/Backspace: Back", True, TEXT_MUTED)
        surface.blit(foot, foot.get_rect(midbottom=(frame.centerx, frame.bottom - 10)))


def _pg_rect(r: Rect) -> pygame.Rect:
    return pygame.Rect(int(r.left), int(r.top), int(round(r.width)), int(round(r.height)))


def _xy(p: Point) -> tuple[int, int]:
    return int(round(p.x)), int(round(p.y))


def target_marker_radius(zoom_level: float) -> int:
    """Marker size for the sought target, grown by the current assist zoom."""
    return max(1, int(round(TARGET_MARKER_RADIUS * zoom_level)))


class ExperimentScreen(ABC):
    """Runs one TrialSession and forwards left-button mouse events to its engine.

    Enter starts (or restarts) the session; when the session does not advance
    on its own, Enter also starts the next trial. Targets are regenerated for the
    current window size whenever the surface size changes.
    """

    def __init__(
        self,
        app: App,
        *,
        title: str,
        session_factory: Callable[[tuple[int, int]], TrialSession],
    ) -> None:
        self._app = app
        self._title = title
        self._size = app.size
        self._session = session_factory(self._size)
        self._title_font = pygame.font.Font(None, 34)
        self._text_font = pygame.font.Font(None, 26)
        self._small_font = pygame.font.Font(None, 20)

    @property
    def session(self) -> TrialSession:
        return self._session

    def handle_event(self, event: pygame.event.Event) -> None:
        if event.type == pygame.KEYDOWN:
            self._handle_key(event.key)
            return

        if self._session.phase is not SessionPhase.RUNNING:
            return
        engine = self._session.engine
        if event.type == pygame.MOUSEBUTTONDOWN and event.button == 1:
            engine.pointer_down(*event.pos)
        elif event.type == pygame.MOUSEMOTION and event.buttons[0]:
            engine.pointer_move(*event.pos)
        elif event.type == pygame.MOUSEBUTTONUP and event.button == 1:
            engine.pointer_up()

    def _handle_key(self, key: int) -> None:
        if key in (pygame.K_ESCAPE, pygame.K_BACKSPACE):
            self._session.close()
            self._app.pop()
        elif key in (pygame.K_RETURN, pygame.K_KP_ENTER, pygame.K_SPACE):
            if self._session.phase is not SessionPhase.RUNNING:
                self._session.start()
            elif not self._session.auto_advance:
                self._session.next_trial()

    def render(self, surface: pygame.Surface) -> None:
        size = surface.get_size()
        if size != self._size:
            self._size = size
            self._regenerate(size)

        surface.fill(BG)
        self._draw_task(surface)
        self._draw_chrome(surface)

    def _regenerate(self, size: tuple[int, int]) -> None:
        w, h = size
        self._session.engine.regenerate_targets(self._target_count(), float(w), float(h))

    def _target_count(self) -> int:
        return 0

    @abstractmethod
    def _draw_task(self, surface: pygame.Surface) -> None: ...

    def _instruction(self) -> str:
        return ""

    def _draw_chrome(self, surface: pygame.Surface) -> None:
        w, h = surface.get_size()
        title = self._title_font.render(self._title, True, TEXT_MAIN)
        surface.blit(title, (16, 12))

        status = self._text_font.render(self._session.status_text(), True, TEXT_MUTED)
        surface.blit(status, status.get_rect(topright=(w - 16, 16)))

        if self._session.phase is SessionPhase.COMPLETE:
            result = self._session.result()
            mean = "-" if result.mean_elapsed_ms is None else f"{result.mean_elapsed_ms:.0f} ms"
            lines = [
                f"Accuracy: {result.accuracy * 100.0:.0f}%  ({result.successes}/{result.attempted})",
                f"Misses: {result.misses}  |  Mean time: {mean}",
                "Enter: Restart  |  Esc: Back",
            ]
            y = h // 2 - 40
            for line in lines:
                text = self._text_font.render(line, True, TEXT_MAIN)
                surface.blit(text, text.get_rect(center=(w // 2, y)))
                y += 34
            return

        instruction = self._instruction()
        if instruction:
            text = self._text_font.render(instruction, True, TEXT_MAIN)
            surface.blit(text, text.get_rect(midbottom=(w // 2, h - 16)))

    def _draw_zoomed(
        self,
        surface: pygame.Surface,
        targets: tuple[TargetView, ...],
        *,
        center: Point,
        scale: float,
        radius: float,
        highlight: int | None,
    ) -> None:
        transform = ZoomTransform(center=center, scale=scale)
        pygame.draw.circle(surface, PANEL_BG, _xy(center), int(radius))
        for t in targets:
            p = transform.to_screen(Point(t.x, t.y))
            if distance(p, center) > radius:
                continue
            color = ACTIVE_COLOR if t.index == highlight else TARGET_COLOR
            pygame.draw.circle(surface, color, _xy(p), max(2, int(6 * scale)))
        pygame.draw.circle(surface, BORDER, _xy(center), int(radius), 2)


class TapZoneScreen(ExperimentScreen):
    def __init__(self, app: App, *, session_factory: Callable[[tuple[int, int]], TrialSession]) -> None:
        super().__init__(
            app,
            title="Adaptive Tap Zones",
            session_factory=session_factory,
        )

    def _target_count(self) -> int:
        return TAP_ZONE_TARGETS

    def _engine(self) -> TapZoneEngine:
        return cast(TapZoneEngine, self._session.engine)

    def _instruction(self) -> str:
        snap = self._engine().snapshot()
        if self._session.phase is SessionPhase.READY:
            return "Tap the point you are asked for. Press Enter to start."
        if snap.failed_attempts > 0:
            return f"Missed {snap.failed_attempts}x - hold to use the magnifier"
        return "Tap a point on the chart"

    def _draw_task(self, surface: pygame.Surface) -> None:
        snap = self._engine().snapshot()
        points = [(int(t.x), int(t.y)) for t in snap.targets]
        if len(points) >= 2:
            pygame.draw.lines(surface, ZONE_COLOR, False, points, 1)

        for t in snap.targets:
            center = (int(t.x), int(t.y))
            pygame.draw.circle(surface, ZONE_COLOR, center, int(t.hit_radius), 1)
            color = SELECTED_COLOR if t.index == snap.selected_index else TARGET_COLOR
            pygame.draw.circle(surface, color, center, 5)

        if snap.selected_index is not None:
            sel = snap.targets[snap.selected_index]
            label = self._small_font.render(f"{sel.label}: {sel.value:.2f}", True, TEXT_MAIN)
            surface.blit(label, (int(sel.x) + 8, int(sel.y) - 22))

        if snap.magnifier_center is not None:
            self._draw_zoomed(
                surface,
                snap.targets,
                center=snap.magnifier_center,
                scale=snap.zoom_level,
                radius=snap.magnifier_radius,
                highlight=snap.selected_index,
            )


class TwoStepScreen(ExperimentScreen):
    def __init__(self, app: App, *, session_factory: Callable[[tuple[int, int]], TrialSession]) -> None:
        super().__init__(
            app,
            title="Two-Step Selection",
            session_factory=session_factory,
        )

    def _target_count(self) -> int:
        return TWO_STEP_TARGETS

    def _engine(self) -> TwoStepSelectionEngine:
        return cast(TwoStepSelectionEngine, self._session.engine)

    def _instruction(self) -> str:
        if self._session.phase is SessionPhase.READY:
            return "Select the red target in two steps. Press Enter to start."
        return self._engine().snapshot().instruction

    def _draw_task(self, surface: pygame.Surface) -> None:
        snap = self._engine().snapshot()
        for t in snap.targets:
            if t.index == snap.active_index:
                radius = target_marker_radius(snap.assist_zoom_level)
                pygame.draw.circle(surface, ACTIVE_COLOR, (int(t.x), int(t.y)), radius)
            else:
                pygame.draw.circle(surface, TARGET_COLOR, (int(t.x), int(t.y)), TARGET_MARKER_RADIUS)

        if snap.phase is SelectionPhase.PRECISE_STEP and snap.zoom_center is not None:
            self._draw_zoomed(
                surface,
                snap.targets,
                center=snap.zoom_center,
                scale=snap.zoom_scale,
                radius=snap.zoom_radius,
                highlight=snap.active_index,
            )


class AdSelectionScreen(ExperimentScreen):
    def __init__(self, app: App, *, session_factory: Callable[[tuple[int, int]], TrialSession]) -> None:
        super().__init__(
            app,
            title="Ad Selection",
            session_factory=session_factory,
        )

    def _engine(self) -> AdSelectionEngine:
        return cast(AdSelectionEngine, self._session.engine)

    def _instruction(self) -> str:
        snap = self._engine().snapshot()
        if self._session.phase is SessionPhase.READY:
            return "Press Enter to start."
        if not snap.active:
            return "Done. Press Enter for the next trial."
        if snap.feedback is not None:
            return f"{snap.instruction}  ({snap.feedback})"
        return snap.instruction

    def _draw_task(self, surface: pygame.Surface) -> None:
        snap = self._engine().snapshot()
        layout = snap.layout

        area = _pg_rect(layout.clickable_area)
        pygame.draw.rect(surface, (40, 52, 140), area)
        if snap.kind is AdTrialKind.HIGHLIGHTED:
            pygame.draw.rect(surface, (255, 214, 64), area, 4)
        caption = self._small_font.render("Product", True, TEXT_MAIN)
        surface.blit(caption, caption.get_rect(center=area.center))

        more = _pg_rect(layout.more_button)
        pygame.draw.rect(surface, (62, 84, 152), more)
        more_text = self._small_font.render("Learn more", True, TEXT_MAIN)
        surface.blit(more_text, more_text.get_rect(center=more.center))

        close = _pg_rect(layout.close_button)
        pygame.draw.rect(surface, PANEL_BG, close)
        pygame.draw.rect(surface, BORDER, close, 2)
        pad = close.w // 4
        pygame.draw.line(surface, BORDER, (close.x + pad, close.y + pad), (close.right - pad, close.bottom - pad), 3)
        pygame.draw.line(surface, BORDER, (close.right - pad, close.y + pad), (close.x + pad, close.bottom - pad), 3)

        if snap.last_touch is not None:
            pygame.draw.circle(surface, ACTIVE_COLOR, _xy(snap.last_touch), 6)


def log_directory() -> Path:
    raw = os.environ.get(LOG_DIR_ENV)
    if raw:
        return Path(raw).expanduser()
    return Path.home() / ".tapzone_lab" / "logs"


def _open_log(experiment: str) -> OutcomeLog:
    path = default_log_path(log_directory(), experiment)
    logger.info("logging %s trials to %s", experiment, path)
    return CsvTrialLog(path)


def _new_seed() -> int:
    return random.SystemRandom().randint(1, 2**31 - 1)


def run(*, max_frames: int | None = None, event_injector: Callable[[int], None] | None = None) -> int:
    pygame.init()

    pygame.display.set_caption("TapZone Lab")
    surface = pygame.display.set_mode(WINDOW_SIZE, pygame.RESIZABLE)

    font = pygame.font.Font(None, 36)
    clock = pygame.time.Clock()

    app = App(surface=surface, font=font)

    real_clock = RealClock()
    config: EngineConfig = config_from_env()

    def open_tap_zone() -> None:
        seed = _new_seed()

        def factory(size: tuple[int, int]) -> TrialSession:
            engine = build_tap_zone_engine(
                clock=real_clock,
                seed=seed,
                config=config,
                target_count=TAP_ZONE_TARGETS,
                width=float(size[0]),
                height=float(size[1]),
            )
            return TrialSession(
                engine,
                experiment="tap_zone",
                total_trials=TRIALS_PER_SESSION,
                log=_open_log("tap_zone"),
                seed=seed,
            )

        app.push(TapZoneScreen(app, session_factory=factory))

    def open_two_step() -> None:
        seed = _new_seed()

        def factory(size: tuple[int, int]) -> TrialSession:
            engine = build_two_step_selection(
                clock=real_clock,
                seed=seed,
                config=config,
                target_count=TWO_STEP_TARGETS,
                width=float(size[0]),
                height=float(size[1]),
            )
            return TrialSession(
                engine,
                experiment="two_step",
                total_trials=TRIALS_PER_SESSION,
                log=_open_log("two_step"),
                seed=seed,
            )

        app.push(TwoStepScreen(app, session_factory=factory))

    def open_ad_selection() -> None:
        def factory(size: tuple[int, int]) -> TrialSession:
            engine = build_ad_selection(clock=real_clock, width=float(size[0]), height=float(size[1]))
            return TrialSession(
                engine,
                experiment="ad_selection",
                total_trials=TRIALS_PER_SESSION,
                log=_open_log("ad_selection"),
                auto_advance=False,
            )

        app.push(AdSelectionScreen(app, session_factory=factory))

    main_items = [
        MenuItem("Adaptive Tap Zones", open_tap_zone),
        MenuItem("Two-Step Selection", open_two_step),
        MenuItem("Ad Selection", open_ad_selection),
        MenuItem("Quit", app.quit),
    ]

    app.push(MenuScreen(app, "Touch Target Experiments", main_items, is_root=True))

    frame = 0
    try:
        while app.running:
            if event_injector is not None:
                event_injector(frame)

            for event in pygame.event.get():
                app.handle_event(event)

            app.render()

            pygame.display.flip()

            frame += 1
            if max_frames is not None and frame >= max_frames:
                break

            clock.tick(TARGET_FPS)
    finally:
        pygame.quit()

    return 0
