"""Pygame shell for the Turbotiply drill.

Deterministic formula generation, game state, scoring and timing live in the
core modules; this module only draws the current snapshot and turns key
presses into engine actions.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Callable
from dataclasses import dataclass
from typing import Protocol

import pygame

from .challenge import challenging_pairs_for, tricky_numbers
from .clock import Clock, RealClock
from .formulas import generate_practice, generate_primary
from .history import MAX_HISTORY, HistoryStore, InMemoryHistoryStore, record_from_state, round_details
from .results import format_points, game_result_from_state, recent_high_scores
from .round_clock import NEUTRAL_READING, ClockReading, FrameScheduler, RoundClock, RoundClockConfig
from .round_engine import GameMode, GameStatus, RoundEngine, RoundPhase

logger = logging.getLogger(__name__)

WINDOW_SIZE = (960, 540)
TARGET_FPS = 60

REDUCED_MOTION_ENV = "TURBOTIPLY_REDUCED_MOTION"

BG = (12, 14, 22)
FG = (235, 238, 245)
DIM = (150, 156, 170)
TRACK = (40, 44, 58)


class Screen(Protocol):
    def handle_event(self, event: pygame.event.Event) -> None: ...
    def render(self, surface: pygame.Surface) -> None: ...


@dataclass(frozen=True, slots=True)
class MenuItem:
    label: str
    action: Callable[[], None]


@dataclass(frozen=True, slots=True)
class DrillConfig:
    player: str = "player"
    feedback_ms: float = 1200.0
    reduced_motion: bool = False

    def __post_init__(self) -> None:
        if not self.player.strip():
            raise ValueError("player must not be blank")
        if self.feedback_ms < 0:
            raise ValueError("feedback_ms must be >= 0")


def reduced_motion_from_env() -> bool:
    return os.environ.get(REDUCED_MOTION_ENV, "0").strip() == "1"


class App:
    def __init__(self, surface: pygame.Surface, *, clock: Clock) -> None:
        self._surface = surface
        self._clock = clock
        self._scheduler = FrameScheduler(clock)
        self._screens: list[Screen] = []
        self._running = True

    @property
    def running(self) -> bool:
        return self._running

    @property
    def clock(self) -> Clock:
        return self._clock

    @property
    def scheduler(self) -> FrameScheduler:
        return self._scheduler

    def push(self, screen: Screen) -> None:
        self._screens.append(screen)

    def pop(self) -> None:
        # The root screen handles its own quit.
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
        self._scheduler.run_pending()
        if not self._screens:
            return
        self._screens[-1].render(self._surface)


class MenuScreen:
    def __init__(self, app: App, title: str, items: list[MenuItem], *, footer: Callable[[], str] | None = None) -> None:
        self._app = app
        self._title = title
        self._items = items
        self._footer = footer
        self._selected = 0
        self._title_font = pygame.font.Font(None, 48)
        self._item_font = pygame.font.Font(None, 34)
        self._hint_font = pygame.font.Font(None, 22)

    def handle_event(self, event: pygame.event.Event) -> None:
        if event.type != pygame.KEYDOWN:
            return
        if event.key in (pygame.K_UP, pygame.K_w):
            self._selected = (self._selected - 1) % len(self._items)
        elif event.key in (pygame.K_DOWN, pygame.K_s):
            self._selected = (self._selected + 1) % len(self._items)
        elif event.key in (pygame.K_RETURN, pygame.K_KP_ENTER, pygame.K_SPACE):
            self._items[self._selected].action()
        elif event.key == pygame.K_ESCAPE:
            self._app.quit()

    def render(self, surface: pygame.Surface) -> None:
        surface.fill(BG)
        surface.blit(self._title_font.render(self._title, True, FG), (60, 50))
        y = 140
        for i, item in enumerate(self._items):
            prefix = "> " if i == self._selected else "  "
            color = FG if i == self._selected else DIM
            surface.blit(self._item_font.render(prefix + item.label, True, color), (60, y))
            y += 46
        if self._footer is not None:
            text = self._footer()
            if text:
                surface.blit(self._hint_font.render(text, True, DIM), (60, WINDOW_SIZE[1] - 60))


class DrillScreen:
    """One game: ten rounds, then the replay pass, then the summary."""

    def __init__(
        self,
        app: App,
        *,
        mode: GameMode,
        store: HistoryStore,
        config: DrillConfig,
        random: Callable[[], float] | None = None,
    ) -> None:
        self._app = app
        self._mode = mode
        self._store = store
        self._config = config
        self._random = random

        self._engine = RoundEngine()
        self._round_clock = RoundClock(
            clock=app.clock,
            scheduler=app.scheduler,
            surface=self,
            config=RoundClockConfig(reduced_motion=config.reduced_motion),
        )
        self._reading: ClockReading = NEUTRAL_READING
        self._input = ""
        self._feedback_until: float | None = None
        self._saved = False

        self._big_font = pygame.font.Font(None, 96)
        self._mid_font = pygame.font.Font(None, 44)
        self._small_font = pygame.font.Font(None, 28)

        self._begin()

    @property
    def engine(self) -> RoundEngine:
        return self._engine

    def show(self, reading: ClockReading) -> None:
        self._reading = reading

    def _begin(self) -> None:
        if self._mode is GameMode.PRACTICE:
            records = self._store.recent_games(self._config.player, MAX_HISTORY)
            ranked = challenging_pairs_for(round_details(records))
            formulas = generate_practice([p.pair for p in ranked], self._random)
        else:
            formulas = generate_primary(self._random)
        self._engine.start(formulas, self._mode)
        self._round_clock.reset()
        self._round_clock.start()

    def _leave(self) -> None:
        self._round_clock.reset()
        self._engine.reset()
        self._app.pop()

    def handle_event(self, event: pygame.event.Event) -> None:
        if event.type != pygame.KEYDOWN:
            return
        state = self._engine.state
        if event.key == pygame.K_ESCAPE:
            self._leave()
            return
        if state.status is GameStatus.COMPLETED:
            if event.key in (pygame.K_RETURN, pygame.K_KP_ENTER, pygame.K_SPACE):
                self._leave()
            return
        if state.phase is not RoundPhase.INPUT:
            return
        if event.key in (pygame.K_RETURN, pygame.K_KP_ENTER):
            self._submit()
        elif event.key in (pygame.K_BACKSPACE, pygame.K_DELETE):
            self._input = self._input[:-1]
        elif event.unicode and event.unicode.isdigit() and len(self._input) < 3:
            self._input += event.unicode

    def _submit(self) -> None:
        if not self._input:
            return
        elapsed_ms = self._round_clock.stop()
        if self._engine.submit_answer(int(self._input), elapsed_ms):
            self._feedback_until = self._app.clock.now() + self._config.feedback_ms / 1000.0

    def _update(self) -> None:
        if self._feedback_until is None or self._app.clock.now() < self._feedback_until:
            return
        self._feedback_until = None
        self._input = ""
        self._engine.advance()
        self._round_clock.reset()
        state = self._engine.state
        if state.status in (GameStatus.PLAYING, GameStatus.REPLAY):
            self._round_clock.start()
        elif state.status is GameStatus.COMPLETED and not self._saved:
            self._saved = True
            record = record_from_state(state)
            if record is not None:
                self._store.save_game(self._config.player, record)
                logger.info("game completed: mode=%s score=%d", state.mode.value, state.score)

    def render(self, surface: pygame.Surface) -> None:
        self._update()
        surface.fill(BG)
        state = self._engine.state
        if state.status is GameStatus.COMPLETED:
            self._render_summary(surface)
            return
        current = self._engine.active_round()
        if current is None:
            return

        if state.status is GameStatus.REPLAY:
            status = f"Replay {state.current_index + 1}/{len(state.replay_queue)}"
        else:
            status = f"Round {state.current_index + 1}/{len(state.rounds)}"
        if state.mode is GameMode.STANDARD:
            status += f"    Score {state.score}"
        surface.blit(self._small_font.render(status, True, DIM), (40, 30))

        # Countdown bar.
        bar = pygame.Rect(40, 70, WINDOW_SIZE[0] - 80, 18)
        pygame.draw.rect(surface, TRACK, bar)
        fill = bar.copy()
        fill.width = int(bar.width * self._reading.remaining_fraction)
        pygame.draw.rect(surface, self._reading.color.rgb, fill)
        surface.blit(self._small_font.render(self._reading.text, True, FG), (40, 96))

        prompt = current.formula.prompt
        if state.phase is RoundPhase.INPUT:
            prompt = prompt.replace("?", self._input or "?")
        else:
            prompt = prompt.replace("?", str(current.player_answer))
        surface.blit(self._big_font.render(prompt, True, FG), (80, 200))

        if state.phase is RoundPhase.FEEDBACK:
            if current.is_correct:
                msg = "Correct!"
            else:
                msg = f"Not quite. The answer is {current.formula.answer}."
            if state.status is GameStatus.PLAYING and current.points is not None:
                msg += f"  {format_points(current.points)}"
            surface.blit(self._mid_font.render(msg, True, FG), (80, 330))

    def _render_summary(self, surface: pygame.Surface) -> None:
        result = game_result_from_state(self._engine.state)
        if result is None:
            return
        y = 50
        for line in result.summary_lines():
            surface.blit(self._mid_font.render(line, True, FG), (60, y))
            y += 50
        for i, r in enumerate(result.rows, start=1):
            mark = "ok" if r.first_try_correct else "x"
            row = f"{i:>2}. {r.formula.prompt:<16} {mark:<3} {format_points(r.points)}"
            surface.blit(self._small_font.render(row, True, DIM), (60, y))
            y += 28
        surface.blit(self._small_font.render("Press Enter to return.", True, DIM), (60, WINDOW_SIZE[1] - 40))


def run(
    *,
    max_frames: int | None = None,
    event_injector: Callable[[int], None] | None = None,
    store: HistoryStore | None = None,
    config: DrillConfig | None = None,
) -> int:
    pygame.init()
    pygame.display.set_caption("Turbotiply")
    surface = pygame.display.set_mode(WINDOW_SIZE)

    frame_clock = pygame.time.Clock()

    app = App(surface=surface, clock=RealClock())
    history = InMemoryHistoryStore() if store is None else store
    cfg = DrillConfig(reduced_motion=reduced_motion_from_env()) if config is None else config

    def open_drill(mode: GameMode) -> None:
        app.push(DrillScreen(app, mode=mode, store=history, config=cfg))

    def footer() -> str:
        records = history.recent_games(cfg.player, MAX_HISTORY)
        parts = []
        best = recent_high_scores(records)
        if best:
            parts.append("Best: " + ", ".join(str(s) for s in best))
        tricky = tricky_numbers(challenging_pairs_for(round_details(records)))
        if tricky:
            parts.append("Tricky numbers: " + ", ".join(str(n) for n in tricky))
        return "    ".join(parts)

    app.push(
        MenuScreen(
            app,
            "Turbotiply",
            [
                MenuItem("Play", lambda: open_drill(GameMode.STANDARD)),
                MenuItem("Practice tricky facts", lambda: open_drill(GameMode.PRACTICE)),
                MenuItem("Quit", app.quit),
            ],
            footer=footer,
        )
    )

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
            frame_clock.tick(TARGET_FPS)
    finally:
        pygame.quit()
    return 0
