"""Per-round stopwatch driving the countdown bar.

``RoundClock`` knows nothing about the game state machine. The caller starts
it when a round is shown, stops it when the player submits (feeding the
returned milliseconds into ``RoundEngine.submit_answer``) and resets it
between rounds. While running, a recurring task on the scheduler pushes a
``ClockReading`` to the presentation surface.

The scheduler is frame driven: the app loop calls
``FrameScheduler.run_pending()`` once per frame, so there are no threads.
"""

from __future__ import annotations

import math
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from typing import Protocol

from .clock import Clock, elapsed_ms
from .scoring import COUNTDOWN_DURATION_MS, DEFAULT_POLICY, ScoringPolicy


class CountdownColor(str, Enum):
    """Colour-blind safe bar colours, one per scoring tier."""

    GREEN = "#0e8a1e"
    LIGHT_GREEN = "#5ba829"
    ORANGE = "#d47604"
    RED = "#c5221f"

    @property
    def rgb(self) -> tuple[int, int, int]:
        h = self.value.lstrip("#")
        return (int(h[0:2], 16), int(h[2:4], 16), int(h[4:6], 16))


TIER_COLORS: tuple[CountdownColor, ...] = (
    CountdownColor.GREEN,
    CountdownColor.LIGHT_GREEN,
    CountdownColor.ORANGE,
    CountdownColor.RED,
)


def classify(elapsed_ms: float, policy: ScoringPolicy = DEFAULT_POLICY) -> CountdownColor:
    idx = policy.tier_index(elapsed_ms)
    return TIER_COLORS[min(idx, len(TIER_COLORS) - 1)]


@dataclass(frozen=True, slots=True)
class ClockReading:
    text: str
    elapsed_ms: float
    remaining_fraction: float  # 1.0 = full bar
    color: CountdownColor


NEUTRAL_READING = ClockReading(text="0.0s", elapsed_ms=0.0, remaining_fraction=1.0, color=CountdownColor.GREEN)


class CountdownSurface(Protocol):
    def show(self, reading: ClockReading) -> None:
        ...


@dataclass(frozen=True, slots=True)
class RoundClockConfig:
    countdown_ms: float = COUNTDOWN_DURATION_MS
    reduced_motion: bool = False
    frame_interval_s: float = 0.0  # every frame
    reduced_motion_step_ms: float = 500.0

    def __post_init__(self) -> None:
        if self.countdown_ms <= 0:
            raise ValueError("countdown_ms must be > 0")
        if self.frame_interval_s < 0:
            raise ValueError("frame_interval_s must be >= 0")
        if self.reduced_motion_step_ms <= 0:
            raise ValueError("reduced_motion_step_ms must be > 0")


class ScheduledTask:
    """Handle for a recurring callback. ``cancel()`` may be called any number of times."""

    def __init__(self, interval_s: float, callback: Callable[[], None], due_at: float) -> None:
        self.interval_s = float(interval_s)
        self.callback = callback
        self.due_at = float(due_at)
        self._cancelled = False

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        self._cancelled = True


class Scheduler(Protocol):
    def call_every(self, interval_s: float, callback: Callable[[], None]) -> ScheduledTask:
        ...


class FrameScheduler:
    """Runs due callbacks when the frame loop calls :meth:`run_pending`."""

    def __init__(self, clock: Clock) -> None:
        self._clock = clock
        self._tasks: list[ScheduledTask] = []

    def call_every(self, interval_s: float, callback: Callable[[], None]) -> ScheduledTask:
        # First run happens on the next frame.
        task = ScheduledTask(interval_s, callback, due_at=self._clock.now())
        self._tasks.append(task)
        return task

    def pending(self) -> int:
        return sum(1 for t in self._tasks if not t.cancelled)

    def run_pending(self) -> None:
        now = self._clock.now()
        for task in list(self._tasks):
            if task.cancelled or now < task.due_at:
                continue
            task.callback()
            task.due_at = now + task.interval_s
        self._tasks = [t for t in self._tasks if not t.cancelled]


class RoundClock:
    def __init__(
        self,
        *,
        clock: Clock,
        scheduler: Scheduler,
        surface: CountdownSurface | None = None,
        config: RoundClockConfig | None = None,
        policy: ScoringPolicy = DEFAULT_POLICY,
    ) -> None:
        self._clock = clock
        self._scheduler = scheduler
        self._surface = surface
        self._config = RoundClockConfig() if config is None else config
        self._policy = policy
        self._started_at: float | None = None
        self._task: ScheduledTask | None = None

    @property
    def running(self) -> bool:
        return self._started_at is not None

    def start(self) -> None:
        self._cancel_loop()
        self._started_at = self._clock.now()
        interval = (
            self._config.reduced_motion_step_ms / 1000.0
            if self._config.reduced_motion
            else self._config.frame_interval_s
        )
        self._task = self._scheduler.call_every(interval, self.tick)

    def stop(self) -> float:
        """Stop timing and return elapsed milliseconds (0 if not running)."""
        self._cancel_loop()
        if self._started_at is None:
            return 0.0
        elapsed = self._elapsed_ms()
        self._started_at = None
        return elapsed

    def reset(self) -> None:
        self._cancel_loop()
        self._started_at = None
        self._push(NEUTRAL_READING)

    def elapsed_ms(self) -> float:
        return 0.0 if self._started_at is None else self._elapsed_ms()

    def reading(self) -> ClockReading:
        if self._started_at is None:
            return NEUTRAL_READING
        elapsed = self._elapsed_ms()
        if self._config.reduced_motion:
            step = self._config.reduced_motion_step_ms
            elapsed = math.floor(elapsed / step) * step
        budget = self._config.countdown_ms
        remaining = max(0.0, budget - elapsed)
        return ClockReading(
            text=f"{elapsed / 1000.0:.1f}s",
            elapsed_ms=elapsed,
            remaining_fraction=remaining / budget,
            color=classify(elapsed, self._policy),
        )

    def tick(self) -> None:
        if self._started_at is None:
            return
        self._push(self.reading())

    def _elapsed_ms(self) -> float:
        assert self._started_at is not None
        return elapsed_ms(self._started_at, self._clock.now())

    def _cancel_loop(self) -> None:
        if self._task is not None:
            self._task.cancel()
            self._task = None

    def _push(self, reading: ClockReading) -> None:
        if self._surface is not None:
            self._surface.show(reading)
