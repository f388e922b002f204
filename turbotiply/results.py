from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass

from .history import GameRecord
from .round_engine import GameMode, GameState, GameStatus, Round


@dataclass(frozen=True, slots=True)
class GameResult:
    """End-of-game summary for the score screen.

    Correctness and response times are taken from the first attempt of each
    round; replay attempts only ever fix a round, they don't count here.
    """

    score: int
    mode: GameMode
    attempted: int
    correct_first_try: int
    accuracy: float
    mean_rt_ms: float | None
    median_rt_ms: float | None
    missed: tuple[tuple[int, int], ...]
    rows: tuple[Round, ...]

    def summary_lines(self) -> list[str]:
        if self.mode is GameMode.PRACTICE:
            lines = [f"You got {self.correct_first_try}/{self.attempted} right!"]
            if self.missed:
                facts = ", ".join(f"{a} × {b}" for a, b in self.missed)
                lines.append(f"Keep practising: {facts}")
        else:
            lines = [f"Score: {self.score}", f"Correct: {self.correct_first_try}/{self.attempted}"]
        rt = "n/a" if self.mean_rt_ms is None else f"{self.mean_rt_ms / 1000.0:.1f}s"
        lines.append(f"Mean time: {rt}")
        return lines


def format_points(points: int | None) -> str:
    if points is None:
        return "—"
    return f"+{points}" if points >= 0 else str(points)


def game_result_from_state(state: GameState) -> GameResult | None:
    """Build a GameResult from a completed game, or None while still in play."""

    if state.status is not GameStatus.COMPLETED:
        return None

    rounds = state.rounds
    firsts = [r for r in rounds if r.first_try_correct is not None]
    correct = sum(1 for r in firsts if r.first_try_correct)
    attempted = len(firsts)
    accuracy = 0.0 if attempted == 0 else correct / attempted

    rts_ms = sorted(float(r.first_elapsed_ms) for r in rounds if r.first_elapsed_ms is not None)
    mean_ms: float | None
    median_ms: float | None
    if not rts_ms:
        mean_ms = None
        median_ms = None
    else:
        mean_ms = sum(rts_ms) / float(len(rts_ms))
        mid = len(rts_ms) // 2
        if len(rts_ms) % 2 == 1:
            median_ms = rts_ms[mid]
        else:
            median_ms = (rts_ms[mid - 1] + rts_ms[mid]) / 2.0

    missed = tuple(
        (r.formula.factor_a, r.formula.factor_b) for r in rounds if r.first_try_correct is False
    )

    return GameResult(
        score=int(state.score),
        mode=state.mode,
        attempted=attempted,
        correct_first_try=correct,
        accuracy=float(accuracy),
        mean_rt_ms=mean_ms,
        median_rt_ms=median_ms,
        missed=missed,
        rows=rounds,
    )


def recent_high_scores(records: Iterable[GameRecord], *, count: int = 3) -> list[int]:
    """Best standard-mode scores, highest first."""
    scores = sorted((r.score for r in records if r.mode is GameMode.STANDARD), reverse=True)
    return scores[: max(0, count)]
