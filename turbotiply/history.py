from __future__ import annotations

import time
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Protocol

from .challenge import RoundOutcome
from .round_engine import GameMode, GameState, GameStatus, extract_round_outcomes

MAX_HISTORY = 100


@dataclass(frozen=True, slots=True)
class GameRecord:
    """A completed game as handed to the profile store.

    ``rounds`` is None for records written before per-round detail was kept.
    """

    score: int
    completed_at: float
    mode: GameMode = GameMode.STANDARD
    rounds: tuple[RoundOutcome, ...] | None = None


class HistoryStore(Protocol):
    """Profile store boundary. Records are returned oldest first."""

    def recent_games(self, player: str, limit: int) -> list[GameRecord]:
        ...

    def save_game(self, player: str, record: GameRecord) -> None:
        ...


class InMemoryHistoryStore:
    """Process-local store keyed by case-insensitive player name."""

    def __init__(self, *, max_history: int = MAX_HISTORY) -> None:
        if max_history <= 0:
            raise ValueError("max_history must be > 0")
        self._max_history = int(max_history)
        self._games: dict[str, list[GameRecord]] = {}

    def recent_games(self, player: str, limit: int) -> list[GameRecord]:
        games = self._games.get(player.strip().lower(), [])
        if limit <= 0:
            return []
        return list(games[-limit:])

    def save_game(self, player: str, record: GameRecord) -> None:
        games = self._games.setdefault(player.strip().lower(), [])
        games.append(record)
        if len(games) > self._max_history:
            del games[: len(games) - self._max_history]


def record_from_state(state: GameState, *, completed_at: float | None = None) -> GameRecord | None:
    """Build the record for a completed game, or None if the game isn't finished."""
    if state.status is not GameStatus.COMPLETED:
        return None
    return GameRecord(
        score=int(state.score),
        completed_at=time.time() if completed_at is None else float(completed_at),
        mode=state.mode,
        rounds=tuple(extract_round_outcomes(state.rounds)),
    )


def round_details(records: Sequence[GameRecord]) -> list[tuple[RoundOutcome, ...] | None]:
    return [r.rounds for r in records]
