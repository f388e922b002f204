"""Mining past answers for the multiplication facts a player struggles with.

Two ranking policies share the ``ChallengingPair`` output type:

* ``MistakeLatencyPolicy`` (default) counts mistakes per unordered pair and
  breaks ties by mean latency. When a player made no mistakes at all, every
  pair is returned, slowest first.
* ``DifficultyRatioPolicy`` compares each answer with the average latency of
  its own game and keeps answers that were wrong or markedly slower than
  that average, ranked by the worst ratio seen for the pair.

The ranked pairs feed ``formulas.generate_practice``.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from typing import Protocol

MAX_TRICKY_NUMBERS = 8
MAX_GAME_WINDOW = 10


@dataclass(frozen=True, slots=True)
class RoundOutcome:
    """One primary-phase answer as kept by the history store."""

    factor_a: int
    factor_b: int
    is_correct: bool
    elapsed_ms: float


@dataclass(frozen=True, slots=True)
class ChallengingPair:
    factor_a: int  # <= factor_b
    factor_b: int
    mistake_count: int
    avg_latency_ms: float

    @property
    def pair(self) -> tuple[int, int]:
        return (self.factor_a, self.factor_b)


class RankingPolicy(Protocol):
    def rank_games(self, games: Sequence[Sequence[RoundOutcome]]) -> list[ChallengingPair]:
        ...


@dataclass(slots=True)
class _PairStats:
    mistakes: int = 0
    total_ms: float = 0.0
    occurrences: int = 0

    def add(self, outcome: RoundOutcome) -> None:
        if not outcome.is_correct:
            self.mistakes += 1
        self.total_ms += float(outcome.elapsed_ms)
        self.occurrences += 1

    def to_pair(self, key: tuple[int, int]) -> ChallengingPair:
        return ChallengingPair(
            factor_a=key[0],
            factor_b=key[1],
            mistake_count=self.mistakes,
            avg_latency_ms=self.total_ms / self.occurrences,
        )


def _key(outcome: RoundOutcome) -> tuple[int, int]:
    a, b = outcome.factor_a, outcome.factor_b
    return (a, b) if a <= b else (b, a)


def rank(rounds: Iterable[RoundOutcome]) -> list[ChallengingPair]:
    """Rank unordered pairs by (mistake count, mean latency), both descending.

    Only pairs with at least one mistake are returned, unless there are no
    mistakes anywhere, in which case every pair is returned slowest first.
    """
    stats: dict[tuple[int, int], _PairStats] = {}
    for outcome in rounds:
        stats.setdefault(_key(outcome), _PairStats()).add(outcome)
    if not stats:
        return []

    pairs = [s.to_pair(k) for k, s in stats.items()]
    mistaken = [p for p in pairs if p.mistake_count > 0]
    if mistaken:
        return sorted(mistaken, key=lambda p: (p.mistake_count, p.avg_latency_ms), reverse=True)
    return sorted(pairs, key=lambda p: p.avg_latency_ms, reverse=True)


def tricky_numbers(pairs: Iterable[ChallengingPair], *, limit: int = MAX_TRICKY_NUMBERS) -> list[int]:
    """Distinct factors of the ranked pairs, most challenging first, shown ascending."""
    picked: list[int] = []
    for p in pairs:
        for factor in (p.factor_a, p.factor_b):
            if factor not in picked and len(picked) < limit:
                picked.append(factor)
        if len(picked) >= limit:
            break
    return sorted(picked)


class MistakeLatencyPolicy:
    def rank_games(self, games: Sequence[Sequence[RoundOutcome]]) -> list[ChallengingPair]:
        return rank(o for game in games for o in game)


@dataclass(frozen=True, slots=True)
class DifficultyRatioPolicy:
    """Keeps answers that were wrong or slower than ``slow_ratio`` x their game average."""

    slow_ratio: float = 1.5

    def __post_init__(self) -> None:
        if self.slow_ratio <= 0:
            raise ValueError("slow_ratio must be > 0")

    def rank_games(self, games: Sequence[Sequence[RoundOutcome]]) -> list[ChallengingPair]:
        stats: dict[tuple[int, int], _PairStats] = {}
        worst: dict[tuple[int, int], float] = {}
        for game in games:
            if not game:
                continue
            average = sum(float(o.elapsed_ms) for o in game) / len(game)
            for o in game:
                ratio = float(o.elapsed_ms) / average if average > 0 else 0.0
                if o.is_correct and ratio < self.slow_ratio:
                    continue
                key = _key(o)
                stats.setdefault(key, _PairStats()).add(o)
                worst[key] = max(worst.get(key, 0.0), ratio)

        ordered = sorted(stats, key=lambda k: worst[k], reverse=True)
        return [stats[k].to_pair(k) for k in ordered]


def recent_games(
    games: Iterable[Sequence[RoundOutcome] | None],
    *,
    window: int = MAX_GAME_WINDOW,
) -> list[Sequence[RoundOutcome]]:
    """The last ``window`` games that carry per-round detail, oldest first."""
    detailed = [g for g in games if g]
    if window <= 0:
        return []
    return detailed[-window:]


def recent_outcomes(
    games: Iterable[Sequence[RoundOutcome] | None],
    *,
    window: int = MAX_GAME_WINDOW,
) -> list[RoundOutcome]:
    return [o for game in recent_games(games, window=window) for o in game]


def challenging_pairs_for(
    games: Iterable[Sequence[RoundOutcome] | None],
    *,
    policy: RankingPolicy | None = None,
    window: int = MAX_GAME_WINDOW,
) -> list[ChallengingPair]:
    """Rank the player's recent history with ``policy`` (mistakes/latency by default)."""
    chosen = MistakeLatencyPolicy() if policy is None else policy
    return chosen.rank_games(recent_games(games, window=window))
