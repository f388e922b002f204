from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class ScoringTier:
    max_ms: float  # inclusive
    points: int


# Checked in order, first match wins.
SCORING_TIERS: tuple[ScoringTier, ...] = (
    ScoringTier(max_ms=2000, points=5),
    ScoringTier(max_ms=3000, points=3),
    ScoringTier(max_ms=4000, points=2),
    ScoringTier(max_ms=5000, points=1),
)

DEFAULT_POINTS = 0
INCORRECT_PENALTY = -2

# The countdown bar runs out exactly at the last tier boundary.
COUNTDOWN_DURATION_MS = 5000


@dataclass(frozen=True, slots=True)
class ScoringPolicy:
    """Maps (correctness, latency) to points using an ascending tier table."""

    tiers: tuple[ScoringTier, ...] = SCORING_TIERS
    penalty: int = INCORRECT_PENALTY
    default_points: int = DEFAULT_POINTS

    def __post_init__(self) -> None:
        if not self.tiers:
            raise ValueError("tiers must not be empty")
        bounds = [t.max_ms for t in self.tiers]
        if any(b <= a for a, b in zip(bounds, bounds[1:])):
            raise ValueError("tiers must be strictly ascending by max_ms")

    def tier_index(self, elapsed_ms: float) -> int:
        """Index of the first tier covering elapsed_ms, or len(tiers) if none does."""
        for i, tier in enumerate(self.tiers):
            if elapsed_ms <= tier.max_ms:
                return i
        return len(self.tiers)

    def score(self, is_correct: bool, elapsed_ms: float) -> int:
        if not is_correct:
            return self.penalty
        idx = self.tier_index(elapsed_ms)
        if idx < len(self.tiers):
            return self.tiers[idx].points
        return self.default_points


DEFAULT_POLICY = ScoringPolicy()


def score(is_correct: bool, elapsed_ms: float) -> int:
    return DEFAULT_POLICY.score(is_correct, elapsed_ms)
