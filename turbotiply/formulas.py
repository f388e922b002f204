"""Formula generation for a single game.

Each game presents ten multiplication facts drawn from the unordered pair
universe ``FACTOR_MIN <= a <= b <= FACTOR_MAX``. Every function that draws
randomness takes an explicit ``random`` callable returning floats in
``[0, 1)`` so batches are reproducible under a seeded source; only the
production default falls back to a module-owned ``random.Random``.
"""

from __future__ import annotations

import logging
import random as _random
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass
from enum import Enum
from typing import TypeVar

from .challenge import ChallengingPair

logger = logging.getLogger(__name__)

T = TypeVar("T")

RandomSource = Callable[[], float]

FACTOR_MIN = 2
FACTOR_MAX = 12
GAME_LENGTH = 10

_PLATFORM_RNG = _random.Random()


class HiddenPosition(str, Enum):
    A = "A"
    B = "B"
    C = "C"


_HIDDEN_POSITIONS = (HiddenPosition.A, HiddenPosition.B, HiddenPosition.C)


@dataclass(frozen=True, slots=True)
class Formula:
    factor_a: int
    factor_b: int
    product: int
    hidden: HiddenPosition

    @classmethod
    def of(cls, factor_a: int, factor_b: int, hidden: HiddenPosition) -> "Formula":
        return cls(factor_a=factor_a, factor_b=factor_b, product=factor_a * factor_b, hidden=hidden)

    @property
    def answer(self) -> int:
        """The withheld value the player must supply."""
        if self.hidden is HiddenPosition.A:
            return self.factor_a
        if self.hidden is HiddenPosition.B:
            return self.factor_b
        return self.product

    @property
    def pair(self) -> tuple[int, int]:
        return normalize_pair(self.factor_a, self.factor_b)

    @property
    def prompt(self) -> str:
        a = "?" if self.hidden is HiddenPosition.A else str(self.factor_a)
        b = "?" if self.hidden is HiddenPosition.B else str(self.factor_b)
        c = "?" if self.hidden is HiddenPosition.C else str(self.product)
        return f"{a} × {b} = {c}"


def normalize_pair(a: int, b: int) -> tuple[int, int]:
    return (a, b) if a <= b else (b, a)


def in_factor_range(a: int, b: int) -> bool:
    return FACTOR_MIN <= a <= FACTOR_MAX and FACTOR_MIN <= b <= FACTOR_MAX


def all_unordered_pairs() -> list[tuple[int, int]]:
    """All 66 pairs (a, b) with FACTOR_MIN <= a <= b <= FACTOR_MAX, lexicographic."""
    return [(a, b) for a in range(FACTOR_MIN, FACTOR_MAX + 1) for b in range(a, FACTOR_MAX + 1)]


def _draw_index(random: RandomSource, n: int) -> int:
    # Clamp so a misbehaving source (1.0, negatives) can't index out of range.
    idx = int(random() * n)
    return min(max(idx, 0), n - 1)


def fisher_yates_shuffle(items: list[T], random: RandomSource) -> list[T]:
    """Shuffle ``items`` in place and return it."""
    for i in range(len(items) - 1, 0, -1):
        j = _draw_index(random, i + 1)
        items[i], items[j] = items[j], items[i]
    return items


def _dress(pair: tuple[int, int], random: RandomSource) -> Formula:
    a, b = pair
    hidden = _HIDDEN_POSITIONS[_draw_index(random, len(_HIDDEN_POSITIONS))]
    if random() < 0.5:
        a, b = b, a
    return Formula.of(a, b, hidden)


def generate_primary(random: RandomSource | None = None) -> list[Formula]:
    """Ten formulas with distinct unordered pairs, uniformly drawn from the pool."""
    rnd = _PLATFORM_RNG.random if random is None else random
    pairs = fisher_yates_shuffle(all_unordered_pairs(), rnd)
    return [_dress(p, rnd) for p in pairs[:GAME_LENGTH]]


def _weak_pair(entry: object) -> tuple[int, int] | None:
    """Normalised pair for a ranked entry or a 2-tuple, None if malformed."""
    try:
        if isinstance(entry, ChallengingPair):
            a, b = entry.factor_a, entry.factor_b
        else:
            a, b = entry  # type: ignore[misc]
        return normalize_pair(int(a), int(b))
    except (TypeError, ValueError, OverflowError):
        return None


def generate_practice(
    weak_pairs: Iterable[ChallengingPair | tuple[int, int]],
    random: RandomSource | None = None,
) -> list[Formula]:
    """Ten formulas biased toward ``weak_pairs`` (most challenging first).

    Entries may be ``ChallengingPair`` values or ``(a, b)`` tuples. Up to the
    first ten usable entries are kept: malformed, out-of-range and duplicate
    entries are skipped and later entries take their place. Remaining slots
    are filled from a shuffle of the full pool. The final batch is shuffled
    so the weak pairs are not predictably first.
    """
    rnd = _PLATFORM_RNG.random if random is None else random

    chosen: list[tuple[int, int]] = []
    seen: set[tuple[int, int]] = set()
    for entry in weak_pairs:
        if len(chosen) >= GAME_LENGTH:
            break
        pair = _weak_pair(entry)
        if pair is None:
            logger.debug("skipping malformed weak pair %r", entry)
            continue
        if not in_factor_range(*pair) or pair in seen:
            logger.debug("skipping weak pair %s", pair)
            continue
        chosen.append(pair)
        seen.add(pair)

    if len(chosen) < GAME_LENGTH:
        logger.debug("filling %d practice slots from the random pool", GAME_LENGTH - len(chosen))
        for pair in fisher_yates_shuffle(all_unordered_pairs(), rnd):
            if len(chosen) >= GAME_LENGTH:
                break
            if pair not in seen:
                chosen.append(pair)
                seen.add(pair)

    formulas = [_dress(p, rnd) for p in chosen]
    return fisher_yates_shuffle(formulas, rnd)


def validate_batch(formulas: Sequence[Formula]) -> bool:
    """True when the batch is a well-formed game: ten distinct in-range facts."""
    if len(formulas) != GAME_LENGTH:
        return False
    pairs = set()
    for f in formulas:
        if not in_factor_range(f.factor_a, f.factor_b):
            return False
        if f.product != f.factor_a * f.factor_b:
            return False
        pairs.add(f.pair)
    return len(pairs) == GAME_LENGTH
