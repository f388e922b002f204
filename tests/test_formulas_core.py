from __future__ import annotations

import random

from turbotiply.challenge import RoundOutcome, rank
from turbotiply.formulas import (
    FACTOR_MAX,
    FACTOR_MIN,
    GAME_LENGTH,
    Formula,
    HiddenPosition,
    all_unordered_pairs,
    fisher_yates_shuffle,
    generate_practice,
    generate_primary,
    validate_batch,
)


def _assert_well_formed(batch: list[Formula]) -> None:
    assert len(batch) == GAME_LENGTH
    assert len({f.pair for f in batch}) == GAME_LENGTH
    for f in batch:
        assert FACTOR_MIN <= f.factor_a <= FACTOR_MAX
        assert FACTOR_MIN <= f.factor_b <= FACTOR_MAX
        assert f.product == f.factor_a * f.factor_b
        assert f.hidden in (HiddenPosition.A, HiddenPosition.B, HiddenPosition.C)
        assert f.prompt.count("?") == 1
    assert validate_batch(batch)


def test_pair_universe() -> None:
    pairs = all_unordered_pairs()
    assert len(pairs) == 66
    assert len(set(pairs)) == 66
    assert pairs[0] == (2, 2)
    assert pairs[-1] == (12, 12)
    assert all(a <= b for a, b in pairs)


def test_primary_batches_are_well_formed_across_seeds() -> None:
    for seed in range(200):
        _assert_well_formed(generate_primary(random.Random(seed).random))


def test_primary_is_deterministic_for_same_seed() -> None:
    b1 = generate_primary(random.Random(99).random)
    b2 = generate_primary(random.Random(99).random)
    assert b1 == b2


def test_primary_without_injected_source_still_well_formed() -> None:
    _assert_well_formed(generate_primary())


def test_degenerate_random_sources_do_not_break_generation() -> None:
    _assert_well_formed(generate_primary(lambda: 0.0))
    _assert_well_formed(generate_primary(lambda: 1.0))
    _assert_well_formed(generate_practice([], lambda: 0.999999))


def test_answer_follows_hidden_position() -> None:
    assert Formula.of(3, 7, HiddenPosition.A).answer == 3
    assert Formula.of(3, 7, HiddenPosition.B).answer == 7
    assert Formula.of(3, 7, HiddenPosition.C).answer == 21
    assert Formula.of(4, 5, HiddenPosition.A).prompt == "? × 5 = 20"


def test_practice_includes_all_weak_pairs_when_fewer_than_ten() -> None:
    weak = [(7, 8), (9, 6), (12, 11)]
    for seed in range(50):
        batch = generate_practice(weak, random.Random(seed).random)
        _assert_well_formed(batch)
        pairs = {f.pair for f in batch}
        assert {(7, 8), (6, 9), (11, 12)} <= pairs


def test_practice_takes_only_first_ten_weak_pairs() -> None:
    weak = all_unordered_pairs()[::-1][:15]
    batch = generate_practice(weak, random.Random(1).random)
    _assert_well_formed(batch)
    assert {f.pair for f in batch} == set(weak[:10])


def test_practice_skips_duplicates_and_out_of_range_pairs() -> None:
    weak = [(3, 4), (4, 3), (1, 5), (13, 2), (6, 6)]
    batch = generate_practice(weak, random.Random(5).random)
    _assert_well_formed(batch)
    pairs = {f.pair for f in batch}
    assert (3, 4) in pairs and (6, 6) in pairs
    assert (1, 5) not in pairs


def test_practice_duplicate_entry_lets_the_eleventh_pair_in() -> None:
    pool = all_unordered_pairs()[::-1]
    weak = [pool[0], pool[0]] + pool[1:12]
    batch = generate_practice(weak, random.Random(2).random)
    _assert_well_formed(batch)
    assert {f.pair for f in batch} == set(pool[:10])


def test_practice_accepts_ranked_pairs_and_skips_malformed_entries() -> None:
    ranked = rank(
        [
            RoundOutcome(3, 4, False, 2500.0),
            RoundOutcome(9, 7, False, 4100.0),
            RoundOutcome(9, 7, False, 3900.0),
            RoundOutcome(5, 5, True, 1200.0),
        ]
    )
    assert [p.pair for p in ranked] == [(7, 9), (3, 4)]
    weak = [(1, 2, 3), ("x", 4), None, 5, *ranked, float("nan"), (11, "12")]
    for seed in range(20):
        batch = generate_practice(weak, random.Random(seed).random)
        _assert_well_formed(batch)
        assert {(7, 9), (3, 4), (11, 12)} <= {f.pair for f in batch}


def test_practice_order_is_shuffled() -> None:
    weak = all_unordered_pairs()[:10]
    orders = {tuple(f.pair for f in generate_practice(weak, random.Random(s).random)) for s in range(20)}
    assert len(orders) > 1


def test_shuffle_is_permutation() -> None:
    items = list(range(30))
    out = fisher_yates_shuffle(list(items), random.Random(3).random)
    assert sorted(out) == items


def test_validate_batch_rejects_duplicates() -> None:
    batch = generate_primary(random.Random(0).random)
    dup = batch[:9] + [Formula.of(batch[0].factor_b, batch[0].factor_a, HiddenPosition.C)]
    assert not validate_batch(dup)
    assert not validate_batch(batch[:9])
