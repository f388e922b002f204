from __future__ import annotations

import pytest

from turbotiply.formulas import Formula, HiddenPosition, all_unordered_pairs
from turbotiply.round_engine import (
    INITIAL_STATE,
    Advance,
    GameMode,
    GameState,
    GameStatus,
    Reset,
    RoundEngine,
    RoundPhase,
    Start,
    SubmitAnswer,
    active_round,
    correct_answer,
    extract_round_outcomes,
    reduce,
)


def _formulas() -> list[Formula]:
    return [Formula.of(a, b, HiddenPosition.C) for a, b in all_unordered_pairs()[:10]]


def _answer_primary(engine: RoundEngine, wrong: set[int], elapsed_ms: float = 1000.0) -> None:
    for i in range(10):
        expected = engine.state.rounds[i].formula.answer
        value = expected + 1 if i in wrong else expected
        assert engine.submit_answer(value, elapsed_ms)
        assert engine.advance()


def _answer_active(engine: RoundEngine, correct: bool) -> None:
    r = engine.active_round()
    assert r is not None
    value = r.formula.answer if correct else r.formula.answer + 1
    assert engine.submit_answer(value, 3500.0)


def test_start_builds_ten_empty_rounds() -> None:
    engine = RoundEngine()
    assert engine.start(_formulas())
    s = engine.state
    assert s.status is GameStatus.PLAYING
    assert s.phase is RoundPhase.INPUT
    assert len(s.rounds) == 10
    assert s.current_index == 0 and s.score == 0 and s.replay_queue == ()
    assert all(r.player_answer is None and r.points is None for r in s.rounds)


def test_start_requires_not_started_and_ten_formulas() -> None:
    engine = RoundEngine()
    assert not engine.start(_formulas()[:9])
    assert engine.state is INITIAL_STATE
    engine.start(_formulas())
    before = engine.state
    assert not engine.start(_formulas())
    assert engine.state is before


def test_all_fast_correct_completes_with_fifty() -> None:
    engine = RoundEngine()
    engine.start(_formulas())
    _answer_primary(engine, wrong=set(), elapsed_ms=2000.0)
    s = engine.state
    assert s.status is GameStatus.COMPLETED
    assert s.score == 50
    assert s.replay_queue == ()


def test_round_zero_wrong_enters_replay_and_keeps_penalty() -> None:
    engine = RoundEngine()
    engine.start(_formulas())
    _answer_primary(engine, wrong={0})
    s = engine.state
    assert s.status is GameStatus.REPLAY
    assert s.replay_queue == (0,)
    assert s.current_index == 0
    assert s.score == 9 * 5 - 2

    _answer_active(engine, correct=True)
    assert engine.advance()
    s = engine.state
    assert s.status is GameStatus.COMPLETED
    assert s.rounds[0].points == -2
    assert s.rounds[0].is_correct is True
    assert s.rounds[0].first_try_correct is False
    assert s.score == 43


def test_replay_never_changes_score() -> None:
    engine = RoundEngine()
    engine.start(_formulas())
    _answer_primary(engine, wrong={1, 4, 7})
    score = engine.state.score
    for correct in (False, True, False, False, True, True, True, True):
        if engine.state.status is not GameStatus.REPLAY:
            break
        _answer_active(engine, correct)
        engine.advance()
        assert engine.state.score == score
    assert engine.state.status is GameStatus.COMPLETED


def test_wrong_replay_appends_and_completion_requires_every_index_fixed() -> None:
    engine = RoundEngine()
    engine.start(_formulas())
    _answer_primary(engine, wrong={2, 5})
    assert engine.state.replay_queue == (2, 5)

    _answer_active(engine, correct=False)  # round 2 again wrong
    assert engine.state.replay_queue == (2, 5, 2)
    engine.advance()
    _answer_active(engine, correct=True)  # round 5
    engine.advance()
    assert engine.state.status is GameStatus.REPLAY
    _answer_active(engine, correct=False)  # round 2, third try
    assert engine.state.replay_queue == (2, 5, 2, 2)
    engine.advance()
    assert engine.state.status is GameStatus.REPLAY
    r = engine.active_round()
    assert r is not None and r is engine.state.rounds[2]
    _answer_active(engine, correct=True)
    engine.advance()
    assert engine.state.status is GameStatus.COMPLETED
    assert len(engine.state.rounds) == 10


def test_replay_writes_into_original_slot() -> None:
    engine = RoundEngine()
    engine.start(_formulas())
    _answer_primary(engine, wrong={3})
    expected = engine.state.rounds[3].formula.answer
    engine.submit_answer(expected, 1234.0)
    r = engine.state.rounds[3]
    assert r.player_answer == expected
    assert r.elapsed_ms == 1234.0
    assert r.first_elapsed_ms == 1000.0


def test_practice_mode_never_scores() -> None:
    engine = RoundEngine()
    engine.start(_formulas(), GameMode.PRACTICE)
    _answer_primary(engine, wrong={0, 9})
    s = engine.state
    assert s.mode is GameMode.PRACTICE
    assert s.score == 0
    assert all(r.points is None for r in s.rounds)
    assert s.status is GameStatus.REPLAY


@pytest.mark.parametrize(
    "action",
    [Advance(), SubmitAnswer(value=1, elapsed_ms=1.0)],
)
def test_illegal_actions_in_not_started_are_no_ops(action: object) -> None:
    assert reduce(INITIAL_STATE, action) is INITIAL_STATE  # type: ignore[arg-type]


def test_guards_on_phase() -> None:
    s = reduce(INITIAL_STATE, Start(formulas=tuple(_formulas())))
    assert reduce(s, Advance()) is s  # advance during input
    s2 = reduce(s, SubmitAnswer(value=4, elapsed_ms=100.0))
    assert s2.phase is RoundPhase.FEEDBACK
    assert reduce(s2, SubmitAnswer(value=4, elapsed_ms=100.0)) is s2  # double submit


def test_completed_is_terminal_until_reset() -> None:
    engine = RoundEngine()
    engine.start(_formulas())
    _answer_primary(engine, wrong=set())
    done = engine.state
    assert not engine.submit_answer(1, 1.0)
    assert not engine.advance()
    assert not engine.start(_formulas())
    assert engine.state is done
    assert engine.reset()
    assert engine.state == GameState()
    assert engine.start(_formulas())


def test_reset_mid_game() -> None:
    s = reduce(INITIAL_STATE, Start(formulas=tuple(_formulas())))
    s = reduce(s, SubmitAnswer(value=0, elapsed_ms=10.0))
    assert reduce(s, Reset()) == INITIAL_STATE


def test_reset_on_fresh_engine_is_applied() -> None:
    engine = RoundEngine()
    assert engine.reset() is True
    assert engine.state is INITIAL_STATE
    assert engine.reset() is True
    assert engine.start(_formulas())


def test_states_are_immutable_snapshots() -> None:
    engine = RoundEngine()
    engine.start(_formulas())
    snap = engine.snapshot()
    engine.submit_answer(snap.rounds[0].formula.answer, 500.0)
    assert snap.phase is RoundPhase.INPUT
    assert snap.rounds[0].player_answer is None
    with pytest.raises(AttributeError):
        snap.score = 10  # type: ignore[misc]


def test_active_round_is_none_outside_play() -> None:
    assert active_round(INITIAL_STATE) is None


def test_correct_answer_per_hidden_position() -> None:
    assert correct_answer(Formula.of(4, 5, HiddenPosition.A)) == 4
    assert correct_answer(Formula.of(4, 5, HiddenPosition.B)) == 5
    assert correct_answer(Formula.of(4, 5, HiddenPosition.C)) == 20


def test_extract_round_outcomes_uses_first_attempts() -> None:
    engine = RoundEngine()
    engine.start(_formulas())
    _answer_primary(engine, wrong={0}, elapsed_ms=1500.0)
    _answer_active(engine, correct=True)
    engine.advance()
    outcomes = extract_round_outcomes(engine.state.rounds)
    assert len(outcomes) == 10
    assert outcomes[0].is_correct is False
    assert outcomes[0].elapsed_ms == 1500.0
    assert all(o.is_correct for o in outcomes[1:])
