"""Round-by-round state machine for one game.

    NOT_STARTED -> PLAYING -> COMPLETED
                           -> REPLAY -> (REPLAY ...) -> COMPLETED

The primary pass walks all ten rounds. Any round answered wrong there is
queued for a replay pass that loops until each queued round has been
answered correctly after being queued. Replay answers never touch the score.

Transitions are pure: ``reduce(state, action)`` returns a new ``GameState``
and never raises. An action that is not valid in the current state returns
the input state unchanged. ``RoundEngine`` wraps the reducer for callers
that prefer an object holding the current snapshot.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass, replace
from enum import Enum

from .challenge import RoundOutcome
from .formulas import GAME_LENGTH, Formula
from .scoring import DEFAULT_POLICY, ScoringPolicy

logger = logging.getLogger(__name__)


class GameStatus(str, Enum):
    NOT_STARTED = "not_started"
    PLAYING = "playing"
    REPLAY = "replay"
    COMPLETED = "completed"


class RoundPhase(str, Enum):
    INPUT = "input"
    FEEDBACK = "feedback"


class GameMode(str, Enum):
    STANDARD = "standard"
    PRACTICE = "practice"


@dataclass(frozen=True, slots=True)
class Round:
    formula: Formula
    player_answer: int | None = None
    is_correct: bool | None = None
    elapsed_ms: float | None = None
    points: int | None = None  # primary STANDARD attempts only
    first_try_correct: bool | None = None
    first_elapsed_ms: float | None = None


@dataclass(frozen=True, slots=True)
class GameState:
    status: GameStatus = GameStatus.NOT_STARTED
    rounds: tuple[Round, ...] = ()
    replay_queue: tuple[int, ...] = ()
    current_index: int = 0
    phase: RoundPhase = RoundPhase.INPUT
    score: int = 0
    mode: GameMode = GameMode.STANDARD


INITIAL_STATE = GameState()


@dataclass(frozen=True, slots=True)
class Start:
    formulas: tuple[Formula, ...]
    mode: GameMode = GameMode.STANDARD


@dataclass(frozen=True, slots=True)
class SubmitAnswer:
    value: int
    elapsed_ms: float


@dataclass(frozen=True, slots=True)
class Advance:
    pass


@dataclass(frozen=True, slots=True)
class Reset:
    pass


Action = Start | SubmitAnswer | Advance | Reset


def correct_answer(formula: Formula) -> int:
    return formula.answer


def active_round_index(state: GameState) -> int | None:
    """Slot in ``rounds`` the player is currently on, or None outside play."""
    if state.status is GameStatus.PLAYING:
        idx = state.current_index
    elif state.status is GameStatus.REPLAY:
        if not (0 <= state.current_index < len(state.replay_queue)):
            return None
        idx = state.replay_queue[state.current_index]
    else:
        return None
    return idx if 0 <= idx < len(state.rounds) else None


def active_round(state: GameState) -> Round | None:
    idx = active_round_index(state)
    return None if idx is None else state.rounds[idx]


def reduce(state: GameState, action: Action, *, policy: ScoringPolicy = DEFAULT_POLICY) -> GameState:
    if isinstance(action, Start):
        return _start(state, action)
    if isinstance(action, SubmitAnswer):
        return _submit(state, action, policy)
    if isinstance(action, Advance):
        return _advance(state)
    if isinstance(action, Reset):
        return INITIAL_STATE
    return state


def _start(state: GameState, action: Start) -> GameState:
    if state.status is not GameStatus.NOT_STARTED:
        logger.debug("start ignored: status=%s", state.status.value)
        return state
    if len(action.formulas) != GAME_LENGTH:
        logger.debug("start ignored: got %d formulas", len(action.formulas))
        return state
    return GameState(
        status=GameStatus.PLAYING,
        rounds=tuple(Round(formula=f) for f in action.formulas),
        replay_queue=(),
        current_index=0,
        phase=RoundPhase.INPUT,
        score=0,
        mode=action.mode,
    )


def _submit(state: GameState, action: SubmitAnswer, policy: ScoringPolicy) -> GameState:
    if state.phase is not RoundPhase.INPUT:
        logger.debug("submit ignored: phase=%s", state.phase.value)
        return state
    if state.status not in (GameStatus.PLAYING, GameStatus.REPLAY):
        logger.debug("submit ignored: status=%s", state.status.value)
        return state

    idx = active_round_index(state)
    if idx is None:
        return state

    current = state.rounds[idx]
    is_correct = action.value == current.formula.answer
    primary = state.status is GameStatus.PLAYING

    points = current.points
    score = state.score
    if primary and state.mode is GameMode.STANDARD:
        points = policy.score(is_correct, action.elapsed_ms)
        score += points

    updated = replace(
        current,
        player_answer=action.value,
        is_correct=is_correct,
        elapsed_ms=action.elapsed_ms,
        points=points,
        first_try_correct=is_correct if primary else current.first_try_correct,
        first_elapsed_ms=action.elapsed_ms if primary else current.first_elapsed_ms,
    )
    rounds = state.rounds[:idx] + (updated,) + state.rounds[idx + 1 :]

    queue = state.replay_queue
    if not primary and not is_correct:
        queue = queue + (idx,)

    return replace(state, rounds=rounds, replay_queue=queue, score=score, phase=RoundPhase.FEEDBACK)


def _advance(state: GameState) -> GameState:
    if state.phase is not RoundPhase.FEEDBACK:
        logger.debug("advance ignored: phase=%s", state.phase.value)
        return state

    if state.status is GameStatus.PLAYING:
        if state.current_index < len(state.rounds) - 1:
            return replace(state, current_index=state.current_index + 1, phase=RoundPhase.INPUT)
        failed = tuple(i for i, r in enumerate(state.rounds) if r.is_correct is False)
        if not failed:
            return replace(state, status=GameStatus.COMPLETED, phase=RoundPhase.INPUT)
        return replace(
            state,
            status=GameStatus.REPLAY,
            replay_queue=failed,
            current_index=0,
            phase=RoundPhase.INPUT,
        )

    if state.status is GameStatus.REPLAY:
        # Wrong replay answers were appended during submit, so the length
        # check below already accounts for them.
        nxt = state.current_index + 1
        if nxt < len(state.replay_queue):
            return replace(state, current_index=nxt, phase=RoundPhase.INPUT)
        return replace(state, status=GameStatus.COMPLETED, phase=RoundPhase.INPUT)

    return state


def extract_round_outcomes(rounds: Sequence[Round]) -> list[RoundOutcome]:
    """Primary-phase outcomes for the history store.

    Replay overwrites ``is_correct``/``elapsed_ms`` on the slot, so these come
    from the first-attempt fields instead.
    """
    out: list[RoundOutcome] = []
    for r in rounds[:GAME_LENGTH]:
        first = r.first_try_correct if r.first_try_correct is not None else r.is_correct
        elapsed = r.first_elapsed_ms if r.first_elapsed_ms is not None else r.elapsed_ms
        out.append(
            RoundOutcome(
                factor_a=r.formula.factor_a,
                factor_b=r.formula.factor_b,
                is_correct=bool(first),
                elapsed_ms=float(elapsed or 0.0),
            )
        )
    return out


class RoundEngine:
    """Holds the single GameState of a session and applies actions to it.

    Each method returns True when the action was applied and False when it was
    ignored. ``reset`` is always applied.
    """

    def __init__(self, *, policy: ScoringPolicy = DEFAULT_POLICY) -> None:
        self._policy = policy
        self._state = INITIAL_STATE

    @property
    def state(self) -> GameState:
        return self._state

    def snapshot(self) -> GameState:
        return self._state

    def dispatch(self, action: Action) -> bool:
        nxt = reduce(self._state, action, policy=self._policy)
        changed = nxt is not self._state
        self._state = nxt
        return changed

    def start(self, formulas: Sequence[Formula], mode: GameMode = GameMode.STANDARD) -> bool:
        return self.dispatch(Start(formulas=tuple(formulas), mode=mode))

    def submit_answer(self, value: int, elapsed_ms: float) -> bool:
        return self.dispatch(SubmitAnswer(value=value, elapsed_ms=elapsed_ms))

    def advance(self) -> bool:
        return self.dispatch(Advance())

    def reset(self) -> bool:
        # Always applied, even when the engine is already in its initial state.
        self.dispatch(Reset())
        return True

    def active_round(self) -> Round | None:
        return active_round(self._state)
