"""Session engine: applies host actions to a ``GameSession``.

``transition(session, action)`` is the only entry point that changes game
state. It never mutates its input and never raises for a bad action: an
action that does not fit the current phase returns the session unchanged
with no events. Gameplay actions push a snapshot first so ``UNDO`` can put
things back; the history is dropped whenever a new round starts.

Actions are plain mappings with a ``type`` key, e.g.::

    transition(session, {'type': 'REVEAL_ANSWER', 'answer_index': 2})
"""

import logging
import random
import time
from collections.abc import Mapping
from dataclasses import replace
from typing import Callable, NamedTuple, Optional, Tuple

from . import rounds
from .rounds import EVENT_GAME_OVER, GameEvent
from .state import (
    PHASE_ENDED,
    SESSION_GAME_OVER,
    SESSION_PLAYING,
    SESSION_SETUP,
    TEAM_IDS,
    GameSession,
    GameSettings,
    GameSnapshot,
    QuestionPack,
    Teams,
)

logger = logging.getLogger(__name__)

DEFAULT_HISTORY_LIMIT = 50


class Transition(NamedTuple):
    session: GameSession
    events: Tuple[GameEvent, ...] = ()


class _Context(NamedTuple):
    history_limit: int
    rng: random.Random
    clock: Callable[[], float]


def new_session(settings: Optional[GameSettings] = None) -> GameSession:
    settings = settings or GameSettings()
    return GameSession(settings=settings, teams=Teams.named(settings.team_a_name, settings.team_b_name))


def apply_action(session: GameSession, action, **kwargs) -> GameSession:
    return transition(session, action, **kwargs).session


def transition(session: GameSession, action, history_limit: int = DEFAULT_HISTORY_LIMIT,
               rng: Optional[random.Random] = None,
               clock: Callable[[], float] = time.time) -> Transition:
    action_type = action.get('type') if isinstance(action, Mapping) else None
    handler = _HANDLERS.get(action_type)
    if handler is None:
        logger.warning(f"[noop] unknown action type {action_type!r}")
        return Transition(session)
    ctx = _Context(max(1, int(history_limit)), rng or random.Random(), clock)
    result = handler(session, action, ctx)
    if result is None:
        logger.debug(f"[noop] {action_type} rejected phase={session.phase} "
                     f"round_phase={session.current_round.phase if session.current_round else None}")
        return Transition(session)
    return result


# ---- History ----

def _snapshot(session: GameSession, label: str, ctx: _Context) -> GameSnapshot:
    return GameSnapshot(
        teams=session.teams,
        round_index=session.round_index,
        current_round=session.current_round,
        action=label,
        timestamp=ctx.clock(),
    )


def _push(session: GameSession, label: str, ctx: _Context) -> Tuple[GameSnapshot, ...]:
    history = session.history + (_snapshot(session, label, ctx),)
    return history[-ctx.history_limit:]


def _undo(session: GameSession, action, ctx):
    if not session.history:
        return None
    last = session.history[-1]
    restored = replace(
        session,
        teams=last.teams,
        round_index=last.round_index,
        current_round=last.current_round,
        history=session.history[:-1],
    )
    logger.debug(f"[undo] reverted '{last.action}'")
    return Transition(restored)


# ---- Session lifecycle ----

def _coerce(value, cls):
    if isinstance(value, Mapping):
        return cls.from_dict(value)
    return value


def _start_game(session: GameSession, action, ctx):
    if session.phase != SESSION_SETUP:
        return None
    settings = _coerce(action.get('settings'), GameSettings)
    pack = _coerce(action.get('question_pack'), QuestionPack)
    if not isinstance(settings, GameSettings) or not isinstance(pack, QuestionPack) or not pack.rounds:
        return None
    # Shuffled once here; the order then holds for the whole session.
    shuffled = replace(pack, rounds=tuple(ctx.rng.sample(pack.rounds, len(pack.rounds))))
    started = GameSession(
        phase=SESSION_PLAYING,
        settings=settings,
        teams=Teams.named(settings.team_a_name, settings.team_b_name),
        question_pack=shuffled,
    )
    logger.info(f"[start] '{pack.title}' rounds={started.total_rounds} strike_limit={settings.strike_limit}")
    return Transition(_enter_round(started, 0))


def _enter_round(session: GameSession, index: int) -> GameSession:
    question = session.question_pack.rounds[index]
    return replace(
        session,
        round_index=index,
        current_round=rounds.new_round(index, session.settings.multiplier_for(index), len(question.answers)),
        history=(),
    )


def _leader(teams: Teams) -> Optional[str]:
    if teams.A.score == teams.B.score:
        return None
    return 'A' if teams.A.score > teams.B.score else 'B'


def _advance(session: GameSession):
    next_index = session.round_index + 1
    if next_index >= session.total_rounds:
        logger.info(f"[finish] game over after round={session.round_index + 1} "
                    f"score A={session.teams.A.score} B={session.teams.B.score}")
        over = replace(session, phase=SESSION_GAME_OVER, current_round=None, history=())
        return Transition(over, (GameEvent(EVENT_GAME_OVER, _leader(session.teams)),))
    logger.info(f"[next_round] advance round {session.round_index + 1} -> {next_index + 1}")
    return Transition(_enter_round(session, next_index))


def _next_round(session: GameSession, action, ctx):
    if not _in_round(session) or session.current_round.phase != PHASE_ENDED:
        return None
    return _advance(session)


def _skip_round(session: GameSession, action, ctx):
    if not _in_round(session) or session.current_round.phase == PHASE_ENDED:
        return None
    return _advance(session)


def _restart_game(session: GameSession, action, ctx):
    if session.phase == SESSION_SETUP or not session.question_pack:
        return None
    teams = replace(session.teams, A=replace(session.teams.A, score=0), B=replace(session.teams.B, score=0))
    restarted = replace(session, phase=SESSION_PLAYING, teams=teams)
    return Transition(_enter_round(restarted, 0))


def _reset_all(session: GameSession, action, ctx):
    return Transition(new_session())


# ---- Score corrections (not undoable) ----

def _adjust_score(session: GameSession, action, ctx):
    team, amount = action.get('team'), action.get('amount')
    if session.phase == SESSION_SETUP or team not in TEAM_IDS or not _is_int(amount):
        return None
    return Transition(replace(session, teams=session.teams.credit(team, amount)))


def _set_score(session: GameSession, action, ctx):
    team, score = action.get('team'), action.get('score')
    if session.phase == SESSION_SETUP or team not in TEAM_IDS or not _is_int(score):
        return None
    return Transition(replace(session, teams=session.teams.with_score(team, score)))


def _is_int(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


# ---- Round actions ----

def _in_round(session: GameSession) -> bool:
    return session.phase == SESSION_PLAYING and session.current_round is not None


def _round_action(step_fn, label_fn=None):
    """Wrap a ``rounds`` step as a session handler.

    With ``label_fn`` the pre-step state is pushed onto the history under
    that label; without it the step is cosmetic and not undoable.
    """
    def handler(session: GameSession, action, ctx):
        if not _in_round(session):
            return None
        step = step_fn(session, action)
        if step is None:
            return None
        updated = replace(session, current_round=step.state)
        if step.award:
            updated = replace(updated, teams=updated.teams.credit(step.award.team, step.award.points))
            logger.info(f"[settle] round={session.round_index + 1} team={step.award.team} points={step.award.points}")
        if label_fn is not None:
            updated = replace(updated, history=_push(session, label_fn(action), ctx))
        return Transition(updated, step.events)
    return handler


def _strike_limit(session: GameSession) -> int:
    return session.settings.strike_limit


def _answer_label(action, key='answer_index'):
    index = action.get(key)
    return index + 1 if _is_int(index) else index


_HANDLERS = {
    'START_GAME': _start_game,
    'FACEOFF_SET_BUZZER': _round_action(
        lambda s, a: rounds.faceoff_set_buzzer(s.current_round, a.get('team'))),
    'FACEOFF_CORRECT': _round_action(
        lambda s, a: rounds.faceoff_correct(s.current_round, s.round, a.get('team'), a.get('answer_index')),
        lambda a: f"Faceoff: Team {a.get('team')} got answer {_answer_label(a)}"),
    'FACEOFF_STRIKE': _round_action(
        lambda s, a: rounds.faceoff_strike(s.current_round, s.round, a.get('team')),
        lambda a: f"Faceoff: Team {a.get('team')} got a strike"),
    'FACEOFF_SET_WINNER': _round_action(
        lambda s, a: rounds.faceoff_set_winner(s.current_round, a.get('team')),
        lambda a: f"Faceoff: Team {a.get('team')} declared winner"),
    'FACEOFF_DECIDE': _round_action(
        lambda s, a: rounds.faceoff_decide(s.current_round, a.get('team'), a.get('choice')),
        lambda a: f"Team {a.get('team')} chose to {a.get('choice')}"),
    'REVEAL_ANSWER': _round_action(
        lambda s, a: rounds.reveal_answer(s.current_round, s.round, a.get('answer_index')),
        lambda a: f"Revealed answer {_answer_label(a)}"),
    'ADD_STRIKE': _round_action(
        lambda s, a: rounds.add_strike(s.current_round, _strike_limit(s)),
        lambda a: 'Strike added'),
    'REMOVE_STRIKE': _round_action(
        lambda s, a: rounds.remove_strike(s.current_round, _strike_limit(s)),
        lambda a: 'Strike removed'),
    'ENTER_STEAL_MODE': _round_action(
        lambda s, a: rounds.enter_steal_mode(s.current_round, _strike_limit(s)),
        lambda a: 'Entered steal mode'),
    'SET_STEAL_GUESS': _round_action(
        lambda s, a: rounds.set_steal_guess(s.current_round, a.get('guess'))),
    'RESOLVE_STEAL': _round_action(
        lambda s, a: rounds.resolve_steal(s.current_round, s.round, a.get('success'), a.get('match_index')),
        lambda a: 'Steal resolved'),
    'END_ROUND': _round_action(
        lambda s, a: rounds.end_round(s.current_round, a.get('winning_team')),
        lambda a: f"Round ended, Team {a.get('winning_team')} wins"),
    'REVEAL_ALL': _round_action(
        lambda s, a: rounds.reveal_all(s.current_round, s.round),
        lambda a: 'All answers revealed'),
    'NEXT_ROUND': _next_round,
    'SKIP_ROUND': _skip_round,
    'UNDO': _undo,
    'ADJUST_SCORE': _adjust_score,
    'SET_SCORE': _set_score,
    'RESTART_GAME': _restart_game,
    'RESET_ALL': _reset_all,
}

ACTION_TYPES = frozenset(_HANDLERS)
