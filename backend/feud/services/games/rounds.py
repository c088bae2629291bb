"""Round state machine: faceoff -> play -> steal -> ended.

Each step takes the current ``RoundState`` (plus the question it belongs
to) and returns a ``Step`` describing the new state, the points to credit
if the step settled the round, and the events it produced. A step that is
not allowed in the current phase returns ``None`` and the caller keeps the
old state.
"""

from dataclasses import replace
from typing import NamedTuple, Optional, Tuple

from .state import (
    PHASE_ENDED,
    PHASE_FACEOFF,
    PHASE_PLAY,
    PHASE_STEAL,
    TEAM_IDS,
    TURN_DECIDE,
    FaceoffState,
    Round,
    RoundState,
    other_team,
)

EVENT_REVEAL = 'reveal'
EVENT_STRIKE = 'strike'
EVENT_FACEOFF_DECIDE = 'faceoff_decide'
EVENT_STEAL_SUCCESS = 'steal_success'
EVENT_STEAL_FAILURE = 'steal_failure'
EVENT_ROUND_WIN = 'round_win'
EVENT_GAME_OVER = 'game_over'

CHOICE_PLAY = 'play'
CHOICE_PASS = 'pass'


class GameEvent(NamedTuple):
    kind: str
    team: Optional[str] = None
    answer_index: Optional[int] = None
    points: Optional[int] = None

    def to_dict(self):
        return {
            'kind': self.kind,
            'team': self.team,
            'answerIndex': self.answer_index,
            'points': self.points,
        }


class Award(NamedTuple):
    team: str
    points: int


class Step(NamedTuple):
    state: RoundState
    award: Optional[Award] = None
    events: Tuple[GameEvent, ...] = ()


def new_round(round_index: int, multiplier: int, answer_count: int) -> RoundState:
    return RoundState(
        round_index=round_index,
        revealed=(False,) * answer_count,
        multiplier=multiplier,
        faceoff=FaceoffState(),
    )


def _valid_index(rs: RoundState, index) -> bool:
    return isinstance(index, int) and not isinstance(index, bool) and 0 <= index < len(rs.revealed)


def _reveal(revealed: Tuple[bool, ...], index: int) -> Tuple[bool, ...]:
    return revealed[:index] + (True,) + revealed[index + 1:]


def _settle(rs: RoundState, team: str, events=(), **changes) -> Step:
    """Reveal the whole board, mark the round ended and credit ``team``."""
    state = replace(rs, revealed=(True,) * len(rs.revealed), phase=PHASE_ENDED, **changes)
    points = state.round_pot * state.multiplier
    return Step(state, Award(team, points), tuple(events) + (GameEvent(EVENT_ROUND_WIN, team, points=points),))


# ---- Faceoff ----

def _faceoff_winner(faceoff: FaceoffState, question: Round, last_team: str) -> Optional[str]:
    a_index, b_index = faceoff.team_a_answer_index, faceoff.team_b_answer_index
    if a_index is not None and b_index is not None:
        a_points = question.answers[a_index].points
        b_points = question.answers[b_index].points
        if a_points == b_points:
            return last_team
        return 'A' if a_points > b_points else 'B'
    if a_index is not None:
        return 'A'
    if b_index is not None:
        return 'B'
    # Both struck: the host has to pick.
    return None


def _faceoff_turn_taken(faceoff: FaceoffState, question: Round, team: str) -> FaceoffState:
    if faceoff.has_acted(other_team(team)):
        return replace(
            faceoff,
            current_turn=TURN_DECIDE,
            winner=_faceoff_winner(faceoff, question, team),
        )
    return replace(faceoff, current_turn=other_team(team))


def _can_take_faceoff_turn(rs: RoundState, team: str) -> bool:
    if rs.phase != PHASE_FACEOFF or team not in TEAM_IDS:
        return False
    return rs.faceoff.current_turn == team and not rs.faceoff.has_acted(team)


def faceoff_set_buzzer(rs: RoundState, team: str) -> Optional[Step]:
    """Hand the next faceoff turn to whichever team buzzed in."""
    if rs.phase != PHASE_FACEOFF or team not in TEAM_IDS:
        return None
    if rs.faceoff.current_turn == TURN_DECIDE or rs.faceoff.has_acted(team):
        return None
    return Step(replace(rs, faceoff=replace(rs.faceoff, current_turn=team)))


def faceoff_correct(rs: RoundState, question: Round, team: str, answer_index: int) -> Optional[Step]:
    if not _can_take_faceoff_turn(rs, team) or not _valid_index(rs, answer_index):
        return None
    if rs.revealed[answer_index]:
        return None
    points = question.answers[answer_index].points
    if team == 'A':
        faceoff = replace(rs.faceoff, team_a_answer_index=answer_index)
    else:
        faceoff = replace(rs.faceoff, team_b_answer_index=answer_index)
    state = replace(
        rs,
        revealed=_reveal(rs.revealed, answer_index),
        round_pot=rs.round_pot + points,
        faceoff=_faceoff_turn_taken(faceoff, question, team),
    )
    return Step(state, events=(GameEvent(EVENT_REVEAL, team, answer_index, points),))


def faceoff_strike(rs: RoundState, question: Round, team: str) -> Optional[Step]:
    if not _can_take_faceoff_turn(rs, team):
        return None
    if team == 'A':
        faceoff = replace(rs.faceoff, team_a_strike=True)
    else:
        faceoff = replace(rs.faceoff, team_b_strike=True)
    state = replace(rs, faceoff=_faceoff_turn_taken(faceoff, question, team))
    return Step(state, events=(GameEvent(EVENT_STRIKE, team),))


def faceoff_set_winner(rs: RoundState, team: str) -> Optional[Step]:
    """Manual resolution once both teams have had their turn, e.g. a double strike."""
    if rs.phase != PHASE_FACEOFF or team not in TEAM_IDS:
        return None
    if not (rs.faceoff.has_acted('A') and rs.faceoff.has_acted('B')):
        return None
    if rs.faceoff.winner == team:
        return None
    faceoff = replace(rs.faceoff, winner=team, current_turn=TURN_DECIDE)
    return Step(replace(rs, faceoff=faceoff))


def faceoff_decide(rs: RoundState, team: str, choice: str) -> Optional[Step]:
    if rs.phase != PHASE_FACEOFF or rs.faceoff.winner is None:
        return None
    if team not in TEAM_IDS or choice not in (CHOICE_PLAY, CHOICE_PASS):
        return None
    controller = team if choice == CHOICE_PLAY else other_team(team)
    state = replace(rs, phase=PHASE_PLAY, controller=controller)
    return Step(state, events=(GameEvent(EVENT_FACEOFF_DECIDE, controller),))


# ---- Main play ----

def reveal_answer(rs: RoundState, question: Round, answer_index: int) -> Optional[Step]:
    if rs.phase != PHASE_PLAY or not _valid_index(rs, answer_index):
        return None
    if rs.revealed[answer_index]:
        return None
    points = question.answers[answer_index].points
    state = replace(
        rs,
        revealed=_reveal(rs.revealed, answer_index),
        round_pot=rs.round_pot + points,
    )
    reveal_event = GameEvent(EVENT_REVEAL, rs.controller, answer_index, points)
    if state.all_revealed and state.controller:
        return _settle(state, state.controller, events=(reveal_event,))
    return Step(state, events=(reveal_event,))


def add_strike(rs: RoundState, strike_limit: int) -> Optional[Step]:
    if rs.phase != PHASE_PLAY or rs.strikes >= strike_limit:
        return None
    strikes = rs.strikes + 1
    phase = PHASE_STEAL if strikes >= strike_limit else PHASE_PLAY
    state = replace(rs, strikes=strikes, phase=phase)
    return Step(state, events=(GameEvent(EVENT_STRIKE, rs.controller),))


def remove_strike(rs: RoundState, strike_limit: int) -> Optional[Step]:
    if rs.phase not in (PHASE_PLAY, PHASE_STEAL) or rs.strikes <= 0:
        return None
    phase = rs.phase
    if phase == PHASE_STEAL and rs.strikes == strike_limit:
        phase = PHASE_PLAY
    return Step(replace(rs, strikes=rs.strikes - 1, phase=phase))


def enter_steal_mode(rs: RoundState, strike_limit: int) -> Optional[Step]:
    if rs.phase != PHASE_PLAY:
        return None
    return Step(replace(rs, strikes=strike_limit, phase=PHASE_STEAL))


# ---- Steal ----

def set_steal_guess(rs: RoundState, guess: str) -> Optional[Step]:
    if rs.phase != PHASE_STEAL or not isinstance(guess, str):
        return None
    return Step(replace(rs, steal_guess=guess))


def resolve_steal(rs: RoundState, question: Round, success: bool,
                  match_index: Optional[int] = None) -> Optional[Step]:
    if rs.phase != PHASE_STEAL or rs.controller is None or not isinstance(success, bool):
        return None
    stealer = other_team(rs.controller)
    if not success:
        return _settle(
            rs, rs.controller,
            events=(GameEvent(EVENT_STEAL_FAILURE, stealer),),
            steal_result='failed',
        )
    pot = rs.round_pot
    if match_index is not None:
        if not _valid_index(rs, match_index) or rs.revealed[match_index]:
            return None
        pot += question.answers[match_index].points
    return _settle(
        rs, stealer,
        events=(GameEvent(EVENT_STEAL_SUCCESS, stealer, match_index),),
        round_pot=pot,
        steal_result='success',
    )


# ---- Host overrides ----

def end_round(rs: RoundState, winning_team: str) -> Optional[Step]:
    if rs.phase == PHASE_ENDED or winning_team not in TEAM_IDS:
        return None
    # Ending from the faceoff hands control to the winner.
    return _settle(rs, winning_team, controller=rs.controller or winning_team)


def reveal_all(rs: RoundState, question: Round) -> Optional[Step]:
    """Show the full board without settling; the pot becomes the board total."""
    if rs.phase == PHASE_ENDED:
        return None
    state = replace(rs, revealed=(True,) * len(rs.revealed), round_pot=question.total_points)
    if state == rs:
        return None
    return Step(state)
