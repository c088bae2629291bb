import random

import pytest

from feud.services.games.engine import apply_action, new_session, transition
from feud.services.games.state import GameSession, GameSettings

from conftest import KeepOrder


def act(session, action_type, **params):
    return apply_action(session, {'type': action_type, **params})


def to_play(session, controller='A'):
    """Faceoff where A finds the top answer and B strikes, then A plays or passes."""
    session = act(session, 'FACEOFF_CORRECT', team='A', answer_index=0)
    session = act(session, 'FACEOFF_STRIKE', team='B')
    choice = 'play' if controller == 'A' else 'pass'
    return act(session, 'FACEOFF_DECIDE', team='A', choice=choice)


def revealed_points(session):
    answers = session.round.answers
    return sum(a.points for a, shown in zip(answers, session.current_round.revealed) if shown)


def test_start_game_builds_first_round(playing, pack):
    assert playing.phase == 'playing'
    assert playing.round_index == 0
    assert playing.teams.A.score == 0
    assert playing.current_round.phase == 'faceoff'
    assert playing.current_round.multiplier == 1
    assert len(playing.current_round.revealed) == len(pack.rounds[0].answers)
    assert playing.history == ()


def test_start_game_shuffles_once(pack, settings):
    session = apply_action(
        new_session(),
        {'type': 'START_GAME', 'settings': settings, 'question_pack': pack},
        rng=random.Random(7),
    )
    assert sorted(r.id for r in session.question_pack.rounds) == sorted(r.id for r in pack.rounds)
    assert act(session, 'START_GAME', settings=settings, question_pack=pack) is session


def test_start_game_accepts_dicts(pack, settings):
    session = apply_action(
        new_session(),
        {'type': 'START_GAME', 'settings': settings.to_dict(), 'question_pack': pack.to_dict()},
        rng=KeepOrder(),
    )
    assert session.question_pack == pack
    assert session.settings == settings


def test_unknown_and_out_of_phase_actions_are_noops(playing):
    assert act(playing, 'NOT_A_THING') is playing
    assert apply_action(playing, 'garbage') is playing
    assert act(playing, 'REVEAL_ANSWER', answer_index=1) is playing
    assert act(playing, 'ADD_STRIKE') is playing
    assert act(playing, 'RESOLVE_STEAL', success=True) is playing
    assert act(playing, 'NEXT_ROUND') is playing
    assert act(new_session(), 'ADD_STRIKE').phase == 'setup'


def test_pot_matches_revealed_points(playing):
    session = to_play(playing)
    assert session.current_round.round_pot == revealed_points(session)
    session = act(session, 'REVEAL_ANSWER', answer_index=2)
    assert session.current_round.round_pot == revealed_points(session)
    session = act(session, 'ADD_STRIKE')
    session = act(session, 'REVEAL_ANSWER', answer_index=1)
    assert session.current_round.round_pot == revealed_points(session)


def test_reveal_is_idempotent(playing):
    session = act(to_play(playing), 'REVEAL_ANSWER', answer_index=1)
    assert act(session, 'REVEAL_ANSWER', answer_index=1) is session


@pytest.mark.parametrize('action', [
    {'type': 'REVEAL_ANSWER', 'answer_index': 1},
    {'type': 'ADD_STRIKE'},
    {'type': 'ENTER_STEAL_MODE'},
    {'type': 'END_ROUND', 'winning_team': 'B'},
    {'type': 'REVEAL_ALL'},
])
def test_undo_inverts_play_actions(playing, action):
    before = to_play(playing)
    after = apply_action(before, action)
    assert after != before
    assert act(after, 'UNDO') == before


@pytest.mark.parametrize('action', [
    {'type': 'FACEOFF_CORRECT', 'team': 'A', 'answer_index': 1},
    {'type': 'FACEOFF_STRIKE', 'team': 'A'},
])
def test_undo_inverts_faceoff_actions(playing, action):
    after = apply_action(playing, action)
    assert after != playing
    assert act(after, 'UNDO') == playing


def test_undo_inverts_manual_faceoff_winner(playing):
    session = act(playing, 'FACEOFF_STRIKE', team='A')
    assert act(session, 'FACEOFF_SET_WINNER', team='B') is session
    session = act(session, 'FACEOFF_STRIKE', team='B')
    picked = act(session, 'FACEOFF_SET_WINNER', team='B')
    assert picked.current_round.faceoff.winner == 'B'
    assert act(picked, 'UNDO') == session


def test_resolve_steal_rejects_string_outcome(playing):
    session = act(to_play(playing), 'ENTER_STEAL_MODE')
    assert act(session, 'RESOLVE_STEAL', success='false') is session
    assert act(session, 'RESOLVE_STEAL', success=False).current_round.steal_result == 'failed'


def test_undo_inverts_steal_resolution(playing):
    session = act(to_play(playing), 'ENTER_STEAL_MODE')
    resolved = act(session, 'RESOLVE_STEAL', success=True, match_index=1)
    assert act(resolved, 'UNDO') == session


def test_undo_on_empty_history_is_noop(playing):
    assert act(playing, 'UNDO') is playing


def test_history_is_bounded(playing):
    session = to_play(playing)
    for _ in range(2):
        session = act(session, 'ADD_STRIKE')
        session = act(session, 'REMOVE_STRIKE')
    limited = apply_action(session, {'type': 'ADD_STRIKE'}, history_limit=3)
    assert len(limited.history) == 3
    assert limited.history[-1].action == 'Strike added'


def test_cosmetic_actions_skip_history(playing):
    session = act(playing, 'FACEOFF_SET_BUZZER', team='B')
    assert session.current_round.faceoff.current_turn == 'B'
    assert session.history == ()

    session = act(to_play(playing), 'ENTER_STEAL_MODE')
    guessed = act(session, 'SET_STEAL_GUESS', guess='kitty')
    assert guessed.current_round.steal_guess == 'kitty'
    assert guessed.history == session.history


def test_three_strikes_enter_steal_and_fourth_rejected(playing):
    session = to_play(playing)
    for _ in range(3):
        session = act(session, 'ADD_STRIKE')
    assert session.current_round.phase == 'steal'
    assert session.current_round.strikes == 3
    assert act(session, 'ADD_STRIKE') is session


def test_steal_scenario_credits_stealer(pack):
    settings = GameSettings(number_of_rounds=3, strike_limit=3, multipliers=(2, 2))
    session = apply_action(
        new_session(),
        {'type': 'START_GAME', 'settings': settings, 'question_pack': pack},
        rng=KeepOrder(),
    )
    session = act(session, 'FACEOFF_STRIKE', team='A')
    session = act(session, 'FACEOFF_CORRECT', team='B', answer_index=1)
    assert session.current_round.faceoff.winner == 'B'
    session = act(session, 'FACEOFF_DECIDE', team='B', choice='pass')
    assert session.current_round.controller == 'A'
    assert session.current_round.round_pot == 300
    session = act(session, 'ENTER_STEAL_MODE')

    result = transition(session, {'type': 'RESOLVE_STEAL', 'success': True, 'match_index': 2})
    ended = result.session
    assert ended.teams.B.score == (300 + 150) * 2
    assert ended.teams.A.score == 0
    assert all(ended.current_round.revealed)
    assert ended.current_round.steal_result == 'success'
    assert [e.kind for e in result.events] == ['steal_success', 'round_win']


def test_auto_settle_on_full_board(playing):
    session = to_play(playing, controller='B')
    for index in (1, 2, 3):
        session = act(session, 'REVEAL_ANSWER', answer_index=index)
    assert session.current_round.phase == 'ended'
    assert session.teams.B.score == 1000
    assert session.teams.A.score == 0


def test_settlement_pays_exactly_one_team(playing):
    session = act(to_play(playing), 'END_ROUND', winning_team='A')
    assert session.teams.A.score == 500 * session.current_round.multiplier
    assert session.teams.B.score == 0
    assert act(session, 'END_ROUND', winning_team='B') is session


def test_next_round_requires_settlement(playing):
    session = to_play(playing)
    assert act(session, 'NEXT_ROUND') is session
    session = act(session, 'END_ROUND', winning_team='A')
    nxt = act(session, 'NEXT_ROUND')
    assert nxt.round_index == 1
    assert nxt.current_round.phase == 'faceoff'
    assert nxt.current_round.multiplier == 2
    assert nxt.history == ()
    assert nxt.teams == session.teams
    # Undo never crosses into the previous round
    assert act(nxt, 'UNDO') is nxt


def test_skip_round_awards_nothing(playing):
    session = act(to_play(playing), 'REVEAL_ANSWER', answer_index=1)
    skipped = act(session, 'SKIP_ROUND')
    assert skipped.round_index == 1
    assert skipped.teams.A.score == 0
    assert skipped.teams.B.score == 0
    ended = act(session, 'END_ROUND', winning_team='A')
    assert act(ended, 'SKIP_ROUND') is ended


def test_game_over_after_last_round(playing):
    session = playing
    multipliers = []
    for _ in range(2):
        multipliers.append(session.current_round.multiplier)
        session = act(session, 'SKIP_ROUND')
    multipliers.append(session.current_round.multiplier)
    assert multipliers == [1, 2, 1]

    session = act(to_play(session), 'END_ROUND', winning_team='A')
    result = transition(session, {'type': 'NEXT_ROUND'})
    over = result.session
    assert over.phase == 'gameOver'
    assert over.current_round is None
    assert over.history == ()
    assert result.events[0].kind == 'game_over'
    assert result.events[0].team == 'A'


def test_rounds_capped_by_pack_size(pack):
    settings = GameSettings(number_of_rounds=10)
    session = apply_action(
        new_session(),
        {'type': 'START_GAME', 'settings': settings, 'question_pack': pack},
        rng=KeepOrder(),
    )
    assert session.total_rounds == 3


def test_score_adjustments_clamp_and_skip_history(playing):
    session = act(playing, 'ADJUST_SCORE', team='A', amount=-50)
    assert session.teams.A.score == 0
    session = act(session, 'ADJUST_SCORE', team='B', amount=120)
    assert session.teams.B.score == 120
    session = act(session, 'SET_SCORE', team='B', score=-5)
    assert session.teams.B.score == 0
    session = act(session, 'SET_SCORE', team='A', score=75)
    assert session.teams.A.score == 75
    assert session.history == ()
    assert act(session, 'ADJUST_SCORE', team='C', amount=5) is session
    assert act(session, 'ADJUST_SCORE', team='A', amount='5') is session


def test_restart_and_reset(playing):
    session = act(to_play(playing), 'END_ROUND', winning_team='A')
    session = act(session, 'NEXT_ROUND')
    restarted = act(session, 'RESTART_GAME')
    assert restarted.round_index == 0
    assert restarted.teams.A.score == 0
    assert restarted.teams.A.name == 'Team A'
    assert restarted.question_pack == session.question_pack
    assert restarted.current_round.phase == 'faceoff'

    reset = act(restarted, 'RESET_ALL')
    assert reset == new_session()
    assert act(reset, 'RESTART_GAME') is reset


def test_inputs_are_never_mutated(playing):
    snapshot = GameSession.from_dict(playing.to_dict())
    to_play(playing)
    assert playing == snapshot


def test_session_dict_round_trip(playing):
    session = act(to_play(playing), 'ADD_STRIKE')
    restored = GameSession.from_dict(session.to_dict())
    assert restored == session
    assert act(restored, 'UNDO') == act(session, 'UNDO')
