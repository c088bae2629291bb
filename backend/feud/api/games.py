from flask import Blueprint, jsonify, request, current_app
from sqlalchemy.exc import SQLAlchemyError
from feud import db, socketio
from feud.exceptions import GameNotFound, InvalidInput
from feud.models import FeudGame
from feud.services.games.engine import ACTION_TYPES, transition
from feud.services.games.matching import find_best_match, rank_candidates
from feud.services.games.packs import build_settings, load_question_pack
from feud.services.games.state import SESSION_PLAYING, SESSION_SETUP, GameSession, GameSettings
import time


games = Blueprint('games', __name__)

# Live sessions keyed by game code; the database holds the durable copy.
_sessions: dict[str, GameSession] = {}
_last_controller_action: dict[str, float] = {}

# Accepted only through /start so the pack and settings get validated first.
_START_ONLY = {'START_GAME'}


@games.errorhandler(InvalidInput)
def handle_invalid_input(exc):
    return jsonify({'error': 'Invalid input', 'errors': exc.errors}), 400


@games.errorhandler(GameNotFound)
def handle_game_not_found(exc):
    return jsonify({'error': str(exc), 'game_code': exc.game_code}), 404


def _get_game(game_code: str) -> FeudGame:
    game = FeudGame.query.filter_by(game_code=game_code.upper()).first()
    if game is None:
        raise GameNotFound(game_code.upper())
    return game


def _load_session(game: FeudGame) -> GameSession:
    session = _sessions.get(game.game_code)
    if session is None:
        session = game.load_session()
        _sessions[game.game_code] = session
    return session


def _save_session(game: FeudGame, session: GameSession) -> None:
    """Keep the new session live, then try to persist it.

    A failed write is logged and rolled back; the in-memory session stays
    as applied and is written again on the next successful save.
    """
    _sessions[game.game_code] = session
    try:
        game.store_session(session)
        db.session.add(game)
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        current_app.logger.exception(f"[persist-fail] game={game.game_code} phase={session.phase}")


def _broadcast(game_code: str, events=()) -> None:
    room = f"game:{game_code}"
    for event in events:
        socketio.emit('feud_event', {'game_code': game_code, **event.to_dict()}, to=room, namespace='/ws')
    socketio.emit('state_update', {'game_code': game_code}, to=room, namespace='/ws')


def _default_settings() -> GameSettings:
    cfg = current_app.config
    try:
        multipliers = tuple(int(m) for m in str(cfg.get('DEFAULT_MULTIPLIERS', '1')).split(',') if m.strip())
    except ValueError:
        multipliers = (1,)
    return GameSettings(
        number_of_rounds=int(cfg.get('DEFAULT_NUMBER_OF_ROUNDS', 5)),
        strike_limit=int(cfg.get('DEFAULT_STRIKE_LIMIT', 3)),
        multipliers=multipliers or (1,),
    )


def _debounced(kind: str, game_code: str) -> bool:
    try:
        debounce_ms = int(current_app.config.get('CONTROLLER_DEBOUNCE_MS', 0))
    except (TypeError, ValueError):
        debounce_ms = 0
    if debounce_ms <= 0:
        return False
    key = f"{kind}:{game_code}"
    now = time.time() * 1000.0
    last = _last_controller_action.get(key, 0)
    if now - last < debounce_ms:
        return True
    _last_controller_action[key] = now
    return False


def _state_payload(game: FeudGame, session: GameSession) -> dict:
    payload = session.to_dict()
    payload['game_code'] = game.game_code
    payload['totalRounds'] = session.total_rounds
    return payload


@games.route('/create', methods=['POST'])
def create_game():
    new_game = FeudGame()
    db.session.add(new_game)
    db.session.commit()
    _sessions[new_game.game_code] = new_game.load_session()
    current_app.logger.info(f"[create] game={new_game.game_code}")
    return jsonify({
        'message': 'New game created!',
        'game_code': new_game.game_code
    }), 201


@games.route('/<string:game_code>/state', methods=['GET'])
def get_game_state(game_code):
    game = _get_game(game_code)
    return jsonify(_state_payload(game, _load_session(game)))


@games.route('/<string:game_code>/start', methods=['POST'])
def start_game(game_code):
    data = request.get_json(silent=True) or {}
    if not isinstance(data, dict):
        return jsonify({'error': 'Request body must be a JSON object'}), 400
    game = _get_game(game_code)
    session = _load_session(game)
    if session.phase == SESSION_PLAYING:
        # Idempotent start: already started
        return jsonify(_state_payload(game, session))
    if session.phase != SESSION_SETUP:
        return jsonify({'error': 'Game is over; restart or reset it first'}), 400

    settings = build_settings(data.get('settings'), defaults=_default_settings())
    pack = load_question_pack(data.get('question_pack'))
    result = transition(session, {'type': 'START_GAME', 'settings': settings, 'question_pack': pack})
    _save_session(game, result.session)
    current_app.logger.info(f"[start] game={game.game_code} pack='{pack.title}' rounds={result.session.total_rounds}")
    _broadcast(game.game_code, result.events)
    return jsonify(_state_payload(game, result.session))


@games.route('/<string:game_code>/actions', methods=['POST'])
def apply_game_action(game_code):
    action = request.get_json(silent=True) or {}
    if not isinstance(action, dict):
        return jsonify({'error': 'Action must be a JSON object'}), 400
    action_type = action.get('type')
    if action_type not in ACTION_TYPES or action_type in _START_ONLY:
        return jsonify({'error': f'Unknown action type: {action_type}'}), 400
    if _debounced(action_type, game_code.upper()):
        return jsonify({'message': 'debounced'}), 202

    game = _get_game(game_code)
    session = _load_session(game)
    result = transition(session, action, history_limit=int(current_app.config.get('HISTORY_LIMIT', 50)))
    applied = result.session is not session
    current_app.logger.info(f"[action] game={game.game_code} type={action_type} applied={applied}")
    if applied:
        _save_session(game, result.session)
        _broadcast(game.game_code, result.events)
    return jsonify({
        'applied': applied,
        'events': [e.to_dict() for e in result.events],
        'state': _state_payload(game, result.session),
    })


@games.route('/<string:game_code>/matches', methods=['GET'])
def suggest_matches(game_code):
    guess = request.args.get('guess', '')
    game = _get_game(game_code)
    session = _load_session(game)
    question = session.round
    if question is None:
        return jsonify({'error': 'No round in progress'}), 400
    cfg = current_app.config
    try:
        min_confidence = float(request.args.get('min_confidence', cfg.get('MATCH_MIN_CONFIDENCE', 0.3)))
    except ValueError:
        return jsonify({'error': 'min_confidence must be a number'}), 400

    revealed = session.current_round.revealed
    candidates = rank_candidates(guess, question.answers, revealed, min_confidence=min_confidence)
    best = find_best_match(guess, question.answers, revealed, threshold=float(cfg.get('MATCH_THRESHOLD', 0.7)))
    return jsonify({
        'guess': guess,
        'candidates': [
            {
                'index': c.index,
                'text': question.answers[c.index].text,
                'points': question.answers[c.index].points,
                'confidence': round(c.confidence, 4),
            }
            for c in candidates
        ],
        'best': {
            'matched': best.matched,
            'answerIndex': best.answer_index,
            'confidence': round(best.confidence, 4),
        },
    })


@games.route('/<string:game_code>', methods=['DELETE'])
def delete_game(game_code):
    game = _get_game(game_code)
    code = game.game_code
    db.session.delete(game)
    db.session.commit()
    _sessions.pop(code, None)
    socketio.emit('session_ended', {'game_code': code}, to=f"game:{code}", namespace='/ws')
    current_app.logger.info(f"[delete] game={code}")
    return jsonify({'ok': True})
