import os
import sys
import pytest

# Ensure the backend root (containing the `feud` package) is on sys.path
CURRENT_DIR = os.path.dirname(__file__)
BACKEND_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, '..'))
if BACKEND_ROOT not in sys.path:
    sys.path.insert(0, BACKEND_ROOT)

from feud import create_app, db, socketio
from feud.services.games.engine import new_session, transition
from feud.services.games.packs import load_question_pack
from feud.services.games.state import GameSettings


class TestConfig:
    TESTING = True
    SECRET_KEY = os.environ.get('SECRET_KEY', 'test-secret')
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    DEFAULT_NUMBER_OF_ROUNDS = 3
    DEFAULT_STRIKE_LIMIT = 3
    DEFAULT_MULTIPLIERS = '1,2'
    MATCH_THRESHOLD = 0.7
    MATCH_MIN_CONFIDENCE = 0.3
    HISTORY_LIMIT = 50
    CONTROLLER_DEBOUNCE_MS = 0


PACK_DATA = {
    'title': 'Test Night',
    'rounds': [
        {
            'id': 'pets',
            'question': 'Name an animal people keep as a pet',
            'answers': [
                {'text': 'Cat', 'points': 300, 'aliases': ['kitty', 'kitten']},
                {'text': 'Dog', 'points': 500, 'aliases': ['puppy']},
                {'text': 'Fish', 'points': 150},
                {'text': 'Bird', 'points': 50, 'aliases': ['parrot']},
            ],
        },
        {
            'id': 'morning',
            'question': 'Name something people do first thing in the morning',
            'answers': [
                {'text': 'Brush teeth', 'points': 35},
                {'text': 'Shower', 'points': 25},
                {'text': 'Coffee', 'points': 20, 'aliases': ['drink coffee']},
            ],
        },
        {
            'question': 'Name a fruit',
            'answers': [
                {'text': 'Apple', 'points': 40},
                {'text': 'Banana', 'points': 30},
                {'text': 'Orange', 'points': 20},
            ],
        },
    ],
}


class KeepOrder:
    """Stands in for ``random.Random`` so rounds are played in pack order."""

    def sample(self, population, k):
        return list(population)[:k]


@pytest.fixture()
def pack():
    return load_question_pack(PACK_DATA)


@pytest.fixture()
def settings():
    return GameSettings(number_of_rounds=3, strike_limit=3, multipliers=(1, 2))


@pytest.fixture()
def playing(pack, settings):
    """A session in the first round's faceoff, rounds in pack order."""
    result = transition(
        new_session(),
        {'type': 'START_GAME', 'settings': settings, 'question_pack': pack},
        rng=KeepOrder(),
    )
    return result.session


@pytest.fixture()
def flask_app():
    from feud.api import games as games_api
    games_api._sessions.clear()
    application = create_app(TestConfig)
    with application.app_context():
        # Ensure models are imported so tables are created
        import feud.models  # noqa: F401
        db.create_all()
        yield application
        db.session.remove()
        db.drop_all()
    games_api._sessions.clear()


@pytest.fixture()
def client(flask_app):
    return flask_app.test_client()


@pytest.fixture()
def sio_client(flask_app):
    test_client = socketio.test_client(
        flask_app,
        flask_test_client=flask_app.test_client(),
        namespace='/ws'
    )
    yield test_client
    try:
        test_client.disconnect(namespace='/ws')
    except Exception:
        pass
