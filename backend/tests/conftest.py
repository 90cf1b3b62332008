import os
import sys
import pytest

# Ensure the backend root (containing the `fightpicks` package) is on sys.path
CURRENT_DIR = os.path.dirname(__file__)
BACKEND_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, '..'))
if BACKEND_ROOT not in sys.path:
    sys.path.insert(0, BACKEND_ROOT)
if CURRENT_DIR not in sys.path:
    sys.path.insert(0, CURRENT_DIR)

from fightpicks import create_app, db, socketio
from helpers import ONE_FIGHT_CARD, create_game, fights_of, join


class TestConfig:
    TESTING = True
    SECRET_KEY = os.environ.get('SECRET_KEY', 'test-secret')
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    CORS_ORIGINS = ['http://localhost:3000']
    GAME_CODE_LENGTH = 5
    MIN_PLAYERS = 1
    START_COUNTDOWN_SEC = 0
    PROGRESSION_POLICY = 'forward'
    RESULT_WRITE_ATTEMPTS = 3
    LOG_LEVEL = 'WARNING'
    LOG_TO_FILE = False


@pytest.fixture()
def flask_app():
    application = create_app(TestConfig)
    with application.app_context():
        # Ensure models are imported so tables are created
        import fightpicks.models  # noqa: F401
        db.create_all()
        yield application
        db.session.remove()
        db.drop_all()


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
    if test_client.is_connected('/ws'):
        test_client.disconnect(namespace='/ws')


@pytest.fixture()
def one_fight_game(client):
    """A game with one fight (Alpha vs Charlie) and one joined player."""
    game = create_game(client, fights=ONE_FIGHT_CARD)
    player = join(client, game['game_code'], 'Pat')
    fight = fights_of(client, game['game_code'])[0]
    return game, player, fight
