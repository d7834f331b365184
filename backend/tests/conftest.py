import os
import sys
import pytest

# Ensure the backend root (containing the `bingo` package) is on sys.path
CURRENT_DIR = os.path.dirname(__file__)
BACKEND_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, '..'))
if BACKEND_ROOT not in sys.path:
    sys.path.insert(0, BACKEND_ROOT)

from bingo import create_app, db, socketio, get_registry, get_presence
from bingo.services.lobby import Objective

POOL = [{'name': f'obj{i}', 'description': f'Objective number {i}'} for i in range(1, 26)]


class TestConfig:
    TESTING = True
    SECRET_KEY = os.environ.get('SECRET_KEY', 'test-secret')
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    CORS_ORIGINS = '*'
    OBJECTIVES = POOL
    BOARD_SIZE_MIN = 3
    BOARD_SIZE_MAX = 16
    ROOM_CODE_LENGTH = 4
    ROOM_CODE_ATTEMPTS = 10
    ADMIN_SECRET_LENGTH = 6
    ON_DISCONNECT = 'retain'
    LOBBY_GRACE_PERIOD_SEC = -1
    CHAT_LOG_LIMIT = 50
    PERSIST_SNAPSHOTS = False


class RemoveOnDisconnectConfig(TestConfig):
    ON_DISCONNECT = 'remove'


class ImmediateDisposalConfig(TestConfig):
    LOBBY_GRACE_PERIOD_SEC = 0


class ShortGraceConfig(TestConfig):
    LOBBY_GRACE_PERIOD_SEC = 0.2


@pytest.fixture()
def pool():
    return [Objective(o['name'], o['description']) for o in POOL]


def _build_app(config_class):
    application = create_app(config_class)
    with application.app_context():
        # Ensure models are imported so tables are created
        import bingo.models  # noqa: F401
        db.create_all()
    return application


@pytest.fixture()
def app_config():
    return TestConfig


@pytest.fixture()
def flask_app(app_config):
    application = _build_app(app_config)
    with application.app_context():
        yield application
        get_registry(application).clear()
        get_presence(application).clear()
        db.session.remove()
        db.drop_all()


@pytest.fixture()
def client(flask_app):
    return flask_app.test_client()


@pytest.fixture()
def make_sio(flask_app):
    clients = []

    def _make():
        test_client = socketio.test_client(
            flask_app,
            flask_test_client=flask_app.test_client(),
            namespace='/ws'
        )
        test_client.get_received('/ws')  # drop the 'connected' greeting
        clients.append(test_client)
        return test_client

    yield _make
    for test_client in clients:
        try:
            if test_client.is_connected('/ws'):
                test_client.disconnect(namespace='/ws')
        except Exception:
            pass


@pytest.fixture()
def sio_client(make_sio):
    return make_sio()


@pytest.fixture()
def room(client):
    """A fresh 3x3 lobby: returns the create-lobby response body."""
    res = client.post('/api/create-lobby', json={'boardSize': 3})
    assert res.status_code == 200
    return res.get_json()
