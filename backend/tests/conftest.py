import os
import sys
import pytest
from flask import g
from flask.testing import FlaskClient

# Ensure the backend root (containing the `bingo` package and config.py) is on sys.path
CURRENT_DIR = os.path.dirname(__file__)
BACKEND_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, '..'))
if BACKEND_ROOT not in sys.path:
    sys.path.insert(0, BACKEND_ROOT)

from config import Config
from bingo import create_app, db, socketio


class TestConfig(Config):
    TESTING = True
    SECRET_KEY = 'test-secret'
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    SOCKETIO_NAMESPACE = '/'
    LLM_API_URL = 'http://llm.invalid/v1/chat/completions'
    LLM_API_KEY = None
    LLM_TIMEOUT_SEC = 1.0


class PerRequestLoginClient(FlaskClient):
    """Forget the Flask-Login user between requests.

    The app context stays pushed for the whole test, so without this the
    player resolved for one request would be reused by the next.
    """

    def open(self, *args, **kwargs):
        g.pop('_login_user', None)
        return super().open(*args, **kwargs)


@pytest.fixture()
def flask_app():
    application = create_app(TestConfig)
    application.test_client_class = PerRequestLoginClient
    with application.app_context():
        # Ensure models are imported so tables are created
        import bingo.models  # noqa: F401
        db.create_all()
        yield application
        db.session.remove()
        db.drop_all()
    from bingo import socketio_events
    socketio_events._sid_to_room.clear()
    socketio_events._room_members.clear()


@pytest.fixture()
def client(flask_app):
    return flask_app.test_client()


@pytest.fixture()
def make_sio_client(flask_app):
    """Factory for Socket.IO test clients; all are disconnected on teardown."""
    created = []

    def _make():
        test_client = socketio.test_client(flask_app, flask_test_client=flask_app.test_client())
        created.append(test_client)
        return test_client

    yield _make
    for test_client in created:
        if test_client.is_connected():
            test_client.disconnect()


@pytest.fixture()
def sio_client(make_sio_client):
    return make_sio_client()


def fresh(model, ident):
    """Re-read a row, discarding anything the test session already holds."""
    db.session.expire_all()
    return db.session.get(model, ident)


def events_named(received, name):
    return [pkt['args'][0] if pkt['args'] else None for pkt in received if pkt['name'] == name]
