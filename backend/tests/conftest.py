import os
import random
import sys
import pytest

# Ensure the backend root (containing the `luckyjet` package) is on sys.path
CURRENT_DIR = os.path.dirname(__file__)
BACKEND_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, '..'))
if BACKEND_ROOT not in sys.path:
    sys.path.insert(0, BACKEND_ROOT)

from luckyjet import create_app, db, socketio
from luckyjet.services.rounds import (
    BroadcastHub,
    CrashPointGenerator,
    LiveGameState,
    RoundScheduler,
    RoundStore,
    get_scheduler,
)


class TestConfig:
    TESTING = True
    SECRET_KEY = os.environ.get('SECRET_KEY', 'test-secret')
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    CORS_ORIGINS = '*'
    SOCKETIO_NAMESPACE = '/'
    TICK_INTERVAL_MS = 50
    INTER_ROUND_PAUSE_MS = 8000
    BACKLOG_TARGET = 30
    ROUND_LOG_CAP = 200
    HISTORY_LIMIT = 20
    RETRY_DELAY_SEC = 1
    ROUND_LOOP_ENABLED = False


class RecordingSocketIO:
    """Stands in for the Socket.IO server and keeps every emitted event."""

    def __init__(self):
        self.emitted = []
        self.on_emit = None

    def emit(self, event, payload, to=None, namespace=None):
        self.emitted.append((event, payload))
        if self.on_emit:
            self.on_emit(event, payload)

    def names(self):
        return [event for event, _ in self.emitted]

    def payloads(self, name):
        return [payload for event, payload in self.emitted if event == name]


@pytest.fixture()
def flask_app():
    application = create_app(TestConfig)
    with application.app_context():
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
    )
    yield test_client
    try:
        test_client.disconnect()
    except Exception:
        pass


@pytest.fixture()
def app_scheduler(flask_app):
    """The scheduler wired into the app, with sleeping disabled."""
    scheduler = get_scheduler(flask_app)
    scheduler._sleep = lambda seconds: None
    return scheduler


@pytest.fixture()
def store(flask_app):
    return RoundStore()


@pytest.fixture()
def recorder():
    return RecordingSocketIO()


@pytest.fixture()
def sleeps():
    return []


@pytest.fixture()
def scheduler(store, recorder, sleeps):
    state = LiveGameState()
    hub = BroadcastHub(recorder, store, state)
    return RoundScheduler(
        store, hub, CrashPointGenerator(rng=random.Random(1234)), state,
        sleep=sleeps.append,
    )
