"""Round lifecycle engine: crash point generation, backlog, live loop and fan-out.

Transport (Socket.IO handlers, HTTP routes) imports from here; nothing in
this package knows about requests.
"""

from flask import current_app

from .broadcast import BroadcastHub
from .exceptions import BacklogEmpty, GeneratorInvariantViolation, LuckyJetError, PersistenceFailure
from .generator import CrashPointGenerator
from .scheduler import RoundScheduler, next_live_score
from .state import LiveGameState
from .store import RoundStore

EXTENSION_KEY = 'luckyjet.scheduler'


def init_round_engine(app, socketio) -> RoundScheduler:
    """Build the engine for `app` and register it under app.extensions."""
    state = LiveGameState()
    store = RoundStore()
    hub = BroadcastHub(
        socketio, store, state,
        namespace=app.config.get('SOCKETIO_NAMESPACE', '/'),
        history_limit=int(app.config.get('HISTORY_LIMIT', 20)),
    )
    scheduler = RoundScheduler.from_config(
        app.config, store, hub, CrashPointGenerator(), state, sleep=socketio.sleep,
    )
    app.extensions[EXTENSION_KEY] = scheduler
    return scheduler


def get_scheduler(app=None) -> RoundScheduler:
    app = app or current_app
    return app.extensions[EXTENSION_KEY]


def start_round_loop(app, socketio):
    """Run the scheduler on a Socket.IO background task.

    - No-ops in TESTING mode or when ROUND_LOOP_ENABLED is false
    - Never starts a second loop for the same app
    """
    if app.config.get('TESTING') or not app.config.get('ROUND_LOOP_ENABLED', True):
        return None

    scheduler = get_scheduler(app)
    if scheduler.is_running:
        app.logger.info("[round-loop] already running, not starting another")
        return None
    scheduler.is_running = True

    def _worker():
        with app.app_context():
            scheduler.run_forever()

    return socketio.start_background_task(_worker)


__all__ = [
    'BacklogEmpty',
    'BroadcastHub',
    'CrashPointGenerator',
    'GeneratorInvariantViolation',
    'LiveGameState',
    'LuckyJetError',
    'PersistenceFailure',
    'RoundScheduler',
    'RoundStore',
    'get_scheduler',
    'init_round_engine',
    'next_live_score',
    'start_round_loop',
]
