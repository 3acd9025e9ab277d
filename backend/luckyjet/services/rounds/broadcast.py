import threading
from typing import Iterable, Set

from flask import current_app

from .state import LiveGameState
from .store import RoundStore

OBSERVER_ROOM = 'luckyjet:observers'


class BroadcastHub:
    """Fan round events out to every registered observer.

    Observers are Socket.IO sessions joined to OBSERVER_ROOM. Emits are
    fire-and-forget: a client that drops mid-broadcast simply misses it.
    """

    def __init__(self, socketio, store: RoundStore, state: LiveGameState,
                 namespace: str = '/', history_limit: int = 20):
        self.socketio = socketio
        self.store = store
        self.state = state
        self.namespace = namespace
        self.history_limit = history_limit
        self._observers: Set[str] = set()
        self._lock = threading.Lock()

    # ---- Registry ----
    def register(self, sid: str) -> None:
        with self._lock:
            self._observers.add(sid)

    def unregister(self, sid: str) -> None:
        with self._lock:
            self._observers.discard(sid)

    @property
    def observer_count(self) -> int:
        with self._lock:
            return len(self._observers)

    # ---- Publish ----
    def publish(self, event: str, payload) -> None:
        self.socketio.emit(event, payload, to=OBSERVER_ROOM, namespace=self.namespace)

    def broadcast_round_start(self, round_id: int, crash_point: float, history: Iterable) -> None:
        self.publish('roundStart', {
            'roundId': round_id,
            'crashPoint': crash_point,
            'previousRounds': [entry.to_dict() for entry in history],
        })

    def broadcast_live_score(self, value: float) -> None:
        self.publish('liveScore', value)

    def broadcast_crashed(self, crash_point: float) -> None:
        self.publish('crashed', crash_point)

    # ---- Late joiners ----
    def snapshot(self) -> dict:
        """Current round, live score and recent history for a new observer."""
        live = self.state.read()
        history = self.store.recent_history(self.history_limit)
        return {
            'roundId': live['roundId'],
            'crashPoint': live['crashPoint'],
            'previousRounds': [entry.to_dict() for entry in history],
            'liveScore': live['liveScore'],
        }

    def on_observer_connect(self, sid: str) -> dict:
        self.register(sid)
        current_app.logger.info(f"[observer-connect] sid={sid} observers={self.observer_count}")
        return self.snapshot()

    def on_observer_disconnect(self, sid: str) -> None:
        self.unregister(sid)
        current_app.logger.info(f"[observer-disconnect] sid={sid} observers={self.observer_count}")
