from flask import request
from flask_socketio import emit, join_room

from luckyjet import socketio
from luckyjet.services.rounds import get_scheduler
from luckyjet.services.rounds.broadcast import OBSERVER_ROOM


def _get_sid() -> str:
    # request.sid exists in Socket.IO context
    return request.sid  # type: ignore


def handle_connect(auth=None):
    """Register the observer and catch it up with the round in progress."""
    hub = get_scheduler().hub
    sid = _get_sid()
    join_room(OBSERVER_ROOM)
    emit('initData', hub.on_observer_connect(sid))


def handle_disconnect(reason=None):
    # Socket.IO drops the room membership itself; only the registry needs updating
    sid = _get_sid()
    get_scheduler().hub.on_observer_disconnect(sid)


def register_socketio_handlers(namespace: str = '/') -> None:
    """Register the observer handlers. The channel is read-only: no inbound commands."""
    socketio.on_event('connect', handle_connect, namespace=namespace)
    socketio.on_event('disconnect', handle_disconnect, namespace=namespace)
