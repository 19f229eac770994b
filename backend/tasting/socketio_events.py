from flask import current_app, request
from flask_socketio import join_room, leave_room, emit

from tasting import socketio, db
from tasting.feed import FEED_NAMESPACE, get_registry, room_for
from tasting.models import TastingSession


def _get_sid() -> str:
    # request.sid exists in Socket.IO context
    return request.sid  # type: ignore


def handle_connect():
    emit('connected', {'message': f'Connected to {FEED_NAMESPACE}'})


def handle_disconnect(*args):
    # Free every subscription slot the socket still holds
    released = get_registry().release_all(_get_sid())
    for session_id in released:
        current_app.logger.info(f"[feed] released session={session_id} on disconnect")


def handle_subscribe(data):
    session_id = (data or {}).get('session_id')
    if not session_id:
        emit('error', {'message': 'session_id is required'})
        return
    if not db.session.get(TastingSession, session_id):
        emit('error', {'message': 'Session not found', 'session_id': session_id})
        return
    join_room(room_for(session_id))
    if get_registry().acquire(_get_sid(), session_id):
        current_app.logger.info(f"[feed] subscribe session={session_id} subscribers={get_registry().count(session_id)}")
    emit('subscribed', {'session_id': session_id, 'room': room_for(session_id)})


def handle_unsubscribe(data):
    session_id = (data or {}).get('session_id')
    if not session_id:
        emit('error', {'message': 'session_id is required'})
        return
    leave_room(room_for(session_id))
    get_registry().release(_get_sid(), session_id)
    emit('unsubscribed', {'session_id': session_id})


def handle_ping(data):
    emit('pong', data or {})


def register_socketio_handlers(testing: bool = False) -> None:
    """Register Socket.IO event handlers.

    Always register on namespace '/ws'. When testing is True, also mirror
    handlers on the default namespace '/' to accommodate the test harness.
    """
    namespaces = [FEED_NAMESPACE, '/'] if testing else [FEED_NAMESPACE]
    for namespace in namespaces:
        socketio.on_event('connect', handle_connect, namespace=namespace)
        socketio.on_event('disconnect', handle_disconnect, namespace=namespace)
        socketio.on_event('subscribe', handle_subscribe, namespace=namespace)
        socketio.on_event('unsubscribe', handle_unsubscribe, namespace=namespace)
        socketio.on_event('ping', handle_ping, namespace=namespace)
