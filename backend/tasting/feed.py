"""Live change feed: captures row changes and fans them out per session.

Inserts and updates on the four session-scoped tables are collected while a
transaction flushes (or noted explicitly for Core statements that bypass the
unit of work), held on the DB session, and emitted on the ``/ws`` namespace
only once the transaction commits. A rollback drops them. Each event goes
to the ``session:<id>`` room, so only subscribers of that session see it.

Delivery is at-least-once and unordered across events; payloads carry only
identifiers (plus the status of session rows), subscribers re-fetch.
"""
import threading
from typing import Dict, List, Set

from flask import current_app, has_app_context
from sqlalchemy import event
from sqlalchemy.orm import Session as OrmSession

from tasting import socketio

FEED_NAMESPACE = '/ws'
FEED_TABLES = {'sessions', 'participants', 'whiskies', 'submissions'}
_PENDING_KEY = 'tasting_changes'


def room_for(session_id: str) -> str:
    return f"session:{session_id}"


class SubscriptionRegistry:
    """Tracks which socket is subscribed to which session.

    Owned by the Flask app (``app.extensions['tasting_feed']``); every slot
    acquired through ``subscribe`` is released on ``unsubscribe`` or when the
    socket disconnects.
    """

    def __init__(self):
        self._by_sid: Dict[str, Set[str]] = {}
        self._lock = threading.Lock()

    def acquire(self, sid: str, session_id: str) -> bool:
        with self._lock:
            held = self._by_sid.setdefault(sid, set())
            if session_id in held:
                return False
            held.add(session_id)
            return True

    def release(self, sid: str, session_id: str) -> bool:
        with self._lock:
            held = self._by_sid.get(sid)
            if not held or session_id not in held:
                return False
            held.discard(session_id)
            if not held:
                self._by_sid.pop(sid, None)
            return True

    def release_all(self, sid: str) -> List[str]:
        with self._lock:
            return sorted(self._by_sid.pop(sid, set()))

    def subscriptions(self, sid: str) -> List[str]:
        with self._lock:
            return sorted(self._by_sid.get(sid, set()))

    def count(self, session_id: str) -> int:
        with self._lock:
            return sum(1 for held in self._by_sid.values() if session_id in held)


def get_registry(app=None) -> SubscriptionRegistry:
    return (app or current_app).extensions['tasting_feed']


def _change_for(obj, change_type: str):
    table = getattr(obj, '__tablename__', None)
    if table not in FEED_TABLES:
        return None
    session_id = obj.id if table == 'sessions' else obj.session_id
    change = {'session_id': session_id, 'table': table, 'type': change_type, 'id': obj.id}
    if table == 'sessions':
        change['status'] = obj.status
    return change


def note_change(db_session, table: str, change_type: str, row_id: str, session_id: str, **extra) -> None:
    """Queue a change made through a Core statement the flush hook cannot see."""
    change = {'session_id': session_id, 'table': table, 'type': change_type, 'id': row_id}
    change.update(extra)
    db_session.info.setdefault(_PENDING_KEY, []).append(change)


@event.listens_for(OrmSession, 'after_flush')
def _capture_flush(session, flush_context):
    pending = session.info.setdefault(_PENDING_KEY, [])
    for obj in session.new:
        change = _change_for(obj, 'INSERT')
        if change:
            pending.append(change)
    for obj in session.dirty:
        if not session.is_modified(obj, include_collections=False):
            continue
        change = _change_for(obj, 'UPDATE')
        if change:
            pending.append(change)


@event.listens_for(OrmSession, 'after_commit')
def _publish_after_commit(session):
    changes = session.info.pop(_PENDING_KEY, None)
    if not changes or not has_app_context():
        return
    publish(changes)


@event.listens_for(OrmSession, 'after_rollback')
def _discard_after_rollback(session):
    session.info.pop(_PENDING_KEY, None)


def publish(changes: List[dict]) -> None:
    seen = set()
    for change in changes:
        key = (change['table'], change['type'], change['id'])
        if key in seen:
            continue
        seen.add(key)
        current_app.logger.info(
            f"[feed] publish session={change['session_id']} table={change['table']} type={change['type']} id={change['id']}"
        )
        socketio.emit('change', change, to=room_for(change['session_id']), namespace=FEED_NAMESPACE)
