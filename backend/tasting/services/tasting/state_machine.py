"""Session lifecycle: waiting -> collecting -> reviewing -> revealed -> finished.

Status only moves forward. The host drives the first three steps; ``finished``
is reached out-of-band (CLI) from ``revealed``. Moving on never depends on how
many guesses were submitted; only starting the tasting needs a whisky.
"""
from typing import Iterable, Tuple

from flask import current_app

from tasting import db
from tasting.errors import AuthorizationError, StateConflictError
from tasting.feed import note_change
from tasting.models import SESSION_STATUSES, TastingSession, Whisky, utcnow
from tasting.store import commit, lock_session

HOST_TRANSITIONS = {
    'waiting': 'collecting',
    'collecting': 'reviewing',
    'reviewing': 'revealed',
}
OUT_OF_BAND_TRANSITIONS = {
    'revealed': 'finished',
}

WHISKY_EDIT_STATUSES = ('waiting',)
JOIN_STATUSES = ('waiting', 'collecting')
SUBMIT_STATUSES = ('collecting',)
REVIEW_STATUSES = ('reviewing', 'revealed', 'finished')
REVEAL_STATUSES = ('revealed', 'finished')


def status_rank(status: str) -> int:
    return SESSION_STATUSES.index(status)


def next_status(status: str, out_of_band: bool = False):
    if out_of_band and status in OUT_OF_BAND_TRANSITIONS:
        return OUT_OF_BAND_TRANSITIONS[status]
    return HOST_TRANSITIONS.get(status)


def require_status(session: TastingSession, allowed: Iterable[str], action: str) -> None:
    if session.status not in allowed:
        raise StateConflictError(f"Cannot {action} while the session is {session.status}")


def require_host(session: TastingSession, user) -> None:
    if session.host_user_id and (user is None or session.host_user_id != user.id):
        raise AuthorizationError('Only the host can manage this session')


def advance_status(session_id: str, target: str, user=None, out_of_band: bool = False) -> Tuple[TastingSession, bool]:
    """Move a session to ``target`` if that is its legal next step.

    The write is a compare-and-swap on the current status, so two hosts
    racing the same click cannot both win. Asking for the status the session
    already has is reported as unchanged rather than rejected.
    """
    if target not in SESSION_STATUSES:
        raise StateConflictError(f"Unknown session status '{target}'")

    session = lock_session(session_id)
    if not out_of_band:
        require_host(session, user)
    current = session.status
    if target == current:
        db.session.rollback()
        return session, False

    if next_status(current, out_of_band=out_of_band) != target:
        db.session.rollback()
        raise StateConflictError(f"Cannot move session from {current} to {target}")

    if current == 'waiting' and Whisky.query.filter_by(session_id=session_id).count() == 0:
        db.session.rollback()
        raise StateConflictError('Add at least one whisky before starting the tasting')

    updated = (
        TastingSession.query
        .filter_by(id=session_id, status=current)
        .update({'status': target, 'updated_at': utcnow()}, synchronize_session=False)
    )
    if updated != 1:
        db.session.rollback()
        raise StateConflictError('The session changed in the meantime. Reload and try again.')
    note_change(db.session, 'sessions', 'UPDATE', session_id, session_id, status=target)
    commit('update_session_status')
    current_app.logger.info(f"[status] session={session_id} {current} -> {target}")
    return session, True
