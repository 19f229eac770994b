"""Host-side whisky management: add, edit and reorder while the session waits."""
from flask import current_app

from tasting import db
from tasting.errors import NotFoundError
from tasting.models import Whisky
from tasting.schemas import WhiskyIn
from tasting.store import commit, flush, lock_session
from .state_machine import WHISKY_EDIT_STATUSES, require_host, require_status


def _load_whisky(session_id: str, whisky_id: str) -> Whisky:
    whisky = Whisky.query.filter_by(id=whisky_id, session_id=session_id).first()
    if not whisky:
        raise NotFoundError('Whisky not found')
    return whisky


def add_whisky(session_id: str, data: WhiskyIn, user) -> Whisky:
    """Append a whisky at the end of the tasting order."""
    session = lock_session(session_id)
    require_host(session, user)
    require_status(session, WHISKY_EDIT_STATUSES, 'add whiskies')

    order_index = Whisky.query.filter_by(session_id=session_id).count()
    whisky = Whisky(session_id=session_id, order_index=order_index, **data.model_dump())
    db.session.add(whisky)
    commit('add_whisky')
    current_app.logger.info(f"[whisky] added whisky={whisky.id} session={session_id} order_index={order_index}")
    return whisky


def update_whisky(session_id: str, whisky_id: str, data: WhiskyIn, user) -> Whisky:
    session = lock_session(session_id)
    require_host(session, user)
    require_status(session, WHISKY_EDIT_STATUSES, 'edit whiskies')

    whisky = _load_whisky(session_id, whisky_id)
    for field, value in data.model_dump().items():
        setattr(whisky, field, value)
    commit('update_whisky')
    current_app.logger.info(f"[whisky] updated whisky={whisky.id} session={session_id}")
    return whisky


def move_whisky(session_id: str, whisky_id: str, direction: str, user) -> bool:
    """Swap a whisky with its neighbour in tasting order.

    Both rows change in one transaction; a failure rolls back both. Moving
    the first whisky up or the last one down changes nothing.
    """
    session = lock_session(session_id)
    require_host(session, user)
    require_status(session, WHISKY_EDIT_STATUSES, 'reorder whiskies')

    ordered = Whisky.query.filter_by(session_id=session_id).order_by(Whisky.order_index).all()
    current_pos = next((i for i, w in enumerate(ordered) if w.id == whisky_id), None)
    if current_pos is None:
        db.session.rollback()
        raise NotFoundError('Whisky not found')
    target_pos = current_pos - 1 if direction == 'up' else current_pos + 1
    if target_pos < 0 or target_pos >= len(ordered):
        db.session.rollback()
        return False

    moving, other = ordered[current_pos], ordered[target_pos]
    moving_index, other_index = moving.order_index, other.order_index
    # (session_id, order_index) is unique, so park one row on a free slot first
    moving.order_index = -1
    flush('reorder_whisky')
    other.order_index = moving_index
    flush('reorder_whisky')
    moving.order_index = other_index
    commit('reorder_whisky')
    current_app.logger.info(
        f"[whisky] moved whisky={whisky_id} {direction} session={session_id} {moving_index} <-> {other_index}"
    )
    return True
