from typing import Dict, List, Tuple

from flask import current_app

from tasting import db
from tasting.models import TastingSession, Participant, generate_session_code
from tasting.schemas import SessionEntity
from tasting.store import commit, find_session_by_code, lock_session
from .state_machine import JOIN_STATUSES, require_status


def create_session(host_name: str, user) -> TastingSession:
    length = int(current_app.config.get('SESSION_CODE_LENGTH', 6))
    session = TastingSession(
        code=generate_session_code(length),
        host_name=host_name,
        host_user_id=user.id if user is not None else None,
        status='waiting',
    )
    db.session.add(session)
    commit('create_session')
    current_app.logger.info(f"[session] created session={session.id} code={session.code} host={session.host_user_id}")
    return session


def join_session(code: str, name: str, user) -> Tuple[TastingSession, Participant, bool]:
    """Join by session code. An unknown code raises NotFoundError and writes nothing."""
    session = find_session_by_code(code)
    return join_session_by_id(session.id, name, user)


def join_session_by_id(session_id: str, name: str, user) -> Tuple[TastingSession, Participant, bool]:
    session = lock_session(session_id)
    if user is not None:
        existing = Participant.query.filter_by(session_id=session_id, user_id=user.id).first()
        if existing:
            # Rejoining returns the participant created the first time
            db.session.rollback()
            return session, existing, False
    require_status(session, JOIN_STATUSES, 'join')

    participant = Participant(session_id=session_id, name=name, user_id=user.id if user is not None else None)
    db.session.add(participant)
    commit('join_session')
    current_app.logger.info(f"[session] participant={participant.id} joined session={session_id}")
    return session, participant, True


def sessions_for_user(user) -> Dict[str, List[dict]]:
    """Sessions the user hosts and sessions the user takes part in, newest first."""
    hosted = (
        TastingSession.query.filter_by(host_user_id=user.id)
        .order_by(TastingSession.created_at.desc())
        .all()
    )
    participated = (
        TastingSession.query.join(Participant, Participant.session_id == TastingSession.id)
        .filter(Participant.user_id == user.id)
        .order_by(TastingSession.created_at.desc())
        .distinct()
        .all()
    )
    participant_ids = {
        p.session_id: p.id for p in Participant.query.filter_by(user_id=user.id).all()
    }
    return {
        'hosted': [SessionEntity.model_validate(s).model_dump(mode='json') for s in hosted],
        'participated': [
            dict(SessionEntity.model_validate(s).model_dump(mode='json'), participant_id=participant_ids.get(s.id))
            for s in participated
        ],
    }
