"""Store access: transactions, row locks and typed aggregate loading."""
from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from tasting import db
from tasting.errors import NotFoundError, StoreError
from tasting.models import TastingSession, Participant, Whisky, Submission
from tasting.schemas import SessionAggregate, ParticipantEntity, WhiskyEntity, SubmissionEntity


def commit(action: str) -> None:
    """Commit the current transaction, rolling back and raising StoreError on failure."""
    try:
        db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.exception(f"[store] {action} failed")
        raise StoreError(f"Failed to {action.replace('_', ' ')}. Please try again.") from exc


def flush(action: str) -> None:
    """Flush pending writes inside the open transaction, with the same failure contract as commit."""
    try:
        db.session.flush()
    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.exception(f"[store] {action} failed")
        raise StoreError(f"Failed to {action.replace('_', ' ')}. Please try again.") from exc


def get_session(session_id: str) -> TastingSession:
    session = db.session.get(TastingSession, session_id)
    if not session:
        raise NotFoundError('Session not found')
    return session


def lock_session(session_id: str) -> TastingSession:
    """Load the session row for update so status checks and writes share one transaction."""
    session = (
        TastingSession.query.filter_by(id=session_id)
        .populate_existing()
        .with_for_update()
        .first()
    )
    if not session:
        raise NotFoundError('Session not found')
    return session


def find_session_by_code(code: str) -> TastingSession:
    session = TastingSession.query.filter_by(code=(code or '').strip().upper()).first()
    if not session:
        raise NotFoundError('Session not found')
    return session


def load_aggregate(session_id: str) -> SessionAggregate:
    """Session with its participants, whiskies (in tasting order) and submissions."""
    session = get_session(session_id)
    participants = Participant.query.filter_by(session_id=session_id).order_by(Participant.created_at).all()
    whiskies = Whisky.query.filter_by(session_id=session_id).order_by(Whisky.order_index).all()
    submissions = Submission.query.filter_by(session_id=session_id).order_by(Submission.created_at).all()
    return SessionAggregate.model_validate({
        'id': session.id,
        'code': session.code,
        'host_name': session.host_name,
        'host_user_id': session.host_user_id,
        'status': session.status,
        'created_at': session.created_at,
        'updated_at': session.updated_at,
        'participants': [ParticipantEntity.model_validate(p) for p in participants],
        'whiskies': [WhiskyEntity.model_validate(w) for w in whiskies],
        'submissions': [SubmissionEntity.model_validate(s) for s in submissions],
    })
