"""Guess submission: one row per (participant, whisky), inserted or updated
by the store itself in a single statement."""
import uuid
from typing import Iterable, List, Optional, Tuple

from flask import current_app
from sqlalchemy import insert
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import IntegrityError

from tasting import db
from tasting.errors import AuthorizationError, NotFoundError
from tasting.feed import note_change
from tasting.models import Participant, Submission, Whisky, utcnow
from tasting.schemas import GuessIn
from tasting.store import commit, lock_session
from .state_machine import SUBMIT_STATUSES, require_status

_UPSERT_INSERTS = {
    'postgresql': postgresql.insert,
    'sqlite': sqlite.insert,
}
_CONFLICT_KEYS = ['participant_id', 'whisky_id']


def next_unanswered_whisky(ordered_ids: List[str], answered: Iterable[str], current_id: Optional[str]) -> Optional[str]:
    """The next whisky after ``current_id`` (wrapping) without a guess, else ``current_id``."""
    answered = set(answered)
    start = ordered_ids.index(current_id) + 1 if current_id in ordered_ids else 0
    for whisky_id in ordered_ids[start:] + ordered_ids[:start]:
        if whisky_id not in answered:
            return whisky_id
    return current_id


def _upsert(session_id: str, participant_id: str, whisky_id: str, fields: dict) -> bool:
    """Insert or overwrite the guess in one statement; True when a new row was created.

    The conflict branch never touches ``id``, so the stored id tells which
    branch the store took even when another request inserted the pair first.
    """
    now = utcnow()
    new_id = str(uuid.uuid4())
    row = dict(
        fields,
        id=new_id,
        session_id=session_id,
        participant_id=participant_id,
        whisky_id=whisky_id,
        created_at=now,
        updated_at=now,
    )
    changes = dict(fields, updated_at=now)

    dialect_insert = _UPSERT_INSERTS.get(db.engine.dialect.name)
    if dialect_insert is not None:
        stmt = dialect_insert(Submission.__table__).values(**row)
        stmt = stmt.on_conflict_do_update(index_elements=_CONFLICT_KEYS, set_=changes)
        db.session.execute(stmt)
    else:
        try:
            with db.session.begin_nested():
                db.session.execute(insert(Submission.__table__).values(**row))
        except IntegrityError:
            # Someone inserted the pair first; the uniqueness constraint turns this into an update
            (
                Submission.query
                .filter_by(participant_id=participant_id, whisky_id=whisky_id)
                .update(changes, synchronize_session=False)
            )

    row_id = (
        db.session.query(Submission.id)
        .filter_by(participant_id=participant_id, whisky_id=whisky_id)
        .scalar()
    )
    created = row_id == new_id
    note_change(db.session, 'submissions', 'INSERT' if created else 'UPDATE', row_id, session_id)
    return created


def submit_guess(session_id: str, guess: GuessIn, user) -> Tuple[Submission, bool, Optional[str]]:
    """Store a participant's guess for one whisky.

    Returns the stored row, whether it was newly created, and the whisky the
    participant should move on to.
    """
    session = lock_session(session_id)
    participant = Participant.query.filter_by(id=guess.participant_id, session_id=session_id).first()
    if not participant:
        raise NotFoundError('Participant not found')
    if participant.user_id and (user is None or participant.user_id != user.id):
        raise AuthorizationError('You can only submit guesses for yourself')
    require_status(session, SUBMIT_STATUSES, 'submit guesses')
    whisky = Whisky.query.filter_by(id=guess.whisky_id, session_id=session_id).first()
    if not whisky:
        raise NotFoundError('Whisky not found')

    created = _upsert(session_id, participant.id, whisky.id, guess.guessed_fields())
    commit('submit_guess')

    submission = Submission.query.filter_by(participant_id=participant.id, whisky_id=whisky.id).one()
    ordered_ids = [
        w.id for w in Whisky.query.filter_by(session_id=session_id).order_by(Whisky.order_index).all()
    ]
    answered = [
        s.whisky_id for s in Submission.query.filter_by(participant_id=participant.id).all()
    ]
    current_app.logger.info(
        f"[guess] {'created' if created else 'updated'} submission={submission.id} "
        f"participant={participant.id} whisky={whisky.id}"
    )
    return submission, created, next_unanswered_whisky(ordered_ids, answered, whisky.id)
