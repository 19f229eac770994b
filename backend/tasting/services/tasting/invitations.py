from typing import List

from flask import current_app

from tasting import db
from tasting.errors import AuthorizationError, NotFoundError, StateConflictError
from tasting.models import SessionInvitation, utcnow
from tasting.store import commit, lock_session
from .sessions import join_session_by_id
from .state_machine import require_host


def invite(session_id: str, email: str, user) -> SessionInvitation:
    session = lock_session(session_id)
    require_host(session, user)
    invitation = SessionInvitation.query.filter_by(session_id=session_id, email=email).first()
    if invitation:
        if invitation.status != 'pending':
            invitation.status = 'pending'
            invitation.accepted_at = None
    else:
        invitation = SessionInvitation(session_id=session_id, email=email, invited_by=user.id)
        db.session.add(invitation)
    commit('invite')
    current_app.logger.info(f"[invite] session={session_id} email={email}")
    return invitation


def pending_for(user) -> List[SessionInvitation]:
    return (
        SessionInvitation.query.filter_by(email=user.email.lower(), status='pending')
        .order_by(SessionInvitation.created_at.desc())
        .all()
    )


def _load_own(invitation_id: str, user) -> SessionInvitation:
    invitation = db.session.get(SessionInvitation, invitation_id)
    if not invitation:
        raise NotFoundError('Invitation not found')
    if invitation.email != user.email.lower():
        raise AuthorizationError('This invitation was sent to someone else')
    if invitation.status != 'pending':
        raise StateConflictError(f"Invitation already {invitation.status}")
    return invitation


def accept(invitation_id: str, user, name: str = None):
    """Accept an invitation by joining its session; the join rules apply unchanged."""
    invitation = _load_own(invitation_id, user)
    session_id = invitation.session_id
    session, participant, created = join_session_by_id(session_id, name or user.name or user.email, user)
    invitation = db.session.get(SessionInvitation, invitation_id)
    invitation.status = 'accepted'
    invitation.accepted_at = utcnow()
    commit('accept_invitation')
    return invitation, participant, created


def decline(invitation_id: str, user) -> SessionInvitation:
    invitation = _load_own(invitation_id, user)
    invitation.status = 'declined'
    commit('decline_invitation')
    return invitation
