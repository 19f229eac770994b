from flask import Blueprint, jsonify, request
from flask_login import current_user

from tasting.identity import active_user_required
from tasting.schemas import AcceptInvitationIn, InvitationEntity, ParticipantEntity, SessionEntity, parse
from tasting.services.tasting import invitations
from tasting.services.tasting.sessions import sessions_for_user

me = Blueprint('me', __name__)


@me.route('/me/sessions', methods=['GET'])
@active_user_required
def my_sessions():
    return jsonify(sessions_for_user(current_user))


@me.route('/me/invitations', methods=['GET'])
@active_user_required
def my_invitations():
    pending = invitations.pending_for(current_user)
    return jsonify([
        dict(
            InvitationEntity.model_validate(inv).model_dump(mode='json'),
            session=SessionEntity.model_validate(inv.session).model_dump(mode='json'),
        )
        for inv in pending
    ])


@me.route('/invitations/<string:invitation_id>/accept', methods=['POST'])
@active_user_required
def accept_invitation(invitation_id):
    data = parse(AcceptInvitationIn, request.get_json(silent=True))
    invitation, participant, created = invitations.accept(invitation_id, current_user, name=data.name)
    return jsonify({
        'invitation': InvitationEntity.model_validate(invitation).model_dump(mode='json'),
        'participant': ParticipantEntity.model_validate(participant).model_dump(mode='json'),
        'created': created,
    })


@me.route('/invitations/<string:invitation_id>/decline', methods=['POST'])
@active_user_required
def decline_invitation(invitation_id):
    invitation = invitations.decline(invitation_id, current_user)
    return jsonify(InvitationEntity.model_validate(invitation).model_dump(mode='json'))
