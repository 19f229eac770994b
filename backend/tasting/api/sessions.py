from flask import Blueprint, jsonify, request
from flask_login import current_user

from tasting.errors import NotFoundError
from tasting.identity import active_user_required, check_identity
from tasting.schemas import (
    GuessIn, InvitationEntity, InvitationIn, JoinIn, MoveIn, ParticipantEntity,
    SessionCreateIn, SessionEntity, StatusIn, SubmissionEntity, WhiskyEntity, WhiskyIn, parse,
)
from tasting.services.tasting import invitations, views
from tasting.services.tasting.sessions import create_session, join_session
from tasting.services.tasting.state_machine import advance_status, require_host
from tasting.services.tasting.submissions import submit_guess
from tasting.services.tasting.whiskies import add_whisky, move_whisky, update_whisky
from tasting.store import get_session, load_aggregate

sessions = Blueprint('sessions', __name__)


def _host_aggregate(session_id):
    user = check_identity()
    require_host(get_session(session_id), user)
    return load_aggregate(session_id)


@sessions.route('', methods=['POST'])
@active_user_required
def create():
    data = parse(SessionCreateIn, request.get_json(silent=True))
    session = create_session(data.host_name, current_user)
    return jsonify(views.host_view(load_aggregate(session.id))), 201


@sessions.route('/join', methods=['POST'])
@active_user_required
def join():
    data = parse(JoinIn, request.get_json(silent=True))
    session, participant, created = join_session(data.code, data.name, current_user)
    return jsonify({
        'session': SessionEntity.model_validate(session).model_dump(mode='json'),
        'participant': ParticipantEntity.model_validate(participant).model_dump(mode='json'),
    }), 201 if created else 200


@sessions.route('/<string:session_id>', methods=['GET'])
@active_user_required
def get_host_view(session_id):
    return jsonify(views.host_view(_host_aggregate(session_id)))


@sessions.route('/<string:session_id>/status', methods=['POST'])
@active_user_required
def change_status(session_id):
    data = parse(StatusIn, request.get_json(silent=True))
    session, changed = advance_status(session_id, data.status, user=current_user)
    return jsonify({
        'session': SessionEntity.model_validate(get_session(session_id)).model_dump(mode='json'),
        'changed': changed,
    })


@sessions.route('/<string:session_id>/whiskies', methods=['POST'])
@active_user_required
def create_whisky(session_id):
    data = parse(WhiskyIn, request.get_json(silent=True))
    whisky = add_whisky(session_id, data, current_user)
    return jsonify(WhiskyEntity.model_validate(whisky).model_dump(mode='json')), 201


@sessions.route('/<string:session_id>/whiskies/<string:whisky_id>', methods=['PUT'])
@active_user_required
def edit_whisky(session_id, whisky_id):
    data = parse(WhiskyIn, request.get_json(silent=True))
    whisky = update_whisky(session_id, whisky_id, data, current_user)
    return jsonify(WhiskyEntity.model_validate(whisky).model_dump(mode='json'))


@sessions.route('/<string:session_id>/whiskies/<string:whisky_id>/move', methods=['POST'])
@active_user_required
def reorder_whisky(session_id, whisky_id):
    data = parse(MoveIn, request.get_json(silent=True))
    moved = move_whisky(session_id, whisky_id, data.direction, current_user)
    aggregate = load_aggregate(session_id)
    return jsonify({
        'moved': moved,
        'whiskies': [w.model_dump(mode='json') for w in aggregate.whiskies],
    })


@sessions.route('/<string:session_id>/submissions', methods=['POST'])
@active_user_required
def create_or_update_submission(session_id):
    data = parse(GuessIn, request.get_json(silent=True))
    submission, created, next_whisky_id = submit_guess(session_id, data, current_user)
    return jsonify({
        'submission': SubmissionEntity.model_validate(submission).model_dump(mode='json'),
        'created': created,
        'next_whisky_id': next_whisky_id,
    }), 201 if created else 200


@sessions.route('/<string:session_id>/review', methods=['GET'])
@active_user_required
def review(session_id):
    return jsonify(views.review_tallies(_host_aggregate(session_id)))


def _viewer_participant(aggregate, participant_id):
    participant = aggregate.participant(participant_id)
    if participant is None:
        raise NotFoundError('Participant not found')
    if participant.user_id and participant.user_id != current_user.id:
        raise NotFoundError('Participant not found')
    return participant


@sessions.route('/<string:session_id>/reveal', methods=['GET'])
@active_user_required
def reveal(session_id):
    aggregate = load_aggregate(session_id)
    participant_id = request.args.get('participant_id')
    if participant_id:
        _viewer_participant(aggregate, participant_id)
    else:
        require_host(get_session(session_id), current_user)
    return jsonify(views.reveal_view(aggregate, viewer_participant_id=participant_id))


@sessions.route('/<string:session_id>/participants/<string:participant_id>', methods=['GET'])
@active_user_required
def participant_view(session_id, participant_id):
    aggregate = load_aggregate(session_id)
    _viewer_participant(aggregate, participant_id)
    return jsonify(views.participant_view(aggregate, participant_id))


@sessions.route('/<string:session_id>/invitations', methods=['POST'])
@active_user_required
def create_invitation(session_id):
    data = parse(InvitationIn, request.get_json(silent=True))
    invitation = invitations.invite(session_id, data.email, current_user)
    return jsonify(InvitationEntity.model_validate(invitation).model_dump(mode='json')), 201
