"""Read-only projections of a session aggregate for host and participants.

Everything here is a pure function of a :class:`SessionAggregate`; there is
no scoring, only true values shown next to stored guesses.
"""
from typing import List, Optional

from tasting.errors import NotFoundError, StateConflictError
from tasting.schemas import SessionAggregate, SessionEntity
from .state_machine import REVEAL_STATUSES, REVIEW_STATUSES
from .submissions import next_unanswered_whisky


def session_summary(aggregate: SessionAggregate) -> dict:
    return aggregate.model_dump(mode='json', include=set(SessionEntity.model_fields))


def _participant_names(aggregate: SessionAggregate) -> dict:
    return {p.id: p.name for p in aggregate.participants}


def progress(aggregate: SessionAggregate) -> List[dict]:
    total = len(aggregate.whiskies)
    return [
        {
            'participant_id': p.id,
            'name': p.name,
            'submitted': len(aggregate.submissions_by(p.id)),
            'total': total,
        }
        for p in aggregate.participants
    ]


def host_view(aggregate: SessionAggregate) -> dict:
    payload = aggregate.model_dump(mode='json')
    payload['progress'] = progress(aggregate)
    payload['counts'] = {
        'participants': len(aggregate.participants),
        'whiskies': len(aggregate.whiskies),
        'submissions': len(aggregate.submissions),
    }
    return payload


def review_tallies(aggregate: SessionAggregate) -> dict:
    if aggregate.status not in REVIEW_STATUSES:
        raise StateConflictError(f"Submissions can be reviewed once collecting has ended (session is {aggregate.status})")
    names = _participant_names(aggregate)
    whiskies = []
    for position, whisky in enumerate(aggregate.whiskies, start=1):
        submissions = aggregate.submissions_for_whisky(whisky.id)
        whiskies.append({
            'position': position,
            'whisky': whisky.model_dump(mode='json'),
            'submission_count': len(submissions),
            'submissions': [
                dict(s.model_dump(mode='json'), participant_name=names.get(s.participant_id))
                for s in submissions
            ],
        })
    return {'session': session_summary(aggregate), 'whiskies': whiskies, 'progress': progress(aggregate)}


def reveal_view(aggregate: SessionAggregate, viewer_participant_id: Optional[str] = None) -> dict:
    """True attributes of every whisky next to every guess made for it."""
    if aggregate.status not in REVEAL_STATUSES:
        raise StateConflictError(f"Results are not revealed yet (session is {aggregate.status})")
    names = _participant_names(aggregate)
    whiskies = []
    for position, whisky in enumerate(aggregate.whiskies, start=1):
        submissions = []
        own = None
        for s in aggregate.submissions_for_whisky(whisky.id):
            entry = dict(
                s.model_dump(mode='json'),
                participant_name=names.get(s.participant_id),
                is_own=s.participant_id == viewer_participant_id,
            )
            if entry['is_own']:
                own = entry
            submissions.append(entry)
        whiskies.append({
            'position': position,
            'whisky': whisky.model_dump(mode='json'),
            'submissions': submissions,
            'own_submission': own,
        })
    return {
        'session': session_summary(aggregate),
        'viewer_participant_id': viewer_participant_id,
        'whiskies': whiskies,
    }


def participant_view(aggregate: SessionAggregate, participant_id: str) -> dict:
    participant = aggregate.participant(participant_id)
    if participant is None:
        raise NotFoundError('Participant not found')
    base = {
        'stage': aggregate.status,
        'session': session_summary(aggregate),
        'participant': participant.model_dump(mode='json'),
    }

    if aggregate.status == 'waiting':
        base['whisky_count'] = len(aggregate.whiskies)
        base['message'] = 'Waiting for the host to start the tasting...'
        return base

    if aggregate.status == 'collecting':
        own = aggregate.submissions_by(participant_id)
        answered = {s.whisky_id for s in own}
        ordered_ids = [w.id for w in aggregate.whiskies]
        # Whisky identities stay hidden until the reveal
        base['whiskies'] = [
            {'whisky_id': w.id, 'position': i, 'order_index': w.order_index, 'answered': w.id in answered}
            for i, w in enumerate(aggregate.whiskies, start=1)
        ]
        base['submissions'] = [s.model_dump(mode='json') for s in own]
        base['complete'] = bool(ordered_ids) and answered.issuperset(ordered_ids)
        first_open = next_unanswered_whisky(ordered_ids, answered, None)
        base['current_whisky_id'] = first_open or (ordered_ids[-1] if ordered_ids else None)
        return base

    if aggregate.status == 'reviewing':
        base['message'] = 'The host is reviewing submissions. Please wait...'
        return base

    base.update(reveal_view(aggregate, viewer_participant_id=participant_id))
    return base
