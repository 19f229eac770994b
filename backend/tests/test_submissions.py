from sqlalchemy import insert

from conftest import create_session, guess_payload, join, set_status, whisky_payload
from tasting import db
from tasting.models import Submission
from tasting.services.tasting import submissions as submission_service


def _whisky_ids(host, session_id):
    return [w['id'] for w in host.get(f'/api/sessions/{session_id}').get_json()['whiskies']]


def test_resubmitting_overwrites_single_row(flask_app, host_client, amy_client):
    session = create_session(host_client, whiskies=2)
    amy = join(amy_client, session['code'], 'Amy')
    set_status(host_client, session['id'], 'collecting')
    w1, w2 = _whisky_ids(host_client, session['id'])

    first = amy_client.post(f"/api/sessions/{session['id']}/submissions", json=guess_payload(amy['id'], w1))
    assert first.status_code == 201
    assert first.get_json()['created'] is True
    assert first.get_json()['next_whisky_id'] == w2

    second = amy_client.post(
        f"/api/sessions/{session['id']}/submissions",
        json=guess_payload(amy['id'], w1, guessed_name='Ardbeg 10', guessed_score=3.5),
    )
    assert second.status_code == 200
    data = second.get_json()
    assert data['created'] is False
    assert data['submission']['id'] == first.get_json()['submission']['id']
    assert data['submission']['guessed_name'] == 'Ardbeg 10'

    with flask_app.app_context():
        rows = Submission.query.filter_by(participant_id=amy['id'], whisky_id=w1).all()
        assert len(rows) == 1
        assert rows[0].guessed_score == 3.5


def test_next_whisky_wraps_and_stays_when_complete(host_client, amy_client):
    session = create_session(host_client, whiskies=3)
    amy = join(amy_client, session['code'], 'Amy')
    set_status(host_client, session['id'], 'collecting')
    w1, w2, w3 = _whisky_ids(host_client, session['id'])
    url = f"/api/sessions/{session['id']}/submissions"

    assert amy_client.post(url, json=guess_payload(amy['id'], w2)).get_json()['next_whisky_id'] == w3
    assert amy_client.post(url, json=guess_payload(amy['id'], w3)).get_json()['next_whisky_id'] == w1
    assert amy_client.post(url, json=guess_payload(amy['id'], w1)).get_json()['next_whisky_id'] == w1


def test_submission_requires_collecting(host_client, amy_client):
    session = create_session(host_client, whiskies=1)
    amy = join(amy_client, session['code'], 'Amy')
    (w1,) = _whisky_ids(host_client, session['id'])
    url = f"/api/sessions/{session['id']}/submissions"

    early = amy_client.post(url, json=guess_payload(amy['id'], w1))
    assert early.status_code == 409

    set_status(host_client, session['id'], 'collecting')
    set_status(host_client, session['id'], 'reviewing')
    late = amy_client.post(url, json=guess_payload(amy['id'], w1))
    assert late.status_code == 409
    assert late.get_json()['kind'] == 'state_conflict'


def test_submission_validation_writes_nothing(flask_app, host_client, amy_client):
    session = create_session(host_client, whiskies=1)
    amy = join(amy_client, session['code'], 'Amy')
    set_status(host_client, session['id'], 'collecting')
    (w1,) = _whisky_ids(host_client, session['id'])

    res = amy_client.post(
        f"/api/sessions/{session['id']}/submissions",
        json=guess_payload(amy['id'], w1, guessed_distillery='', guessed_abv=140),
    )
    assert res.status_code == 400
    assert 'guessed_distillery' in res.get_json()['error']
    with flask_app.app_context():
        assert db.session.query(Submission).count() == 0


def test_cannot_submit_for_someone_else(host_client, amy_client, ben_client):
    session = create_session(host_client, whiskies=1)
    amy = join(amy_client, session['code'], 'Amy')
    join(ben_client, session['code'], 'Ben')
    set_status(host_client, session['id'], 'collecting')
    (w1,) = _whisky_ids(host_client, session['id'])

    res = ben_client.post(f"/api/sessions/{session['id']}/submissions", json=guess_payload(amy['id'], w1))
    assert res.status_code == 403


def test_unknown_whisky_or_participant(host_client, amy_client):
    session = create_session(host_client, whiskies=1)
    amy = join(amy_client, session['code'], 'Amy')
    set_status(host_client, session['id'], 'collecting')
    (w1,) = _whisky_ids(host_client, session['id'])
    url = f"/api/sessions/{session['id']}/submissions"

    assert amy_client.post(url, json=guess_payload(amy['id'], 'nope')).status_code == 404
    assert amy_client.post(url, json=guess_payload('nope', w1)).status_code == 404


def test_full_tasting_scenario(host_client, amy_client, ben_client):
    session = create_session(host_client, whiskies=2)
    sid = session['id']
    amy = join(amy_client, session['code'], 'Amy')

    waiting = amy_client.get(f"/api/sessions/{sid}/participants/{amy['id']}").get_json()
    assert waiting['stage'] == 'waiting'
    assert waiting['whisky_count'] == 2

    set_status(host_client, sid, 'collecting')
    ben = join(ben_client, session['code'], 'Ben')
    w1, w2 = _whisky_ids(host_client, sid)

    blind = amy_client.get(f"/api/sessions/{sid}/participants/{amy['id']}").get_json()
    assert blind['stage'] == 'collecting'
    assert [w['whisky_id'] for w in blind['whiskies']] == [w1, w2]
    assert 'name' not in blind['whiskies'][0]
    assert blind['current_whisky_id'] == w1

    url = f'/api/sessions/{sid}/submissions'
    for participant, client in ((amy, amy_client), (ben, ben_client)):
        for whisky_id in (w1, w2):
            res = client.post(url, json=guess_payload(participant['id'], whisky_id, guessed_name=f"{participant['name']} guess"))
            assert res.status_code == 201

    set_status(host_client, sid, 'reviewing')
    waiting_again = amy_client.get(f"/api/sessions/{sid}/participants/{amy['id']}").get_json()
    assert waiting_again['stage'] == 'reviewing'
    assert 'whiskies' not in waiting_again

    tallies = host_client.get(f'/api/sessions/{sid}/review').get_json()
    assert [w['submission_count'] for w in tallies['whiskies']] == [2, 2]

    set_status(host_client, sid, 'revealed')
    reveal = amy_client.get(f"/api/sessions/{sid}/reveal?participant_id={amy['id']}").get_json()
    assert [w['whisky']['id'] for w in reveal['whiskies']] == [w1, w2]
    for entry in reveal['whiskies']:
        assert entry['whisky']['name'] in ('Whisky 1', 'Whisky 2')
        assert sorted(s['participant_name'] for s in entry['submissions']) == ['Amy', 'Ben']
        assert entry['own_submission']['participant_name'] == 'Amy'
        assert [s['is_own'] for s in entry['submissions'] if s['participant_name'] == 'Ben'] == [False]

    participant_reveal = ben_client.get(f"/api/sessions/{sid}/participants/{ben['id']}").get_json()
    assert participant_reveal['stage'] == 'revealed'
    assert participant_reveal['whiskies'][0]['own_submission']['guessed_name'] == 'Ben guess'


def test_ben_sees_true_glenfarclas_next_to_his_guess(amy_client, ben_client):
    session = create_session(amy_client, host_name='Amy')
    sid = session['id']
    res = amy_client.post(f'/api/sessions/{sid}/whiskies', json=whisky_payload(
        name='Glenfarclas 15', age=15, abv=46, region='Speyside', distillery='Glenfarclas',
    ))
    assert res.status_code == 201
    whisky_id = res.get_json()['id']
    set_status(amy_client, sid, 'collecting')

    ben = join(ben_client, session['code'], 'Ben')
    guess = ben_client.post(f'/api/sessions/{sid}/submissions', json=guess_payload(
        ben['id'], whisky_id, guessed_name='Macallan 12', guessed_score=3, guessed_abv=43,
        guessed_region='Speyside', guessed_distillery='Macallan',
    ))
    assert guess.status_code == 201

    set_status(amy_client, sid, 'reviewing')
    set_status(amy_client, sid, 'revealed')
    view = ben_client.get(f"/api/sessions/{sid}/participants/{ben['id']}").get_json()
    assert view['stage'] == 'revealed'
    (entry,) = view['whiskies']
    truth = entry['whisky']
    assert (truth['name'], truth['abv'], truth['region'], truth['distillery']) == (
        'Glenfarclas 15', 46, 'Speyside', 'Glenfarclas',
    )
    own = entry['own_submission']
    assert own['participant_name'] == 'Ben'
    assert (own['guessed_name'], own['guessed_score'], own['guessed_abv']) == ('Macallan 12', 3, 43)
    assert (own['guessed_region'], own['guessed_distillery']) == ('Speyside', 'Macallan')


def test_guess_racing_another_insert_is_reported_as_update(flask_app, host_client, amy_client, monkeypatch):
    session = create_session(host_client, whiskies=1)
    amy = join(amy_client, session['code'], 'Amy')
    set_status(host_client, session['id'], 'collecting')
    (w1,) = _whisky_ids(host_client, session['id'])
    real_lock = submission_service.lock_session
    changes = []

    def lock_then_insert_elsewhere(session_id):
        locked = real_lock(session_id)
        db.session.execute(insert(Submission.__table__).values(
            id='raced-row', session_id=session_id, participant_id=amy['id'], whisky_id=w1,
            guessed_name='Talisker 10', guessed_score=2, guessed_abv=45.8,
            guessed_region='Islands', guessed_distillery='Talisker',
        ))
        return locked

    def record_change(db_session, table, change_type, row_id, session_id, **extra):
        changes.append((table, change_type, row_id))

    monkeypatch.setattr(submission_service, 'lock_session', lock_then_insert_elsewhere)
    monkeypatch.setattr(submission_service, 'note_change', record_change)
    res = amy_client.post(f"/api/sessions/{session['id']}/submissions", json=guess_payload(amy['id'], w1))
    monkeypatch.undo()

    assert res.status_code == 200
    data = res.get_json()
    assert data['created'] is False
    assert data['submission']['id'] == 'raced-row'
    assert data['submission']['guessed_name'] == 'Laphroaig 10'
    assert changes == [('submissions', 'UPDATE', 'raced-row')]
    with flask_app.app_context():
        assert Submission.query.filter_by(participant_id=amy['id'], whisky_id=w1).count() == 1


def test_review_and_reveal_gated_by_status(host_client, amy_client):
    session = create_session(host_client, whiskies=1)
    amy = join(amy_client, session['code'], 'Amy')
    set_status(host_client, session['id'], 'collecting')
    assert host_client.get(f"/api/sessions/{session['id']}/review").status_code == 409
    res = amy_client.get(f"/api/sessions/{session['id']}/reveal?participant_id={amy['id']}")
    assert res.status_code == 409


def test_participant_view_of_another_user_is_hidden(host_client, amy_client, ben_client):
    session = create_session(host_client, whiskies=1)
    amy = join(amy_client, session['code'], 'Amy')
    join(ben_client, session['code'], 'Ben')
    res = ben_client.get(f"/api/sessions/{session['id']}/participants/{amy['id']}")
    assert res.status_code == 404
