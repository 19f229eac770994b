import os
import sys
import pytest

# Ensure the backend root (containing the `tasting` package) is on sys.path
CURRENT_DIR = os.path.dirname(__file__)
BACKEND_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, '..'))
if BACKEND_ROOT not in sys.path:
    sys.path.insert(0, BACKEND_ROOT)

from tasting import create_app, db, socketio


class TestConfig:
    TESTING = True
    SECRET_KEY = os.environ.get('SECRET_KEY', 'test-secret')
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    CORS_ORIGINS = ['http://localhost:3000']
    APP_BASE_URL = 'http://localhost:3000'
    SESSION_CODE_LENGTH = 6
    MIN_PASSWORD_LENGTH = 6
    AUTH_EMAIL_CONFIRMATION = False
    AUTH_TIMEOUT_SEC = 10
    RECOVERY_TOKEN_MAX_AGE_SEC = 3600
    CONFIRM_TOKEN_MAX_AGE_SEC = 86400
    KEEP_ALIVE_NAME_LENGTH = 12


PASSWORD = 'secret123'


@pytest.fixture()
def flask_app():
    application = create_app(TestConfig)
    # Requests push their own app context so Flask-Login's per-request user
    # does not leak between the host and participant test clients
    with application.app_context():
        import tasting.models  # noqa: F401
        db.create_all()
    yield application
    with application.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture()
def client(flask_app):
    return flask_app.test_client()


@pytest.fixture()
def sio_client(flask_app):
    test_client = socketio.test_client(
        flask_app,
        flask_test_client=flask_app.test_client(),
        namespace='/ws'
    )
    yield test_client
    if test_client.is_connected('/ws'):
        test_client.disconnect(namespace='/ws')


def register(test_client, email, name, password=PASSWORD):
    res = test_client.post('/register', json={'email': email, 'password': password, 'name': name})
    assert res.status_code == 201, res.get_json()
    return res.get_json()['user']


@pytest.fixture()
def host_client(flask_app):
    c = flask_app.test_client()
    register(c, 'sam@example.com', 'Sam')
    return c


@pytest.fixture()
def amy_client(flask_app):
    c = flask_app.test_client()
    register(c, 'amy@example.com', 'Amy')
    return c


@pytest.fixture()
def ben_client(flask_app):
    c = flask_app.test_client()
    register(c, 'ben@example.com', 'Ben')
    return c


def whisky_payload(**overrides):
    data = {
        'name': 'Lagavulin 16',
        'age': 16,
        'abv': 43.0,
        'region': 'Islay',
        'distillery': 'Lagavulin',
        'category': 'Single Malt',
        'bottling_type': 'OB',
        'host_score': 4.5,
    }
    data.update(overrides)
    return data


def guess_payload(participant_id, whisky_id, **overrides):
    data = {
        'participant_id': participant_id,
        'whisky_id': whisky_id,
        'guessed_name': 'Laphroaig 10',
        'guessed_score': 4,
        'guessed_abv': 40,
        'guessed_region': 'Islay',
        'guessed_distillery': 'Laphroaig',
    }
    data.update(overrides)
    return data


def create_session(host, host_name='Sam', whiskies=0):
    res = host.post('/api/sessions', json={'host_name': host_name})
    assert res.status_code == 201, res.get_json()
    session = res.get_json()
    for i in range(whiskies):
        added = host.post(f"/api/sessions/{session['id']}/whiskies", json=whisky_payload(name=f'Whisky {i + 1}'))
        assert added.status_code == 201, added.get_json()
    return session


def join(test_client, code, name):
    res = test_client.post('/api/sessions/join', json={'code': code, 'name': name})
    assert res.status_code in (200, 201), res.get_json()
    return res.get_json()['participant']


def set_status(host, session_id, status):
    res = host.post(f'/api/sessions/{session_id}/status', json={'status': status})
    assert res.status_code == 200, res.get_json()
    return res.get_json()
