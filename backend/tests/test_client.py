import pytest
import requests

from tasting.client.api import TastingClient, parse_recovery_fragment
from tasting.client.feed import SessionFeed
from tasting.errors import (
    AuthTimeoutError, NotFoundError, StateConflictError, StoreError, ValidationError,
)


class FakeResponse:
    def __init__(self, status_code, payload):
        self.status_code = status_code
        self._payload = payload

    def json(self):
        if self._payload is None:
            raise ValueError('no json')
        return self._payload


class FakeHttp:
    def __init__(self, responder):
        self.responder = responder
        self.calls = []

    def request(self, method, url, json=None, params=None, timeout=None):
        self.calls.append({'method': method, 'url': url, 'json': json, 'params': params, 'timeout': timeout})
        return self.responder(method, url, json)


class FakeSocketClient:
    def __init__(self):
        self.connected = False
        self.emitted = []
        self.namespaces = []

    def register_namespace(self, namespace_handler):
        namespace_handler._set_client(self)
        self.namespaces.append(namespace_handler)

    def connect(self, url, headers=None, namespaces=None):
        self.connected = True
        self.url = url
        for ns in self.namespaces:
            ns.trigger_event('connect')

    def emit(self, event, data=None, namespace=None, callback=None):
        self.emitted.append((event, data, namespace))

    def disconnect(self):
        self.connected = False

    def deliver(self, event, data):
        for ns in self.namespaces:
            ns.trigger_event(event, data)


def test_parse_recovery_fragment():
    token, kind = parse_recovery_fragment('http://localhost:3000/auth/reset-password#access_token=abc.def&type=recovery')
    assert (token, kind) == ('abc.def', 'recovery')
    with pytest.raises(ValidationError):
        parse_recovery_fragment('http://localhost:3000/auth/reset-password#access_token=abc&type=signup')
    with pytest.raises(ValidationError):
        parse_recovery_fragment('http://localhost:3000/auth/reset-password')


def test_error_payloads_map_to_exceptions():
    http = FakeHttp(lambda *a: FakeResponse(404, {'error': 'Session not found', 'kind': 'not_found', 'retryable': False}))
    client = TastingClient('http://api.test', http=http)
    with pytest.raises(NotFoundError) as info:
        client.join_session('ZZZZZZ', 'Amy')
    assert info.value.message == 'Session not found'
    assert http.calls[0]['url'] == 'http://api.test/api/sessions/join'


def test_store_failures_are_retryable():
    http = FakeHttp(lambda *a: FakeResponse(503, {'error': 'Failed to submit guess. Please try again.',
                                                  'kind': 'store_failure', 'retryable': True}))
    client = TastingClient('http://api.test', http=http)
    with pytest.raises(StoreError) as info:
        client.submit_guess('s1', 'p1', 'w1', guessed_name='x')
    assert info.value.retryable is True


def test_sign_up_timeout_surfaces_remediation():
    def responder(*args):
        raise requests.exceptions.ReadTimeout('slow')

    http = FakeHttp(responder)
    client = TastingClient('http://api.test', auth_timeout=2, http=http)
    with pytest.raises(AuthTimeoutError) as info:
        client.sign_up('amy@example.com', 'secret123', 'Amy')
    assert 'taking longer than expected' in info.value.message
    assert http.calls[0]['timeout'] == 2


def test_password_reset_timeout_surfaces_remediation():
    def responder(*args):
        raise requests.exceptions.ConnectTimeout('slow')

    http = FakeHttp(responder)
    client = TastingClient('http://api.test', auth_timeout=3, http=http)
    with pytest.raises(AuthTimeoutError) as info:
        client.request_password_reset('amy@example.com')
    assert info.value.message.startswith('Password reset is taking longer than expected')
    assert info.value.retryable is True
    assert http.calls[0]['url'] == 'http://api.test/auth/password-reset'
    assert http.calls[0]['timeout'] == 3


def test_other_timeouts_are_retryable_store_errors():
    def responder(*args):
        raise requests.exceptions.ReadTimeout('slow')

    http = FakeHttp(responder)
    client = TastingClient('http://api.test', timeout=5, http=http)
    with pytest.raises(StoreError) as info:
        client.host_view('s1')
    assert info.value.retryable is True
    assert http.calls[0]['timeout'] == 5

    with pytest.raises(StoreError):
        client.submit_guess('s1', 'p1', 'w1', guessed_name='x')


def test_submit_guess_refuses_concurrent_duplicate():
    client = None
    in_flight = {}

    def responder(method, url, body):
        if body['whisky_id'] == 'w1' and not in_flight:
            in_flight['w1'] = True
            # A second click while the first request is still in flight
            with pytest.raises(StateConflictError):
                client.submit_guess('s1', 'p1', 'w1', guessed_name='again')
            # Another whisky is not blocked
            in_flight['w2'] = client.submit_guess('s1', 'p1', 'w2', guessed_name='other')
        return FakeResponse(201, {'created': True, 'submission': body, 'next_whisky_id': 'w2'})

    client = TastingClient('http://api.test', http=FakeHttp(responder))
    result = client.submit_guess('s1', 'p1', 'w1', guessed_name='first')
    assert result['submission']['guessed_name'] == 'first'
    assert result['submission']['participant_id'] == 'p1'
    assert in_flight['w2']['submission']['whisky_id'] == 'w2'
    # The guard is released afterwards
    assert client.submit_guess('s1', 'p1', 'w1', guessed_name='later')['created'] is True


def test_feed_refetches_on_connect_and_matching_changes():
    fetches = []
    updates = []
    socket = FakeSocketClient()

    def fetch():
        fetches.append(1)
        return {'version': len(fetches)}

    with SessionFeed('http://api.test', 's1', fetch, updates.append, client=socket) as feed:
        assert feed.is_open
        assert ('subscribe', {'session_id': 's1'}, '/ws') in socket.emitted
        assert updates == [{'version': 1}]

        socket.deliver('change', {'session_id': 's1', 'table': 'whiskies', 'type': 'INSERT', 'id': 'w1'})
        socket.deliver('change', {'session_id': 's2', 'table': 'whiskies', 'type': 'INSERT', 'id': 'w9'})
        socket.deliver('change', {'session_id': 's1', 'table': 'whiskies', 'type': 'INSERT', 'id': 'w1'})
        assert updates == [{'version': 1}, {'version': 2}, {'version': 3}]

        # A reconnect resubscribes and catches up
        socket.namespaces[0].trigger_event('connect')
        assert updates[-1] == {'version': 4}

    assert ('unsubscribe', {'session_id': 's1'}, '/ws') in socket.emitted
    assert socket.connected is False
    assert feed.is_open is False


def test_feed_survives_fetch_failures():
    socket = FakeSocketClient()
    updates = []
    calls = {'n': 0}

    def fetch():
        calls['n'] += 1
        if calls['n'] == 1:
            raise StoreError('Failed to load session. Please try again.')
        return {'ok': True}

    feed = SessionFeed('http://api.test', 's1', fetch, updates.append, client=socket).open()
    assert updates == []
    socket.deliver('change', {'session_id': 's1', 'table': 'sessions', 'type': 'UPDATE', 'id': 's1'})
    assert updates == [{'ok': True}]
    feed.close()
    feed.close()
    assert [e for e in socket.emitted if e[0] == 'unsubscribe'] == [('unsubscribe', {'session_id': 's1'}, '/ws')]


def test_feed_survives_a_timed_out_refetch():
    calls = {'n': 0}

    def responder(method, url, body):
        calls['n'] += 1
        if calls['n'] == 1:
            raise requests.exceptions.ReadTimeout('slow')
        return FakeResponse(200, {'id': 's1', 'status': 'waiting'})

    client = TastingClient('http://api.test', http=FakeHttp(responder))
    socket = FakeSocketClient()
    updates = []
    with SessionFeed('http://api.test', 's1', lambda: client.host_view('s1'), updates.append, client=socket) as feed:
        assert feed.is_open
        assert updates == []
        assert feed.refresh() is True
        assert updates == [{'id': 's1', 'status': 'waiting'}]
