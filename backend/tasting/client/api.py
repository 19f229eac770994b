"""HTTP client for the tasting API.

Holds the signed-in cookie in a ``requests.Session``. Error payloads are
turned back into the server's exception types, so callers can branch on
``NotFoundError``, ``StateConflictError`` and friends, and check
``exc.retryable`` before offering a retry.
"""
import logging
import threading
from typing import Any, Dict, Optional, Tuple
from urllib.parse import parse_qs, urlparse

import requests

from tasting.config import Config
from tasting.errors import AuthTimeoutError, StateConflictError, StoreError, ValidationError, error_from_payload

logger = logging.getLogger(__name__)

SIGN_UP_TIMEOUT_MESSAGE = (
    'Sign up is taking longer than expected. Please check your internet connection and try again. '
    'If the problem persists, the service may be temporarily unavailable.'
)
RESET_TIMEOUT_MESSAGE = (
    'Password reset is taking longer than expected. Please check your internet connection and try again.'
)
INVALID_RESET_LINK_MESSAGE = 'Invalid or missing reset token. Please request a new password reset.'


def parse_recovery_fragment(url: str) -> Tuple[str, str]:
    """Pull ``access_token`` and ``type`` out of a recovery link's fragment.

    Only ``type=recovery`` links are accepted.
    """
    params = parse_qs(urlparse(url).fragment)
    access_token = (params.get('access_token') or [''])[0]
    token_type = (params.get('type') or [''])[0]
    if not access_token or token_type != 'recovery':
        raise ValidationError(INVALID_RESET_LINK_MESSAGE)
    return access_token, token_type


class TastingClient:
    def __init__(self, base_url: str, timeout: float = 30, auth_timeout: Optional[float] = None,
                 http: Optional[requests.Session] = None):
        self.base_url = base_url.rstrip('/')
        self.timeout = timeout
        self.auth_timeout = auth_timeout if auth_timeout is not None else Config.AUTH_TIMEOUT_SEC
        self.http = http or requests.Session()
        self._in_flight = set()
        self._in_flight_lock = threading.Lock()

    def _request(self, method: str, path: str, json: Optional[Dict[str, Any]] = None,
                 params: Optional[Dict[str, Any]] = None, timeout: Optional[float] = None,
                 timeout_message: Optional[str] = None) -> Any:
        try:
            response = self.http.request(
                method,
                f"{self.base_url}{path}",
                json=json,
                params=params,
                timeout=timeout or self.timeout,
            )
        except requests.exceptions.Timeout:
            logger.warning(f"Request {method} {path} timed out after {timeout or self.timeout}s")
            if timeout_message:
                raise AuthTimeoutError(timeout_message)
            raise StoreError('The tasting server took too long to respond. Please try again.')
        except requests.exceptions.RequestException as e:
            logger.error(f"Request {method} {path} failed: {e}")
            raise StoreError('Could not reach the tasting server. Please try again.')

        try:
            payload = response.json()
        except ValueError:
            payload = None
        if response.status_code >= 400:
            raise error_from_payload(payload, response.status_code)
        return payload

    # ---- Accounts ----

    def sign_up(self, email: str, password: str, name: str) -> Dict[str, Any]:
        return self._request('POST', '/register', json={'email': email, 'password': password, 'name': name},
                             timeout=self.auth_timeout, timeout_message=SIGN_UP_TIMEOUT_MESSAGE)

    def sign_in(self, email: str, password: str) -> Dict[str, Any]:
        return self._request('POST', '/login', json={'email': email, 'password': password})

    def sign_out(self) -> Dict[str, Any]:
        return self._request('POST', '/logout')

    def check_login(self) -> Dict[str, Any]:
        return self._request('GET', '/check_login')

    def confirm_email(self, token: str) -> Dict[str, Any]:
        return self._request('POST', '/auth/confirm', json={'token': token})

    def request_password_reset(self, email: str) -> Dict[str, Any]:
        return self._request('POST', '/auth/password-reset', json={'email': email},
                             timeout=self.auth_timeout, timeout_message=RESET_TIMEOUT_MESSAGE)

    def complete_password_reset(self, recovery_url: str, password: str) -> Dict[str, Any]:
        access_token, token_type = parse_recovery_fragment(recovery_url)
        return self._request('POST', '/auth/password-reset/complete', json={
            'access_token': access_token,
            'type': token_type,
            'password': password,
        })

    # ---- Sessions ----

    def create_session(self, host_name: str) -> Dict[str, Any]:
        return self._request('POST', '/api/sessions', json={'host_name': host_name})

    def join_session(self, code: str, name: str) -> Dict[str, Any]:
        return self._request('POST', '/api/sessions/join', json={'code': code, 'name': name})

    def host_view(self, session_id: str) -> Dict[str, Any]:
        return self._request('GET', f'/api/sessions/{session_id}')

    def set_status(self, session_id: str, status: str) -> Dict[str, Any]:
        return self._request('POST', f'/api/sessions/{session_id}/status', json={'status': status})

    def add_whisky(self, session_id: str, whisky: Dict[str, Any]) -> Dict[str, Any]:
        return self._request('POST', f'/api/sessions/{session_id}/whiskies', json=whisky)

    def update_whisky(self, session_id: str, whisky_id: str, whisky: Dict[str, Any]) -> Dict[str, Any]:
        return self._request('PUT', f'/api/sessions/{session_id}/whiskies/{whisky_id}', json=whisky)

    def move_whisky(self, session_id: str, whisky_id: str, direction: str) -> Dict[str, Any]:
        return self._request('POST', f'/api/sessions/{session_id}/whiskies/{whisky_id}/move',
                             json={'direction': direction})

    def submit_guess(self, session_id: str, participant_id: str, whisky_id: str, **guess) -> Dict[str, Any]:
        """Submit or overwrite a guess.

        A second call for the same participant and whisky while the first is
        still in flight is refused instead of being sent.
        """
        key = (participant_id, whisky_id)
        with self._in_flight_lock:
            if key in self._in_flight:
                raise StateConflictError('A submission for this whisky is already in progress')
            self._in_flight.add(key)
        try:
            body = dict(guess, participant_id=participant_id, whisky_id=whisky_id)
            return self._request('POST', f'/api/sessions/{session_id}/submissions', json=body)
        finally:
            with self._in_flight_lock:
                self._in_flight.discard(key)

    def review(self, session_id: str) -> Dict[str, Any]:
        return self._request('GET', f'/api/sessions/{session_id}/review')

    def reveal(self, session_id: str, participant_id: Optional[str] = None) -> Dict[str, Any]:
        params = {'participant_id': participant_id} if participant_id else None
        return self._request('GET', f'/api/sessions/{session_id}/reveal', params=params)

    def participant_view(self, session_id: str, participant_id: str) -> Dict[str, Any]:
        return self._request('GET', f'/api/sessions/{session_id}/participants/{participant_id}')

    # ---- Dashboard and invitations ----

    def my_sessions(self) -> Dict[str, Any]:
        return self._request('GET', '/api/me/sessions')

    def invite(self, session_id: str, email: str) -> Dict[str, Any]:
        return self._request('POST', f'/api/sessions/{session_id}/invitations', json={'email': email})

    def my_invitations(self):
        return self._request('GET', '/api/me/invitations')

    def accept_invitation(self, invitation_id: str, name: Optional[str] = None) -> Dict[str, Any]:
        return self._request('POST', f'/api/invitations/{invitation_id}/accept', json={'name': name})

    def decline_invitation(self, invitation_id: str) -> Dict[str, Any]:
        return self._request('POST', f'/api/invitations/{invitation_id}/decline')

    # ---- Reference data ----

    def regions(self):
        return self._request('GET', '/api/regions')

    def distilleries(self, region_id: str):
        return self._request('GET', f'/api/regions/{region_id}/distilleries')

    def keep_alive(self) -> Dict[str, Any]:
        return self._request('GET', '/api/keep-alive')
