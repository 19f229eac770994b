"""Error types shared by the HTTP layer, the services and the client.

Every error carries an HTTP status, a machine-readable ``kind`` and a
``retryable`` flag. The Flask handler registered in :func:`register_error_handlers`
renders them as ``{"error", "kind", "retryable"}``; :func:`error_from_payload`
turns such a payload back into the matching exception on the client side.
"""
from typing import Any, Dict, Optional

from flask import jsonify


class TastingError(Exception):
    status_code = 500
    kind = 'internal'
    retryable = False

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code

    def to_dict(self) -> Dict[str, Any]:
        return {'error': self.message, 'kind': self.kind, 'retryable': self.retryable}


class ValidationError(TastingError):
    status_code = 400
    kind = 'validation'


class AuthenticationRequired(TastingError):
    status_code = 401
    kind = 'authentication'


class AuthorizationError(TastingError):
    status_code = 403
    kind = 'authorization'


class NotFoundError(TastingError):
    status_code = 404
    kind = 'not_found'


class StateConflictError(TastingError):
    status_code = 409
    kind = 'state_conflict'


class StoreError(TastingError):
    status_code = 503
    kind = 'store_failure'
    retryable = True


class AuthTimeoutError(TastingError):
    status_code = 504
    kind = 'timeout'
    retryable = True


_KINDS = {cls.kind: cls for cls in (
    ValidationError, AuthenticationRequired, AuthorizationError, NotFoundError,
    StateConflictError, StoreError, AuthTimeoutError,
)}


def error_from_payload(payload: Optional[Dict[str, Any]], status_code: int) -> TastingError:
    payload = payload or {}
    cls = _KINDS.get(payload.get('kind'), TastingError)
    return cls(payload.get('error') or f'Request failed with status {status_code}', status_code)


def register_error_handlers(flask_app) -> None:
    @flask_app.errorhandler(TastingError)
    def handle_tasting_error(exc: TastingError):
        if isinstance(exc, StoreError):
            flask_app.logger.error(f"[error] store failure: {exc.message}")
        return jsonify(exc.to_dict()), exc.status_code
