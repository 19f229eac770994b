from functools import wraps

from flask import current_app
from flask_login import current_user, logout_user

from tasting.errors import AuthenticationRequired, AuthorizationError

DISABLED_MESSAGE = 'This account has been disabled. Please contact support.'


def check_identity():
    """Return the signed-in user, signing out and rejecting a disabled account.

    Runs on every gated request, not only at sign-in: the profile is reloaded
    per request, so a flag set mid-session takes effect on the next call.
    """
    if not current_user.is_authenticated:
        raise AuthenticationRequired('Please sign in to continue.')
    if current_user.is_disabled:
        current_app.logger.warning(f"[identity] disabled user={current_user.id} signed out")
        logout_user()
        raise AuthorizationError(DISABLED_MESSAGE)
    return current_user._get_current_object()


def active_user_required(view):
    @wraps(view)
    def wrapper(*args, **kwargs):
        check_identity()
        return view(*args, **kwargs)
    return wrapper
