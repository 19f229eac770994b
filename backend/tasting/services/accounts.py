"""Account lifecycle: sign-up, sign-in checks, email confirmation, password
recovery and the administrative disable/enable switch."""
from typing import Optional, Tuple

from flask import current_app
from itsdangerous import BadSignature, SignatureExpired, URLSafeTimedSerializer

from tasting import db
from tasting.errors import AuthenticationRequired, AuthorizationError, NotFoundError, ValidationError
from tasting.identity import DISABLED_MESSAGE
from tasting.mailer import get_outbox
from tasting.models import User, utcnow
from tasting.store import commit

CONFIRM_SALT = 'tasting-confirm-email'
RECOVERY_SALT = 'tasting-password-recovery'
RESET_REQUESTED_MESSAGE = (
    'If an account exists with this email, you should receive password reset instructions. '
    'Check your spam folder.'
)


def _serializer(salt: str) -> URLSafeTimedSerializer:
    return URLSafeTimedSerializer(current_app.config['SECRET_KEY'], salt=salt)


def _password_fingerprint(user: User) -> str:
    # Recovery tokens embed this, so they stop working once the password changes
    return user.password_hash[-16:]


def _check_password_length(password: str) -> None:
    min_len = int(current_app.config.get('MIN_PASSWORD_LENGTH', 6))
    if len(password) < min_len:
        raise ValidationError(f'Password must be at least {min_len} characters long')


def sign_up(email: str, password: str, name: str) -> Tuple[User, bool]:
    """Create an account. Returns the user and whether it may sign in right away."""
    _check_password_length(password)
    if User.query.filter_by(email=email).first():
        raise ValidationError('An account with this email already exists')

    needs_confirmation = bool(current_app.config.get('AUTH_EMAIL_CONFIRMATION'))
    user = User(email=email, name=name.strip())
    user.set_password(password)
    if not needs_confirmation:
        user.email_confirmed_at = utcnow()
    db.session.add(user)
    commit('sign_up')
    current_app.logger.info(f"[auth] sign-up user={user.id} confirmation={'pending' if needs_confirmation else 'skipped'}")

    if needs_confirmation:
        token = _serializer(CONFIRM_SALT).dumps({'uid': user.id})
        link = f"{current_app.config['APP_BASE_URL']}/auth/callback?token={token}"
        get_outbox().send('confirm', user.email, link)
    return user, not needs_confirmation


def confirm_email(token: str) -> User:
    max_age = int(current_app.config.get('CONFIRM_TOKEN_MAX_AGE_SEC', 86400))
    try:
        data = _serializer(CONFIRM_SALT).loads(token, max_age=max_age)
    except SignatureExpired:
        raise ValidationError('Confirmation link has expired. Please sign up again.')
    except BadSignature:
        raise ValidationError('Invalid confirmation link.')
    user = db.session.get(User, data.get('uid'))
    if not user:
        raise NotFoundError('Account not found')
    if user.is_disabled:
        current_app.logger.warning(f"[auth] confirmation refused for disabled user={user.id}")
        raise AuthorizationError(DISABLED_MESSAGE)
    if user.email_confirmed_at is None:
        user.email_confirmed_at = utcnow()
        commit('confirm_email')
    return user


def authenticate(email: str, password: str) -> User:
    user = User.query.filter_by(email=email).first()
    if not user or not user.check_password(password):
        raise AuthenticationRequired('Invalid email or password')
    if user.is_disabled:
        current_app.logger.warning(f"[auth] sign-in refused for disabled user={user.id}")
        raise AuthorizationError(DISABLED_MESSAGE)
    if user.email_confirmed_at is None:
        raise AuthorizationError('Please confirm your email before signing in.')
    return user


def request_password_reset(email: str) -> None:
    """Queue a recovery link if the account exists; callers get the same answer either way."""
    user = User.query.filter_by(email=email).first()
    if not user:
        current_app.logger.info("[auth] password reset requested for unknown email")
        return
    token = _serializer(RECOVERY_SALT).dumps({'uid': user.id, 'pw': _password_fingerprint(user)})
    link = f"{current_app.config['APP_BASE_URL']}/auth/reset-password#access_token={token}&type=recovery"
    get_outbox().send('recovery', user.email, link)


def complete_password_reset(access_token: str, token_type: str, password: str) -> User:
    if token_type != 'recovery':
        raise ValidationError('Invalid or missing reset token. Please request a new password reset.')
    _check_password_length(password)
    max_age = int(current_app.config.get('RECOVERY_TOKEN_MAX_AGE_SEC', 3600))
    try:
        data = _serializer(RECOVERY_SALT).loads(access_token, max_age=max_age)
    except SignatureExpired:
        raise ValidationError('Reset link has expired. Please request a new password reset.')
    except BadSignature:
        raise ValidationError('Invalid or missing reset token. Please request a new password reset.')
    user = db.session.get(User, data.get('uid'))
    if not user or data.get('pw') != _password_fingerprint(user):
        raise ValidationError('Invalid or missing reset token. Please request a new password reset.')
    user.set_password(password)
    commit('reset_password')
    current_app.logger.info(f"[auth] password reset user={user.id}")
    return user


def disable_user_account(user_id: str, disabled_by_user_id: Optional[str] = None) -> User:
    user = db.session.get(User, user_id)
    if not user:
        raise NotFoundError('Account not found')
    user.is_disabled = True
    user.disabled_at = utcnow()
    user.disabled_by = disabled_by_user_id
    commit('disable_user_account')
    current_app.logger.warning(f"[auth] disabled user={user.id} by={disabled_by_user_id}")
    return user


def enable_user_account(user_id: str) -> User:
    user = db.session.get(User, user_id)
    if not user:
        raise NotFoundError('Account not found')
    user.is_disabled = False
    user.disabled_at = None
    user.disabled_by = None
    commit('enable_user_account')
    current_app.logger.info(f"[auth] enabled user={user.id}")
    return user
