from flask import Blueprint, request, jsonify
from flask_login import login_user, logout_user, current_user

from tasting.errors import AuthenticationRequired
from tasting.identity import check_identity
from tasting.schemas import (
    ConfirmEmailIn, PasswordResetCompleteIn, PasswordResetIn, SignInIn, SignUpIn, parse,
)
from tasting.services import accounts

main = Blueprint('main', __name__)


@main.route('/register', methods=['POST', 'OPTIONS'])
def register():
    if request.method == 'OPTIONS':
        return jsonify({'status': 'ok'}), 200
    data = parse(SignUpIn, request.get_json(silent=True))
    user, signed_in = accounts.sign_up(data.email, data.password, data.name)
    if not signed_in:
        return jsonify({
            "success": True,
            "user": user.to_dict(),
            "session": None,
            "message": "Check your email to confirm your account! If you don't see the email, check your spam folder.",
        }), 201
    login_user(user)
    return jsonify({"success": True, "user": user.to_dict(), "session": True}), 201


@main.route('/login', methods=['POST', 'OPTIONS'])
def login():
    if request.method == 'OPTIONS':
        return jsonify({'status': 'ok'}), 200
    data = parse(SignInIn, request.get_json(silent=True))
    user = accounts.authenticate(data.email, data.password)
    login_user(user)
    return jsonify({"success": True, "user": user.to_dict()})


@main.route('/check_login', methods=['GET'])
def check_login():
    # Runs on every auth-state change in the client, so the disabled check happens here too
    user = check_identity()
    return jsonify({"success": True, "user": user.to_dict()})


@main.route('/logout', methods=['POST'])
def logout():
    if not current_user.is_authenticated:
        raise AuthenticationRequired('Not signed in')
    logout_user()
    return jsonify({"success": True})


@main.route('/auth/confirm', methods=['POST'])
def confirm():
    data = parse(ConfirmEmailIn, request.get_json(silent=True))
    user = accounts.confirm_email(data.token)
    login_user(user)
    return jsonify({"success": True, "user": user.to_dict()})


@main.route('/auth/password-reset', methods=['POST'])
def password_reset():
    data = parse(PasswordResetIn, request.get_json(silent=True))
    accounts.request_password_reset(data.email)
    return jsonify({"success": True, "message": accounts.RESET_REQUESTED_MESSAGE})


@main.route('/auth/password-reset/complete', methods=['POST'])
def password_reset_complete():
    data = parse(PasswordResetCompleteIn, request.get_json(silent=True))
    accounts.complete_password_reset(data.access_token, data.type, data.password)
    return jsonify({"success": True, "message": "Password updated successfully! Please sign in."})
