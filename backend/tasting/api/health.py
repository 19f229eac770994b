import random
import string
from datetime import datetime, timezone

from flask import Blueprint, current_app, jsonify
from sqlalchemy.exc import SQLAlchemyError

from tasting import db
from tasting.models import KeepAlive

health = Blueprint('health', __name__)


def _random_name(length):
    return ''.join(random.choices(string.ascii_lowercase, k=length))


@health.route('/keep-alive', methods=['GET'])
def keep_alive():
    """Touch the store with a throwaway read so a dormant database stays awake."""
    name = _random_name(int(current_app.config.get('KEEP_ALIVE_NAME_LENGTH', 12)))
    try:
        found = db.session.query(KeepAlive.name).filter(KeepAlive.name == name).count()
    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.exception("[keep-alive] query failed")
        return jsonify({'error': 'Keep-alive failed', 'details': str(getattr(exc, 'orig', None) or exc)}), 500
    return jsonify({
        'success': True,
        'message': f"Keep-alive successful - queried for '{name}'",
        'found': found,
        'timestamp': datetime.now(timezone.utc).isoformat(),
    })
