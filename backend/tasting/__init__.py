from flask import Flask
from flask_sqlalchemy import SQLAlchemy
from flask_bcrypt import Bcrypt
from flask_login import LoginManager
from flask_cors import CORS
from flask_migrate import Migrate
from flask_socketio import SocketIO
from tasting.config import Config

db = SQLAlchemy()
bcrypt = Bcrypt()
login_manager = LoginManager()
migrate = Migrate()
socketio = SocketIO(async_mode=None)


def create_app(config_class=Config):
    flask_app = Flask(__name__)
    flask_app.config.from_object(config_class)
    allowed_origins = flask_app.config.get('CORS_ORIGINS') or []

    db.init_app(flask_app)
    bcrypt.init_app(flask_app)
    login_manager.init_app(flask_app)
    migrate.init_app(flask_app, db)
    CORS(flask_app, supports_credentials=True, origins=allowed_origins)

    # Initialize Socket.IO after app is created
    socketio.init_app(flask_app, cors_allowed_origins=allowed_origins)

    # App-owned state: live feed subscriptions and the auth email outbox
    from tasting.feed import SubscriptionRegistry
    from tasting.mailer import Outbox
    flask_app.extensions['tasting_feed'] = SubscriptionRegistry()
    flask_app.extensions['tasting_outbox'] = Outbox()

    from tasting.errors import register_error_handlers
    register_error_handlers(flask_app)

    # Import and register blueprints here
    from tasting.main import main
    flask_app.register_blueprint(main)

    from tasting.api.sessions import sessions
    flask_app.register_blueprint(sessions, url_prefix='/api/sessions')

    from tasting.api.me import me
    flask_app.register_blueprint(me, url_prefix='/api')

    from tasting.api.reference import reference
    flask_app.register_blueprint(reference, url_prefix='/api')

    from tasting.api.health import health
    flask_app.register_blueprint(health, url_prefix='/api')

    # Register Socket.IO event handlers
    from tasting.socketio_events import register_socketio_handlers
    register_socketio_handlers(testing=flask_app.config.get('TESTING', False))

    # Flask-Login user loader
    from tasting.models import User

    @login_manager.user_loader
    def load_user(user_id):
        return db.session.get(User, user_id)

    from tasting.cli import register_commands
    register_commands(flask_app)

    return flask_app
