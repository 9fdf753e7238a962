from flask import Flask
from flask_sqlalchemy import SQLAlchemy
from flask_cors import CORS
from flask_migrate import Migrate
from flask_socketio import SocketIO
import click
from config import Config

db = SQLAlchemy()
migrate = Migrate()
socketio = SocketIO(async_mode=None)
WS_NAMESPACE = '/ws'


def _socket_emitter(event, payload, sid):
    socketio.emit(event, payload, to=sid, namespace=WS_NAMESPACE)


def create_app(config_class=Config):
    flask_app = Flask(__name__)
    flask_app.config.from_object(config_class)
    allowed_origins = flask_app.config.get('CORS_ORIGINS') or []

    db.init_app(flask_app)
    migrate.init_app(flask_app, db)
    CORS(flask_app, supports_credentials=True, origins=allowed_origins)

    # Initialize Socket.IO after app is created
    socketio.init_app(flask_app, cors_allowed_origins=allowed_origins)

    # Session coordinator collaborators live and die with this app
    from nerveword.broadcast import SessionBroadcaster
    from nerveword.context import GameServices
    from nerveword.rules import Ruleset
    from nerveword.services.game.locks import SessionLocks
    from nerveword.store import build_store

    backend = flask_app.config.get('STORAGE_BACKEND', 'memory')
    flask_app.extensions['nerveword'] = GameServices(
        store=build_store(backend),
        broadcaster=SessionBroadcaster(_socket_emitter, logger=flask_app.logger),
        locks=SessionLocks(),
        rules=Ruleset.from_config(flask_app.config),
        code_length=int(flask_app.config.get('SESSION_CODE_LENGTH', 6)),
    )
    flask_app.logger.info(f"[startup] storage={backend}")

    import nerveword.models  # noqa: F401

    from nerveword.api.sessions import sessions
    # Mount session routes under /api to match frontend API client
    flask_app.register_blueprint(sessions, url_prefix='/api/sessions')

    # Register Socket.IO event handlers
    from nerveword.socketio_events import register_socketio_handlers
    register_socketio_handlers()

    @click.command('db-reset')
    def db_reset_command():
        """Drops and recreates the database tables."""
        with flask_app.app_context():
            db.drop_all()
            db.create_all()
            print('Database has been reset!')

    flask_app.cli.add_command(db_reset_command)

    return flask_app
