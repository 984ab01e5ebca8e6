from flask import Flask
from flask_sqlalchemy import SQLAlchemy
from flask_cors import CORS
from flask_migrate import Migrate
from flask_socketio import SocketIO
from config import Config

db = SQLAlchemy()
migrate = Migrate()
socketio = SocketIO(async_mode=None)

def create_app(config_class=Config):
    flask_app = Flask(__name__)
    flask_app.config.from_object(config_class)
    flask_app.logger.setLevel(flask_app.config.get('LOG_LEVEL', 'INFO'))

    db.init_app(flask_app)
    migrate.init_app(flask_app, db)
    allowed_origins = flask_app.config.get('CORS_ORIGINS') or []
    CORS(flask_app, origins=allowed_origins)

    # The chat gateway connects over Socket.IO
    socketio.init_app(flask_app, cors_allowed_origins=allowed_origins)

    # Ensure models are registered on the metadata
    from rps_helper import models  # noqa: F401

    from rps_helper.main import main
    flask_app.register_blueprint(main)

    from rps_helper.api.sessions import sessions
    flask_app.register_blueprint(sessions, url_prefix='/api/sessions')

    from rps_helper.socketio_events import register_socketio_handlers
    register_socketio_handlers(
        testing=flask_app.config.get('TESTING', False),
        namespace=flask_app.config.get('TRANSPORT_NAMESPACE', '/ws'),
    )

    from rps_helper.worker import Worker
    flask_app.extensions['rps_helper'] = Worker(flask_app)

    return flask_app
