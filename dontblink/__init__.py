from flask import Flask
from flask_sqlalchemy import SQLAlchemy
from flask_cors import CORS
from flask_migrate import Migrate
from flask_socketio import SocketIO
import click
from config import Config

db = SQLAlchemy()
migrate = Migrate()
allowed_origins = [
    "http://localhost:5173",
    "http://127.0.0.1:5173",
    "http://localhost:5174",
    "http://127.0.0.1:5174",
]
socketio = SocketIO(cors_allowed_origins=allowed_origins, async_mode=None)

def create_app(config_class=Config):
    flask_app = Flask(__name__)
    flask_app.config.from_object(config_class)

    db.init_app(flask_app)
    migrate.init_app(flask_app, db)
    CORS(flask_app, supports_credentials=True, origins=allowed_origins)

    # Initialize Socket.IO after app is created
    socketio.init_app(flask_app, cors_allowed_origins=allowed_origins)

    # Ensure the score table is known to the metadata
    from dontblink import models  # noqa: F401

    # Leaderboard client and local prefs are built once and shared by
    # reference with the HTTP routes and every socket session
    from dontblink.services.reaction import (
        Leaderboard, MemoryLeaderboardStore, PrefsStore, SqlLeaderboardStore,
    )
    backend = flask_app.config.get('LEADERBOARD_BACKEND', 'sql')
    if backend == 'memory':
        store = MemoryLeaderboardStore()
    else:
        store = SqlLeaderboardStore(flask_app)
    flask_app.extensions['leaderboard'] = Leaderboard(store, size=int(flask_app.config.get('LEADERBOARD_SIZE', 100)))
    flask_app.extensions['prefs'] = PrefsStore(flask_app.config.get('PREFS_PATH') or None)
    flask_app.logger.info(f"[leaderboard-init] backend={backend} size={flask_app.config.get('LEADERBOARD_SIZE', 100)}")

    # Import and register blueprints here
    from dontblink.main import main
    flask_app.register_blueprint(main)

    from dontblink.api.leaderboard import leaderboard
    flask_app.register_blueprint(leaderboard, url_prefix='/api/leaderboard')

    # Register Socket.IO event handlers
    from dontblink.socketio_events import register_socketio_handlers
    register_socketio_handlers(testing=flask_app.config.get('TESTING', False))

    @click.command('db-reset')
    def db_reset_command():
        """Drops and recreates the database tables."""
        with flask_app.app_context():
            db.drop_all()
            db.create_all()
            print('Database has been reset!')

    flask_app.cli.add_command(db_reset_command)

    return flask_app
