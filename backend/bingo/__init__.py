from flask import Flask, current_app
from flask_sqlalchemy import SQLAlchemy
from flask_cors import CORS
from flask_migrate import Migrate
from flask_socketio import SocketIO
import json
import click
from config import Config

db = SQLAlchemy()
migrate = Migrate()
socketio = SocketIO(async_mode=None)


def get_registry(app=None):
    return (app or current_app).extensions['bingo']['registry']


def get_presence(app=None):
    return (app or current_app).extensions['bingo']['presence']


def create_app(config_class=Config):
    flask_app = Flask(__name__)
    flask_app.config.from_object(config_class)
    allowed_origins = flask_app.config.get('CORS_ORIGINS') or '*'

    db.init_app(flask_app)
    migrate.init_app(flask_app, db)
    CORS(flask_app, supports_credentials=True, origins=allowed_origins)

    # Initialize Socket.IO after app is created
    socketio.init_app(flask_app, cors_allowed_origins=allowed_origins)

    # Lobby state lives on the app, built once per process
    from bingo.services.lobby import (
        DISCONNECT_POLICIES, LobbyRegistry, PresenceTracker, load_objective_pool, parse_objectives,
    )
    if flask_app.config.get('OBJECTIVES') is not None:
        objectives = parse_objectives(flask_app.config['OBJECTIVES'])
    else:
        objectives = load_objective_pool(flask_app.config['OBJECTIVES_PATH'])
    if flask_app.config.get('ON_DISCONNECT') not in DISCONNECT_POLICIES:
        raise ValueError(f"ON_DISCONNECT must be one of {DISCONNECT_POLICIES}")
    flask_app.extensions['bingo'] = {
        'registry': LobbyRegistry.from_config(flask_app.config, objectives),
        'presence': PresenceTracker(),
    }
    flask_app.logger.info(f"[startup] objectives={len(objectives)} on_disconnect={flask_app.config['ON_DISCONNECT']}")

    # Import and register blueprints here
    from bingo.main import main
    flask_app.register_blueprint(main)

    from bingo.api.lobbies import lobbies
    flask_app.register_blueprint(lobbies, url_prefix='/api')

    # Register Socket.IO event handlers
    from bingo.socketio_events import register_socketio_handlers
    register_socketio_handlers()

    @click.command('lobby-list')
    def lobby_list_command():
        """Prints the stored lobby snapshots."""
        from bingo.models import LobbySnapshot
        with flask_app.app_context():
            db.create_all()
            for row in LobbySnapshot.query.order_by(LobbySnapshot.room_code).all():
                print(json.dumps(row.to_dict()))

    @click.command('lobby-purge')
    def lobby_purge_command():
        """Deletes every stored lobby snapshot."""
        from bingo.models import LobbySnapshot
        with flask_app.app_context():
            db.create_all()
            deleted = LobbySnapshot.query.delete()
            db.session.commit()
            print(f'Deleted {deleted} lobby snapshot(s).')

    flask_app.cli.add_command(lobby_list_command)
    flask_app.cli.add_command(lobby_purge_command)

    return flask_app
