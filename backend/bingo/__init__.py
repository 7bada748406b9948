from flask import Flask, jsonify
from flask_sqlalchemy import SQLAlchemy
from flask_login import LoginManager
from flask_cors import CORS
from flask_migrate import Migrate
from flask_socketio import SocketIO
import click
from config import Config

db = SQLAlchemy()
login_manager = LoginManager()
migrate = Migrate()
socketio = SocketIO(async_mode=None)

def create_app(config_class=Config):
    flask_app = Flask(__name__)
    flask_app.config.from_object(config_class)
    allowed_origins = flask_app.config.get('CORS_ORIGINS') or []

    db.init_app(flask_app)
    login_manager.init_app(flask_app)
    migrate.init_app(flask_app, db)
    CORS(flask_app, supports_credentials=True, origins=allowed_origins)

    # Initialize Socket.IO after app is created
    socketio.init_app(flask_app, cors_allowed_origins=allowed_origins)

    from bingo.errors import BingoError

    @flask_app.errorhandler(BingoError)
    def handle_bingo_error(exc):
        return jsonify({'error': exc.message}), exc.status_code

    from bingo.main import main
    flask_app.register_blueprint(main)

    from bingo.api.rooms import rooms
    flask_app.register_blueprint(rooms, url_prefix='/api/rooms')

    # Importing here ensures the handlers bind to the initialized socketio instance
    from bingo.socketio_events import register_socketio_handlers
    register_socketio_handlers(namespace=flask_app.config.get('SOCKETIO_NAMESPACE', '/'))

    # Players authenticate with the bearer session token issued at join time
    from bingo.models import Player
    from bingo.services.players import get_by_session_token

    @login_manager.user_loader
    def load_player(player_id):
        return db.session.get(Player, player_id)

    @login_manager.request_loader
    def load_player_from_request(req):
        header = req.headers.get('Authorization', '')
        scheme, _, token = header.partition(' ')
        if scheme.lower() != 'bearer' or not token.strip():
            return None
        return get_by_session_token(token.strip())

    @login_manager.unauthorized_handler
    def unauthorized():
        return jsonify({'error': 'Invalid session'}), 401

    @click.command('db-reset')
    def db_reset_command():
        """Drops, recreates, and seeds the database with a demo room."""
        from bingo.services import rooms as room_registry
        with flask_app.app_context():
            db.drop_all()
            db.create_all()
            room = room_registry.create_room('Demo Room', 'placeholders')
            print(f'Database has been reset. Demo room join code: {room.join_code}')

    flask_app.cli.add_command(db_reset_command)

    return flask_app
