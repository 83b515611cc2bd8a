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
    login_manager.init_app(flask_app)
    migrate.init_app(flask_app, db)
    CORS(flask_app, supports_credentials=True, origins=allowed_origins)

    # Initialize Socket.IO after app is created
    socketio.init_app(flask_app, cors_allowed_origins=allowed_origins)

    from swipe.main import main
    flask_app.register_blueprint(main, url_prefix='/api/players')

    from swipe.api.game import game
    flask_app.register_blueprint(game, url_prefix='/api/game')

    from swipe.api.leaderboard import leaderboard
    flask_app.register_blueprint(leaderboard, url_prefix='/api/leaderboard')

    @flask_app.route('/')
    def index():
        return jsonify({'message': 'Welcome to the swipe game server!'})

    from swipe.socketio_events import register_socketio_handlers
    register_socketio_handlers(testing=flask_app.config.get('TESTING', False))

    from swipe.models import Player

    @login_manager.user_loader
    def load_user(player_id):
        return db.session.get(Player, int(player_id))

    @login_manager.unauthorized_handler
    def unauthorized():
        return jsonify({'error': 'Login required'}), 401

    @click.command('db-reset')
    def db_reset_command():
        """Drops, recreates, and seeds the database."""
        from swipe.models import ScoreRecord
        with flask_app.app_context():
            db.drop_all()
            db.create_all()

            # Seed players
            for name, best in (('player1', 12), ('player2', 7), ('player3', 3)):
                player = Player(username=name)
                db.session.add(player)
                db.session.flush()
                db.session.add(ScoreRecord(player_id=player.id, current_score=0, high_score=best))

            db.session.commit()
            print('Database has been reset and seeded!')

    flask_app.cli.add_command(db_reset_command)

    return flask_app
