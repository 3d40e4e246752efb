from flask import Flask
from flask_sqlalchemy import SQLAlchemy
from flask_cors import CORS
from flask_migrate import Migrate
from flask_socketio import SocketIO
import click
from config import Config

db = SQLAlchemy()
migrate = Migrate()
socketio = SocketIO()

DEFAULT_CATEGORIES = {
    'Animals': ['elephant', 'penguin', 'giraffe', 'dolphin', 'eagle'],
    'Fruits': ['apple', 'banana', 'orange', 'strawberry', 'mango'],
    'Countries': ['france', 'japan', 'brazil', 'canada', 'egypt'],
    'Professions': ['doctor', 'teacher', 'engineer', 'chef', 'pilot'],
    'Sports': ['tennis', 'basketball', 'swimming', 'soccer', 'golf'],
}


def create_app(config_class=Config):
    flask_app = Flask(__name__)
    flask_app.config.from_object(config_class)

    allowed_origins = flask_app.config.get('CORS_ORIGINS', '*')

    db.init_app(flask_app)
    migrate.init_app(flask_app, db)
    CORS(flask_app, supports_credentials=True, origins=allowed_origins)

    socketio.init_app(
        flask_app,
        cors_allowed_origins=allowed_origins,
        async_mode=flask_app.config.get('SOCKETIO_ASYNC_MODE'),
    )

    from imposter.main import main
    flask_app.register_blueprint(main)

    from imposter.api.rooms import rooms
    flask_app.register_blueprint(rooms, url_prefix='/api/rooms')

    # One registry per app; handlers and the REST surface read it from extensions
    from imposter.services.game.catalog import WordCatalog
    from imposter.services.game.manager import GameManager
    from imposter.services.game.recovery import RecoveryPolicy
    from imposter.services.game.registry import RoomRegistry
    from imposter.services.game.store import GameStore
    store = GameStore()
    registry = RoomRegistry(store=store)
    min_players = int(flask_app.config.get('MIN_PLAYERS', 2))
    flask_app.extensions['game_manager'] = GameManager(
        registry,
        store,
        WordCatalog(),
        min_players=min_players,
        max_rounds=int(flask_app.config.get('MAX_ROUNDS', 3)),
    )
    flask_app.extensions['recovery_policy'] = RecoveryPolicy(registry, store, min_players=min_players)

    from imposter.socketio_events import register_socketio_handlers
    register_socketio_handlers()

    @click.command('init-db')
    def init_db_command():
        """Creates all tables."""
        with flask_app.app_context():
            db.create_all()
            print('Database tables created.')

    @click.command('seed-words')
    def seed_words_command():
        """Drops and reseeds the word catalog."""
        from imposter.services.game.catalog import WordCatalog
        with flask_app.app_context():
            db.create_all()
            count = WordCatalog().reseed(DEFAULT_CATEGORIES)
            print(f'Seeded {count} words in {len(DEFAULT_CATEGORIES)} categories.')

    flask_app.cli.add_command(init_db_command)
    flask_app.cli.add_command(seed_words_command)

    return flask_app
