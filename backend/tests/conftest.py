import os
import sys
import pytest

# Ensure the backend root (containing the `imposter` package) is on sys.path
CURRENT_DIR = os.path.dirname(__file__)
BACKEND_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, '..'))
if BACKEND_ROOT not in sys.path:
    sys.path.insert(0, BACKEND_ROOT)

from imposter import create_app, db, socketio, DEFAULT_CATEGORIES
from imposter.services.game import scoring
from imposter.services.game.catalog import WordCatalog
from imposter.services.game.state import Role


class TestConfig:
    TESTING = True
    SECRET_KEY = os.environ.get('SECRET_KEY', 'test-secret')
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    CORS_ORIGINS = '*'
    SOCKETIO_ASYNC_MODE = 'threading'
    MIN_PLAYERS = 2
    MAX_ROUNDS = 3
    ROLE_REVEAL_DELAY_SEC = 0
    NEXT_ROUND_DELAY_SEC = 0
    REVEAL_DURATION_SEC = 0


@pytest.fixture()
def flask_app():
    application = create_app(TestConfig)
    with application.app_context():
        # Ensure models are imported so tables are created
        import imposter.models  # noqa: F401
        db.create_all()
        WordCatalog().reseed(DEFAULT_CATEGORIES)
        yield application
        db.session.remove()
        db.drop_all()


@pytest.fixture()
def client(flask_app):
    return flask_app.test_client()


@pytest.fixture()
def manager(flask_app):
    return flask_app.extensions['game_manager']


@pytest.fixture()
def registry(manager):
    return manager.registry


@pytest.fixture()
def single_word(flask_app):
    """Catalog holding only 'mango'."""
    WordCatalog().reseed({'Fruits': ['mango']})
    return 'mango'


@pytest.fixture()
def rig_roles(monkeypatch):
    """Make the players at the given join positions the imposters."""
    def _rig(*imposter_positions):
        def _split(player_ids, rng=None):
            return {
                pid: (Role.IMPOSTER if i in imposter_positions else Role.PLAYER)
                for i, pid in enumerate(player_ids)
            }
        monkeypatch.setattr(scoring, 'split_roles', _split)
    return _rig


@pytest.fixture()
def make_sio_client(flask_app):
    clients = []

    def _make():
        test_client = socketio.test_client(flask_app, flask_test_client=flask_app.test_client())
        clients.append(test_client)
        return test_client

    yield _make
    for test_client in clients:
        try:
            if test_client.is_connected():
                test_client.disconnect()
        except Exception:
            pass


def payloads(packets, name):
    return [pkt['args'][0] for pkt in packets if pkt['name'] == name]


class Seat:
    def __init__(self, name, client, player_id):
        self.name = name
        self.client = client
        self.id = player_id

    def emit(self, event, data):
        self.client.emit(event, data)

    def received(self):
        return self.client.get_received()


@pytest.fixture()
def seat_players(make_sio_client):
    """Create a room hosted by P1 and seat P2..Pn; returns (room_id, seats)."""
    def _seat(count):
        host = make_sio_client()
        host.emit('create_room', {'name': 'Table', 'playerName': 'P1'})
        created = payloads(host.get_received(), 'room_created')[0]
        room_id = created['roomId']
        seats = [Seat('P1', host, created['room']['hostId'])]
        for i in range(2, count + 1):
            name = f'P{i}'
            c = make_sio_client()
            c.emit('join_room', {'roomId': room_id, 'playerName': name})
            joined = payloads(c.get_received(), 'room_joined')[0]
            pid = next(p['id'] for p in joined['room']['players'] if p['name'] == name)
            seats.append(Seat(name, c, pid))
        for s in seats:
            s.received()
        return room_id, seats
    return _seat
