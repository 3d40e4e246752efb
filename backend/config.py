import os

class Config:
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'you-will-never-guess'
    SQLALCHEMY_DATABASE_URI = os.environ.get('DATABASE_URL') or 'sqlite:///imposter.db'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    # Comma separated list of allowed origins for HTTP and Socket.IO
    CORS_ORIGINS = [o.strip() for o in os.environ.get(
        'CORS_ORIGINS', 'http://localhost:5173,http://127.0.0.1:5173'
    ).split(',') if o.strip()]
    # Empty lets Flask-SocketIO pick eventlet/gevent/threading
    SOCKETIO_ASYNC_MODE = os.environ.get('SOCKETIO_ASYNC_MODE') or None
    # Game rules
    MIN_PLAYERS = int(os.environ.get('MIN_PLAYERS', '2'))
    MAX_ROUNDS = int(os.environ.get('MAX_ROUNDS', '3'))
    # Auto-advance timers (seconds)
    ROLE_REVEAL_DELAY_SEC = float(os.environ.get('ROLE_REVEAL_DELAY_SEC', '2'))
    NEXT_ROUND_DELAY_SEC = float(os.environ.get('NEXT_ROUND_DELAY_SEC', '3'))
    # Reveal phase timeout; a silent imposter counts as a wrong guess. 0 disables.
    REVEAL_DURATION_SEC = float(os.environ.get('REVEAL_DURATION_SEC', '0'))
