from imposter import db
from datetime import datetime, timezone
import uuid


def generate_id():
    return uuid.uuid4().hex


def _utcnow():
    return datetime.now(timezone.utc)


class Room(db.Model):
    __tablename__ = 'room'
    id = db.Column(db.String(32), primary_key=True, default=generate_id)
    name = db.Column(db.String(64), nullable=False)
    # Not a foreign key: the host row is created right after the room
    host_id = db.Column(db.String(32), nullable=False)
    status = db.Column(db.String(16), default='WAITING', nullable=False)  # WAITING, IN_GAME, FINISHED
    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow, nullable=False)
    players = db.relationship('Player', back_populates='room', cascade='all, delete-orphan')
    game_sessions = db.relationship('GameSession', back_populates='room', cascade='all, delete-orphan')

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'hostId': self.host_id,
            'status': self.status,
            'players': [p.to_dict() for p in self.players],
        }


class Player(db.Model):
    __tablename__ = 'player'
    id = db.Column(db.String(32), primary_key=True, default=generate_id)
    room_id = db.Column(db.String(32), db.ForeignKey('room.id'), nullable=False, index=True)
    socket_id = db.Column(db.String(64), nullable=False)
    name = db.Column(db.String(64), nullable=False)
    is_connected = db.Column(db.Boolean, default=True, nullable=False)
    joined_at = db.Column(db.DateTime(timezone=True), default=_utcnow, nullable=False)
    room = db.relationship('Room', back_populates='players')

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'isConnected': self.is_connected,
        }


class Category(db.Model):
    __tablename__ = 'category'
    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(64), unique=True, nullable=False)
    words = db.relationship('Word', backref='category', lazy='dynamic', cascade='all, delete-orphan')


class Word(db.Model):
    __tablename__ = 'word'
    id = db.Column(db.Integer, primary_key=True)
    text = db.Column(db.String(64), nullable=False)
    category_id = db.Column(db.Integer, db.ForeignKey('category.id'), nullable=False)


class GameSession(db.Model):
    __tablename__ = 'game_session'
    id = db.Column(db.String(32), primary_key=True, default=generate_id)
    room_id = db.Column(db.String(32), db.ForeignKey('room.id'), nullable=False, index=True)
    word_id = db.Column(db.Integer, db.ForeignKey('word.id'), nullable=False)
    current_phase = db.Column(db.String(16), default='LOBBY', nullable=False)
    round = db.Column(db.Integer, default=1, nullable=False)
    max_rounds = db.Column(db.Integer, default=3, nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow, nullable=False)
    room = db.relationship('Room', back_populates='game_sessions')
    word = db.relationship('Word')
    player_roles = db.relationship('PlayerRole', backref='game_session', lazy='dynamic', cascade='all, delete-orphan')
    votes = db.relationship('Vote', backref='game_session', lazy='dynamic', cascade='all, delete-orphan')
    scores = db.relationship('Score', backref='game_session', lazy='dynamic', cascade='all, delete-orphan')

    def to_dict(self):
        return {
            'id': self.id,
            'room_id': self.room_id,
            'current_phase': self.current_phase,
            'round': self.round,
            'max_rounds': self.max_rounds,
        }


class PlayerRole(db.Model):
    __tablename__ = 'player_role'
    __table_args__ = (db.UniqueConstraint('game_session_id', 'player_id', name='uq_player_role_session_player'),)
    id = db.Column(db.Integer, primary_key=True)
    game_session_id = db.Column(db.String(32), db.ForeignKey('game_session.id'), nullable=False, index=True)
    # Player rows are removed on leave; the role row stays as history
    player_id = db.Column(db.String(32), nullable=False)
    role = db.Column(db.String(16), nullable=False)  # PLAYER, IMPOSTER
    guessed_word = db.Column(db.String(64), nullable=True)


class Vote(db.Model):
    __tablename__ = 'vote'
    __table_args__ = (db.UniqueConstraint('game_session_id', 'voter_id', name='uq_vote_session_voter'),)
    id = db.Column(db.Integer, primary_key=True)
    game_session_id = db.Column(db.String(32), db.ForeignKey('game_session.id'), nullable=False, index=True)
    voter_id = db.Column(db.String(32), nullable=False)
    voted_for_id = db.Column(db.String(32), nullable=False)


class Score(db.Model):
    __tablename__ = 'score'
    __table_args__ = (
        db.UniqueConstraint('game_session_id', 'player_id', 'round_number', name='uq_score_session_player_round'),
    )
    id = db.Column(db.Integer, primary_key=True)
    game_session_id = db.Column(db.String(32), db.ForeignKey('game_session.id'), nullable=False, index=True)
    player_id = db.Column(db.String(32), nullable=False)
    round_number = db.Column(db.Integer, nullable=False)
    points = db.Column(db.Integer, default=0, nullable=False)
