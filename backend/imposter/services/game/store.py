from __future__ import annotations

from sqlalchemy.exc import IntegrityError

from imposter import db
from imposter.models import GameSession, Player, PlayerRole, Room, Score, Vote
from .errors import DuplicateVote


class GameStore:
    """Durable record of rooms, players, sessions, roles, votes and scores.

    Every write commits on its own. The in-memory registry stays the
    source of truth for real-time decisions; this is the history.
    """

    # ---- rooms ----

    def create_room(self, name: str, host_id: str) -> Room:
        room = Room(name=name, host_id=host_id)
        db.session.add(room)
        db.session.commit()
        return room

    def delete_room(self, room_id: str) -> None:
        room = db.session.get(Room, room_id)
        if room:
            db.session.delete(room)
            db.session.commit()

    def update_host(self, room_id: str, host_id: str) -> None:
        room = db.session.get(Room, room_id)
        if room:
            room.host_id = host_id
            db.session.commit()

    def update_room_status(self, room_id: str, status: str) -> None:
        room = db.session.get(Room, room_id)
        if room:
            room.status = status
            db.session.commit()

    # ---- players ----

    def create_player(self, room_id: str, socket_id: str, name: str, player_id: str | None = None) -> Player:
        player = Player(room_id=room_id, socket_id=socket_id, name=name)
        if player_id:
            player.id = player_id
        db.session.add(player)
        db.session.commit()
        return player

    def delete_player(self, player_id: str) -> None:
        player = db.session.get(Player, player_id)
        if player:
            db.session.delete(player)
            db.session.commit()

    def update_player_connection(self, player_id: str, connected: bool, socket_id: str | None = None) -> None:
        player = db.session.get(Player, player_id)
        if not player:
            return
        player.is_connected = connected
        if socket_id:
            player.socket_id = socket_id
        db.session.commit()

    # ---- sessions ----

    def create_session(self, room_id: str, word_id: int, round_number: int = 1,
                       max_rounds: int = 3, phase: str = 'LOBBY') -> GameSession:
        session = GameSession(
            room_id=room_id,
            word_id=word_id,
            round=round_number,
            max_rounds=max_rounds,
            current_phase=phase,
        )
        db.session.add(session)
        db.session.commit()
        return session

    def update_phase(self, session_id: str, phase: str) -> None:
        session = db.session.get(GameSession, session_id)
        if session:
            session.current_phase = phase
            db.session.commit()

    def get_session(self, session_id: str) -> GameSession | None:
        return db.session.get(GameSession, session_id)

    # ---- roles ----

    def create_roles(self, session_id: str, roles: dict[str, str]) -> None:
        for player_id, role in roles.items():
            db.session.add(PlayerRole(game_session_id=session_id, player_id=player_id, role=role))
        try:
            db.session.commit()
        except IntegrityError:
            db.session.rollback()
            raise

    def roles_for_session(self, session_id: str) -> list[PlayerRole]:
        return PlayerRole.query.filter_by(game_session_id=session_id).all()

    def count_roles(self, session_id: str) -> int:
        return PlayerRole.query.filter_by(game_session_id=session_id).count()

    def role_for(self, session_id: str, player_id: str) -> PlayerRole | None:
        return PlayerRole.query.filter_by(game_session_id=session_id, player_id=player_id).first()

    def record_guess(self, session_id: str, player_id: str, guess: str) -> None:
        role = self.role_for(session_id, player_id)
        if role:
            role.guessed_word = guess[:64]
            db.session.commit()

    # ---- votes ----

    def create_vote(self, session_id: str, voter_id: str, voted_for_id: str) -> Vote:
        vote = Vote(game_session_id=session_id, voter_id=voter_id, voted_for_id=voted_for_id)
        db.session.add(vote)
        try:
            db.session.commit()
        except IntegrityError:
            db.session.rollback()
            raise DuplicateVote('You have already voted this round')
        return vote

    def votes_for_session(self, session_id: str) -> list[Vote]:
        return Vote.query.filter_by(game_session_id=session_id).all()

    # ---- scores ----

    def create_scores(self, session_id: str, round_number: int, points: dict[str, int]) -> None:
        for player_id, value in points.items():
            db.session.add(Score(
                game_session_id=session_id,
                player_id=player_id,
                round_number=round_number,
                points=value,
            ))
        try:
            db.session.commit()
        except IntegrityError:
            db.session.rollback()
            raise

    def scores_for_round(self, session_id: str, round_number: int) -> list[Score]:
        return Score.query.filter_by(game_session_id=session_id, round_number=round_number).all()

    def total_scores(self, session_ids: list[str]) -> dict[str, int]:
        if not session_ids:
            return {}
        rows = (
            db.session.query(Score.player_id, db.func.sum(Score.points))
            .filter(Score.game_session_id.in_(session_ids))
            .group_by(Score.player_id)
            .all()
        )
        return {player_id: int(total or 0) for player_id, total in rows}
