from __future__ import annotations

from flask import current_app

from imposter.models import generate_id
from . import scoring
from .catalog import WordCatalog
from .errors import (
    IllegalTransition,
    InsufficientPlayers,
    InvalidRequest,
    NoWordsAvailable,
    NotFound,
    RoleNotAssigned,
    Unauthorized,
)
from .registry import RoomRegistry
from .state import GameState, Phase, PlayerState, Role, RoomState, can_transition
from .store import GameStore


class GameManager:
    """Room lifecycle and the per-room game phase state machine.

    Methods that mutate a room expect the caller to hold that room's lock
    (``registry.lock(room_id)``) for the whole read-modify-write sequence.
    Validation always happens before the first mutation.
    """

    def __init__(self, registry: RoomRegistry, store: GameStore | None = None,
                 catalog: WordCatalog | None = None, min_players: int = 2, max_rounds: int = 3):
        self.registry = registry
        self.store = store or registry.store or GameStore()
        self.catalog = catalog or WordCatalog()
        self.min_players = min_players
        self.max_rounds = max_rounds

    # ---- rooms and players ----

    def open_room(self, name: str, host_name: str, socket_id: str) -> tuple[RoomState, PlayerState]:
        name = (name or '').strip()
        host_name = (host_name or '').strip()
        if not name or not host_name:
            raise InvalidRequest('Room name and player name are required')
        host_id = generate_id()
        room = self.registry.create_room(name, host_id)
        self.store.create_player(room.id, socket_id, host_name, player_id=host_id)
        self.registry.join_room(room.id, host_id, socket_id, host_name)
        current_app.logger.info(f"[room-create] room={room.id} host={host_id}")
        return room, room.players[host_id]

    def add_player(self, room_id: str, player_name: str, socket_id: str) -> PlayerState:
        player_name = (player_name or '').strip()
        if not player_name:
            raise InvalidRequest('Player name is required')
        room = self.registry.require_room(room_id)
        db_player = self.store.create_player(room.id, socket_id, player_name)
        self.registry.join_room(room.id, db_player.id, socket_id, player_name)
        current_app.logger.info(f"[room-join] room={room.id} player={db_player.id}")
        return room.players[db_player.id]

    def remove_player(self, room_id: str, player_id: str) -> RoomState | None:
        """Remove a player; returns the room, or None once it was destroyed."""
        room = self.registry.require_room(room_id)
        if player_id not in room.players:
            raise NotFound('Player not found in room')
        self.store.delete_player(player_id)
        self.registry.leave_room(room_id, player_id)
        current_app.logger.info(f"[room-leave] room={room_id} player={player_id}")
        return self.registry.get_room(room_id)

    # ---- state machine ----

    def start_game(self, room_id: str) -> GameState:
        room = self.registry.require_room(room_id)
        if room.game is not None:
            raise IllegalTransition('A game is already in progress')
        if len(room.players) < self.min_players:
            raise InsufficientPlayers('Not enough players to start game')

        word = self.catalog.random_word()
        if not word:
            raise NoWordsAvailable('No words available in database')

        session = self.store.create_session(room_id, word.id, round_number=1, max_rounds=self.max_rounds)
        room.game = GameState(
            session_id=session.id,
            room_id=room_id,
            word=word.text,
            phase=Phase.LOBBY,
            round=1,
            max_rounds=self.max_rounds,
            session_ids=[session.id],
        )
        self.store.update_room_status(room_id, 'IN_GAME')
        current_app.logger.info(f"[game-start] room={room_id} session={session.id}")
        return room.game

    def require_game(self, room_id: str, phase: Phase | None = None) -> GameState:
        room = self.registry.require_room(room_id)
        if room.game is None:
            raise NotFound('Game not found')
        if phase is not None and room.game.phase != phase:
            raise IllegalTransition(f'Not in {phase.value}')
        return room.game

    def get_game_state(self, room_id: str) -> GameState | None:
        room = self.registry.get_room(room_id)
        return room.game if room else None

    def transition_phase(self, room_id: str, target: Phase) -> GameState:
        game = self.require_game(room_id)
        target = Phase(target)
        if not can_transition(game.phase, target):
            raise IllegalTransition(f'Cannot transition from {game.phase.value} to {target.value}')
        self.store.update_phase(game.session_id, target.value)
        previous, game.phase = game.phase, target
        current_app.logger.info(f"[phase] room={room_id} {previous.value} -> {target.value} round={game.round}")
        return game

    def prepare_next_round(self, room_id: str, current_round: int, max_rounds: int) -> tuple[bool, int | None]:
        """Open the next round's session, or report that the game is over."""
        if current_round >= max_rounds:
            return True, None
        room = self.registry.require_room(room_id)
        game = self.require_game(room_id)
        word = self.catalog.random_word()
        if not word:
            raise NoWordsAvailable('No words available in database')

        next_round = current_round + 1
        session = self.store.create_session(
            room_id, word.id, round_number=next_round, max_rounds=max_rounds, phase=Phase.ASSIGN_ROLES.value,
        )
        game.session_id = session.id
        game.session_ids.append(session.id)
        game.word = word.text
        game.round = next_round
        game.max_rounds = max_rounds
        game.phase = Phase.ASSIGN_ROLES
        game.clues = {}
        game.eliminated = set()
        game.last_eliminated_id = None
        game.round_scores = None
        for player in room.players.values():
            player.role = None
        current_app.logger.info(f"[next-round] room={room_id} round={next_round} session={session.id}")
        return False, next_round

    def end_game(self, room_id: str, status: str = 'FINISHED') -> None:
        room = self.registry.get_room(room_id)
        if room is None or room.game is None:
            return
        current_app.logger.info(f"[game-end] room={room_id} session={room.game.session_id} status={status}")
        room.game = None
        for player in room.players.values():
            player.role = None
        self.store.update_room_status(room_id, status)

    # ---- roles ----

    def assign_roles(self, room_id: str) -> dict[str, Role]:
        room = self.registry.require_room(room_id)
        game = self.require_game(room_id)
        if not room.players:
            raise InsufficientPlayers('No players to assign roles to')
        roles = scoring.split_roles(room.players.keys())
        self.store.create_roles(game.session_id, {pid: role.value for pid, role in roles.items()})
        for pid, role in roles.items():
            room.players[pid].role = role
        current_app.logger.info(
            f"[roles] room={room_id} session={game.session_id} players={len(roles)} "
            f"imposters={scoring.imposter_count(len(roles))}"
        )
        return roles

    def verify_all_roles_assigned(self, session_id: str, room_id: str) -> bool:
        room = self.registry.get_room(room_id)
        if room is None:
            return False
        count = self.store.count_roles(session_id)
        return count > 0 and count == len(room.players)

    def session_roles(self, session_id: str) -> dict[str, Role]:
        return {r.player_id: Role(r.role) for r in self.store.roles_for_session(session_id)}

    def active_roles(self, room_id: str) -> dict[str, Role]:
        """Roles of players still in the room; departed players are out of the game."""
        room = self.registry.require_room(room_id)
        game = self.require_game(room_id)
        return {pid: role for pid, role in self.session_roles(game.session_id).items() if pid in room.players}

    def require_role(self, game: GameState, player_id: str) -> Role:
        row = self.store.role_for(game.session_id, player_id)
        if row is None:
            raise RoleNotAssigned('Player role not found')
        return Role(row.role)

    # ---- clues ----

    def submit_clue(self, room_id: str, player_id: str, clue: str) -> PlayerState:
        room = self.registry.require_room(room_id)
        game = self.require_game(room_id, Phase.CLUE_PHASE)
        player = room.players.get(player_id)
        if player is None:
            raise NotFound('Player not found in room')
        clue = (clue or '').strip()
        if not clue:
            raise InvalidRequest('Clue cannot be empty')
        self.require_role(game, player_id)
        if player_id in game.clues:
            raise InvalidRequest('You have already submitted a clue this round')
        game.clues[player_id] = clue
        return player

    def clues_complete(self, room_id: str) -> bool:
        room = self.registry.require_room(room_id)
        game = room.game
        if game is None or game.phase != Phase.CLUE_PHASE:
            return False
        connected = room.connected_players()
        return bool(connected) and all(p.id in game.clues for p in connected)

    # ---- voting ----

    def submit_vote(self, room_id: str, voter_id: str, voted_for_id: str) -> None:
        room = self.registry.require_room(room_id)
        game = self.require_game(room_id, Phase.VOTING_PHASE)
        if voter_id not in room.players:
            raise NotFound('Player not found in room')
        if not voted_for_id or voted_for_id not in room.players:
            raise NotFound('Voted player not found in room')
        if voted_for_id == voter_id:
            raise InvalidRequest('You cannot vote for yourself')
        self.require_role(game, voter_id)
        self.store.create_vote(game.session_id, voter_id, voted_for_id)
        current_app.logger.info(f"[vote] room={room_id} session={game.session_id} voter={voter_id}")

    def voting_complete(self, room_id: str) -> bool:
        room = self.registry.require_room(room_id)
        game = room.game
        if game is None or game.phase != Phase.VOTING_PHASE:
            return False
        votes = self.store.votes_for_session(game.session_id)
        return bool(votes) and len(votes) >= len(room.connected_players())

    def resolve_votes(self, room_id: str) -> str | None:
        """Tally the session's votes and record who was eliminated."""
        game = self.require_game(room_id, Phase.VOTING_PHASE)
        votes = self.store.votes_for_session(game.session_id)
        counts = scoring.tally_votes(v.voted_for_id for v in votes)
        eliminated = scoring.resolve_tied_votes(counts)
        game.last_eliminated_id = eliminated
        if eliminated is not None:
            game.eliminated.add(eliminated)
        current_app.logger.info(f"[vote-result] room={room_id} counts={counts} eliminated={eliminated}")
        return eliminated

    # ---- guessing ----

    def submit_guess(self, room_id: str, player_id: str, guess: str) -> bool:
        room = self.registry.require_room(room_id)
        game = self.require_game(room_id, Phase.REVEAL_PHASE)
        if player_id not in room.players:
            raise NotFound('Player not found in room')
        if not game.word:
            raise NotFound('Game word not found')
        if not (guess or '').strip():
            raise InvalidRequest('Guess cannot be empty')
        if self.require_role(game, player_id) != Role.IMPOSTER:
            raise Unauthorized('Only imposters can guess')
        if player_id in game.eliminated:
            raise Unauthorized('Eliminated imposters cannot guess')
        self.store.record_guess(game.session_id, player_id, guess)
        return scoring.is_correct_guess(guess, game.word)

    def has_eligible_guesser(self, room_id: str) -> bool:
        """Whether a connected, uneliminated imposter can still guess."""
        room = self.registry.require_room(room_id)
        game = self.require_game(room_id)
        return any(
            role == Role.IMPOSTER and pid not in game.eliminated and room.players[pid].connected
            for pid, role in self.active_roles(room_id).items()
        )

    # ---- scoring ----

    def score_round(self, room_id: str, eliminated_id: str | None, imposter_guessed: bool) -> dict[str, int]:
        """Record this round's points once; later calls return the same deltas."""
        game = self.require_game(room_id)
        if game.round_scores is not None:
            return dict(game.round_scores)
        existing = self.store.scores_for_round(game.session_id, game.round)
        if existing:
            game.round_scores = {s.player_id: s.points for s in existing}
            return dict(game.round_scores)
        deltas = scoring.round_deltas(self.active_roles(room_id), eliminated_id, imposter_guessed)
        self.store.create_scores(game.session_id, game.round, deltas)
        game.round_scores = deltas
        current_app.logger.info(f"[score] room={room_id} round={game.round} deltas={deltas}")
        return dict(deltas)

    def preview_round_scores(self, room_id: str) -> dict[str, int]:
        """Deltas the vote outcome alone would award, without recording them."""
        game = self.require_game(room_id)
        return scoring.round_deltas(self.active_roles(room_id), game.last_eliminated_id, False)

    def check_players_won(self, room_id: str) -> bool:
        game = self.require_game(room_id)
        return scoring.players_won(self.active_roles(room_id), game.eliminated)

    def total_game_scores(self, room_id: str) -> list[dict]:
        room = self.registry.require_room(room_id)
        game = self.require_game(room_id)
        totals = {pid: t for pid, t in self.store.total_scores(game.session_ids).items() if pid in room.players}
        names = {pid: p.name for pid, p in room.players.items()}
        return scoring.rank_totals(totals, names)

