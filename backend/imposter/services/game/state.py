from __future__ import annotations

import threading
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Phase(str, Enum):
    LOBBY = "LOBBY"
    ASSIGN_ROLES = "ASSIGN_ROLES"
    CLUE_PHASE = "CLUE_PHASE"
    VOTING_PHASE = "VOTING_PHASE"
    REVEAL_PHASE = "REVEAL_PHASE"
    SCORE_PHASE = "SCORE_PHASE"


class Role(str, Enum):
    PLAYER = "PLAYER"
    IMPOSTER = "IMPOSTER"


VALID_TRANSITIONS: dict[Phase, tuple[Phase, ...]] = {
    Phase.LOBBY: (Phase.ASSIGN_ROLES,),
    Phase.ASSIGN_ROLES: (Phase.CLUE_PHASE,),
    Phase.CLUE_PHASE: (Phase.VOTING_PHASE,),
    Phase.VOTING_PHASE: (Phase.REVEAL_PHASE,),
    Phase.REVEAL_PHASE: (Phase.SCORE_PHASE,),
    Phase.SCORE_PHASE: (Phase.CLUE_PHASE, Phase.LOBBY),
}


def can_transition(current: Phase, target: Phase) -> bool:
    return target in VALID_TRANSITIONS.get(current, ())


@dataclass
class PlayerState:
    id: str
    socket_id: str
    name: str
    role: Role | None = None
    connected: bool = True
    joined_at: datetime = field(default_factory=_utcnow)

    def to_public(self) -> dict:
        """Wire representation; the role stays private."""
        return {
            "id": self.id,
            "name": self.name,
            "isConnected": self.connected,
        }


@dataclass
class GameState:
    session_id: str
    room_id: str
    word: str
    phase: Phase = Phase.LOBBY
    round: int = 1
    max_rounds: int = 3
    created_at: datetime = field(default_factory=_utcnow)
    # Every session opened for this game, oldest first; totals sum over these
    session_ids: list[str] = field(default_factory=list)
    # Per-round working state, reset whenever a new session is opened
    clues: dict[str, str] = field(default_factory=dict)
    eliminated: set[str] = field(default_factory=set)
    last_eliminated_id: str | None = None
    round_scores: dict[str, int] | None = None


@dataclass
class RoomState:
    id: str
    name: str
    host_id: str
    players: dict[str, PlayerState] = field(default_factory=dict)
    game: GameState | None = None
    created_at: datetime = field(default_factory=_utcnow)
    lock: threading.RLock = field(default_factory=threading.RLock, repr=False, compare=False)

    def connected_players(self) -> list[PlayerState]:
        return [p for p in self.players.values() if p.connected]

    def to_public(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "hostId": self.host_id,
            "players": [p.to_public() for p in self.players.values()],
        }
