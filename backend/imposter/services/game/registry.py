from __future__ import annotations

import uuid
from threading import RLock

from .errors import NotFound
from .state import PlayerState, RoomState


class RoomRegistry:
    """In-memory table of active rooms, keyed by room id.

    The registry owns room membership and player liveness. When a store is
    given, room creation/deletion is mirrored to it. Callers mutating a
    room across several steps hold ``lock(room_id)`` while doing so.
    """

    def __init__(self, store=None):
        self.store = store
        self._lock = RLock()
        self._rooms: dict[str, RoomState] = {}

    def create_room(self, name: str, host_id: str) -> RoomState:
        if self.store is not None:
            room_id = self.store.create_room(name, host_id).id
        else:
            room_id = uuid.uuid4().hex
        room = RoomState(id=room_id, name=name, host_id=host_id)
        with self._lock:
            self._rooms[room_id] = room
        return room

    def join_room(self, room_id: str, player_id: str, socket_id: str, name: str) -> RoomState:
        room = self.get_room(room_id)
        if room is None:
            raise NotFound(f"Room {room_id} not found")
        with room.lock:
            room.players[player_id] = PlayerState(id=player_id, socket_id=socket_id, name=name)
        return room

    def leave_room(self, room_id: str, player_id: str) -> None:
        room = self.get_room(room_id)
        if room is None:
            raise NotFound(f"Room {room_id} not found")
        with room.lock:
            room.players.pop(player_id, None)
            if room.players:
                return
            with self._lock:
                self._rooms.pop(room_id, None)
        if self.store is not None:
            self.store.delete_room(room_id)

    def get_room(self, room_id: str) -> RoomState | None:
        with self._lock:
            return self._rooms.get(room_id)

    def require_room(self, room_id: str) -> RoomState:
        room = self.get_room(room_id)
        if room is None:
            raise NotFound(f"Room {room_id} not found")
        return room

    def list_rooms(self) -> list[RoomState]:
        with self._lock:
            return list(self._rooms.values())

    def get_player(self, room_id: str, player_id: str) -> PlayerState | None:
        room = self.get_room(room_id)
        return room.players.get(player_id) if room else None

    def list_players(self, room_id: str) -> list[PlayerState]:
        room = self.get_room(room_id)
        return list(room.players.values()) if room else []

    def connected_players(self, room_id: str) -> list[PlayerState]:
        room = self.get_room(room_id)
        return room.connected_players() if room else []

    def find_room_for_player(self, player_id: str) -> RoomState | None:
        for room in self.list_rooms():
            if player_id in room.players:
                return room
        return None

    def lock(self, room_id: str):
        return self.require_room(room_id).lock
