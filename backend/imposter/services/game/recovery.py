from __future__ import annotations

from flask import current_app

from .registry import RoomRegistry
from .store import GameStore


class RecoveryPolicy:
    """Disconnect, reconnect and host failover rules.

    Players are never dropped on disconnect while a game is running so they
    can come back. Callers hold the room lock.
    """

    def __init__(self, registry: RoomRegistry, store: GameStore | None = None, min_players: int = 2):
        self.registry = registry
        self.store = store or registry.store or GameStore()
        self.min_players = min_players

    def handle_disconnect(self, room_id: str, player_id: str) -> bool:
        player = self.registry.get_player(room_id, player_id)
        if player is None:
            return False
        player.connected = False
        self.store.update_player_connection(player_id, False)
        current_app.logger.info(f"[disconnect] room={room_id} player={player_id}")
        return True

    def handle_reconnect(self, room_id: str, player_id: str, socket_id: str) -> bool:
        player = self.registry.get_player(room_id, player_id)
        if player is None:
            return False
        player.connected = True
        player.socket_id = socket_id
        self.store.update_player_connection(player_id, True, socket_id=socket_id)
        current_app.logger.info(f"[reconnect] room={room_id} player={player_id}")
        return True

    def reassign_host_if_needed(self, room_id: str) -> tuple[str | None, bool]:
        """Hand the host role to a connected player when the host is gone.

        Returns ``(host_id, changed)``. ``host_id`` is None when nobody is
        connected; the caller then treats the room as unrecoverable.
        """
        room = self.registry.get_room(room_id)
        if room is None:
            return None, False
        host = room.players.get(room.host_id)
        if host is not None and host.connected:
            return room.host_id, False

        connected = sorted(p.id for p in room.connected_players())
        if not connected:
            return None, False

        room.host_id = connected[0]
        self.store.update_host(room_id, room.host_id)
        current_app.logger.info(f"[host-change] room={room_id} new_host={room.host_id}")
        return room.host_id, True

    def check_sufficient_players(self, room_id: str) -> tuple[bool, int, int]:
        current = len(self.registry.connected_players(room_id))
        return current >= self.min_players, current, self.min_players

    def purge_disconnected(self, room_id: str) -> list[str]:
        """Drop disconnected players from an idle lobby; never mid-game."""
        room = self.registry.get_room(room_id)
        if room is None or room.game is not None:
            return []
        purged = [p.id for p in room.players.values() if not p.connected]
        for player_id in purged:
            self.store.delete_player(player_id)
            self.registry.leave_room(room_id, player_id)
        if purged:
            current_app.logger.info(f"[lobby-cleanup] room={room_id} purged={purged}")
        return purged
