import pytest

from imposter.services.game.errors import NotFound
from imposter.services.game.registry import RoomRegistry


@pytest.fixture()
def rooms():
    return RoomRegistry()


def test_create_and_join(rooms):
    room = rooms.create_room('Table', 'h1')
    rooms.join_room(room.id, 'h1', 'sid-h1', 'Host')
    rooms.join_room(room.id, 'p2', 'sid-p2', 'Guest')
    assert rooms.get_room(room.id) is room
    assert [p.id for p in rooms.list_players(room.id)] == ['h1', 'p2']
    assert rooms.get_player(room.id, 'p2').name == 'Guest'
    assert rooms.find_room_for_player('p2') is room


def test_join_unknown_room(rooms):
    with pytest.raises(NotFound):
        rooms.join_room('missing', 'p1', 'sid', 'Name')


def test_leave_last_player_destroys_room(rooms):
    room = rooms.create_room('Table', 'h1')
    rooms.join_room(room.id, 'h1', 'sid-h1', 'Host')
    rooms.join_room(room.id, 'p2', 'sid-p2', 'Guest')
    rooms.leave_room(room.id, 'h1')
    assert rooms.get_room(room.id) is not None
    rooms.leave_room(room.id, 'p2')
    assert rooms.get_room(room.id) is None
    assert rooms.list_rooms() == []


def test_leave_unknown_room(rooms):
    with pytest.raises(NotFound):
        rooms.leave_room('missing', 'p1')


def test_connected_players_filters_disconnected(rooms):
    room = rooms.create_room('Table', 'h1')
    rooms.join_room(room.id, 'h1', 'sid-h1', 'Host')
    rooms.join_room(room.id, 'p2', 'sid-p2', 'Guest')
    room.players['p2'].connected = False
    assert [p.id for p in rooms.connected_players(room.id)] == ['h1']
    assert rooms.connected_players('missing') == []


def test_public_view_hides_roles(rooms):
    room = rooms.create_room('Table', 'h1')
    rooms.join_room(room.id, 'h1', 'sid-h1', 'Host')
    public = room.to_public()
    assert public == {
        'id': room.id,
        'name': 'Table',
        'hostId': 'h1',
        'players': [{'id': 'h1', 'name': 'Host', 'isConnected': True}],
    }


def test_lock_requires_room(rooms):
    with pytest.raises(NotFound):
        rooms.lock('missing')
