from imposter.services.game.scheduler import schedule_phase_advance
from imposter.services.game.state import Phase


def open_game(manager):
    room, host = manager.open_room('Table', 'P1', 'sid-1')
    guest = manager.add_player(room.id, 'P2', 'sid-2')
    game = manager.start_game(room.id)
    return room, game, [host.id, guest.id]


def test_fires_when_room_is_unchanged(flask_app, manager):
    room, game, _ = open_game(manager)
    calls = []
    assert schedule_phase_advance(flask_app, room.id, Phase.LOBBY, game.session_id, 0, calls.append)
    assert calls == [room.id]


def test_stale_session_is_a_no_op(flask_app, manager):
    room, _, _ = open_game(manager)
    calls = []
    schedule_phase_advance(flask_app, room.id, Phase.LOBBY, 'stale-session', 0, calls.append)
    assert calls == []


def test_phase_moved_on_is_a_no_op(flask_app, manager):
    room, game, _ = open_game(manager)
    calls = []
    schedule_phase_advance(flask_app, room.id, Phase.CLUE_PHASE, game.session_id, 0, calls.append)
    assert calls == []


def test_destroyed_room_is_a_no_op(flask_app, manager):
    room, game, ids = open_game(manager)
    for pid in ids:
        manager.remove_player(room.id, pid)
    assert manager.registry.get_room(room.id) is None
    calls = []
    schedule_phase_advance(flask_app, room.id, Phase.LOBBY, game.session_id, 0, calls.append)
    assert calls == []


def test_failing_action_is_logged_not_raised(flask_app, manager):
    room, game, _ = open_game(manager)

    def boom(room_id):
        raise RuntimeError('boom')

    assert schedule_phase_advance(flask_app, room.id, Phase.LOBBY, game.session_id, 0, boom)
    assert room.game is game
