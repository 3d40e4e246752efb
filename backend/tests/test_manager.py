import pytest

from imposter import db
from imposter.models import GameSession, PlayerRole, Room, Score, Vote, Word
from imposter.services.game.errors import (
    DuplicateVote,
    IllegalTransition,
    InsufficientPlayers,
    InvalidRequest,
    NoWordsAvailable,
    RoleNotAssigned,
    Unauthorized,
)
from imposter.services.game.state import Phase, Role, VALID_TRANSITIONS


def open_table(manager, count):
    room, host = manager.open_room('Table', 'P1', 'sid-1')
    ids = [host.id]
    for i in range(2, count + 1):
        ids.append(manager.add_player(room.id, f'P{i}', f'sid-{i}').id)
    return room, ids


def start_with_roles(manager, room):
    manager.start_game(room.id)
    roles = manager.assign_roles(room.id)
    manager.transition_phase(room.id, Phase.ASSIGN_ROLES)
    return roles


def test_open_room_persists_room_and_host(manager):
    room, host = manager.open_room('Table', 'Alice', 'sid-a')
    assert room.host_id == host.id
    assert room.players[host.id].name == 'Alice'
    assert db.session.get(Room, room.id).host_id == host.id


def test_open_room_requires_names(manager):
    with pytest.raises(InvalidRequest):
        manager.open_room('  ', 'Alice', 'sid-a')


def test_start_requires_min_players(manager):
    room, _ = open_table(manager, 1)
    with pytest.raises(InsufficientPlayers):
        manager.start_game(room.id)
    assert room.game is None


def test_start_with_empty_catalog(manager):
    room, _ = open_table(manager, 3)
    Word.query.delete()
    db.session.commit()
    with pytest.raises(NoWordsAvailable):
        manager.start_game(room.id)
    assert room.game is None


def test_start_twice_is_rejected(manager):
    room, _ = open_table(manager, 2)
    game = manager.start_game(room.id)
    assert game.phase == Phase.LOBBY
    assert game.round == 1
    with pytest.raises(IllegalTransition):
        manager.start_game(room.id)


def test_valid_transitions_persist(manager):
    room, _ = open_table(manager, 2)
    game = manager.start_game(room.id)
    manager.transition_phase(room.id, Phase.ASSIGN_ROLES)
    assert game.phase == Phase.ASSIGN_ROLES
    assert db.session.get(GameSession, game.session_id).current_phase == 'ASSIGN_ROLES'


def test_illegal_transitions_leave_phase_unchanged(manager):
    room, _ = open_table(manager, 2)
    game = manager.start_game(room.id)
    for current in Phase:
        for target in Phase:
            if target in VALID_TRANSITIONS[current]:
                continue
            game.phase = current
            with pytest.raises(IllegalTransition):
                manager.transition_phase(room.id, target)
            assert game.phase == current


def test_roles_split_by_thirds(manager):
    room, ids = open_table(manager, 4)
    roles = start_with_roles(manager, room)
    assert set(roles) == set(ids)
    assert sum(1 for r in roles.values() if r == Role.IMPOSTER) == 2
    assert PlayerRole.query.filter_by(game_session_id=room.game.session_id).count() == 4
    assert manager.verify_all_roles_assigned(room.game.session_id, room.id)
    assert all(room.players[pid].role is not None for pid in ids)


def test_verify_fails_when_player_lacks_role(manager):
    room, _ = open_table(manager, 3)
    start_with_roles(manager, room)
    manager.add_player(room.id, 'Late', 'sid-late')
    assert not manager.verify_all_roles_assigned(room.game.session_id, room.id)


def test_clue_requires_role(manager):
    room, ids = open_table(manager, 2)
    manager.start_game(room.id)
    room.game.phase = Phase.CLUE_PHASE
    with pytest.raises(RoleNotAssigned):
        manager.submit_clue(room.id, ids[0], 'fruit')


def test_clues_once_per_round(manager):
    room, ids = open_table(manager, 3)
    start_with_roles(manager, room)
    manager.transition_phase(room.id, Phase.CLUE_PHASE)
    manager.submit_clue(room.id, ids[0], 'sweet')
    with pytest.raises(InvalidRequest):
        manager.submit_clue(room.id, ids[0], 'again')
    assert not manager.clues_complete(room.id)
    manager.submit_clue(room.id, ids[1], 'yellow')
    room.players[ids[2]].connected = False
    assert manager.clues_complete(room.id)


def test_vote_outside_voting_phase(manager):
    room, ids = open_table(manager, 3)
    start_with_roles(manager, room)
    with pytest.raises(IllegalTransition):
        manager.submit_vote(room.id, ids[0], ids[1])


def test_duplicate_vote(manager):
    room, ids = open_table(manager, 3)
    start_with_roles(manager, room)
    manager.transition_phase(room.id, Phase.CLUE_PHASE)
    manager.transition_phase(room.id, Phase.VOTING_PHASE)
    manager.submit_vote(room.id, ids[0], ids[1])
    with pytest.raises(DuplicateVote):
        manager.submit_vote(room.id, ids[0], ids[2])
    assert Vote.query.filter_by(game_session_id=room.game.session_id).count() == 1
    with pytest.raises(InvalidRequest):
        manager.submit_vote(room.id, ids[1], ids[1])


def test_resolve_votes_records_elimination(manager):
    room, ids = open_table(manager, 3)
    start_with_roles(manager, room)
    manager.transition_phase(room.id, Phase.CLUE_PHASE)
    manager.transition_phase(room.id, Phase.VOTING_PHASE)
    manager.submit_vote(room.id, ids[0], ids[2])
    manager.submit_vote(room.id, ids[1], ids[2])
    assert not manager.voting_complete(room.id)
    manager.submit_vote(room.id, ids[2], ids[0])
    assert manager.voting_complete(room.id)
    assert manager.resolve_votes(room.id) == ids[2]
    assert room.game.last_eliminated_id == ids[2]
    assert ids[2] in room.game.eliminated


def test_only_imposters_guess(manager, rig_roles):
    rig_roles(2)
    room, ids = open_table(manager, 3)
    start_with_roles(manager, room)
    room.game.phase = Phase.REVEAL_PHASE
    with pytest.raises(Unauthorized):
        manager.submit_guess(room.id, ids[0], 'anything')
    word = room.game.word
    assert manager.submit_guess(room.id, ids[2], f'  {word.upper()} ')
    room.game.eliminated.add(ids[2])
    with pytest.raises(Unauthorized):
        manager.submit_guess(room.id, ids[2], word)


def test_score_round_is_recorded_once(manager, rig_roles):
    rig_roles(2)
    room, ids = open_table(manager, 3)
    start_with_roles(manager, room)
    first = manager.score_round(room.id, ids[2], False)
    second = manager.score_round(room.id, None, True)
    assert first == second == {ids[0]: 3, ids[1]: 3, ids[2]: 0}
    assert Score.query.filter_by(game_session_id=room.game.session_id).count() == 3
    totals = {row['playerId']: row['totalPoints'] for row in manager.total_game_scores(room.id)}
    assert totals == {ids[0]: 3, ids[1]: 3, ids[2]: 0}


def test_prepare_next_round_opens_new_session(manager):
    room, ids = open_table(manager, 3)
    start_with_roles(manager, room)
    first_session = room.game.session_id
    room.game.clues[ids[0]] = 'x'
    ended, next_round = manager.prepare_next_round(room.id, 1, 3)
    assert (ended, next_round) == (False, 2)
    game = room.game
    assert game.session_id != first_session
    assert game.session_ids == [first_session, game.session_id]
    assert game.phase == Phase.ASSIGN_ROLES
    assert game.round == 2
    assert game.clues == {}
    assert all(p.role is None for p in room.players.values())
    assert db.session.get(GameSession, game.session_id).current_phase == 'ASSIGN_ROLES'


def test_prepare_next_round_reports_end(manager):
    room, _ = open_table(manager, 2)
    start_with_roles(manager, room)
    assert manager.prepare_next_round(room.id, 3, 3) == (True, None)


def test_end_game_clears_state(manager):
    room, _ = open_table(manager, 2)
    start_with_roles(manager, room)
    manager.end_game(room.id, 'FINISHED')
    assert room.game is None
    assert all(p.role is None for p in room.players.values())


def test_remove_last_player_destroys_room(manager):
    room, ids = open_table(manager, 2)
    assert manager.remove_player(room.id, ids[1]) is room
    assert manager.remove_player(room.id, ids[0]) is None
    assert manager.registry.get_room(room.id) is None


def test_departed_imposter_is_out_of_the_game(manager, rig_roles):
    rig_roles(2, 3)
    room, ids = open_table(manager, 4)
    start_with_roles(manager, room)
    manager.remove_player(room.id, ids[3])
    assert set(manager.active_roles(room.id)) == set(ids[:3])
    assert not manager.check_players_won(room.id)
    room.game.eliminated.add(ids[2])
    room.game.last_eliminated_id = ids[2]
    assert manager.check_players_won(room.id)
    assert manager.preview_round_scores(room.id) == {ids[0]: 3, ids[1]: 3, ids[2]: 0}


def test_eligible_guesser_must_be_connected_and_uneliminated(manager, rig_roles):
    rig_roles(2)
    room, ids = open_table(manager, 3)
    start_with_roles(manager, room)
    assert manager.has_eligible_guesser(room.id)
    room.players[ids[2]].connected = False
    assert not manager.has_eligible_guesser(room.id)
    room.players[ids[2]].connected = True
    room.game.eliminated.add(ids[2])
    assert not manager.has_eligible_guesser(room.id)
