from flask_socketio import join_room, leave_room, emit
from flask import current_app, request
from functools import wraps
from typing import Dict, Any

from imposter import socketio, db
from imposter.services.game import scoring
from imposter.services.game.errors import GameError, IllegalTransition, InvalidRequest, NotFound, Unauthorized
from imposter.services.game.scheduler import schedule_phase_advance
from imposter.services.game.state import Phase, Role


# Socket id -> {'room_id', 'player_id'} for the player bound to that connection
_sid_to_ctx: Dict[str, Dict[str, Any]] = {}


def _get_sid() -> str:
    # request.sid exists in Socket.IO context
    return request.sid  # type: ignore


def _manager():
    return current_app.extensions['game_manager']


def _recovery():
    return current_app.extensions['recovery_policy']


def _registry():
    return _manager().registry


def game_event(handler):
    """Turn rejected requests into a private ``error`` event.

    GameError messages go back to the sender as-is; anything else is logged
    and reported generically so a bad event never takes the server down.
    """
    @wraps(handler)
    def wrapper(data=None):
        try:
            return handler(data if isinstance(data, dict) else {})
        except GameError as exc:
            current_app.logger.warning(f"[rejected] event={handler.__name__} sid={_get_sid()} reason={exc.message}")
            emit('error', {'message': exc.message})
        except Exception:
            db.session.rollback()
            current_app.logger.exception(f"[handler-error] event={handler.__name__} sid={_get_sid()}")
            emit('error', {'message': 'Internal server error'})
    return wrapper


def _require(data: Dict[str, Any], key: str) -> str:
    value = data.get(key)
    if not isinstance(value, str) or not value.strip():
        raise InvalidRequest(f'{key} is required')
    return value.strip()


def _current_player_id(room_id: str) -> str:
    ctx = _sid_to_ctx.get(_get_sid())
    if not ctx or ctx.get('room_id') != room_id:
        raise NotFound('Player not found in room')
    if _registry().get_player(room_id, ctx['player_id']) is None:
        raise NotFound('Player not found in room')
    return ctx['player_id']


def _ensure_unbound() -> None:
    ctx = _sid_to_ctx.get(_get_sid())
    if ctx and _registry().get_player(ctx['room_id'], ctx['player_id']) is not None:
        raise InvalidRequest('Already in a room; leave it first')


def _bind(room_id: str, player_id: str) -> None:
    _sid_to_ctx[_get_sid()] = {'room_id': room_id, 'player_id': player_id}
    join_room(room_id)


# ---- outbound helpers ----

def _broadcast_phase(room_id: str, phase: Phase) -> None:
    socketio.emit('phase_changed', {'roomId': room_id, 'phase': phase.value}, to=room_id)


def _broadcast_players(room_id: str) -> None:
    room = _registry().get_room(room_id)
    if room is None:
        return
    socketio.emit('player_list_updated', {
        'roomId': room_id,
        'players': [p.to_public() for p in room.players.values()],
    }, to=room_id)


def _role_payload(role: Role, word: str) -> Dict[str, Any]:
    # Only PLAYER recipients may ever see the word
    payload: Dict[str, Any] = {'role': role.value}
    if role == Role.PLAYER:
        payload['word'] = word
    return payload


def _emit_roles(room_id: str) -> None:
    room = _registry().get_room(room_id)
    if room is None or room.game is None:
        return
    for player in room.players.values():
        if player.role is None or not player.connected:
            continue
        socketio.emit('role_assigned', _role_payload(player.role, room.game.word), to=player.socket_id)


def _score_rows(room_id: str, deltas: Dict[str, int]) -> list:
    room = _registry().get_room(room_id)
    players = room.players if room else {}
    return [
        {
            'playerId': pid,
            'playerName': players[pid].name if pid in players else 'Unknown',
            'points': points,
        }
        for pid, points in deltas.items()
    ]


# ---- game flow (callers hold the room lock) ----

def _end_game(room_id: str, status: str) -> None:
    _manager().end_game(room_id, status)
    recovery = _recovery()
    recovery.purge_disconnected(room_id)
    if _registry().get_room(room_id) is None:
        return
    new_host, changed = recovery.reassign_host_if_needed(room_id)
    if changed:
        socketio.emit('host_changed', {'roomId': room_id, 'newHostId': new_host}, to=room_id)
    _broadcast_players(room_id)


def _finish_game(room_id: str, winner: str) -> None:
    scores = _manager().total_game_scores(room_id)
    socketio.emit('game_over', {'roomId': room_id, 'winner': winner, 'scores': scores}, to=room_id)
    current_app.logger.info(f"[game-over] room={room_id} winner={winner}")
    _end_game(room_id, 'FINISHED')


def _abort_if_insufficient(room_id: str) -> bool:
    """Abort a running game that dropped below the connected minimum."""
    room = _registry().get_room(room_id)
    if room is None or room.game is None:
        return False
    has_enough, current, required = _recovery().check_sufficient_players(room_id)
    if has_enough:
        return False
    current_app.logger.info(f"[abort] room={room_id} connected={current} required={required}")
    socketio.emit('game_aborted', {
        'roomId': room_id,
        'reason': f'Not enough players. {current} connected, {required} required.',
    }, to=room_id)
    _end_game(room_id, 'WAITING')
    return True


def _schedule_clue_phase(room_id: str) -> None:
    game = _manager().require_game(room_id)
    app = current_app._get_current_object()
    schedule_phase_advance(
        app, room_id, Phase.ASSIGN_ROLES, game.session_id,
        app.config.get('ROLE_REVEAL_DELAY_SEC', 2), _advance_to_clue_phase,
    )


def _advance_to_clue_phase(room_id: str) -> None:
    if _abort_if_insufficient(room_id):
        return
    manager = _manager()
    game = manager.require_game(room_id, Phase.ASSIGN_ROLES)
    if not manager.verify_all_roles_assigned(game.session_id, room_id):
        current_app.logger.warning(f"[roles-incomplete] room={room_id} session={game.session_id}")
        socketio.emit('game_aborted', {'roomId': room_id, 'reason': 'Role assignment incomplete'}, to=room_id)
        _end_game(room_id, 'WAITING')
        return
    manager.transition_phase(room_id, Phase.CLUE_PHASE)
    _broadcast_phase(room_id, Phase.CLUE_PHASE)


def _deal_roles(room_id: str) -> None:
    _manager().assign_roles(room_id)
    _broadcast_phase(room_id, Phase.ASSIGN_ROLES)
    _emit_roles(room_id)
    _schedule_clue_phase(room_id)


def _begin_next_round(room_id: str) -> None:
    if _abort_if_insufficient(room_id):
        return
    _deal_roles(room_id)


def _maybe_start_voting(room_id: str) -> None:
    manager = _manager()
    if not manager.clues_complete(room_id):
        return
    manager.transition_phase(room_id, Phase.VOTING_PHASE)
    _broadcast_phase(room_id, Phase.VOTING_PHASE)
    socketio.emit('voting_started', {
        'roomId': room_id,
        'players': [p.to_public() for p in _registry().connected_players(room_id)],
    }, to=room_id)


def _maybe_finish_voting(room_id: str) -> None:
    manager = _manager()
    if not manager.voting_complete(room_id):
        return
    eliminated = manager.resolve_votes(room_id)
    player = _registry().get_player(room_id, eliminated) if eliminated else None
    socketio.emit('vote_results', {
        'roomId': room_id,
        'eliminated': (player.name if player else 'Unknown') if eliminated else None,
        'eliminatedId': eliminated,
        'reason': 'Voted out' if eliminated else 'No one was eliminated',
    }, to=room_id)

    if eliminated and manager.check_players_won(room_id):
        manager.score_round(room_id, eliminated, False)
        _finish_game(room_id, 'Players')
        return

    if _abort_if_insufficient(room_id):
        return

    manager.transition_phase(room_id, Phase.REVEAL_PHASE)
    _broadcast_phase(room_id, Phase.REVEAL_PHASE)
    socketio.emit('round_results', {
        'roomId': room_id,
        'scores': _score_rows(room_id, manager.preview_round_scores(room_id)),
    }, to=room_id)

    if not manager.has_eligible_guesser(room_id):
        _close_round(room_id)
        return

    app = current_app._get_current_object()
    reveal_sec = app.config.get('REVEAL_DURATION_SEC', 0)
    if reveal_sec and reveal_sec > 0:
        game = manager.require_game(room_id)
        schedule_phase_advance(app, room_id, Phase.REVEAL_PHASE, game.session_id, reveal_sec, _close_round)


def _close_round(room_id: str) -> None:
    """Score a round that ended without a correct guess and move on."""
    manager = _manager()
    game = manager.require_game(room_id)
    finished_round = game.round
    manager.score_round(room_id, game.last_eliminated_id, False)
    manager.transition_phase(room_id, Phase.SCORE_PHASE)
    _broadcast_phase(room_id, Phase.SCORE_PHASE)

    ended, next_round = manager.prepare_next_round(room_id, game.round, game.max_rounds)
    if ended:
        scores = manager.total_game_scores(room_id)
        winner = scoring.final_winner(scores)
        socketio.emit('game_over', {'roomId': room_id, 'winner': winner, 'scores': scores}, to=room_id)
        current_app.logger.info(f"[game-over] room={room_id} winner={winner} rounds={finished_round}")
        _end_game(room_id, 'FINISHED')
        return

    socketio.emit('round_complete', {
        'roomId': room_id,
        'round': finished_round,
        'nextRound': next_round,
    }, to=room_id)
    app = current_app._get_current_object()
    schedule_phase_advance(
        app, room_id, Phase.ASSIGN_ROLES, game.session_id,
        app.config.get('NEXT_ROUND_DELAY_SEC', 3), _begin_next_round,
    )


def _after_departure(room_id: str) -> None:
    """Host failover and game checks after a leave or disconnect."""
    room = _registry().get_room(room_id)
    if room is None:
        return
    new_host, changed = _recovery().reassign_host_if_needed(room_id)
    if changed:
        socketio.emit('host_changed', {'roomId': room_id, 'newHostId': new_host}, to=room_id)

    if room.game is None:
        _broadcast_players(room_id)
        return
    if _abort_if_insufficient(room_id):
        return
    _broadcast_players(room_id)
    # Departed players are no longer waited on
    if room.game.phase == Phase.CLUE_PHASE:
        _maybe_start_voting(room_id)
    elif room.game.phase == Phase.VOTING_PHASE:
        _maybe_finish_voting(room_id)
    elif room.game.phase == Phase.REVEAL_PHASE and not _manager().has_eligible_guesser(room_id):
        _close_round(room_id)


# ---- inbound events ----

def handle_connect():
    emit('connected', {'sid': _get_sid()})


@game_event
def handle_create_room(data):
    name = _require(data, 'name')
    player_name = _require(data, 'playerName')
    _ensure_unbound()
    room, host = _manager().open_room(name, player_name, _get_sid())
    _bind(room.id, host.id)
    socketio.emit('room_created', {'roomId': room.id, 'room': room.to_public()}, to=room.id)


@game_event
def handle_join_room(data):
    room_id = _require(data, 'roomId')
    player_name = _require(data, 'playerName')
    _ensure_unbound()
    with _registry().lock(room_id):
        room = _registry().require_room(room_id)
        if room.game is not None:
            raise IllegalTransition('Game already in progress')
        player = _manager().add_player(room_id, player_name, _get_sid())
        _bind(room_id, player.id)
        _broadcast_players(room_id)
        socketio.emit('room_joined', {'roomId': room_id, 'room': room.to_public()}, to=room_id)


@game_event
def handle_rejoin_room(data):
    room_id = _require(data, 'roomId')
    player_id = _require(data, 'playerId')
    _ensure_unbound()
    with _registry().lock(room_id):
        room = _registry().require_room(room_id)
        player = room.players.get(player_id)
        if player is None:
            raise NotFound('Player not found in room')
        old_sid = player.socket_id
        _recovery().handle_reconnect(room_id, player_id, _get_sid())
        if old_sid != _get_sid():
            _sid_to_ctx.pop(old_sid, None)
        _bind(room_id, player_id)

        new_host, changed = _recovery().reassign_host_if_needed(room_id)
        if changed:
            socketio.emit('host_changed', {'roomId': room_id, 'newHostId': new_host}, to=room_id)
        _broadcast_players(room_id)
        socketio.emit('room_joined', {'roomId': room_id, 'room': room.to_public()}, to=room_id)

        if room.game is not None:
            if player.role is not None:
                emit('role_assigned', _role_payload(player.role, room.game.word))
            emit('phase_changed', {'roomId': room_id, 'phase': room.game.phase.value})


@game_event
def handle_start_game(data):
    room_id = _require(data, 'roomId')
    with _registry().lock(room_id):
        player_id = _current_player_id(room_id)
        room = _registry().require_room(room_id)
        if room.host_id != player_id:
            raise Unauthorized('Only the host can start the game')
        manager = _manager()
        manager.start_game(room_id)
        try:
            manager.assign_roles(room_id)
            manager.transition_phase(room_id, Phase.ASSIGN_ROLES)
        except Exception:
            manager.end_game(room_id, 'WAITING')
            raise
        _broadcast_phase(room_id, Phase.ASSIGN_ROLES)
        _emit_roles(room_id)
        _schedule_clue_phase(room_id)


@game_event
def handle_submit_clue(data):
    room_id = _require(data, 'roomId')
    clue = _require(data, 'clue')
    with _registry().lock(room_id):
        player_id = _current_player_id(room_id)
        if _abort_if_insufficient(room_id):
            return
        player = _manager().submit_clue(room_id, player_id, clue)
        socketio.emit('clue_submitted', {
            'roomId': room_id,
            'playerName': player.name,
            'clue': clue,
        }, to=room_id)
        _maybe_start_voting(room_id)


@game_event
def handle_submit_vote(data):
    room_id = _require(data, 'roomId')
    voted_for = _require(data, 'votedForPlayerId')
    with _registry().lock(room_id):
        player_id = _current_player_id(room_id)
        if _abort_if_insufficient(room_id):
            return
        _manager().submit_vote(room_id, player_id, voted_for)
        _maybe_finish_voting(room_id)


@game_event
def handle_guess_word(data):
    room_id = _require(data, 'roomId')
    word = _require(data, 'word')
    with _registry().lock(room_id):
        player_id = _current_player_id(room_id)
        if _abort_if_insufficient(room_id):
            return
        manager = _manager()
        if manager.submit_guess(room_id, player_id, word):
            manager.score_round(room_id, None, True)
            _finish_game(room_id, 'Imposter')
            return
        _close_round(room_id)


@game_event
def handle_leave_room(data):
    room_id = _require(data, 'roomId')
    with _registry().lock(room_id):
        player_id = _current_player_id(room_id)
        _manager().remove_player(room_id, player_id)
        _sid_to_ctx.pop(_get_sid(), None)
        leave_room(room_id)
        _after_departure(room_id)


def handle_disconnect(*args):
    ctx = _sid_to_ctx.pop(_get_sid(), None)
    if not ctx:
        return
    room_id, player_id = ctx['room_id'], ctx['player_id']
    room = _registry().get_room(room_id)
    if room is None:
        return
    try:
        with room.lock:
            player = room.players.get(player_id)
            # A newer connection already took this player over
            if player is None or player.socket_id != _get_sid():
                return
            _recovery().handle_disconnect(room_id, player_id)
            if room.game is None:
                _recovery().purge_disconnected(room_id)
            _after_departure(room_id)
    except Exception:
        db.session.rollback()
        current_app.logger.exception(f"[disconnect-error] room={room_id} player={player_id}")


def register_socketio_handlers() -> None:
    """Register Socket.IO event handlers on the default namespace."""
    socketio.on_event('connect', handle_connect)
    socketio.on_event('disconnect', handle_disconnect)
    socketio.on_event('create_room', handle_create_room)
    socketio.on_event('join_room', handle_join_room)
    socketio.on_event('rejoin_room', handle_rejoin_room)
    socketio.on_event('start_game', handle_start_game)
    socketio.on_event('submit_clue', handle_submit_clue)
    socketio.on_event('submit_vote', handle_submit_vote)
    socketio.on_event('guess_word', handle_guess_word)
    socketio.on_event('leave_room', handle_leave_room)
