from flask import Blueprint, jsonify, current_app

rooms = Blueprint('rooms', __name__)


def _registry():
    return current_app.extensions['game_manager'].registry


def _room_state(room):
    """Public room payload; the secret word and roles never leave the server."""
    payload = room.to_public()
    payload['phase'] = room.game.phase.value if room.game else None
    payload['round'] = room.game.round if room.game else None
    payload['maxRounds'] = room.game.max_rounds if room.game else None
    return payload


@rooms.route('', methods=['GET'])
def list_rooms():
    return jsonify([_room_state(r) for r in _registry().list_rooms()])


@rooms.route('/<string:room_id>', methods=['GET'])
def get_room(room_id):
    room = _registry().get_room(room_id)
    if room is None:
        return jsonify({'error': 'Room not found'}), 404
    return jsonify(_room_state(room))
