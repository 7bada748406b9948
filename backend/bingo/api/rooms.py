from flask import Blueprint, jsonify, request
from bingo.services import cards as card_engine
from bingo.services import players as player_registry
from bingo.services import rooms as room_registry


rooms = Blueprint('rooms', __name__)


@rooms.route('', methods=['POST'])
def create_room():
    data = request.get_json(silent=True) or {}
    mode = data.get('prePopulateMode')
    if mode is None:
        mode = bool(data.get('prePopulate'))
    room = room_registry.create_room(data.get('title'), mode)
    return jsonify({
        'roomId': room.id,
        'joinCode': room.join_code,
        'title': room.title,
    }), 201


@rooms.route('/<string:join_code>/join', methods=['POST'])
def join_room(join_code):
    data = request.get_json(silent=True) or {}
    room = room_registry.get_by_join_code(join_code)
    player = player_registry.join(room.id, data.get('name'), data.get('avatarUrl'))
    # The only time the session token leaves the server
    return jsonify({
        'roomId': player.room_id,
        'playerId': player.id,
        'sessionToken': player.session_token,
    }), 201


@rooms.route('/by-code/<string:join_code>', methods=['GET'])
def get_room_by_code(join_code):
    room = room_registry.get_by_join_code(join_code)
    return jsonify({
        'id': room.id,
        'joinCode': room.join_code,
        'status': room.status,
        'isOpen': room.is_open,
    })


@rooms.route('/<string:room_id>', methods=['GET'])
def get_room(room_id):
    return jsonify(room_registry.get_by_id(room_id).to_dict(include_players=True))


@rooms.route('/<string:room_id>/close', methods=['POST'])
def close_room(room_id):
    return jsonify(room_registry.close(room_id).to_dict())


@rooms.route('/<string:room_id>/cards', methods=['GET'])
def get_all_cards(room_id):
    return jsonify(card_engine.list_cards_in_room(room_id))
