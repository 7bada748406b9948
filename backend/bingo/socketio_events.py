"""Realtime session gateway.

Binds Socket.IO connections to rooms, routes client actions to the room,
player, card and chat services and broadcasts the results to everyone in
the room. Every failure is reported to the originating connection only as a
private ``error`` event.
"""

import threading
from functools import wraps
from typing import Any, Dict, Set

from flask import current_app, request
from flask_socketio import emit, join_room, leave_room

from bingo import db, socketio
from bingo.errors import BingoError, InvalidState, ValidationError
from bingo.services import cards, chat, players, rooms


# Explicit connection registry: which room each socket is bound to, and the reverse
_sid_to_room: Dict[str, str] = {}
_room_members: Dict[str, Set[str]] = {}
_registry_lock = threading.Lock()


def _get_sid() -> str:
    return request.sid  # type: ignore[attr-defined]


def _bind(sid: str, room_id: str) -> None:
    """Subscribe ``sid`` to ``room_id``, leaving whatever room it was in before."""
    with _registry_lock:
        previous = _sid_to_room.get(sid)
        if previous and previous != room_id:
            _room_members.get(previous, set()).discard(sid)
            if not _room_members.get(previous):
                _room_members.pop(previous, None)
        _sid_to_room[sid] = room_id
        _room_members.setdefault(room_id, set()).add(sid)
    if previous and previous != room_id:
        leave_room(previous)
    join_room(room_id)


def _unbind(sid: str):
    with _registry_lock:
        room_id = _sid_to_room.pop(sid, None)
        if room_id:
            members = _room_members.get(room_id)
            if members is not None:
                members.discard(sid)
                if not members:
                    _room_members.pop(room_id, None)
    return room_id


def room_members(room_id: str) -> Set[str]:
    with _registry_lock:
        return set(_room_members.get(room_id, ()))


def _require(data: Dict[str, Any], field: str):
    value = data.get(field)
    if value is None or value == '':
        raise ValidationError(f'{field} is required')
    return value


def _guarded(handler):
    """Turn any failure inside ``handler`` into a private error event."""
    @wraps(handler)
    def wrapper(*args):
        data = args[0] if args else None
        payload = data if isinstance(data, dict) else {}
        try:
            return handler(payload)
        except BingoError as exc:
            db.session.rollback()
            current_app.logger.info(f"[ws-error] sid={_get_sid()} event={handler.__name__} error={exc.message}")
            emit('error', {'message': exc.message})
        except Exception:
            db.session.rollback()
            current_app.logger.exception(f"[ws-error] sid={_get_sid()} event={handler.__name__} unexpected failure")
            emit('error', {'message': 'Internal server error'})
    return wrapper


def handle_connect(auth=None):
    current_app.logger.info(f"[ws-connect] sid={_get_sid()}")


def handle_disconnect(reason=None):
    sid = _get_sid()
    room_id = _unbind(sid)
    current_app.logger.info(f"[ws-disconnect] sid={sid} room={room_id} reason={reason}")


@_guarded
def handle_join_room(data):
    room_id = _require(data, 'roomId')
    player = players.get_by_session_token(data.get('sessionToken'))
    if not player or player.room_id != room_id:
        emit('error', {'message': 'Invalid session'})
        return

    players.touch_last_seen(player.id)
    _bind(_get_sid(), room_id)

    emit('player-joined', {
        'playerId': player.id,
        'name': player.name,
        'avatarUrl': player.avatar_url,
    }, to=room_id, include_self=False)

    room = rooms.get_by_id(room_id)
    limit = int(current_app.config.get('CHAT_HISTORY_LIMIT', chat.DEFAULT_HISTORY_LIMIT))
    state = room.to_dict(include_players=True)
    state['chatHistory'] = [m.to_dict() for m in chat.history(room_id, limit=limit)]
    emit('game-state', state)
    current_app.logger.info(f"[ws-join] sid={_get_sid()} room={room_id} player={player.id}")


@_guarded
def handle_add_option(data):
    room_id = _require(data, 'roomId')
    option = rooms.add_option(room_id, data.get('option'))
    emit('option-added', {'option': option}, to=room_id)


@_guarded
def handle_remove_option(data):
    room_id = _require(data, 'roomId')
    option = rooms.remove_option(room_id, data.get('option'))
    emit('option-removed', {'option': option}, to=room_id)


@_guarded
def handle_create_cards(data):
    room_id = _require(data, 'roomId')
    cards.create_cards_for_room(room_id)
    room = rooms.get_by_id(room_id)
    emit('cards-created', {
        'players': [
            {
                'playerId': p.id,
                'name': p.name,
                'card': p.card.to_dict() if p.card else None,
            }
            for p in room.players
        ],
    }, to=room_id)


def _card_in_room(data):
    card = cards.get_card(_require(data, 'cardId'))
    room_id = _require(data, 'roomId')
    if card.room_id != room_id:
        raise InvalidState('Card does not belong to this room')
    return card, room_id


@_guarded
def handle_mark_space(data):
    card, room_id = _card_in_room(data)
    card_id, player_id = card.id, card.player_id
    result = cards.mark_space(card_id, data.get('position'))
    emit('space-marked', {
        'playerId': player_id,
        'cardId': card_id,
        'position': result.space.position,
        'optionText': result.space.option_text,
    }, to=room_id)

    if result.has_won and cards.record_win(card_id):
        winner = cards.get_card(card_id).player
        name = winner.name if winner else None
        current_app.logger.info(f"[player-won] room={room_id} player={player_id} name={name!r}")
        emit('player-won', {'playerId': player_id, 'name': name}, to=room_id)


@_guarded
def handle_unmark_space(data):
    card, room_id = _card_in_room(data)
    card_id, player_id = card.id, card.player_id
    space = cards.unmark_space(card_id, data.get('position'))
    emit('space-unmarked', {
        'playerId': player_id,
        'cardId': card_id,
        'position': space.position,
        'optionText': space.option_text,
    }, to=room_id)


@_guarded
def handle_close_room(data):
    room_id = _require(data, 'roomId')
    rooms.close(room_id)
    emit('room-closed', {'roomId': room_id}, to=room_id)


@_guarded
def handle_get_all_cards(data):
    room_id = _require(data, 'roomId')
    emit('all-cards', {'cards': cards.list_cards_in_room(room_id)})


@_guarded
def handle_send_chat_message(data):
    room_id = _require(data, 'roomId')
    player = players.get_by_session_token(data.get('sessionToken'))
    if not player or player.room_id != room_id:
        emit('error', {'message': 'Invalid session'})
        return

    message = chat.append(room_id, player.id, player.name, data.get('message')).to_dict()
    message.pop('roomId')
    emit('chat-message', message, to=room_id)


EVENT_HANDLERS = {
    'connect': handle_connect,
    'disconnect': handle_disconnect,
    'join-room': handle_join_room,
    'add-option': handle_add_option,
    'remove-option': handle_remove_option,
    'create-cards': handle_create_cards,
    'mark-space': handle_mark_space,
    'unmark-space': handle_unmark_space,
    'close-room': handle_close_room,
    'get-all-cards': handle_get_all_cards,
    'send-chat-message': handle_send_chat_message,
}


def register_socketio_handlers(namespace: str = '/') -> None:
    """Register the gateway's Socket.IO event handlers on ``namespace``."""
    for event, handler in EVENT_HANDLERS.items():
        socketio.on_event(event, handler, namespace=namespace)
