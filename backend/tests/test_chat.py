from datetime import datetime, timedelta, timezone

import pytest

from bingo.errors import ValidationError
from bingo.models import ChatMessage
from bingo.services import chat, players, rooms
from conftest import fresh


@pytest.fixture()
def room_and_player(flask_app):
    room = rooms.create_room('Chatty')
    player = players.join(room.id, 'Alice')
    return room.id, player.id


def test_append_trims_and_truncates(room_and_player):
    room_id, player_id = room_and_player
    msg = chat.append(room_id, player_id, 'Alice', '   hello there  ')
    assert msg.message == 'hello there'
    assert msg.player_name == 'Alice'

    long_msg = chat.append(room_id, player_id, 'Alice', 'y' * 600)
    assert len(long_msg.message) == chat.MAX_MESSAGE_LENGTH


@pytest.mark.parametrize('text', ['', '   \n\t', None])
def test_append_rejects_empty(room_and_player, text):
    room_id, player_id = room_and_player
    with pytest.raises(ValidationError):
        chat.append(room_id, player_id, 'Alice', text)


def test_history_is_oldest_first_and_limited(room_and_player):
    room_id, player_id = room_and_player
    for i in range(5):
        chat.append(room_id, player_id, 'Alice', f'message {i}')

    assert [m.message for m in chat.history(room_id)] == [f'message {i}' for i in range(5)]
    assert [m.message for m in chat.history(room_id, limit=2)] == ['message 3', 'message 4']


def test_history_is_scoped_to_room(room_and_player):
    room_id, player_id = room_and_player
    other = rooms.create_room('Elsewhere')
    chat.append(room_id, player_id, 'Alice', 'here')
    assert chat.history(other.id) == []


def test_created_at_is_serialized_as_utc(room_and_player):
    room_id, player_id = room_and_player
    msg = chat.append(room_id, player_id, 'Alice', 'tick')
    created = fresh(ChatMessage, msg.id).to_dict()['createdAt']
    assert created.endswith('Z')
    parsed = datetime.fromisoformat(created.replace('Z', '+00:00'))
    assert abs(datetime.now(timezone.utc) - parsed) < timedelta(minutes=1)
