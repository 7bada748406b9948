from typing import List

from bingo import db
from bingo.errors import ValidationError
from bingo.models import ChatMessage

MAX_MESSAGE_LENGTH = 500
DEFAULT_HISTORY_LIMIT = 100


def append(room_id, player_id, player_name, text) -> ChatMessage:
    """Store a chat message, trimmed and cut to MAX_MESSAGE_LENGTH characters."""
    if not isinstance(text, str) or not text.strip():
        raise ValidationError('Message cannot be empty')
    message = ChatMessage(
        room_id=room_id,
        player_id=player_id,
        player_name=player_name,
        message=text.strip()[:MAX_MESSAGE_LENGTH],
    )
    db.session.add(message)
    db.session.commit()
    return message


def history(room_id, limit: int = DEFAULT_HISTORY_LIMIT) -> List[ChatMessage]:
    """The room's most recent ``limit`` messages, oldest first."""
    latest = (
        ChatMessage.query.filter_by(room_id=room_id)
        .order_by(ChatMessage.created_at.desc(), ChatMessage.id.desc())
        .limit(limit)
        .all()
    )
    return list(reversed(latest))
