"""Player registry.

A player's identity is the opaque session token issued at join: whoever
holds it acts as that player. Tokens are never rotated or hashed and are
looked up by exact match.
"""

import secrets
from urllib.parse import urlparse

from flask import current_app
from sqlalchemy.orm import joinedload, selectinload

from bingo import db
from bingo.errors import InvalidState, NotFound, ValidationError
from bingo.models import Card, Player, Room, RoomStatus, utcnow
from bingo.services import cards
from bingo.services.rooms import room_lock, touch_activity

MAX_NAME_LENGTH = 50
MAX_AVATAR_URL_LENGTH = 2048
SESSION_TOKEN_BYTES = 32


def generate_session_token() -> str:
    return secrets.token_hex(SESSION_TOKEN_BYTES)


def _clean_name(name) -> str:
    if not isinstance(name, str) or not name.strip():
        raise ValidationError('Name is required')
    name = name.strip()
    if len(name) > MAX_NAME_LENGTH:
        raise ValidationError(f'Name must be at most {MAX_NAME_LENGTH} characters')
    return name


def _clean_avatar_url(url):
    if url is None or url == '':
        return None
    if not isinstance(url, str) or len(url) > MAX_AVATAR_URL_LENGTH:
        raise ValidationError('avatarUrl must be a valid URL')
    parsed = urlparse(url.strip())
    if parsed.scheme not in ('http', 'https') or not parsed.netloc:
        raise ValidationError('avatarUrl must be a valid URL')
    return url.strip()


def join(room_id, name, avatar_url=None) -> Player:
    """Add a player to an open room; the returned player carries the fresh token.

    The first player in a room becomes its creator. Joining a room that is
    already PLAYING deals the newcomer a card from the current pool.
    """
    name = _clean_name(name)
    avatar_url = _clean_avatar_url(avatar_url)

    with room_lock(room_id):
        room = db.session.get(Room, room_id, populate_existing=True) if room_id else None
        if not room:
            raise InvalidState('Room not found')
        if not room.is_open:
            raise InvalidState('Room is closed')

        player = Player(
            room_id=room.id,
            name=name,
            session_token=generate_session_token(),
            avatar_url=avatar_url,
        )
        db.session.add(player)
        db.session.flush()

        if Player.query.filter_by(room_id=room.id).count() == 1:
            room.creator_id = player.id

        if room.status == RoomStatus.PLAYING:
            cards.create_card_for_player(player.id, room.id, list(room.options_pool or []), commit=False)

        touch_activity(room)
        db.session.commit()
    current_app.logger.info(f"[join] room={room_id} player={player.id} name={name!r}")
    return player


def get_by_session_token(token):
    """Resolve a token to its player (room, card and spaces loaded), or None."""
    if not isinstance(token, str) or not token:
        return None
    return (
        Player.query.options(
            joinedload(Player.room),
            selectinload(Player.card).selectinload(Card.spaces),
        )
        .filter_by(session_token=token)
        .first()
    )


def touch_last_seen(player_id) -> Player:
    player = db.session.get(Player, player_id) if player_id else None
    if not player:
        raise NotFound('Player not found')
    player.last_seen = utcnow()
    db.session.commit()
    return player
