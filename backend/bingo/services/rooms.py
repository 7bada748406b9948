"""Room registry: join codes, lifecycle status and the shared option pool."""

import random
import threading
from contextlib import contextmanager
from typing import Dict, List

from flask import current_app
from sqlalchemy.orm import selectinload

from bingo import db
from bingo.errors import InvalidState, NotFound, ValidationError
from bingo.models import Card, Player, Room, RoomStatus, utcnow
from bingo.services import generation

# I, O, 0 and 1 are left out so codes can be read aloud and typed back
JOIN_CODE_ALPHABET = 'ABCDEFGHJKLMNPQRSTUVWXYZ23456789'
JOIN_CODE_LENGTH = 5
MIN_POOL_SIZE = 24
MAX_TITLE_LENGTH = 255
MAX_OPTION_LENGTH = 255
PRE_POPULATE_MODES = ('off', 'placeholders', 'ai_gen')

# room id -> [lock, holders and waiters]; entries go away once nobody needs them
_room_locks: Dict[str, list] = {}
_room_locks_guard = threading.Lock()


@contextmanager
def room_lock(room_id: str):
    """Serialize pool edits, joins and card creation for one room in this process."""
    with _room_locks_guard:
        entry = _room_locks.get(room_id)
        if entry is None:
            entry = _room_locks[room_id] = [threading.Lock(), 0]
        entry[1] += 1
    try:
        with entry[0]:
            yield
    finally:
        with _room_locks_guard:
            entry[1] -= 1
            if not entry[1]:
                _room_locks.pop(room_id, None)


def placeholder_options(count: int = MIN_POOL_SIZE) -> List[str]:
    return [f'Option {i}' for i in range(1, count + 1)]


def _draw_join_code() -> str:
    return ''.join(random.choices(JOIN_CODE_ALPHABET, k=JOIN_CODE_LENGTH))


def generate_join_code() -> str:
    """Generate a join code no existing room is using."""
    while True:
        code = _draw_join_code()
        if not Room.query.filter_by(join_code=code).first():
            return code


def _normalize_mode(mode) -> str:
    # Older clients send a boolean "prePopulate" flag
    if mode is True:
        return 'placeholders'
    if mode is None or mode is False:
        return 'off'
    if mode not in PRE_POPULATE_MODES:
        raise ValidationError(f"prePopulateMode must be one of: {', '.join(PRE_POPULATE_MODES)}")
    return mode


def _clean_title(title) -> str:
    if not isinstance(title, str) or not title.strip():
        raise ValidationError('Title is required')
    title = title.strip()
    if len(title) > MAX_TITLE_LENGTH:
        raise ValidationError(f'Title must be at most {MAX_TITLE_LENGTH} characters')
    return title


def clean_option(text) -> str:
    if not isinstance(text, str) or not text.strip():
        raise ValidationError('Option text is required')
    text = text.strip()
    if len(text) > MAX_OPTION_LENGTH:
        raise ValidationError(f'Option must be at most {MAX_OPTION_LENGTH} characters')
    return text


def touch_activity(room: Room) -> None:
    room.last_activity = utcnow()


def create_room(title, pre_populate_mode='off') -> Room:
    title = _clean_title(title)
    mode = _normalize_mode(pre_populate_mode)

    # Generation happens before anything is persisted so a failure leaves no room behind
    if mode == 'ai_gen':
        pool = generation.generate_options(title, count=MIN_POOL_SIZE)
    elif mode == 'placeholders':
        pool = placeholder_options()
    else:
        pool = []

    room = Room(
        join_code=generate_join_code(),
        title=title,
        status=RoomStatus.LOBBY,
        is_open=True,
        options_pool=pool,
    )
    db.session.add(room)
    db.session.commit()
    current_app.logger.info(f"[room-create] room={room.id} code={room.join_code} mode={mode} pool={len(pool)}")
    return room


def _snapshot_query():
    return Room.query.options(
        selectinload(Room.players).selectinload(Player.card).selectinload(Card.spaces)
    )


def get_by_id(room_id) -> Room:
    room = _snapshot_query().filter_by(id=room_id).first() if room_id else None
    if not room:
        raise NotFound('Room not found')
    return room


def get_by_join_code(code) -> Room:
    code = code.strip().upper() if isinstance(code, str) else ''
    room = _snapshot_query().filter_by(join_code=code).first() if code else None
    if not room:
        raise NotFound('Room not found')
    return room


def ensure_exists(room_id) -> None:
    if not room_id or db.session.query(Room.id).filter_by(id=room_id).first() is None:
        raise NotFound('Room not found')


def load_for_update(room_id) -> Room:
    """Fetch the room bypassing any stale copy held by the session."""
    room = db.session.get(Room, room_id, populate_existing=True) if room_id else None
    if not room:
        raise NotFound('Room not found')
    return room


def close(room_id) -> Room:
    room = load_for_update(room_id)
    if room.is_open:
        room.is_open = False
        touch_activity(room)
        db.session.commit()
        current_app.logger.info(f"[room-close] room={room.id}")
    return room


def add_option(room_id, text) -> str:
    """Append an option to the pool and return the stored text."""
    option = clean_option(text)
    ensure_exists(room_id)
    with room_lock(room_id):
        room = load_for_update(room_id)
        if room.status != RoomStatus.LOBBY:
            raise InvalidState('Cannot add options after cards are created')
        room.options_pool = list(room.options_pool or []) + [option]
        touch_activity(room)
        db.session.commit()
    return option


def remove_option(room_id, text) -> str:
    """Drop every pool entry equal to the option and return the matched text."""
    option = clean_option(text)
    ensure_exists(room_id)
    with room_lock(room_id):
        room = load_for_update(room_id)
        if room.status != RoomStatus.LOBBY:
            raise InvalidState('Cannot remove options after cards are created')
        room.options_pool = [o for o in (room.options_pool or []) if o != option]
        touch_activity(room)
        db.session.commit()
    return option


def can_create_cards(room_id) -> bool:
    room = load_for_update(room_id)
    return len(room.options_pool or []) >= MIN_POOL_SIZE and room.status == RoomStatus.LOBBY
