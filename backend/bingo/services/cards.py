"""Card engine: card generation, marking and win detection.

A card is a 5x5 grid stored as 25 spaces in row-major order
(``row = position // 5``, ``col = position % 5``). One randomly placed space
is the free space; it starts marked and can never be toggled.
"""

import random
from typing import List, NamedTuple, Sequence

from flask import current_app
from sqlalchemy.orm import joinedload, selectinload

from bingo import db
from bingo.errors import InvalidOperation, InvalidState, NotFound
from bingo.models import (
    FREE_SPACE_LABEL,
    GRID_SIZE,
    SPACES_PER_CARD,
    Card,
    CardSpace,
    Player,
    RoomStatus,
    utcnow,
)
from bingo.services.rooms import MIN_POOL_SIZE, ensure_exists, load_for_update, room_lock, touch_activity


def _winning_lines():
    rows = [tuple(r * GRID_SIZE + c for c in range(GRID_SIZE)) for r in range(GRID_SIZE)]
    cols = [tuple(r * GRID_SIZE + c for r in range(GRID_SIZE)) for c in range(GRID_SIZE)]
    diagonal = tuple(i * GRID_SIZE + i for i in range(GRID_SIZE))
    anti_diagonal = tuple(i * GRID_SIZE + (GRID_SIZE - 1 - i) for i in range(GRID_SIZE))
    return tuple(rows + cols + [diagonal, anti_diagonal])


# 5 rows, 5 columns and both diagonals, as tuples of positions
WINNING_LINES = _winning_lines()


class MarkResult(NamedTuple):
    space: CardSpace
    has_won: bool


def is_winning_grid(marks: Sequence[bool]) -> bool:
    """True if any row, column or diagonal of the 25 marks is fully set."""
    if len(marks) != SPACES_PER_CARD:
        raise ValueError(f'expected {SPACES_PER_CARD} marks, got {len(marks)}')
    return any(all(marks[p] for p in line) for line in WINNING_LINES)


def create_card_for_player(player_id, room_id, pool: Sequence[str], commit: bool = True) -> Card:
    """Deal one card from ``pool``: a random free space plus 24 shuffled options."""
    if len(pool) < MIN_POOL_SIZE:
        raise InvalidState(f'Need at least {MIN_POOL_SIZE} options to create cards')

    free_position = random.randrange(SPACES_PER_CARD)
    shuffled = list(pool)
    random.shuffle(shuffled)
    selected = iter(shuffled[:SPACES_PER_CARD - 1])

    card = Card(player_id=player_id, room_id=room_id)
    for position in range(SPACES_PER_CARD):
        if position == free_position:
            card.spaces.append(CardSpace(
                position=position, option_text=FREE_SPACE_LABEL, is_free_space=True, is_marked=True,
            ))
        else:
            card.spaces.append(CardSpace(
                position=position, option_text=next(selected), is_free_space=False, is_marked=False,
            ))
    db.session.add(card)
    if commit:
        db.session.commit()
    else:
        db.session.flush()
    return card


def create_cards_for_room(room_id) -> List[Card]:
    """Deal a card to every player in the room and move it from LOBBY to PLAYING."""
    ensure_exists(room_id)
    with room_lock(room_id):
        room = load_for_update(room_id)
        if room.status != RoomStatus.LOBBY:
            raise InvalidState('Cards have already been created')
        pool = list(room.options_pool or [])
        if len(pool) < MIN_POOL_SIZE:
            raise InvalidState(f'Need at least {MIN_POOL_SIZE} options to create cards')

        players = Player.query.filter_by(room_id=room.id).order_by(Player.created_at).all()
        created = [create_card_for_player(p.id, room.id, pool, commit=False) for p in players]
        room.status = RoomStatus.PLAYING
        touch_activity(room)
        db.session.commit()
    current_app.logger.info(f"[cards-created] room={room_id} cards={len(created)} pool={len(pool)}")
    return created


def _get_space(card_id, position) -> CardSpace:
    try:
        position = int(position)
    except (TypeError, ValueError):
        raise NotFound('Space not found')
    space = CardSpace.query.filter_by(card_id=card_id, position=position).first() if card_id else None
    if not space:
        raise NotFound('Space not found')
    return space


def get_card(card_id) -> Card:
    card = db.session.get(Card, card_id) if card_id else None
    if not card:
        raise NotFound('Card not found')
    return card


def mark_space(card_id, position) -> MarkResult:
    space = _get_space(card_id, position)
    if space.is_free_space:
        raise InvalidOperation('Cannot manually mark free space')
    space.is_marked = True
    db.session.commit()
    return MarkResult(space, check_win(card_id))


def unmark_space(card_id, position) -> CardSpace:
    space = _get_space(card_id, position)
    if space.is_free_space:
        raise InvalidOperation('Cannot unmark free space')
    space.is_marked = False
    db.session.commit()
    return space


def check_win(card_id) -> bool:
    spaces = CardSpace.query.filter_by(card_id=card_id).order_by(CardSpace.position).all()
    if len(spaces) != SPACES_PER_CARD:
        raise NotFound('Card not found')
    return is_winning_grid([s.is_marked or s.is_free_space for s in spaces])


def record_win(card_id) -> bool:
    """Stamp the card's first win. True only for the call that stamped it."""
    stamped = (
        Card.query.filter(Card.id == card_id, Card.won_at.is_(None))
        .update({Card.won_at: utcnow()}, synchronize_session='fetch')
    )
    db.session.commit()
    return stamped == 1


def list_cards_in_room(room_id) -> List[dict]:
    cards = (
        Card.query.options(selectinload(Card.spaces), joinedload(Card.player))
        .filter_by(room_id=room_id)
        .order_by(Card.created_at)
        .all()
    )
    return [
        {
            'id': card.id,
            'playerId': card.player_id,
            'playerName': card.player.name if card.player else 'Unknown',
            'spaces': [s.to_dict() for s in card.spaces],
        }
        for card in cards
    ]
