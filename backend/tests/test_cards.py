import random

import pytest

from bingo.errors import InvalidOperation, InvalidState, NotFound
from bingo.models import FREE_SPACE_LABEL, Card, CardSpace, Room, RoomStatus
from bingo.services import cards, players, rooms
from conftest import fresh


@pytest.fixture()
def playing_room(flask_app):
    room = rooms.create_room('Test', 'placeholders')
    p1 = players.join(room.id, 'P1')
    p2 = players.join(room.id, 'P2')
    cards.create_cards_for_room(room.id)
    return room.id, p1.id, p2.id


def _card_for(player_id):
    return Card.query.filter_by(player_id=player_id).one()


def _positions(card_id):
    spaces = CardSpace.query.filter_by(card_id=card_id).order_by(CardSpace.position).all()
    return spaces


def test_new_card_has_one_marked_free_space_and_24_distinct_options(flask_app):
    pool = [f'Thing {i}' for i in range(30)]
    room = rooms.create_room('Pool', 'off')
    player = players.join(room.id, 'Alice')
    card = cards.create_card_for_player(player.id, room.id, pool)

    spaces = _positions(card.id)
    assert [s.position for s in spaces] == list(range(25))
    free = [s for s in spaces if s.is_free_space]
    assert len(free) == 1
    assert free[0].is_marked
    assert free[0].option_text == FREE_SPACE_LABEL

    texts = [s.option_text for s in spaces if not s.is_free_space]
    assert len(texts) == 24
    assert len(set(texts)) == 24
    assert set(texts) <= set(pool)
    assert not any(s.is_marked for s in spaces if not s.is_free_space)


def test_free_space_uses_drawn_position(flask_app, monkeypatch):
    room = rooms.create_room('Pool', 'placeholders')
    pool = rooms.placeholder_options()
    monkeypatch.setattr(random, 'randrange', lambda n: 7)
    player = players.join(room.id, 'Alice')
    card = cards.create_card_for_player(player.id, room.id, pool)
    free = [s.position for s in _positions(card.id) if s.is_free_space]
    assert free == [7]


def test_card_needs_24_options(flask_app):
    room = rooms.create_room('Tiny', 'off')
    player = players.join(room.id, 'Alice')
    with pytest.raises(InvalidState):
        cards.create_card_for_player(player.id, room.id, ['a', 'b'])


def test_create_cards_flips_status_and_deals_one_card_each(playing_room):
    room_id, p1, p2 = playing_room
    assert fresh(Room, room_id).status == RoomStatus.PLAYING
    for pid in (p1, p2):
        card = _card_for(pid)
        spaces = _positions(card.id)
        assert len(spaces) == 25
        assert len({s.option_text for s in spaces}) == 25  # 24 options + free label


def test_create_cards_twice_is_rejected(playing_room):
    room_id, _, _ = playing_room
    with pytest.raises(InvalidState):
        cards.create_cards_for_room(room_id)
    assert Card.query.filter_by(room_id=room_id).count() == 2


def test_create_cards_requires_full_pool(flask_app):
    room = rooms.create_room('Short', 'off')
    players.join(room.id, 'Alice')
    for i in range(23):
        rooms.add_option(room.id, f'Event {i}')
    assert not rooms.can_create_cards(room.id)
    with pytest.raises(InvalidState):
        cards.create_cards_for_room(room.id)
    assert fresh(Room, room.id).status == RoomStatus.LOBBY

    rooms.add_option(room.id, 'Event 23')
    assert rooms.can_create_cards(room.id)
    cards.create_cards_for_room(room.id)
    assert fresh(Room, room.id).status == RoomStatus.PLAYING


def test_create_cards_missing_room(flask_app):
    with pytest.raises(NotFound):
        cards.create_cards_for_room('no-such-room')


def test_marking_row_zero_wins_only_on_last_mark(playing_room):
    _, p1, _ = playing_room
    card = _card_for(p1)
    card_id = card.id
    row_zero = [s for s in _positions(card_id) if s.position < 5 and not s.is_free_space]

    results = [cards.mark_space(card_id, s.position).has_won for s in row_zero]
    assert results[-1] is True
    assert not any(results[:-1])


def test_unrelated_mark_does_not_win(playing_room):
    _, p1, _ = playing_room
    card_id = _card_for(p1).id
    target = next(s for s in _positions(card_id) if not s.is_free_space)
    result = cards.mark_space(card_id, target.position)
    assert result.has_won is False
    assert result.space.is_marked


def test_mark_and_unmark_are_idempotent(playing_room):
    _, p1, _ = playing_room
    card_id = _card_for(p1).id
    target = next(s for s in _positions(card_id) if not s.is_free_space)
    pos = target.position

    space = cards.unmark_space(card_id, pos)
    assert space.is_marked is False
    cards.mark_space(card_id, pos)
    again = cards.mark_space(card_id, pos)
    assert again.space.is_marked is True
    assert cards.unmark_space(card_id, pos).is_marked is False
    assert cards.unmark_space(card_id, pos).is_marked is False


def test_free_space_cannot_be_toggled(playing_room):
    _, p1, _ = playing_room
    card_id = _card_for(p1).id
    free = next(s for s in _positions(card_id) if s.is_free_space)
    with pytest.raises(InvalidOperation):
        cards.mark_space(card_id, free.position)
    with pytest.raises(InvalidOperation):
        cards.unmark_space(card_id, free.position)
    assert fresh(CardSpace, free.id).is_marked is True


@pytest.mark.parametrize('position', [-1, 25, 'abc', None])
def test_missing_space_is_not_found(playing_room, position):
    _, p1, _ = playing_room
    card_id = _card_for(p1).id
    with pytest.raises(NotFound):
        cards.mark_space(card_id, position)


def test_unknown_card_is_not_found(flask_app):
    with pytest.raises(NotFound):
        cards.mark_space('missing-card', 0)


def _grid(*positions):
    marks = [False] * 25
    for p in positions:
        marks[p] = True
    return marks


@pytest.mark.parametrize('line', [
    (0, 1, 2, 3, 4),
    (20, 21, 22, 23, 24),
    (2, 7, 12, 17, 22),
    (0, 6, 12, 18, 24),
    (4, 8, 12, 16, 20),
])
def test_is_winning_grid_lines(line):
    assert cards.is_winning_grid(_grid(*line))
    assert not cards.is_winning_grid(_grid(*line[:-1]))


def test_is_winning_grid_rejects_scattered_marks():
    assert not cards.is_winning_grid(_grid(0, 1, 2, 3, 9, 5, 10, 15, 6, 18))
    assert not cards.is_winning_grid(_grid())


def test_free_space_counts_toward_lines(playing_room, monkeypatch):
    room_id, _, _ = playing_room
    monkeypatch.setattr(random, 'randrange', lambda n: 12)
    late = players.join(room_id, 'Late')
    card_id = _card_for(late.id).id
    results = [cards.mark_space(card_id, p).has_won for p in (0, 6, 18, 24)]
    assert results == [False, False, False, True]


def test_record_win_only_once(playing_room):
    _, p1, _ = playing_room
    card_id = _card_for(p1).id
    assert cards.record_win(card_id) is True
    assert cards.record_win(card_id) is False
    assert fresh(Card, card_id).won_at is not None


def test_late_joiner_gets_own_card(playing_room):
    room_id, p1, _ = playing_room
    p3 = players.join(room_id, 'P3')
    card = _card_for(p3.id)
    spaces = _positions(card.id)
    assert len(spaces) == 25
    assert sum(1 for s in spaces if s.is_free_space) == 1
    assert set(s.option_text for s in spaces if not s.is_free_space) <= set(rooms.placeholder_options())
    p1_layout = [s.option_text for s in _positions(_card_for(p1).id)]
    assert [s.option_text for s in spaces] != p1_layout


def test_list_cards_in_room(playing_room):
    room_id, p1, p2 = playing_room
    listed = cards.list_cards_in_room(room_id)
    assert {c['playerId'] for c in listed} == {p1, p2}
    assert {c['playerName'] for c in listed} == {'P1', 'P2'}
    for c in listed:
        assert [s['position'] for s in c['spaces']] == list(range(25))
