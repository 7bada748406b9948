from bingo import db
from flask_login import UserMixin
from datetime import datetime, timezone
import uuid

FREE_SPACE_LABEL = 'Free Space'
GRID_SIZE = 5
SPACES_PER_CARD = GRID_SIZE * GRID_SIZE


def _new_id():
    return str(uuid.uuid4())


def utcnow():
    return datetime.now(timezone.utc)


def _iso(value):
    """UTC ISO-8601 with millisecond precision and a trailing Z."""
    if value is None:
        return None
    # SQLite hands DateTime columns back naive; they were written as UTC
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat(timespec='milliseconds').replace('+00:00', 'Z')


class RoomStatus:
    LOBBY = 'LOBBY'
    PLAYING = 'PLAYING'
    FINISHED = 'FINISHED'


class Room(db.Model):
    __tablename__ = 'room'
    id = db.Column(db.String(36), primary_key=True, default=_new_id)
    join_code = db.Column(db.String(5), unique=True, nullable=False, index=True)
    title = db.Column(db.String(255), nullable=False, default='Untitled Room')
    # Set to the first player who joins; not a foreign key so the room row can exist first
    creator_id = db.Column(db.String(36), nullable=True)
    status = db.Column(db.String(16), nullable=False, default=RoomStatus.LOBBY)
    is_open = db.Column(db.Boolean, nullable=False, default=True)
    options_pool = db.Column(db.JSON, nullable=False, default=list)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    last_activity = db.Column(db.DateTime, nullable=False, default=utcnow)
    players = db.relationship(
        'Player', back_populates='room', order_by='Player.created_at',
        cascade='all, delete-orphan',
    )
    messages = db.relationship('ChatMessage', cascade='all, delete-orphan')

    def to_dict(self, include_players=False):
        data = {
            'id': self.id,
            'joinCode': self.join_code,
            'title': self.title,
            'creatorId': self.creator_id,
            'status': self.status,
            'isOpen': self.is_open,
            'optionsPool': list(self.options_pool or []),
            'createdAt': _iso(self.created_at),
            'lastActivity': _iso(self.last_activity),
        }
        if include_players:
            data['players'] = [p.to_dict() for p in self.players]
        return data


class Player(UserMixin, db.Model):
    __tablename__ = 'player'
    id = db.Column(db.String(36), primary_key=True, default=_new_id)
    room_id = db.Column(db.String(36), db.ForeignKey('room.id'), nullable=False, index=True)
    name = db.Column(db.String(50), nullable=False)
    session_token = db.Column(db.String(64), unique=True, nullable=False, index=True)
    avatar_url = db.Column(db.String(2048), nullable=True)
    last_seen = db.Column(db.DateTime, nullable=False, default=utcnow)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    room = db.relationship('Room', back_populates='players')
    card = db.relationship('Card', back_populates='player', uselist=False, cascade='all, delete-orphan')

    def to_dict(self, include_card=True):
        # The session token is deliberately absent: it is handed out once, at join
        data = {
            'id': self.id,
            'roomId': self.room_id,
            'name': self.name,
            'avatarUrl': self.avatar_url,
            'lastSeen': _iso(self.last_seen),
            'createdAt': _iso(self.created_at),
        }
        if include_card:
            data['card'] = self.card.to_dict() if self.card else None
        return data


class Card(db.Model):
    __tablename__ = 'card'
    id = db.Column(db.String(36), primary_key=True, default=_new_id)
    player_id = db.Column(db.String(36), db.ForeignKey('player.id'), unique=True, nullable=False)
    room_id = db.Column(db.String(36), db.ForeignKey('room.id'), nullable=False, index=True)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    # First time this card reached a winning line; player-won is announced once
    won_at = db.Column(db.DateTime, nullable=True)
    player = db.relationship('Player', back_populates='card')
    spaces = db.relationship(
        'CardSpace', back_populates='card', order_by='CardSpace.position',
        cascade='all, delete-orphan',
    )

    def to_dict(self):
        return {
            'id': self.id,
            'playerId': self.player_id,
            'roomId': self.room_id,
            'createdAt': _iso(self.created_at),
            'wonAt': _iso(self.won_at),
            'spaces': [s.to_dict() for s in self.spaces],
        }


class CardSpace(db.Model):
    __tablename__ = 'card_space'
    __table_args__ = (db.UniqueConstraint('card_id', 'position', name='uq_card_space_position'),)
    id = db.Column(db.String(36), primary_key=True, default=_new_id)
    card_id = db.Column(db.String(36), db.ForeignKey('card.id'), nullable=False, index=True)
    position = db.Column(db.Integer, nullable=False)
    option_text = db.Column(db.String(255), nullable=False)
    is_free_space = db.Column(db.Boolean, nullable=False, default=False)
    is_marked = db.Column(db.Boolean, nullable=False, default=False)
    card = db.relationship('Card', back_populates='spaces')

    @property
    def row(self):
        return self.position // GRID_SIZE

    @property
    def col(self):
        return self.position % GRID_SIZE

    def to_dict(self):
        return {
            'id': self.id,
            'cardId': self.card_id,
            'position': self.position,
            'optionText': self.option_text,
            'isFreeSpace': self.is_free_space,
            'isMarked': self.is_marked,
        }


class ChatMessage(db.Model):
    __tablename__ = 'chat_message'
    id = db.Column(db.Integer, primary_key=True)
    room_id = db.Column(db.String(36), db.ForeignKey('room.id'), nullable=False, index=True)
    player_id = db.Column(db.String(36), nullable=False)
    player_name = db.Column(db.String(50), nullable=False)
    message = db.Column(db.Text, nullable=False)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)

    def to_dict(self):
        return {
            'id': self.id,
            'roomId': self.room_id,
            'playerId': self.player_id,
            'playerName': self.player_name,
            'message': self.message,
            'createdAt': _iso(self.created_at),
        }
