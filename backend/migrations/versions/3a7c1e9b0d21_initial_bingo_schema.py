"""initial bingo schema: rooms, players, cards, card spaces, chat messages

Revision ID: 3a7c1e9b0d21
Revises:
Create Date: 2026-10-19 00:00:00
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '3a7c1e9b0d21'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        'room',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('join_code', sa.String(length=5), nullable=False),
        sa.Column('title', sa.String(length=255), nullable=False),
        sa.Column('creator_id', sa.String(length=36), nullable=True),
        sa.Column('status', sa.String(length=16), nullable=False),
        sa.Column('is_open', sa.Boolean(), nullable=False),
        sa.Column('options_pool', sa.JSON(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('last_activity', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    with op.batch_alter_table('room') as batch_op:
        batch_op.create_index(batch_op.f('ix_room_join_code'), ['join_code'], unique=True)

    op.create_table(
        'player',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('room_id', sa.String(length=36), nullable=False),
        sa.Column('name', sa.String(length=50), nullable=False),
        sa.Column('session_token', sa.String(length=64), nullable=False),
        sa.Column('avatar_url', sa.String(length=2048), nullable=True),
        sa.Column('last_seen', sa.DateTime(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['room_id'], ['room.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    with op.batch_alter_table('player') as batch_op:
        batch_op.create_index(batch_op.f('ix_player_room_id'), ['room_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_player_session_token'), ['session_token'], unique=True)

    op.create_table(
        'card',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('player_id', sa.String(length=36), nullable=False),
        sa.Column('room_id', sa.String(length=36), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('won_at', sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(['player_id'], ['player.id']),
        sa.ForeignKeyConstraint(['room_id'], ['room.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('player_id'),
    )
    with op.batch_alter_table('card') as batch_op:
        batch_op.create_index(batch_op.f('ix_card_room_id'), ['room_id'], unique=False)

    op.create_table(
        'card_space',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('card_id', sa.String(length=36), nullable=False),
        sa.Column('position', sa.Integer(), nullable=False),
        sa.Column('option_text', sa.String(length=255), nullable=False),
        sa.Column('is_free_space', sa.Boolean(), nullable=False),
        sa.Column('is_marked', sa.Boolean(), nullable=False),
        sa.ForeignKeyConstraint(['card_id'], ['card.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('card_id', 'position', name='uq_card_space_position'),
    )
    with op.batch_alter_table('card_space') as batch_op:
        batch_op.create_index(batch_op.f('ix_card_space_card_id'), ['card_id'], unique=False)

    op.create_table(
        'chat_message',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('room_id', sa.String(length=36), nullable=False),
        sa.Column('player_id', sa.String(length=36), nullable=False),
        sa.Column('player_name', sa.String(length=50), nullable=False),
        sa.Column('message', sa.Text(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['room_id'], ['room.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    with op.batch_alter_table('chat_message') as batch_op:
        batch_op.create_index(batch_op.f('ix_chat_message_room_id'), ['room_id'], unique=False)


def downgrade():
    op.drop_table('chat_message')
    op.drop_table('card_space')
    op.drop_table('card')
    op.drop_table('player')
    op.drop_table('room')
