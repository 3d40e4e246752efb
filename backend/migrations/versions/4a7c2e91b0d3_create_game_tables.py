"""create room, player, catalog, session, role, vote and score tables

Revision ID: 4a7c2e91b0d3
Revises:
Create Date: 2026-10-17 00:00:00

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '4a7c2e91b0d3'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        'room',
        sa.Column('id', sa.String(length=32), primary_key=True),
        sa.Column('name', sa.String(length=64), nullable=False),
        sa.Column('host_id', sa.String(length=32), nullable=False),
        sa.Column('status', sa.String(length=16), nullable=False, server_default='WAITING'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
    )
    op.create_table(
        'player',
        sa.Column('id', sa.String(length=32), primary_key=True),
        sa.Column('room_id', sa.String(length=32), sa.ForeignKey('room.id'), nullable=False),
        sa.Column('socket_id', sa.String(length=64), nullable=False),
        sa.Column('name', sa.String(length=64), nullable=False),
        sa.Column('is_connected', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('joined_at', sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index('ix_player_room_id', 'player', ['room_id'])
    op.create_table(
        'category',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('name', sa.String(length=64), nullable=False, unique=True),
    )
    op.create_table(
        'word',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('text', sa.String(length=64), nullable=False),
        sa.Column('category_id', sa.Integer(), sa.ForeignKey('category.id'), nullable=False),
    )
    op.create_table(
        'game_session',
        sa.Column('id', sa.String(length=32), primary_key=True),
        sa.Column('room_id', sa.String(length=32), sa.ForeignKey('room.id'), nullable=False),
        sa.Column('word_id', sa.Integer(), sa.ForeignKey('word.id'), nullable=False),
        sa.Column('current_phase', sa.String(length=16), nullable=False, server_default='LOBBY'),
        sa.Column('round', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('max_rounds', sa.Integer(), nullable=False, server_default='3'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index('ix_game_session_room_id', 'game_session', ['room_id'])
    op.create_table(
        'player_role',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('game_session_id', sa.String(length=32), sa.ForeignKey('game_session.id'), nullable=False),
        sa.Column('player_id', sa.String(length=32), nullable=False),
        sa.Column('role', sa.String(length=16), nullable=False),
        sa.Column('guessed_word', sa.String(length=64), nullable=True),
        sa.UniqueConstraint('game_session_id', 'player_id', name='uq_player_role_session_player'),
    )
    op.create_index('ix_player_role_game_session_id', 'player_role', ['game_session_id'])
    op.create_table(
        'vote',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('game_session_id', sa.String(length=32), sa.ForeignKey('game_session.id'), nullable=False),
        sa.Column('voter_id', sa.String(length=32), nullable=False),
        sa.Column('voted_for_id', sa.String(length=32), nullable=False),
        sa.UniqueConstraint('game_session_id', 'voter_id', name='uq_vote_session_voter'),
    )
    op.create_index('ix_vote_game_session_id', 'vote', ['game_session_id'])
    op.create_table(
        'score',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('game_session_id', sa.String(length=32), sa.ForeignKey('game_session.id'), nullable=False),
        sa.Column('player_id', sa.String(length=32), nullable=False),
        sa.Column('round_number', sa.Integer(), nullable=False),
        sa.Column('points', sa.Integer(), nullable=False, server_default='0'),
        sa.UniqueConstraint('game_session_id', 'player_id', 'round_number', name='uq_score_session_player_round'),
    )
    op.create_index('ix_score_game_session_id', 'score', ['game_session_id'])


def downgrade():
    op.drop_index('ix_score_game_session_id', table_name='score')
    op.drop_table('score')
    op.drop_index('ix_vote_game_session_id', table_name='vote')
    op.drop_table('vote')
    op.drop_index('ix_player_role_game_session_id', table_name='player_role')
    op.drop_table('player_role')
    op.drop_index('ix_game_session_room_id', table_name='game_session')
    op.drop_table('game_session')
    op.drop_table('word')
    op.drop_table('category')
    op.drop_index('ix_player_room_id', table_name='player')
    op.drop_table('player')
    op.drop_table('room')
