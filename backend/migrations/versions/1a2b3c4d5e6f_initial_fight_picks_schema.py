"""initial fight picks schema: game, fight, player, pick

Revision ID: 1a2b3c4d5e6f
Revises:
Create Date: 2026-10-16 00:00:00.000000

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '1a2b3c4d5e6f'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        'game',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('game_code', sa.String(length=8), nullable=False),
        sa.Column('name', sa.String(length=128), nullable=False),
        sa.Column('host_name', sa.String(length=64), nullable=False),
        sa.Column('status', sa.String(length=16), nullable=False),
        sa.Column('started_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    with op.batch_alter_table('game') as batch_op:
        batch_op.create_index(batch_op.f('ix_game_game_code'), ['game_code'], unique=True)

    op.create_table(
        'fight',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('game_id', sa.Integer(), nullable=False),
        sa.Column('fighter_a', sa.String(length=128), nullable=False),
        sa.Column('fighter_b', sa.String(length=128), nullable=False),
        sa.Column('country_a', sa.String(length=8), nullable=True),
        sa.Column('country_b', sa.String(length=8), nullable=True),
        sa.Column('order_index', sa.Integer(), nullable=False),
        sa.Column('result_winner', sa.String(length=1), nullable=True),
        sa.Column('result_method', sa.String(length=8), nullable=True),
        sa.Column('result_round', sa.Integer(), nullable=True),
        sa.Column('result_version', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('decided_at', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['game_id'], ['game.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('game_id', 'order_index', name='uq_fight_game_order'),
    )
    with op.batch_alter_table('fight') as batch_op:
        batch_op.create_index(batch_op.f('ix_fight_game_id'), ['game_id'], unique=False)

    op.create_table(
        'player',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('game_id', sa.Integer(), nullable=False),
        sa.Column('display_name', sa.String(length=64), nullable=False),
        sa.Column('is_ready', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('total_points', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('photo_ref', sa.String(length=512), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['game_id'], ['game.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    with op.batch_alter_table('player') as batch_op:
        batch_op.create_index(batch_op.f('ix_player_game_id'), ['game_id'], unique=False)

    op.create_table(
        'pick',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('player_id', sa.Integer(), nullable=False),
        sa.Column('fight_id', sa.Integer(), nullable=False),
        sa.Column('pick_winner', sa.String(length=1), nullable=True),
        sa.Column('pick_method', sa.String(length=8), nullable=True),
        sa.Column('pick_round', sa.Integer(), nullable=True),
        sa.Column('points_awarded', sa.Integer(), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['fight_id'], ['fight.id']),
        sa.ForeignKeyConstraint(['player_id'], ['player.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('player_id', 'fight_id', name='uq_pick_player_fight'),
    )
    with op.batch_alter_table('pick') as batch_op:
        batch_op.create_index(batch_op.f('ix_pick_fight_id'), ['fight_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_pick_player_id'), ['player_id'], unique=False)


def downgrade():
    with op.batch_alter_table('pick') as batch_op:
        batch_op.drop_index(batch_op.f('ix_pick_player_id'))
        batch_op.drop_index(batch_op.f('ix_pick_fight_id'))
    op.drop_table('pick')
    with op.batch_alter_table('player') as batch_op:
        batch_op.drop_index(batch_op.f('ix_player_game_id'))
    op.drop_table('player')
    with op.batch_alter_table('fight') as batch_op:
        batch_op.drop_index(batch_op.f('ix_fight_game_id'))
    op.drop_table('fight')
    with op.batch_alter_table('game') as batch_op:
        batch_op.drop_index(batch_op.f('ix_game_game_code'))
    op.drop_table('game')
