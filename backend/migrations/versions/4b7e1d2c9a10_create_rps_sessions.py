"""create rps_sessions

Revision ID: 4b7e1d2c9a10
Revises:
Create Date: 2025-09-14 10:20:00.000000

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '4b7e1d2c9a10'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    bind = op.get_bind()
    insp = sa.inspect(bind)
    # The matchmaking service may have created the table already.
    if 'rps_sessions' in set(insp.get_table_names()):
        return

    op.create_table(
        'rps_sessions',
        sa.Column('session_id', sa.Integer(), primary_key=True),
        sa.Column('upstream_game_id', sa.String(length=64), nullable=False),
        sa.Column('chat_id', sa.String(length=64), nullable=False),
        sa.Column('initiator_id', sa.String(length=64), nullable=False),
        sa.Column('opponent_id', sa.String(length=64), nullable=True),
        sa.Column('claimant_id', sa.String(length=128), nullable=True),
        sa.Column('status', sa.String(length=32), nullable=False, server_default='pending_pickup'),
        sa.Column('game_state_json', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
    )
    op.create_index('ix_rps_sessions_upstream_game_id', 'rps_sessions', ['upstream_game_id'], unique=True)
    op.create_index('ix_rps_sessions_status', 'rps_sessions', ['status'], unique=False)


def downgrade():
    op.drop_index('ix_rps_sessions_status', table_name='rps_sessions')
    op.drop_index('ix_rps_sessions_upstream_game_id', table_name='rps_sessions')
    op.drop_table('rps_sessions')
