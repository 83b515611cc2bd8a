"""create player and score_record

Revision ID: 3c7a91d2e4b0
Revises:
Create Date: 2025-03-24 10:12:00.000000

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '3c7a91d2e4b0'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    bind = op.get_bind()
    insp = sa.inspect(bind)
    existing_tables = set(insp.get_table_names())

    if 'player' not in existing_tables:
        op.create_table(
            'player',
            sa.Column('id', sa.Integer(), nullable=False),
            sa.Column('username', sa.String(length=64), nullable=False),
            sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
            sa.PrimaryKeyConstraint('id'),
        )
        op.create_index(op.f('ix_player_username'), 'player', ['username'], unique=True)

    if 'score_record' not in existing_tables:
        op.create_table(
            'score_record',
            sa.Column('id', sa.Integer(), nullable=False),
            sa.Column('player_id', sa.Integer(), nullable=False),
            sa.Column('current_score', sa.Integer(), nullable=False, server_default='0'),
            sa.Column('high_score', sa.Integer(), nullable=False, server_default='0'),
            sa.Column('last_updated', sa.DateTime(timezone=True), nullable=False),
            sa.Column('sync_status', sa.String(length=16), nullable=True),
            sa.ForeignKeyConstraint(['player_id'], ['player.id']),
            sa.PrimaryKeyConstraint('id'),
            sa.UniqueConstraint('player_id'),
        )


def downgrade():
    op.drop_table('score_record')
    op.drop_index(op.f('ix_player_username'), table_name='player')
    op.drop_table('player')
