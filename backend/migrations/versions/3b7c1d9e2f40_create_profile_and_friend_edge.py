"""create profile and friend_edge tables

Revision ID: 3b7c1d9e2f40
Revises:
Create Date: 2026-10-19 00:00:00
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '3b7c1d9e2f40'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    bind = op.get_bind()
    insp = sa.inspect(bind)
    existing_tables = set(insp.get_table_names())

    if 'profile' not in existing_tables:
        op.create_table(
            'profile',
            sa.Column('id', sa.String(length=64), nullable=False),
            sa.Column('experience', sa.BigInteger(), nullable=False, server_default='0'),
            sa.Column('total_kills', sa.BigInteger(), nullable=False, server_default='0'),
            sa.Column('max_kill_streak', sa.BigInteger(), nullable=False, server_default='0'),
            sa.Column('total_plays', sa.BigInteger(), nullable=False, server_default='0'),
            sa.PrimaryKeyConstraint('id'),
        )

    if 'friend_edge' not in existing_tables:
        op.create_table(
            'friend_edge',
            sa.Column('owner_id', sa.String(length=64), nullable=False),
            sa.Column('friend_id', sa.String(length=64), nullable=False),
            sa.Column('added_at', sa.DateTime(timezone=True), nullable=False),
            sa.ForeignKeyConstraint(['owner_id'], ['profile.id']),
            sa.PrimaryKeyConstraint('owner_id', 'friend_id'),
        )


def downgrade():
    op.drop_table('friend_edge')
    op.drop_table('profile')
