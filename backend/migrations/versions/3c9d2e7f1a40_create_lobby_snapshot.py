"""create lobby_snapshot table

Revision ID: 3c9d2e7f1a40
Revises:
Create Date: 2026-10-19 00:00:00
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '3c9d2e7f1a40'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    bind = op.get_bind()
    insp = sa.inspect(bind)
    if 'lobby_snapshot' in insp.get_table_names():
        return
    op.create_table(
        'lobby_snapshot',
        sa.Column('room_code', sa.String(length=16), nullable=False),
        sa.Column('payload', sa.Text(), nullable=False),
        sa.Column('saved_at', sa.Float(), nullable=False),
        sa.PrimaryKeyConstraint('room_code'),
    )


def downgrade():
    op.drop_table('lobby_snapshot')
