"""create luckyjet_round backlog and luckyjet_round_log tables

Revision ID: 3a7c9e1f2b40
Revises:
Create Date: 2026-10-19 00:00:00.000000

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '3a7c9e1f2b40'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    bind = op.get_bind()
    insp = sa.inspect(bind)
    existing_tables = set(insp.get_table_names())

    # Servers bootstrapped with create_all already have the tables
    if 'luckyjet_round' not in existing_tables:
        op.create_table(
            'luckyjet_round',
            sa.Column('id', sa.Integer(), primary_key=True),
            sa.Column('round_id', sa.BigInteger(), nullable=False),
            sa.Column('crash_point', sa.Float(), nullable=False),
            sa.Column('is_running', sa.Boolean(), nullable=False, server_default=sa.false()),
            sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        )
        op.create_index('ix_luckyjet_round_round_id', 'luckyjet_round', ['round_id'])

    if 'luckyjet_round_log' not in existing_tables:
        op.create_table(
            'luckyjet_round_log',
            sa.Column('id', sa.Integer(), primary_key=True),
            sa.Column('round_id', sa.BigInteger(), nullable=False),
            sa.Column('crash_point', sa.Float(), nullable=False),
            sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        )


def downgrade():
    op.drop_table('luckyjet_round_log')
    op.drop_index('ix_luckyjet_round_round_id', table_name='luckyjet_round')
    op.drop_table('luckyjet_round')
