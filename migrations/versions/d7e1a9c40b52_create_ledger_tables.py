"""create ledger tables

Revision ID: d7e1a9c40b52
Revises:
Create Date: 2026-10-16

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = 'd7e1a9c40b52'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        'accounts',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('color', sa.String(32), nullable=False),
        sa.Column('currency', sa.String(3), nullable=False),
        sa.Column('account_type', sa.String(16), nullable=False, server_default='normal'),
        sa.Column('balance', sa.Numeric(precision=20, scale=6), nullable=False, server_default='0'),
        sa.Column('stock_symbol', sa.String(16), nullable=True),
        sa.Column('invested_amount', sa.Numeric(precision=20, scale=6), nullable=True),
        sa.Column('share_count', sa.Numeric(precision=20, scale=6), nullable=True),
        sa.Column('sort_order', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.TIMESTAMP(timezone=True), server_default=sa.func.now(), nullable=False),
    )

    op.create_table(
        'pockets',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('account_id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('pocket_type', sa.String(16), nullable=False, server_default='normal'),
        sa.Column('currency', sa.String(3), nullable=False),
        sa.Column('balance', sa.Numeric(precision=20, scale=6), nullable=False, server_default='0'),
        sa.Column('sort_order', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index('ix_pockets_account_id', 'pockets', ['account_id'])

    op.create_table(
        'sub_pockets',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('pocket_id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('target_value', sa.Numeric(precision=20, scale=6), nullable=False),
        sa.Column('periodicity_months', sa.Integer(), nullable=False),
        sa.Column('balance', sa.Numeric(precision=20, scale=6), nullable=False, server_default='0'),
        sa.Column('enabled', sa.Boolean(), nullable=False, server_default='true'),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index('ix_sub_pockets_pocket_id', 'sub_pockets', ['pocket_id'])

    op.create_table(
        'movements',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('movement_type', sa.String(32), nullable=False),
        sa.Column('account_id', sa.Integer(), nullable=False),
        sa.Column('pocket_id', sa.Integer(), nullable=False),
        sa.Column('sub_pocket_id', sa.Integer(), nullable=True),
        sa.Column('amount', sa.Numeric(precision=20, scale=6), nullable=False),
        sa.Column('notes', sa.Text(), nullable=False, server_default=''),
        sa.Column('displayed_date', sa.Date(), nullable=False),
        sa.Column('is_pending', sa.Boolean(), nullable=False, server_default='false'),
        sa.Column('is_orphaned', sa.Boolean(), nullable=False, server_default='false'),
        sa.Column('orphan_reason', sa.String(16), nullable=True),
        sa.Column('orphaned_account_name', sa.String(255), nullable=True),
        sa.Column('orphaned_account_currency', sa.String(3), nullable=True),
        sa.Column('orphaned_pocket_name', sa.String(255), nullable=True),
        sa.Column('orphaned_sub_pocket_name', sa.String(255), nullable=True),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), nullable=False),
    )
    op.create_index('ix_movements_movement_type', 'movements', ['movement_type'])
    op.create_index('ix_movements_account_id', 'movements', ['account_id'])
    op.create_index('ix_movements_pocket_id', 'movements', ['pocket_id'])
    op.create_index('ix_movements_sub_pocket_id', 'movements', ['sub_pocket_id'])
    op.create_index('ix_movements_displayed_date', 'movements', ['displayed_date'])
    op.create_index('ix_movements_is_orphaned', 'movements', ['is_orphaned'])
    op.create_index('ix_movements_account_created', 'movements', ['account_id', 'created_at'])


def downgrade() -> None:
    op.drop_index('ix_movements_account_created', table_name='movements')
    op.drop_index('ix_movements_is_orphaned', table_name='movements')
    op.drop_index('ix_movements_displayed_date', table_name='movements')
    op.drop_index('ix_movements_sub_pocket_id', table_name='movements')
    op.drop_index('ix_movements_pocket_id', table_name='movements')
    op.drop_index('ix_movements_account_id', table_name='movements')
    op.drop_index('ix_movements_movement_type', table_name='movements')
    op.drop_table('movements')
    op.drop_index('ix_sub_pockets_pocket_id', table_name='sub_pockets')
    op.drop_table('sub_pockets')
    op.drop_index('ix_pockets_account_id', table_name='pockets')
    op.drop_table('pockets')
    op.drop_table('accounts')
