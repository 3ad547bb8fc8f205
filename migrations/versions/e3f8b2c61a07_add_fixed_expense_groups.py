"""add fixed expense groups and sub-pocket ordering

Revision ID: e3f8b2c61a07
Revises: d7e1a9c40b52
Create Date: 2026-10-16
"""
from alembic import op
import sqlalchemy as sa

revision = "e3f8b2c61a07"
down_revision = "d7e1a9c40b52"
branch_labels = None
depends_on = None


def upgrade() -> None:
    # -- Create fixed_expense_groups table --
    op.create_table(
        "fixed_expense_groups",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("color", sa.String(32), nullable=False),
        sa.Column("sort_order", sa.Integer(), server_default="0", nullable=False),
        sa.Column(
            "created_at",
            sa.TIMESTAMP(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id"),
    )

    # -- Add group_id and sort_order to sub_pockets --
    op.add_column("sub_pockets", sa.Column("group_id", sa.Integer(), nullable=True))
    op.add_column(
        "sub_pockets",
        sa.Column("sort_order", sa.Integer(), server_default="0", nullable=False),
    )
    op.create_index("ix_sub_pockets_group_id", "sub_pockets", ["group_id"])


def downgrade() -> None:
    op.drop_index("ix_sub_pockets_group_id", table_name="sub_pockets")
    op.drop_column("sub_pockets", "sort_order")
    op.drop_column("sub_pockets", "group_id")
    op.drop_table("fixed_expense_groups")
