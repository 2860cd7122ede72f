"""World-state key-value table

Revision ID: 001
Revises: None
Create Date: 2026-10-19
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # Versioned key-value store; composite index keys live beside the records
    op.create_table(
        "world_state",
        sa.Column("key", sa.LargeBinary(), primary_key=True),
        sa.Column("value", sa.LargeBinary(), nullable=False),
        sa.Column("version", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("tx_id", sa.Text(), nullable=False, server_default=""),
    )


def downgrade() -> None:
    op.drop_table("world_state")
