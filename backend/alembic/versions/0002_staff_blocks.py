"""staff time-off blocks

Revision ID: 0002
Revises: 0001
Create Date: 2025-01-15 00:00:00
"""

import sqlalchemy as sa
from alembic import op

revision = "0002"
down_revision = "0001"
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        "staff_blocks",
        sa.Column("id", sa.Integer, primary_key=True),
        sa.Column("staff_id", sa.Integer, sa.ForeignKey("staff.id", ondelete="CASCADE"), nullable=False),
        sa.Column("start_date", sa.Text, nullable=False),
        sa.Column("end_date", sa.Text, nullable=False),
        sa.Column("start_time", sa.Text, nullable=False),
        sa.Column("end_time", sa.Text, nullable=False),
        sa.Column("reason", sa.Text),
        sa.Column(
            "type",
            sa.Enum("VACATION", "SICK_LEAVE", "TRAINING", "OTHER", name="staff_block_type"),
            nullable=False,
            server_default=sa.text("'OTHER'"),
        ),
        sa.Column("is_active", sa.Integer, nullable=False, server_default=sa.text("1")),
        sa.Column("created_at", sa.Text, nullable=False, server_default=sa.text("CURRENT_TIMESTAMP")),
    )
    op.create_index("ix_staff_blocks_staff_dates", "staff_blocks", ["staff_id", "start_date", "end_date"])


def downgrade():
    op.drop_index("ix_staff_blocks_staff_dates", table_name="staff_blocks")
    op.drop_table("staff_blocks")
