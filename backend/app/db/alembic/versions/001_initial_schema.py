"""Initial schema

Revision ID: 001
Revises:
Create Date: 2026-10-17

Creates the itinerary and travel_node tables.
"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    """Create all tables."""
    # itinerary table
    op.create_table(
        "itinerary",
        sa.Column("id", sa.String(64), primary_key=True),
        sa.Column("trip_id", sa.String(64), nullable=False, unique=True),
        sa.Column("destination", sa.Text(), nullable=False),
        sa.Column("total_days", sa.Integer(), nullable=False),
        sa.Column("start_date", sa.Date(), nullable=True),
        sa.Column("user_preferences", sa.JSON(), nullable=False),
        sa.Column(
            "last_updated",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.Column("version", sa.Integer(), nullable=False, server_default="0"),
    )

    # travel_node table
    op.create_table(
        "travel_node",
        sa.Column("id", sa.String(64), primary_key=True),
        sa.Column("itinerary_id", sa.String(64), nullable=False),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("type", sa.String(16), nullable=False),
        sa.Column("address", sa.Text(), nullable=False, server_default=""),
        sa.Column("description", sa.Text(), nullable=False, server_default=""),
        sa.Column("activity", sa.Text(), nullable=False, server_default=""),
        sa.Column("time_slot", sa.String(16), nullable=False, server_default=""),
        sa.Column("estimated_duration", sa.Integer(), nullable=False),
        sa.Column("scheduled_time", sa.String(8), nullable=False),
        sa.Column("day_index", sa.Integer(), nullable=False),
        sa.Column("node_order", sa.Float(), nullable=False),
        sa.Column("verified", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("verification_info", sa.Text(), nullable=True),
        sa.Column("is_lit", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("node_status", sa.String(20), nullable=False, server_default="normal"),
        sa.Column("status_reason", sa.Text(), nullable=True),
        sa.Column("parent_node_id", sa.String(64), nullable=True),
        sa.Column("is_starting_point", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("scenic_area_name", sa.Text(), nullable=True),
        sa.Column("price_info", sa.Text(), nullable=True),
        sa.Column("ticket_info", sa.Text(), nullable=True),
        sa.Column("tips", sa.Text(), nullable=True),
        sa.Column("transport_mode", sa.String(16), nullable=True),
        sa.Column("transport_duration", sa.Integer(), nullable=True),
        sa.Column("transport_note", sa.Text(), nullable=True),
        sa.ForeignKeyConstraint(["itinerary_id"], ["itinerary.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["parent_node_id"], ["travel_node.id"]),
        sa.UniqueConstraint(
            "itinerary_id", "day_index", "node_order", name="uq_travel_node_slot"
        ),
        sa.CheckConstraint(
            "node_status IN ('normal', 'changed', 'unrealized', 'changed_original')",
            name="ck_travel_node_status",
        ),
    )
    op.create_index("idx_travel_node_itinerary", "travel_node", ["itinerary_id"])


def downgrade() -> None:
    """Drop all tables."""
    op.drop_index("idx_travel_node_itinerary", table_name="travel_node")
    op.drop_table("travel_node")
    op.drop_table("itinerary")
