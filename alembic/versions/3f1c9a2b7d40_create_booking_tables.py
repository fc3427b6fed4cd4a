"""Create catalog, booking and inventory tables

Revision ID: 3f1c9a2b7d40
Revises:
Create Date: 2025-09-02 10:14:27.318804

"""

import sqlalchemy as sa

from alembic import op  # type: ignore[attr-defined]

# revision identifiers, used by Alembic.
revision = "3f1c9a2b7d40"
down_revision = None
branch_labels = None
depends_on = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
    ]


def upgrade() -> None:
    """Upgrade schema."""
    op.create_table(
        "room_categories",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(255), nullable=False, unique=True),
        sa.Column("description", sa.String(1000), nullable=True),
    )

    op.create_table(
        "rooms",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("property", sa.String(32), nullable=False, index=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("description", sa.String(1000), nullable=True),
        sa.Column(
            "room_category_id",
            sa.Integer(),
            sa.ForeignKey("room_categories.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("capacity_max", sa.Integer(), nullable=False),
        sa.Column("min_billable_occupancy", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("single_beds", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("queen_beds", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("king_beds", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
        sa.CheckConstraint("capacity_max > 0", name="ck_rooms_capacity_positive"),
        sa.CheckConstraint("min_billable_occupancy >= 1", name="ck_rooms_min_billable"),
    )

    op.create_table(
        "seasons",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("property", sa.String(32), nullable=False, index=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("description", sa.String(1000), nullable=True),
        sa.Column("start_month", sa.Integer(), nullable=False),
        sa.Column("start_day", sa.Integer(), nullable=False),
        sa.Column("end_month", sa.Integer(), nullable=False),
        sa.Column("end_day", sa.Integer(), nullable=False),
        sa.Column("advance_booking_days", sa.Integer(), nullable=True),
        sa.Column("max_nights", sa.Integer(), nullable=True),
        sa.Column("is_default", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.CheckConstraint("start_month BETWEEN 1 AND 12", name="ck_seasons_start_month"),
        sa.CheckConstraint("end_month BETWEEN 1 AND 12", name="ck_seasons_end_month"),
        sa.CheckConstraint("start_day BETWEEN 1 AND 31", name="ck_seasons_start_day"),
        sa.CheckConstraint("end_day BETWEEN 1 AND 31", name="ck_seasons_end_day"),
        sa.CheckConstraint(
            "advance_booking_days IS NULL OR advance_booking_days >= 0",
            name="ck_seasons_advance_booking_days",
        ),
    )

    op.create_table(
        "pricing_rules",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("property", sa.String(32), nullable=False, index=True),
        sa.Column(
            "season_id",
            sa.Integer(),
            sa.ForeignKey("seasons.id", ondelete="CASCADE"),
            nullable=True,
        ),
        sa.Column(
            "room_id", sa.Integer(), sa.ForeignKey("rooms.id", ondelete="CASCADE"), nullable=True
        ),
        sa.Column(
            "room_category_id",
            sa.Integer(),
            sa.ForeignKey("room_categories.id", ondelete="CASCADE"),
            nullable=True,
        ),
        sa.Column("booking_mode", sa.String(16), nullable=False),
        sa.Column("rate_basis", sa.String(32), nullable=False),
        sa.Column("amount", sa.Numeric(10, 2), nullable=False),
        sa.Column("children_amount", sa.Numeric(10, 2), nullable=True),
        sa.UniqueConstraint(
            "property",
            "season_id",
            "room_id",
            "room_category_id",
            "booking_mode",
            "rate_basis",
            name="uq_pricing_rules_specificity",
        ),
        sa.CheckConstraint("amount >= 0", name="ck_pricing_rules_amount"),
        sa.CheckConstraint(
            "children_amount IS NULL OR children_amount >= 0",
            name="ck_pricing_rules_children_amount",
        ),
    )

    op.create_table(
        "blackouts",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("property", sa.String(32), nullable=False, index=True),
        sa.Column("start_date", sa.Date(), nullable=False),
        sa.Column("end_date", sa.Date(), nullable=False),
        sa.Column("reason", sa.String(255), nullable=True),
        sa.CheckConstraint("end_date >= start_date", name="ck_blackouts_range"),
    )

    op.create_table(
        "bookings",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("reference", sa.String(32), nullable=False, unique=True),
        sa.Column("user_id", sa.String(64), nullable=False),
        sa.Column("property", sa.String(32), nullable=False),
        sa.Column("checkin_date", sa.Date(), nullable=False),
        sa.Column("checkout_date", sa.Date(), nullable=False),
        sa.Column("booking_mode", sa.String(16), nullable=False),
        sa.Column("guests_count", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("children_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("status", sa.String(16), nullable=False, server_default="hold"),
        sa.Column("hold_expires_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("total_price", sa.Numeric(10, 2), nullable=True),
        sa.Column("pricing_items", sa.JSON(), nullable=True),
        sa.Column("idempotency_key", sa.String(128), nullable=True, unique=True),
        *_timestamps(),
        sa.CheckConstraint("checkout_date > checkin_date", name="ck_bookings_dates"),
        sa.CheckConstraint("guests_count > 0", name="ck_bookings_guests_positive"),
        sa.CheckConstraint("children_count >= 0", name="ck_bookings_children"),
        sa.CheckConstraint(
            "status IN ('hold', 'complete', 'cancelled')", name="ck_bookings_status"
        ),
    )
    op.create_index(
        "ix_bookings_property_dates", "bookings", ["property", "checkin_date", "checkout_date"]
    )
    op.create_index("ix_bookings_user_property", "bookings", ["user_id", "property"])

    op.create_table(
        "booking_rooms",
        sa.Column(
            "booking_id",
            sa.String(36),
            sa.ForeignKey("bookings.id", ondelete="CASCADE"),
            primary_key=True,
        ),
        sa.Column(
            "room_id",
            sa.Integer(),
            sa.ForeignKey("rooms.id", ondelete="CASCADE"),
            primary_key=True,
        ),
    )

    op.create_table(
        "property_inventory",
        sa.Column("property", sa.String(32), primary_key=True),
        sa.Column("day", sa.Date(), primary_key=True),
        sa.Column("buyout_held", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("buyout_booked", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column(
            "buyout_booking_id",
            sa.String(36),
            sa.ForeignKey("bookings.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
    )

    op.create_table(
        "room_inventory",
        sa.Column(
            "room_id",
            sa.Integer(),
            sa.ForeignKey("rooms.id", ondelete="CASCADE"),
            primary_key=True,
        ),
        sa.Column("day", sa.Date(), primary_key=True),
        sa.Column("property", sa.String(32), nullable=False, index=True),
        sa.Column("held", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("booked", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column(
            "booking_id",
            sa.String(36),
            sa.ForeignKey("bookings.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
    )


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_table("room_inventory")
    op.drop_table("property_inventory")
    op.drop_table("booking_rooms")
    op.drop_index("ix_bookings_user_property", table_name="bookings")
    op.drop_index("ix_bookings_property_dates", table_name="bookings")
    op.drop_table("bookings")
    op.drop_table("blackouts")
    op.drop_table("pricing_rules")
    op.drop_table("seasons")
    op.drop_table("rooms")
    op.drop_table("room_categories")
