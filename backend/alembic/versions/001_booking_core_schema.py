"""Booking core schema: adventures, availability overrides, bookings, promotions.

Revision ID: 001
Revises: None
Create Date: 2026-10-19
"""
from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    ]


def upgrade() -> None:
    op.create_table(
        "adventures",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("location", sa.String(255), nullable=True),
        sa.Column("guide_id", sa.String(64), nullable=True),
        sa.Column("difficulty_level", sa.String(20), nullable=False, server_default="moderate"),
        sa.Column("duration_hours", sa.Integer(), nullable=False, server_default=sa.text("8")),
        sa.Column("image_urls", sa.JSON(), nullable=False),
        sa.Column("price_per_person", sa.Numeric(10, 2), nullable=False),
        sa.Column("group_discount_percentage", sa.Numeric(5, 2), nullable=False, server_default=sa.text("0")),
        sa.Column("early_bird_discount_percentage", sa.Numeric(5, 2), nullable=False, server_default=sa.text("0")),
        sa.Column("early_bird_days", sa.Integer(), nullable=False, server_default=sa.text("7")),
        sa.Column("max_participants", sa.Integer(), nullable=True),
        sa.Column("daily_capacity", sa.Integer(), nullable=False, server_default=sa.text("8")),
        sa.Column("min_advance_booking_hours", sa.Integer(), nullable=False, server_default=sa.text("24")),
        sa.Column("max_advance_booking_days", sa.Integer(), nullable=False, server_default=sa.text("365")),
        sa.Column("cancellation_policy", sa.String(20), nullable=False, server_default="moderate"),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("version", sa.Integer(), nullable=False, server_default=sa.text("1")),
        *_timestamps(),
        sa.CheckConstraint("price_per_person >= 0", name="check_adventure_price_non_negative"),
        sa.CheckConstraint("daily_capacity > 0", name="check_adventure_daily_capacity_positive"),
    )
    op.create_index("ix_adventures_id", "adventures", ["id"])

    op.create_table(
        "adventure_availability",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("adventure_id", sa.Integer(), sa.ForeignKey("adventures.id"), nullable=False),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("available_spots", sa.Integer(), nullable=False),
        sa.Column("booked_spots", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("is_blocked", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("status", sa.String(20), nullable=False, server_default="available"),
        sa.Column("version", sa.Integer(), nullable=False, server_default=sa.text("1")),
        *_timestamps(),
        sa.UniqueConstraint("adventure_id", "date", name="uq_adventure_availability_date"),
        sa.CheckConstraint("available_spots >= 0", name="check_availability_spots_non_negative"),
        sa.CheckConstraint("booked_spots >= 0", name="check_availability_booked_non_negative"),
        sa.CheckConstraint(
            "status IN ('available', 'limited', 'unavailable')",
            name="check_availability_status",
        ),
    )
    op.create_index("ix_adventure_availability_id", "adventure_availability", ["id"])
    op.create_index("ix_adventure_availability_adventure_id", "adventure_availability", ["adventure_id"])

    op.create_table(
        "bookings",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.String(64), nullable=True),
        sa.Column("adventure_id", sa.Integer(), sa.ForeignKey("adventures.id"), nullable=False),
        sa.Column("guide_id", sa.String(64), nullable=True),
        sa.Column("booking_date", sa.Date(), nullable=False),
        sa.Column("start_time", sa.String(5), nullable=True),
        sa.Column("participants", sa.Integer(), nullable=False),
        sa.Column("base_price", sa.Numeric(10, 2), nullable=False),
        sa.Column("discount_amount", sa.Numeric(10, 2), nullable=False, server_default=sa.text("0")),
        sa.Column("add_ons_amount", sa.Numeric(10, 2), nullable=False, server_default=sa.text("0")),
        sa.Column("tax_amount", sa.Numeric(10, 2), nullable=False, server_default=sa.text("0")),
        sa.Column("total_amount", sa.Numeric(10, 2), nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default="pending"),
        sa.Column("payment_status", sa.String(20), nullable=False, server_default="pending"),
        sa.Column("payment_ref", sa.String(255), nullable=True),
        sa.Column("override_spots_claimed", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("confirmed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("cancelled_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("lead_guest_name", sa.String(255), nullable=True),
        sa.Column("lead_guest_email", sa.String(255), nullable=True),
        sa.Column("lead_guest_phone", sa.String(50), nullable=True),
        sa.Column("guest_details", sa.JSON(), nullable=False),
        sa.Column("add_ons", sa.JSON(), nullable=False),
        sa.Column("special_requests", sa.Text(), nullable=True),
        sa.Column("email_notifications", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("sms_notifications", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("whatsapp_notifications", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        *_timestamps(),
        sa.CheckConstraint("participants > 0", name="check_booking_participants_positive"),
        sa.CheckConstraint(
            "status IN ('pending', 'confirmed', 'cancelled', 'expired')",
            name="check_booking_status",
        ),
        sa.CheckConstraint(
            "payment_status IN ('pending', 'paid', 'failed', 'refunded')",
            name="check_booking_payment_status",
        ),
    )
    op.create_index("ix_bookings_id", "bookings", ["id"])
    op.create_index("ix_bookings_user_id", "bookings", ["user_id"])
    op.create_index("ix_bookings_adventure_id", "bookings", ["adventure_id"])
    op.create_index("ix_bookings_payment_ref", "bookings", ["payment_ref"])
    # CAPACITY SUMS: every availability check filters bookings on
    # (adventure_id, booking_date, status). Without this index each check
    # scans all of an adventure's bookings.
    op.create_index(
        "ix_bookings_adventure_date_status",
        "bookings",
        ["adventure_id", "booking_date", "status"],
    )

    op.create_table(
        "promotions",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("code", sa.String(50), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("description", sa.String(1000), nullable=True),
        sa.Column("discount_type", sa.String(20), nullable=False),
        sa.Column("discount_value", sa.Numeric(10, 2), nullable=False),
        sa.Column("max_discount_amount", sa.Numeric(10, 2), nullable=True),
        sa.Column("adventure_ids", sa.JSON(), nullable=True),
        sa.Column("starts_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("usage_limit", sa.Integer(), nullable=True),
        sa.Column("usage_count", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        *_timestamps(),
        sa.CheckConstraint("discount_type IN ('percentage', 'fixed')", name="check_promotion_discount_type"),
        sa.CheckConstraint("discount_value >= 0", name="check_promotion_value_non_negative"),
    )
    op.create_index("ix_promotions_id", "promotions", ["id"])
    op.create_index("ix_promotions_code", "promotions", ["code"], unique=True)


def downgrade() -> None:
    op.drop_table("promotions")
    op.drop_table("bookings")
    op.drop_table("adventure_availability")
    op.drop_table("adventures")
