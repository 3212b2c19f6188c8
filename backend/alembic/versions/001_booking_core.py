# backend/alembic/versions/001_booking_core.py
"""Booking core - pitches and bookings

Revision ID: 001_booking_core
Revises:
Create Date: 2025-11-01 00:00:00.000000

Creates the pitch pricing/notice data the booking core reads and the
self-contained bookings table. On PostgreSQL an exclusion constraint
guarantees that active bookings on one pitch never overlap, even when two
requests pass the application-level conflict check at the same time.
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "001_booking_core"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _hhmm_to_time_sql(column: str) -> str:
    """Immutable ``HH:mm`` text to ``time`` conversion usable in a generated column."""
    return (
        f"make_time(split_part({column}, ':', 1)::int, "
        f"split_part({column}, ':', 2)::int, 0)"
    )


BOOKING_SPAN_SQL = (
    "tsrange("
    f"booking_date + {_hhmm_to_time_sql('start_time')}, "
    f"booking_date + {_hhmm_to_time_sql('end_time')}, "
    "'[)')"
)


def _create_extension(extension_name: str) -> None:
    bind = op.get_bind()
    if bind is None or bind.dialect.name != "postgresql":
        return
    op.execute(f"CREATE EXTENSION IF NOT EXISTS {extension_name}")


def upgrade() -> None:
    """Create pitches and bookings tables."""
    bind = op.get_bind()
    is_postgres = bind.dialect.name == "postgresql"

    print("Creating pitches table...")
    op.create_table(
        "pitches",
        sa.Column("id", sa.String(26), nullable=False),
        sa.Column("owner_id", sa.String(26), nullable=False),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("hourly_rate", sa.Numeric(10, 2), nullable=False),
        sa.Column("currency", sa.String(3), nullable=False, server_default="EUR"),
        sa.Column("min_cancellation_hours", sa.Integer(), nullable=False, server_default="24"),
        sa.Column("total_bookings", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
        ),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint("hourly_rate >= 0", name="check_pitch_rate_non_negative"),
        sa.CheckConstraint("min_cancellation_hours >= 0", name="check_pitch_notice_non_negative"),
    )
    op.create_index("ix_pitches_id", "pitches", ["id"])
    op.create_index("ix_pitches_owner_id", "pitches", ["owner_id"])

    print("Creating bookings table...")
    op.create_table(
        "bookings",
        sa.Column("id", sa.String(26), nullable=False),
        sa.Column("user_id", sa.String(26), nullable=False),
        sa.Column("pitch_id", sa.String(26), nullable=False),
        sa.Column("booking_date", sa.Date(), nullable=False),
        # Zero-padded HH:mm so lexical order is chronological
        sa.Column("start_time", sa.String(5), nullable=False),
        sa.Column("end_time", sa.String(5), nullable=False),
        sa.Column("duration_minutes", sa.Integer(), nullable=False),
        sa.Column("hourly_rate", sa.Numeric(10, 2), nullable=False),
        sa.Column("total_amount", sa.Numeric(10, 2), nullable=False),
        sa.Column("currency", sa.String(3), nullable=False, server_default="EUR"),
        sa.Column("status", sa.String(20), nullable=False, server_default="pending"),
        sa.Column("payment_status", sa.String(20), nullable=False, server_default="pending"),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("number_of_players", sa.Integer(), nullable=True),
        sa.Column("cancelled_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("cancelled_by", sa.String(26), nullable=True),
        sa.Column("cancellation_reason", sa.Text(), nullable=True),
        sa.Column("payment_intent_id", sa.String(255), nullable=True),
        sa.Column("refund_id", sa.String(255), nullable=True),
        sa.Column("refund_amount", sa.Numeric(10, 2), nullable=True),
        sa.Column("confirmed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
        ),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(["pitch_id"], ["pitches.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint(
            "status IN ('pending', 'confirmed', 'completed', 'cancelled', 'no_show')",
            name="ck_bookings_status",
        ),
        sa.CheckConstraint(
            "payment_status IN ('pending', 'paid', 'refunded', 'failed')",
            name="ck_bookings_payment_status",
        ),
        sa.CheckConstraint("start_time < end_time", name="check_time_order"),
        sa.CheckConstraint("duration_minutes > 0", name="check_duration_positive"),
        sa.CheckConstraint("total_amount >= 0", name="check_amount_non_negative"),
        sa.CheckConstraint(
            "number_of_players IS NULL OR number_of_players >= 1",
            name="check_players_positive",
        ),
    )
    op.create_index("ix_bookings_id", "bookings", ["id"])
    op.create_index("ix_bookings_user_id", "bookings", ["user_id"])
    op.create_index("ix_bookings_booking_date", "bookings", ["booking_date"])
    op.create_index("ix_bookings_status", "bookings", ["status"])
    op.create_index("ix_bookings_pitch_date", "bookings", ["pitch_id", "booking_date"])

    if is_postgres:
        _create_extension("btree_gist")
        op.execute(
            "ALTER TABLE bookings "
            f"ADD COLUMN booking_span tsrange GENERATED ALWAYS AS ({BOOKING_SPAN_SQL}) STORED"
        )
        op.execute(
            """
            ALTER TABLE bookings
              ADD CONSTRAINT bookings_no_overlap_per_pitch
              EXCLUDE USING gist (
                pitch_id WITH =,
                booking_span WITH &&
              )
              WHERE (status NOT IN ('cancelled', 'no_show'))
            """
        )

    print("Booking core tables created")


def downgrade() -> None:
    """Drop booking core tables."""
    print("Dropping booking core tables...")

    bind = op.get_bind()
    if bind.dialect.name == "postgresql":
        op.execute("ALTER TABLE bookings DROP CONSTRAINT IF EXISTS bookings_no_overlap_per_pitch")

    op.drop_index("ix_bookings_pitch_date", table_name="bookings")
    op.drop_index("ix_bookings_status", table_name="bookings")
    op.drop_index("ix_bookings_booking_date", table_name="bookings")
    op.drop_index("ix_bookings_user_id", table_name="bookings")
    op.drop_index("ix_bookings_id", table_name="bookings")
    op.drop_table("bookings")

    op.drop_index("ix_pitches_owner_id", table_name="pitches")
    op.drop_index("ix_pitches_id", table_name="pitches")
    op.drop_table("pitches")
