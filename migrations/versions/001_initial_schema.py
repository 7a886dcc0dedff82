"""Initial schema: users, bookings and the booking status log.

Revision ID: 001
Create Date: 2026-10-17
"""

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


revision = "001"
down_revision = None
branch_labels = None
depends_on = None

BOOKING_STATUSES = (
    "pending",
    "accepted",
    "in_transit",
    "completed",
    "rejected",
    "cancelled",
)


def upgrade() -> None:
    booking_status = sa.Enum(*BOOKING_STATUSES, name="booking_status")

    # ── users ─────────────────────────────────────────────────────────
    op.create_table(
        "users",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("username", sa.String(80), unique=True, nullable=False),
        sa.Column("password_hash", sa.String(255), nullable=False),
        sa.Column("full_name", sa.String(120), nullable=True),
        sa.Column("email", sa.String(255), nullable=True),
        sa.Column("phone_number", sa.String(32), nullable=True),
        sa.Column("profile_image", sa.Text, nullable=True),
        sa.Column(
            "role",
            sa.Enum("customer", "driver", name="user_role"),
            nullable=False,
            server_default="customer",
        ),
        sa.Column(
            "session_version",
            sa.Integer,
            nullable=False,
            server_default="0",
        ),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
        ),
    )

    # ── bookings ──────────────────────────────────────────────────────
    op.create_table(
        "bookings",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column(
            "user_id", sa.Integer, sa.ForeignKey("users.id"), nullable=False
        ),
        sa.Column("vehicle_type", sa.String(32), nullable=False),
        sa.Column("pickup_location", sa.Text, nullable=False),
        sa.Column("dropoff_location", sa.Text, nullable=False),
        sa.Column("pickup_coords", sa.String(64), nullable=False),
        sa.Column("dropoff_coords", sa.String(64), nullable=False),
        sa.Column("estimated_price", sa.String(32), nullable=True),
        sa.Column("actual_price", sa.String(32), nullable=True),
        sa.Column("distance", sa.String(32), nullable=True),
        sa.Column("duration", sa.String(32), nullable=True),
        sa.Column("notes", sa.Text, nullable=True),
        sa.Column(
            "status", booking_status, nullable=False, server_default="pending"
        ),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("idx_bookings_user", "bookings", ["user_id"])
    op.create_index("idx_bookings_status", "bookings", ["status"])

    # ── booking_status_changes ────────────────────────────────────────
    op.create_table(
        "booking_status_changes",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column(
            "booking_id",
            sa.Integer,
            sa.ForeignKey("bookings.id"),
            nullable=False,
        ),
        sa.Column(
            "from_status",
            postgresql.ENUM(
                *BOOKING_STATUSES, name="booking_status", create_type=False
            ),
            nullable=True,
        ),
        sa.Column(
            "to_status",
            postgresql.ENUM(
                *BOOKING_STATUSES, name="booking_status", create_type=False
            ),
            nullable=False,
        ),
        sa.Column("changed_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index(
        "idx_status_changes_booking", "booking_status_changes", ["booking_id"]
    )


def downgrade() -> None:
    op.drop_table("booking_status_changes")
    op.drop_table("bookings")
    op.drop_table("users")
    op.execute("DROP TYPE IF EXISTS booking_status")
    op.execute("DROP TYPE IF EXISTS user_role")
