# backend/alembic/versions/001_reservation_engine.py
"""Reservation engine - schedule, group sessions, reservations, day locks, outbox

Revision ID: 001_reservation_engine
Revises:
Create Date: 2030-01-01 00:00:00.000000

Creates the full DriveBook schema: weekly templates, blocked intervals and
extra slots; group sessions with a capacity counter; reservations with the
partial unique backstop on active one-to-one windows; the per-day admission
lock table; and the transactional event outbox.
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import JSONB

# revision identifiers, used by Alembic.
revision: str = "001_reservation_engine"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

ACTIVE_ONE_TO_ONE = (
    "kind = 'ONE_TO_ONE' AND status IN ('HOLD', 'PENDING_CONFIRMATION', 'CONFIRMED')"
)


def _ts(name: str, nullable: bool = True) -> sa.Column:
    return sa.Column(name, sa.DateTime(timezone=True), nullable=nullable)


def upgrade() -> None:
    """Create reservation engine tables."""
    print("Creating schedule tables...")

    op.create_table(
        "schedule_templates",
        sa.Column("id", sa.String(26), primary_key=True),
        sa.Column("day_of_week", sa.Integer(), nullable=False),
        sa.Column("start_time", sa.Time(), nullable=False),
        sa.Column("end_time", sa.Time(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        _ts("created_at", nullable=False),
        _ts("updated_at"),
        sa.CheckConstraint("day_of_week BETWEEN 0 AND 6", name="ck_schedule_templates_day"),
        sa.CheckConstraint("start_time < end_time", name="ck_schedule_templates_time_order"),
    )
    op.create_index("ix_schedule_templates_day_of_week", "schedule_templates", ["day_of_week"])
    op.create_index(
        "ix_schedule_templates_day_active", "schedule_templates", ["day_of_week", "is_active"]
    )

    op.create_table(
        "blocked_intervals",
        sa.Column("id", sa.String(26), primary_key=True),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("start_time", sa.Time(), nullable=True),
        sa.Column("end_time", sa.Time(), nullable=True),
        sa.Column("is_all_day", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("reason", sa.String(255), nullable=True),
        _ts("created_at", nullable=False),
        sa.CheckConstraint(
            "is_all_day OR (start_time IS NOT NULL AND end_time IS NOT NULL AND start_time < end_time)",
            name="ck_blocked_intervals_timed",
        ),
    )
    op.create_index("ix_blocked_intervals_date", "blocked_intervals", ["date"])

    op.create_table(
        "extra_slots",
        sa.Column("id", sa.String(26), primary_key=True),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("start_time", sa.Time(), nullable=False),
        sa.Column("end_time", sa.Time(), nullable=False),
        sa.Column("reason", sa.String(255), nullable=True),
        _ts("created_at", nullable=False),
        sa.CheckConstraint("start_time < end_time", name="ck_extra_slots_time_order"),
    )
    op.create_index("ix_extra_slots_date", "extra_slots", ["date"])

    print("Creating group_sessions table...")
    op.create_table(
        "group_sessions",
        sa.Column("id", sa.String(26), primary_key=True),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("session_date", sa.Date(), nullable=False),
        sa.Column("start_time", sa.Time(), nullable=False),
        sa.Column("end_time", sa.Time(), nullable=False),
        sa.Column("max_participants", sa.Integer(), nullable=False),
        sa.Column("current_participants", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        _ts("created_at", nullable=False),
        _ts("updated_at"),
        sa.CheckConstraint("max_participants > 0", name="ck_group_sessions_max_positive"),
        sa.CheckConstraint(
            "current_participants >= 0 AND current_participants <= max_participants",
            name="ck_group_sessions_participants_bounds",
        ),
        sa.CheckConstraint("start_time < end_time", name="ck_group_sessions_time_order"),
    )
    op.create_index("ix_group_sessions_session_date", "group_sessions", ["session_date"])

    print("Creating reservations table...")
    op.create_table(
        "reservations",
        sa.Column("id", sa.String(26), primary_key=True),
        sa.Column("resource_key", sa.String(64), nullable=False, server_default="default"),
        sa.Column("reservation_date", sa.Date(), nullable=False),
        sa.Column("start_time", sa.Time(), nullable=False),
        sa.Column("end_time", sa.Time(), nullable=False),
        sa.Column("duration_minutes", sa.Integer(), nullable=False),
        sa.Column("kind", sa.String(20), nullable=False, server_default="ONE_TO_ONE"),
        sa.Column("status", sa.String(30), nullable=False, server_default="HOLD"),
        sa.Column(
            "session_id",
            sa.String(26),
            sa.ForeignKey("group_sessions.id", ondelete="RESTRICT"),
            nullable=True,
        ),
        sa.Column("participant_name", sa.String(255), nullable=True),
        sa.Column("participant_email", sa.String(255), nullable=True),
        sa.Column("participant_phone", sa.String(50), nullable=True),
        _ts("created_at", nullable=False),
        _ts("updated_at"),
        _ts("expires_at"),
        _ts("confirmed_at"),
        _ts("cancelled_at"),
        sa.Column("cancellation_reason", sa.Text(), nullable=True),
        sa.CheckConstraint(
            "status IN ('HOLD', 'PENDING_CONFIRMATION', 'CONFIRMED', 'CANCELLED')",
            name="ck_reservations_status",
        ),
        sa.CheckConstraint(
            "kind IN ('ONE_TO_ONE', 'GROUP_SESSION')", name="ck_reservations_kind"
        ),
        sa.CheckConstraint("start_time < end_time", name="ck_reservations_time_order"),
        sa.CheckConstraint("duration_minutes > 0", name="ck_reservations_duration_positive"),
        sa.CheckConstraint(
            "status <> 'HOLD' OR expires_at IS NOT NULL", name="ck_reservations_hold_expires"
        ),
        sa.CheckConstraint(
            "kind <> 'GROUP_SESSION' OR session_id IS NOT NULL",
            name="ck_reservations_group_has_session",
        ),
    )
    op.create_index("ix_reservations_id", "reservations", ["id"])
    op.create_index("ix_reservations_reservation_date", "reservations", ["reservation_date"])
    op.create_index("ix_reservations_status", "reservations", ["status"])
    op.create_index("ix_reservations_session_id", "reservations", ["session_id"])
    op.create_index("ix_reservations_expires_at", "reservations", ["expires_at"])
    op.create_index(
        "ix_reservations_resource_date", "reservations", ["resource_key", "reservation_date"]
    )
    op.create_index("ix_reservations_status_expires", "reservations", ["status", "expires_at"])
    op.create_index(
        "uq_reservations_active_one_to_one_window",
        "reservations",
        ["resource_key", "reservation_date", "start_time", "end_time"],
        unique=True,
        postgresql_where=sa.text(ACTIVE_ONE_TO_ONE),
        sqlite_where=sa.text(ACTIVE_ONE_TO_ONE),
    )

    op.create_table(
        "schedule_day_locks",
        sa.Column("resource_key", sa.String(64), primary_key=True),
        sa.Column("lock_date", sa.Date(), primary_key=True),
        _ts("last_locked_at"),
    )

    print("Creating event_outbox table...")
    op.create_table(
        "event_outbox",
        sa.Column("id", sa.String(26), primary_key=True),
        sa.Column("event_type", sa.String(100), nullable=False),
        sa.Column("aggregate_id", sa.String(64), nullable=False),
        sa.Column("idempotency_key", sa.String(255), nullable=False),
        sa.Column(
            "payload",
            JSONB(astext_type=sa.Text()).with_variant(sa.JSON(), "sqlite"),
            nullable=False,
        ),
        sa.Column("status", sa.String(20), nullable=False, server_default="PENDING"),
        sa.Column("attempt_count", sa.Integer(), nullable=False, server_default="0"),
        _ts("next_attempt_at"),
        sa.Column("last_error", sa.Text(), nullable=True),
        _ts("created_at", nullable=False),
        _ts("updated_at", nullable=False),
        sa.UniqueConstraint("idempotency_key", name="uq_event_outbox_idempotency_key"),
    )
    op.create_index("ix_event_outbox_event_type", "event_outbox", ["event_type"])
    op.create_index("ix_event_outbox_aggregate_id", "event_outbox", ["aggregate_id"])
    op.create_index("ix_event_outbox_status", "event_outbox", ["status"])
    op.create_index("ix_event_outbox_next_attempt_at", "event_outbox", ["next_attempt_at"])

    print("Reservation engine schema created")


def downgrade() -> None:
    """Drop reservation engine tables."""
    op.drop_table("event_outbox")
    op.drop_table("schedule_day_locks")
    op.drop_index("uq_reservations_active_one_to_one_window", table_name="reservations")
    op.drop_table("reservations")
    op.drop_table("group_sessions")
    op.drop_table("extra_slots")
    op.drop_table("blocked_intervals")
    op.drop_table("schedule_templates")
