"""Initial schema: users, events, pregames, attendees and join requests.

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


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    ]


def upgrade() -> None:
    # Users table
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("hashed_password", sa.String(255), nullable=False),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("year", sa.String(20), nullable=False),
        sa.Column("major", sa.String(100), nullable=False),
        sa.Column("dorm", sa.String(100), nullable=False),
        sa.Column("bio", sa.Text(), nullable=True),
        sa.Column("avatar_url", sa.String(500), nullable=True),
        *_timestamps(),
        sa.CheckConstraint(
            "year IN ('Freshman', 'Sophomore', 'Junior', 'Senior')",
            name="check_user_year",
        ),
    )
    op.create_index("ix_users_id", "users", ["id"])
    op.create_index("ix_users_email", "users", ["email"], unique=True)

    # Events table
    op.create_table(
        "events",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("description", sa.String(2000), nullable=True),
        sa.Column("date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("location", sa.String(255), nullable=False),
        sa.Column("vibe_tags", sa.JSON(), nullable=False),
        sa.Column("category", sa.String(20), nullable=False, server_default=sa.text("'Party'")),
        *_timestamps(),
        sa.CheckConstraint(
            "category IN ('Party', 'Bar/Club', 'Game', 'Concert', 'House Event')",
            name="check_event_category",
        ),
    )
    op.create_index("ix_events_id", "events", ["id"])
    # "Today" and "upcoming" listings are date range scans
    op.create_index("ix_events_date", "events", ["date"])
    op.create_index("ix_events_category_date", "events", ["category", "date"])

    # Pregames table
    op.create_table(
        "pregames",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("event_id", sa.Integer(), sa.ForeignKey("events.id", ondelete="CASCADE"), nullable=False),
        sa.Column("host_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("meeting_time", sa.DateTime(timezone=True), nullable=False),
        sa.Column("meeting_location", sa.String(255), nullable=False),
        sa.Column("access_type", sa.String(20), nullable=False, server_default=sa.text("'OPEN'")),
        sa.Column("capacity", sa.Integer(), nullable=True),
        sa.Column("attendee_count", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("phone_number", sa.String(32), nullable=False),
        sa.Column("requirements", sa.Text(), nullable=True),
        *_timestamps(),
        sa.CheckConstraint("access_type IN ('OPEN', 'REQUEST_ONLY')", name="check_pregame_access_type"),
        sa.CheckConstraint("capacity IS NULL OR capacity > 0", name="check_pregame_capacity_positive"),
        sa.CheckConstraint("attendee_count >= 0", name="check_pregame_attendee_count_non_negative"),
        # Overfilling is impossible even if application checks are bypassed
        sa.CheckConstraint(
            "capacity IS NULL OR attendee_count <= capacity",
            name="check_pregame_attendee_count_lte_capacity",
        ),
    )
    op.create_index("ix_pregames_id", "pregames", ["id"])
    op.create_index("ix_pregames_event_id", "pregames", ["event_id"])
    op.create_index("ix_pregames_host_id", "pregames", ["host_id"])
    op.create_index("ix_pregames_event_meeting_time", "pregames", ["event_id", "meeting_time"])

    # Attendee set
    op.create_table(
        "pregame_attendees",
        sa.Column("pregame_id", sa.Integer(), sa.ForeignKey("pregames.id", ondelete="CASCADE"), primary_key=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
        sa.Column("joined_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_pregame_attendees_user_id", "pregame_attendees", ["user_id"])

    # Join requests table
    op.create_table(
        "join_requests",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("pregame_id", sa.Integer(), sa.ForeignKey("pregames.id", ondelete="CASCADE"), nullable=False),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default=sa.text("'PENDING'")),
        sa.Column("bringing", sa.JSON(), nullable=False),
        sa.Column("group_size", sa.Integer(), nullable=False, server_default=sa.text("1")),
        sa.Column("message", sa.Text(), nullable=True),
        sa.Column("phone_number", sa.String(32), nullable=False),
        *_timestamps(),
        sa.CheckConstraint("group_size >= 1", name="check_join_request_group_size_positive"),
        sa.CheckConstraint(
            "status IN ('PENDING', 'APPROVED', 'DECLINED')",
            name="check_join_request_status",
        ),
    )
    op.create_index("ix_join_requests_id", "join_requests", ["id"])
    op.create_index("ix_join_requests_user_id", "join_requests", ["user_id"])
    op.create_index("ix_join_requests_pregame_status", "join_requests", ["pregame_id", "status"])
    # At most one PENDING request per (pregame, user); history rows are unrestricted
    op.create_index(
        "uq_join_requests_one_pending",
        "join_requests",
        ["pregame_id", "user_id"],
        unique=True,
        postgresql_where=sa.text("status = 'PENDING'"),
        sqlite_where=sa.text("status = 'PENDING'"),
    )


def downgrade() -> None:
    op.drop_table("join_requests")
    op.drop_table("pregame_attendees")
    op.drop_table("pregames")
    op.drop_table("events")
    op.drop_table("users")
