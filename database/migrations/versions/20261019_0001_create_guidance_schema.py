"""create guidance schema

Revision ID: 20261019_0001
Revises: None
Create Date: 2026-10-19 00:00:00.000000

"""
from alembic import op
import sqlalchemy as sa

revision = "20261019_0001"
down_revision = None
branch_labels = None
depends_on = None


user_role_enum = sa.Enum("admin", "advisor", "student", name="user_role")
thesis_type_enum = sa.Enum("TA1", "TA2", name="thesis_type")
thesis_status_enum = sa.Enum("ACTIVE", "COMPLETED", "CANCELLED", name="thesis_status")
session_type_enum = sa.Enum("INDIVIDUAL", "GROUP", name="session_type")
session_status_enum = sa.Enum(
    "PENDING",
    "OFFERED",
    "APPROVED",
    "REJECTED",
    "DECLINED",
    "COMPLETED",
    "CANCELLED",
    name="session_status",
)
notification_type_enum = sa.Enum(
    "SESSION_REQUESTED",
    "SESSION_OFFERED",
    "SESSION_APPROVED",
    "SESSION_REJECTED",
    "SESSION_UPDATED",
    "SESSION_CANCELLED",
    "SESSION_ACCEPTED",
    "SESSION_DECLINED",
    "NOTE_ADDED",
    "GUIDANCE_INSUFFICIENT",
    name="notification_type",
)


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("role", user_role_enum, nullable=False),
        sa.Column("identifier", sa.String(length=50), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_users_email", "users", ["email"], unique=True)
    op.create_index("ix_users_identifier", "users", ["identifier"], unique=False)

    op.create_table(
        "weekly_schedules",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("owner_id", sa.String(length=36), nullable=False),
        sa.Column("day_of_week", sa.Integer(), nullable=False),
        sa.Column("start_time", sa.String(length=5), nullable=False),
        sa.Column("end_time", sa.String(length=5), nullable=False),
        sa.Column("course_name", sa.String(length=200), nullable=False),
        sa.Column("room", sa.String(length=100), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_weekly_schedules_owner_id", "weekly_schedules", ["owner_id"], unique=False)

    op.create_table(
        "availability_windows",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("advisor_id", sa.String(length=36), nullable=False),
        sa.Column("is_recurring", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("day_of_week", sa.Integer(), nullable=True),
        sa.Column("specific_date", sa.Date(), nullable=True),
        sa.Column("start_time", sa.String(length=5), nullable=False),
        sa.Column("end_time", sa.String(length=5), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_availability_windows_advisor_id", "availability_windows", ["advisor_id"], unique=False)

    op.create_table(
        "unavailability_blocks",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("user_id", sa.String(length=36), nullable=False),
        sa.Column("block_date", sa.Date(), nullable=False),
        sa.Column("start_time", sa.String(length=5), nullable=False),
        sa.Column("end_time", sa.String(length=5), nullable=False),
        sa.Column("reason", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_unavailability_blocks_user_id", "unavailability_blocks", ["user_id"], unique=False)
    op.create_index("ix_unavailability_blocks_block_date", "unavailability_blocks", ["block_date"], unique=False)

    op.create_table(
        "academic_periods",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("name", sa.String(length=100), nullable=False),
        sa.Column("start_date", sa.Date(), nullable=False),
        sa.Column("end_date", sa.Date(), nullable=False),
        sa.Column("checkpoint1_date", sa.Date(), nullable=False),
        sa.Column("checkpoint2_date", sa.Date(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_academic_periods_is_active", "academic_periods", ["is_active"], unique=False)

    op.create_table(
        "thesis_projects",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("student_id", sa.String(length=36), nullable=False),
        sa.Column("title", sa.String(length=500), nullable=False),
        sa.Column("thesis_type", thesis_type_enum, nullable=False),
        sa.Column("status", thesis_status_enum, nullable=False, server_default="ACTIVE"),
        sa.Column("academic_period_id", sa.String(length=36), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_thesis_projects_student_id", "thesis_projects", ["student_id"], unique=False)
    op.create_index("ix_thesis_projects_status", "thesis_projects", ["status"], unique=False)
    op.create_index("ix_thesis_projects_academic_period_id", "thesis_projects", ["academic_period_id"], unique=False)

    op.create_table(
        "thesis_supervisors",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("thesis_project_id", sa.String(length=36), nullable=False),
        sa.Column("advisor_id", sa.String(length=36), nullable=False),
        sa.Column("supervisor_order", sa.Integer(), nullable=False, server_default="1"),
        sa.UniqueConstraint("thesis_project_id", "advisor_id", name="uq_thesis_supervisor_advisor"),
        sa.UniqueConstraint("thesis_project_id", "supervisor_order", name="uq_thesis_supervisor_order"),
    )
    op.create_index("ix_thesis_supervisors_thesis_project_id", "thesis_supervisors", ["thesis_project_id"], unique=False)
    op.create_index("ix_thesis_supervisors_advisor_id", "thesis_supervisors", ["advisor_id"], unique=False)

    op.create_table(
        "guidance_sessions",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("thesis_project_id", sa.String(length=36), nullable=False),
        sa.Column("scheduled_date", sa.Date(), nullable=False),
        sa.Column("start_time", sa.String(length=5), nullable=False),
        sa.Column("end_time", sa.String(length=5), nullable=False),
        sa.Column("location", sa.String(length=200), nullable=False, server_default="TBD"),
        sa.Column("session_type", session_type_enum, nullable=False, server_default="INDIVIDUAL"),
        sa.Column("status", session_status_enum, nullable=False, server_default="PENDING"),
        sa.Column("created_by", sa.String(length=36), nullable=False),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("status_reason", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_guidance_sessions_thesis_project_id", "guidance_sessions", ["thesis_project_id"], unique=False)
    op.create_index("ix_guidance_sessions_scheduled_date", "guidance_sessions", ["scheduled_date"], unique=False)
    op.create_index("ix_guidance_sessions_status", "guidance_sessions", ["status"], unique=False)

    op.create_table(
        "guidance_session_participants",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("session_id", sa.String(length=36), nullable=False),
        sa.Column("student_id", sa.String(length=36), nullable=False),
        sa.UniqueConstraint("session_id", "student_id", name="uq_guidance_session_participant"),
    )
    op.create_index(
        "ix_guidance_session_participants_session_id",
        "guidance_session_participants",
        ["session_id"],
        unique=False,
    )
    op.create_index(
        "ix_guidance_session_participants_student_id",
        "guidance_session_participants",
        ["student_id"],
        unique=False,
    )

    op.create_table(
        "guidance_notes",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("session_id", sa.String(length=36), nullable=False),
        sa.Column("advisor_id", sa.String(length=36), nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("tasks", sa.JSON(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_guidance_notes_session_id", "guidance_notes", ["session_id"], unique=False)

    op.create_table(
        "notifications",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("user_id", sa.String(length=36), nullable=False),
        sa.Column("title", sa.String(length=200), nullable=False),
        sa.Column("message", sa.Text(), nullable=False),
        sa.Column("link", sa.String(length=500), nullable=True),
        sa.Column("notification_type", notification_type_enum, nullable=False),
        sa.Column("is_read", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_notifications_user_id", "notifications", ["user_id"], unique=False)

    op.create_table(
        "activity_logs",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("actor_id", sa.String(length=36), nullable=True),
        sa.Column("action", sa.String(length=100), nullable=False),
        sa.Column("entity_type", sa.String(length=100), nullable=False),
        sa.Column("entity_id", sa.String(length=36), nullable=True),
        sa.Column("details", sa.JSON(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_activity_logs_actor_id", "activity_logs", ["actor_id"], unique=False)
    op.create_index("ix_activity_logs_entity_id", "activity_logs", ["entity_id"], unique=False)


def downgrade() -> None:
    op.drop_index("ix_activity_logs_entity_id", table_name="activity_logs")
    op.drop_index("ix_activity_logs_actor_id", table_name="activity_logs")
    op.drop_table("activity_logs")
    op.drop_index("ix_notifications_user_id", table_name="notifications")
    op.drop_table("notifications")
    op.drop_index("ix_guidance_notes_session_id", table_name="guidance_notes")
    op.drop_table("guidance_notes")
    op.drop_index("ix_guidance_session_participants_student_id", table_name="guidance_session_participants")
    op.drop_index("ix_guidance_session_participants_session_id", table_name="guidance_session_participants")
    op.drop_table("guidance_session_participants")
    op.drop_index("ix_guidance_sessions_status", table_name="guidance_sessions")
    op.drop_index("ix_guidance_sessions_scheduled_date", table_name="guidance_sessions")
    op.drop_index("ix_guidance_sessions_thesis_project_id", table_name="guidance_sessions")
    op.drop_table("guidance_sessions")
    op.drop_index("ix_thesis_supervisors_advisor_id", table_name="thesis_supervisors")
    op.drop_index("ix_thesis_supervisors_thesis_project_id", table_name="thesis_supervisors")
    op.drop_table("thesis_supervisors")
    op.drop_index("ix_thesis_projects_academic_period_id", table_name="thesis_projects")
    op.drop_index("ix_thesis_projects_status", table_name="thesis_projects")
    op.drop_index("ix_thesis_projects_student_id", table_name="thesis_projects")
    op.drop_table("thesis_projects")
    op.drop_index("ix_academic_periods_is_active", table_name="academic_periods")
    op.drop_table("academic_periods")
    op.drop_index("ix_unavailability_blocks_block_date", table_name="unavailability_blocks")
    op.drop_index("ix_unavailability_blocks_user_id", table_name="unavailability_blocks")
    op.drop_table("unavailability_blocks")
    op.drop_index("ix_availability_windows_advisor_id", table_name="availability_windows")
    op.drop_table("availability_windows")
    op.drop_index("ix_weekly_schedules_owner_id", table_name="weekly_schedules")
    op.drop_table("weekly_schedules")
    op.drop_index("ix_users_identifier", table_name="users")
    op.drop_index("ix_users_email", table_name="users")
    op.drop_table("users")

    bind = op.get_bind()
    for enum_type in (
        notification_type_enum,
        session_status_enum,
        session_type_enum,
        thesis_status_enum,
        thesis_type_enum,
        user_role_enum,
    ):
        enum_type.drop(bind, checkfirst=True)
