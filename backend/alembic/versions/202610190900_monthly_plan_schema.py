"""Monthly plan schema: users, preferences, drafts, plans, tasks, quotas."""
from __future__ import annotations

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = "202610190900"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
    )

    op.create_table(
        "goal_preferences",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True, nullable=False),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("goals_text", sa.Text(), nullable=False),
        sa.Column("task_complexity", sa.String(length=20), nullable=False),
        sa.Column("focus_areas", sa.String(length=255), nullable=False),
        sa.Column("weekend_preference", sa.String(length=20), nullable=False),
        sa.Column(
            "fixed_commitments_json",
            postgresql.JSONB(astext_type=sa.Text()),
            nullable=False,
            server_default=sa.text("'{}'::jsonb"),
        ),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
    )
    op.create_index("ix_goal_preferences_user_id", "goal_preferences", ["user_id"], unique=False)

    op.create_table(
        "plan_drafts",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True, nullable=False),
        sa.Column("draft_key", sa.Text(), nullable=False),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("goal_preference_id", sa.Integer(), nullable=True),
        sa.Column("month_year", sa.Date(), nullable=False),
        sa.Column(
            "plan_data",
            postgresql.JSONB(astext_type=sa.Text()),
            nullable=False,
            server_default=sa.text("'{}'::jsonb"),
        ),
        sa.Column("ai_prompt", sa.Text(), nullable=False, server_default=sa.text("''")),
        sa.Column("raw_response", sa.Text(), nullable=True),
        sa.Column("extraction", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["goal_preference_id"], ["goal_preferences.id"], ondelete="SET NULL"),
        sa.UniqueConstraint("draft_key", name="uq_plan_drafts_draft_key"),
    )
    op.create_index("ix_plan_drafts_user_id", "plan_drafts", ["user_id"], unique=False)
    op.create_index("ix_plan_drafts_expires_at", "plan_drafts", ["expires_at"], unique=False)

    op.create_table(
        "monthly_plans",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True, nullable=False),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("preference_id", sa.Integer(), nullable=True),
        sa.Column("month_year", sa.Date(), nullable=False),
        sa.Column("ai_prompt", sa.Text(), nullable=False, server_default=sa.text("''")),
        sa.Column(
            "ai_response_raw",
            postgresql.JSONB(astext_type=sa.Text()),
            nullable=False,
            server_default=sa.text("'{}'::jsonb"),
        ),
        sa.Column("monthly_summary", sa.Text(), nullable=True),
        sa.Column("raw_ai_response", sa.Text(), nullable=True),
        sa.Column("extraction_confidence", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("extraction_notes", sa.Text(), nullable=True),
        sa.Column("status", sa.String(length=20), nullable=False, server_default=sa.text("'CONFIRMED'")),
        sa.Column("draft_key", sa.Text(), nullable=True),
        sa.Column("generated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.Column("confirmed_at", sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["preference_id"], ["goal_preferences.id"], ondelete="SET NULL"),
        sa.UniqueConstraint("draft_key", name="uq_monthly_plans_draft_key"),
    )
    op.create_index("ix_monthly_plans_user_id", "monthly_plans", ["user_id"], unique=False)

    op.create_table(
        "plan_tasks",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True, nullable=False),
        sa.Column("plan_id", sa.Integer(), nullable=False),
        sa.Column("title", sa.Text(), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("due_date", sa.Date(), nullable=False),
        sa.Column("priority", sa.String(length=10), nullable=False),
        sa.Column("category", sa.String(length=100), nullable=False),
        sa.Column("estimated_hours", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("week_number", sa.Integer(), nullable=False),
        sa.Column("day_of_week", sa.String(length=10), nullable=False),
        sa.Column("difficulty_level", sa.String(length=20), nullable=True),
        sa.Column("is_completed", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(["plan_id"], ["monthly_plans.id"], ondelete="CASCADE"),
    )
    op.create_index("ix_plan_tasks_plan_id", "plan_tasks", ["plan_id"], unique=False)
    op.create_index("ix_plan_tasks_due_date", "plan_tasks", ["due_date"], unique=False)

    op.create_table(
        "generation_quotas",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True, nullable=False),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("month_year", sa.Date(), nullable=False),
        sa.Column("total_allowed", sa.Integer(), nullable=False),
        sa.Column("generations_used", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.UniqueConstraint("user_id", "month_year", name="uq_generation_quotas_user_month"),
    )


def downgrade() -> None:
    op.drop_table("generation_quotas")
    op.drop_index("ix_plan_tasks_due_date", table_name="plan_tasks")
    op.drop_index("ix_plan_tasks_plan_id", table_name="plan_tasks")
    op.drop_table("plan_tasks")
    op.drop_index("ix_monthly_plans_user_id", table_name="monthly_plans")
    op.drop_table("monthly_plans")
    op.drop_index("ix_plan_drafts_expires_at", table_name="plan_drafts")
    op.drop_index("ix_plan_drafts_user_id", table_name="plan_drafts")
    op.drop_table("plan_drafts")
    op.drop_index("ix_goal_preferences_user_id", table_name="goal_preferences")
    op.drop_table("goal_preferences")
    op.drop_table("users")
