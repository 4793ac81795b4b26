"""Initial review and calendar schema

Creates the mistake review tables (review_cards, review_sessions,
review_attempts) and the single-table calendar (calendar_events).

Revision ID: 001
Revises:
Create Date: 2026-10-19
"""

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = "001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    # ===========================================
    # Create review_cards table
    # ===========================================
    op.create_table(
        "review_cards",
        sa.Column("id", sa.String(255), primary_key=True),
        # Identity
        sa.Column("learner_id", sa.String(128), nullable=False, index=True),
        sa.Column("question_id", sa.String(128), nullable=False),
        sa.Column("session_id", sa.String(128), nullable=False),
        sa.Column("created_from_attempt_id", sa.String(128), nullable=True),
        sa.Column("topic", sa.String(255), nullable=True),
        sa.Column("subtopic", sa.String(255), nullable=True),
        # Scheduling state
        sa.Column("interval", sa.Integer(), nullable=False, server_default="1"),
        sa.Column(
            "confidence_factor", sa.Float(), nullable=False, server_default="2.5"
        ),
        sa.Column(
            "repetition_count", sa.Integer(), nullable=False, server_default="0"
        ),
        sa.Column("next_review_date", sa.Date(), nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default="new"),
        # Stats
        sa.Column("total_attempts", sa.Integer(), nullable=False, server_default="0"),
        sa.Column(
            "successful_attempts", sa.Integer(), nullable=False, server_default="0"
        ),
        sa.Column("failed_attempts", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("last_reviewed_at", sa.DateTime(timezone=True), nullable=True),
        # Lifecycle
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("archived_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.UniqueConstraint(
            "learner_id", "question_id", "session_id", name="uq_review_cards_mistake"
        ),
        sa.CheckConstraint("interval >= 1", name="ck_review_cards_interval"),
        sa.CheckConstraint(
            "confidence_factor >= 1.3 AND confidence_factor <= 2.5",
            name="ck_review_cards_confidence_factor",
        ),
    )
    op.create_index(
        "ix_review_cards_learner_due",
        "review_cards",
        ["learner_id", "is_active", "next_review_date"],
    )

    # ===========================================
    # Create review_sessions table
    # ===========================================
    op.create_table(
        "review_sessions",
        sa.Column("id", sa.String(64), primary_key=True),
        sa.Column("learner_id", sa.String(128), nullable=False, index=True),
        sa.Column("session_type", sa.String(50), nullable=False),
        sa.Column("cards_reviewed", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("cards_correct", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("cards_failed", sa.Integer(), nullable=False, server_default="0"),
        sa.Column(
            "started_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
    )

    # ===========================================
    # Create review_attempts table
    # ===========================================
    op.create_table(
        "review_attempts",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "card_id",
            sa.String(255),
            sa.ForeignKey("review_cards.id"),
            nullable=False,
            index=True,
        ),
        sa.Column("learner_id", sa.String(128), nullable=False, index=True),
        sa.Column("question_id", sa.String(128), nullable=False),
        # Attempt details
        sa.Column("attempt_number", sa.Integer(), nullable=False),
        sa.Column("was_correct", sa.Boolean(), nullable=False),
        sa.Column("user_answer", sa.Text(), nullable=True),
        sa.Column("correct_answer", sa.Text(), nullable=True),
        sa.Column("time_spent_seconds", sa.Integer(), nullable=True),
        sa.Column(
            "review_session_id",
            sa.String(64),
            sa.ForeignKey("review_sessions.id"),
            nullable=True,
            index=True,
        ),
        # State tracking
        sa.Column("state_before", sa.JSON(), nullable=False),
        sa.Column("state_after", sa.JSON(), nullable=False),
        sa.Column(
            "attempted_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
            index=True,
        ),
    )

    # ===========================================
    # Create calendar_events table
    # ===========================================
    op.create_table(
        "calendar_events",
        sa.Column("id", sa.String(255), primary_key=True),
        sa.Column("learner_id", sa.String(128), nullable=False, index=True),
        sa.Column("event_type", sa.String(30), nullable=False),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        # Completion
        sa.Column("completed", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("completion_data", sa.JSON(), nullable=True),
        # Generated-from link (no FK: cascade is an explicit batch delete)
        sa.Column("parent_event_id", sa.String(255), nullable=True, index=True),
        # Question filters
        sa.Column("topics", sa.JSON(), nullable=True),
        sa.Column("subtopics", sa.JSON(), nullable=True),
        # Study suggestion fields
        sa.Column("question_count", sa.Integer(), nullable=True),
        sa.Column("phase", sa.String(40), nullable=True),
        sa.Column(
            "include_mistake_review",
            sa.Boolean(),
            nullable=False,
            server_default=sa.false(),
        ),
        # Review reminder fields
        sa.Column("question_id", sa.String(128), nullable=True),
        sa.Column("srs_card_id", sa.String(255), nullable=True, index=True),
        # Single-topic and AI suggestion fields
        sa.Column("topic", sa.String(255), nullable=True),
        sa.Column("subtopic", sa.String(255), nullable=True),
        sa.Column("priority", sa.String(20), nullable=True),
        sa.Column("source_recommendation_id", sa.String(128), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
    )
    op.create_index(
        "ix_calendar_events_learner_date",
        "calendar_events",
        ["learner_id", "date"],
    )


def downgrade() -> None:
    op.drop_index("ix_calendar_events_learner_date", table_name="calendar_events")
    op.drop_table("calendar_events")
    op.drop_table("review_attempts")
    op.drop_table("review_sessions")
    op.drop_index("ix_review_cards_learner_due", table_name="review_cards")
    op.drop_table("review_cards")
