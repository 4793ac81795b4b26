"""
SQLAlchemy Database Models for the Review System

These models persist the spaced repetition state created from quiz mistakes.

Tables:
- review_cards: One scheduling record per (learner, question, session)
- review_attempts: Immutable audit log of every submitted review
- review_sessions: Batch review sessions grouping attempts

ARCHITECTURE NOTE:
    This file contains SQLALCHEMY models for database persistence.
    There is a corresponding Pydantic file: app/models/learning.py

    Data flows: Service Layer → Pydantic → SQLAlchemy → Database
"""

from datetime import date, datetime, timezone
from typing import List, Optional


def _utc_now() -> datetime:
    """Return current UTC time as timezone-aware datetime."""
    return datetime.now(timezone.utc)


from sqlalchemy import (
    Boolean,
    Date,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    JSON,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db.base import Base
from app.enums.learning import CardStatus


# ===========================================
# Review Cards
# ===========================================


class ReviewCard(Base):
    """
    Spaced repetition card for one missed question.

    Cards are created after a quiz is scored, one per previously unseen
    (learner, question, session) triple, and are never hard-deleted:
    graduation archives them by clearing is_active.

    Attributes:
        id: Deterministic key built by app.services.calendar.keys.card_id_for.
        learner_id: Owner of the card.
        question_id: Question bank identifier.
        session_id: Quiz session the mistake came from.
        created_from_attempt_id: Quiz attempt the mistake came from. Optional.
        topic: Question bank topic.
        subtopic: Question bank subtopic. Optional.

        Scheduling State:
        interval: Days until the next review (always >= 1).
        confidence_factor: Interval multiplier, bounded [1.3, 2.5].
        repetition_count: Consecutive successful reviews (0 after any failure).
        next_review_date: Learner-local calendar day the card is due.
        status: new, learning, review or graduated.

        Audit:
        total_attempts / successful_attempts / failed_attempts: Review counters.
        last_reviewed_at: Timestamp of the most recent review.
        is_active: False once graduated.
        archived_at: When the card was archived.
    """

    __tablename__ = "review_cards"
    __table_args__ = (
        UniqueConstraint(
            "learner_id", "question_id", "session_id", name="uq_review_cards_mistake"
        ),
        Index(
            "ix_review_cards_learner_due",
            "learner_id",
            "is_active",
            "next_review_date",
        ),
    )

    id: Mapped[str] = mapped_column(String(255), primary_key=True)

    # Identity
    learner_id: Mapped[str] = mapped_column(String(128), index=True)
    question_id: Mapped[str] = mapped_column(String(128))
    session_id: Mapped[str] = mapped_column(String(128))
    created_from_attempt_id: Mapped[Optional[str]] = mapped_column(String(128))

    # Question bank metadata
    topic: Mapped[Optional[str]] = mapped_column(String(255))
    subtopic: Mapped[Optional[str]] = mapped_column(String(255))

    # Scheduling state
    interval: Mapped[int] = mapped_column(Integer, default=1)
    confidence_factor: Mapped[float] = mapped_column(Float, default=2.5)
    repetition_count: Mapped[int] = mapped_column(Integer, default=0)
    next_review_date: Mapped[date] = mapped_column(Date)
    status: Mapped[str] = mapped_column(String(20), default=CardStatus.NEW.value)

    # Stats
    total_attempts: Mapped[int] = mapped_column(Integer, default=0)
    successful_attempts: Mapped[int] = mapped_column(Integer, default=0)
    failed_attempts: Mapped[int] = mapped_column(Integer, default=0)
    last_reviewed_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True)
    )

    # Lifecycle
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    archived_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utc_now
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utc_now, onupdate=_utc_now
    )

    # Relationships
    attempts: Mapped[List["ReviewAttempt"]] = relationship(back_populates="card")


# ===========================================
# Review Attempts
# ===========================================


class ReviewAttempt(Base):
    """
    Immutable record of one submitted review.

    Written in the same transaction as the card update it describes, so an
    attempt never exists without its card change and vice versa.

    Attributes:
        id: Primary key, auto-incrementing integer identifier.
        card_id: Reviewed card.
        attempt_number: 1-based count of reviews on this card.
        was_correct: Pass/fail outcome.
        user_answer / correct_answer: Optional answer payload from the client.
        time_spent_seconds: Optional time on the question.
        review_session_id: Batch session this attempt belongs to. Optional.
        state_before / state_after: Snapshots of interval, confidence_factor,
            repetition_count and status around the review.
        attempted_at: When the review was submitted.
    """

    __tablename__ = "review_attempts"

    id: Mapped[int] = mapped_column(primary_key=True)
    card_id: Mapped[str] = mapped_column(ForeignKey("review_cards.id"), index=True)
    learner_id: Mapped[str] = mapped_column(String(128), index=True)
    question_id: Mapped[str] = mapped_column(String(128))

    # Attempt details
    attempt_number: Mapped[int] = mapped_column(Integer)
    was_correct: Mapped[bool] = mapped_column(Boolean)
    user_answer: Mapped[Optional[str]] = mapped_column(Text)
    correct_answer: Mapped[Optional[str]] = mapped_column(Text)
    time_spent_seconds: Mapped[Optional[int]] = mapped_column(Integer)
    review_session_id: Mapped[Optional[str]] = mapped_column(
        ForeignKey("review_sessions.id"), index=True
    )

    # State tracking
    state_before: Mapped[dict] = mapped_column(JSON)
    state_after: Mapped[dict] = mapped_column(JSON)

    attempted_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utc_now, index=True
    )

    # Relationships
    card: Mapped["ReviewCard"] = relationship(back_populates="attempts")
    session: Mapped[Optional["ReviewSession"]] = relationship(
        back_populates="attempts"
    )


# ===========================================
# Review Sessions
# ===========================================


class ReviewSession(Base):
    """
    Batch review session summary.

    Attributes:
        id: Random session identifier.
        learner_id: Owner of the session.
        session_type: See ReviewSessionType.
        cards_reviewed / cards_correct / cards_failed: Outcome counters.
        started_at / completed_at: Session boundaries.
    """

    __tablename__ = "review_sessions"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    learner_id: Mapped[str] = mapped_column(String(128), index=True)
    session_type: Mapped[str] = mapped_column(String(50))

    # Stats
    cards_reviewed: Mapped[int] = mapped_column(Integer, default=0)
    cards_correct: Mapped[int] = mapped_column(Integer, default=0)
    cards_failed: Mapped[int] = mapped_column(Integer, default=0)

    started_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utc_now
    )
    completed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))

    # Relationships
    attempts: Mapped[List["ReviewAttempt"]] = relationship(back_populates="session")
