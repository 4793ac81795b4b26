"""
SQLAlchemy Database Models for the Learner Calendar

All calendar variants share one table, tagged by event_type. Variant-specific
columns are nullable and only populated for the variants that use them.

Tables:
- calendar_events: Exams, quizzes, study suggestions, review reminders and
  accepted AI suggestions

Variant columns:
    major_exam / small_quiz:  topics, subtopics
    study_suggestion:         topics, subtopics, question_count, phase,
                              include_mistake_review, parent_event_id
    review_reminder:          question_id, srs_card_id, topic, subtopic
    ai_suggestion:            topic, subtopic, question_count, priority,
                              source_recommendation_id
"""

from datetime import date, datetime, timezone
from typing import Optional

from sqlalchemy import Boolean, Date, DateTime, Index, Integer, JSON, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from app.db.base import Base


def _utc_now() -> datetime:
    """Return current UTC time as timezone-aware datetime."""
    return datetime.now(timezone.utc)


class CalendarEvent(Base):
    """
    A calendar-attached exam, quiz, reminder or suggestion.

    Generated children reference their root through parent_event_id. There is
    deliberately no foreign key: cascade deletion is an explicit batch delete
    issued by EventStore.delete, and eviction deletes children independently.

    Attributes:
        id: String key. Random for roots and AI suggestions, deterministic
            for study suggestions and review reminders (see keys.py).
        learner_id: Owner of the event.
        event_type: EventType value.
        date: Learner-local calendar day (no time component).
        title / description: Display text.
        completed: Set by mark_completed; completed events are never evicted.
        completed_at / completion_data: Completion timestamp and payload.
        parent_event_id: Root event id for generated children.
    """

    __tablename__ = "calendar_events"
    __table_args__ = (Index("ix_calendar_events_learner_date", "learner_id", "date"),)

    id: Mapped[str] = mapped_column(String(255), primary_key=True)
    learner_id: Mapped[str] = mapped_column(String(128), index=True)
    event_type: Mapped[str] = mapped_column(String(30))
    date: Mapped[date] = mapped_column(Date)
    title: Mapped[str] = mapped_column(String(255))
    description: Mapped[Optional[str]] = mapped_column(Text)

    # Completion
    completed: Mapped[bool] = mapped_column(Boolean, default=False)
    completed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    completion_data: Mapped[Optional[dict]] = mapped_column(JSON)

    # Generated-from link
    parent_event_id: Mapped[Optional[str]] = mapped_column(String(255), index=True)

    # Question filters (roots and study suggestions)
    topics: Mapped[Optional[list]] = mapped_column(JSON)
    subtopics: Mapped[Optional[list]] = mapped_column(JSON)

    # Study suggestion fields
    question_count: Mapped[Optional[int]] = mapped_column(Integer)
    phase: Mapped[Optional[str]] = mapped_column(String(40))
    include_mistake_review: Mapped[bool] = mapped_column(Boolean, default=False)

    # Review reminder fields
    question_id: Mapped[Optional[str]] = mapped_column(String(128))
    srs_card_id: Mapped[Optional[str]] = mapped_column(String(255), index=True)

    # Single-topic fields (review reminders and AI suggestions)
    topic: Mapped[Optional[str]] = mapped_column(String(255))
    subtopic: Mapped[Optional[str]] = mapped_column(String(255))

    # AI suggestion fields
    priority: Mapped[Optional[str]] = mapped_column(String(20))
    source_recommendation_id: Mapped[Optional[str]] = mapped_column(String(128))

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utc_now
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utc_now, onupdate=_utc_now
    )
