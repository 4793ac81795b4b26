"""
Calendar Enums

Event variants stored in the calendar_events table and the study-plan
phases generated for exams and quizzes.
"""

from enum import Enum


class EventType(str, Enum):
    """
    Calendar event variants.

    Root events are created by the learner; every other variant is generated
    (study plans, review reminders) or accepted from the recommendation feed.
    """

    MAJOR_EXAM = "major_exam"
    SMALL_QUIZ = "small_quiz"
    STUDY_SUGGESTION = "study_suggestion"
    REVIEW_REMINDER = "review_reminder"
    AI_SUGGESTION = "ai_suggestion"

    @property
    def is_root(self) -> bool:
        """Whether this variant owns generated child events."""
        return self in ROOT_EVENT_TYPES


ROOT_EVENT_TYPES = frozenset({EventType.MAJOR_EXAM, EventType.SMALL_QUIZ})


class StudyPhase(str, Enum):
    """
    Phase labels for generated study suggestions.

    Exam plans ramp Warm-up → Consolidation → Sprint over 10 days;
    quiz plans ramp Initial Review → Topic Focus → Final Polish over 3 days.
    """

    WARM_UP = "Warm-up"
    CONSOLIDATION = "Consolidation"
    SPRINT = "Sprint"
    INITIAL_REVIEW = "Initial Review"
    TOPIC_FOCUS = "Topic Focus"
    FINAL_POLISH = "Final Polish"


class EvictionAction(str, Enum):
    """Outcome of classifying a past calendar event."""

    PRESERVE = "preserve"
    DELETE = "delete"


class EvictionReason(str, Enum):
    """Why an event was preserved or deleted by the nightly pass."""

    COMPLETED = "completed"
    ROOT_EVENT = "root_event"
    WITHIN_RETENTION = "within_retention"
    UNKNOWN_TYPE = "unknown_type"
    STALE_UNFINISHED = "stale_unfinished"
