"""
Deterministic keys for idempotent writes.

Records that may be generated more than once (a retried quiz submission, a
re-run of the daily reminder job, regenerating a study plan) are keyed by
their identifying inputs. Writing the same record twice therefore targets the
same primary key, and the stores upsert instead of duplicating.

Key formats (part of the stores' write contract):
    review card:       card:{learner_id}:{question_id}:{session_id}
    review reminder:   reminder:{card_id}:{YYYY-MM-DD}
    study suggestion:  plan:{root_event_id}:d{days_before}

Root events (exams, quizzes) and accepted AI suggestions are created by
explicit learner action and use random ids from new_event_id().
"""

from datetime import date
from uuid import uuid4


def card_id_for(learner_id: str, question_id: str, session_id: str) -> str:
    """Key of the review card for one mistake in one quiz session."""
    return f"card:{learner_id}:{question_id}:{session_id}"


def review_reminder_id(card_id: str, review_date: date) -> str:
    """Key of the reminder for a card on the day it is due."""
    return f"reminder:{card_id}:{review_date.isoformat()}"


def study_suggestion_id(root_event_id: str, days_before: int) -> str:
    """Key of the study suggestion `days_before` days ahead of a root event."""
    return f"plan:{root_event_id}:d{days_before}"


def new_event_id() -> str:
    """Random id for learner-created events."""
    return str(uuid4())
