"""
SQLAlchemy Database Models

Registers every table with Base.metadata. app.db.base imports this module
after Base is defined so create_all and Alembic see the full schema.

Tables:
- review_cards, review_attempts, review_sessions (models_learning.py)
- calendar_events (models_calendar.py)
"""

from app.db.models_calendar import CalendarEvent
from app.db.models_learning import ReviewAttempt, ReviewCard, ReviewSession

__all__ = [
    "CalendarEvent",
    "ReviewAttempt",
    "ReviewCard",
    "ReviewSession",
]
