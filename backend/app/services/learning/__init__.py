"""
Review Services

Services for the mistake review system.

Modules:
- interval_policy: Pure interval/confidence update after each review
- card_store: Review card persistence, due queries and review submission
- review_scheduler: Just-in-time review reminders for cards due today

Usage:
    from app.services.learning import CardStore, ReviewReminderScheduler
"""

from app.services.learning.card_store import CardStore
from app.services.learning.interval_policy import (
    CardSchedule,
    IntervalPolicyConfig,
    next_state,
)
from app.services.learning.review_scheduler import ReviewReminderScheduler

__all__ = [
    "CardSchedule",
    "CardStore",
    "IntervalPolicyConfig",
    "ReviewReminderScheduler",
    "next_state",
]
