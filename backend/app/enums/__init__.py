"""
Centralized enum definitions for the application.

All enums are organized by domain:
- learning.py: Review card states, review session types
- calendar.py: Calendar event variants, study phases, eviction outcomes

Usage:
    from app.enums import CardStatus, EventType

    # Or import from specific module
    from app.enums.calendar import StudyPhase
"""

from app.enums.learning import (
    CardStatus,
    ReviewSessionType,
)
from app.enums.calendar import (
    ROOT_EVENT_TYPES,
    EventType,
    EvictionAction,
    EvictionReason,
    StudyPhase,
)

__all__ = [
    # Learning enums
    "CardStatus",
    "ReviewSessionType",
    # Calendar enums
    "ROOT_EVENT_TYPES",
    "EventType",
    "EvictionAction",
    "EvictionReason",
    "StudyPhase",
]
