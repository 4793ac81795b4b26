"""
Calendar Services

Modules:
- keys: Deterministic ids for idempotent event writes
- study_plan: Study-suggestion schedules for exams and quizzes
- event_store: Calendar event persistence, cascade delete and views
- eviction: Nightly pass deleting stale unfinished events

Usage:
    from app.services.calendar import EventStore, EvictionEngine
"""

from app.services.calendar.event_store import EventStore
from app.services.calendar.eviction import (
    EvictionConfig,
    EvictionDecision,
    EvictionEngine,
    classify,
)
from app.services.calendar.study_plan import build_study_plan

__all__ = [
    "EventStore",
    "EvictionConfig",
    "EvictionDecision",
    "EvictionEngine",
    "build_study_plan",
    "classify",
]
