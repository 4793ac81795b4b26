"""Pydantic models for the application."""

from app.models.calendar import EventResponse, EvictionReport
from app.models.learning import CardResponse, MissedQuestion, ReviewResult

__all__ = [
    "CardResponse",
    "EventResponse",
    "EvictionReport",
    "MissedQuestion",
    "ReviewResult",
]
