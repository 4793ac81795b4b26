"""
Calendar API Models (Pydantic)

Request/response schemas for the learner calendar:
- Exam/quiz creation with generated study plans
- Accepted AI suggestions from the recommendation feed
- Event listings, grouped calendar views and completion
- Eviction reports and previews

ARCHITECTURE NOTE:
    There is a corresponding SQLAlchemy file: app/db/models_calendar.py
"""


from datetime import date, datetime
from typing import Literal, Optional

from pydantic import Field

from app.enums.calendar import EventType
from app.models.base import StrictRequest, StrictResponse


# ===========================================
# Requests
# ===========================================


class RootEventCreate(StrictRequest):
    """
    Request to create a major exam or small quiz.

    The study plan for the event is generated in the same request.
    """

    learner_id: str = Field(..., min_length=1)
    event_type: EventType = Field(..., description="major_exam or small_quiz")
    date: date
    title: Optional[str] = Field(None, description="Defaults to the variant name")
    topics: list[str] = Field(default_factory=list)
    subtopics: list[str] = Field(default_factory=list)


class AiSuggestionCandidate(StrictRequest):
    """A recommendation feed candidate accepted onto the calendar."""

    topic: str = Field(..., min_length=1)
    subtopic: Optional[str] = None
    suggested_date: date
    priority: Literal["high", "medium", "low"] = "medium"
    question_count: int = Field(10, ge=1)
    reason: Optional[str] = Field(None, description="Why the feed suggested it")
    source_id: Optional[str] = Field(None, description="Recommendation id")


class AiSuggestionAccept(StrictRequest):
    """Request to accept a recommendation for a learner."""

    learner_id: str = Field(..., min_length=1)
    candidate: AiSuggestionCandidate


class CompletionRequest(StrictRequest):
    """Free-form completion payload (score, answered count, ...)."""

    completion_data: dict = Field(default_factory=dict)


class ScheduleRemindersRequest(StrictRequest):
    """Trigger the just-in-time reminder pass for one learner."""

    learner_id: str = Field(..., min_length=1)
    for_date: Optional[date] = Field(None, description="Defaults to the local today")


# ===========================================
# Responses
# ===========================================


class EventResponse(StrictResponse):
    """Calendar event as returned by the API."""

    id: str
    learner_id: str
    event_type: str  # EventType value; unknown variants are passed through
    date: date
    title: str
    description: Optional[str] = None
    completed: bool = False
    completed_at: Optional[datetime] = None
    completion_data: Optional[dict] = None
    parent_event_id: Optional[str] = None

    topics: Optional[list[str]] = None
    subtopics: Optional[list[str]] = None
    question_count: Optional[int] = None
    phase: Optional[str] = None
    include_mistake_review: bool = False

    question_id: Optional[str] = None
    srs_card_id: Optional[str] = None
    topic: Optional[str] = None
    subtopic: Optional[str] = None
    priority: Optional[str] = None
    source_recommendation_id: Optional[str] = None


class RootEventResponse(StrictResponse):
    """A created exam/quiz together with its generated study plan."""

    event: EventResponse
    study_plan: list[EventResponse] = Field(default_factory=list)


class DeleteResult(StrictResponse):
    """Result of deleting an event (and its children when cascading)."""

    event_id: str
    deleted_count: int


class CalendarDay(StrictResponse):
    """Events on one day, bucketed by variant."""

    date: date
    exams: list[EventResponse] = Field(default_factory=list)
    quizzes: list[EventResponse] = Field(default_factory=list)
    study_suggestions: list[EventResponse] = Field(default_factory=list)
    review_reminders: list[EventResponse] = Field(default_factory=list)
    ai_suggestions: list[EventResponse] = Field(default_factory=list)


class CalendarView(StrictResponse):
    """Calendar data for a date range, grouped by day."""

    learner_id: str
    start_date: date
    end_date: date
    days: list[CalendarDay] = Field(default_factory=list)


class ScheduleRemindersResponse(StrictResponse):
    """Result of one just-in-time reminder pass."""

    learner_id: str
    date: date
    scheduled: int


# ===========================================
# Eviction
# ===========================================


class LearnerEvictionResult(StrictResponse):
    """Eviction outcome for one learner."""

    learner_id: str
    events_scanned: int = 0
    events_deleted: int = 0
    events_preserved: int = 0
    batches: int = 0


class EvictionError(StrictResponse):
    """A learner whose eviction failed."""

    learner_id: str
    error: str


class EvictionReport(StrictResponse):
    """Report of one nightly eviction pass over all learners."""

    cutoff_date: date
    users_processed: int = 0
    events_deleted: int = 0
    events_preserved: int = 0
    errors: list[EvictionError] = Field(default_factory=list)
    learners: list[LearnerEvictionResult] = Field(default_factory=list)
    started_at: datetime
    finished_at: Optional[datetime] = None


class EvictionPreview(StrictResponse):
    """Dry-run eviction statistics for one learner."""

    learner_id: str
    cutoff_date: date
    total: int = 0
    completed: int = 0
    unfinished: int = 0
    deletable: int = 0
    preserved_by_reason: dict[str, int] = Field(default_factory=dict)
