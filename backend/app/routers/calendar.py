"""
Calendar API Router

Endpoints for the learner calendar.

Endpoints:
- POST /api/calendar/events - Create an exam/quiz with its study plan
- POST /api/calendar/ai-suggestions - Accept a recommendation onto the calendar
- GET /api/calendar/events - Events in a date range
- GET /api/calendar/view - Events in a date range grouped by day and variant
- POST /api/calendar/events/{id}/complete - Mark an event completed
- DELETE /api/calendar/events/{id} - Delete an event (cascades to its plan)
- POST /api/calendar/reminders/schedule - Materialize today's review reminders
- GET /api/calendar/eviction/preview - Dry-run eviction statistics
"""

import logging
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.base import get_db
from app.models.calendar import (
    AiSuggestionAccept,
    CalendarView,
    CompletionRequest,
    DeleteResult,
    EventResponse,
    EvictionPreview,
    RootEventCreate,
    RootEventResponse,
    ScheduleRemindersRequest,
    ScheduleRemindersResponse,
)
from app.services.calendar import EventStore, EvictionEngine
from app.services.clock import default_cutoff, local_today
from app.services.learning import ReviewReminderScheduler

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/calendar", tags=["calendar"])


# ===========================================
# Dependency Injection
# ===========================================


async def get_event_store(db: AsyncSession = Depends(get_db)) -> EventStore:
    """Get calendar event store."""
    return EventStore(db)


async def get_reminder_scheduler(
    db: AsyncSession = Depends(get_db),
) -> ReviewReminderScheduler:
    """Get just-in-time review reminder scheduler."""
    return ReviewReminderScheduler(db)


def get_eviction_engine() -> EvictionEngine:
    """Get eviction engine (opens its own sessions)."""
    return EvictionEngine()


# ===========================================
# Event Creation
# ===========================================


@router.post(
    "/events", response_model=RootEventResponse, status_code=status.HTTP_201_CREATED
)
async def create_root_event(
    request: RootEventCreate,
    store: EventStore = Depends(get_event_store),
) -> RootEventResponse:
    """
    Create a major exam or small quiz.

    Exams get a 10-day study plan, quizzes a 3-day plan.
    """
    root, plan = await store.create_root_event(
        request.learner_id,
        request.event_type,
        request.date,
        title=request.title,
        topics=request.topics,
        subtopics=request.subtopics,
    )
    return RootEventResponse(
        event=EventResponse.model_validate(root),
        study_plan=[EventResponse.model_validate(event) for event in plan],
    )


@router.post(
    "/ai-suggestions",
    response_model=EventResponse,
    status_code=status.HTTP_201_CREATED,
)
async def accept_ai_suggestion(
    request: AiSuggestionAccept,
    store: EventStore = Depends(get_event_store),
) -> EventResponse:
    """Add an accepted recommendation to the learner's calendar."""
    event = await store.create_ai_suggestion(request.learner_id, request.candidate)
    return EventResponse.model_validate(event)


# ===========================================
# Queries
# ===========================================


@router.get("/events", response_model=list[EventResponse])
async def get_events_in_range(
    learner_id: str = Query(..., min_length=1),
    start: date = Query(...),
    end: date = Query(...),
    store: EventStore = Depends(get_event_store),
) -> list[EventResponse]:
    """All events dated within [start, end]."""
    events = await store.get_events_in_range(learner_id, start, end)
    return [EventResponse.model_validate(event) for event in events]


@router.get("/view", response_model=CalendarView)
async def get_calendar_view(
    learner_id: str = Query(..., min_length=1),
    start: date = Query(...),
    end: date = Query(...),
    store: EventStore = Depends(get_event_store),
) -> CalendarView:
    """Events within [start, end] grouped by day and variant."""
    return await store.get_calendar_view(learner_id, start, end)


# ===========================================
# Mutation
# ===========================================


@router.post("/events/{event_id}/complete", response_model=EventResponse)
async def mark_completed(
    event_id: str,
    request: CompletionRequest,
    store: EventStore = Depends(get_event_store),
) -> EventResponse:
    """Mark an event completed. Completed events are never evicted."""
    event = await store.mark_completed(event_id, request.completion_data)
    return EventResponse.model_validate(event)


@router.delete("/events/{event_id}", response_model=DeleteResult)
async def delete_event(
    event_id: str,
    cascade: bool = Query(True, description="Also delete the generated study plan"),
    store: EventStore = Depends(get_event_store),
) -> DeleteResult:
    """Delete an event, and its study plan when it is an exam or quiz."""
    deleted = await store.delete(event_id, cascade=cascade)
    return DeleteResult(event_id=event_id, deleted_count=deleted)


# ===========================================
# Jobs
# ===========================================


@router.post("/reminders/schedule", response_model=ScheduleRemindersResponse)
async def schedule_reminders(
    request: ScheduleRemindersRequest,
    scheduler: ReviewReminderScheduler = Depends(get_reminder_scheduler),
) -> ScheduleRemindersResponse:
    """
    Materialize review reminders for the learner's cards due on the day.

    Idempotent: calling it again for the same day writes the same reminders.
    """
    on = request.for_date or local_today()
    scheduled = await scheduler.schedule_due_reviews(request.learner_id, on)
    return ScheduleRemindersResponse(
        learner_id=request.learner_id, date=on, scheduled=scheduled
    )


@router.get("/eviction/preview", response_model=EvictionPreview)
async def preview_eviction(
    learner_id: str = Query(..., min_length=1),
    cutoff: Optional[date] = Query(None, description="Defaults to yesterday"),
    engine: EvictionEngine = Depends(get_eviction_engine),
) -> EvictionPreview:
    """What the nightly eviction pass would delete for a learner."""
    return await engine.preview_learner(
        learner_id, cutoff or default_cutoff(local_today())
    )
