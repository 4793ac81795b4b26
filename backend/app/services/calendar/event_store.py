"""
Calendar Event Store

Persistence and query access for learner calendar events. All variants
(exams, quizzes, study suggestions, review reminders, AI suggestions) live in
one table tagged by event_type.

Handles:
- Exam/quiz creation together with the generated study plan
- Upserts keyed by deterministic ids (study plans, review reminders)
- Completion marking
- Deletion, cascading to generated children of exams and quizzes
- Range queries and grouped calendar views
- Bulk access used by the eviction pass

Usage:
    from app.services.calendar.event_store import EventStore

    store = EventStore(db_session)
    exam, plan = await store.create_root_event(
        "learner-1", EventType.MAJOR_EXAM, date(2024, 6, 20), title="Finals"
    )
    await store.delete(exam.id)  # removes the exam and its 10 suggestions
"""

import logging
from collections import defaultdict
from datetime import date, datetime
from typing import Iterable, Optional

from sqlalchemy import delete as sql_delete
from sqlalchemy import JSON, null, select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.errors import store_errors
from app.db.models_calendar import CalendarEvent
from app.enums.calendar import EventType
from app.middleware.error_handling import InvalidStateError, NotFoundError
from app.models.calendar import (
    AiSuggestionCandidate,
    CalendarDay,
    CalendarView,
    EventResponse,
)
from app.services.calendar.keys import new_event_id
from app.services.calendar.study_plan import build_study_plan
from app.services.clock import utc_now

logger = logging.getLogger(__name__)

DEFAULT_DELETE_BATCH_SIZE = 500

_DEFAULT_ROOT_TITLES = {
    EventType.MAJOR_EXAM: "Major Exam",
    EventType.SMALL_QUIZ: "Small Quiz",
}

# Rows per INSERT ... ON CONFLICT statement
UPSERT_BATCH_SIZE = 500

# Columns an upsert never overwrites on an existing row
_PRESERVED_ON_UPSERT = frozenset(
    {"id", "completed", "completed_at", "completion_data", "created_at"}
)

_UPSERT_INSERTS = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}

# CalendarDay bucket per variant
_VIEW_BUCKETS = {
    EventType.MAJOR_EXAM.value: "exams",
    EventType.SMALL_QUIZ.value: "quizzes",
    EventType.STUDY_SUGGESTION.value: "study_suggestions",
    EventType.REVIEW_REMINDER.value: "review_reminders",
    EventType.AI_SUGGESTION.value: "ai_suggestions",
}


def _event_row(event: CalendarEvent, now: datetime) -> dict:
    """Column values of a transient event, with insert defaults filled in."""
    row = {}
    for column in CalendarEvent.__table__.columns:
        value = getattr(event, column.key)
        if value is None and isinstance(column.type, JSON):
            value = null()  # SQL NULL, not a JSON 'null' document
        row[column.key] = value
    row["completed"] = bool(row["completed"])
    row["include_mistake_review"] = bool(row["include_mistake_review"])
    row["created_at"] = row["created_at"] or now
    row["updated_at"] = now
    return row


class EventStore:
    """
    Store for calendar events.

    Writes commit before returning; the create/upsert helpers that stage
    rows without committing are private.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    # ===========================================
    # Creation
    # ===========================================

    async def create_root_event(
        self,
        learner_id: str,
        event_type: EventType,
        event_date: date,
        title: Optional[str] = None,
        topics: Optional[list[str]] = None,
        subtopics: Optional[list[str]] = None,
    ) -> tuple[CalendarEvent, list[CalendarEvent]]:
        """
        Create a major exam or small quiz and its study plan.

        The root event and every generated study suggestion are committed
        together.

        Args:
            learner_id: Owner of the event
            event_type: major_exam or small_quiz
            event_date: Day of the exam/quiz
            title: Display title (defaults to the variant name)
            topics: Question topic filters, copied onto the study plan
            subtopics: Question subtopic filters, copied onto the study plan

        Returns:
            Tuple of (root event, study suggestions)

        Raises:
            InvalidStateError: If event_type is not a root variant
        """
        event_type = EventType(event_type)
        if not event_type.is_root:
            raise InvalidStateError(
                f"Only exams and quizzes can be created directly, got {event_type.value}",
                details={"event_type": event_type.value},
            )

        root = CalendarEvent(
            id=new_event_id(),
            learner_id=learner_id,
            event_type=event_type.value,
            date=event_date,
            title=title or _DEFAULT_ROOT_TITLES[event_type],
            completed=False,
            topics=list(topics or []),
            subtopics=list(subtopics or []),
            include_mistake_review=False,
        )

        async with store_errors(self.db, "create_root_event"):
            self.db.add(root)
            plan = await self._stage_upserts(build_study_plan(root))
            await self.db.commit()

        logger.info(
            f"Created {event_type.value} {root.id} on {event_date} for learner "
            f"{learner_id} with {len(plan)} study suggestions"
        )
        return root, plan

    async def generate_study_plan(self, root_event: CalendarEvent) -> list[CalendarEvent]:
        """
        (Re)generate the study plan of an existing root event.

        Suggestions are keyed by (root id, days before), so regenerating
        overwrites the existing suggestions instead of adding new ones.
        """
        async with store_errors(self.db, "generate_study_plan"):
            plan = await self._stage_upserts(build_study_plan(root_event))
            await self.db.commit()
        logger.info(f"Generated {len(plan)} study suggestions for {root_event.id}")
        return plan

    async def create_ai_suggestion(
        self, learner_id: str, candidate: AiSuggestionCandidate
    ) -> CalendarEvent:
        """Persist an accepted recommendation feed candidate."""
        event = CalendarEvent(
            id=new_event_id(),
            learner_id=learner_id,
            event_type=EventType.AI_SUGGESTION.value,
            date=candidate.suggested_date,
            title=f"AI: {candidate.subtopic or candidate.topic}",
            description=candidate.reason,
            completed=False,
            topic=candidate.topic,
            subtopic=candidate.subtopic,
            question_count=candidate.question_count,
            priority=candidate.priority,
            source_recommendation_id=candidate.source_id,
            include_mistake_review=False,
        )
        async with store_errors(self.db, "create_ai_suggestion"):
            self.db.add(event)
            await self.db.commit()

        logger.info(
            f"Added AI suggestion {event.id} ({candidate.topic}) on "
            f"{candidate.suggested_date} for learner {learner_id}"
        )
        return event

    async def upsert_events(self, events: Iterable[CalendarEvent]) -> list[CalendarEvent]:
        """
        Insert or update events by id in one commit.

        Existing rows keep their completion state; only content columns are
        refreshed. Writing the same deterministic-key events twice leaves a
        single row per key.
        """
        async with store_errors(self.db, "upsert_events"):
            stored = await self._stage_upserts(events)
            await self.db.commit()
        return stored

    async def _stage_upserts(self, events: Iterable[CalendarEvent]) -> list[CalendarEvent]:
        """
        Write events with INSERT ... ON CONFLICT (id) DO UPDATE, uncommitted.

        The database resolves conflicts, so two overlapping runs writing the
        same keys both succeed and leave one row per key.
        """
        incoming: dict[str, CalendarEvent] = {}
        for event in events:
            incoming[event.id] = event
        if not incoming:
            return []

        dialect = self.db.get_bind().dialect.name
        insert = _UPSERT_INSERTS.get(dialect)
        if insert is None:
            raise InvalidStateError(
                f"Event upserts are not supported on {dialect}",
                details={"dialect": dialect},
            )

        now = utc_now()
        event_ids = list(incoming)
        stored: dict[str, CalendarEvent] = {}
        for start in range(0, len(event_ids), UPSERT_BATCH_SIZE):
            batch = event_ids[start : start + UPSERT_BATCH_SIZE]
            stmt = insert(CalendarEvent.__table__).values(
                [_event_row(incoming[event_id], now) for event_id in batch]
            )
            stmt = stmt.on_conflict_do_update(
                index_elements=[CalendarEvent.__table__.c.id],
                set_={
                    column.key: stmt.excluded[column.key]
                    for column in CalendarEvent.__table__.columns
                    if column.key not in _PRESERVED_ON_UPSERT
                },
            )
            await self.db.execute(stmt)

            # Reload so the returned rows (and any already in the session)
            # reflect what is stored, including preserved completion state
            result = await self.db.execute(
                select(CalendarEvent)
                .where(CalendarEvent.id.in_(batch))
                .execution_options(populate_existing=True)
            )
            stored.update({event.id: event for event in result.scalars().all()})

        return [stored[event_id] for event_id in event_ids]

    # ===========================================
    # Mutation
    # ===========================================

    async def get_event(self, event_id: str) -> CalendarEvent:
        """
        Load an event by id.

        Raises:
            NotFoundError: If the event does not exist
        """
        async with store_errors(self.db, "get_event"):
            event = await self.db.get(CalendarEvent, event_id)
        if event is None:
            raise NotFoundError(
                f"Event not found: {event_id}", details={"event_id": event_id}
            )
        return event

    async def mark_completed(
        self,
        event_id: str,
        completion_payload: Optional[dict] = None,
        now: Optional[datetime] = None,
    ) -> CalendarEvent:
        """
        Mark an event completed and store the completion payload.

        Completed events are never evicted.

        Raises:
            NotFoundError: If the event does not exist
        """
        event = await self.get_event(event_id)
        async with store_errors(self.db, "mark_completed"):
            event.completed = True
            event.completed_at = now or utc_now()
            event.completion_data = dict(completion_payload or {})
            await self.db.commit()

        logger.info(f"Marked event {event_id} completed")
        return event

    async def delete(self, event_id: str, cascade: bool = True) -> int:
        """
        Delete an event, and its generated children when cascading.

        Children are the events whose parent_event_id is this id; they are
        removed in the same statement batch as the root, and only for
        exam/quiz roots.

        Args:
            event_id: Event to delete
            cascade: Also delete generated children of an exam/quiz

        Returns:
            Number of events deleted (root included)

        Raises:
            NotFoundError: If the event does not exist
        """
        event = await self.get_event(event_id)
        is_root = event.event_type in {t.value for t in EventType if t.is_root}

        async with store_errors(self.db, "delete_event"):
            children_deleted = 0
            if cascade and is_root:
                result = await self.db.execute(
                    sql_delete(CalendarEvent).where(
                        CalendarEvent.parent_event_id == event_id
                    )
                )
                children_deleted = result.rowcount or 0
            await self.db.delete(event)
            await self.db.commit()

        logger.info(
            f"Deleted event {event_id}"
            + (f" and {children_deleted} child events" if children_deleted else "")
        )
        return 1 + children_deleted

    # ===========================================
    # Queries
    # ===========================================

    async def get_events_in_range(
        self, learner_id: str, start: date, end: date
    ) -> list[CalendarEvent]:
        """All of a learner's events dated within [start, end], by date."""
        if end < start:
            raise InvalidStateError(
                f"Range end {end} precedes start {start}",
                details={"start": start.isoformat(), "end": end.isoformat()},
            )
        query = (
            select(CalendarEvent)
            .where(
                CalendarEvent.learner_id == learner_id,
                CalendarEvent.date >= start,
                CalendarEvent.date <= end,
            )
            .order_by(CalendarEvent.date.asc(), CalendarEvent.id.asc())
        )
        async with store_errors(self.db, "get_events_in_range"):
            result = await self.db.execute(query)
            return list(result.scalars().all())

    async def get_calendar_view(
        self, learner_id: str, start: date, end: date
    ) -> CalendarView:
        """
        Events in [start, end] grouped by day and variant.

        Only days that have events are included. Unknown variants are left
        out of the view.
        """
        events = await self.get_events_in_range(learner_id, start, end)

        buckets: dict[date, dict[str, list]] = defaultdict(lambda: defaultdict(list))
        for event in events:
            bucket = _VIEW_BUCKETS.get(event.event_type)
            if bucket is None:
                logger.debug(f"Skipping event {event.id} with unknown type {event.event_type}")
                continue
            buckets[event.date][bucket].append(EventResponse.model_validate(event))

        days = [CalendarDay(date=day, **buckets[day]) for day in sorted(buckets)]
        return CalendarView(
            learner_id=learner_id, start_date=start, end_date=end, days=days
        )

    # ===========================================
    # Eviction Support
    # ===========================================

    async def list_learner_ids(self) -> list[str]:
        """Every learner that has at least one calendar event."""
        async with store_errors(self.db, "list_learner_ids"):
            result = await self.db.execute(
                select(CalendarEvent.learner_id)
                .distinct()
                .order_by(CalendarEvent.learner_id)
            )
            return list(result.scalars().all())

    async def get_events_before(self, learner_id: str, cutoff: date) -> list[CalendarEvent]:
        """A learner's events dated strictly before `cutoff`."""
        query = (
            select(CalendarEvent)
            .where(CalendarEvent.learner_id == learner_id, CalendarEvent.date < cutoff)
            .order_by(CalendarEvent.date.asc(), CalendarEvent.id.asc())
        )
        async with store_errors(self.db, "get_events_before"):
            result = await self.db.execute(query)
            return list(result.scalars().all())

    async def delete_by_ids(
        self,
        event_ids: list[str],
        batch_size: int = DEFAULT_DELETE_BATCH_SIZE,
    ) -> tuple[int, int]:
        """
        Delete events by id in fixed-size batches, one commit per batch.

        Args:
            event_ids: Events to delete
            batch_size: Maximum deletes per transaction

        Returns:
            Tuple of (events deleted, batches committed)
        """
        if batch_size < 1:
            raise InvalidStateError(f"Batch size must be positive, got {batch_size}")

        deleted = 0
        batches = 0
        for start in range(0, len(event_ids), batch_size):
            chunk = event_ids[start : start + batch_size]
            async with store_errors(self.db, "delete_by_ids"):
                result = await self.db.execute(
                    sql_delete(CalendarEvent).where(CalendarEvent.id.in_(chunk))
                )
                await self.db.commit()
            deleted += result.rowcount or 0
            batches += 1
        return deleted, batches
