"""
Calendar Eviction Engine

Nightly pass that deletes stale, unfinished calendar events while keeping the
ones learners care about.

For each learner, events dated before the cutoff (yesterday by default) are
classified:

    preserve  completed events (history and analytics)
    preserve  major exams and small quizzes, even unfinished
    preserve  review reminders dated within the retention window
              (date >= cutoff - retention_days)
    preserve  unknown event types
    delete    unfinished study suggestions and AI suggestions
    delete    unfinished review reminders older than the retention window

Deletes run in fixed-size batches with one commit per batch. Learners are
processed concurrently under a semaphore, each with its own session.
A learner whose pass fails (after one retry on StoreUnavailableError) is
recorded in the report's errors and never aborts the run. Classification is a
pure function of event state, so re-running a day is safe.

Usage:
    from app.services.calendar.eviction import EvictionEngine

    engine = EvictionEngine()
    report = await engine.run(today=local_today())
"""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Callable, Optional

from sqlalchemy.ext.asyncio import AsyncSession
from tenacity import (
    AsyncRetrying,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
    wait_fixed,
)

from app.config.settings import settings
from app.db.base import async_session_maker
from app.db.models_calendar import CalendarEvent
from app.enums.calendar import (
    ROOT_EVENT_TYPES,
    EventType,
    EvictionAction,
    EvictionReason,
)
from app.middleware.error_handling import StoreUnavailableError
from app.models.calendar import (
    EvictionError,
    EvictionPreview,
    EvictionReport,
    LearnerEvictionResult,
)
from app.services.calendar.event_store import EventStore
from app.services.clock import default_cutoff, utc_now

logger = logging.getLogger(__name__)

_ROOT_TYPE_VALUES = frozenset(t.value for t in ROOT_EVENT_TYPES)
_STALE_TYPE_VALUES = frozenset(
    {EventType.STUDY_SUGGESTION.value, EventType.AI_SUGGESTION.value}
)


@dataclass(frozen=True)
class EvictionConfig:
    """Tunables for the eviction pass. Defaults mirror the EVICTION_* settings."""

    retention_days: int = field(
        default_factory=lambda: settings.EVICTION_RETENTION_DAYS
    )
    batch_size: int = field(default_factory=lambda: settings.EVICTION_BATCH_SIZE)
    max_concurrency: int = field(
        default_factory=lambda: settings.EVICTION_MAX_CONCURRENCY
    )
    retry_attempts: int = 2  # first try plus one retry
    retry_wait_seconds: float = 1.0


@dataclass(frozen=True)
class EvictionDecision:
    """Classification of one past event."""

    action: EvictionAction
    reason: EvictionReason

    @property
    def should_delete(self) -> bool:
        return self.action == EvictionAction.DELETE


def classify(event: CalendarEvent, cutoff: date, retention_days: int) -> EvictionDecision:
    """
    Decide whether a past event is preserved or deleted.

    Args:
        event: Event dated before the cutoff
        cutoff: Eviction cutoff day
        retention_days: How long unfinished review reminders are kept

    Returns:
        EvictionDecision with the action and the rule that produced it
    """
    if event.completed:
        return EvictionDecision(EvictionAction.PRESERVE, EvictionReason.COMPLETED)

    if event.event_type in _ROOT_TYPE_VALUES:
        return EvictionDecision(EvictionAction.PRESERVE, EvictionReason.ROOT_EVENT)

    if event.event_type == EventType.REVIEW_REMINDER.value:
        if event.date >= cutoff - timedelta(days=retention_days):
            return EvictionDecision(
                EvictionAction.PRESERVE, EvictionReason.WITHIN_RETENTION
            )
        return EvictionDecision(EvictionAction.DELETE, EvictionReason.STALE_UNFINISHED)

    if event.event_type in _STALE_TYPE_VALUES:
        return EvictionDecision(EvictionAction.DELETE, EvictionReason.STALE_UNFINISHED)

    return EvictionDecision(EvictionAction.PRESERVE, EvictionReason.UNKNOWN_TYPE)


class EvictionEngine:
    """
    Runs the eviction pass for one learner or for every learner.

    Attributes:
        session_factory: Callable returning an async session context manager
        config: EvictionConfig
    """

    def __init__(
        self,
        session_factory: Optional[Callable[[], AsyncSession]] = None,
        config: Optional[EvictionConfig] = None,
    ):
        self.session_factory = session_factory or async_session_maker
        self.config = config or EvictionConfig()

    async def evict_learner(self, learner_id: str, cutoff: date) -> LearnerEvictionResult:
        """
        Evict one learner's stale events.

        Queries the learner's past events, classifies them, then deletes the
        deletable ones in batches. The query and the deletes run in sequence
        on one session.
        """
        async with self.session_factory() as db:
            store = EventStore(db)
            events = await store.get_events_before(learner_id, cutoff)

            to_delete = [
                event.id
                for event in events
                if classify(event, cutoff, self.config.retention_days).should_delete
            ]
            deleted, batches = await store.delete_by_ids(
                to_delete, batch_size=self.config.batch_size
            )

        result = LearnerEvictionResult(
            learner_id=learner_id,
            events_scanned=len(events),
            events_deleted=deleted,
            events_preserved=len(events) - len(to_delete),
            batches=batches,
        )
        logger.info(
            f"Evicted learner {learner_id}: {deleted} deleted, "
            f"{result.events_preserved} preserved of {len(events)} before {cutoff}"
        )
        return result

    async def preview_learner(self, learner_id: str, cutoff: date) -> EvictionPreview:
        """Eviction statistics for one learner without deleting anything."""
        async with self.session_factory() as db:
            events = await EventStore(db).get_events_before(learner_id, cutoff)

        preview = EvictionPreview(
            learner_id=learner_id, cutoff_date=cutoff, total=len(events)
        )
        for event in events:
            if event.completed:
                preview.completed += 1
            else:
                preview.unfinished += 1

            decision = classify(event, cutoff, self.config.retention_days)
            if decision.should_delete:
                preview.deletable += 1
            else:
                reason = decision.reason.value
                preview.preserved_by_reason[reason] = (
                    preview.preserved_by_reason.get(reason, 0) + 1
                )
        return preview

    async def _evict_with_retry(self, learner_id: str, cutoff: date) -> LearnerEvictionResult:
        async for attempt in AsyncRetrying(
            stop=stop_after_attempt(self.config.retry_attempts),
            wait=wait_fixed(self.config.retry_wait_seconds),
            retry=retry_if_exception_type(StoreUnavailableError),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            reraise=True,
        ):
            with attempt:
                return await self.evict_learner(learner_id, cutoff)

    async def run(
        self,
        today: date,
        cutoff: Optional[date] = None,
        learner_ids: Optional[list[str]] = None,
    ) -> EvictionReport:
        """
        Evict every learner with calendar events.

        Args:
            today: Learner-local day the pass runs for
            cutoff: Events dated before this day are considered
                (defaults to yesterday)
            learner_ids: Restrict the pass to these learners

        Returns:
            EvictionReport with totals and per-learner errors
        """
        cutoff = cutoff or default_cutoff(today)
        report = EvictionReport(cutoff_date=cutoff, started_at=utc_now())

        if learner_ids is None:
            async with self.session_factory() as db:
                learner_ids = await EventStore(db).list_learner_ids()

        logger.info(
            f"Starting calendar eviction before {cutoff} for {len(learner_ids)} learners "
            f"(max {self.config.max_concurrency} concurrent)"
        )

        semaphore = asyncio.Semaphore(self.config.max_concurrency)

        async def evict_with_semaphore(learner_id: str) -> LearnerEvictionResult:
            async with semaphore:
                return await self._evict_with_retry(learner_id, cutoff)

        results = await asyncio.gather(
            *[evict_with_semaphore(learner_id) for learner_id in learner_ids],
            return_exceptions=True,
        )

        for learner_id, result in zip(learner_ids, results):
            report.users_processed += 1
            if isinstance(result, LearnerEvictionResult):
                report.learners.append(result)
                report.events_deleted += result.events_deleted
                report.events_preserved += result.events_preserved
            elif isinstance(result, Exception):
                logger.error(
                    f"Eviction failed for learner {learner_id}: "
                    f"{type(result).__name__}: {result}"
                )
                report.errors.append(
                    EvictionError(learner_id=learner_id, error=str(result))
                )
            else:
                raise result

        report.finished_at = utc_now()
        logger.info(
            f"Calendar eviction complete: {report.users_processed} learners, "
            f"{report.events_deleted} deleted, {report.events_preserved} preserved, "
            f"{len(report.errors)} errors"
        )
        return report
