"""
Just-in-Time Review Reminder Scheduler

Turns review cards that fall due today into calendar reminders, one per card.

Only cards due exactly on the given day are materialized. Overdue cards are
not swept up, so a learner returning after a break gets today's reminders
rather than their whole backlog at once; the backlog stays visible through
CardStore.get_due_cards.

Reminders are keyed by (card id, review date). Running the pass again for the
same day rewrites the same rows, so retried jobs never duplicate reminders.

Usage:
    from app.services.learning.review_scheduler import ReviewReminderScheduler

    scheduler = ReviewReminderScheduler(db_session)
    count = await scheduler.schedule_due_reviews("learner-1", today)
"""

import logging
from datetime import date

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.models_calendar import CalendarEvent
from app.db.models_learning import ReviewCard
from app.enums.calendar import EventType
from app.middleware.error_handling import ServiceError
from app.services.calendar.event_store import EventStore
from app.services.calendar.keys import review_reminder_id
from app.services.learning.card_store import CardStore

logger = logging.getLogger(__name__)

REMINDER_TITLE = "Review Mistake"


def build_review_reminder(card: ReviewCard) -> CalendarEvent:
    """Reminder event for a card on its next review date."""
    topic_path = " → ".join(part for part in (card.topic, card.subtopic) if part)
    return CalendarEvent(
        id=review_reminder_id(card.id, card.next_review_date),
        learner_id=card.learner_id,
        event_type=EventType.REVIEW_REMINDER.value,
        date=card.next_review_date,
        title=REMINDER_TITLE,
        description=topic_path or None,
        completed=False,
        question_id=card.question_id,
        srs_card_id=card.id,
        topic=card.topic,
        subtopic=card.subtopic,
        include_mistake_review=False,
    )


class ReviewReminderScheduler:
    """Bridges the card store and the event store."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.cards = CardStore(db)
        self.events = EventStore(db)

    async def schedule_due_reviews(self, learner_id: str, today: date) -> int:
        """
        Materialize reminders for the learner's cards due exactly today.

        Args:
            learner_id: Learner to schedule for
            today: Learner-local calendar day

        Returns:
            Number of reminders written (new or refreshed)
        """
        due_cards = await self.cards.get_cards_due_on(learner_id, today)
        if not due_cards:
            logger.debug(f"No cards due on {today} for learner {learner_id}")
            return 0

        reminders = [build_review_reminder(card) for card in due_cards]
        await self.events.upsert_events(reminders)

        logger.info(
            f"Scheduled {len(reminders)} review reminders for learner {learner_id} on {today}"
        )
        return len(reminders)

    async def schedule_all_learners(self, today: date) -> dict[str, int]:
        """
        Run schedule_due_reviews for every learner with cards due today.

        A learner whose pass fails is logged and skipped; the others still
        get their reminders.

        Returns:
            Mapping of learner id to reminders written
        """
        learner_ids = await self.cards.list_learners_due_on(today)
        scheduled = {}
        for learner_id in learner_ids:
            try:
                scheduled[learner_id] = await self.schedule_due_reviews(learner_id, today)
            except ServiceError as e:
                logger.error(
                    f"Reminder scheduling failed for learner {learner_id}: {e.message}"
                )
            except SQLAlchemyError as e:
                logger.error(
                    f"Reminder scheduling failed for learner {learner_id}: "
                    f"{type(e).__name__}: {e}"
                )

        logger.info(
            f"Review reminder pass for {today}: {sum(scheduled.values())} reminders "
            f"across {len(scheduled)} learners"
        )
        return scheduled
