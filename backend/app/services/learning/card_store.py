"""
Review Card Store

Persistence and due-query access for mistake review cards.

Handles:
- Card creation from scored quiz mistakes (idempotent per learner, question
  and quiz session)
- Due card queries (full backlog and exact-day)
- Review submission: the attempt record and the card update are committed
  together, and graduation archives the card in the same update
- Batch review sessions, statistics and due forecasts

Usage:
    from app.services.learning.card_store import CardStore

    store = CardStore(db_session)

    cards = await store.create_cards_from_mistakes(
        "learner-1", [MissedQuestion(question_id="q42", topic="Acids")],
        session_id="quiz-7", today=date(2024, 6, 1),
    )
    result = await store.submit_review(cards[0].id, True, today=date(2024, 6, 2))
"""

import logging
from collections import defaultdict
from datetime import date, datetime, timedelta
from typing import Iterable, Optional
from uuid import uuid4

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.errors import store_errors
from app.db.models_learning import ReviewAttempt, ReviewCard, ReviewSession
from app.enums.learning import CardStatus, ReviewSessionType
from app.middleware.error_handling import (
    InvalidStateError,
    NotFoundError,
    ServiceError,
)
from app.models.learning import (
    CardResponse,
    DueForecast,
    DueForecastDay,
    MissedQuestion,
    ReviewMetadata,
    ReviewResult,
    ReviewSessionResult,
    ReviewStats,
    SessionReview,
    SessionReviewError,
)
from app.services.calendar.keys import card_id_for
from app.services.clock import utc_now
from app.services.learning.interval_policy import (
    CardSchedule,
    IntervalPolicyConfig,
    initial_schedule,
    next_state,
)

logger = logging.getLogger(__name__)

# Longest range served by get_due_forecast
MAX_FORECAST_DAYS = 366


class CardStore:
    """
    Store for review cards and their review history.

    Every read is scoped to one learner; cards are never hard-deleted.
    """

    def __init__(
        self,
        db: AsyncSession,
        policy_config: Optional[IntervalPolicyConfig] = None,
    ):
        """
        Initialize the card store.

        Args:
            db: Async database session
            policy_config: Interval policy constants (defaults from settings)
        """
        self.db = db
        self.policy_config = policy_config or IntervalPolicyConfig()

    # ===========================================
    # Creation
    # ===========================================

    async def create_cards_from_mistakes(
        self,
        learner_id: str,
        missed_questions: Iterable[MissedQuestion],
        session_id: str,
        today: date,
        attempt_id: Optional[str] = None,
    ) -> list[ReviewCard]:
        """
        Create one new card per previously unseen mistake.

        Cards are keyed by (learner, question, session); mistakes that
        already have a card are skipped, so re-submitting the same quiz
        result creates nothing.

        Args:
            learner_id: Owner of the cards
            missed_questions: Questions answered incorrectly
            session_id: Quiz session the mistakes came from
            today: Learner-local day of the quiz (cards are due tomorrow)
            attempt_id: Optional quiz attempt id recorded on new cards

        Returns:
            The cards created by this call (empty when all existed)
        """
        pending: dict[str, MissedQuestion] = {}
        for question in missed_questions:
            key = card_id_for(learner_id, question.question_id, session_id)
            pending.setdefault(key, question)

        if not pending:
            return []

        try:
            created = await self._insert_missing_cards(
                learner_id, pending, session_id, today, attempt_id
            )
        except IntegrityError:
            # A concurrent submission inserted some of the same keys first;
            # the rows that exist now are skipped on the second pass.
            logger.warning(
                f"Concurrent card creation for learner {learner_id}, "
                f"session {session_id}; retrying"
            )
            created = await self._insert_missing_cards(
                learner_id, pending, session_id, today, attempt_id
            )

        logger.info(
            f"Created {len(created)} review cards for learner {learner_id} "
            f"from session {session_id} ({len(pending) - len(created)} already existed)"
        )
        return created

    async def _insert_missing_cards(
        self,
        learner_id: str,
        pending: dict[str, MissedQuestion],
        session_id: str,
        today: date,
        attempt_id: Optional[str],
    ) -> list[ReviewCard]:
        async with store_errors(self.db, "create_cards_from_mistakes"):
            result = await self.db.execute(
                select(ReviewCard.id).where(ReviewCard.id.in_(list(pending)))
            )
            existing = set(result.scalars().all())

            schedule = initial_schedule(today, self.policy_config)
            created = []
            for key, question in pending.items():
                if key in existing:
                    continue
                card = ReviewCard(
                    id=key,
                    learner_id=learner_id,
                    question_id=question.question_id,
                    session_id=session_id,
                    created_from_attempt_id=attempt_id,
                    topic=question.topic,
                    subtopic=question.subtopic,
                    interval=schedule.interval,
                    confidence_factor=schedule.confidence_factor,
                    repetition_count=schedule.repetition_count,
                    next_review_date=schedule.next_review_date,
                    status=schedule.status.value,
                    total_attempts=0,
                    successful_attempts=0,
                    failed_attempts=0,
                    is_active=True,
                )
                self.db.add(card)
                created.append(card)

            if created:
                await self.db.commit()
            return created

    # ===========================================
    # Queries
    # ===========================================

    async def get_card(self, card_id: str) -> ReviewCard:
        """
        Load a card by id.

        Raises:
            NotFoundError: If the card does not exist
        """
        async with store_errors(self.db, "get_card"):
            result = await self.db.execute(
                select(ReviewCard).where(ReviewCard.id == card_id)
            )
            card = result.scalar_one_or_none()

        if card is None:
            raise NotFoundError(f"Card not found: {card_id}", details={"card_id": card_id})
        return card

    async def get_due_cards(
        self,
        learner_id: str,
        as_of: date,
        limit: Optional[int] = None,
    ) -> list[ReviewCard]:
        """
        Active cards due on or before `as_of`, oldest overdue first.

        This is the full backlog; use get_cards_due_on for scheduling.
        """
        query = (
            select(ReviewCard)
            .where(
                ReviewCard.learner_id == learner_id,
                ReviewCard.is_active.is_(True),
                ReviewCard.next_review_date <= as_of,
            )
            .order_by(ReviewCard.next_review_date.asc(), ReviewCard.id.asc())
        )
        if limit:
            query = query.limit(limit)

        async with store_errors(self.db, "get_due_cards"):
            result = await self.db.execute(query)
            return list(result.scalars().all())

    async def get_cards_due_on(self, learner_id: str, exact_date: date) -> list[ReviewCard]:
        """Active cards whose next review is exactly `exact_date`."""
        query = (
            select(ReviewCard)
            .where(
                ReviewCard.learner_id == learner_id,
                ReviewCard.is_active.is_(True),
                ReviewCard.next_review_date == exact_date,
            )
            .order_by(ReviewCard.id.asc())
        )
        async with store_errors(self.db, "get_cards_due_on"):
            result = await self.db.execute(query)
            return list(result.scalars().all())

    async def list_learners_due_on(self, exact_date: date) -> list[str]:
        """Learners with at least one active card due exactly on `exact_date`."""
        query = (
            select(ReviewCard.learner_id)
            .where(
                ReviewCard.is_active.is_(True),
                ReviewCard.next_review_date == exact_date,
            )
            .distinct()
            .order_by(ReviewCard.learner_id)
        )
        async with store_errors(self.db, "list_learners_due_on"):
            result = await self.db.execute(query)
            return list(result.scalars().all())

    # ===========================================
    # Review Submission
    # ===========================================

    async def submit_review(
        self,
        card_id: str,
        was_correct: bool,
        today: date,
        metadata: Optional[ReviewMetadata] = None,
        now: Optional[datetime] = None,
        review_session_id: Optional[str] = None,
        learner_id: Optional[str] = None,
    ) -> ReviewResult:
        """
        Apply one review to a card.

        Computes the next schedule, writes the ReviewAttempt and the updated
        card in a single commit, and archives the card when it graduates.
        Nothing is recorded if the commit fails.

        Args:
            card_id: Card being reviewed
            was_correct: Review outcome
            today: Learner-local day of the review
            metadata: Optional answer details for the attempt record
            now: Review timestamp (defaults to the current UTC time)
            review_session_id: Batch session the review belongs to
            learner_id: When given, the card must belong to this learner

        Returns:
            ReviewResult with the updated card and both state snapshots

        Raises:
            NotFoundError: If the card does not exist
            InvalidStateError: If the card is archived, belongs to another
                learner, or holds out-of-range scheduling state
            StoreUnavailableError: If the database is unreachable
        """
        now = now or utc_now()
        metadata = metadata or ReviewMetadata()

        card = await self.get_card(card_id)
        if learner_id is not None and card.learner_id != learner_id:
            raise InvalidStateError(
                f"Card {card_id} does not belong to learner {learner_id}",
                details={"card_id": card_id},
            )
        if not card.is_active:
            raise InvalidStateError(
                f"Card {card_id} is archived", details={"card_id": card_id}
            )

        before = CardSchedule.from_card(card)
        after = next_state(before, was_correct, today, self.policy_config)
        attempt_number = (card.total_attempts or 0) + 1

        async with store_errors(self.db, "submit_review"):
            card.interval = after.interval
            card.confidence_factor = after.confidence_factor
            card.repetition_count = after.repetition_count
            card.next_review_date = after.next_review_date
            card.status = after.status.value
            card.total_attempts = attempt_number
            if was_correct:
                card.successful_attempts = (card.successful_attempts or 0) + 1
            else:
                card.failed_attempts = (card.failed_attempts or 0) + 1
            card.last_reviewed_at = now

            graduated = after.status == CardStatus.GRADUATED
            if graduated:
                card.is_active = False
                card.archived_at = now

            self.db.add(
                ReviewAttempt(
                    card_id=card.id,
                    learner_id=card.learner_id,
                    question_id=card.question_id,
                    attempt_number=attempt_number,
                    was_correct=was_correct,
                    user_answer=metadata.user_answer,
                    correct_answer=metadata.correct_answer,
                    time_spent_seconds=metadata.time_spent_seconds,
                    review_session_id=review_session_id,
                    state_before=before.to_dict(),
                    state_after=after.to_dict(),
                    attempted_at=now,
                )
            )
            await self.db.commit()

        logger.info(
            f"Reviewed card {card_id}: correct={was_correct}, "
            f"interval {before.interval}→{after.interval}, status {after.status.value}"
            + (" (archived)" if graduated else "")
        )

        return ReviewResult(
            card=CardResponse.model_validate(card),
            was_correct=was_correct,
            attempt_number=attempt_number,
            state_before=before.to_dict(),
            state_after=after.to_dict(),
            graduated=graduated,
        )

    async def submit_review_session(
        self,
        learner_id: str,
        reviews: Iterable[SessionReview],
        today: date,
        session_type: ReviewSessionType = ReviewSessionType.SPACED_REPETITION,
        now: Optional[datetime] = None,
        finished_at: Optional[datetime] = None,
    ) -> ReviewSessionResult:
        """
        Apply a batch of reviews as one review session.

        Each review is committed on its own, so one bad card id does not
        discard the learner's other answers. Failures are reported per card.

        Args:
            learner_id: Learner reviewing
            reviews: Card reviews in answer order
            today: Learner-local day of the session
            session_type: Where the session was started from
            now: Session start and review timestamp (defaults to the current
                UTC time)
            finished_at: Session end timestamp (defaults to now)

        Returns:
            ReviewSessionResult with per-card results and errors
        """
        now = now or utc_now()
        finished_at = finished_at or now
        session_id = str(uuid4())

        async with store_errors(self.db, "submit_review_session"):
            self.db.add(
                ReviewSession(
                    id=session_id,
                    learner_id=learner_id,
                    session_type=session_type.value,
                    started_at=now,
                )
            )
            await self.db.commit()

        results: list[ReviewResult] = []
        errors: list[SessionReviewError] = []
        for review in reviews:
            try:
                result = await self.submit_review(
                    review.card_id,
                    review.was_correct,
                    today,
                    metadata=review,
                    now=now,
                    review_session_id=session_id,
                    learner_id=learner_id,
                )
            except ServiceError as e:
                logger.warning(
                    f"Review of card {review.card_id} in session {session_id} failed: {e.message}"
                )
                errors.append(SessionReviewError(card_id=review.card_id, error=e.message))
                continue
            results.append(result)

        cards_correct = sum(1 for r in results if r.was_correct)
        async with store_errors(self.db, "submit_review_session"):
            session_row = await self.db.get(ReviewSession, session_id)
            session_row.cards_reviewed = len(results)
            session_row.cards_correct = cards_correct
            session_row.cards_failed = len(results) - cards_correct
            session_row.completed_at = finished_at
            await self.db.commit()

        logger.info(
            f"Review session {session_id} for learner {learner_id}: "
            f"{len(results)} reviewed, {cards_correct} correct, {len(errors)} errors"
        )

        return ReviewSessionResult(
            session_id=session_id,
            session_type=session_type,
            cards_reviewed=len(results),
            cards_correct=cards_correct,
            cards_failed=len(results) - cards_correct,
            results=results,
            errors=errors,
        )

    # ===========================================
    # Statistics
    # ===========================================

    async def get_review_stats(self, learner_id: str, today: date) -> ReviewStats:
        """
        Aggregate card and attempt counts for one learner.

        Success rate is the percentage of all review attempts that were
        correct, rounded to one decimal place.
        """
        async with store_errors(self.db, "get_review_stats"):
            status_rows = await self.db.execute(
                select(ReviewCard.status, func.count(ReviewCard.id))
                .where(ReviewCard.learner_id == learner_id)
                .group_by(ReviewCard.status)
            )
            by_status = {status: count for status, count in status_rows.all()}

            active_rows = await self.db.execute(
                select(ReviewCard.is_active, func.count(ReviewCard.id))
                .where(ReviewCard.learner_id == learner_id)
                .group_by(ReviewCard.is_active)
            )
            by_active = {bool(active): count for active, count in active_rows.all()}

            due_today = await self._count_active(
                learner_id, ReviewCard.next_review_date == today
            )
            overdue = await self._count_active(
                learner_id, ReviewCard.next_review_date < today
            )

            totals = await self.db.execute(
                select(
                    func.coalesce(func.sum(ReviewCard.total_attempts), 0),
                    func.coalesce(func.sum(ReviewCard.successful_attempts), 0),
                ).where(ReviewCard.learner_id == learner_id)
            )
            total_attempts, successful_attempts = totals.one()

        success_rate = (
            round(successful_attempts / total_attempts * 100, 1) if total_attempts else 0.0
        )

        return ReviewStats(
            learner_id=learner_id,
            total_cards=sum(by_status.values()),
            active_cards=by_active.get(True, 0),
            archived_cards=by_active.get(False, 0),
            by_status={s.value: by_status.get(s.value, 0) for s in CardStatus},
            due_today=due_today,
            overdue=overdue,
            total_attempts=int(total_attempts),
            successful_attempts=int(successful_attempts),
            success_rate=success_rate,
        )

    async def _count_active(self, learner_id: str, *conditions) -> int:
        result = await self.db.execute(
            select(func.count(ReviewCard.id)).where(
                ReviewCard.learner_id == learner_id,
                ReviewCard.is_active.is_(True),
                *conditions,
            )
        )
        return result.scalar() or 0

    async def get_due_forecast(
        self, learner_id: str, start: date, end: date
    ) -> DueForecast:
        """
        Day-by-day count of active cards falling due in [start, end].

        Every day of the range is present, with zero counts on empty days.

        Raises:
            InvalidStateError: If end precedes start or the range is too long
        """
        if end < start:
            raise InvalidStateError(
                f"Forecast end {end} precedes start {start}",
                details={"start": start.isoformat(), "end": end.isoformat()},
            )
        if (end - start).days >= MAX_FORECAST_DAYS:
            raise InvalidStateError(
                f"Forecast range exceeds {MAX_FORECAST_DAYS} days",
                details={"start": start.isoformat(), "end": end.isoformat()},
            )

        async with store_errors(self.db, "get_due_forecast"):
            rows = await self.db.execute(
                select(
                    ReviewCard.next_review_date,
                    ReviewCard.topic,
                    func.count(ReviewCard.id),
                )
                .where(
                    ReviewCard.learner_id == learner_id,
                    ReviewCard.is_active.is_(True),
                    ReviewCard.next_review_date >= start,
                    ReviewCard.next_review_date <= end,
                )
                .group_by(ReviewCard.next_review_date, ReviewCard.topic)
            )
            per_day: dict[date, dict[str, int]] = defaultdict(dict)
            for due_date, topic, count in rows.all():
                per_day[due_date][topic or "Uncategorized"] = count

        days = []
        current = start
        while current <= end:
            topics = per_day.get(current, {})
            days.append(
                DueForecastDay(date=current, count=sum(topics.values()), topics=topics)
            )
            current += timedelta(days=1)

        return DueForecast(
            learner_id=learner_id, start_date=start, end_date=end, days=days
        )
