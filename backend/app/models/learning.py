"""
Review System API Models (Pydantic)

Request/response schemas for the mistake review API:
- Mistake ingestion after a quiz is scored
- Review submission (single card and batch sessions)
- Due card listings, statistics and forecasts

ARCHITECTURE NOTE:
    This file contains PYDANTIC models for API validation.
    There is a corresponding SQLAlchemy file: app/db/models_learning.py

    Data flows: API Request → Pydantic → Service → SQLAlchemy → Database

API Contract:
    Request models use StrictRequest (extra="forbid") to reject unknown fields.
    This catches frontend/backend mismatches early with clear 422 errors.
"""


from datetime import date, datetime
from typing import Optional

from pydantic import Field

from app.enums.learning import CardStatus, ReviewSessionType
from app.models.base import StrictRequest, StrictResponse


# ===========================================
# Mistake Ingestion
# ===========================================


class MissedQuestion(StrictRequest):
    """
    A question the learner got wrong, as supplied by the question bank.
    """

    question_id: str = Field(..., min_length=1, description="Question bank id")
    topic: Optional[str] = Field(None, description="Question bank topic")
    subtopic: Optional[str] = Field(None, description="Question bank subtopic")


class MistakeBatchRequest(StrictRequest):
    """
    Request to create review cards for the mistakes of one scored quiz.

    Re-submitting the same batch is a no-op: cards are keyed by
    (learner, question, session).
    """

    learner_id: str = Field(..., min_length=1)
    session_id: str = Field(..., min_length=1, description="Quiz session id")
    attempt_id: Optional[str] = Field(None, description="Quiz attempt id")
    missed_questions: list[MissedQuestion] = Field(default_factory=list)


# ===========================================
# Review Submission
# ===========================================


class ReviewMetadata(StrictRequest):
    """Optional answer details recorded on the review attempt."""

    user_answer: Optional[str] = None
    correct_answer: Optional[str] = None
    time_spent_seconds: Optional[int] = Field(None, ge=0)


class ReviewSubmission(ReviewMetadata):
    """Request body for reviewing a single card."""

    was_correct: bool = Field(..., description="Whether the learner answered correctly")


class SessionReview(ReviewSubmission):
    """One card review inside a batch review session."""

    card_id: str = Field(..., min_length=1)


class ReviewSessionRequest(StrictRequest):
    """Request to submit a batch of reviews as one session."""

    learner_id: str = Field(..., min_length=1)
    session_type: ReviewSessionType = ReviewSessionType.SPACED_REPETITION
    reviews: list[SessionReview] = Field(..., min_length=1)


# ===========================================
# Card Responses
# ===========================================


class CardResponse(StrictResponse):
    """
    Review card as returned by the API.

    Built from ReviewCard rows via from_attributes.
    """

    id: str
    learner_id: str
    question_id: str
    session_id: str
    topic: Optional[str] = None
    subtopic: Optional[str] = None

    interval: int = Field(..., description="Days until next review")
    confidence_factor: float = Field(..., description="Interval multiplier")
    repetition_count: int = Field(..., description="Consecutive successful reviews")
    next_review_date: date
    status: CardStatus

    total_attempts: int = 0
    successful_attempts: int = 0
    failed_attempts: int = 0
    last_reviewed_at: Optional[datetime] = None
    is_active: bool = True
    archived_at: Optional[datetime] = None


class MistakeBatchResponse(StrictResponse):
    """Result of ingesting a batch of mistakes."""

    created: list[CardResponse] = Field(default_factory=list)
    skipped: int = Field(0, description="Mistakes that already had a card")


class ReviewResult(StrictResponse):
    """Outcome of reviewing one card."""

    card: CardResponse
    was_correct: bool
    attempt_number: int
    state_before: dict
    state_after: dict
    graduated: bool = False


class SessionReviewError(StrictResponse):
    """A review in a batch session that could not be applied."""

    card_id: str
    error: str


class ReviewSessionResult(StrictResponse):
    """Outcome of a batch review session."""

    session_id: str
    session_type: ReviewSessionType
    cards_reviewed: int
    cards_correct: int
    cards_failed: int
    results: list[ReviewResult] = Field(default_factory=list)
    errors: list[SessionReviewError] = Field(default_factory=list)


class DueCardsResponse(StrictResponse):
    """Due card listing for one learner."""

    learner_id: str
    as_of: date
    cards: list[CardResponse] = Field(default_factory=list)
    total: int = 0


# ===========================================
# Statistics
# ===========================================


class ReviewStats(StrictResponse):
    """Aggregate review statistics for one learner."""

    learner_id: str
    total_cards: int = 0
    active_cards: int = 0
    archived_cards: int = 0
    by_status: dict[str, int] = Field(default_factory=dict)
    due_today: int = 0
    overdue: int = 0
    total_attempts: int = 0
    successful_attempts: int = 0
    success_rate: float = Field(0.0, description="Percent of successful attempts")


class DueForecastDay(StrictResponse):
    """Active cards due on one day, with a per-topic breakdown."""

    date: date
    count: int = 0
    topics: dict[str, int] = Field(default_factory=dict)


class DueForecast(StrictResponse):
    """Day-by-day due card summary for a date range."""

    learner_id: str
    start_date: date
    end_date: date
    days: list[DueForecastDay] = Field(default_factory=list)
