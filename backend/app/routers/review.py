"""
Review API Router

Endpoints for mistake review cards.

Endpoints:
- POST /api/review/mistakes - Create cards for a scored quiz's mistakes
- GET /api/review/due - Cards due on or before a day (full backlog)
- GET /api/review/due-on - Cards due exactly on a day
- GET /api/review/cards/{id} - Get a card by ID
- POST /api/review/cards/{id}/review - Submit a pass/fail review
- POST /api/review/sessions - Submit a batch review session
- GET /api/review/stats - Review statistics for a learner
- GET /api/review/forecast - Day-by-day due card forecast

Dates default to the learner-local today (APP_TIMEZONE); pass `today`/`as_of`
explicitly to evaluate another day.
"""

import logging
from datetime import date, timedelta
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.base import get_db
from app.models.learning import (
    CardResponse,
    DueCardsResponse,
    DueForecast,
    MistakeBatchRequest,
    MistakeBatchResponse,
    ReviewResult,
    ReviewSessionRequest,
    ReviewSessionResult,
    ReviewStats,
    ReviewSubmission,
)
from app.services.clock import local_today
from app.services.learning import CardStore

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/review", tags=["review"])


# ===========================================
# Dependency Injection
# ===========================================


async def get_card_store(db: AsyncSession = Depends(get_db)) -> CardStore:
    """Get review card store."""
    return CardStore(db)


# ===========================================
# Card Creation
# ===========================================


@router.post("/mistakes", response_model=MistakeBatchResponse)
async def create_cards_from_mistakes(
    request: MistakeBatchRequest,
    today: Optional[date] = Query(None, description="Quiz day (defaults to today)"),
    store: CardStore = Depends(get_card_store),
) -> MistakeBatchResponse:
    """
    Create review cards for the questions a learner got wrong.

    Safe to re-submit: mistakes that already have a card are skipped.
    """
    created = await store.create_cards_from_mistakes(
        request.learner_id,
        request.missed_questions,
        request.session_id,
        today=today or local_today(),
        attempt_id=request.attempt_id,
    )
    unique_questions = {q.question_id for q in request.missed_questions}
    return MistakeBatchResponse(
        created=[CardResponse.model_validate(card) for card in created],
        skipped=len(unique_questions) - len(created),
    )


# ===========================================
# Due Card Queries
# ===========================================


@router.get("/due", response_model=DueCardsResponse)
async def get_due_cards(
    learner_id: str = Query(..., min_length=1),
    as_of: Optional[date] = Query(None, description="Defaults to today"),
    limit: Optional[int] = Query(None, ge=1, le=500, description="Maximum cards"),
    store: CardStore = Depends(get_card_store),
) -> DueCardsResponse:
    """Cards due on or before `as_of`, oldest overdue first."""
    as_of = as_of or local_today()
    cards = await store.get_due_cards(learner_id, as_of, limit=limit)
    return DueCardsResponse(
        learner_id=learner_id,
        as_of=as_of,
        cards=[CardResponse.model_validate(card) for card in cards],
        total=len(cards),
    )


@router.get("/due-on", response_model=DueCardsResponse)
async def get_cards_due_on(
    learner_id: str = Query(..., min_length=1),
    on: Optional[date] = Query(None, alias="date", description="Defaults to today"),
    store: CardStore = Depends(get_card_store),
) -> DueCardsResponse:
    """Cards due exactly on the given day."""
    on = on or local_today()
    cards = await store.get_cards_due_on(learner_id, on)
    return DueCardsResponse(
        learner_id=learner_id,
        as_of=on,
        cards=[CardResponse.model_validate(card) for card in cards],
        total=len(cards),
    )


@router.get("/cards/{card_id}", response_model=CardResponse)
async def get_card(
    card_id: str,
    store: CardStore = Depends(get_card_store),
) -> CardResponse:
    """Get a card by ID."""
    return CardResponse.model_validate(await store.get_card(card_id))


# ===========================================
# Review Endpoints
# ===========================================


@router.post("/cards/{card_id}/review", response_model=ReviewResult)
async def submit_review(
    card_id: str,
    submission: ReviewSubmission,
    today: Optional[date] = Query(None, description="Review day (defaults to today)"),
    store: CardStore = Depends(get_card_store),
) -> ReviewResult:
    """
    Submit a pass/fail review for a card.

    The attempt and the updated schedule are recorded together; a card that
    reaches the graduation threshold is archived.
    """
    return await store.submit_review(
        card_id,
        submission.was_correct,
        today=today or local_today(),
        metadata=submission,
    )


@router.post("/sessions", response_model=ReviewSessionResult)
async def submit_review_session(
    request: ReviewSessionRequest,
    today: Optional[date] = Query(None, description="Session day (defaults to today)"),
    store: CardStore = Depends(get_card_store),
) -> ReviewSessionResult:
    """Submit a batch of reviews. Per-card failures are reported, not raised."""
    return await store.submit_review_session(
        request.learner_id,
        request.reviews,
        today=today or local_today(),
        session_type=request.session_type,
    )


# ===========================================
# Statistics
# ===========================================


@router.get("/stats", response_model=ReviewStats)
async def get_review_stats(
    learner_id: str = Query(..., min_length=1),
    today: Optional[date] = Query(None),
    store: CardStore = Depends(get_card_store),
) -> ReviewStats:
    """Card counts, due counts and success rate for a learner."""
    return await store.get_review_stats(learner_id, today or local_today())


@router.get("/forecast", response_model=DueForecast)
async def get_due_forecast(
    learner_id: str = Query(..., min_length=1),
    start: Optional[date] = Query(None, description="Defaults to today"),
    days: int = Query(7, ge=1, le=90, description="Number of days to forecast"),
    store: CardStore = Depends(get_card_store),
) -> DueForecast:
    """Active cards falling due on each of the next `days` days."""
    start = start or local_today()
    return await store.get_due_forecast(
        learner_id, start, start + timedelta(days=days - 1)
    )
