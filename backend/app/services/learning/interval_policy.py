"""
Interval Policy for Mistake Review Cards

SM-2 inspired scheduling applied after each review of a card. The policy is a
pure function of the card's current schedule, the pass/fail outcome and the
learner's local calendar day; it performs no I/O and never reads the clock.

Rules:
    Success:
        repetition_count == 0  → interval 1 day, status learning
        repetition_count == 1  → interval 6 days, status review
        otherwise              → interval round(interval × confidence_factor),
                                 status review, or graduated once
                                 repetition_count + 1 reaches the threshold
        confidence_factor unchanged, repetition_count += 1

    Failure:
        interval 1 day, status learning, repetition_count 0,
        confidence_factor lowered by the penalty, floored at the minimum

State Machine:
    NEW → LEARNING → REVIEW → GRADUATED
             ↑___________|  (any failure)

Usage:
    from app.services.learning.interval_policy import CardSchedule, next_state

    after = next_state(CardSchedule(interval=10, confidence_factor=2.0,
                                    repetition_count=3), True, today)
    after.interval  # 20
"""

import math
from dataclasses import asdict, dataclass, field, replace
from datetime import date, timedelta
from typing import Optional

from app.config.settings import settings
from app.enums.learning import CardStatus
from app.middleware.error_handling import InvalidStateError

# Factor arithmetic is rounded to this many decimals so repeated penalties
# land exactly on the floor instead of drifting below it in binary floats.
FACTOR_PRECISION = 2


@dataclass(frozen=True)
class IntervalPolicyConfig:
    """
    Tunable constants for the interval policy.

    Defaults mirror the SRS_* settings.
    """

    initial_interval: int = field(default_factory=lambda: settings.SRS_INITIAL_INTERVAL)
    initial_confidence: float = field(
        default_factory=lambda: settings.SRS_INITIAL_CONFIDENCE
    )
    min_confidence: float = field(default_factory=lambda: settings.SRS_MIN_CONFIDENCE)
    max_confidence: float = field(default_factory=lambda: settings.SRS_MAX_CONFIDENCE)
    failure_penalty: float = field(
        default_factory=lambda: settings.SRS_FAILURE_PENALTY
    )
    first_success_interval: int = field(
        default_factory=lambda: settings.SRS_FIRST_SUCCESS_INTERVAL
    )
    second_success_interval: int = field(
        default_factory=lambda: settings.SRS_SECOND_SUCCESS_INTERVAL
    )
    graduation_threshold: int = field(
        default_factory=lambda: settings.SRS_GRADUATION_THRESHOLD
    )


@dataclass(frozen=True)
class CardSchedule:
    """
    Scheduling state of a review card.

    Maps to the scheduling columns of the review_cards table.
    """

    interval: int = 1
    confidence_factor: float = 2.5
    repetition_count: int = 0
    status: CardStatus = CardStatus.NEW
    next_review_date: Optional[date] = None

    @classmethod
    def from_card(cls, card) -> "CardSchedule":
        """Build a schedule from a ReviewCard row."""
        return cls(
            interval=card.interval,
            confidence_factor=card.confidence_factor,
            repetition_count=card.repetition_count,
            status=CardStatus(card.status),
            next_review_date=card.next_review_date,
        )

    @property
    def is_active(self) -> bool:
        """Graduated cards are archived."""
        return self.status != CardStatus.GRADUATED

    def to_dict(self) -> dict:
        """JSON-safe snapshot for the review_attempts audit columns."""
        data = asdict(self)
        data["status"] = self.status.value
        data["next_review_date"] = (
            self.next_review_date.isoformat() if self.next_review_date else None
        )
        return data


def round_half_up(value: float) -> int:
    """Round to the nearest integer with .5 going up (8.5 → 9, not 8)."""
    return int(math.floor(value + 0.5))


def validate_schedule(current: CardSchedule, config: IntervalPolicyConfig) -> None:
    """
    Reject schedules outside the card invariants.

    Raises:
        InvalidStateError: If interval < 1, repetition_count < 0 or the
            confidence factor is outside [min_confidence, max_confidence].
    """
    if current.interval < 1:
        raise InvalidStateError(
            f"Interval must be at least 1 day, got {current.interval}",
            details={"interval": current.interval},
        )
    if current.repetition_count < 0:
        raise InvalidStateError(
            f"Repetition count cannot be negative, got {current.repetition_count}",
            details={"repetition_count": current.repetition_count},
        )
    if not (
        config.min_confidence <= current.confidence_factor <= config.max_confidence
    ):
        raise InvalidStateError(
            f"Confidence factor {current.confidence_factor} outside "
            f"[{config.min_confidence}, {config.max_confidence}]",
            details={"confidence_factor": current.confidence_factor},
        )


def next_state(
    current: CardSchedule,
    was_correct: bool,
    today: date,
    config: Optional[IntervalPolicyConfig] = None,
) -> CardSchedule:
    """
    Compute a card's schedule after one review.

    Args:
        current: Schedule before the review
        was_correct: Review outcome
        today: Learner-local calendar day of the review
        config: Policy constants (defaults from settings)

    Returns:
        The new schedule, with next_review_date = today + interval

    Raises:
        InvalidStateError: If the current schedule violates the card invariants
    """
    config = config or IntervalPolicyConfig()
    validate_schedule(current, config)

    if was_correct:
        repetition_count = current.repetition_count + 1
        confidence_factor = current.confidence_factor

        if current.repetition_count == 0:
            interval = config.first_success_interval
            status = CardStatus.LEARNING
        elif current.repetition_count == 1:
            interval = config.second_success_interval
            status = CardStatus.REVIEW
        else:
            interval = round_half_up(current.interval * current.confidence_factor)
            status = CardStatus.REVIEW
            if repetition_count >= config.graduation_threshold:
                status = CardStatus.GRADUATED
    else:
        repetition_count = 0
        interval = config.initial_interval
        status = CardStatus.LEARNING
        confidence_factor = round(
            max(config.min_confidence, current.confidence_factor - config.failure_penalty),
            FACTOR_PRECISION,
        )

    interval = max(1, interval)

    return replace(
        current,
        interval=interval,
        confidence_factor=confidence_factor,
        repetition_count=repetition_count,
        status=status,
        next_review_date=today + timedelta(days=interval),
    )


def initial_schedule(
    today: date, config: Optional[IntervalPolicyConfig] = None
) -> CardSchedule:
    """Schedule for a freshly created card: due the day after the mistake."""
    config = config or IntervalPolicyConfig()
    return CardSchedule(
        interval=config.initial_interval,
        confidence_factor=config.initial_confidence,
        repetition_count=0,
        status=CardStatus.NEW,
        next_review_date=today + timedelta(days=config.initial_interval),
    )
