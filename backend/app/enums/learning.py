"""
Learning System Enums

Defines enums for the review-card state machine and review sessions.
"""

from enum import Enum


class CardStatus(str, Enum):
    """
    Review card states in the spaced repetition state machine.

    State transitions:
    - NEW → LEARNING (first review, pass or fail)
    - LEARNING → REVIEW (second consecutive pass) or LEARNING (fail)
    - REVIEW → REVIEW (pass), GRADUATED (pass at threshold) or LEARNING (fail)
    - GRADUATED is terminal; the card is archived (is_active=False)
    """

    NEW = "new"  # Never reviewed
    LEARNING = "learning"  # Failed recently or on its first success
    REVIEW = "review"  # Spaced intervals driven by the confidence factor
    GRADUATED = "graduated"  # Mastered and archived


class ReviewSessionType(str, Enum):
    """
    Types of batch review sessions.
    """

    SPACED_REPETITION = "spaced_repetition"  # Reviewing due cards
    MISTAKE_NOTEBOOK = "mistake_notebook"  # Learner-driven practice from mistakes
