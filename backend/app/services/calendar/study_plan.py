"""
Study Plan Generator

Builds the fixed study-suggestion schedule that leads up to an exam or quiz.

Plans:
    Major exam (10 days):
        days 10-7 before → 10 questions, Warm-up
        days 6-4 before  → 20 questions, Consolidation
        days 3-1 before  → 40 questions, Sprint

    Small quiz (3 days):
        day 3 before → 5 questions, Initial Review
        day 2 before → 10 questions, Topic Focus
        day 1 before → 15 questions, Final Polish (+ mistake review)

Each suggestion is keyed by (root id, days before), so regenerating a plan
overwrites the same rows.
"""

from dataclasses import dataclass
from datetime import timedelta

from app.db.models_calendar import CalendarEvent
from app.enums.calendar import EventType, StudyPhase
from app.middleware.error_handling import InvalidStateError
from app.services.calendar.keys import study_suggestion_id


@dataclass(frozen=True)
class PlanStep:
    """One day of a study plan."""

    days_before: int
    question_count: int
    phase: StudyPhase
    include_mistake_review: bool = False


EXAM_PLAN: tuple[PlanStep, ...] = tuple(
    [PlanStep(d, 10, StudyPhase.WARM_UP) for d in (10, 9, 8, 7)]
    + [PlanStep(d, 20, StudyPhase.CONSOLIDATION) for d in (6, 5, 4)]
    + [PlanStep(d, 40, StudyPhase.SPRINT) for d in (3, 2, 1)]
)

QUIZ_PLAN: tuple[PlanStep, ...] = (
    PlanStep(3, 5, StudyPhase.INITIAL_REVIEW),
    PlanStep(2, 10, StudyPhase.TOPIC_FOCUS),
    PlanStep(1, 15, StudyPhase.FINAL_POLISH, include_mistake_review=True),
)

PLANS: dict[EventType, tuple[PlanStep, ...]] = {
    EventType.MAJOR_EXAM: EXAM_PLAN,
    EventType.SMALL_QUIZ: QUIZ_PLAN,
}

_ROOT_LABELS = {
    EventType.MAJOR_EXAM: "exam",
    EventType.SMALL_QUIZ: "quiz",
}


def plan_for(event_type: EventType) -> tuple[PlanStep, ...]:
    """
    Plan steps for a root event variant.

    Raises:
        InvalidStateError: If the variant has no study plan
    """
    try:
        return PLANS[EventType(event_type)]
    except (KeyError, ValueError):
        raise InvalidStateError(
            f"No study plan for event type: {event_type}",
            details={"event_type": str(event_type)},
        )


def build_study_plan(root: CalendarEvent) -> list[CalendarEvent]:
    """
    Build the study suggestions for a root event.

    The returned events are transient; the caller persists them.

    Args:
        root: A major_exam or small_quiz event with id and date set

    Returns:
        Study suggestions ordered from furthest to nearest day
    """
    steps = plan_for(root.event_type)
    label = _ROOT_LABELS[EventType(root.event_type)]

    suggestions = []
    for step in steps:
        suggestions.append(
            CalendarEvent(
                id=study_suggestion_id(root.id, step.days_before),
                learner_id=root.learner_id,
                event_type=EventType.STUDY_SUGGESTION.value,
                date=root.date - timedelta(days=step.days_before),
                title=f"{step.phase.value} - {step.question_count} MCQs",
                description=f"Day {step.days_before} before {label}",
                completed=False,
                parent_event_id=root.id,
                topics=list(root.topics or []),
                subtopics=list(root.subtopics or []),
                question_count=step.question_count,
                phase=step.phase.value,
                include_mistake_review=step.include_mistake_review,
            )
        )
    return suggestions
