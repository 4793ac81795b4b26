"""
Unit tests for study plan generation.

Plans are built from transient CalendarEvent roots; nothing touches the
database here.
"""

from datetime import date

import pytest

from app.db.models_calendar import CalendarEvent
from app.enums.calendar import EventType, StudyPhase
from app.middleware.error_handling import InvalidStateError
from app.services.calendar.keys import study_suggestion_id
from app.services.calendar.study_plan import (
    EXAM_PLAN,
    QUIZ_PLAN,
    build_study_plan,
    plan_for,
)


def make_root(event_type: EventType, on: date, **kwargs) -> CalendarEvent:
    return CalendarEvent(
        id="root-1",
        learner_id="learner-1",
        event_type=event_type.value,
        date=on,
        title="Finals",
        completed=False,
        topics=kwargs.get("topics", ["Chemistry"]),
        subtopics=kwargs.get("subtopics", ["Acids"]),
    )


class TestExamPlan:
    """Ten-day plan ahead of a major exam."""

    @pytest.fixture
    def plan(self):
        return build_study_plan(make_root(EventType.MAJOR_EXAM, date(2024, 6, 20)))

    def test_ten_suggestions(self, plan):
        assert len(plan) == 10
        assert all(e.event_type == EventType.STUDY_SUGGESTION.value for e in plan)

    def test_dates_cover_days_before(self, plan):
        """Exam on June 20 gets suggestions June 10 through June 19."""
        assert [e.date for e in plan] == [date(2024, 6, d) for d in range(10, 20)]

    def test_phases_and_counts(self, plan):
        by_date = {e.date: e for e in plan}

        for day in (10, 11, 12, 13):
            assert by_date[date(2024, 6, day)].question_count == 10
            assert by_date[date(2024, 6, day)].phase == StudyPhase.WARM_UP.value
        for day in (14, 15, 16):
            assert by_date[date(2024, 6, day)].question_count == 20
            assert by_date[date(2024, 6, day)].phase == StudyPhase.CONSOLIDATION.value
        for day in (17, 18, 19):
            assert by_date[date(2024, 6, day)].question_count == 40
            assert by_date[date(2024, 6, day)].phase == StudyPhase.SPRINT.value

    def test_titles_and_descriptions(self, plan):
        first, last = plan[0], plan[-1]

        assert first.title == "Warm-up - 10 MCQs"
        assert first.description == "Day 10 before exam"
        assert last.title == "Sprint - 40 MCQs"
        assert last.description == "Day 1 before exam"

    def test_children_link_to_root(self, plan):
        assert all(e.parent_event_id == "root-1" for e in plan)
        assert all(e.learner_id == "learner-1" for e in plan)
        assert all(e.completed is False for e in plan)

    def test_filters_copied(self, plan):
        assert all(e.topics == ["Chemistry"] for e in plan)
        assert all(e.subtopics == ["Acids"] for e in plan)

    def test_no_mistake_review(self, plan):
        assert not any(e.include_mistake_review for e in plan)

    def test_deterministic_ids(self, plan):
        assert plan[0].id == study_suggestion_id("root-1", 10)
        assert plan[-1].id == "plan:root-1:d1"
        assert len({e.id for e in plan}) == 10


class TestQuizPlan:
    """Three-day plan ahead of a small quiz."""

    @pytest.fixture
    def plan(self):
        return build_study_plan(make_root(EventType.SMALL_QUIZ, date(2024, 6, 15)))

    def test_three_suggestions(self, plan):
        assert len(plan) == 3
        assert [e.date for e in plan] == [
            date(2024, 6, 12),
            date(2024, 6, 13),
            date(2024, 6, 14),
        ]

    def test_phases_and_counts(self, plan):
        assert [(e.phase, e.question_count) for e in plan] == [
            (StudyPhase.INITIAL_REVIEW.value, 5),
            (StudyPhase.TOPIC_FOCUS.value, 10),
            (StudyPhase.FINAL_POLISH.value, 15),
        ]

    def test_last_day_includes_mistake_review(self, plan):
        assert [e.include_mistake_review for e in plan] == [False, False, True]

    def test_description_names_quiz(self, plan):
        assert plan[-1].description == "Day 1 before quiz"
        assert plan[-1].title == "Final Polish - 15 MCQs"


class TestPlanSelection:
    """Only exams and quizzes have study plans."""

    def test_plan_tables(self):
        assert plan_for(EventType.MAJOR_EXAM) is EXAM_PLAN
        assert plan_for(EventType.SMALL_QUIZ) is QUIZ_PLAN
        assert sum(step.question_count for step in EXAM_PLAN) == 40 + 60 + 120

    @pytest.mark.parametrize(
        "event_type",
        [EventType.STUDY_SUGGESTION, EventType.REVIEW_REMINDER, EventType.AI_SUGGESTION],
    )
    def test_non_root_rejected(self, event_type):
        with pytest.raises(InvalidStateError):
            build_study_plan(make_root(event_type, date(2024, 6, 20)))

    def test_unknown_type_rejected(self):
        with pytest.raises(InvalidStateError):
            plan_for("office_hours")

    def test_empty_filters(self):
        root = make_root(EventType.SMALL_QUIZ, date(2024, 6, 15), topics=None, subtopics=None)

        plan = build_study_plan(root)

        assert all(e.topics == [] and e.subtopics == [] for e in plan)
