"""
API tests for the review and calendar routers.

Requests go through the full FastAPI app (validation, error handlers) with
get_db overridden to the in-memory test database.
"""

from datetime import date

import pytest

from app.db.models_calendar import CalendarEvent


async def create_mistakes(client, learner_id="learner-1", questions=("q1", "q2")):
    return await client.post(
        "/api/review/mistakes",
        params={"today": "2024-06-01"},
        json={
            "learner_id": learner_id,
            "session_id": "quiz-1",
            "missed_questions": [
                {"question_id": q, "topic": "Chemistry", "subtopic": "Acids"} for q in questions
            ],
        },
    )


class TestHealthEndpoints:
    """Health and root endpoints."""

    @pytest.mark.asyncio
    async def test_health(self, async_test_client):
        response = await async_test_client.get("/api/health")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    @pytest.mark.asyncio
    async def test_detailed_health_reports_database(self, async_test_client):
        response = await async_test_client.get("/api/health/detailed")

        data = response.json()
        assert data["dependencies"]["database"]["status"] == "healthy"
        assert data["dependencies"]["scheduler"]["status"] == "disabled"

    @pytest.mark.asyncio
    async def test_root(self, async_test_client):
        response = await async_test_client.get("/")

        assert response.status_code == 200


class TestReviewRouter:
    """Mistake ingestion and review endpoints."""

    @pytest.mark.asyncio
    async def test_create_mistakes_is_idempotent(self, async_test_client):
        first = await create_mistakes(async_test_client)
        second = await create_mistakes(async_test_client)

        assert first.status_code == 200
        assert len(first.json()["created"]) == 2
        assert first.json()["created"][0]["next_review_date"] == "2024-06-02"
        assert second.json() == {"created": [], "skipped": 2}

    @pytest.mark.asyncio
    async def test_unknown_fields_rejected(self, async_test_client):
        response = await async_test_client.post(
            "/api/review/mistakes",
            json={"learner_id": "l", "session_id": "s", "missed": []},
        )

        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_due_and_due_on(self, async_test_client):
        await create_mistakes(async_test_client)

        due = await async_test_client.get(
            "/api/review/due", params={"learner_id": "learner-1", "as_of": "2024-06-05"}
        )
        due_on = await async_test_client.get(
            "/api/review/due-on", params={"learner_id": "learner-1", "date": "2024-06-05"}
        )

        assert due.json()["total"] == 2
        assert due_on.json()["total"] == 0

    @pytest.mark.asyncio
    async def test_submit_review(self, async_test_client):
        created = await create_mistakes(async_test_client, questions=("q1",))
        card_id = created.json()["created"][0]["id"]

        response = await async_test_client.post(
            f"/api/review/cards/{card_id}/review",
            params={"today": "2024-06-02"},
            json={"was_correct": False, "user_answer": "A", "correct_answer": "C"},
        )

        assert response.status_code == 200
        data = response.json()
        assert data["attempt_number"] == 1
        assert data["card"]["confidence_factor"] == 2.3
        assert data["card"]["status"] == "learning"

    @pytest.mark.asyncio
    async def test_review_missing_card_returns_404(self, async_test_client):
        response = await async_test_client.post(
            "/api/review/cards/card:none:q:s/review", json={"was_correct": True}
        )

        assert response.status_code == 404
        body = response.json()
        assert body["error"] == "not_found"
        assert body["retryable"] is False
        assert "error_id" in body

    @pytest.mark.asyncio
    async def test_review_session(self, async_test_client):
        created = await create_mistakes(async_test_client)
        card_ids = [c["id"] for c in created.json()["created"]]

        response = await async_test_client.post(
            "/api/review/sessions",
            params={"today": "2024-06-02"},
            json={
                "learner_id": "learner-1",
                "reviews": [
                    {"card_id": card_ids[0], "was_correct": True},
                    {"card_id": card_ids[1], "was_correct": True},
                ],
            },
        )

        assert response.status_code == 200
        assert response.json()["cards_correct"] == 2

    @pytest.mark.asyncio
    async def test_stats_and_forecast(self, async_test_client):
        await create_mistakes(async_test_client)

        stats = await async_test_client.get(
            "/api/review/stats", params={"learner_id": "learner-1", "today": "2024-06-02"}
        )
        forecast = await async_test_client.get(
            "/api/review/forecast",
            params={"learner_id": "learner-1", "start": "2024-06-01", "days": 3},
        )

        assert stats.json()["due_today"] == 2
        days = forecast.json()["days"]
        assert [d["count"] for d in days] == [0, 2, 0]


class TestCalendarRouter:
    """Calendar endpoints."""

    @pytest.mark.asyncio
    async def test_create_exam_returns_plan(self, async_test_client):
        response = await async_test_client.post(
            "/api/calendar/events",
            json={
                "learner_id": "learner-1",
                "event_type": "major_exam",
                "date": "2024-06-20",
                "title": "Finals",
            },
        )

        assert response.status_code == 201
        data = response.json()
        assert data["event"]["title"] == "Finals"
        assert len(data["study_plan"]) == 10

    @pytest.mark.asyncio
    async def test_create_non_root_returns_409(self, async_test_client):
        response = await async_test_client.post(
            "/api/calendar/events",
            json={"learner_id": "learner-1", "event_type": "review_reminder", "date": "2024-06-20"},
        )

        assert response.status_code == 409
        assert response.json()["error"] == "invalid_state"

    @pytest.mark.asyncio
    async def test_view_complete_and_delete(self, async_test_client):
        created = await async_test_client.post(
            "/api/calendar/events",
            json={"learner_id": "learner-1", "event_type": "small_quiz", "date": "2024-06-20"},
        )
        quiz_id = created.json()["event"]["id"]

        view = await async_test_client.get(
            "/api/calendar/view",
            params={"learner_id": "learner-1", "start": "2024-06-17", "end": "2024-06-20"},
        )
        assert [len(d["study_suggestions"]) for d in view.json()["days"]] == [1, 1, 1, 0]
        assert len(view.json()["days"][-1]["quizzes"]) == 1

        completed = await async_test_client.post(
            f"/api/calendar/events/{quiz_id}/complete",
            json={"completion_data": {"score": 9}},
        )
        assert completed.json()["completed"] is True

        deleted = await async_test_client.delete(f"/api/calendar/events/{quiz_id}")
        assert deleted.json() == {"event_id": quiz_id, "deleted_count": 4}

        events = await async_test_client.get(
            "/api/calendar/events",
            params={"learner_id": "learner-1", "start": "2024-06-01", "end": "2024-06-30"},
        )
        assert events.json() == []

    @pytest.mark.asyncio
    async def test_unknown_event_type_listed_but_not_in_view(self, async_test_client, db_session):
        db_session.add(
            CalendarEvent(
                id="legacy-1",
                learner_id="learner-1",
                event_type="legacy_note",
                date=date(2024, 6, 10),
                title="Imported note",
                completed=False,
                include_mistake_review=False,
            )
        )
        await db_session.commit()
        params = {"learner_id": "learner-1", "start": "2024-06-01", "end": "2024-06-30"}

        events = await async_test_client.get("/api/calendar/events", params=params)
        view = await async_test_client.get("/api/calendar/view", params=params)

        assert events.status_code == 200
        assert [(e["id"], e["event_type"]) for e in events.json()] == [("legacy-1", "legacy_note")]
        assert view.status_code == 200
        assert view.json()["days"] == []

    @pytest.mark.asyncio
    async def test_ai_suggestion(self, async_test_client):
        response = await async_test_client.post(
            "/api/calendar/ai-suggestions",
            json={
                "learner_id": "learner-1",
                "candidate": {
                    "topic": "Chemistry",
                    "subtopic": "Acids",
                    "suggested_date": "2024-06-05",
                    "priority": "high",
                },
            },
        )

        assert response.status_code == 201
        assert response.json()["title"] == "AI: Acids"

    @pytest.mark.asyncio
    async def test_schedule_reminders(self, async_test_client):
        await create_mistakes(async_test_client)

        response = await async_test_client.post(
            "/api/calendar/reminders/schedule",
            json={"learner_id": "learner-1", "for_date": "2024-06-02"},
        )

        assert response.json() == {"learner_id": "learner-1", "date": "2024-06-02", "scheduled": 2}

    @pytest.mark.asyncio
    async def test_eviction_preview(self, async_test_client):
        await async_test_client.post(
            "/api/calendar/events",
            json={"learner_id": "learner-1", "event_type": "small_quiz", "date": "2024-05-20"},
        )

        response = await async_test_client.get(
            "/api/calendar/eviction/preview",
            params={"learner_id": "learner-1", "cutoff": "2024-06-01"},
        )

        data = response.json()
        assert data["total"] == 4
        assert data["deletable"] == 3
        assert data["preserved_by_reason"] == {"root_event": 1}
