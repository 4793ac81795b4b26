"""
Study Calendar Test Suite

Test Structure:
    tests/
    ├── conftest.py                  # In-memory database, session and client fixtures
    └── unit/
        ├── test_interval_policy.py  # Pure scheduling policy
        ├── test_study_plan.py       # Exam/quiz study plans
        ├── test_card_store.py       # Review cards, reviews, stats, forecasts
        ├── test_event_store.py      # Calendar events, cascade delete, views
        ├── test_review_scheduler.py # Just-in-time review reminders
        ├── test_eviction.py         # Nightly eviction pass
        ├── test_scheduler.py        # APScheduler jobs and clock helpers
        ├── test_error_handling.py   # Error hierarchy and store error translation
        ├── test_config.py           # Settings and YAML config
        └── test_routers.py          # HTTP API through the FastAPI app

Running Tests:
    pip install -e ".[test]"
    pytest -v
"""
