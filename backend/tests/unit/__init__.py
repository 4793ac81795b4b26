"""
Unit Tests

Database-backed tests run against an in-memory SQLite database via aiosqlite,
so no PostgreSQL or other services are needed.
"""
