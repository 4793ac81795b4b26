"""Services package for review scheduling, calendar events and background jobs."""
