#!/usr/bin/env python3
"""
Run the calendar eviction pass manually.

Deletes unfinished study suggestions, AI suggestions and stale review
reminders dated before the cutoff, exactly like the nightly job.

Usage:
    # Dry run (per-learner preview, nothing deleted)
    python scripts/run_calendar_eviction.py --dry-run

    # Evict every learner with the default cutoff (yesterday)
    python scripts/run_calendar_eviction.py

    # One learner, explicit cutoff
    python scripts/run_calendar_eviction.py --learner learner-1 --cutoff 2024-06-01
"""

import asyncio
import argparse
import logging
import sys
from datetime import date
from pathlib import Path

# Add backend to path
backend_path = Path(__file__).parent.parent / "backend"
sys.path.insert(0, str(backend_path))


async def main(
    dry_run: bool = False,
    learner_ids: list[str] | None = None,
    cutoff: date | None = None,
) -> int:
    """Run (or preview) calendar eviction."""
    from app.db.base import async_session_maker
    from app.services.calendar.event_store import EventStore
    from app.services.calendar.eviction import EvictionEngine
    from app.services.clock import default_cutoff, local_today

    engine = EvictionEngine()
    today = local_today()
    cutoff = cutoff or default_cutoff(today)

    try:
        if dry_run:
            if not learner_ids:
                async with async_session_maker() as db:
                    learner_ids = await EventStore(db).list_learner_ids()

            print(f"\n=== Eviction preview before {cutoff} ===")
            print("(DRY RUN - no changes will be made)")
            total_deletable = 0
            for learner_id in learner_ids:
                preview = await engine.preview_learner(learner_id, cutoff)
                total_deletable += preview.deletable
                print(
                    f"  {learner_id}: {preview.total} past events, "
                    f"{preview.completed} completed, {preview.deletable} deletable"
                )
            print(f"\nWould delete {total_deletable} events across {len(learner_ids)} learners")
            print("To actually run, remove the --dry-run flag:")
            print("  python scripts/run_calendar_eviction.py")
            return 0

        report = await engine.run(today=today, cutoff=cutoff, learner_ids=learner_ids)

        print("\n=== Eviction report ===")
        print(f"  Cutoff date: {report.cutoff_date}")
        print(f"  Learners processed: {report.users_processed}")
        print(f"  Events deleted: {report.events_deleted}")
        print(f"  Events preserved: {report.events_preserved}")
        print(f"  Errors: {len(report.errors)}")
        for error in report.errors:
            print(f"    {error.learner_id}: {error.error}")

        return 1 if report.errors else 0

    except Exception as e:
        print(f"ERROR: {e}")
        import traceback
        traceback.print_exc()
        return 1


if __name__ == "__main__":
    parser = argparse.ArgumentParser(
        description="Delete stale unfinished calendar events"
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Preview what would be deleted without deleting",
    )
    parser.add_argument(
        "--learner",
        action="append",
        dest="learners",
        help="Restrict to this learner id (repeatable)",
    )
    parser.add_argument(
        "--cutoff",
        type=date.fromisoformat,
        help="Evict events dated before this day (YYYY-MM-DD, default: yesterday)",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable debug logging",
    )

    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    exit_code = asyncio.run(main(
        dry_run=args.dry_run,
        learner_ids=args.learners,
        cutoff=args.cutoff,
    ))
    sys.exit(exit_code)
