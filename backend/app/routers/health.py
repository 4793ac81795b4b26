"""
Health Check Endpoints

Endpoints:
- GET /api/health - Liveness, with the learner-local day the service computes
- GET /api/health/detailed - Database and job scheduler status
- GET /api/health/ready - Readiness probe (database accepts queries)
- GET /api/health/jobs - Scheduled jobs and their next run times
"""

from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.db.base import get_db
from app.services.clock import local_today
from app.services.scheduler import get_scheduled_jobs, scheduler

router = APIRouter(prefix="/api/health", tags=["health"])

# Jobs the scheduler must hold when it is running
EXPECTED_JOBS = ("review_reminders", "calendar_eviction")


async def _database_status(db: AsyncSession) -> dict:
    try:
        await db.execute(text("SELECT 1"))
    except (SQLAlchemyError, OSError) as e:
        return {"status": "unhealthy", "error": str(e)}
    return {"status": "healthy"}


def _scheduler_status() -> dict:
    if not settings.SCHEDULER_ENABLED:
        return {"status": "disabled"}
    if not scheduler.running:
        return {"status": "unhealthy", "error": "Scheduler not running"}

    missing = [job_id for job_id in EXPECTED_JOBS if scheduler.get_job(job_id) is None]
    if missing:
        return {"status": "unhealthy", "error": f"Missing jobs: {', '.join(missing)}"}
    return {"status": "healthy", "job_count": len(scheduler.get_jobs())}


@router.get("")
async def health_check():
    """
    Basic health check.

    `today` is the calendar day reviews and evictions are computed for, which
    makes timezone misconfiguration visible.
    """
    return {
        "status": "healthy",
        "service": settings.APP_NAME,
        "timezone": settings.APP_TIMEZONE,
        "today": local_today().isoformat(),
    }


@router.get("/detailed")
async def detailed_health_check(db: AsyncSession = Depends(get_db)):
    """Database connectivity and job scheduler state."""
    dependencies = {
        "database": await _database_status(db),
        "scheduler": _scheduler_status(),
    }
    degraded = any(dep["status"] == "unhealthy" for dep in dependencies.values())
    return {
        "status": "degraded" if degraded else "healthy",
        "service": settings.APP_NAME,
        "dependencies": dependencies,
    }


@router.get("/ready")
async def readiness_check(db: AsyncSession = Depends(get_db)):
    """Ready only if the database accepts queries."""
    database = await _database_status(db)
    if database["status"] != "healthy":
        return {"ready": False, "error": database["error"]}
    return {"ready": True}


@router.get("/jobs")
async def list_jobs():
    """Scheduled background jobs with their next run times."""
    return {"running": scheduler.running, "jobs": get_scheduled_jobs()}
