"""
Study Calendar API

FastAPI application wiring: routers, error handling, CORS and the
in-process job scheduler.

Run:
    uvicorn app.main:app --reload   (from backend/)
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.config import settings
from app.db.base import init_db
from app.middleware import setup_error_handling
from app.routers import calendar_router, health_router, review_router
from app.services.scheduler import start_scheduler, stop_scheduler

logging.basicConfig(
    level=logging.DEBUG if settings.DEBUG else logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create tables in debug mode and run the scheduler for the app's lifetime."""
    if settings.DEBUG:
        await init_db()
        logger.info("Database tables initialized (debug mode)")

    if settings.SCHEDULER_ENABLED:
        start_scheduler()

    yield

    if settings.SCHEDULER_ENABLED:
        stop_scheduler()


app = FastAPI(title=f"{settings.APP_NAME} API", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
setup_error_handling(app, debug=settings.DEBUG)

app.include_router(health_router.router)
app.include_router(review_router.router)
app.include_router(calendar_router.router)


@app.get("/")
async def root():
    return {"message": f"{settings.APP_NAME} API"}
