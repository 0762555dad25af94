"""
FastAPI application entry point.
"""
import logging
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from app.api import health, auth, subscriptions, credit_history, alerts
from app.core.config import get_settings
from app.core.database import Base, engine
from app import models  # noqa: F401  (register tables on Base.metadata)

logger = logging.getLogger(__name__)

app_settings = get_settings()

app = FastAPI(
    title="Subscription Tracker API",
    description="Track AI subscriptions, renewals and credit usage",
    version="0.1.0",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=app_settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(health.router, tags=["health"])
app.include_router(auth.router, prefix="/api/auth", tags=["auth"])
app.include_router(subscriptions.router, prefix="/api/subscriptions", tags=["subscriptions"])
app.include_router(credit_history.router, prefix="/api/credit-history", tags=["credit-history"])
app.include_router(alerts.router, prefix="/api/alerts", tags=["alerts"])

SCHEDULER_LOCK_PATH = "/tmp/subtracker-scheduler.lock"

_scheduler_lock_file = None


def _acquire_scheduler_lock():
    """
    Acquire an exclusive, non-blocking file lock so only one uvicorn worker
    runs the alert scheduler. Returns the open lock file, or None if another
    process holds it.
    """
    try:
        import fcntl
    except ImportError:
        # fcntl not available (Windows)
        logger.warning("fcntl not available, alert scheduler may run in several workers")
        return open(SCHEDULER_LOCK_PATH, 'w')

    lock_file = open(SCHEDULER_LOCK_PATH, 'w')
    try:
        fcntl.flock(lock_file.fileno(), fcntl.LOCK_EX | fcntl.LOCK_NB)
    except BlockingIOError:
        lock_file.close()
        return None
    return lock_file


def _release_scheduler_lock(lock_file):
    if not lock_file:
        return
    try:
        import fcntl
        fcntl.flock(lock_file.fileno(), fcntl.LOCK_UN)
    except (ImportError, OSError) as e:
        logger.warning(f"Error releasing scheduler lock: {e}")
    lock_file.close()


@app.on_event("startup")
async def startup_event():
    """Initialize services on startup."""
    global _scheduler_lock_file

    if app_settings.database_dsn.startswith("sqlite"):
        # Local development without migrations
        Base.metadata.create_all(bind=engine)

    if not app_settings.enable_alert_scheduler:
        logger.info("Renewal alert scheduler disabled")
        return

    lock_file = _acquire_scheduler_lock()
    if lock_file is None:
        logger.info("Alert scheduler already active in another process, skipping")
        return
    _scheduler_lock_file = lock_file

    from app.services.scheduler import start_alert_job
    try:
        start_alert_job(app_settings.alert_schedule)
    except ValueError as e:
        logger.error(f"Could not start renewal alert job: {e}")
        _release_scheduler_lock(_scheduler_lock_file)
        _scheduler_lock_file = None


@app.on_event("shutdown")
async def shutdown_event():
    """Cleanup on shutdown."""
    global _scheduler_lock_file
    from app.services.scheduler import stop_scheduler

    stop_scheduler()
    _release_scheduler_lock(_scheduler_lock_file)
    _scheduler_lock_file = None
