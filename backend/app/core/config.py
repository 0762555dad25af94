"""
Configuration management.
Loads from config_local.py (gitignored) for secrets, with defaults.
"""
from typing import Optional, Tuple

# Try to import local config (gitignored)
try:
    from app.config_local import (
        DATABASE_DSN,
        SESSION_COOKIE_NAME,
        SESSION_SECRET,
        APP_PASSPHRASE,
        SMTP_HOST,
        SMTP_PORT,
        SMTP_USE_SSL,
        SMTP_USERNAME,
        SMTP_PASSWORD,
        SMTP_FROM_EMAIL,
        SMTP_FROM_NAME,
        ALERT_EMAIL,
    )
    # Optional tuning values with fallbacks if not present
    try:
        from app.config_local import ALERT_DAYS, ALERT_SCHEDULE, ENABLE_ALERT_SCHEDULER, CORS_ORIGINS
    except ImportError:
        ALERT_DAYS = (11, 5, 1)  # Days before renewal: early warning, reminder, urgent
        ALERT_SCHEDULE = "08:00"
        ENABLE_ALERT_SCHEDULER = True
        CORS_ORIGINS = ["http://localhost:5173", "http://127.0.0.1:5173"]
except ImportError:
    # Fallback defaults (SQLite file database, no email, no passphrase gate)
    DATABASE_DSN: str = "sqlite:///./subscriptions.db"
    SESSION_COOKIE_NAME: str = "subtracker_session"
    SESSION_SECRET: Optional[str] = None
    APP_PASSPHRASE: Optional[str] = None
    SMTP_HOST: Optional[str] = None
    SMTP_PORT: int = 465
    SMTP_USE_SSL: bool = True
    SMTP_USERNAME: Optional[str] = None
    SMTP_PASSWORD: Optional[str] = None
    SMTP_FROM_EMAIL: Optional[str] = None
    SMTP_FROM_NAME: str = "Mes Abonnements IA"
    ALERT_EMAIL: Optional[str] = None
    ALERT_DAYS: Tuple[int, ...] = (11, 5, 1)
    ALERT_SCHEDULE: str = "08:00"  # Server local time HH:MM
    ENABLE_ALERT_SCHEDULER: bool = False
    CORS_ORIGINS: list = ["http://localhost:5173", "http://127.0.0.1:5173"]

SESSION_TTL_HOURS: int = 24
PASSPHRASE_MAX_ATTEMPTS: int = 5
PASSPHRASE_BLOCK_MINUTES: int = 15
PASSPHRASE_SESSION_DAYS: int = 7


def get_settings():
    """Return settings object (for FastAPI dependency injection if needed)."""
    return type("Settings", (), {
        "database_dsn": DATABASE_DSN,
        "session_cookie_name": SESSION_COOKIE_NAME,
        "session_secret": SESSION_SECRET,
        "session_ttl_hours": SESSION_TTL_HOURS,
        "app_passphrase": APP_PASSPHRASE,
        "passphrase_max_attempts": PASSPHRASE_MAX_ATTEMPTS,
        "passphrase_block_minutes": PASSPHRASE_BLOCK_MINUTES,
        "passphrase_session_days": PASSPHRASE_SESSION_DAYS,
        "smtp_host": SMTP_HOST,
        "smtp_port": SMTP_PORT,
        "smtp_use_ssl": SMTP_USE_SSL,
        "smtp_username": SMTP_USERNAME,
        "smtp_password": SMTP_PASSWORD,
        "smtp_from_email": SMTP_FROM_EMAIL,
        "smtp_from_name": SMTP_FROM_NAME,
        "alert_email": ALERT_EMAIL,
        "alert_days": tuple(ALERT_DAYS),
        "alert_schedule": ALERT_SCHEDULE,
        "enable_alert_scheduler": ENABLE_ALERT_SCHEDULER,
        "cors_origins": list(CORS_ORIGINS),
    })()
