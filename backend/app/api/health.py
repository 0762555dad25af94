"""
Health check endpoint.
"""
import logging
from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.orm import Session
from app.core.database import get_db

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/health")
async def health(db: Session = Depends(get_db)):
    """Liveness plus a database round trip."""
    try:
        db.execute(text("SELECT 1"))
        database = "ok"
    except Exception as e:
        logger.error(f"Health check database error: {e}")
        database = "error"
    return {"status": "ok" if database == "ok" else "degraded", "database": database}
