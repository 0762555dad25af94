"""
Authentication utilities and dependencies.
"""
from fastapi import Depends, HTTPException, status, Cookie
from sqlalchemy.orm import Session
from typing import Optional
from app.core.database import get_db
from app.models.user import User
from app.core.config import SESSION_COOKIE_NAME, SESSION_SECRET, SESSION_TTL_HOURS
import hashlib
import hmac
import json
from datetime import datetime, timedelta, timezone

# Simple session storage (in-memory cache, tokens are self-verifying)
_sessions: dict[str, dict] = {}

__all__ = ['create_session', 'verify_session', 'delete_session', 'sign_payload', 'get_current_user_dependency']


def sign_payload(payload: str) -> str:
    """HMAC-SHA256 signature of ``payload`` with the session secret."""
    return hmac.new(
        SESSION_SECRET.encode() if SESSION_SECRET else b'default-secret-change-in-prod',
        payload.encode(),
        hashlib.sha256
    ).hexdigest()


def create_session(user_id: int, email: str) -> str:
    """Create a session token."""
    session_data = {
        'user_id': user_id,
        'email': email,
        'created_at': datetime.now(timezone.utc).isoformat(),
    }

    session_json = json.dumps(session_data, sort_keys=True)
    session_token = f"{session_json}.{sign_payload(session_json)}"
    _sessions[session_token] = session_data

    return session_token


def _is_expired(session_data: dict) -> bool:
    created_at = datetime.fromisoformat(session_data['created_at'])
    if created_at.tzinfo is None:
        created_at = created_at.replace(tzinfo=timezone.utc)
    return datetime.now(timezone.utc) - created_at > timedelta(hours=SESSION_TTL_HOURS)


def verify_session(session_token: str) -> Optional[dict]:
    """Verify and get session data."""
    if not session_token:
        return None

    # Check in-memory cache first
    session_data = _sessions.get(session_token)
    if session_data is not None:
        if _is_expired(session_data):
            del _sessions[session_token]
            return None
        return session_data

    # Verify signature
    try:
        parts = session_token.rsplit('.', 1)
        if len(parts) != 2:
            return None

        session_json, signature = parts
        if not hmac.compare_digest(signature, sign_payload(session_json)):
            return None

        session_data = json.loads(session_json)
        if _is_expired(session_data):
            return None

        _sessions[session_token] = session_data
        return session_data
    except (ValueError, KeyError, TypeError):
        return None


def delete_session(session_token: str):
    """Delete a session."""
    if session_token in _sessions:
        del _sessions[session_token]


def get_current_user_dependency(
    session_token: Optional[str] = Cookie(None, alias=SESSION_COOKIE_NAME),
    db: Session = Depends(get_db)
) -> User:
    """Dependency to get current authenticated user."""
    if not session_token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated"
        )

    session_data = verify_session(session_token)
    if not session_data:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired session"
        )

    user = db.query(User).filter(User.id == session_data['user_id']).first()
    if not user or not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found or inactive"
        )

    return user
