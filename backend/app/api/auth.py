"""
Authentication endpoints.
"""
from fastapi import APIRouter, Depends, HTTPException, Request, status, Response, Cookie
from sqlalchemy.orm import Session
from typing import Optional
from pydantic import BaseModel, EmailStr, Field
import bcrypt
import logging
from datetime import datetime
from app.core import config
from app.core.database import get_db
from app.models.user import User
from app.core.auth import create_session, delete_session, get_current_user_dependency
from app.services.passphrase import PassphraseNotConfiguredError, verify_access_token, verify_passphrase

logger = logging.getLogger(__name__)

router = APIRouter()


def hash_password(password: str) -> str:
    """Hash password using bcrypt."""
    password_bytes = password.encode('utf-8')
    return bcrypt.hashpw(password_bytes, bcrypt.gensalt()).decode('utf-8')


def verify_password(password: str, hashed: str) -> bool:
    """Verify password against hash."""
    try:
        return bcrypt.checkpw(password.encode('utf-8'), hashed.encode('utf-8'))
    except ValueError:
        return False


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class RegisterRequest(BaseModel):
    email: EmailStr
    password: str = Field(min_length=6)
    full_name: Optional[str] = None


class PassphraseRequest(BaseModel):
    passphrase: str = Field(min_length=1)


class PassphraseResponse(BaseModel):
    success: bool
    access_token: str
    expires_at: datetime


class UserResponse(BaseModel):
    id: int
    email: str
    full_name: Optional[str]
    created_at: Optional[datetime]

    class Config:
        from_attributes = True


def _set_session_cookie(response: Response, session_token: str) -> None:
    response.set_cookie(
        key=config.SESSION_COOKIE_NAME,
        value=session_token,
        httponly=True,
        secure=False,  # Set to True in production with HTTPS
        samesite="lax",
        max_age=config.SESSION_TTL_HOURS * 3600,
        path="/",
    )


@router.post("/register", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
async def register(
    request: RegisterRequest,
    response: Response,
    db: Session = Depends(get_db)
):
    """Create an account and open a session."""
    existing = db.query(User).filter(User.email == request.email).first()
    if existing:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Email already registered"
        )

    user = User(
        email=request.email,
        hashed_password=hash_password(request.password),
        full_name=request.full_name,
        is_active=True,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    logger.info(f"Registered user {user.id}")

    _set_session_cookie(response, create_session(user.id, user.email))
    return UserResponse.model_validate(user)


@router.post("/login", response_model=dict)
async def login(
    request: LoginRequest,
    response: Response,
    db: Session = Depends(get_db)
):
    """Login with email and password."""
    user = db.query(User).filter(User.email == request.email).first()

    if not user or not verify_password(request.password, user.hashed_password):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid email or password"
        )

    if not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="User account is inactive"
        )

    _set_session_cookie(response, create_session(user.id, user.email))

    return {
        "success": True,
        "user": UserResponse.model_validate(user),
    }


@router.post("/logout")
async def logout(
    response: Response,
    session_token: Optional[str] = Cookie(None, alias=config.SESSION_COOKIE_NAME),
):
    """Logout and clear the session."""
    if session_token:
        delete_session(session_token)
    response.delete_cookie(key=config.SESSION_COOKIE_NAME, path="/")
    return {"success": True}


@router.get("/me", response_model=UserResponse)
async def get_current_user_info(current_user: User = Depends(get_current_user_dependency)):
    """Get current user information."""
    return UserResponse.model_validate(current_user)


@router.post("/passphrase", response_model=PassphraseResponse)
async def check_passphrase(request: PassphraseRequest, http_request: Request):
    """Verify the shared access passphrase (rate limited per client IP)."""
    forwarded = http_request.headers.get("x-forwarded-for")
    if forwarded:
        client_ip = forwarded.split(",")[0].strip()
    else:
        client_ip = http_request.client.host if http_request.client else "unknown"

    try:
        result = verify_passphrase(request.passphrase, client_ip, expected=config.APP_PASSPHRASE)
    except PassphraseNotConfiguredError:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Passphrase gate is not configured"
        )

    if result.blocked_for_minutes is not None:
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail={
                "error": f"Too many attempts. Try again in {result.blocked_for_minutes} minute(s).",
                "blocked": True,
                "blocked_for": result.blocked_for_minutes,
            }
        )

    if not result.success:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={
                "error": "Invalid passphrase",
                "remaining_attempts": result.remaining_attempts,
            }
        )

    return PassphraseResponse(success=True, access_token=result.access_token, expires_at=result.expires_at)


@router.get("/passphrase/status")
async def passphrase_status(http_request: Request):
    """Tell the client whether the gate is enabled and its access token still valid."""
    token = http_request.headers.get("x-access-token")
    return {
        "required": bool(config.APP_PASSPHRASE),
        "valid": verify_access_token(token),
    }
