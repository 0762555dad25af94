"""
Shared-passphrase access gate with per-client rate limiting.

Failed attempts are counted per client IP; after PASSPHRASE_MAX_ATTEMPTS
failures the client is blocked for PASSPHRASE_BLOCK_MINUTES. State is kept
in memory and resets on restart; failures older than the block window
are forgotten.
"""
import hmac
import json
import logging
import math
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional
from app.core.auth import sign_payload
from app.core.config import (
    APP_PASSPHRASE,
    PASSPHRASE_BLOCK_MINUTES,
    PASSPHRASE_MAX_ATTEMPTS,
    PASSPHRASE_SESSION_DAYS,
)

logger = logging.getLogger(__name__)


class PassphraseNotConfiguredError(Exception):
    """Raised when the passphrase gate is used without APP_PASSPHRASE."""


@dataclass
class RateLimitStatus:
    allowed: bool
    remaining_attempts: int
    blocked_for_minutes: Optional[int] = None


@dataclass
class PassphraseResult:
    success: bool
    remaining_attempts: int = 0
    blocked_for_minutes: Optional[int] = None
    access_token: Optional[str] = None
    expires_at: Optional[datetime] = None


@dataclass
class _AttemptRecord:
    attempts: int = 0
    last_attempt: Optional[datetime] = None
    blocked_until: Optional[datetime] = None


class PassphraseRateLimiter:
    """
    In-memory failed-attempt counter keyed by client IP.

    Failures older than the block window are forgotten, so records of
    clients that stop trying are dropped instead of accumulating.
    """

    def __init__(self, max_attempts: int = PASSPHRASE_MAX_ATTEMPTS, block_minutes: int = PASSPHRASE_BLOCK_MINUTES):
        self.max_attempts = max_attempts
        self.block_window = timedelta(minutes=block_minutes)
        self._records: dict[str, _AttemptRecord] = {}

    def _expires_at(self, record: _AttemptRecord) -> datetime:
        if record.blocked_until is not None:
            return record.blocked_until
        return record.last_attempt + self.block_window

    def prune(self, now: datetime) -> None:
        """Drop records whose block or failure window has ended."""
        stale = [ip for ip, record in self._records.items() if self._expires_at(record) <= now]
        for ip in stale:
            del self._records[ip]

    def check(self, client_ip: str, now: datetime) -> RateLimitStatus:
        self.prune(now)
        record = self._records.get(client_ip)
        if record is None:
            return RateLimitStatus(allowed=True, remaining_attempts=self.max_attempts)

        if record.blocked_until is not None:
            blocked_for = math.ceil((record.blocked_until - now).total_seconds() / 60)
            return RateLimitStatus(allowed=False, remaining_attempts=0, blocked_for_minutes=blocked_for)

        return RateLimitStatus(allowed=True, remaining_attempts=self.max_attempts - record.attempts)

    def record_attempt(self, client_ip: str, success: bool, now: datetime) -> None:
        if success:
            self._records.pop(client_ip, None)
            return

        record = self._records.setdefault(client_ip, _AttemptRecord())
        record.attempts += 1
        record.last_attempt = now
        if record.attempts >= self.max_attempts:
            record.blocked_until = now + self.block_window
            logger.warning(f"Client {client_ip} blocked until {record.blocked_until.isoformat()}")

    def tracked_clients(self) -> int:
        return len(self._records)

    def reset(self) -> None:
        self._records.clear()


rate_limiter = PassphraseRateLimiter()


def create_access_token(expires_at: datetime) -> str:
    payload = json.dumps({'scope': 'passphrase', 'expires_at': expires_at.isoformat()}, sort_keys=True)
    return f"{payload}.{sign_payload(payload)}"


def verify_access_token(token: Optional[str], now: Optional[datetime] = None) -> bool:
    """Check a token issued by verify_passphrase is authentic and unexpired."""
    if not token:
        return False
    now = now or datetime.now(timezone.utc)
    try:
        payload, signature = token.rsplit('.', 1)
        if not hmac.compare_digest(signature, sign_payload(payload)):
            return False
        data = json.loads(payload)
        return data.get('scope') == 'passphrase' and datetime.fromisoformat(data['expires_at']) > now
    except (ValueError, KeyError, TypeError):
        return False


def verify_passphrase(
    passphrase: str,
    client_ip: str,
    now: Optional[datetime] = None,
    expected: Optional[str] = APP_PASSPHRASE,
    limiter: PassphraseRateLimiter = rate_limiter,
) -> PassphraseResult:
    """
    Check a passphrase attempt.

    Args:
        passphrase: Submitted passphrase
        client_ip: Client address used for rate limiting
        now: Current time (defaults to now, UTC)
        expected: Configured passphrase
        limiter: Rate limiter instance

    Returns:
        PassphraseResult; access_token is set on success
    """
    if not expected:
        logger.error("APP_PASSPHRASE not configured")
        raise PassphraseNotConfiguredError("APP_PASSPHRASE not configured")

    now = now or datetime.now(timezone.utc)
    rate = limiter.check(client_ip, now)
    if not rate.allowed:
        logger.info(f"Rate limited client {client_ip}, blocked for {rate.blocked_for_minutes} minutes")
        return PassphraseResult(success=False, blocked_for_minutes=rate.blocked_for_minutes)

    is_valid = hmac.compare_digest(passphrase.encode('utf-8'), expected.encode('utf-8'))
    limiter.record_attempt(client_ip, is_valid, now)

    if not is_valid:
        remaining = rate.remaining_attempts - 1
        logger.info(f"Invalid passphrase attempt from {client_ip}, {remaining} attempts remaining")
        return PassphraseResult(success=False, remaining_attempts=remaining)

    logger.info(f"Successful passphrase verification from {client_ip}")
    expires_at = now + timedelta(days=PASSPHRASE_SESSION_DAYS)
    return PassphraseResult(
        success=True,
        remaining_attempts=limiter.max_attempts,
        access_token=create_access_token(expires_at),
        expires_at=expires_at,
    )
