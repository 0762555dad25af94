"""
Tests for the passphrase gate and its per-client rate limiting.
"""
from datetime import datetime, timedelta, timezone

import pytest

from app.services.passphrase import (
    PassphraseNotConfiguredError,
    PassphraseRateLimiter,
    verify_access_token,
    verify_passphrase,
)

NOW = datetime(2025, 3, 10, 12, 0, tzinfo=timezone.utc)
IP = "203.0.113.7"


@pytest.fixture
def limiter():
    return PassphraseRateLimiter(max_attempts=5, block_minutes=15)


def _attempt(limiter, passphrase, now=NOW, ip=IP):
    return verify_passphrase(passphrase, ip, now=now, expected="open sesame", limiter=limiter)


def test_correct_passphrase_issues_token(limiter):
    result = _attempt(limiter, "open sesame")

    assert result.success
    assert result.expires_at == NOW + timedelta(days=7)
    assert verify_access_token(result.access_token, now=NOW + timedelta(days=6))
    assert not verify_access_token(result.access_token, now=NOW + timedelta(days=8))


def test_wrong_passphrase_counts_down(limiter):
    remaining = [_attempt(limiter, "nope").remaining_attempts for _ in range(4)]
    assert remaining == [4, 3, 2, 1]


def test_blocked_after_max_attempts(limiter):
    for _ in range(5):
        _attempt(limiter, "nope")

    result = _attempt(limiter, "open sesame", now=NOW + timedelta(minutes=5, seconds=30))

    assert not result.success
    assert result.blocked_for_minutes == 10


def test_block_expires(limiter):
    for _ in range(5):
        _attempt(limiter, "nope")

    result = _attempt(limiter, "open sesame", now=NOW + timedelta(minutes=16))

    assert result.success


def test_success_clears_failed_attempts(limiter):
    for _ in range(3):
        _attempt(limiter, "nope")
    _attempt(limiter, "open sesame")

    assert _attempt(limiter, "nope").remaining_attempts == 4


def test_clients_limited_independently(limiter):
    for _ in range(5):
        _attempt(limiter, "nope")

    assert _attempt(limiter, "open sesame", ip="198.51.100.1").success


def test_not_configured(limiter):
    with pytest.raises(PassphraseNotConfiguredError):
        verify_passphrase("anything", IP, now=NOW, expected=None, limiter=limiter)


@pytest.mark.parametrize("token", [None, "", "garbage", '{"scope": "passphrase"}.deadbeef'])
def test_invalid_tokens(token):
    assert not verify_access_token(token, now=NOW)


def test_tampered_token_rejected(limiter):
    token = _attempt(limiter, "open sesame").access_token
    payload, signature = token.rsplit(".", 1)
    forged = payload.replace("2025", "2099") + "." + signature

    assert not verify_access_token(forged, now=NOW)


def test_stale_failures_are_forgotten(limiter):
    for _ in range(3):
        _attempt(limiter, "nope")
    assert limiter.tracked_clients() == 1

    later = NOW + timedelta(minutes=15)
    assert _attempt(limiter, "nope", now=later).remaining_attempts == 4


def test_prune_drops_idle_clients(limiter):
    for index in range(10):
        _attempt(limiter, "nope", ip=f"198.51.100.{index}")
    assert limiter.tracked_clients() == 10

    limiter.prune(NOW + timedelta(minutes=16))

    assert limiter.tracked_clients() == 0
