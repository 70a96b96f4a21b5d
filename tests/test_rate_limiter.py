# =============================================================================
# tests/test_rate_limiter.py - Sliding Window Rate Limiter Tests
# =============================================================================
# This module contains tests for:
# - Allowing requests under the limit and rejecting past it
# - Independent counters per identifier and per limiter
# - Client IP resolution from proxy headers
# =============================================================================

import time
from types import SimpleNamespace
from unittest.mock import patch

import pytest
from fastapi import HTTPException, Response

from app.core import rate_limiter
from app.core.rate_limiter import (
    RateLimiter,
    login_rate_limiter,
    signup_rate_limiter,
    get_client_ip,
    get_rate_limit_ip,
    create_rate_limit_identifier,
)


@pytest.fixture(autouse=True)
def reset_limits():
    rate_limiter.reset_all()
    yield
    rate_limiter.reset_all()


def fake_request(headers=None, host="127.0.0.1"):
    return SimpleNamespace(
        headers={k.lower(): v for k, v in (headers or {}).items()},
        client=SimpleNamespace(host=host) if host else None,
    )


# =============================================================================
# Limiter behaviour
# =============================================================================

class TestRateLimiter:
    """Test the moving window limiter."""

    def test_allows_up_to_max_requests(self):
        limiter = RateLimiter("test-allow", 3, 60)
        results = [limiter.check("user-1") for _ in range(3)]
        assert all(r.success for r in results)
        assert [r.remaining for r in results] == [2, 1, 0]

    def test_rejects_past_the_limit(self):
        limiter = RateLimiter("test-reject", 2, 60)
        limiter.check("user-1")
        limiter.check("user-1")
        result = limiter.check("user-1")
        assert result.success is False
        assert result.remaining == 0
        assert result.reset_time > time.time()

    def test_identifiers_are_independent(self):
        limiter = RateLimiter("test-ident", 1, 60)
        assert limiter.check("a").success is True
        assert limiter.check("a").success is False
        assert limiter.check("b").success is True

    def test_limiters_do_not_share_counters(self):
        first = RateLimiter("test-first", 1, 60)
        second = RateLimiter("test-second", 1, 60)
        assert first.check("same").success is True
        assert second.check("same").success is True

    def test_reset_identifier(self):
        limiter = RateLimiter("test-reset", 1, 60)
        limiter.check("user-1")
        limiter.reset("user-1")
        assert limiter.check("user-1").success is True

    def test_fails_open_on_storage_error(self):
        limiter = RateLimiter("test-open", 1, 60)
        with patch.object(rate_limiter._strategy, "hit", side_effect=RuntimeError("storage down")):
            result = limiter.check("user-1")
        assert result.success is True
        assert result.remaining == 1

    def test_headers(self):
        limiter = RateLimiter("test-headers", 5, 60)
        result = limiter.check("user-1")
        response = Response()
        limiter.apply_headers(response, result)
        assert response.headers["X-RateLimit-Limit"] == "5"
        assert response.headers["X-RateLimit-Remaining"] == "4"
        assert int(response.headers["X-RateLimit-Reset"]) >= int(time.time())

    def test_raise_exceeded(self):
        limiter = RateLimiter("test-raise", 1, 60)
        limiter.check("user-1")
        result = limiter.check("user-1")
        with pytest.raises(HTTPException) as exc_info:
            limiter.raise_exceeded(result, "slow down")
        assert exc_info.value.status_code == 429
        assert exc_info.value.detail == "slow down"
        headers = exc_info.value.headers
        assert headers["X-RateLimit-Remaining"] == "0"
        assert 1 <= int(headers["Retry-After"]) <= 60


class TestPreconfiguredLimiters:
    """Test the auth limiter settings."""

    def test_login_limit(self):
        assert (login_rate_limiter.max_requests, login_rate_limiter.window_seconds) == (5, 3600)
        identifier = create_rate_limit_identifier("a@example.com", "1.2.3.4")
        for _ in range(5):
            assert login_rate_limiter.check(identifier).success is True
        assert login_rate_limiter.check(identifier).success is False

    def test_signup_limit(self):
        assert (signup_rate_limiter.max_requests, signup_rate_limiter.window_seconds) == (10, 86400)


# =============================================================================
# IP resolution
# =============================================================================

class TestClientIp:
    """Test client IP extraction."""

    def test_forwarded_for_first_entry(self):
        request = fake_request({"X-Forwarded-For": "203.0.113.5, 10.0.0.1"})
        assert get_client_ip(request) == "203.0.113.5"

    def test_real_ip(self):
        assert get_client_ip(fake_request({"X-Real-IP": "198.51.100.7"})) == "198.51.100.7"

    def test_cloudflare_ip(self):
        assert get_client_ip(fake_request({"CF-Connecting-IP": "192.0.2.9"})) == "192.0.2.9"

    def test_socket_peer(self):
        assert get_client_ip(fake_request(host="10.1.1.1")) == "10.1.1.1"

    def test_unknown(self):
        assert get_client_ip(fake_request(host=None)) == "unknown"

    def test_rate_limit_ip_uses_user_agent_when_unknown(self):
        request = fake_request({"User-Agent": "Mozilla/5.0 (X11; Linux x86_64) Firefox"}, host=None)
        assert get_rate_limit_ip(request) == "dev-Mozilla/5.0 (X11; Li"

    def test_identifier(self):
        assert create_rate_limit_identifier("a@example.com", "1.2.3.4") == "a@example.com:1.2.3.4"
