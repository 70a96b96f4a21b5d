"""
Per-identifier sliding-window rate limiting for the auth routes.

Backed by the moving-window strategy of the `limits` library with in-memory
storage, so counters live in this process only and are not shared between
servers. The global per-IP limit on every route is slowapi's (see app.main).
"""
import logging
import math
import time
from dataclasses import dataclass
from typing import Dict, Optional

from fastapi import HTTPException, Request, Response
from limits import RateLimitItemPerSecond
from limits.storage import MemoryStorage
from limits.strategies import MovingWindowRateLimiter

from app.config import settings

logger = logging.getLogger(__name__)

_storage = MemoryStorage()
_strategy = MovingWindowRateLimiter(_storage)


@dataclass
class RateLimitResult:
    success: bool
    remaining: int
    reset_time: float  # epoch seconds


class RateLimiter:
    def __init__(self, name: str, max_requests: int, window_seconds: int, message: Optional[str] = None):
        self.name = name
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self.message = message or "Too many requests. Please try again later."
        self._item = RateLimitItemPerSecond(max_requests, window_seconds)

    def check(self, identifier: str) -> RateLimitResult:
        """Record a hit for identifier if it is under the limit."""
        now = time.time()
        try:
            allowed = _strategy.hit(self._item, self.name, identifier)
            reset_time, remaining = _strategy.get_window_stats(self._item, self.name, identifier)
            if not allowed:
                logger.warning(
                    f"Rate limit exceeded for {self.name} "
                    f"(identifier {identifier[:10]}, max {self.max_requests}/{self.window_seconds}s)"
                )
                return RateLimitResult(success=False, remaining=0, reset_time=reset_time or now + self.window_seconds)
            return RateLimitResult(success=True, remaining=max(remaining, 0), reset_time=reset_time or now + self.window_seconds)
        except Exception as e:
            # Fail open so a limiter fault never locks users out
            logger.error(f"Rate limiter error for {self.name}: {e}")
            return RateLimitResult(success=True, remaining=self.max_requests, reset_time=now + self.window_seconds)

    def reset(self, identifier: str) -> None:
        _strategy.clear(self._item, self.name, identifier)

    def headers(self, result: RateLimitResult) -> Dict[str, str]:
        return {
            "X-RateLimit-Limit": str(self.max_requests),
            "X-RateLimit-Remaining": str(result.remaining),
            "X-RateLimit-Reset": str(int(result.reset_time)),
        }

    def apply_headers(self, response: Response, result: RateLimitResult) -> None:
        for key, value in self.headers(result).items():
            response.headers[key] = value

    def raise_exceeded(self, result: RateLimitResult, detail: str) -> None:
        retry_after = max(1, math.ceil(result.reset_time - time.time()))
        headers = self.headers(result)
        headers["Retry-After"] = str(retry_after)
        raise HTTPException(status_code=429, detail=detail, headers=headers)


login_rate_limiter = RateLimiter(
    "login",
    settings.login_max_requests,
    settings.login_window_seconds,
    "Too many login attempts. Please try again in 1 hour.",
)

signup_rate_limiter = RateLimiter(
    "signup",
    settings.signup_max_requests,
    settings.signup_window_seconds,
    "Too many signup attempts. Please try again tomorrow.",
)


def reset_all() -> None:
    _storage.reset()


def get_client_ip(request: Request) -> str:
    """Client IP from proxy headers, falling back to the socket peer."""
    forwarded_for = request.headers.get("x-forwarded-for")
    if forwarded_for:
        return forwarded_for.split(",")[0].strip()
    real_ip = request.headers.get("x-real-ip")
    if real_ip:
        return real_ip
    cf_ip = request.headers.get("cf-connecting-ip")
    if cf_ip:
        return cf_ip
    if request.client and request.client.host:
        return request.client.host
    return "unknown"


def get_rate_limit_ip(request: Request) -> str:
    """Like get_client_ip, but stable for local development where no IP is known."""
    ip = get_client_ip(request)
    if not ip or ip in ("unknown", "::"):
        user_agent = request.headers.get("user-agent") or "unknown"
        ip = f"dev-{user_agent[:20]}"
    return ip


def create_rate_limit_identifier(email: str, ip: str) -> str:
    return f"{email}:{ip}"
