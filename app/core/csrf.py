"""Thread-safe in-memory CSRF token store keyed by session id. Single process only."""
import asyncio
import hmac
import logging
import secrets
import threading
import time
from typing import Dict, Optional, Tuple

from fastapi import Request

from app.config import settings

logger = logging.getLogger(__name__)


def generate_csrf_token() -> str:
    """URL-safe token with 256 bits of entropy."""
    return secrets.token_urlsafe(32)


def verify_csrf_token(token: Optional[str], stored_token: Optional[str]) -> bool:
    if not token or not stored_token:
        return False
    return hmac.compare_digest(token.encode(), stored_token.encode())


class CSRFTokenStore:
    def __init__(self, clock=time.monotonic):
        self._lock = threading.Lock()
        self._tokens: Dict[str, Tuple[str, float]] = {}
        self._clock = clock

    def store(self, session_id: str, token: str, expiry_seconds: Optional[int] = None) -> None:
        if not session_id or not token:
            logger.warning(f"Invalid CSRF token storage attempt for session {(session_id or '')[:10]}")
            return
        ttl = expiry_seconds if expiry_seconds is not None else settings.csrf_token_expiry_seconds
        with self._lock:
            self._tokens[session_id] = (token, self._clock() + ttl)
            size = len(self._tokens)
        logger.debug(f"CSRF token stored for session {session_id[:10]} (store size {size})")

    def get(self, session_id: str) -> Optional[str]:
        if not session_id:
            return None
        with self._lock:
            entry = self._tokens.get(session_id)
            if entry is None:
                return None
            token, expires_at = entry
            if expires_at < self._clock():
                del self._tokens[session_id]
                return None
            return token

    def validate(self, session_id: str, token: str) -> bool:
        """Check token against the stored one and consume it on success."""
        if not session_id or not token:
            logger.warning(f"CSRF validation with missing parameters for session {(session_id or '')[:10]}")
            return False
        stored = self.get(session_id)
        if stored is None:
            logger.warning(f"CSRF token not found for session {session_id[:10]}")
            return False
        if not verify_csrf_token(token, stored):
            logger.warning(f"CSRF token mismatch for session {session_id[:10]}")
            return False
        with self._lock:
            # another request may have consumed it between get() and here
            current = self._tokens.get(session_id)
            if current is None or current[0] != stored:
                return False
            del self._tokens[session_id]
        logger.debug(f"CSRF token validated and consumed for session {session_id[:10]}")
        return True

    def clear(self, session_id: str) -> None:
        if session_id:
            with self._lock:
                self._tokens.pop(session_id, None)

    def cleanup_expired(self) -> int:
        now = self._clock()
        with self._lock:
            expired = [sid for sid, (_, expires_at) in self._tokens.items() if expires_at < now]
            for sid in expired:
                del self._tokens[sid]
        if expired:
            logger.debug(f"Removed {len(expired)} expired CSRF token(s)")
        return len(expired)

    def reset(self) -> None:
        with self._lock:
            self._tokens.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._tokens)


csrf_store = CSRFTokenStore()


def get_csrf_session_id(request: Request, client_ip: str) -> str:
    """Session id from the csrf-session cookie, else derived from the client IP."""
    cookie = request.cookies.get(settings.csrf_cookie_name)
    if cookie:
        return cookie
    return f"session-{client_ip}"


def extract_csrf_token(header_token: Optional[str], body_token: Optional[str]) -> Optional[str]:
    return header_token or body_token or None


async def csrf_cleanup_loop(store: CSRFTokenStore = csrf_store):
    """Background task that periodically drops expired tokens"""
    while True:
        await asyncio.sleep(settings.csrf_cleanup_interval_seconds)
        try:
            store.cleanup_expired()
        except Exception as e:
            logger.error(f"Error in CSRF cleanup loop: {str(e)}")
