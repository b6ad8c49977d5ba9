"""
Temporary storage for import sessions.
Keeps sessions in memory with TTL expiration.
Single-server only (one shop floor, one process).
"""
from datetime import datetime, timedelta
from typing import Any, Optional

_cache: dict[str, tuple[datetime, Any]] = {}
DEFAULT_TTL_MINUTES = 30


def store_session(session_id: str, session: Any, ttl_minutes: int = DEFAULT_TTL_MINUTES) -> str:
    """Store a session under its id, return the id."""
    expires_at = datetime.now() + timedelta(minutes=ttl_minutes)
    _cache[session_id] = (expires_at, session)
    _cleanup_expired()
    return session_id


def retrieve_session(session_id: str, ttl_minutes: int = DEFAULT_TTL_MINUTES) -> Optional[Any]:
    """Retrieve a session and extend its TTL. Returns None if expired/not found."""
    entry = _cache.get(session_id)
    if entry is None:
        return None
    expires_at, session = entry
    if datetime.now() > expires_at:
        del _cache[session_id]
        return None
    _cache[session_id] = (datetime.now() + timedelta(minutes=ttl_minutes), session)
    return session


def clear_sessions() -> None:
    """Drop every session."""
    _cache.clear()


def _cleanup_expired() -> None:
    """Remove all expired entries."""
    now = datetime.now()
    expired = [k for k, (exp, _) in _cache.items() if now > exp]
    for k in expired:
        del _cache[k]
