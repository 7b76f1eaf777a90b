"""
In-memory sliding-window rate limits. Single process only.
Auth (register/login): attempts per window per client IP.
API (authenticated profile calls): requests per window per user.
"""
import time
from collections import defaultdict

from fastapi import HTTPException, Request, status

from devconnector.config import get_settings
from devconnector.utils.logger import get_logger

logger = get_logger(__name__)

# Cap on distinct keys before stale ones are evicted
_MAX_KEYS = 10_000

# key -> timestamps inside the current window
_auth_timestamps: dict[str, list[float]] = defaultdict(list)
_api_timestamps: dict[str, list[float]] = defaultdict(list)


def _client_ip(request: Request) -> str:
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


def _prune_old(timestamps: list[float], window_seconds: float) -> None:
    cutoff = time.monotonic() - window_seconds
    while timestamps and timestamps[0] < cutoff:
        timestamps.pop(0)


def _evict_stale_keys(store: dict[str, list[float]], window_seconds: float) -> None:
    if len(store) <= _MAX_KEYS:
        return
    cutoff = time.monotonic() - window_seconds
    stale = [k for k, ts in store.items() if not ts or ts[-1] < cutoff]
    for k in stale:
        del store[k]


def _hit(store: dict[str, list[float]], key: str, limit: int, window: float, detail: str) -> None:
    _prune_old(store[key], window)
    if len(store[key]) >= limit:
        logger.warning("Rate limit exceeded", extra={"key": key[:30]})
        raise HTTPException(status_code=status.HTTP_429_TOO_MANY_REQUESTS, detail=detail)
    store[key].append(time.monotonic())
    _evict_stale_keys(store, window)


def check_auth_rate_limit(request: Request) -> None:
    """Call before register/login."""
    settings = get_settings()
    _hit(
        _auth_timestamps,
        _client_ip(request),
        settings.rate_limit_auth_requests,
        settings.rate_limit_auth_window_minutes * 60,
        "Too many attempts. Try again later.",
    )


def check_api_rate_limit(request: Request, user_id: str | None) -> None:
    """Per user when authenticated, per IP otherwise."""
    settings = get_settings()
    _hit(
        _api_timestamps,
        f"user:{user_id}" if user_id else _client_ip(request),
        settings.rate_limit_api_requests,
        float(settings.rate_limit_api_window_seconds),
        "Rate limit exceeded. Try again later.",
    )


def reset_rate_limits() -> None:
    _auth_timestamps.clear()
    _api_timestamps.clear()
