"""Request context middleware: request ids, timing, access logs and rate limiting.

Everything happens in one pass:

- ``X-Request-ID`` is propagated from the client or generated, and stored in
  ``request_id_var`` so every log line of the request carries it
- ``X-Response-Time`` is set from the measured duration
- one structured log line is written per request
- clients are throttled by a token bucket (``check_rate_limit``), which is a
  pure function so it can be tested without a server
"""

import logging
import threading
import time
import uuid
from typing import Optional

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from ..core.config import settings
from ..core.logging_config import request_id_var

logger = logging.getLogger(__name__)

# {client_key: (available_tokens, last_refill_timestamp)}
_rate_buckets: dict[str, tuple[float, float]] = {}
_rate_lock = threading.Lock()

# Buckets idle longer than this are dropped during a sweep.
_EVICT_AGE = 120.0
_EVICT_EVERY = 100
_calls_since_sweep = 0

# Health probes and API docs are never throttled.
EXEMPT_PATHS = frozenset({"/", "/health", "/swagger", "/openapi.json"})


def _evict_stale(bucket: dict[str, tuple[float, float]], now: float) -> None:
    cutoff = now - _EVICT_AGE
    for key in [k for k, (_, ts) in bucket.items() if ts < cutoff]:
        del bucket[key]


def check_rate_limit(
    bucket: dict[str, tuple[float, float]],
    key: str,
    max_per_minute: int,
    now: Optional[float] = None,
) -> tuple[bool, float]:
    """Take one token for *key* from the bucket.

    Args:
        bucket: Per-key state, modified in place.
        key: Client identifier.
        max_per_minute: Sustained rate and burst size. 0 or less disables limiting.
        now: Monotonic timestamp, injectable for tests.

    Returns:
        ``(allowed, retry_after)`` where *retry_after* is the number of
        seconds until the next token, or 0.0 when allowed.
    """
    global _calls_since_sweep

    if max_per_minute <= 0:
        return True, 0.0
    if now is None:
        now = time.monotonic()

    _calls_since_sweep += 1
    if _calls_since_sweep >= _EVICT_EVERY:
        _calls_since_sweep = 0
        _evict_stale(bucket, now)

    refill_per_second = max_per_minute / 60.0
    if key in bucket:
        tokens, last_refill = bucket[key]
        tokens = min(float(max_per_minute), tokens + (now - last_refill) * refill_per_second)
    else:
        tokens = float(max_per_minute)

    if tokens >= 1.0:
        bucket[key] = (tokens - 1.0, now)
        return True, 0.0

    bucket[key] = (tokens, now)
    return False, (1.0 - tokens) / refill_per_second


def reset_rate_limits() -> None:
    """Forget all bucket state."""
    with _rate_lock:
        _rate_buckets.clear()


def _client_key(request: Request) -> str:
    """Peer address, or the first ``X-Forwarded-For`` hop when proxy headers are trusted."""
    if settings.trust_proxy_headers:
        forwarded = request.headers.get("x-forwarded-for")
        if forwarded:
            return forwarded.split(",")[0].strip()
    if request.client:
        return request.client.host
    return "unknown"


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Request id, timing, access log and rate limiting in one middleware."""

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        rid = request.headers.get("x-request-id") or uuid.uuid4().hex[:16]
        request_id_var.set(rid)

        if request.url.path not in EXEMPT_PATHS:
            key = _client_key(request)
            with _rate_lock:
                allowed, retry_after = check_rate_limit(
                    _rate_buckets, key, settings.rate_limit_per_minute
                )
            if not allowed:
                logger.warning(
                    "Rate limit exceeded",
                    extra={"client": key, "path": request.url.path, "retry_after": round(retry_after, 1)},
                )
                return JSONResponse(
                    status_code=429,
                    content={
                        "error": "RATE_LIMITED",
                        "message": "Too many requests",
                        "details": {"retry_after": round(retry_after, 1)},
                    },
                    headers={
                        "Retry-After": str(int(retry_after) + 1),
                        "X-Request-ID": rid,
                    },
                )

        start = time.monotonic()
        response = await call_next(request)
        duration_ms = round((time.monotonic() - start) * 1000, 1)

        response.headers["X-Request-ID"] = rid
        response.headers["X-Response-Time"] = f"{duration_ms}ms"

        logger.info(
            f"{request.method} {request.url.path} {response.status_code}",
            extra={
                "method": request.method,
                "path": request.url.path,
                "status_code": response.status_code,
                "duration_ms": duration_ms,
            },
        )
        return response
