"""
Request guards for the API: the shared API token and per-client rate limiting.
"""

import hmac
import threading
import time
from collections import defaultdict, deque
from typing import Deque, Dict, Optional, Tuple

from fastapi import HTTPException, Request, status

from socialshield.config import settings
from socialshield.utils.logging_config import StructuredLogger, metrics

logger = StructuredLogger(__name__)


def _client_host(request: Request) -> str:
    return request.client.host if request.client else "unknown"


async def verify_api_token(request: Request) -> Optional[str]:
    """
    Check the API token header (X-API-Key unless configured otherwise).

    With no token configured every request passes; that is only expected
    in development.
    """
    if not settings.api_token:
        if settings.is_production:
            logger.warning("api_token_unset", environment=settings.environment)
        return None

    supplied = request.headers.get(settings.api_token_header)
    if not supplied:
        logger.warning("api_token_missing", client=_client_host(request), path=request.url.path)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=f"Missing API key. Provide the {settings.api_token_header} header.",
            headers={"WWW-Authenticate": "ApiKey"},
        )

    if not hmac.compare_digest(supplied.encode(), settings.api_token.encode()):
        metrics.increment("api.auth_failures")
        logger.warning("api_token_invalid", client=_client_host(request), path=request.url.path)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid API key.",
            headers={"WWW-Authenticate": "ApiKey"},
        )

    return supplied


class RateLimiter:
    """
    Sliding-window request counter keyed by client.

    State lives in this process only.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._hits: Dict[str, Deque[float]] = defaultdict(deque)

    def hit(self, key: str, limit: int, window: int) -> Tuple[bool, int, int]:
        """
        Record a request for `key` if it fits in the window.

        Returns (allowed, remaining, retry_after_seconds).
        """
        now = time.monotonic()
        with self._lock:
            hits = self._hits[key]
            while hits and now - hits[0] >= window:
                hits.popleft()

            if len(hits) >= limit:
                retry_after = max(1, int(window - (now - hits[0])))
                return False, 0, retry_after

            hits.append(now)
            return True, limit - len(hits), 0

    def reset(self):
        with self._lock:
            self._hits.clear()


rate_limiter = RateLimiter()


async def check_rate_limit(request: Request):
    """Reject scans from a client that exceeded rate_limit_requests per window."""
    limit = settings.rate_limit_requests
    if not limit:
        return

    client = _client_host(request)
    allowed, remaining, retry_after = rate_limiter.hit(client, limit, settings.rate_limit_window)

    request.state.rate_limit_limit = limit
    request.state.rate_limit_remaining = remaining

    if not allowed:
        metrics.increment("api.rate_limited")
        logger.warning("rate_limited", client=client, retry_after=retry_after)
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail=f"Rate limit exceeded. Try again in {retry_after} seconds.",
            headers={
                "Retry-After": str(retry_after),
                "X-RateLimit-Limit": str(limit),
                "X-RateLimit-Remaining": "0",
            },
        )
