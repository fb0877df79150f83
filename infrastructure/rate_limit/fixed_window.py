"""
Fixed-window rate limiting backed by the ``limits`` library.

Counters live in Redis when ``REDIS_URI`` is set and in process memory
otherwise. If the shared storage raises, the decision is taken against a
process-local counter instead, so a limit is still enforced per replica
while Redis is unavailable.
"""

from __future__ import annotations

import math
import time
from typing import Optional

from limits import RateLimitItemPerSecond
from limits.aio.storage import MemoryStorage, Storage
from limits.aio.strategies import FixedWindowRateLimiter
from limits.storage import storage_from_string

from infrastructure.rate_limit.protocol import RateLimitResult
from shared.logging import get_logger

log = get_logger(__name__)


class FixedWindowLimiter:
    def __init__(
        self,
        storage: Storage,
        prefix: str = "ratelimit",
        fallback_storage: Optional[Storage] = None,
    ) -> None:
        self._storage = storage
        self._prefix = prefix
        self._limiter = FixedWindowRateLimiter(storage)
        self._fallback = FixedWindowRateLimiter(fallback_storage or MemoryStorage())

    @property
    def backend(self) -> str:
        return type(self._storage).__name__

    async def check(
        self, identifier: str, window_seconds: int, max_requests: int
    ) -> RateLimitResult:
        item = RateLimitItemPerSecond(max_requests, window_seconds)
        try:
            return await self._decide(self._limiter, item, identifier)
        except Exception as e:
            log.error(
                "rate_limit_storage_error",
                backend=self.backend,
                error=str(e),
                error_type=type(e).__name__,
            )
        return await self._decide(self._fallback, item, identifier)

    async def _decide(
        self,
        limiter: FixedWindowRateLimiter,
        item: RateLimitItemPerSecond,
        identifier: str,
    ) -> RateLimitResult:
        if await limiter.hit(item, self._prefix, identifier):
            return RateLimitResult(allowed=True)

        stats = await limiter.get_window_stats(item, self._prefix, identifier)
        retry_after = max(1, math.ceil(stats.reset_time - time.time()))
        return RateLimitResult(allowed=False, retry_after_seconds=retry_after)


def create_rate_limiter(
    redis_uri: Optional[str], prefix: str = "ratelimit"
) -> FixedWindowLimiter:
    """Build the limiter for the configured storage.

    ``redis://`` URIs are mapped to the async storage scheme and served
    through redis-py.
    """
    if not redis_uri:
        return FixedWindowLimiter(MemoryStorage(), prefix=prefix)

    uri = redis_uri if redis_uri.startswith("async+") else f"async+{redis_uri}"
    storage = storage_from_string(uri, implementation="redispy")
    return FixedWindowLimiter(storage, prefix=prefix)
