"""RateLimiter protocol. Routes depend on this, not the concrete limiter."""

from dataclasses import dataclass
from typing import Protocol


@dataclass(frozen=True)
class RateLimitResult:
    allowed: bool
    retry_after_seconds: int = 0


class RateLimiter(Protocol):
    async def check(
        self, identifier: str, window_seconds: int, max_requests: int
    ) -> RateLimitResult: ...
