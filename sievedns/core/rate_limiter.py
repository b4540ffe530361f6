"""Query rate limiter shared by the resolver engines."""

from __future__ import annotations

import asyncio
import time
from typing import Optional


class RateLimiter:
    """Spacing rate limiter: at most *rps* acquisitions per second.

    A non-positive *rps* disables limiting entirely, so callers can pass a
    configured ``0`` straight through.

    Args:
        rps: Maximum queries per second.
    """

    def __init__(self, rps: float) -> None:
        self._rps = rps
        self._lock = asyncio.Lock()
        self._last_request: float = 0.0

    @classmethod
    def per_resolver(cls, resolver_count: int, rate: float) -> "RateLimiter":
        """Build a limiter granting *rate* queries/second to each of *resolver_count* resolvers."""
        return cls(rate * resolver_count)

    @property
    def rps(self) -> float:
        """Configured queries-per-second ceiling."""
        return self._rps

    @property
    def enabled(self) -> bool:
        """``True`` when a positive ceiling is in force."""
        return self._rps > 0

    async def acquire(self) -> None:
        """Wait until a query slot is available."""
        if not self.enabled:
            return
        async with self._lock:
            min_interval = 1.0 / self._rps
            elapsed = time.monotonic() - self._last_request
            if elapsed < min_interval:
                await asyncio.sleep(min_interval - elapsed)
            self._last_request = time.monotonic()

    def __repr__(self) -> str:
        return f"<RateLimiter rps={self._rps:g}>"


def make_limiter(rps: Optional[float]) -> Optional[RateLimiter]:
    """Return a :class:`RateLimiter` for a positive *rps*, otherwise ``None``."""
    if rps and rps > 0:
        return RateLimiter(rps)
    return None
