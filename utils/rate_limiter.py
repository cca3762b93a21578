"""
In-memory rate limiter for wager commands.

Restarts reset state; this guards against spammed confirmations and
duplicate clicks, not against a determined abuser.
"""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass
from typing import Callable


@dataclass(frozen=True)
class RateLimitResult:
    allowed: bool
    retry_after_seconds: int = 0


@dataclass(frozen=True)
class RateLimit:
    limit: int
    per_seconds: int


# Per-command budgets: placements and transfers move points, reads do not
COMMAND_LIMITS: dict[str, RateLimit] = {
    "bet": RateLimit(5, 20),
    "parlayconfirm": RateLimit(3, 20),
    "duel": RateLimit(3, 30),
    "send": RateLimit(3, 30),
    "mybets": RateLimit(5, 10),
}
DEFAULT_LIMIT = RateLimit(5, 10)


class RateLimiter:
    """
    Sliding window: allow `limit` hits per `per_seconds` for each
    (scope, guild, user) key.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._lock = threading.Lock()
        self._hits: dict[tuple[str, int, int], list[float]] = {}

    def check(
        self,
        *,
        scope: str,
        guild_id: int | None,
        user_id: int,
        limit: int | None = None,
        per_seconds: int | None = None,
    ) -> RateLimitResult:
        """
        Record a hit unless the key is over budget.

        limit/per_seconds default to the scope's entry in COMMAND_LIMITS.
        """
        configured = COMMAND_LIMITS.get(scope, DEFAULT_LIMIT)
        limit = configured.limit if limit is None else limit
        per_seconds = configured.per_seconds if per_seconds is None else per_seconds

        key = (scope, guild_id or 0, user_id)
        with self._lock:
            now = self._clock()
            window_start = now - per_seconds
            hits = [t for t in self._hits.get(key, []) if t >= window_start]

            if len(hits) >= limit:
                retry_after = int(max(0.0, (min(hits) + per_seconds) - now) + 0.999)
                self._hits[key] = hits
                return RateLimitResult(allowed=False, retry_after_seconds=retry_after)

            hits.append(now)
            self._hits[key] = hits
            return RateLimitResult(allowed=True)

    def reset(self, scope: str | None = None) -> None:
        """Forget recorded hits, for one scope or all of them."""
        with self._lock:
            if scope is None:
                self._hits.clear()
                return
            for key in [k for k in self._hits if k[0] == scope]:
                del self._hits[key]


GLOBAL_RATE_LIMITER = RateLimiter()
