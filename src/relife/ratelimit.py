"""Advisory per-caller daily quota.

The in-memory limiter only sees the requests of one warm process; several
concurrent function instances each keep their own counts. It is a courtesy
limit, not a security control. Swap in a shared-store implementation of
``RateLimiter`` where a real limit is needed.
"""
from __future__ import annotations

import threading
from datetime import date, datetime, timezone
from typing import Callable, Dict, Protocol, Tuple

from .logging_util import get_logger

logger = get_logger(__name__)

def _utc_today() -> date:
    return datetime.now(timezone.utc).date()

class RateLimiter(Protocol):
    def allow(self, key: str) -> bool:
        ...

class NullRateLimiter:
    def allow(self, key: str) -> bool:
        return True

class InMemoryDailyRateLimiter:
    """At most ``limit`` calls per key per UTC calendar day."""

    def __init__(self, limit: int = 5, today: Callable[[], date] = _utc_today):
        self.limit = limit
        self._today = today
        self._counts: Dict[Tuple[str, str], int] = {}
        self._lock = threading.Lock()

    def allow(self, key: str) -> bool:
        day = self._today().isoformat()
        slot = (key or "unknown", day)

        with self._lock:
            # drop counters from previous days
            stale = [k for k in self._counts if k[1] != day]
            for k in stale:
                del self._counts[k]

            used = self._counts.get(slot, 0)
            if used >= self.limit:
                logger.warning("Daily limit reached for caller %s (%d/%d)", _mask(slot[0]), used, self.limit)
                return False
            self._counts[slot] = used + 1
            return True

    def used(self, key: str) -> int:
        """Today's count for key, for inspection. Counting happens in allow()."""
        with self._lock:
            return self._counts.get((key or "unknown", self._today().isoformat()), 0)

def _mask(key: str) -> str:
    return key[:8] + "..." if len(key) > 8 else key

def build_rate_limiter(daily_quota: int) -> RateLimiter:
    if daily_quota <= 0:
        return NullRateLimiter()
    return InMemoryDailyRateLimiter(limit=daily_quota)
