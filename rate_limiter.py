# backend/rate_limiter.py
"""
Per-user request limiting with a fixed window.

Each user gets `max_requests` calls per window. The window starts on the first
request and resets wholesale once it has elapsed, so a user can burst up to
twice the limit across a window boundary.

Counters live in a `CounterStore`, which does the check-and-increment as one
operation. `InMemoryCounterStore` is process-local: restarting the process
resets every counter, and separate instances keep separate counts. A
multi-instance deployment needs a shared store behind the same interface.
"""

import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from threading import Lock
from typing import Callable, Dict, Optional

from fastapi import Request

from errors import RateLimited

logger = logging.getLogger(__name__)

DEFAULT_MAX_REQUESTS = 100
DEFAULT_WINDOW_SECONDS = 3600


@dataclass
class WindowCounter:
    count: int
    window_reset_at: float


class CounterStore(ABC):
    """Storage for per-user window counters."""

    @abstractmethod
    def hit(self, user_id: str, now: float, window_seconds: int, max_requests: int) -> bool:
        """Count one request for user_id and return whether it is allowed.

        Must be atomic: concurrent hits for the same user never both take the
        last slot in a window.
        """


class InMemoryCounterStore(CounterStore):
    """Thread-safe counters for a single process (sync handlers run in a threadpool)."""

    def __init__(self):
        self._counters: Dict[str, WindowCounter] = {}
        self._lock = Lock()

    def get(self, user_id: str) -> Optional[WindowCounter]:
        with self._lock:
            return self._counters.get(user_id)

    def hit(self, user_id: str, now: float, window_seconds: int, max_requests: int) -> bool:
        with self._lock:
            counter = self._counters.get(user_id)

            if counter is None or now > counter.window_reset_at:
                self._counters[user_id] = WindowCounter(count=1, window_reset_at=now + window_seconds)
                return True

            if counter.count >= max_requests:
                return False

            counter.count += 1
            return True


class RateLimiter:
    def __init__(
        self,
        store: Optional[CounterStore] = None,
        max_requests: int = DEFAULT_MAX_REQUESTS,
        window_seconds: int = DEFAULT_WINDOW_SECONDS,
        clock: Callable[[], float] = time.time,
    ):
        self.store = store if store is not None else InMemoryCounterStore()
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self.clock = clock

    def allow(self, user_id: str) -> bool:
        return self.store.hit(user_id, self.clock(), self.window_seconds, self.max_requests)

    def check(self, user_id: str) -> None:
        """Like allow(), but raises RateLimited when the user is over the limit."""
        if not self.allow(user_id):
            logger.warning(f"Rate limit exceeded for user {user_id}")
            raise RateLimited(retry_after=self.window_seconds)


# Dependency for FastAPI routes: the limiter belongs to the app instance
def get_rate_limiter(request: Request) -> RateLimiter:
    return request.app.state.rate_limiter
