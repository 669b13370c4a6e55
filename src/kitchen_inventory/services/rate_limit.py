"""Per-user request rate limiting."""

from collections import deque
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import Protocol
from uuid import UUID


class RateLimiter(Protocol):
    """Capability that decides whether a user may make another request."""

    def try_acquire(self, user_id: UUID) -> bool:
        """Record a request and return False when the user is over the limit."""


@dataclass
class InMemoryRateLimiter(RateLimiter):
    """Sliding-window limiter kept in process memory."""

    max_requests: int
    window_seconds: int
    _requests: dict[UUID, deque[datetime]]

    def __init__(self, max_requests: int, window_seconds: int) -> None:
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self._requests = {}

    def try_acquire(self, user_id: UUID) -> bool:
        """Record a request if the user still has room in the window."""
        now = datetime.now(tz=UTC)
        window_start = now - timedelta(seconds=self.window_seconds)
        requests = self._requests.setdefault(user_id, deque())
        while requests and requests[0] <= window_start:
            requests.popleft()
        if len(requests) >= self.max_requests:
            return False
        requests.append(now)
        return True
