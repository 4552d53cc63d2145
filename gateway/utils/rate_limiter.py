"""
Sliding-window rate limiting per client.

Enforces: at most RATE_LIMIT admissions per client in any trailing window
(60 seconds by default). In-memory and per-process; counters reset on restart.
"""
import asyncio
import logging
import time
from collections import defaultdict, deque
from typing import Callable

logger = logging.getLogger(__name__)


def mask_client_id(client_id: str) -> str:
    """Mask an IP address or identifier for logging."""
    if not client_id:
        return "unknown"
    parts = client_id.split(".")
    if len(parts) == 4:
        return f"{parts[0]}.{parts[1]}.{parts[2]}.xxx"
    if len(client_id) > 8:
        return f"{client_id[:8]}..."
    return client_id


def get_client_id(request) -> str:
    """
    Derive the client identifier from a FastAPI request.

    Uses the leftmost X-Forwarded-For entry (the original client as reported
    by the proxy), then X-Real-IP, then the socket address.
    """
    forwarded_for = request.headers.get("X-Forwarded-For")
    if forwarded_for:
        first = forwarded_for.split(",")[0].strip()
        if first:
            return first

    real_ip = request.headers.get("X-Real-IP")
    if real_ip:
        return real_ip.strip()

    return request.client.host if request.client else "unknown"


class SlidingWindowRateLimiter:
    """
    Per-client sliding window limiter.

    Timestamps are pruned before every count check, and a rejected request is
    not recorded, so a client never holds more than `limit` timestamps.
    Guarded by a single asyncio lock.
    """

    def __init__(
        self,
        limit: int = 20,
        window_seconds: float = 60.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        if limit < 1:
            raise ValueError("limit must be at least 1")
        self.limit = limit
        self.window_seconds = window_seconds
        self._clock = clock
        self._windows: dict[str, deque] = defaultdict(deque)
        self._lock = asyncio.Lock()

        # Periodic sweep of idle clients
        self._last_cleanup = clock()
        self._cleanup_interval = max(window_seconds * 5, 60.0)

    def _prune(self, client_id: str, now: float, create: bool = True) -> deque:
        window = self._windows[client_id] if create else self._windows.get(client_id)
        if window is None:
            return deque()
        cutoff = now - self.window_seconds
        while window and window[0] <= cutoff:
            window.popleft()
        return window

    def _sweep(self, now: float) -> None:
        cutoff = now - self.window_seconds
        empty = []
        for key, window in self._windows.items():
            while window and window[0] <= cutoff:
                window.popleft()
            if not window:
                empty.append(key)
        for key in empty:
            del self._windows[key]

    async def admit(self, client_id: str) -> bool:
        """
        Record a request for client_id if it fits in the window.

        Returns:
            True if admitted, False if the client is over the limit.
        """
        async with self._lock:
            now = self._clock()

            if now - self._last_cleanup > self._cleanup_interval:
                self._sweep(now)
                self._last_cleanup = now

            window = self._prune(client_id, now)
            if len(window) >= self.limit:
                logger.warning(
                    f"[RATE_LIMIT] Rejected {mask_client_id(client_id)}: "
                    f"{len(window)}/{self.limit} in {self.window_seconds:.0f}s"
                )
                return False

            window.append(now)
            return True

    async def retry_after(self, client_id: str) -> int:
        """Seconds until the oldest recorded request leaves the window."""
        async with self._lock:
            now = self._clock()
            window = self._prune(client_id, now, create=False)
            if len(window) < self.limit or not window:
                return 0
            return max(1, int(window[0] + self.window_seconds - now) + 1)

    async def remaining(self, client_id: str) -> int:
        """Admissions left for client_id in the current window."""
        async with self._lock:
            window = self._prune(client_id, self._clock(), create=False)
            return max(0, self.limit - len(window))

    async def reset(self, client_id: str) -> None:
        """Forget all recorded requests for client_id."""
        async with self._lock:
            self._windows.pop(client_id, None)

    def tracked_clients(self) -> int:
        return len(self._windows)
