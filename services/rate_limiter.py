# services/rate_limiter.py
"""
Per-client sliding-window rate limiter.

In-memory and process-local: the table is lost on restart, which is fine for
abuse mitigation. One instance is created per application and shared across
worker threads, so every access goes through a single lock.
"""
import logging
import threading
import time
from collections import deque
from typing import Callable, Deque, Dict, Optional

logger = logging.getLogger(__name__)


class SlidingWindowRateLimiter:
    def __init__(
        self,
        max_requests: int = 10,
        window_seconds: float = 60.0,
        sweep_interval_seconds: float = 300.0,
        max_clients: int = 10000,
        fail_open: bool = True,
        clock: Optional[Callable[[], float]] = None,
    ):
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self.sweep_interval_seconds = sweep_interval_seconds
        self.max_clients = max_clients
        self.fail_open = fail_open
        self._clock = clock or time.monotonic
        self._lock = threading.Lock()
        self._requests: Dict[str, Deque[float]] = {}
        self._last_sweep = self._clock()

    def check(self, client_id: str) -> bool:
        """
        Admit or reject one request from client_id, recording it when admitted.
        """
        with self._lock:
            now = self._clock()
            if now - self._last_sweep >= self.sweep_interval_seconds:
                self._sweep(now)

            timestamps = self._requests.get(client_id)
            if timestamps is None:
                if len(self._requests) >= self.max_clients:
                    logger.warning(
                        f"Rate limiter tracking {len(self._requests)} clients; "
                        f"{'admitting' if self.fail_open else 'rejecting'} untracked client"
                    )
                    return self.fail_open
                timestamps = deque()
                self._requests[client_id] = timestamps

            self._purge(timestamps, now)
            if len(timestamps) >= self.max_requests:
                return False

            timestamps.append(now)
            return True

    def sweep(self) -> int:
        """Drop stale timestamps and idle clients. Returns the number of clients removed."""
        with self._lock:
            return self._sweep(self._clock())

    @property
    def tracked_clients(self) -> int:
        with self._lock:
            return len(self._requests)

    def _purge(self, timestamps: Deque[float], now: float) -> None:
        while timestamps and now - timestamps[0] >= self.window_seconds:
            timestamps.popleft()

    def _sweep(self, now: float) -> int:
        removed = 0
        for client_id in list(self._requests):
            timestamps = self._requests[client_id]
            self._purge(timestamps, now)
            if not timestamps:
                del self._requests[client_id]
                removed += 1
        self._last_sweep = now
        if removed:
            logger.info(f"Rate limiter sweep removed {removed} idle clients")
        return removed
