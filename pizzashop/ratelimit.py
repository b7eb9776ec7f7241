# pizzashop/ratelimit.py
from __future__ import annotations

import logging
import threading
import time
from collections import defaultdict, deque
from typing import Callable, Deque, Dict

from .errors import TooManyRequests

logger = logging.getLogger(__name__)


class LoginLimiter:
    """Sliding-window counter of failed logins per client address.

    Once `max_attempts` failures fall inside `window_seconds`, further attempts
    from that address are refused until the oldest failure ages out.
    A `max_attempts` of 0 turns the limiter off.
    """

    def __init__(self, max_attempts: int, window_seconds: int, clock: Callable[[], float] = time.monotonic) -> None:
        self.max_attempts = max_attempts
        self.window_seconds = window_seconds
        self._clock = clock
        self._failures: Dict[str, Deque[float]] = defaultdict(deque)
        self._lock = threading.Lock()

    @property
    def enabled(self) -> bool:
        return self.max_attempts > 0

    def _prune(self, key: str, now: float) -> Deque[float]:
        hits = self._failures[key]
        while hits and now - hits[0] >= self.window_seconds:
            hits.popleft()
        if not hits:
            del self._failures[key]
        return hits

    def check(self, key: str) -> None:
        if not self.enabled:
            return
        with self._lock:
            hits = self._prune(key, self._clock())
            if len(hits) >= self.max_attempts:
                logger.warning("Login attempts from %s blocked (%d failures)", key, len(hits))
                raise TooManyRequests("Too many login attempts, please try again later")

    def record_failure(self, key: str) -> None:
        if not self.enabled:
            return
        with self._lock:
            now = self._clock()
            self._prune(key, now)
            self._failures[key].append(now)
