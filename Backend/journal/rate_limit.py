import logging
import threading
import time
import typing as t

logger = logging.getLogger(__name__)


def _now_ms() -> int:
    return int(time.time() * 1000)


class RateLimiter:
    """In-memory fixed-window request counter keyed by client identifier.

    State lives in this process only; run one worker or put a shared limiter
    in front of the app. Sync routes run on a thread pool, so every access to
    the window map holds ``_lock``.
    """

    SWEEP_THRESHOLD = 10000

    def __init__(self, clock: t.Optional[t.Callable[[], int]] = None):
        self._clock = clock or _now_ms
        self._entries: t.Dict[str, dict] = {}
        self._lock = threading.Lock()

    def allow(self, identifier: str, max_requests: int = 10, window_ms: int = 60000) -> bool:
        with self._lock:
            now = self._clock()
            if len(self._entries) > self.SWEEP_THRESHOLD:
                self._sweep(now)
            entry = self._entries.get(identifier)
            if not entry or now > entry["reset_time"]:
                self._entries[identifier] = {"count": 1, "reset_time": now + window_ms}
                return True
            if entry["count"] < max_requests:
                entry["count"] += 1
                return True
            count = entry["count"]
        logger.info("rate limit exceeded for %s (%d requests)", identifier, count)
        return False

    def sweep(self, now: t.Optional[int] = None) -> int:
        """Drop expired windows; returns how many were removed."""
        with self._lock:
            return self._sweep(self._clock() if now is None else now)

    def _sweep(self, now: int) -> int:
        expired = [k for k, e in self._entries.items() if now > e["reset_time"]]
        for k in expired:
            del self._entries[k]
        return len(expired)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
