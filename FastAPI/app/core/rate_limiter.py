import threading
import time

SCOPE_AUTH = "auth"
SCOPE_MESSAGE = "message"
SCOPE_CONNECTION = "connection"


class ActionRateLimiter:
    """
    Fixed-window counters per (scope, actor). The actor is a user id for
    authenticated actions and the client address for auth endpoints.
    State is process-local.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._windows: dict[tuple[str, str], tuple[int, float]] = {}

    def hit(self, scope: str, actor: str, limit: int, window_seconds: int = 60) -> tuple[bool, int]:
        """Count one action. Returns (allowed, retry_after_seconds)."""
        key = (scope, actor)
        now = time.monotonic()
        with self._lock:
            used, started = self._windows.get(key, (0, now))
            if now - started >= window_seconds:
                used, started = 0, now
            if used >= limit:
                return False, max(1, int(window_seconds - (now - started)))
            self._windows[key] = (used + 1, started)
            return True, 0

    def reset(self) -> None:
        with self._lock:
            self._windows.clear()


rate_limiter = ActionRateLimiter()
