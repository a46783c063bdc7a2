from __future__ import annotations

from collections import deque
from time import time

_DEFAULT_MAX_TRACKED_KEYS = 10_000


class AttemptRateLimiter:
    """Sliding-window counter of failed attempts per client key.

    Keys whose failures have all aged out are pruned once the number of
    tracked keys exceeds ``max_tracked_keys``.
    """

    def __init__(
        self,
        *,
        max_failures: int,
        window_seconds: int,
        max_tracked_keys: int = _DEFAULT_MAX_TRACKED_KEYS,
    ) -> None:
        if max_failures <= 0:
            raise ValueError("max_failures must be positive")
        if window_seconds <= 0:
            raise ValueError("window_seconds must be positive")
        if max_tracked_keys <= 0:
            raise ValueError("max_tracked_keys must be positive")
        self._max_failures = max_failures
        self._window_seconds = window_seconds
        self._max_tracked_keys = max_tracked_keys
        self._failures: dict[str, deque[int]] = {}

    @property
    def tracked_keys(self) -> int:
        return len(self._failures)

    def check(self, key: str) -> int | None:
        """Seconds until ``key`` may try again, or ``None`` when it is not blocked."""
        failures = self._failures.get(key)
        if failures is None:
            return None
        now = int(time())
        if not self._prune_key(key, failures, now):
            return None
        if len(failures) < self._max_failures:
            return None
        return max(1, failures[0] + self._window_seconds - now)

    def record_failure(self, key: str) -> None:
        now = int(time())
        failures = self._failures.get(key)
        if failures is None:
            if len(self._failures) >= self._max_tracked_keys:
                self._prune_all(now)
            failures = self._failures[key] = deque()
        failures.append(now)
        self._prune_key(key, failures, now)

    def reset(self, key: str) -> None:
        self._failures.pop(key, None)

    def clear(self) -> None:
        self._failures.clear()

    def _prune_all(self, now: int) -> None:
        for key, failures in list(self._failures.items()):
            self._prune_key(key, failures, now)

    def _prune_key(self, key: str, failures: deque[int], now: int) -> bool:
        cutoff = now - self._window_seconds
        while failures and failures[0] <= cutoff:
            failures.popleft()
        if failures:
            return True
        self._failures.pop(key, None)
        return False


_login_rate_limiter = AttemptRateLimiter(max_failures=8, window_seconds=60)
_totp_rate_limiter = AttemptRateLimiter(max_failures=8, window_seconds=60)


def get_login_rate_limiter() -> AttemptRateLimiter:
    return _login_rate_limiter


def get_totp_rate_limiter() -> AttemptRateLimiter:
    return _totp_rate_limiter
