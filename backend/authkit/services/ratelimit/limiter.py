"""
Fixed-window admission control for authentication endpoints.

Each ``client identity + endpoint`` pair owns a counter and a window start.
A window resets once its age exceeds the configured duration, so bursts at a
window boundary can momentarily admit up to twice the configured rate. That
is enough to slow brute force; the counter does not need to be exact.
"""

from __future__ import annotations

import itertools
import logging
import math
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass

from authkit.core.config import AuthSettings
from authkit.services._shared.errors import RateLimitedError

log = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class Admission:
    """
    Result of an admission check.

    :ivar allowed: Whether the request may proceed.
    :ivar remaining: Admissions left in the current window.
    :ivar retry_after: Seconds until the window resets (``0.0`` when allowed).
    """

    allowed: bool
    remaining: int
    retry_after: float = 0.0


class _Window:
    """Counter for one key. Guarded by its own lock, never by a global one."""

    __slots__ = ("lock", "count", "start", "evicted")

    def __init__(self, start: float) -> None:
        self.lock = threading.Lock()
        self.count = 0
        self.start = start
        self.evicted = False


class RateLimiter:
    """
    Per-key fixed-window counter.

    :param max_attempts: Admissions allowed per window (default 5).
    :param window: Window duration in seconds (default 60).
    :param clock: Monotonic seconds source.
    :param sweep_factor: Windows idle for ``sweep_factor * window`` are evicted.
    :param sweep_interval: Run a sweep every N admissions (0 disables it).
    """

    def __init__(
        self,
        *,
        max_attempts: int = 5,
        window: float = 60.0,
        clock: Callable[[], float] = time.monotonic,
        sweep_factor: int = 10,
        sweep_interval: int = 1000,
    ) -> None:
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1.")
        if window <= 0:
            raise ValueError("window must be positive.")
        self.max_attempts = max_attempts
        self.window = float(window)
        self.clock = clock
        self.sweep_factor = max(1, sweep_factor)
        self.sweep_interval = sweep_interval
        self._windows: dict[str, _Window] = {}
        self._ticks = itertools.count(1)

    @classmethod
    def from_settings(cls, settings: AuthSettings, **kwargs) -> RateLimiter:
        """Build a limiter from ``rate_limit_max`` / ``rate_limit_window``."""
        return cls(
            max_attempts=settings.rate_limit_max,
            window=settings.rate_limit_window.total_seconds(),
            **kwargs,
        )

    def __len__(self) -> int:
        return len(self._windows)

    @staticmethod
    def key_for(client_identity: str, endpoint: str) -> str:
        return f"{client_identity}:{endpoint}"

    # ------------------------------------------------------------------ #
    # Admission
    # ------------------------------------------------------------------ #

    def admit(self, client_identity: str, endpoint: str) -> Admission:
        """
        Count one attempt for ``client_identity`` on ``endpoint``.

        A denied attempt does not increment the counter.
        """
        key = self.key_for(client_identity, endpoint)
        while True:
            window = self._windows.get(key)
            if window is None:
                # setdefault is atomic: concurrent creators share one window
                window = self._windows.setdefault(key, _Window(self.clock()))
            with window.lock:
                if window.evicted:
                    continue
                now = self.clock()
                if now - window.start > self.window:
                    window.count = 0
                    window.start = now
                if window.count >= self.max_attempts:
                    retry_after = max(0.0, self.window - (now - window.start))
                    admission = Admission(allowed=False, remaining=0, retry_after=retry_after)
                else:
                    window.count += 1
                    admission = Admission(
                        allowed=True, remaining=self.max_attempts - window.count
                    )
            break

        if self.sweep_interval and next(self._ticks) % self.sweep_interval == 0:
            self.sweep()
        return admission

    def check(self, client_identity: str, endpoint: str) -> Admission:
        """
        Like :meth:`admit` but raise on denial.

        :raises RateLimitedError: When the window is exhausted.
        """
        admission = self.admit(client_identity, endpoint)
        if not admission.allowed:
            retry_after = math.ceil(admission.retry_after)
            log.warning(
                "ratelimit.denied",
                extra={"client": client_identity, "path": endpoint, "retry_after": retry_after},
            )
            raise RateLimitedError(retry_after=retry_after)
        return admission

    # ------------------------------------------------------------------ #
    # Eviction
    # ------------------------------------------------------------------ #

    def sweep(self, now: float | None = None) -> int:
        """
        Drop windows older than ``sweep_factor * window``.

        :returns: Number of windows removed.
        """
        now = self.clock() if now is None else now
        horizon = self.window * self.sweep_factor
        removed = 0
        for key, window in self._windows.copy().items():
            with window.lock:
                if now - window.start <= horizon:
                    continue
                window.evicted = True
                if self._windows.get(key) is window:
                    del self._windows[key]
                    removed += 1
        if removed:
            log.debug("ratelimit.sweep", extra={"removed": removed})
        return removed
