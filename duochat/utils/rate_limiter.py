"""Fixed-window, per-client request limiter.

Each :class:`RateLimiter` keeps its own in-process mapping of client key
to a counter and a window reset time.  State is lost on restart and is not
shared between processes, so the limit holds per server instance only.
Increments are not locked; under true parallelism a window may admit one
request more than configured.
"""

from __future__ import annotations

import math
import random
import time
from dataclasses import dataclass
from typing import Callable

from loguru import logger


@dataclass
class RateWindowEntry:
    count: int
    reset_at: float


@dataclass(frozen=True)
class RateDecision:
    """Outcome of one :meth:`RateLimiter.check` call."""

    allowed: bool
    retry_after: int
    remaining: int


class RateLimiter:
    """Deny a client once it exceeds ``max_attempts`` within ``window_seconds``.

    Parameters
    ----------
    max_attempts: int
        Requests admitted per window.
    window_seconds: float
        Window length.  A client's window starts on its first request and
        restarts on the first request after it expires.
    name: str
        Label used in log messages.
    clock: callable
        Monotonic time source in seconds; injectable for tests.
    cleanup_probability: float
        Chance per call of purging entries expired for over a full window.
    """

    def __init__(
        self,
        max_attempts: int,
        window_seconds: float = 60.0,
        *,
        name: str = "default",
        clock: Callable[[], float] = time.monotonic,
        cleanup_probability: float = 0.01,
        rng: Callable[[], float] = random.random,
    ) -> None:
        if max_attempts <= 0:
            raise ValueError("max_attempts must be positive")
        if window_seconds <= 0:
            raise ValueError("window_seconds must be positive")
        self.max_attempts = max_attempts
        self.window_seconds = window_seconds
        self.name = name
        self._clock = clock
        self._cleanup_probability = cleanup_probability
        self._rng = rng
        self._entries: dict[str, RateWindowEntry] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def check(self, client_key: str) -> RateDecision:
        """Count a request from ``client_key`` and decide whether to admit it."""
        now = self._clock()
        entry = self._entries.get(client_key)
        if entry is None:
            entry = RateWindowEntry(count=0, reset_at=now + self.window_seconds)
            self._entries[client_key] = entry

        if now > entry.reset_at:
            entry.count = 0
            entry.reset_at = now + self.window_seconds

        entry.count += 1
        retry_after = max(0, math.ceil(entry.reset_at - now))

        if self._rng() < self._cleanup_probability:
            self.cleanup(now)

        if entry.count > self.max_attempts:
            logger.warning(
                "Rate limit '{}' exceeded by {} ({} > {}), retry in {}s",
                self.name,
                client_key,
                entry.count,
                self.max_attempts,
                retry_after,
            )
            return RateDecision(allowed=False, retry_after=retry_after, remaining=0)
        return RateDecision(
            allowed=True,
            retry_after=retry_after,
            remaining=self.max_attempts - entry.count,
        )

    def allow(self, client_key: str) -> bool:
        return self.check(client_key).allowed

    def cleanup(self, now: float | None = None) -> int:
        """Drop entries whose window ended more than one window ago."""
        now = self._clock() if now is None else now
        cutoff = now - self.window_seconds
        stale = [key for key, entry in self._entries.items() if entry.reset_at < cutoff]
        for key in stale:
            del self._entries[key]
        if stale:
            logger.debug("Rate limit '{}' purged {} stale entries", self.name, len(stale))
        return len(stale)

    def reset(self) -> None:
        self._entries.clear()


@dataclass
class EndpointLimiters:
    """One independent limiter per endpoint class."""

    message_send: RateLimiter
    chat_create: RateLimiter
    chat_read: RateLimiter
    chat_list: RateLimiter
    chat_delete: RateLimiter

    @classmethod
    def from_config(cls, app_config, clock: Callable[[], float] = time.monotonic) -> "EndpointLimiters":
        window = app_config.rate_limit_window
        return cls(
            message_send=RateLimiter(app_config.rate_limit_message_send, window, name="message_send", clock=clock),
            chat_create=RateLimiter(app_config.rate_limit_chat_create, window, name="chat_create", clock=clock),
            chat_read=RateLimiter(app_config.rate_limit_chat_read, window, name="chat_read", clock=clock),
            chat_list=RateLimiter(app_config.rate_limit_chat_list, window, name="chat_list", clock=clock),
            chat_delete=RateLimiter(app_config.rate_limit_chat_delete, window, name="chat_delete", clock=clock),
        )

    def get(self, name: str) -> RateLimiter:
        limiter = getattr(self, name, None)
        if not isinstance(limiter, RateLimiter):
            raise KeyError(f"Unknown rate limiter: {name}")
        return limiter
