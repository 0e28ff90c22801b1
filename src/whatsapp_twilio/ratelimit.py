from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable
from typing import Protocol

from .errors import rate_limit_error
from .phone import mask_number

logger = logging.getLogger(__name__)

KEY_PREFIX = "whatsapp:rate_limit:"


class CounterStore(Protocol):
    """Key/value store with expiring entries (an external cache in production)."""

    def get(self, key: str) -> int | None: ...

    def put(self, key: str, value: int, ttl: int) -> None: ...


class TTLCounterStore:
    """
    Process-local CounterStore.

    Entries disappear ``ttl`` seconds after they were last written. Each
    get/put is locked, but a read followed by a write is not atomic.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._lock = threading.Lock()
        self._entries: dict[str, tuple[int, float]] = {}

    def get(self, key: str) -> int | None:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            value, expires_at = entry
            if self._clock() >= expires_at:
                del self._entries[key]
                return None
            return value

    def put(self, key: str, value: int, ttl: int) -> None:
        with self._lock:
            self._entries[key] = (value, self._clock() + ttl)


class RateLimiter:
    """
    Fixed-window counter per recipient.

    The window starts at the recipient's most recent accepted request and is
    renewed on every accepted request, so it is not a true sliding log.
    """

    def __init__(self, store: CounterStore, max_requests: int, window: int) -> None:
        self.store = store
        self.max_requests = max_requests
        self.window = window

    def hit(self, recipient: str) -> int:
        """Count one request for ``recipient``; raise once the threshold is reached."""
        key = f"{KEY_PREFIX}{recipient}"
        count = self.store.get(key) or 0
        if count >= self.max_requests:
            logger.warning(
                f"Rate limit reached for {mask_number(recipient)} ({count}/{self.max_requests})"
            )
            raise rate_limit_error(
                f"Rate limit exceeded for number {recipient}. "
                f"Maximum {self.max_requests} requests per {self.window} seconds allowed."
            )
        self.store.put(key, count + 1, self.window)
        return count + 1
