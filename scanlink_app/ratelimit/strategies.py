"""
Counter stores for the fixed-window rate limiter, using Strategy Pattern.

A counter store does one thing: atomically increment a per-key counter,
starting a fresh expiry window when the key is new, and report the new count.
"""

import threading
import time
from abc import ABC, abstractmethod
from typing import Callable, Dict, Tuple

import redis.exceptions

from scanlink_app.exceptions import CounterStoreUnavailable


class CounterStore(ABC):
    """
    Abstract base class for rate limit counter stores.

    Async because the production backend is a network call.
    """

    @abstractmethod
    async def incr_window(self, key: str, window: int) -> int:
        """
        Increment the counter for key, creating it with a `window`-second
        expiry if it does not exist yet.

        Args:
            key: Counter key (route + client)
            window: Window length in seconds

        Returns:
            Counter value after the increment

        Raises:
            CounterStoreUnavailable: the store could not be reached
        """
        pass


class RedisCounterStore(CounterStore):
    """
    Redis counter store, shared by every app instance.

    One MULTI/EXEC transaction per request, awaited on the event loop:
        SET key 0 EX window NX
        INCR key
    so the expiry is set exactly once per window and there is no gap between
    increment and expiry where a crash leaves an immortal key behind.
    """

    def __init__(self, redis_client):
        """
        Args:
            redis_client: Async Redis client instance (redis.asyncio.Redis)
        """
        self.redis = redis_client

    async def incr_window(self, key: str, window: int) -> int:
        try:
            async with self.redis.pipeline(transaction=True) as pipe:
                pipe.set(key, 0, ex=window, nx=True)
                pipe.incr(key)
                _, count = await pipe.execute()
            return int(count)
        except redis.exceptions.RedisError as e:
            raise CounterStoreUnavailable(str(e)) from e


class InMemoryCounterStore(CounterStore):
    """
    Process-local counter store.

    Pros:
    - No external dependencies
    - Expiry is enforced on access

    Cons:
    - Not shared between processes, so each worker gets its own quota
    - Expired keys are only dropped when touched again

    Used in development/testing environments and as the Redis fallback.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        """
        Args:
            clock: Seconds source, injectable so tests can move time
        """
        self.clock = clock
        self._counters: Dict[str, Tuple[int, float]] = {}
        self._lock = threading.Lock()

    async def incr_window(self, key: str, window: int) -> int:
        with self._lock:
            now = self.clock()
            count, expires_at = self._counters.get(key, (0, 0.0))
            if expires_at <= now:
                count, expires_at = 0, now + window
            count += 1
            self._counters[key] = (count, expires_at)
            return count

    def clear(self) -> None:
        with self._lock:
            self._counters.clear()
