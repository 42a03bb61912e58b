"""
Fixed-window rate limiting for the public redirect route.
"""

from .strategies import CounterStore, RedisCounterStore, InMemoryCounterStore
from .factory import CounterStoreFactory, CounterBackend
from .limiter import RateLimiter, RateLimitDecision

__all__ = [
    "CounterStore",
    "RedisCounterStore",
    "InMemoryCounterStore",
    "CounterStoreFactory",
    "CounterBackend",
    "RateLimiter",
    "RateLimitDecision",
]
