"""
Factory for creating counter stores.
Singleton per process, falls back to memory when Redis is unreachable.
"""

import logging
from enum import Enum

import redis
import redis.asyncio

from .strategies import CounterStore, RedisCounterStore, InMemoryCounterStore

logger = logging.getLogger(__name__)


class CounterBackend(Enum):
    """Available counter store backends"""
    REDIS = "redis"
    MEMORY = "memory"


class CounterStoreFactory:
    """
    Factory for counter store instances.

    Uses Singleton Pattern - creates instance once, reuses it.
    """

    _instance: CounterStore = None

    @classmethod
    def create(cls, backend: CounterBackend, redis_url: str = None) -> CounterStore:
        """
        Create or return the cached counter store.

        Args:
            backend: Type of counter backend (from enum)
            redis_url: Connection URL, required for the Redis backend

        Returns:
            Singleton counter store
        """
        if cls._instance is not None:
            return cls._instance

        if backend == CounterBackend.REDIS:
            try:
                # Startup check runs outside any event loop, so ping with a sync client
                check_client = redis.from_url(redis_url, socket_connect_timeout=2, socket_timeout=2)
                try:
                    check_client.ping()
                finally:
                    check_client.close()
                redis_client = redis.asyncio.from_url(
                    redis_url,
                    socket_connect_timeout=2,
                    socket_timeout=2,
                )
                cls._instance = RedisCounterStore(redis_client)
                logger.info("Redis counter store initialized")
            except redis.exceptions.RedisError as e:
                logger.warning("Redis connection failed (%s), falling back to in-memory counters", e)
                cls._instance = InMemoryCounterStore()

        elif backend == CounterBackend.MEMORY:
            cls._instance = InMemoryCounterStore()
            logger.info("In-memory counter store initialized")

        else:
            raise ValueError(f"Unknown counter backend: {backend}")

        return cls._instance

    @classmethod
    def clear_instance(cls):
        """Clear cached instance (for testing)"""
        cls._instance = None
