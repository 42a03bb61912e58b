import logging
from typing import NamedTuple

from scanlink_app.exceptions import CounterStoreUnavailable
from scanlink_app.ratelimit.strategies import CounterStore

logger = logging.getLogger(__name__)

KEY_PREFIX = "rl"


class RateLimitDecision(NamedTuple):
    allowed: bool
    limit: int
    remaining: int
    retry_after: int


class RateLimiter:
    """
    Fixed-window rate limiter, keyed by route and client.

    Each request costs exactly one atomic increment on the counter store.
    Once the post-increment count exceeds the limit the request is throttled
    until the window expires.

    Fails OPEN: if the counter store is unreachable the request is allowed.
    A counter outage must not take the public redirect down with it.
    """

    def __init__(self, store: CounterStore, limit: int, window: int):
        """
        Args:
            store: Counter store backend
            limit: Requests allowed per window
            window: Window length in seconds
        """
        self.store = store
        self.limit = limit
        self.window = window

    @staticmethod
    def key_for(route_key: str, client_key: str) -> str:
        return f"{KEY_PREFIX}:{route_key}:{client_key}"

    async def allow(self, route_key: str, client_key: str) -> RateLimitDecision:
        try:
            count = await self.store.incr_window(self.key_for(route_key, client_key), self.window)
        except CounterStoreUnavailable as e:
            logger.warning("Rate limit store unavailable, allowing request (fail open): %s", e)
            return RateLimitDecision(True, self.limit, self.limit, 0)

        if count > self.limit:
            return RateLimitDecision(False, self.limit, 0, self.window)
        return RateLimitDecision(True, self.limit, self.limit - count, 0)
