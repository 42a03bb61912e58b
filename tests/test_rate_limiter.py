"""
Tests for the fixed-window rate limiter and its counter stores.
"""
import asyncio

import pytest
import redis.exceptions

from scanlink_app.api.rate_limit import resolve_client_ip
from scanlink_app.exceptions import CounterStoreUnavailable
from scanlink_app.ratelimit import (
    CounterBackend,
    CounterStoreFactory,
    InMemoryCounterStore,
    RateLimiter,
    RedisCounterStore,
)


class FakeClock:
    def __init__(self, now=1000.0):
        self.now = now

    def __call__(self):
        return self.now


class FakePipeline:
    """Queues SET NX / INCR and applies them on execute(), like MULTI/EXEC"""

    def __init__(self, server):
        self.server = server
        self.commands = []

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info):
        self.commands = []

    def set(self, key, value, ex=None, nx=False):
        self.commands.append(("set", key, value, ex, nx))
        return self

    def incr(self, key):
        self.commands.append(("incr", key))
        return self

    async def execute(self):
        self.server.in_flight += 1
        self.server.peak_in_flight = max(self.server.peak_in_flight, self.server.in_flight)
        try:
            # Round trip to the server; other requests may run meanwhile
            await asyncio.sleep(self.server.latency)
            return self.apply()
        finally:
            self.server.in_flight -= 1

    def apply(self):
        results = []
        for command in self.commands:
            if command[0] == "set":
                _, key, value, ex, nx = command
                if nx and key in self.server.values:
                    results.append(None)
                    continue
                self.server.values[key] = int(value)
                self.server.ttls[key] = ex
                results.append(True)
            else:
                _, key = command
                self.server.values[key] = self.server.values.get(key, 0) + 1
                results.append(self.server.values[key])
        return results


class FakeRedis:
    """Minimal stand-in for redis.asyncio.Redis"""

    def __init__(self, latency=0):
        self.values = {}
        self.ttls = {}
        self.transactions = []
        self.latency = latency
        self.in_flight = 0
        self.peak_in_flight = 0

    def pipeline(self, transaction=True):
        self.transactions.append(transaction)
        return FakePipeline(self)


class DownRedis:
    def pipeline(self, transaction=True):
        raise redis.exceptions.ConnectionError("Connection refused")


class DownStore:
    async def incr_window(self, key, window):
        raise CounterStoreUnavailable("connection refused")


class TestRateLimiter:
    """Test allow/throttle decisions"""

    def test_three_allowed_then_throttled(self):
        """limit=3: three requests pass, the fourth is throttled"""
        limiter = RateLimiter(InMemoryCounterStore(), limit=3, window=60)

        decisions = [asyncio.run(limiter.allow("redirect", "1.2.3.4")) for _ in range(4)]

        assert [d.allowed for d in decisions] == [True, True, True, False]
        assert [d.remaining for d in decisions] == [2, 1, 0, 0]
        assert all(d.limit == 3 for d in decisions)
        assert decisions[3].retry_after == 60

    def test_clients_counted_separately(self):
        limiter = RateLimiter(InMemoryCounterStore(), limit=1, window=60)

        assert asyncio.run(limiter.allow("redirect", "1.1.1.1")).allowed
        assert asyncio.run(limiter.allow("redirect", "2.2.2.2")).allowed
        assert not asyncio.run(limiter.allow("redirect", "1.1.1.1")).allowed

    def test_routes_counted_separately(self):
        limiter = RateLimiter(InMemoryCounterStore(), limit=1, window=60)

        assert asyncio.run(limiter.allow("redirect", "1.1.1.1")).allowed
        assert asyncio.run(limiter.allow("create", "1.1.1.1")).allowed

    def test_fails_open_when_store_unavailable(self):
        """A counter outage must never block traffic"""
        limiter = RateLimiter(DownStore(), limit=3, window=60)

        for _ in range(10):
            decision = asyncio.run(limiter.allow("redirect", "1.2.3.4"))
            assert decision.allowed
            assert decision.remaining == 3

    def test_fails_open_with_unreachable_redis(self):
        limiter = RateLimiter(RedisCounterStore(DownRedis()), limit=1, window=60)

        assert asyncio.run(limiter.allow("redirect", "1.2.3.4")).allowed
        assert asyncio.run(limiter.allow("redirect", "1.2.3.4")).allowed

    def test_key_format(self):
        assert RateLimiter.key_for("redirect", "1.2.3.4") == "rl:redirect:1.2.3.4"


class TestInMemoryCounterStore:

    def test_window_expiry_resets_count(self):
        clock = FakeClock()
        store = InMemoryCounterStore(clock=clock)

        assert asyncio.run(store.incr_window("k", 60)) == 1
        assert asyncio.run(store.incr_window("k", 60)) == 2

        clock.now += 59
        assert asyncio.run(store.incr_window("k", 60)) == 3

        clock.now += 1
        assert asyncio.run(store.incr_window("k", 60)) == 1

    def test_throttled_client_recovers_next_window(self):
        clock = FakeClock()
        limiter = RateLimiter(InMemoryCounterStore(clock=clock), limit=1, window=10)

        assert asyncio.run(limiter.allow("redirect", "c")).allowed
        assert not asyncio.run(limiter.allow("redirect", "c")).allowed

        clock.now += 10
        assert asyncio.run(limiter.allow("redirect", "c")).allowed


class TestRedisCounterStore:

    def test_sets_expiry_only_for_new_key(self):
        server = FakeRedis()
        store = RedisCounterStore(server)

        assert asyncio.run(store.incr_window("rl:redirect:c", 60)) == 1
        server.ttls["rl:redirect:c"] = 42  # pretend time passed
        assert asyncio.run(store.incr_window("rl:redirect:c", 60)) == 2

        assert server.ttls["rl:redirect:c"] == 42
        assert all(server.transactions)

    def test_round_trips_do_not_block_event_loop(self):
        """Concurrent requests overlap while waiting on Redis instead of queueing"""
        server = FakeRedis(latency=0.05)
        limiter = RateLimiter(RedisCounterStore(server), limit=10, window=60)

        async def scan_burst():
            return await asyncio.gather(*[limiter.allow("redirect", "c") for _ in range(4)])

        decisions = asyncio.run(scan_burst())

        assert server.peak_in_flight == 4
        assert sorted(d.remaining for d in decisions) == [6, 7, 8, 9]
        assert server.values["rl:redirect:c"] == 4

    def test_connection_error_raises_unavailable(self):
        store = RedisCounterStore(DownRedis())

        with pytest.raises(CounterStoreUnavailable):
            asyncio.run(store.incr_window("k", 60))


class TestCounterStoreFactory:

    def setup_method(self):
        CounterStoreFactory.clear_instance()

    def teardown_method(self):
        CounterStoreFactory.clear_instance()

    def test_memory_backend(self):
        store = CounterStoreFactory.create(CounterBackend.MEMORY)

        assert isinstance(store, InMemoryCounterStore)
        assert CounterStoreFactory.create(CounterBackend.MEMORY) is store

    def test_unreachable_redis_falls_back_to_memory(self):
        store = CounterStoreFactory.create(CounterBackend.REDIS, redis_url="redis://127.0.0.1:1/0")

        assert isinstance(store, InMemoryCounterStore)


class TestResolveClientIp:
    """X-Forwarded-For is only honoured behind a trusted proxy"""

    TRUSTED = ["127.0.0.1", "10.0.0.0/8"]

    def test_no_header_uses_peer(self):
        assert resolve_client_ip("203.0.113.7", None, self.TRUSTED) == "203.0.113.7"

    def test_untrusted_peer_header_ignored(self):
        assert resolve_client_ip("203.0.113.7", "1.1.1.1", self.TRUSTED) == "203.0.113.7"

    def test_trusted_peer_uses_forwarded_client(self):
        assert resolve_client_ip("127.0.0.1", "198.51.100.4", self.TRUSTED) == "198.51.100.4"

    def test_spoofed_leftmost_hop_skipped(self):
        """The client can prepend anything; the rightmost untrusted hop wins"""
        forwarded = "6.6.6.6, 198.51.100.4, 10.1.2.3"

        assert resolve_client_ip("127.0.0.1", forwarded, self.TRUSTED) == "198.51.100.4"

    def test_all_hops_trusted_falls_back_to_leftmost(self):
        assert resolve_client_ip("127.0.0.1", "10.0.0.5, 10.0.0.6", self.TRUSTED) == "10.0.0.5"

    def test_non_ip_entries_compared_literally(self):
        assert resolve_client_ip("testclient", "198.51.100.4", ["testclient"]) == "198.51.100.4"
        assert resolve_client_ip("testclient", "garbage", []) == "testclient"
