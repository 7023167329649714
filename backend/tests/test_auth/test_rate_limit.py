"""Unit tests for the login rate limiter and its counter stores."""

import pytest
from starlette.requests import Request

from app.auth.rate_limit import LoginRateLimiter, MemoryCounterStore, RedisCounterStore, client_ip
from app.errors import RateLimitExceeded


class FakeClock:
    def __init__(self, now: float = 1000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now


def _request(headers: dict[str, str] | None = None, host: str = "192.0.2.10") -> Request:
    raw = [(k.lower().encode(), v.encode()) for k, v in (headers or {}).items()]
    return Request({"type": "http", "headers": raw, "client": (host, 5555)})


class TestMemoryCounterStore:
    async def test_counts_within_window(self):
        store = MemoryCounterStore(clock=FakeClock())
        assert await store.increment("k", 60) == (1, 60)
        assert (await store.increment("k", 60))[0] == 2

    async def test_window_expiry_resets_count(self):
        clock = FakeClock()
        store = MemoryCounterStore(clock=clock)
        await store.increment("k", 60)
        await store.increment("k", 60)

        clock.now += 61
        count, ttl = await store.increment("k", 60)
        assert count == 1
        assert ttl == 60

    async def test_ttl_counts_down(self):
        clock = FakeClock()
        store = MemoryCounterStore(clock=clock)
        await store.increment("k", 60)
        clock.now += 20
        assert (await store.increment("k", 60))[1] == 40

    async def test_reset(self):
        store = MemoryCounterStore(clock=FakeClock())
        await store.increment("k", 60)
        await store.reset("k")
        assert (await store.increment("k", 60))[0] == 1


class FakePipeline:
    def __init__(self, client: "FakeRedis", transaction: bool) -> None:
        self.client = client
        self.transaction = transaction
        self.commands: list[tuple] = []

    async def __aenter__(self) -> "FakePipeline":
        return self

    async def __aexit__(self, *exc) -> None:
        return None

    def incr(self, key: str) -> "FakePipeline":
        self.commands.append(("incr", key))
        return self

    def expire(self, key: str, seconds: int, nx: bool = False) -> "FakePipeline":
        self.commands.append(("expire", key, seconds, nx))
        return self

    def ttl(self, key: str) -> "FakePipeline":
        self.commands.append(("ttl", key))
        return self

    async def execute(self) -> list:
        results = []
        for name, key, *args in self.commands:
            if name == "incr":
                self.client.counts[key] = self.client.counts.get(key, 0) + 1
                results.append(self.client.counts[key])
            elif name == "expire":
                seconds, nx = args
                if nx and key in self.client.ttls:
                    results.append(False)
                else:
                    self.client.ttls[key] = seconds
                    results.append(True)
            else:
                results.append(self.client.ttls.get(key, -1))
        self.client.executed.append((self.transaction, list(self.commands)))
        return results


class FakeRedis:
    def __init__(self) -> None:
        self.counts: dict[str, int] = {}
        self.ttls: dict[str, int] = {}
        self.executed: list[tuple[bool, list[tuple]]] = []

    def pipeline(self, transaction: bool = True) -> FakePipeline:
        return FakePipeline(self, transaction)

    async def delete(self, key: str) -> None:
        self.counts.pop(key, None)
        self.ttls.pop(key, None)


class TestRedisCounterStore:
    async def test_expiry_set_in_same_transaction(self):
        client = FakeRedis()
        store = RedisCounterStore(client)
        assert await store.increment("k", 900) == (1, 900)

        transaction, commands = client.executed[0]
        assert transaction is True
        assert [c[0] for c in commands] == ["incr", "expire", "ttl"]
        assert commands[1] == ("expire", "ratelimit:k", 900, True)

    async def test_later_hits_keep_first_window(self):
        client = FakeRedis()
        store = RedisCounterStore(client)
        await store.increment("k", 900)
        client.ttls["ratelimit:k"] = 300

        assert await store.increment("k", 900) == (2, 300)
        assert len(client.executed) == 2

    async def test_reset_deletes_key(self):
        client = FakeRedis()
        store = RedisCounterStore(client)
        await store.increment("k", 900)
        await store.reset("k")
        assert "ratelimit:k" not in client.counts


class TestLoginRateLimiter:
    async def test_sixth_attempt_rejected(self):
        limiter = LoginRateLimiter(MemoryCounterStore(clock=FakeClock()), max_attempts=5, window_seconds=900)
        for _ in range(5):
            await limiter.hit("10.0.0.1")

        with pytest.raises(RateLimitExceeded) as exc_info:
            await limiter.hit("10.0.0.1")
        assert exc_info.value.context["retry_after"] == 900
        assert exc_info.value.status_code == 429

    async def test_clients_are_counted_separately(self):
        limiter = LoginRateLimiter(MemoryCounterStore(clock=FakeClock()), max_attempts=1, window_seconds=60)
        await limiter.hit("10.0.0.1")
        await limiter.hit("10.0.0.2")

    async def test_allowed_again_after_window(self):
        clock = FakeClock()
        limiter = LoginRateLimiter(MemoryCounterStore(clock=clock), max_attempts=1, window_seconds=60)
        await limiter.hit("10.0.0.1")
        with pytest.raises(RateLimitExceeded):
            await limiter.hit("10.0.0.1")

        clock.now += 60
        await limiter.hit("10.0.0.1")

    async def test_reset_clears_client(self):
        limiter = LoginRateLimiter(MemoryCounterStore(clock=FakeClock()), max_attempts=1, window_seconds=60)
        await limiter.hit("10.0.0.1")
        await limiter.reset("10.0.0.1")
        await limiter.hit("10.0.0.1")


class TestClientIp:
    def test_uses_peer_address(self):
        assert client_ip(_request()) == "192.0.2.10"

    def test_prefers_first_forwarded_address(self):
        assert client_ip(_request({"X-Forwarded-For": "203.0.113.7, 10.0.0.1"})) == "203.0.113.7"
