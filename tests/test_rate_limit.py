from inkgenius.services import rate_limit


class FakeRedis:
    def __init__(self):
        self.counts = {}
        self.ttls = {}

    async def incr(self, key):
        self.counts[key] = self.counts.get(key, 0) + 1
        return self.counts[key]

    async def expire(self, key, seconds):
        self.ttls[key] = seconds


class DownRedis:
    async def incr(self, key):
        raise ConnectionError("redis unavailable")


async def test_allows_up_to_limit_then_blocks():
    redis = FakeRedis()
    for _ in range(3):
        assert await rate_limit.hit(redis, "1.2.3.4", limit=3, window_seconds=900) == (True, 0)
    allowed, retry_after = await rate_limit.hit(redis, "1.2.3.4", limit=3, window_seconds=900)
    assert not allowed
    assert 0 < retry_after <= 900
    assert list(redis.ttls.values()) == [900]


async def test_clients_are_counted_separately():
    redis = FakeRedis()
    assert (await rate_limit.hit(redis, "1.1.1.1", limit=1, window_seconds=60))[0]
    assert (await rate_limit.hit(redis, "2.2.2.2", limit=1, window_seconds=60))[0]
    assert not (await rate_limit.hit(redis, "1.1.1.1", limit=1, window_seconds=60))[0]


async def test_redis_errors_fail_open():
    assert await rate_limit.hit(DownRedis(), "1.2.3.4", limit=1, window_seconds=60) == (True, 0)


async def test_route_returns_429_when_limited(client, app, monkeypatch):
    from inkgenius.deps import rate_limit as rate_limit_dependency

    async def always_limited(*args, **kwargs):
        return False, 42

    del app.dependency_overrides[rate_limit_dependency]
    monkeypatch.setattr(rate_limit, "get_redis", lambda: FakeRedis())
    monkeypatch.setattr(rate_limit, "hit", always_limited)
    r = await client.get("/api/payments/packages")
    assert r.status_code == 429
    assert r.json()["error"]["code"] == "RATE_LIMITED"
    assert r.json()["error"]["details"] == {"retry_after": 42}
