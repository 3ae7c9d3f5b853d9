import httpx
import pytest

from biztech.main import app
from biztech.services import rate_limit as rate_limit_module
from biztech.services.rate_limit import TokenRateLimiter


class FakeRedis:
    def __init__(self):
        self.values: dict[str, int] = {}
        self.ttl: dict[str, int] = {}

    async def incr(self, key):
        self.values[key] = self.values.get(key, 0) + 1
        return self.values[key]

    async def expire(self, key, seconds):
        self.ttl[key] = seconds


async def test_limiter_counts_per_window():
    redis = FakeRedis()
    limiter = TokenRateLimiter(client=redis)

    results = [await limiter.allow(key="login:1.2.3.4", limit=2, window_seconds=60) for _ in range(3)]
    assert [r.allowed for r in results] == [True, True, False]
    assert results[0].remaining == 1
    assert list(redis.ttl.values()) == [60]


@pytest.fixture
def limited(monkeypatch):
    limiter = TokenRateLimiter(client=FakeRedis())
    monkeypatch.setattr(rate_limit_module, "get_rate_limiter", lambda: limiter)
    return limiter


async def test_login_endpoint_throttled(client, limited, buyer):
    body = {"email": buyer.email, "password": "Wrong1234"}
    codes = [(await client.post("/v1/auth/login", json=body)).status_code for _ in range(21)]
    assert codes[:20] == [401] * 20
    assert codes[20] == 429


async def test_health_not_throttled(limited):
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as ac:
        for _ in range(30):
            assert (await ac.get("/v1/health")).status_code == 200
