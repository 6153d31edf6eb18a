"""Tests for the per-IP API rate limit."""

import asyncio
from dataclasses import replace

from fastapi.testclient import TestClient

from taskflow.config import Settings
from taskflow.main import create_app
from taskflow.services.rate_limit import SlidingWindowRateLimiter


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


def test_limiter_blocks_after_limit_and_recovers():
    clock = FakeClock()
    limiter = SlidingWindowRateLimiter(limit=2, window_seconds=60, clock=clock)

    assert asyncio.run(limiter.allow("1.2.3.4")) == (True, 0)
    clock.now += 10
    assert asyncio.run(limiter.allow("1.2.3.4")) == (True, 0)
    allowed, retry_after = asyncio.run(limiter.allow("1.2.3.4"))
    assert not allowed
    assert retry_after == 50

    clock.now += 51
    assert asyncio.run(limiter.allow("1.2.3.4")) == (True, 0)


def test_limiter_counts_each_key_separately():
    limiter = SlidingWindowRateLimiter(limit=1, window_seconds=60, clock=FakeClock())

    assert asyncio.run(limiter.allow("1.1.1.1"))[0]
    assert asyncio.run(limiter.allow("2.2.2.2"))[0]
    assert not asyncio.run(limiter.allow("1.1.1.1"))[0]


def test_api_requests_are_limited(settings: Settings):
    client = TestClient(create_app(replace(settings, rate_limit_max_requests=2)))

    assert client.get("/api/health").status_code == 200
    assert client.get("/api/health").status_code == 200
    response = client.get("/api/health")

    assert response.status_code == 429
    assert response.json()["detail"] == "Too many requests from this IP, please try again later."
    assert int(response.headers["retry-after"]) >= 1


def test_paths_outside_api_are_not_limited(settings: Settings):
    client = TestClient(create_app(replace(settings, rate_limit_max_requests=1)))

    for _ in range(3):
        assert client.get("/health").status_code == 200


def test_limit_can_be_disabled(settings: Settings):
    client = TestClient(create_app(replace(settings, rate_limit_max_requests=0)))

    for _ in range(3):
        assert client.get("/api/health").status_code == 200
