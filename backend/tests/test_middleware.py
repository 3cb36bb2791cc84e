"""
Zoo API — Middleware Tests
============================

What:  Tests for the rate limiter window and the access-log level choice.
How:   A bare FastAPI app with one route, so only the middleware under test
       is involved; time comes from a fake clock.
"""

import logging

import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

from zoo_api.main import create_app
from zoo_api.middleware.logging import access_level
from zoo_api.middleware.rate_limit import RateLimitMiddleware
from zoo_api.middleware.request_id import RequestIDMiddleware


class FakeClock:
    def __init__(self):
        self.now = 5000.0

    def __call__(self):
        return self.now


def limited_app(clock):
    app = FastAPI()
    app.add_middleware(RateLimitMiddleware, max_requests=2, window=60, clock=clock)
    app.add_middleware(RequestIDMiddleware)

    @app.get("/api/animals")
    async def animals():
        return {"ok": True}

    @app.get("/api/health")
    async def health():
        return {"status": "healthy"}

    return app


class TestRateLimit:

    def setup_method(self):
        self.clock = FakeClock()
        self.app = limited_app(self.clock)

    @pytest.mark.asyncio
    async def test_blocks_after_limit(self):
        async with AsyncClient(transport=ASGITransport(app=self.app), base_url="http://test") as client:
            assert (await client.get("/api/animals")).status_code == 200
            self.clock.now += 10
            assert (await client.get("/api/animals")).status_code == 200
            blocked = await client.get("/api/animals")

        assert blocked.status_code == 429
        assert blocked.json()["error"] == "rate_limit_exceeded"
        # Oldest request leaves the window 50s from now
        assert blocked.headers["Retry-After"] == "51"

    @pytest.mark.asyncio
    async def test_rejection_carries_request_id(self):
        async with AsyncClient(transport=ASGITransport(app=self.app), base_url="http://test") as client:
            for _ in range(2):
                await client.get("/api/animals")
            blocked = await client.get("/api/animals", headers={"X-Request-ID": "gate-7"})

        assert blocked.status_code == 429
        assert blocked.headers["X-Request-ID"] == "gate-7"
        assert blocked.json()["request_id"] == "gate-7"

    def test_request_id_wraps_rate_limit_in_app(self):
        order = [middleware.cls for middleware in create_app().user_middleware]
        assert order.index(RequestIDMiddleware) < order.index(RateLimitMiddleware)

    @pytest.mark.asyncio
    async def test_window_slides(self):
        async with AsyncClient(transport=ASGITransport(app=self.app), base_url="http://test") as client:
            await client.get("/api/animals")
            await client.get("/api/animals")
            self.clock.now += 61
            response = await client.get("/api/animals")

        assert response.status_code == 200

    @pytest.mark.asyncio
    async def test_health_is_exempt(self):
        async with AsyncClient(transport=ASGITransport(app=self.app), base_url="http://test") as client:
            statuses = [(await client.get("/api/health")).status_code for _ in range(5)]

        assert statuses == [200] * 5


class TestAccessLevel:

    def test_levels(self):
        assert access_level(200, 12.0) == logging.INFO
        assert access_level(201, 2500.0) == logging.WARNING
        assert access_level(404, 3.0) == logging.WARNING
        assert access_level(503, 3.0) == logging.ERROR
