"""Tests for rate limiting, request IDs, security headers and error envelopes."""
from __future__ import annotations

import json

import pytest
from starlette.requests import Request

from src.api.main import unhandled_error_handler
from src.middleware.rate_limit import RateLimitStore, _find_limit


def test_allows_within_limit():
    store = RateLimitStore()
    for i in range(5):
        allowed, count = store.check_and_record("test-key", 10, 60)
        assert allowed is True
        assert count == i + 1


def test_blocks_over_limit():
    store = RateLimitStore()
    for _ in range(10):
        store.check_and_record("block-key", 10, 60)
    allowed, count = store.check_and_record("block-key", 10, 60)
    assert allowed is False
    assert count == 10


def test_limit_buckets():
    assert _find_limit("/api/login") == ("auth", 10, 60)
    assert _find_limit("/api/ai/chat") == ("ai", 30, 60)
    assert _find_limit("/api/meals") == ("api", 120, 60)
    assert _find_limit("/health") is None


@pytest.mark.asyncio
async def test_login_rate_limited(client):
    for _ in range(10):
        await client.post("/api/login", json={"email": "x@test.com", "password": "secret123"})
    resp = await client.post("/api/login", json={"email": "x@test.com", "password": "secret123"})
    assert resp.status_code == 429
    assert resp.json()["error"] == "rate_limited"
    assert resp.headers["retry-after"] == "60"


@pytest.mark.asyncio
async def test_rate_limit_headers(client):
    resp = await client.get("/api/foods")
    assert resp.headers["x-ratelimit-limit"] == "120"
    assert "x-ratelimit-remaining" in resp.headers


@pytest.mark.asyncio
async def test_health_exempt(client):
    resp = await client.get("/health")
    assert resp.status_code == 200
    assert resp.json()["status"] == "ok"
    assert "x-ratelimit-limit" not in resp.headers


@pytest.mark.asyncio
async def test_ready(client):
    resp = await client.get("/ready")
    assert resp.json() == {"ready": True}


@pytest.mark.asyncio
async def test_request_id_echoed(client):
    resp = await client.get("/health", headers={"X-Request-ID": "abc-123"})
    assert resp.headers["x-request-id"] == "abc-123"


@pytest.mark.asyncio
async def test_request_id_generated_for_bad_value(client):
    resp = await client.get("/health", headers={"X-Request-ID": "bad id with spaces"})
    assert resp.headers["x-request-id"] != "bad id with spaces"
    assert len(resp.headers["x-request-id"]) == 36


@pytest.mark.asyncio
async def test_security_headers(client):
    resp = await client.post("/api/login", json={"email": "x@test.com", "password": "secret123"})
    assert resp.headers["x-content-type-options"] == "nosniff"
    assert "no-store" in resp.headers["cache-control"]


@pytest.mark.asyncio
async def test_unknown_route_envelope(client):
    resp = await client.get("/api/does-not-exist")
    assert resp.status_code == 404
    assert resp.json() == {"error": "Not Found", "message": "Not Found"}


@pytest.mark.asyncio
async def test_validation_envelope(client):
    resp = await client.post("/api/register", json={"email": "a@test.com"})
    assert resp.status_code == 422
    body = resp.json()
    assert body["error"] == "validation_error"
    assert body["details"][0]["field"] == "body → password"


@pytest.mark.asyncio
async def test_unhandled_error_envelope():
    request = Request({"type": "http", "method": "GET", "path": "/boom", "headers": [], "query_string": b""})
    resp = await unhandled_error_handler(request, RuntimeError("kaboom"))
    assert resp.status_code == 500
    assert json.loads(resp.body) == {
        "error": "internal_error",
        "message": "Something went wrong. Please try again.",
    }
