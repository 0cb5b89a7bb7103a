"""Sliding-window rate limit and the 429 response shape."""
import pytest
from httpx import AsyncClient
from starlette.requests import Request

from marketplace.api import materials as materials_api
from marketplace.api.schemas import MaterialList, Pagination
from marketplace.core.config import get_settings
from marketplace.core import rate_limit
from marketplace.core.rate_limit import (
    RateLimitResult,
    check_rate_limit,
    get_client_ip,
    rate_limit_headers,
    reset_rate_limit,
)


def _request(headers=None, client=("10.0.0.9", 1234)) -> Request:
    scope = {
        "type": "http",
        "method": "GET",
        "path": "/api/materials",
        "headers": [(k.lower().encode(), v.encode()) for k, v in (headers or {}).items()],
        "client": client,
    }
    return Request(scope)


def test_allows_up_to_limit_then_blocks():
    limit = get_settings().materials_rate_limit_per_minute
    for i in range(limit):
        result = check_rate_limit("1.2.3.4", "materials:list")
        assert result.success
        assert result.remaining == limit - i - 1
    blocked = check_rate_limit("1.2.3.4", "materials:list")
    assert not blocked.success
    assert blocked.remaining == 0
    assert 1 <= blocked.retry_after <= get_settings().rate_limit_window_seconds


def test_identifiers_are_independent():
    limit = get_settings().materials_rate_limit_per_minute
    for _ in range(limit):
        check_rate_limit("1.1.1.1", "materials:list")
    assert not check_rate_limit("1.1.1.1", "materials:list").success
    assert check_rate_limit("2.2.2.2", "materials:list").success
    reset_rate_limit("1.1.1.1", "materials:list")
    assert check_rate_limit("1.1.1.1", "materials:list").success


def test_unconfigured_route_is_not_limited():
    for _ in range(500):
        assert check_rate_limit("1.2.3.4", "unknown:route").success


def test_expired_clients_are_swept(monkeypatch):
    clock = [1000.0]
    monkeypatch.setattr(rate_limit.time, "monotonic", lambda: clock[0])
    for i in range(5000):
        check_rate_limit(f"10.{i // 256}.{i % 256}.1", "materials:list")
    assert len(rate_limit._buckets) == 5000

    clock[0] += 3600
    assert check_rate_limit("192.0.2.1", "materials:list").success
    assert list(rate_limit._buckets) == ["materials:list:192.0.2.1"]


def test_sweep_keeps_clients_inside_the_window(monkeypatch):
    window = get_settings().rate_limit_window_seconds
    clock = [1000.0]
    monkeypatch.setattr(rate_limit.time, "monotonic", lambda: clock[0])
    check_rate_limit("198.51.100.1", "materials:list")
    clock[0] += window - 1
    check_rate_limit("198.51.100.2", "materials:list")
    clock[0] += window - 1
    check_rate_limit("198.51.100.3", "materials:list")
    assert sorted(rate_limit._buckets) == ["materials:list:198.51.100.2", "materials:list:198.51.100.3"]


def test_rate_limit_headers():
    headers = rate_limit_headers(RateLimitResult(success=False, limit=60, remaining=0, retry_after=12))
    assert headers == {"X-RateLimit-Limit": "60", "X-RateLimit-Remaining": "0", "Retry-After": "12"}
    ok = rate_limit_headers(RateLimitResult(success=True, limit=60, remaining=59))
    assert "Retry-After" not in ok


def test_get_client_ip_precedence():
    assert get_client_ip(_request({"X-Forwarded-For": "203.0.113.5, 10.0.0.1", "X-Real-IP": "198.51.100.2"})) == "203.0.113.5"
    assert get_client_ip(_request({"X-Real-IP": "198.51.100.2"})) == "198.51.100.2"
    assert get_client_ip(_request()) == "10.0.0.9"
    assert get_client_ip(_request(client=None)) == "127.0.0.1"


@pytest.fixture
def empty_listing(monkeypatch):
    async def fake_list_materials(db, query):
        return MaterialList(
            materials=[],
            pagination=Pagination(page=query.page, limit=query.limit, total=0, total_pages=0),
        )
    monkeypatch.setattr(materials_api, "list_materials", fake_list_materials)


async def test_listing_returns_429_after_limit(api_client: AsyncClient, empty_listing):
    limit = get_settings().materials_rate_limit_per_minute
    headers = {"X-Forwarded-For": "203.0.113.77"}
    for _ in range(limit):
        r = await api_client.get("/api/materials", headers=headers)
        assert r.status_code == 200
    r = await api_client.get("/api/materials", headers=headers)
    assert r.status_code == 429
    body = r.json()
    assert body["error"] == "Too many requests"
    assert body["code"] == "RATE_LIMITED"
    assert body["retryAfter"] >= 1
    assert r.headers["X-RateLimit-Limit"] == str(limit)
    assert r.headers["X-RateLimit-Remaining"] == "0"
    assert r.headers["Retry-After"] == str(body["retryAfter"])

    # Another client is unaffected
    r = await api_client.get("/api/materials", headers={"X-Forwarded-For": "203.0.113.78"})
    assert r.status_code == 200


async def test_autocomplete_shares_the_listing_budget(api_client: AsyncClient, empty_listing):
    limit = get_settings().materials_rate_limit_per_minute
    headers = {"X-Forwarded-For": "203.0.113.90"}
    for _ in range(limit):
        await api_client.get("/api/materials", headers=headers)
    # Short q never reaches the database, so this only exercises the limiter
    r = await api_client.get("/api/materials/autocomplete?q=a", headers=headers)
    assert r.status_code == 429
    assert r.json()["code"] == "RATE_LIMITED"
