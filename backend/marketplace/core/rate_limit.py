"""In-memory sliding-window rate limit, per client IP and route key. Per-process: use WAF/API Gateway in prod for scale."""
import math
import time
from collections import defaultdict
from dataclasses import dataclass

from starlette.requests import Request

from marketplace.core.config import get_settings

_buckets: dict[str, list[float]] = defaultdict(list)
_last_sweep = 0.0


@dataclass(frozen=True)
class RateLimitResult:
    success: bool
    limit: int
    remaining: int
    retry_after: int | None = None  # seconds until a slot frees up


def _route_limits() -> dict[str, int]:
    settings = get_settings()
    return {
        "materials:list": settings.materials_rate_limit_per_minute,
    }


def check_rate_limit(identifier: str, route_key: str) -> RateLimitResult:
    limit = _route_limits().get(route_key)
    if limit is None:
        # No limit configured for this route
        return RateLimitResult(success=True, limit=0, remaining=0)
    window = float(get_settings().rate_limit_window_seconds)
    now = time.monotonic()
    _sweep_expired(now, window)
    bucket = _buckets[f"{route_key}:{identifier}"]
    bucket[:] = [t for t in bucket if now - t < window]
    if len(bucket) >= limit:
        retry_after = max(1, math.ceil(bucket[0] + window - now))
        return RateLimitResult(success=False, limit=limit, remaining=0, retry_after=retry_after)
    bucket.append(now)
    return RateLimitResult(success=True, limit=limit, remaining=limit - len(bucket))


def _sweep_expired(now: float, window: float) -> None:
    """Drop keys whose newest hit is older than the window, at most once per window."""
    global _last_sweep
    if now - _last_sweep < window:
        return
    _last_sweep = now
    for key in [k for k, hits in _buckets.items() if not hits or now - hits[-1] >= window]:
        del _buckets[key]


def rate_limit_headers(result: RateLimitResult) -> dict[str, str]:
    headers = {
        "X-RateLimit-Limit": str(result.limit),
        "X-RateLimit-Remaining": str(result.remaining),
    }
    if result.retry_after:
        headers["Retry-After"] = str(result.retry_after)
    return headers


def get_client_ip(request: Request) -> str:
    """First X-Forwarded-For hop, then X-Real-IP, then the socket peer."""
    forwarded_for = request.headers.get("x-forwarded-for")
    if forwarded_for:
        return forwarded_for.split(",")[0].strip()
    real_ip = request.headers.get("x-real-ip")
    if real_ip:
        return real_ip.strip()
    if request.client and request.client.host:
        return request.client.host
    return "127.0.0.1"


def reset_rate_limit(identifier: str, route_key: str) -> None:
    _buckets.pop(f"{route_key}:{identifier}", None)


def clear_rate_limits() -> None:
    global _last_sweep
    _buckets.clear()
    _last_sweep = 0.0
