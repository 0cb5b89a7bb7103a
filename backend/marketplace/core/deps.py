"""FastAPI dependencies: rate limiting, metrics guard."""
from fastapi import Header, HTTPException, Request, status

from marketplace.core.config import get_settings
from marketplace.core.metrics import record_rate_limited
from marketplace.core.rate_limit import RateLimitResult, check_rate_limit, get_client_ip


class RateLimitExceeded(Exception):
    """Raised before the handler runs; rendered as 429 by the app exception handler."""

    def __init__(self, route_key: str, result: RateLimitResult):
        super().__init__(f"Rate limit exceeded for {route_key}")
        self.route_key = route_key
        self.result = result


def rate_limited(route_key: str):
    """Dependency factory: count the request against route_key for the client IP."""

    def dependency(request: Request) -> None:
        result = check_rate_limit(get_client_ip(request), route_key)
        if not result.success:
            record_rate_limited(route_key)
            raise RateLimitExceeded(route_key, result)

    return dependency


materials_rate_limit = rate_limited("materials:list")


def require_metrics_access(
    x_metrics_secret: str | None = Header(None, alias="X-Metrics-Secret"),
) -> None:
    """Allow /metrics if no METRICS_SECRET is configured (local) or the header matches."""
    s = get_settings()
    if s.metrics_secret and x_metrics_secret != s.metrics_secret:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or missing X-Metrics-Secret",
        )
