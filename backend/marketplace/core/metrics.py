"""Prometheus metrics: request count by route/status, latency, search tier, short-circuits, rate limiting."""
from prometheus_client import Counter, Histogram, generate_latest, CONTENT_TYPE_LATEST

REQUEST_COUNT = Counter(
    "http_requests_total",
    "Total requests",
    ["method", "path", "status_class"],
)
REQUEST_LATENCY = Histogram(
    "http_request_duration_seconds",
    "Request latency",
    ["method", "path"],
    buckets=(0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0),
)
SEARCH_TIER_TOTAL = Counter(
    "materials_search_tier_total",
    "Text searches by resolving tier",
    ["tier"],  # code | fulltext | fuzzy | none
)
SHORT_CIRCUIT_TOTAL = Counter(
    "materials_short_circuit_total",
    "Listings answered empty without running the page query",
    ["reason"],
)
RATE_LIMITED_TOTAL = Counter(
    "rate_limited_total",
    "Requests rejected by the rate limiter",
    ["route"],
)

# Everything else collapses into one label to keep cardinality bounded
KNOWN_PATHS = frozenset({
    "/api/materials",
    "/api/materials/autocomplete",
})


def _status_class(status: int) -> str:
    if status < 200:
        return "1xx"
    if status < 300:
        return "2xx"
    if status < 400:
        return "3xx"
    if status < 500:
        return "4xx"
    return "5xx"


def normalize_path(path: str) -> str:
    path = (path or "/").rstrip("/") or "/"
    return path if path in KNOWN_PATHS else "other"


def record_request(method: str, path: str, status_code: int, latency_seconds: float) -> None:
    path = normalize_path(path)
    sc = _status_class(status_code)
    REQUEST_COUNT.labels(method=method, path=path, status_class=sc).inc()
    REQUEST_LATENCY.labels(method=method, path=path).observe(latency_seconds)


def record_search_tier(tier: str) -> None:
    SEARCH_TIER_TOTAL.labels(tier=tier).inc()


def record_short_circuit(reason: str) -> None:
    SHORT_CIRCUIT_TOTAL.labels(reason=reason).inc()


def record_rate_limited(route: str) -> None:
    RATE_LIMITED_TOTAL.labels(route=route).inc()


def get_metrics() -> tuple[bytes, str]:
    return generate_latest(), CONTENT_TYPE_LATEST
