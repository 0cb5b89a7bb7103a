"""FastAPI app: CORS, security headers, rate-limit handler, routers."""
import logging

from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response

from marketplace.core.config import get_settings
from marketplace.core.request_logging import RequestLoggingMiddleware
from marketplace.core.deps import RateLimitExceeded, require_metrics_access
from marketplace.core.metrics import get_metrics
from marketplace.core.rate_limit import rate_limit_headers
from marketplace.api.materials import router as materials_router

settings = get_settings()
if settings.log_json:
    for h in logging.getLogger("marketplace.request").handlers[:]:
        logging.getLogger("marketplace.request").removeHandler(h)
    h = logging.StreamHandler()
    h.setFormatter(logging.Formatter("%(message)s"))
    logging.getLogger("marketplace.request").addHandler(h)
    logging.getLogger("marketplace.request").setLevel(logging.INFO)

app = FastAPI(title=settings.app_name)
app.add_middleware(RequestLoggingMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins.split(","),
    allow_credentials=False,
    allow_methods=["GET", "OPTIONS"],
    allow_headers=["Content-Type"],
    expose_headers=["X-Request-ID", "X-RateLimit-Limit", "X-RateLimit-Remaining", "Retry-After"],
)


@app.middleware("http")
async def security_headers(request, call_next):
    response = await call_next(request)
    response.headers["X-Frame-Options"] = "DENY"
    response.headers["X-Content-Type-Options"] = "nosniff"
    response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
    response.headers["Content-Security-Policy"] = "default-src 'self'; frame-ancestors 'none';"
    response.headers["Permissions-Policy"] = "accelerometer=(), camera=(), geolocation=(), microphone=(), payment=(), usb=()"
    return response


@app.exception_handler(RateLimitExceeded)
async def rate_limit_exceeded(request: Request, exc: RateLimitExceeded):
    return JSONResponse(
        status_code=429,
        content={"error": "Too many requests", "code": "RATE_LIMITED", "retryAfter": exc.result.retry_after},
        headers=rate_limit_headers(exc.result),
    )


app.include_router(materials_router, prefix="/api")


@app.get("/health")
async def health():
    return {"status": "ok"}


@app.get("/healthz")
async def healthz():
    """Liveness: no DB. Used by ALB/ECS."""
    return {"status": "ok"}


@app.get("/readyz")
async def readyz():
    """Readiness: light DB check. Used by ALB/ECS to avoid routing to unhealthy tasks."""
    from sqlalchemy import text
    from marketplace.db.session import engine
    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        return {"status": "ok"}
    except Exception:
        return JSONResponse(
            status_code=503,
            content={"status": "unavailable", "detail": "database unreachable"},
        )


@app.get("/metrics", response_class=Response)
async def metrics(_: None = Depends(require_metrics_access)):
    """Prometheus metrics. In prod set METRICS_SECRET and send it as X-Metrics-Secret."""
    body, content_type = get_metrics()
    return Response(content=body, media_type=content_type)
