"""
FastAPI application entry point.

Sets up middleware, error handling, health checks and routers.
"""
from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from routers import client_program, coach_pickup
from core.config import settings
from core.database import check_db_connection
from core.logging import setup_logging
from core.security_headers import SecurityHeadersMiddleware
import logging
import time

APP_VERSION = "1.0.0"

# Setup logging first
setup_logging()
logger = logging.getLogger(__name__)


def _filter_sensitive_data(event):
    """Filter sensitive data before sending to Sentry."""
    if "request" in event and "headers" in event["request"]:
        headers = event["request"]["headers"]
        if isinstance(headers, dict):
            headers.pop("authorization", None)
            headers.pop("Authorization", None)
            headers.pop("cookie", None)
    return event


# Initialize Sentry for error tracking (production)
if settings.SENTRY_DSN:
    import sentry_sdk
    from sentry_sdk.integrations.fastapi import FastApiIntegration
    from sentry_sdk.integrations.sqlalchemy import SqlalchemyIntegration

    sentry_sdk.init(
        dsn=settings.SENTRY_DSN,
        environment=settings.ENVIRONMENT,
        traces_sample_rate=settings.SENTRY_TRACES_SAMPLE_RATE,
        profiles_sample_rate=settings.SENTRY_PROFILES_SAMPLE_RATE,
        integrations=[
            FastApiIntegration(transaction_style="endpoint"),
            SqlalchemyIntegration(),
        ],
        # Don't send PII
        send_default_pii=False,
        before_send=lambda event, hint: _filter_sensitive_data(event),
    )
    logger.info(f"Sentry initialized for environment: {settings.ENVIRONMENT}")


app = FastAPI(
    title="CoachFlow API",
    description="Coach/client program delivery: assignments, pickup mode and program progression",
    version=APP_VERSION,
    docs_url="/docs" if (settings.DEBUG or settings.EXPOSE_API_DOCS) else None,
    redoc_url="/redoc" if (settings.DEBUG or settings.EXPOSE_API_DOCS) else None,
)


# CORS middleware
# Production: set CORS_ORIGINS env var (comma-separated)
# Development: DEBUG=True allows all origins
if settings.DEBUG:
    allowed_origins = ["*"]
elif settings.CORS_ORIGINS:
    allowed_origins = [origin.strip() for origin in settings.CORS_ORIGINS.split(",")]
else:
    allowed_origins = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ]
app.add_middleware(
    CORSMiddleware,
    allow_origins=allowed_origins,
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_middleware(SecurityHeadersMiddleware)


# Request logging middleware
@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Log all requests with timing information."""
    start_time = time.time()

    try:
        response = await call_next(request)
    except Exception as e:
        logger.error(
            f"Request failed: {request.method} {request.url.path}",
            exc_info=True,
            extra={
                "extra_fields": {
                    "method": request.method,
                    "path": request.url.path,
                    "error": str(e),
                }
            }
        )
        raise

    process_time = time.time() - start_time
    logger.info(
        f"Response: {request.method} {request.url.path} - {response.status_code}",
        extra={
            "extra_fields": {
                "method": request.method,
                "path": request.url.path,
                "status_code": response.status_code,
                "process_time_ms": round(process_time * 1000, 2),
                "client_ip": request.client.host if request.client else None,
            }
        }
    )
    response.headers["X-Process-Time"] = str(process_time)
    return response


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Global exception handler for unhandled errors."""
    logger.error(
        f"Unhandled exception: {exc}",
        exc_info=True,
        extra={
            "extra_fields": {
                "method": request.method,
                "path": request.url.path,
            }
        }
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Internal server error"},
    )


@app.get("/health")
def health():
    """
    Simple health check for load balancers and uptime monitors.

    Returns:
        - 200: Database reachable
        - 503: Database unavailable
    """
    if not check_db_connection():
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={
                "status": "unhealthy",
                "database": "unavailable",
            }
        )

    return {
        "status": "healthy",
        "timestamp": time.time(),
    }


@app.get("/health/detailed")
def health_detailed():
    """
    Detailed health check for monitoring dashboards.

    Not for load balancers (always returns 200). Redis being down only
    degrades rate limiting, so it never makes the service unhealthy.
    """
    from core.cache import get_redis_client

    checks = {
        "database": {"status": "unknown", "latency_ms": None},
        "redis": {"status": "unknown", "latency_ms": None},
    }

    start = time.time()
    db_healthy = check_db_connection()
    checks["database"]["status"] = "healthy" if db_healthy else "unhealthy"
    checks["database"]["latency_ms"] = round((time.time() - start) * 1000, 2)

    start = time.time()
    try:
        redis = get_redis_client()
        if redis:
            redis.ping()
            checks["redis"]["status"] = "healthy"
        else:
            checks["redis"]["status"] = "unavailable"
    except Exception as e:
        checks["redis"]["status"] = "error"
        checks["redis"]["error"] = str(e)
    checks["redis"]["latency_ms"] = round((time.time() - start) * 1000, 2)

    if not db_healthy:
        overall = "unhealthy"
    elif checks["redis"]["status"] == "healthy":
        overall = "healthy"
    else:
        overall = "degraded"

    return {
        "status": overall,
        "version": APP_VERSION,
        "environment": settings.ENVIRONMENT,
        "timestamp": time.time(),
        "checks": checks,
    }


@app.get("/ping")
async def ping():
    """
    Minimal ping endpoint for uptime monitors.
    No dependencies checked - just confirms the API is responding.
    """
    return {"pong": True}


app.include_router(coach_pickup.router)
app.include_router(client_program.router)
