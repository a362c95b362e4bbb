# Load environment variables FIRST before any other imports
from dotenv import load_dotenv
load_dotenv()

import os
import logging
import sentry_sdk
from contextlib import asynccontextmanager
from datetime import datetime
from fastapi import FastAPI, Depends
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from app.database import engine, Base
from app.dependencies.storage import get_analytics_store
from app.errors import (
    AnalyticsError,
    analytics_error_handler,
    request_validation_error_handler,
    unhandled_error_handler,
)
from app.middleware.performance_monitor import PerformanceMonitorMiddleware, get_performance_stats
from app.routers import analytics
from app.services.analytics_store import AnalyticsStore

SERVICE_NAME = "analytics"
SERVICE_VERSION = "1.0.0"

# Configure logging
logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

# Initialize Sentry for error monitoring
sentry_dsn = os.getenv("SENTRY_DSN")
if sentry_dsn:
    sentry_sdk.init(
        dsn=sentry_dsn,
        traces_sample_rate=0.1,  # 10% of transactions for performance monitoring
        environment=os.getenv("ENVIRONMENT", "development"),
    )

# Create database tables
Base.metadata.create_all(bind=engine)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler - runs on startup and shutdown."""
    logger.info(
        "Analytics service starting (environment=%s, calculation SLA=%sms)",
        os.getenv("ENVIRONMENT", "development"),
        os.getenv("ANALYTICS_CALCULATION_TIMEOUT", "30000"),
    )

    yield  # Application runs here

    logger.info("Shutting down...")

# OpenAPI tag metadata for organized documentation
tags_metadata = [
    {
        "name": "analytics",
        "description": "Per-session metrics, progress over time, session comparison, trends and study recommendations.",
    },
    {
        "name": "health",
        "description": "Liveness and dependency checks.",
    },
]

app = FastAPI(
    title="Mock Test Analytics API",
    description="""
## Mock Test Analytics

Performance analytics for physics, chemistry and mathematics mock tests.

### Features
- **Session Metrics** - Accuracy, topic breakdown, time management and a thinking-ability estimate per completed test
- **Progress Tracking** - Test history, per-subject trends and consistent weak areas
- **Comparison** - Side-by-side comparison of two or more tests
- **Trends** - Overall trend, next-test prediction and an estimated percentile
- **Recommendations** - Rule-based study suggestions

### Errors
Every error response has the shape
`{"error": {"code", "message", "details", "timestamp", "requestId"}}`.
    """,
    version=SERVICE_VERSION,
    lifespan=lifespan,
    openapi_tags=tags_metadata,
)

# CORS middleware
ALLOWED_ORIGINS = [
    "http://localhost:3000",
    "http://localhost:3001",
]

# Allow additional origins from environment (for preview deploys)
extra_origins = os.getenv("CORS_ALLOWED_ORIGINS", "")
if extra_origins:
    ALLOWED_ORIGINS.extend([o.strip() for o in extra_origins.split(",") if o.strip()])

app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["Authorization", "Content-Type", "X-Requested-With", "Accept", "X-Request-ID"],
)

# Request ids and response timing
app.add_middleware(PerformanceMonitorMiddleware)

# Error envelope
app.add_exception_handler(AnalyticsError, analytics_error_handler)
app.add_exception_handler(RequestValidationError, request_validation_error_handler)
app.add_exception_handler(Exception, unhandled_error_handler)

# Include routers
app.include_router(analytics.router)


@app.get("/", tags=["health"])
def root():
    return {
        "message": "Mock Test Analytics API",
        "version": SERVICE_VERSION,
        "docs": "/docs"
    }


@app.get("/health", tags=["health"])
def health_check():
    return {"status": "healthy", "service": SERVICE_NAME}


@app.get("/health/detailed", tags=["health"])
def detailed_health_check(store: AnalyticsStore = Depends(get_analytics_store)):
    """
    Health check including a database round trip.

    Returns 503 with status "degraded" when the database is unreachable.
    """
    checks = {"service": "healthy"}
    try:
        store.ping()
        checks["database"] = "healthy"
    except AnalyticsError as e:
        logger.error("Database health check failed: %s", e.details or e.message)
        checks["database"] = "unhealthy"

    healthy = all(value == "healthy" for value in checks.values())
    body = {
        "status": "healthy" if healthy else "degraded",
        "service": SERVICE_NAME,
        "timestamp": datetime.utcnow().isoformat(),
        "environment": os.getenv("ENVIRONMENT", "development"),
        "checks": checks,
        "performance": get_performance_stats(),
    }
    return JSONResponse(status_code=200 if healthy else 503, content=body)
