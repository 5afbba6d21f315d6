"""
Post Engagement API — entry point.

Startup sequence:
  1. Configure OTel tracing (→ Jaeger via OTLP)
  2. Initialise DB connection pool and create tables if not present
  3. Initialise MinIO client & bucket
  4. Start the sentiment analysis HTTP client
  5. Expose Prometheus /metrics endpoint
"""
import logging

from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from prometheus_client import make_asgi_app

from engagement.config import settings
from engagement.database import init_db
from engagement.exceptions import EngagementError
from engagement.telemetry import setup_tracing, instrument_app
from engagement.clients.minio_client import init_minio
from engagement.clients.sentiment_client import sentiment_client
from engagement.routers import posts

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s [%(levelname)s] %(name)s — %(message)s",
)
logger = logging.getLogger(__name__)

# Set up tracing before the app is created so all imports are instrumented
setup_tracing()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage startup and shutdown of all external connections."""
    logger.info("Starting Post Engagement API (env=%s)", settings.environment)

    await init_db()
    init_minio()                    # sync — boto3 is not async
    await sentiment_client.start()

    logger.info("All services connected. API ready.")
    yield

    logger.info("Shutting down...")
    await sentiment_client.stop()


app = FastAPI(
    title="Post Engagement API",
    description="Posts, feeds, comments and likes with notification side effects.",
    version="1.0.0",
    lifespan=lifespan,
)


# ── Error boundary ─────────────────────────────────────────────────────────
# Clients only ever see the generic message; detail stays in the server log.
@app.exception_handler(EngagementError)
async def engagement_error_handler(request: Request, exc: EngagementError):
    logger.warning(
        "%s %s → %d %s: %s",
        request.method, request.url.path, exc.status_code, type(exc).__name__, exc,
    )
    return JSONResponse(status_code=exc.status_code, content={"message": exc.message})


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error in %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"message": "Server error"})


# ── Routers ────────────────────────────────────────────────────────────────
app.include_router(posts.router, prefix="/posts", tags=["Posts"])

# ── Prometheus metrics endpoint ────────────────────────────────────────────
# Mounted at /metrics — scraped by Prometheus
metrics_app = make_asgi_app()
app.mount("/metrics", metrics_app)

# ── OTel FastAPI instrumentation ──────────────────────────────────────────
instrument_app(app)


@app.get("/health", tags=["Health"])
async def health():
    return {"status": "ok", "service": settings.service_name}
