"""
Slot discovery service entrypoint with client and timer lifecycle management.
"""

import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request

from slot_discovery.config import settings
from slot_discovery.features.discovery import (
    ActivityFeedRegistry,
    CalendarSessionRegistry,
    discovery_router,
)
from slot_discovery.features.discovery.pipeline.calendar import calendar_aggregator
from slot_discovery.infrastructure.observability.logging import (
    get_logger,
    log_request,
    setup_logging,
)
from slot_discovery.middleware import RequestContextMiddleware
from slot_discovery.routes import health
from slot_discovery.services.scheduling.client import SchedulingServiceClient

# Setup logging before creating the app
setup_logging(log_level=settings.LOG_LEVEL, json_output=not settings.debug)
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create the remote client and timer registries; tear them down in reverse order."""

    logger.info(
        "Application starting",
        environment=settings.environment,
        debug=settings.debug,
        scheduling_api=settings.scheduling_api_host(),
    )

    app.state.scheduling_client = SchedulingServiceClient()
    app.state.calendar_sessions = CalendarSessionRegistry(calendar_aggregator)
    app.state.activity_feeds = ActivityFeedRegistry()

    yield

    logger.info("Application shutting down")

    shutdown_errors = []

    # Stop timers first so nothing fetches through a closed client
    try:
        await app.state.activity_feeds.stop_all()
    except Exception as e:
        logger.error("Error stopping activity feeds", error=str(e))
        shutdown_errors.append(f"Activity feeds: {e}")

    try:
        await app.state.calendar_sessions.close_all()
    except Exception as e:
        logger.error("Error closing calendar sessions", error=str(e))
        shutdown_errors.append(f"Calendar sessions: {e}")

    try:
        await app.state.scheduling_client.close()
    except Exception as e:
        logger.error("Error closing scheduling client", error=str(e))
        shutdown_errors.append(f"Scheduling client: {e}")

    if shutdown_errors:
        logger.warning("Some services had shutdown errors", errors=shutdown_errors)
    else:
        logger.info("All services closed successfully")


app = FastAPI(
    title="Slot Discovery",
    description="Recommendations, calendar grids and live activity for doctor slots",
    version="0.1.0",
    lifespan=lifespan,
)

app.include_router(health.router)
app.include_router(discovery_router)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Log HTTP requests with timing."""
    start_time = time.time()
    response = await call_next(request)
    process_time = (time.time() - start_time) * 1000

    log_request(
        method=request.method,
        path=request.url.path,
        status_code=response.status_code,
        duration_ms=round(process_time, 2),
    )
    return response


# Added last so it wraps the timing middleware and request_id is set first
app.add_middleware(RequestContextMiddleware)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8000)
