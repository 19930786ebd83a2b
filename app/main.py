"""
Live Items - Main FastAPI Application
Serves the cached live items snapshot; all scraping happens in background jobs.
"""
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.runtime import LiveItemsRuntime, get_runtime
from app.schemas import HealthStatus, LiveItemsResponse, VersionInfo
from app.utils.rate_limiter import RateLimiter
from app.view_models import LiveItemsPayload
from config.settings import settings

# Version tracking
APP_VERSION = "v0.3.0"
APP_NAME = "Live Items"
APP_STAGE = "Beta"

logger = logging.getLogger("main")


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=level.upper(),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


def create_app(runtime: Optional[LiveItemsRuntime] = None) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        runtime: Component wiring; the process-wide runtime if omitted
    """
    runtime = runtime or get_runtime()
    limiter = RateLimiter(max_requests=runtime.settings.requests_per_minute)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        runtime.start()
        yield
        runtime.stop()

    app = FastAPI(
        title=f"{APP_NAME} ({APP_STAGE})",
        description="Cached live stream listing with background enrichment",
        version=APP_VERSION,
        lifespan=lifespan,
    )
    app.state.runtime = runtime
    app.state.rate_limiter = limiter

    @app.middleware("http")
    async def rate_limit_api(request: Request, call_next):
        if request.url.path.startswith("/api"):
            client_ip = request.client.host if request.client else "unknown"
            decision = limiter.hit(client_ip)
            if not decision.allowed:
                return JSONResponse(
                    status_code=429,
                    content={
                        "success": False,
                        "message": "Too many requests, please try again later.",
                    },
                    headers={"Retry-After": str(decision.retry_after)},
                )
        return await call_next(request)

    # Outermost, so 429 responses carry CORS headers too
    app.add_middleware(
        CORSMiddleware,
        allow_origins=runtime.settings.allowed_origins,
        allow_methods=["GET"],
        allow_headers=["*"],
    )

    @app.get("/health", response_model=HealthStatus)
    def health_check():
        """Health check endpoint."""
        return {
            "status": "ok",
            "jobs_running": runtime.jobs.is_running,
            "has_snapshot": runtime.scheduler.has_completed,
        }

    @app.get("/version", response_model=VersionInfo)
    def version_info():
        """Version information endpoint."""
        return {
            "name": APP_NAME,
            "version": APP_VERSION,
            "stage": APP_STAGE,
            "full": f"{APP_NAME} {APP_VERSION} ({APP_STAGE})"
        }

    @app.get("/cache/stats")
    def cache_stats():
        """Get cache, queue, guard and refresh statistics."""
        return runtime.get_stats()

    @app.get("/api/live-items", response_model=LiveItemsResponse, response_model_exclude_none=True)
    @app.get(
        "/api/live-videos",
        response_model=LiveItemsResponse,
        response_model_exclude_none=True,
        include_in_schema=False,
    )
    def live_items():
        """
        Get the current live items with channel avatar and subscriber count.

        Always served from cache. Missing channel data comes back as an
        empty avatar URL and zero subscribers.
        """
        try:
            views = runtime.view.get_view()
        except Exception as e:
            logger.error(f"Error composing live items: {e}", exc_info=True)
            return JSONResponse(status_code=500, content=LiveItemsPayload.failure().to_dict())
        return LiveItemsPayload(success=True, items=views).to_dict()

    return app


configure_logging(settings.log_level)
app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("app.main:app", host="0.0.0.0", port=5000, log_level=settings.log_level.lower())
