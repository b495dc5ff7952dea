"""FastAPI application entry point.

This module initialises the FastAPI app, configures logging and
registers API routes.  The `uvicorn` ASGI server can point to
``duochat.main:app`` to serve the application, or run ``duochat`` from
the command line.
"""

import time
from datetime import datetime, timezone

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles
from loguru import logger

from .config.app_config import AppConfig, get_app_config
from .controllers.chat_controller import router as chat_router
from .utils.error_handler import ChatError, chat_error_handler, unhandled_exception_handler
from .utils.logger import setup_logging
from .utils.rate_limiter import EndpointLimiters
from .utils.request_pipeline import PipelineStage, advance_stage


def create_app(app_config: AppConfig | None = None) -> FastAPI:
    """Create and configure a FastAPI application.

    Each application owns its own rate limiters, so separate instances
    (for example one per test) never share request counts.
    """
    app_config = app_config or get_app_config()
    setup_logging(app_config)

    app = FastAPI(title="duochat", version="0.1.0")
    app.state.config = app_config
    app.state.limiters = EndpointLimiters.from_config(app_config)
    app.state.started_at = time.monotonic()

    app.add_middleware(
        CORSMiddleware,
        allow_origins=app_config.cors_origins_list,
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(ChatError, chat_error_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)

    @app.middleware("http")
    async def log_api_requests(request: Request, call_next):
        start = time.perf_counter()
        response = await call_next(request)
        stage = getattr(request.state, "pipeline_stage", None)
        if stage is not None and stage != PipelineStage.REJECTED:
            if response.status_code < 400:
                advance_stage(request, PipelineStage.HANDLED)
            advance_stage(request, PipelineStage.RESPONDED)
        if request.url.path.startswith("/api"):
            duration_ms = (time.perf_counter() - start) * 1000
            logger.info(
                "{} {} {} in {:.0f}ms",
                request.method,
                request.url.path,
                response.status_code,
                duration_ms,
            )
        return response

    app.include_router(chat_router)

    @app.get("/api/health", tags=["Health"])
    async def health() -> dict[str, object]:
        """Report liveness and process uptime."""
        logger.debug("Health check invoked")
        return {
            "status": "ok",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "uptime": round(time.monotonic() - app.state.started_at, 3),
        }

    # Generated images are written here by the image provider
    app.mount("/uploads", StaticFiles(directory=app_config.uploads_dir, check_dir=False), name="uploads")

    return app


def run() -> None:
    """Serve the application with uvicorn using the configured host/port."""
    import uvicorn

    app_config = get_app_config()
    uvicorn.run("duochat.main:app", host=app_config.app_host, port=app_config.app_port)


# Create an application instance for ASGI servers
app = create_app()
