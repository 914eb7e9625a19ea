"""
cmdhandler FastAPI Application.

Receives plugin requests from chat integrations and job runners and hands
them to the dispatch engine.
"""

import json
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, Response, status
from fastapi.responses import PlainTextResponse

from cmdhandler import __version__
from cmdhandler.api.routes import dispatch
from cmdhandler.audit import ExecutionLog
from cmdhandler.config import Settings, settings
from cmdhandler.dispatch import DispatchEngine, EngineConfig
from cmdhandler.exceptions import DispatchError
from cmdhandler.logging_config import setup_logging
from cmdhandler.metrics import create_counter
from cmdhandler.notifier import WebhookNotifier
from cmdhandler.startup import check_readiness, run_all_startup_checks

logger = logging.getLogger(__name__)


def build_engine(config: Settings) -> DispatchEngine:
    """Wire the dispatch engine and its collaborators from settings."""
    return DispatchEngine(
        config=EngineConfig.from_settings(config),
        execution_log=ExecutionLog(config.execution_log),
        counter=create_counter(
            config.statsd_enabled,
            config.statsd_host,
            config.statsd_port,
            config.statsd_prefix,
        ),
        notifier=WebhookNotifier(timeout=config.notify_timeout_seconds),
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan context manager for FastAPI application.

    Runs startup checks before the application starts serving requests,
    builds the dispatch engine, and drains the plugin worker pool on shutdown.
    """
    # Initialize logging first
    setup_logging(context="api")

    run_all_startup_checks()

    engine = build_engine(settings)
    app.state.engine = engine
    logger.info(
        f"✓ Dispatch engine ready (loaders: {', '.join(engine.config.registry.ids)}; "
        f"plugin root: {engine.config.plugin_root})"
    )

    yield

    logger.info("Application shutdown initiated...")
    try:
        engine.shutdown(wait=True)
        engine.close()
    except Exception as e:
        logger.error(f"Error during shutdown: {e}", exc_info=True)

    logger.info("Application shutdown complete")


app = FastAPI(
    lifespan=lifespan,
    title="cmdhandler",
    description="Runs chat and CI triggered plugins",
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc",
)


@app.exception_handler(DispatchError)
async def dispatch_error_handler(request: Request, exc: DispatchError) -> PlainTextResponse:
    """Send the caller-facing message only; details stay in the logs."""
    return PlainTextResponse(exc.public_message, status_code=exc.status_code)


@app.get("/health")
async def health(request: Request) -> dict:
    """Health check endpoint."""
    engine: DispatchEngine = request.app.state.engine
    plugin_root = engine.config.plugin_root

    return {
        "status": "healthy",
        "version": __version__,
        "loaders": engine.config.registry.ids,
        "plugin_root": str(plugin_root),
        "plugin_root_exists": plugin_root.is_dir(),
    }


@app.get("/ready")
async def ready():
    """
    Readiness probe endpoint for load balancers.

    Returns 200 OK if ready to serve requests, 503 Service Unavailable otherwise.
    """
    is_ready, details = check_readiness()

    if not is_ready:
        return Response(
            content=json.dumps(details),
            media_type="application/json",
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        )

    return details


app.include_router(dispatch.router, tags=["dispatch"])
