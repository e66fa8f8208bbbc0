"""FastAPI application for the docgate service."""

from __future__ import annotations

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from .. import __version__
from ..exceptions import DocgateError
from ..gateway import Gateway
from ..runtime.store import ConfigStore
from ..utils.config import GlobalSettings, get_settings
from ..utils.logging import setup_logger
from ..utils.signals import GracefulShutdown
from .pipeline import RequestPipelineMiddleware
from .routes import config, databases, health, metrics

logger = setup_logger(__name__, context={"component": "FastAPI"})


@asynccontextmanager
async def lifespan(app: FastAPI):  # type: ignore
    """Application lifespan context manager for startup/shutdown."""
    logger.info("docgate API starting up...")
    yield
    logger.info("docgate API shutting down...")
    await app.state.shutdown.shutdown()


async def docgate_exception_handler(request: Request, exc: DocgateError) -> JSONResponse:
    """Render docgate exceptions as ``{"error", "reason"}`` bodies."""
    if exc.status_code >= 500:
        logger.error(
            "DocgateError: %s",
            exc,
            extra={"status": "error"},
        )
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.error, "reason": str(exc)},
    )


def create_app(
    settings: GlobalSettings | None = None,
    store: ConfigStore | None = None,
) -> FastAPI:
    """
    Build the application and establish the initial live objects.

    Args:
        settings: Startup settings (defaults to the cached global settings)
        store: Configuration store (defaults to one backed by
            ``settings.config_file``)

    Raises:
        InitialRebuildError: If a binding cannot build its first object
    """
    settings = settings or get_settings()
    if store is None:
        store = ConfigStore(settings.config_file)

    gateway = Gateway(settings, store)
    gateway.start()

    shutdown = GracefulShutdown()
    shutdown.register_handler(gateway.close)

    app = FastAPI(
        title="docgate",
        description="Document database gateway with live reconfiguration",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.gateway = gateway
    app.state.shutdown = shutdown

    app.add_exception_handler(DocgateError, docgate_exception_handler)  # type: ignore[arg-type]
    app.add_middleware(RequestPipelineMiddleware, gateway=gateway)

    app.include_router(health.router, tags=["health"])
    app.include_router(metrics.router, tags=["monitoring"])
    app.include_router(config.router, prefix="/_config", tags=["config"])
    app.include_router(databases.router, tags=["databases"])
    return app
