"""Application factory for the SprinklerPanel service."""

from __future__ import annotations

from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .. import __version__
from ..config import PanelSettings, get_settings
from ..gateway import ApiGateway
from ..logger import configure_logging, get_logger
from ..views import Router, ViewRegistry, default_views
from . import routes


def create_application(
    *,
    settings: Optional[PanelSettings] = None,
    gateway: Optional[ApiGateway] = None,
) -> FastAPI:
    """Create and configure the FastAPI application."""

    settings = settings or get_settings()
    configure_logging(settings)
    logger = get_logger(__name__)
    logger.info(
        "Initialising SprinklerPanel application (backend=%s host=%s port=%s)",
        settings.backend_url,
        settings.host,
        settings.port,
    )
    app = FastAPI(
        title="SprinklerPanel",
        version=__version__,
        summary="Administrative panel for a sprinkler zone controller.",
    )

    if settings.allowed_origins:
        logger.debug("Configuring CORS with allowed origins: %s", settings.allowed_origins)
        app.add_middleware(
            CORSMiddleware,
            allow_origins=settings.allowed_origins,
            allow_methods=["*"],
            allow_headers=["*"],
            allow_credentials=True,
        )

    gateway = gateway or ApiGateway(settings.backend_url, timeout=settings.request_timeout_seconds)
    registry = ViewRegistry()
    registry.extend(default_views())
    panel = Router(registry, gateway=gateway, settings=settings)
    logger.info("Registered %d views", len(registry.tags()))

    app.state.settings = settings
    app.state.gateway = gateway
    app.state.registry = registry
    app.state.panel = panel

    @app.on_event("startup")
    async def _mount_default_route() -> None:
        await panel.navigate(settings.default_route)

    @app.on_event("shutdown")
    async def _teardown() -> None:
        await panel.close()
        await gateway.aclose()

    app.include_router(routes.router)
    logger.debug("Panel routes registered")

    return app
