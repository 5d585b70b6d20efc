"""
Ops Console - HTTP API

FastAPI application exposing the live maintenance state and the
system statistics to the dashboard front end.
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from opsconsole import __version__
from opsconsole.common.config import ConsoleSettings, get_settings
from opsconsole.common.logging_setup import get_service_logger
from opsconsole.services import ConsoleServices

from . import routes

logger = get_service_logger("api")


def create_app(
    services: ConsoleServices | None = None,
    settings: ConsoleSettings | None = None,
    poll_stats: bool = True,
) -> FastAPI:
    """
    Build the API application.

    Args:
        services: Services container; built from settings if omitted
        settings: Settings; process settings if omitted
        poll_stats: Start the stats poller with the app

    Returns:
        FastAPI application
    """
    settings = settings or (services.settings if services else get_settings())
    services = services or ConsoleServices(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """
        Startup:
        - Attach the API as a maintenance consumer (opens the subscription)
        - Start the stats poller

        Shutdown:
        - Detach, stop polling, tear the services down
        """
        logger.info(f"Starting Ops Console API v{__version__}")
        attachment = services.maintenance.attach()
        if poll_stats and settings.stats_base_url:
            await services.stats.start()
        elif poll_stats:
            logger.warning("Stats base URL not configured, stats polling disabled")

        yield

        logger.info("Shutting down API...")
        services.maintenance.detach(attachment.handle)
        await services.shutdown()

    app = FastAPI(
        title="Ops Console API",
        description="Live maintenance state and system statistics for the admin dashboard.",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.services = services

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(routes.router, prefix="/api", tags=["Console"])

    @app.get("/health")
    async def health():
        """Liveness probe."""
        channel = services.maintenance
        return {
            "status": "ok",
            "maintenance_phase": channel.phase.name.lower(),
            "maintenance_consumers": channel.consumer_count,
            "stats": services.stats.get_stats(),
        }

    return app
