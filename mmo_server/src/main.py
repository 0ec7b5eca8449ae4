"""
Main server entrypoint.
Initializes the FastAPI application that hosts the character persistence subsystem.
"""

from contextlib import asynccontextmanager
from fastapi import FastAPI, Response
from mmo_server.src.api import characters
from mmo_server.src.core.config import settings
from mmo_server.src.core.logging_config import setup_logging, get_logger
from mmo_server.src.core.metrics import init_metrics, get_metrics, get_metrics_content_type
from mmo_server.src.services.character_subsystem import (
    init_character_subsystem,
    reset_character_subsystem,
)

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    # Startup
    setup_logging()
    init_metrics(settings.ENVIRONMENT)
    logger.info("MMO character server starting up", extra={"version": "0.1.0"})

    subsystem = init_character_subsystem(settings)
    if not await subsystem.start():
        logger.error("Character persistence unavailable; players will not be saved")

    yield
    # Shutdown
    logger.info("MMO character server shutting down")
    await subsystem.shutdown()
    reset_character_subsystem()


app_description = """
Host process for the character session cache.

## Features
- **Session cache**: one resident character per connected player, loaded on join.
- **Persistence**: characters are saved on death, disconnect, on a timer, and at shutdown.
- **Admin**: manual save-all, stored character deletion, and migration rollback.
"""

app = FastAPI(
    title="MMO Character Server", description=app_description, version="0.1.0", lifespan=lifespan
)


@app.get("/metrics", summary="Prometheus metrics endpoint", tags=["Monitoring"])
def get_metrics_endpoint():
    """
    Prometheus metrics endpoint.
    """
    logger.debug("Metrics endpoint accessed")
    return Response(content=get_metrics(), media_type=get_metrics_content_type())


@app.get("/", summary="Health check endpoint", tags=["Status"])
def read_root():
    """Root endpoint for health checks."""
    logger.debug("Health check endpoint accessed")
    return {"status": "ok"}


@app.get("/version", summary="Get server version", tags=["Status"])
def read_version():
    """Returns the current version of the server application."""
    return {"version": "0.1.0"}


# Include API routers
app.include_router(characters.router, tags=["Characters"])
