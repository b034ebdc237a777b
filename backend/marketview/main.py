"""FastAPI application entry point."""

from __future__ import annotations

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .api import create_api_router, install_error_handlers
from .config import Settings
from .market import create_market_data_service, create_stream_router
from .market.interface import MarketDataService

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(level: str = "INFO") -> None:
    """Install a single stream handler on the root logger."""
    logging.basicConfig(level=level, format=LOG_FORMAT, force=True)


def create_app(
    settings: Settings | None = None,
    service: MarketDataService | None = None,
) -> FastAPI:
    """Build the application.

    The market data service is chosen once here and shared by every route.
    Pass ``service`` to override the settings-based selection (tests).
    """
    settings = settings or Settings.from_env()
    service = service or create_market_data_service(settings)
    logger.info("Using service: %s", service.name)

    app = FastAPI(title="Market Data Viewer", version="0.1.0")
    app.state.settings = settings
    app.state.service = service

    # Local development UI runs on another origin
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )
    install_error_handlers(app)
    app.include_router(create_api_router(service))
    app.include_router(create_stream_router(service, settings.send_queue_size))
    return app


def run() -> None:
    """Console entry point: configure logging and serve with uvicorn."""
    import uvicorn

    settings = Settings.from_env()
    configure_logging(settings.log_level)
    app = create_app(settings)

    logger.info("Starting server on http://%s:%d", settings.host, settings.port)
    logger.info("Historical API: POST http://%s:%d/api/historical", settings.host, settings.port)
    logger.info("Live WebSocket: ws://%s:%d/ws/live", settings.host, settings.port)
    uvicorn.run(app, host=settings.host, port=settings.port, log_level=settings.log_level.lower())


if __name__ == "__main__":
    run()
