"""HTTP endpoints for health checks and historical queries."""

from __future__ import annotations

import logging

from fastapi import APIRouter, FastAPI, Request
from fastapi.responses import JSONResponse, PlainTextResponse

from .market.errors import ServiceError
from .market.interface import MarketDataService
from .market.models import ErrorResponse, HistoricalRequest

logger = logging.getLogger(__name__)


def create_api_router(service: MarketDataService) -> APIRouter:
    """Create the REST router bound to a market data service."""
    router = APIRouter(prefix="/api", tags=["market-data"])

    @router.get("/health", response_class=PlainTextResponse)
    async def health() -> str:
        return "ok"

    @router.post("/historical")
    async def historical(body: HistoricalRequest) -> dict:
        """Historical trades or OHLCV bars for a symbol list and time range."""
        logger.info(
            "Fetching historical data: symbols=%s schema=%s start=%s end=%s",
            body.symbols,
            body.schema,
            body.start_rfc3339,
            body.end_rfc3339,
        )
        response = await service.get_historical(body)
        return response.to_dict()

    return router


async def service_error_handler(request: Request, exc: ServiceError) -> JSONResponse:
    """Render a ServiceError as an ErrorResponse body with the mapped status."""
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc)
    else:
        logger.warning("%s %s rejected: %s", request.method, request.url.path, exc)
    body = ErrorResponse(error=str(exc), code=exc.status_code)
    return JSONResponse(status_code=exc.status_code, content=body.to_dict())


def install_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ServiceError, service_error_handler)
