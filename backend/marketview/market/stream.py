"""WebSocket endpoint relaying live market data to clients."""

from __future__ import annotations

import asyncio
import json
import logging

from fastapi import APIRouter, WebSocket, WebSocketDisconnect
from starlette.websockets import WebSocketState

from .errors import ServiceError
from .interface import LiveStream, MarketDataService
from .models import ErrorMessage, LiveMessage

logger = logging.getLogger(__name__)

DEFAULT_SEND_QUEUE_SIZE = 256

# Failures that mean the peer is gone and further writes are pointless
_SEND_ERRORS = (WebSocketDisconnect, RuntimeError, OSError)


def create_stream_router(
    service: MarketDataService,
    send_queue_size: int = DEFAULT_SEND_QUEUE_SIZE,
) -> APIRouter:
    """Create the live WebSocket router bound to a market data service.

    This factory pattern lets us inject the service without globals.
    """
    router = APIRouter(prefix="/ws", tags=["streaming"])

    @router.websocket("/live")
    async def live(
        websocket: WebSocket,
        symbols: str = "ES.FUT",
        schema: str = "trades",
        stype_in: str = "parent",
    ) -> None:
        """Live data over WebSocket, one JSON message per text frame.

        The first frame is ``{"type": "connected", ...}``, followed by
        ``trade`` / ``ohlcv`` frames and at most one terminal ``error``.
        """
        symbol_list = parse_symbols(symbols)
        await websocket.accept()
        logger.info("WebSocket connection request: %s (%s)", symbol_list, schema)

        try:
            stream = await service.subscribe_live(symbol_list, schema, stype_in=stype_in)
        except ServiceError as e:
            logger.error("Failed to subscribe: %s", e)
            await _send_and_close(websocket, ErrorMessage(str(e)))
            return

        logger.info("WebSocket connected: %s (%s) via %s", symbol_list, schema, service.name)
        await relay_live_stream(websocket, stream, send_queue_size)
        logger.info("WebSocket disconnected: %s", symbol_list)

    return router


def parse_symbols(raw: str) -> list[str]:
    """Split a comma-separated symbol list, dropping blanks."""
    return [s.strip() for s in raw.split(",") if s.strip()]


async def relay_live_stream(
    websocket: WebSocket,
    stream: LiveStream,
    send_queue_size: int = DEFAULT_SEND_QUEUE_SIZE,
) -> None:
    """Bridge a live stream to an accepted WebSocket until either side ends.

    Outbound pulls from the stream and writes frames; inbound reads frames
    until the client closes. Whichever finishes first cancels the other and
    the stream is closed, so the provider stops pulling upstream data.
    """
    outbound = asyncio.create_task(
        _outbound(websocket, stream, send_queue_size), name="live-outbound"
    )
    inbound = asyncio.create_task(_inbound(websocket), name="live-inbound")
    try:
        done, _ = await asyncio.wait({outbound, inbound}, return_when=asyncio.FIRST_COMPLETED)
        if outbound in done:
            logger.info("Live stream finished")
        else:
            logger.info("Client closed the live connection")
    finally:
        for task in (outbound, inbound):
            task.cancel()
        # wait(), unlike gather(), never re-raises a child's cancellation here
        await asyncio.wait({outbound, inbound})
        await stream.aclose()

    await _close(websocket)


async def _outbound(websocket: WebSocket, stream: LiveStream, send_queue_size: int) -> None:
    """Forward stream messages in order through a bounded queue."""
    queue: asyncio.Queue[LiveMessage | None] = asyncio.Queue(maxsize=send_queue_size)
    pump = asyncio.create_task(_pump(stream, queue), name="live-pump")
    try:
        while (message := await queue.get()) is not None:
            try:
                await websocket.send_text(json.dumps(message.to_dict()))
            except _SEND_ERRORS as e:
                logger.info("Live send failed, stopping: %s", e)
                return
    finally:
        pump.cancel()
        await asyncio.wait({pump})


async def _pump(stream: LiveStream, queue: asyncio.Queue[LiveMessage | None]) -> None:
    """Pull from the stream into the queue; ``None`` marks the end."""
    try:
        async for message in stream:
            await queue.put(message)
    except ServiceError as e:
        logger.error("Live stream failed: %s", e)
        await queue.put(ErrorMessage(str(e)))
    except Exception as e:
        logger.exception("Live stream crashed")
        await queue.put(ErrorMessage(f"Internal error: {e}"))
    await queue.put(None)


async def _inbound(websocket: WebSocket) -> None:
    """Read client frames until a close arrives."""
    while True:
        try:
            message = await websocket.receive()
        except (WebSocketDisconnect, RuntimeError):
            return
        if message["type"] == "websocket.disconnect":
            return
        text = message.get("text")
        if text is not None:
            handle_control_message(text)


def handle_control_message(text: str) -> dict | None:
    """Parse a client control frame.

    Control frames are informational for now: they are parsed and logged,
    never treated as errors. Returns the decoded object, or None when the
    frame is not a JSON object.
    """
    try:
        payload = json.loads(text)
    except json.JSONDecodeError:
        logger.debug("Ignoring non-JSON client frame: %.100s", text)
        return None
    if not isinstance(payload, dict):
        logger.debug("Ignoring non-object client frame: %.100s", text)
        return None
    logger.debug("Client control message ignored: %s", payload.get("type", "<untyped>"))
    return payload


async def _send_and_close(websocket: WebSocket, message: LiveMessage) -> None:
    try:
        await websocket.send_text(json.dumps(message.to_dict()))
    except _SEND_ERRORS as e:
        logger.info("Could not deliver error to client: %s", e)
    await _close(websocket)


async def _close(websocket: WebSocket) -> None:
    if websocket.application_state != WebSocketState.CONNECTED:
        return
    if websocket.client_state == WebSocketState.DISCONNECTED:
        return
    try:
        await websocket.close()
    except _SEND_ERRORS as e:
        logger.debug("WebSocket already closed: %s", e)
