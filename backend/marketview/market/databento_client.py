"""Databento API client for real market data."""

from __future__ import annotations

import asyncio
import logging
from datetime import date, datetime, timezone
from typing import Any

from .errors import (
    NotConfiguredError,
    ServiceError,
    UpstreamApiError,
    UpstreamConnectionError,
)
from .interface import LiveStream, MarketDataService, parse_rfc3339
from .models import (
    ConnectedMessage,
    ErrorMessage,
    HistoricalRequest,
    HistoricalResponse,
    LiveMessage,
    OhlcvMessage,
    OhlcvRecord,
    Schema,
    TradeMessage,
    TradeRecord,
)

logger = logging.getLogger(__name__)

DEFAULT_DATASET = "GLBX.MDP3"  # CME Globex


def placeholder_symbol(instrument_id: int) -> str:
    """Label used when an instrument id has no known symbol."""
    return f"ID:{instrument_id}"


def resolve_symbol(symbology_map: dict[int, str], instrument_id: int) -> str:
    """Look up a live instrument id in the session's point-in-time symbology map."""
    return symbology_map.get(instrument_id) or placeholder_symbol(instrument_id)


class DatabentoService(MarketDataService):
    """MarketDataService backed by the Databento historical and live APIs.

    Historical queries download a DBN range via ``timeseries.get_range`` in a
    worker thread and resolve instrument ids against the response metadata.
    Live subscriptions open one gateway session per stream; the session is
    terminated when the stream is closed.

    Supported schemas: trades, ohlcv-1s, ohlcv-1m.
    """

    def __init__(self, api_key: str, dataset: str = DEFAULT_DATASET) -> None:
        if not api_key.strip():
            raise NotConfiguredError("DATABENTO_API_KEY is empty")
        self._api_key = api_key
        self._dataset = dataset
        logger.info("Databento service using dataset %s", dataset)

    @property
    def name(self) -> str:
        return "DatabentoService"

    @property
    def dataset(self) -> str:
        return self._dataset

    # --- Historical ---

    async def get_historical(self, request: HistoricalRequest) -> HistoricalResponse:
        schema = Schema.parse(request.schema)
        start_ns = parse_rfc3339(request.start_rfc3339, "start_rfc3339")
        end_ns = parse_rfc3339(request.end_rfc3339, "end_rfc3339")
        limit = max(request.limit, 0)

        logger.info(
            "Databento historical request: %s %s [%s, %s) limit=%d",
            request.symbols,
            schema,
            request.start_rfc3339,
            request.end_rfc3339,
            limit,
        )
        if start_ns >= end_ns or limit == 0 or not request.symbols:
            return HistoricalResponse(schema=schema, data=[])

        from databento import BentoError

        try:
            # The Databento client is synchronous, keep it off the event loop
            data = await asyncio.to_thread(
                self._fetch_range, request, schema, start_ns, end_ns, limit
            )
        except (BentoError, OSError, ValueError) as e:
            error = translate_error(e, "historical request failed")
            logger.error("Databento %s", error)
            raise error from e

        logger.info("Fetched %d %s records from Databento", len(data), schema)
        return HistoricalResponse(schema=schema, data=data)

    def _fetch_range(
        self,
        request: HistoricalRequest,
        schema: Schema,
        start_ns: int,
        end_ns: int,
        limit: int,
    ) -> list:
        """Download and decode one range. Runs in a thread."""
        store = self._get_range(request, schema, start_ns, end_ns, limit)
        instrument_map = self._instrument_map(store.metadata)

        records: list = []
        for record in store:
            symbol = instrument_map.resolve(
                record.instrument_id, _trading_date(record.ts_event)
            ) or placeholder_symbol(record.instrument_id)
            if schema.is_ohlcv:
                records.append(bar_from_record(record, symbol))
            else:
                records.append(trade_from_record(record, symbol))
            if len(records) >= limit:
                break
        return records

    def _get_range(
        self,
        request: HistoricalRequest,
        schema: Schema,
        start_ns: int,
        end_ns: int,
        limit: int,
    ) -> Any:
        import databento as db

        client = db.Historical(key=self._api_key)
        return client.timeseries.get_range(
            dataset=self._dataset,
            symbols=list(request.symbols),
            schema=schema.value,
            stype_in=request.stype_in,
            start=start_ns,
            end=end_ns,
            limit=limit,
        )

    @staticmethod
    def _instrument_map(metadata: Any) -> Any:
        from databento.common.symbology import InstrumentMap

        instrument_map = InstrumentMap()
        instrument_map.insert_metadata(metadata)
        return instrument_map

    # --- Live ---

    async def subscribe_live(
        self,
        symbols: list[str],
        schema: str,
        stype_in: str = "parent",
    ) -> LiveStream:
        parsed = Schema.parse(schema)
        logger.info("Databento live subscription: %s (%s, stype_in=%s)", symbols, parsed, stype_in)
        return self._live_stream(list(symbols), schema, parsed, stype_in)

    async def _live_stream(
        self,
        symbols: list[str],
        raw_schema: str,
        schema: Schema,
        stype_in: str,
    ) -> LiveStream:
        yield ConnectedMessage(symbols=list(symbols), schema=raw_schema)

        from databento import BentoError

        client = None
        try:
            try:
                client = self._create_live_client()
                await asyncio.to_thread(
                    client.subscribe,
                    dataset=self._dataset,
                    schema=schema.value,
                    symbols=list(symbols),
                    stype_in=stype_in,
                )
                await asyncio.to_thread(client.start)
            except (BentoError, OSError, ValueError) as e:
                error = translate_error(e, "failed to start live session")
                logger.error("Databento %s", error)
                yield ErrorMessage(str(error))
                return

            try:
                # The client updates symbology_map from each mapping record before yielding it
                async for record in client:
                    message = self._to_live_message(record, client.symbology_map)
                    if message is not None:
                        yield message
            except (BentoError, OSError, ValueError) as e:
                error = translate_error(e, "live stream error")
                logger.error("Databento %s", error)
                yield ErrorMessage(str(error))
                return

            logger.info("Databento live stream ended for %s", symbols)
        finally:
            if client is not None:
                self._terminate(client)

    def _create_live_client(self) -> Any:
        import databento as db

        return db.Live(key=self._api_key)

    @staticmethod
    def _terminate(client: Any) -> None:
        from databento import BentoError

        try:
            client.terminate()
        except (BentoError, ValueError) as e:
            logger.debug("Ignoring error while terminating live session: %s", e)

    @staticmethod
    def _to_live_message(record: Any, symbology_map: dict[int, str]) -> LiveMessage | None:
        """Translate one gateway record into a live message, or None to skip it."""
        import databento as db

        if isinstance(record, db.ErrorMsg):
            logger.warning("Databento gateway error: %s", record.err)
            return None
        if isinstance(record, db.OHLCVMsg):
            symbol = resolve_symbol(symbology_map, record.instrument_id)
            return OhlcvMessage(bar_from_record(record, symbol))
        if isinstance(record, db.TradeMsg):
            symbol = resolve_symbol(symbology_map, record.instrument_id)
            return TradeMessage(trade_from_record(record, symbol))
        # Symbol mappings, system heartbeats and anything else carry no market data
        return None


def trade_from_record(record: Any, symbol: str) -> TradeRecord:
    return TradeRecord(
        ts_event_unix_ns=int(record.ts_event),
        symbol=symbol,
        price_i64=int(record.price),
        size_u32=int(record.size),
    )


def bar_from_record(record: Any, symbol: str) -> OhlcvRecord:
    return OhlcvRecord(
        ts_event_unix_ns=int(record.ts_event),
        symbol=symbol,
        open_i64=int(record.open),
        high_i64=int(record.high),
        low_i64=int(record.low),
        close_i64=int(record.close),
        volume_u64=int(record.volume),
    )


def translate_error(error: Exception, context: str) -> ServiceError:
    """Map a vendor or transport exception onto the service error taxonomy."""
    if getattr(error, "http_status", None) in (401, 403):
        return NotConfiguredError(f"{context}: {error}")
    if isinstance(error, OSError):
        return UpstreamConnectionError(f"{context}: {error}")
    return UpstreamApiError(f"{context}: {error}")


def _trading_date(ts_event: int) -> date:
    return datetime.fromtimestamp(ts_event / 1e9, tz=timezone.utc).date()
