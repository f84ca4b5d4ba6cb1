from __future__ import annotations

import datetime
from typing import Any

import structlog

from quote_engine.config.settings import settings
from quote_engine.providers.common import (
    PARSE_FAILURE_MESSAGE,
    day_start_ms,
    default_asset_name,
    from_utc_ms,
    nearest_candle,
    normalize_symbol,
    to_decimal,
    to_utc_ms,
    transport_failure,
)
from quote_engine.providers.http import HttpFetcher, build_url
from quote_engine.schemas.quote import Candle, QuoteMode, QuoteRequest, QuoteResult

logger = structlog.get_logger(__name__)

_DAY_MS = 24 * 60 * 60 * 1000


def trading_pair(symbol: str) -> str:
    normalized = normalize_symbol(symbol)
    return settings.symbols.binance_pairs.get(normalized, f"{normalized}USDT")


def build_quote_url(
    pair: str, request: QuoteRequest, mode: QuoteMode, now: datetime.datetime
) -> str:
    base_url = settings.providers.binance_base_url
    if request.time is not None:
        start = day_start_ms(request.time.date())
        end = start + _DAY_MS - 1
        if mode is QuoteMode.INTRADAY:
            end = min(end, to_utc_ms(now))
        params = {"symbol": pair, "interval": "1h", "startTime": str(start), "endTime": str(end), "limit": "24"}
        return build_url(base_url, "klines", params)
    if mode is QuoteMode.HISTORICAL and request.date is not None:
        start = day_start_ms(request.date)
        params = {"symbol": pair, "interval": "1d", "startTime": str(start), "endTime": str(start + _DAY_MS - 1), "limit": "1"}
        return build_url(base_url, "klines", params)
    if mode is QuoteMode.TODAY:
        end = to_utc_ms(now)
        params = {"symbol": pair, "interval": "1h", "startTime": str(end - _DAY_MS), "endTime": str(end), "limit": "24"}
        return build_url(base_url, "klines", params)
    return build_url(base_url, "ticker/price", {"symbol": pair})


def parse_klines(payload: Any) -> list[Candle]:
    """Read ``[openTime, open, high, low, close, volume, ...]`` rows."""
    candles: list[Candle] = []
    if not isinstance(payload, list):
        return candles
    for row in payload:
        if not isinstance(row, list) or len(row) < 5:
            continue
        close = to_decimal(row[4])
        if close is None or isinstance(row[0], bool) or not isinstance(row[0], int):
            continue
        candles.append(
            Candle(
                timestamp=from_utc_ms(row[0]),
                open=to_decimal(row[1]) or close,
                high=to_decimal(row[2]) or close,
                low=to_decimal(row[3]) or close,
                close=close,
            )
        )
    return candles


def _is_error_body(payload: Any) -> bool:
    return isinstance(payload, dict) and ("code" in payload or "msg" in payload)


def fetch_quote(
    fetcher: HttpFetcher, request: QuoteRequest, mode: QuoteMode, now: datetime.datetime
) -> QuoteResult:
    pair = trading_pair(request.symbol)
    result = fetcher.get_json(build_quote_url(pair, request, mode, now))
    if not result.ok:
        if result.status in ("http_error", "invalid"):
            return QuoteResult.failure(PARSE_FAILURE_MESSAGE, "USD")
        return transport_failure(result, "USD")

    payload = result.payload
    if not payload or _is_error_body(payload):
        logger.info("crypto_provider_rejected", provider="binance", pair=pair)
        return QuoteResult.failure(PARSE_FAILURE_MESSAGE, "USD")

    price = None
    if isinstance(payload, dict):
        price = to_decimal(payload.get("price"))
    else:
        candles = parse_klines(payload)
        if request.time is not None:
            hour = request.time.replace(minute=0, second=0, microsecond=0)
            candle = nearest_candle(candles, hour)
        elif mode is QuoteMode.HISTORICAL:
            candle = candles[0] if candles else None
        else:
            candle = candles[-1] if candles else None
        price = candle.close if candle is not None else None

    if price is None:
        logger.info("quote_parse_failed", provider="binance", pair=pair)
        return QuoteResult.failure(PARSE_FAILURE_MESSAGE, "USD")
    return QuoteResult(
        success=True,
        message="Quote retrieved successfully (Binance)",
        price=price,
        currency="USD",
        asset_name=default_asset_name(request.symbol),
    )
