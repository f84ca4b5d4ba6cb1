from __future__ import annotations

import datetime
from typing import Any
from urllib.parse import quote

import structlog

from quote_engine.config.settings import settings
from quote_engine.providers.common import (
    NOT_FOUND_MESSAGE,
    PARSE_FAILURE_MESSAGE,
    default_asset_name,
    first_price,
    from_utc_ms,
    nearest_candle,
    normalize_symbol,
    to_decimal,
    transport_failure,
)
from quote_engine.providers.http import HttpFetcher, build_url
from quote_engine.schemas.quote import Candle, QuoteMode, QuoteRequest, QuoteResult

logger = structlog.get_logger(__name__)

_MAX_HISTORY_DAYS = 365


def coin_id(symbol: str) -> str:
    mapped = settings.symbols.coingecko_ids.get(normalize_symbol(symbol))
    if mapped:
        return mapped
    return "-".join(symbol.split()).lower()


def build_quote_url(
    identifier: str, request: QuoteRequest, mode: QuoteMode, today: datetime.date
) -> str:
    base_url = settings.providers.coingecko_base_url
    if mode is QuoteMode.HISTORICAL and request.date is not None:
        days = (today - request.date).days
        days = min(max(days, 1), _MAX_HISTORY_DAYS)
        return build_url(
            base_url,
            f"coins/{quote(identifier, safe='')}/market_chart",
            {"vs_currency": "usd", "days": str(days)},
        )
    if mode is QuoteMode.INTRADAY:
        return build_url(
            base_url,
            f"coins/{quote(identifier, safe='')}/market_chart",
            {"vs_currency": "usd", "days": "1"},
        )
    return build_url(base_url, "simple/price", {"ids": identifier, "vs_currencies": "usd"})


def parse_price_points(payload: Any) -> list[Candle]:
    """Turn ``{"prices": [[ts_ms, price], ...]}`` into flat candles."""
    points = payload.get("prices") if isinstance(payload, dict) else None
    candles: list[Candle] = []
    if not isinstance(points, list):
        return candles
    for point in points:
        if not isinstance(point, list) or len(point) < 2:
            continue
        timestamp, raw_price = point[0], point[1]
        price = to_decimal(raw_price)
        if price is None or isinstance(timestamp, bool) or not isinstance(timestamp, (int, float)):
            continue
        candles.append(
            Candle(
                timestamp=from_utc_ms(int(timestamp)),
                open=price,
                high=price,
                low=price,
                close=price,
            )
        )
    return candles


def _is_not_found(payload: Any) -> bool:
    if isinstance(payload, dict) and "error" in payload:
        return True
    return "Not Found" in str(payload)


def fetch_quote(
    fetcher: HttpFetcher, request: QuoteRequest, mode: QuoteMode, today: datetime.date
) -> QuoteResult:
    identifier = coin_id(request.symbol)
    result = fetcher.get_json(build_quote_url(identifier, request, mode, today))
    if not result.has_body:
        if result.status in ("http_error", "invalid"):
            return QuoteResult.failure(NOT_FOUND_MESSAGE, "USD")
        return transport_failure(result, "USD")

    payload = result.payload
    if not payload or _is_not_found(payload):
        logger.info("quote_not_found", provider="coingecko", coin_id=identifier)
        return QuoteResult.failure(NOT_FOUND_MESSAGE, "USD")

    if mode is QuoteMode.HISTORICAL and request.date is not None:
        target = datetime.datetime.combine(request.date, datetime.time.min)
        candle = nearest_candle(parse_price_points(payload), target)
        price = candle.close if candle is not None else None
    elif mode is QuoteMode.INTRADAY and request.time is not None:
        candle = nearest_candle(parse_price_points(payload), request.time)
        price = candle.close if candle is not None else None
    else:
        entry = payload.get(identifier) if isinstance(payload, dict) else None
        price = first_price(entry if entry is not None else payload, ("usd",))

    if price is None or not result.ok:
        logger.info("quote_parse_failed", provider="coingecko", coin_id=identifier)
        return QuoteResult.failure(PARSE_FAILURE_MESSAGE, "USD")
    return QuoteResult(
        success=True,
        message="Quote retrieved successfully (CoinGecko)",
        price=price,
        currency="USD",
        asset_name=default_asset_name(request.symbol),
    )
