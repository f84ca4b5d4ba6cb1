from __future__ import annotations

import datetime
import re
from decimal import Decimal
from typing import Any
from urllib.parse import quote

import structlog

from quote_engine.config.settings import settings
from quote_engine.providers.common import (
    NOT_FOUND_MESSAGE,
    PARSE_FAILURE_MESSAGE,
    day_start_ms,
    default_asset_name,
    first_price,
    iter_key,
    to_decimal,
    transport_failure,
)
from quote_engine.providers.http import HttpFetcher, build_url
from quote_engine.schemas.quote import AssetCategory, QuoteMode, QuoteRequest, QuoteResult

logger = structlog.get_logger(__name__)

_PRICE_FIELDS = ("regularMarketPrice", "previousClose", "close", "price")
_NAME_FIELDS = ("longName", "shortName", "symbol", "exchangeName")
_B3_TICKER_RE = re.compile(r"^[A-Z]{4}\d{1,2}$")
_LOOKBACK_DAYS = 7

UNSUPPORTED_SYMBOL_MESSAGE = (
    "Symbol is not a valid B3 ticker. Please enter the price manually."
)


def _currency(category: AssetCategory) -> str:
    return "USD" if category is AssetCategory.EQUITY_US else "BRL"


def provider_symbol(symbol: str, category: AssetCategory) -> str:
    symbol = symbol.strip().upper()
    if category in (AssetCategory.EQUITY_BR, AssetCategory.REIT_BR):
        return f"{symbol}{settings.providers.b3_suffix}"
    return symbol


def build_chart_url(symbol: str, date: datetime.date | None, historical: bool) -> str:
    if historical and date is not None:
        # Widen the window so weekends and holidays still return candles.
        start = day_start_ms(date) // 1000
        params = {
            "interval": "1d",
            "period1": str(start - _LOOKBACK_DAYS * 86400),
            "period2": str(start + 86400),
        }
    else:
        params = {"interval": "1d", "range": "1d"}
    return build_url(settings.providers.yahoo_base_url, quote(symbol, safe=""), params)


def close_series(payload: Any) -> list[Decimal]:
    try:
        closes = payload["chart"]["result"][0]["indicators"]["quote"][0]["close"]
    except (KeyError, IndexError, TypeError):
        return []
    if not isinstance(closes, list):
        return []
    prices: list[Decimal] = []
    for value in closes:
        price = to_decimal(value)
        if price is not None:
            prices.append(price)
    return prices


def parse_price(payload: Any, historical: bool) -> Decimal | None:
    if historical:
        # Snapshot fields hold today's price, never valid for a past date.
        closes = close_series(payload)
        return closes[0] if closes else None

    price = first_price(payload, _PRICE_FIELDS)
    if price is not None:
        return price
    closes = close_series(payload)
    return closes[-1] if closes else None


def parse_asset_name(payload: Any, symbol: str) -> str:
    for field in _NAME_FIELDS:
        for value in iter_key(payload, field):
            if isinstance(value, str) and value and value != symbol and len(value) > 2:
                return value
    return default_asset_name(symbol)


def has_not_found_marker(payload: Any) -> bool:
    if not isinstance(payload, dict):
        return False
    chart = payload.get("chart")
    error = chart.get("error") if isinstance(chart, dict) else payload.get("error")
    if isinstance(chart, dict) and chart.get("result") is None and error:
        return True
    if isinstance(error, dict):
        if error.get("code") == "Not Found":
            return True
        description = error.get("description")
        if isinstance(description, str) and description.startswith("No data found"):
            return True
    return False


def fetch_quote(fetcher: HttpFetcher, request: QuoteRequest, mode: QuoteMode) -> QuoteResult:
    currency = _currency(request.category)
    symbol = request.symbol.strip().upper()
    if request.category is AssetCategory.EQUITY_BR and not _B3_TICKER_RE.match(symbol):
        return QuoteResult.failure(UNSUPPORTED_SYMBOL_MESSAGE, currency)

    historical = mode is QuoteMode.HISTORICAL
    url = build_chart_url(provider_symbol(symbol, request.category), request.date, historical)
    result = fetcher.get_json(url)
    if not result.has_body:
        if result.status == "http_error":
            return QuoteResult.failure(NOT_FOUND_MESSAGE, currency)
        return transport_failure(result, currency)

    payload = result.payload
    price = parse_price(payload, historical) if result.ok else None
    if price is not None:
        return QuoteResult(
            success=True,
            message="Quote retrieved successfully",
            price=price,
            currency=currency,
            asset_name=parse_asset_name(payload, request.symbol),
        )

    if has_not_found_marker(payload):
        logger.info("quote_not_found", provider="yahoo", symbol=symbol)
        return QuoteResult.failure(NOT_FOUND_MESSAGE, currency)

    logger.warning(
        "quote_parse_failed",
        provider="yahoo",
        symbol=symbol,
        historical=historical,
        preview=str(payload)[:500],
    )
    return QuoteResult.failure(PARSE_FAILURE_MESSAGE, currency)
