from __future__ import annotations

import datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Iterable, Iterator

from quote_engine.config.settings import settings
from quote_engine.providers.http import FetchResult
from quote_engine.schemas.quote import Candle, QuoteResult

NOT_FOUND_MESSAGE = "Investment not found in market data. Please enter the price manually."
PARSE_FAILURE_MESSAGE = "Could not obtain the investment quote. Please enter the price manually."

_TRANSPORT_MESSAGES = {
    "blocked": "Market data provider {domain} is temporarily unavailable. Please enter the price manually.",
    "rate_limited": "Market data provider {domain} is limiting requests. Please enter the price manually.",
    "ssl_error": "Secure connection to {domain} failed. Please enter the price manually.",
    "error": "Could not reach {domain}. Please enter the price manually.",
}


def normalize_symbol(symbol: str) -> str:
    return " ".join(symbol.split()).upper()


def default_asset_name(symbol: str) -> str:
    return settings.symbols.asset_names.get(symbol.strip().upper(), symbol)


def to_decimal(value: Any) -> Decimal | None:
    """Parse a positive price from a JSON scalar; anything else is None."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        value = repr(value) if isinstance(value, float) else str(value)
    if not isinstance(value, str) or not value.strip():
        return None
    try:
        price = Decimal(value.strip())
    except InvalidOperation:
        return None
    if not price.is_finite() or price <= 0:
        return None
    return price


def iter_key(payload: Any, key: str) -> Iterator[Any]:
    """Yield every value stored under ``key``, in document order."""
    if isinstance(payload, dict):
        for name, value in payload.items():
            if name == key:
                yield value
            yield from iter_key(value, key)
    elif isinstance(payload, list):
        for item in payload:
            yield from iter_key(item, key)


def first_price(payload: Any, fields: Iterable[str]) -> Decimal | None:
    for field in fields:
        for value in iter_key(payload, field):
            price = to_decimal(value)
            if price is not None:
                return price
    return None


def to_utc_ms(moment: datetime.datetime) -> int:
    # Local wall-clock times are read as UTC, matching the providers' day buckets.
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=datetime.UTC)
    return int(moment.timestamp() * 1000)


def day_start_ms(day: datetime.date) -> int:
    return to_utc_ms(datetime.datetime.combine(day, datetime.time.min))


def from_utc_ms(timestamp_ms: int) -> datetime.datetime:
    return datetime.datetime.fromtimestamp(timestamp_ms / 1000, tz=datetime.UTC)


def nearest_candle(candles: Iterable[Candle], target: datetime.datetime) -> Candle | None:
    target_ms = to_utc_ms(target)
    closest: Candle | None = None
    min_diff: int | None = None
    for candle in candles:
        diff = abs(to_utc_ms(candle.timestamp) - target_ms)
        if diff == 0:
            return candle
        if min_diff is None or diff < min_diff:
            min_diff = diff
            closest = candle
    return closest


def transport_failure(result: FetchResult, currency: str) -> QuoteResult:
    template = _TRANSPORT_MESSAGES.get(result.status)
    if template is None:
        return QuoteResult.failure(PARSE_FAILURE_MESSAGE, currency)
    return QuoteResult.failure(template.format(domain=result.domain), currency)
