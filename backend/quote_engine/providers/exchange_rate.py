from __future__ import annotations

import datetime
from decimal import Decimal

import structlog

from quote_engine.cache import RateCache
from quote_engine.clock import Clock, system_clock
from quote_engine.config.settings import settings
from quote_engine.providers.common import to_decimal
from quote_engine.providers.http import HttpFetcher

logger = structlog.get_logger(__name__)

_LIVE_PAIRS = {("USD", "BRL")}


class ExchangeRateService:
    def __init__(self, fetcher: HttpFetcher, clock: Clock = system_clock) -> None:
        self._fetcher = fetcher
        self.cache = RateCache(
            datetime.timedelta(seconds=settings.cache.exchange_rate_ttl_seconds), clock
        )

    def rate(self, from_currency: str, to_currency: str) -> Decimal:
        source = from_currency.strip().upper()
        target = to_currency.strip().upper()
        if source == target:
            return Decimal("1")

        fallback = Decimal(str(settings.fallback.usd_brl))
        if (source, target) not in _LIVE_PAIRS:
            return fallback

        key = f"{source}_{target}"
        cached = self.cache.get(key)
        if cached is not None:
            return cached

        live = self._fetch(target)
        if live is not None:
            self.cache.put(key, live)
            return live

        stale = self.cache.get_stale(key)
        if stale is not None:
            return stale
        logger.info("exchange_rate_fallback", pair=key, rate=str(fallback))
        return fallback

    def _fetch(self, target: str) -> Decimal | None:
        result = self._fetcher.get_json(settings.providers.exchange_rate_url)
        if not result.ok or not isinstance(result.payload, dict):
            return None
        rates = result.payload.get("rates")
        if not isinstance(rates, dict):
            return None
        return to_decimal(rates.get(target))
