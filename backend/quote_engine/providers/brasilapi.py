"""Brazilian reference rates (SELIC, CDI, IPCA) from BrasilAPI.

CDI is never fetched: it is derived from SELIC minus a fixed spread. Every
lookup degrades to a configured constant when the provider cannot answer.
"""
from __future__ import annotations

import datetime
from decimal import Decimal
from typing import Any

import structlog

from quote_engine.cache import RateCache
from quote_engine.clock import Clock, system_clock
from quote_engine.config.settings import settings
from quote_engine.providers.http import HttpFetcher, build_url
from quote_engine.schemas.fixed_income import RateIndex

logger = structlog.get_logger(__name__)

_SELIC_PATH = "taxas/v1/selic"
_IPCA_PATH = "ibge/inflacao/v1/ipca"


def _number(value: Any) -> Decimal | None:
    if value is None or isinstance(value, bool) or not isinstance(value, (int, float, str)):
        return None
    try:
        number = Decimal(str(value).strip())
    except ArithmeticError:
        return None
    return number if number.is_finite() else None


def parse_selic(payload: Any) -> Decimal | None:
    if isinstance(payload, list):
        payload = payload[-1] if payload else None
    if not isinstance(payload, dict):
        return None
    return _number(payload.get("valor"))


def parse_ipca(payload: Any) -> Decimal | None:
    """Latest 12-month accumulated figure of the IPCA series."""
    entries = payload if isinstance(payload, list) else [payload]
    for entry in reversed(entries):
        if isinstance(entry, dict):
            value = _number(entry.get("acumulado12Meses"))
            if value is not None:
                return value
    return None


class IndexRateService:
    def __init__(self, fetcher: HttpFetcher, clock: Clock = system_clock) -> None:
        self._fetcher = fetcher
        self.cache = RateCache(
            datetime.timedelta(seconds=settings.cache.index_rate_ttl_seconds), clock
        )

    def annual_rate(self, index: RateIndex) -> Decimal:
        if index is RateIndex.SELIC:
            return self.selic()
        if index is RateIndex.CDI:
            return self.selic() - Decimal(str(settings.fallback.cdi_spread))
        if index is RateIndex.IPCA:
            return self.ipca()
        return Decimal("0")

    def selic(self) -> Decimal:
        return self._lookup(
            RateIndex.SELIC, _SELIC_PATH, parse_selic, Decimal(str(settings.fallback.selic))
        )

    def ipca(self) -> Decimal:
        return self._lookup(
            RateIndex.IPCA, _IPCA_PATH, parse_ipca, Decimal(str(settings.fallback.ipca))
        )

    def _lookup(self, index: RateIndex, path: str, parser, fallback: Decimal) -> Decimal:
        cached = self.cache.get(index.value)
        if cached is not None:
            return cached

        result = self._fetcher.get_json(build_url(settings.providers.brasilapi_base_url, path))
        rate = parser(result.payload) if result.ok else None
        if rate is None:
            logger.info("index_rate_fallback", index=index.value, status=result.status, rate=str(fallback))
            return fallback
        self.cache.put(index.value, rate)
        return rate
