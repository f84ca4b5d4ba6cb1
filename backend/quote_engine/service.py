"""Entry point for the rest of the finance app.

Build one ``QuoteService`` at startup and hand it to request handlers. The
clock and the HTTP fetcher are injectable so tests never touch the network.
Hosts normally go through ``quote_engine.bootstrap.start_quote_engine``,
which also configures logging and starts the ``CacheJanitor``.
"""
from __future__ import annotations

import datetime
from decimal import Decimal

import structlog

from quote_engine.backoff import FailureBackoffTracker
from quote_engine.cache import QuoteCache, select_quote_ttl
from quote_engine.clock import Clock, system_clock
from quote_engine.providers.brasilapi import IndexRateService
from quote_engine.providers.exchange_rate import ExchangeRateService
from quote_engine.providers.http import HttpFetcher
from quote_engine.providers.selector import fetch_with_fallback
from quote_engine.schemas.fixed_income import (
    FixedIncomeTerms,
    InvestmentPosition,
    PositionValuation,
)
from quote_engine.schemas.quote import AssetCategory, QuoteRequest, QuoteResult
from quote_engine.valuation.fixed_income import FixedIncomeCalculator
from quote_engine.valuation.position import value_position

logger = structlog.get_logger(__name__)


class QuoteService:
    def __init__(
        self,
        fetcher: HttpFetcher | None = None,
        clock: Clock = system_clock,
    ) -> None:
        self._clock = clock
        self.backoff = fetcher.backoff if fetcher is not None else FailureBackoffTracker(clock)
        self.fetcher = fetcher or HttpFetcher(self.backoff)
        self.quote_cache = QuoteCache(clock)
        self.exchange_rates = ExchangeRateService(self.fetcher, clock)
        self.index_rates = IndexRateService(self.fetcher, clock)
        self.calculator = FixedIncomeCalculator(self.index_rates)

    def resolve_quote(
        self,
        symbol: str,
        category: AssetCategory | str,
        date: datetime.date | None = None,
        time: datetime.datetime | None = None,
    ) -> QuoteResult:
        now = self._clock()
        today = now.date()
        request = QuoteRequest(
            symbol=symbol, category=AssetCategory(category), date=date, time=time
        ).normalized(today)
        mode = request.mode(today)
        key = request.cache_key

        # Live prices move; only past dates and intraday points are served from cache.
        if not mode.is_current:
            cached = self.quote_cache.get(key)
            if cached is not None:
                return cached

        result = fetch_with_fallback(self.fetcher, request, mode, now)
        if result.success:
            self.quote_cache.put(key, result, select_quote_ttl(request.category, mode))
        else:
            logger.info(
                "quote_unavailable",
                symbol=request.symbol,
                category=request.category.value,
                mode=mode.value,
                message=result.message,
            )
        return result

    def exchange_rate(self, from_currency: str, to_currency: str) -> Decimal:
        return self.exchange_rates.rate(from_currency, to_currency)

    def value_fixed_income(
        self, terms: FixedIncomeTerms, reference_date: datetime.date | None = None
    ) -> Decimal:
        reference = reference_date if reference_date is not None else self._clock().date()
        return self.calculator.value(terms, reference)

    def value_position(
        self, position: InvestmentPosition, reference_date: datetime.date | None = None
    ) -> PositionValuation:
        return value_position(self, position, reference_date)

    def clean_expired_cache(self) -> None:
        quotes = self.quote_cache.clean_expired()
        failures = self.backoff.clean_expired()
        if quotes or failures:
            logger.debug("cache_swept", quotes=quotes, failure_records=failures)
