from __future__ import annotations

import datetime

from quote_engine.providers import binance, coingecko, fixed_income, yahoo
from quote_engine.providers.http import HttpFetcher
from quote_engine.schemas.quote import AssetCategory, QuoteMode, QuoteRequest, QuoteResult


def fetch_with_fallback(
    fetcher: HttpFetcher,
    request: QuoteRequest,
    mode: QuoteMode,
    now: datetime.datetime,
) -> QuoteResult:
    category = request.category
    if category is AssetCategory.FIXED_INCOME:
        return fixed_income.fetch_quote(request)
    if category is AssetCategory.CRYPTO:
        result = binance.fetch_quote(fetcher, request, mode, now)
        if result.success:
            return result
        return coingecko.fetch_quote(fetcher, request, mode, now.date())
    return yahoo.fetch_quote(fetcher, request, mode)
