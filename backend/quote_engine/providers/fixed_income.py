from __future__ import annotations

from decimal import Decimal

from quote_engine.config.settings import settings
from quote_engine.providers.common import default_asset_name
from quote_engine.schemas.quote import QuoteRequest, QuoteResult


def fetch_quote(request: QuoteRequest) -> QuoteResult:
    """Nominal reference value; real pricing lives in the valuation calculator."""
    return QuoteResult(
        success=True,
        message="Fixed income - reference value",
        price=Decimal(str(settings.fallback.fixed_income_reference_value)),
        currency="BRL",
        asset_name=default_asset_name(request.symbol),
    )
