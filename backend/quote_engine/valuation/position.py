from __future__ import annotations

import datetime
from decimal import Decimal
from typing import Protocol

from quote_engine.schemas.fixed_income import (
    FixedIncomeTerms,
    InvestmentPosition,
    PositionValuation,
)
from quote_engine.schemas.quote import AssetCategory, QuoteResult

BASE_CURRENCY = "BRL"


class QuoteSource(Protocol):
    def resolve_quote(self, symbol: str, category: AssetCategory | str) -> QuoteResult: ...

    def exchange_rate(self, from_currency: str, to_currency: str) -> Decimal: ...

    def value_fixed_income(
        self, terms: FixedIncomeTerms, reference_date: datetime.date | None = None
    ) -> Decimal: ...


def _to_base(source: QuoteSource, amount: Decimal, currency: str) -> Decimal:
    if currency.strip().upper() == BASE_CURRENCY:
        return amount
    return amount * source.exchange_rate(currency, BASE_CURRENCY)


def value_position(
    source: QuoteSource,
    position: InvestmentPosition,
    reference_date: datetime.date | None = None,
) -> PositionValuation:
    """Current value of a holding in BRL, with its return against the invested amount."""
    invested = _to_base(source, position.invested_amount, position.currency)
    quote: QuoteResult | None = None

    if position.category is AssetCategory.FIXED_INCOME and position.fixed_income is not None:
        terms = position.fixed_income.model_copy(update={"principal": invested})
        current_value = source.value_fixed_income(terms, reference_date)
        current_price = current_value
    else:
        quote = source.resolve_quote(position.symbol, position.category)
        if quote.success:
            current_price = _to_base(source, quote.price, quote.currency)
        else:
            current_price = _to_base(source, position.unit_price, position.currency)
        current_value = position.quantity * current_price

    return_value = current_value - invested
    return_percent = return_value / invested * 100 if invested > 0 else Decimal("0")
    return PositionValuation(
        current_price=current_price,
        current_value=current_value,
        invested_value=invested,
        return_value=return_value,
        return_percent=return_percent,
        quote=quote,
    )
