from __future__ import annotations

import datetime
from decimal import Decimal
from typing import Protocol

from quote_engine.schemas.fixed_income import FixedIncomeTerms, RateIndex, RateRegime

TRADING_DAYS_PER_YEAR = Decimal("252")
TAX_EXEMPT_INSTRUMENTS = frozenset({"LCI", "LCA"})

_HUNDRED = Decimal("100")


class IndexRates(Protocol):
    def annual_rate(self, index: RateIndex) -> Decimal: ...


def income_tax_rate(elapsed_days: int) -> Decimal:
    """Regressive withholding rate, in percent, for the holding period."""
    if elapsed_days <= 180:
        return Decimal("22.5")
    if elapsed_days <= 360:
        return Decimal("20.0")
    if elapsed_days <= 720:
        return Decimal("17.5")
    return Decimal("15.0")


def is_tax_exempt(instrument_type: str | None) -> bool:
    return (instrument_type or "").strip().upper() in TAX_EXEMPT_INSTRUMENTS


def compound_daily(principal: Decimal, daily_rate: Decimal, days: int) -> Decimal:
    value = principal
    factor = 1 + daily_rate
    for _ in range(days):
        value *= factor
    return value


class FixedIncomeCalculator:
    def __init__(self, index_rates: IndexRates) -> None:
        self._index_rates = index_rates

    def annual_rate(self, terms: FixedIncomeTerms) -> Decimal:
        if terms.regime is RateRegime.PRE_FIXED:
            fixed = terms.fixed_rate_percent
            if fixed is None:
                fixed = terms.fixed_spread_percent
            return fixed if fixed is not None else Decimal("0")

        index_rate = self._index_rates.annual_rate(terms.index)
        percent = terms.index_percent if terms.index_percent is not None else _HUNDRED
        rate = index_rate * (percent / _HUNDRED)
        if terms.regime is RateRegime.POST_FIXED_PLUS_SPREAD and terms.fixed_spread_percent is not None:
            rate += terms.fixed_spread_percent
        return rate

    def value(self, terms: FixedIncomeTerms, reference_date: datetime.date) -> Decimal:
        effective_date = min(reference_date, terms.maturity_date)
        total_days = (terms.maturity_date - terms.issue_date).days
        elapsed_days = (effective_date - terms.issue_date).days
        if elapsed_days < 0 or total_days <= 0:
            return terms.principal

        daily_rate = self.annual_rate(terms) / _HUNDRED / TRADING_DAYS_PER_YEAR
        gross_value = compound_daily(terms.principal, daily_rate, elapsed_days)
        gross_yield = gross_value - terms.principal

        if is_tax_exempt(terms.instrument_type) or gross_yield <= 0:
            return terms.principal + gross_yield
        tax_rate = income_tax_rate(elapsed_days) / _HUNDRED
        return terms.principal + gross_yield * (1 - tax_rate)
