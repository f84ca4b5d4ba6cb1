from __future__ import annotations

import datetime
from decimal import Decimal
from enum import Enum

from pydantic import BaseModel, Field

from quote_engine.schemas.quote import AssetCategory, QuoteResult


class RateRegime(str, Enum):
    PRE_FIXED = "PRE_FIXED"
    POST_FIXED = "POST_FIXED"
    POST_FIXED_PLUS_SPREAD = "POST_FIXED_PLUS_SPREAD"


class RateIndex(str, Enum):
    SELIC = "SELIC"
    CDI = "CDI"
    IPCA = "IPCA"
    NONE = "NONE"


class FixedIncomeTerms(BaseModel):
    principal: Decimal
    regime: RateRegime
    index: RateIndex = RateIndex.NONE
    index_percent: Decimal | None = None
    fixed_spread_percent: Decimal | None = None
    # Pre-fixed annual rate; older rows only fill fixed_spread_percent.
    fixed_rate_percent: Decimal | None = None
    issue_date: datetime.date
    maturity_date: datetime.date
    instrument_type: str | None = None


class InvestmentPosition(BaseModel):
    symbol: str
    category: AssetCategory
    quantity: Decimal = Decimal("0")
    invested_amount: Decimal
    unit_price: Decimal = Decimal("0")
    currency: str = "BRL"
    fixed_income: FixedIncomeTerms | None = None


class PositionValuation(BaseModel):
    current_price: Decimal
    current_value: Decimal
    invested_value: Decimal
    return_value: Decimal
    return_percent: Decimal
    quote: QuoteResult | None = Field(default=None)
