from __future__ import annotations

import datetime
from decimal import Decimal
from enum import Enum

from pydantic import BaseModel, ConfigDict, model_validator


_LEGACY_CATEGORIES = {
    "ACAO": "EQUITY_BR",
    "STOCK": "EQUITY_US",
    "FII": "REIT_BR",
    "RENDA_FIXA": "FIXED_INCOME",
}


class AssetCategory(str, Enum):
    EQUITY_BR = "EQUITY_BR"
    EQUITY_US = "EQUITY_US"
    CRYPTO = "CRYPTO"
    REIT_BR = "REIT_BR"
    FIXED_INCOME = "FIXED_INCOME"

    @classmethod
    def _missing_(cls, value):
        # Ledger rows still carry the old category codes.
        if not isinstance(value, str):
            return None
        normalized = value.strip().upper()
        normalized = _LEGACY_CATEGORIES.get(normalized, normalized)
        for member in cls:
            if member.value == normalized:
                return member
        return None


class QuoteMode(str, Enum):
    CURRENT = "current"
    TODAY = "today"
    INTRADAY = "intraday"
    HISTORICAL = "historical"

    @property
    def is_current(self) -> bool:
        return self in (QuoteMode.CURRENT, QuoteMode.TODAY)


class QuoteRequest(BaseModel):
    symbol: str
    category: AssetCategory
    date: datetime.date | None = None
    time: datetime.datetime | None = None

    def normalized(self, today: datetime.date) -> QuoteRequest:
        """Apply the date rules: future dates degrade to the latest price."""
        date = self.date
        time = self.time
        if date is None and time is not None:
            date = time.date()
        if date is not None and date > today:
            date = None
            time = None
        return QuoteRequest(
            symbol=self.symbol.strip(),
            category=self.category,
            date=date,
            time=time,
        )

    def mode(self, today: datetime.date) -> QuoteMode:
        if self.time is not None and self.time.date() == today:
            return QuoteMode.INTRADAY
        if self.date is None:
            return QuoteMode.CURRENT
        if self.date == today and self.time is None:
            return QuoteMode.TODAY
        return QuoteMode.HISTORICAL

    @property
    def cache_key(self) -> str:
        if self.time is not None:
            moment = self.time.isoformat()
        elif self.date is not None:
            moment = self.date.isoformat()
        else:
            moment = "current"
        return f"{self.symbol}:{self.category.value}:{moment}"


class QuoteResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    success: bool
    message: str
    price: Decimal = Decimal("0")
    currency: str = "BRL"
    asset_name: str | None = None

    @model_validator(mode="after")
    def _failures_carry_no_price(self) -> QuoteResult:
        if not self.success:
            if self.price != 0:
                raise ValueError("failed quotes must have a zero price")
            if not self.message.strip():
                raise ValueError("failed quotes need a message for the user")
        return self

    @classmethod
    def failure(cls, message: str, currency: str = "BRL") -> QuoteResult:
        return cls(success=False, message=message, price=Decimal("0"), currency=currency)


class Candle(BaseModel):
    timestamp: datetime.datetime
    open: Decimal
    high: Decimal
    low: Decimal
    close: Decimal
