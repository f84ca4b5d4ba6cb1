"""In-process TTL caches for quotes and rates.

Entries are checked for expiry on every read; ``clean_expired`` only frees
memory and is never needed for correctness.
"""
from __future__ import annotations

import datetime
import threading
from dataclasses import dataclass
from decimal import Decimal

from quote_engine.clock import Clock, system_clock
from quote_engine.config.settings import settings
from quote_engine.schemas.quote import AssetCategory, QuoteMode, QuoteResult


@dataclass(frozen=True)
class CachedQuote:
    result: QuoteResult
    stored_at: datetime.datetime
    ttl: datetime.timedelta

    def is_expired(self, now: datetime.datetime) -> bool:
        return now - self.stored_at > self.ttl


@dataclass(frozen=True)
class CachedRate:
    rate: Decimal
    stored_at: datetime.datetime
    ttl: datetime.timedelta

    def is_expired(self, now: datetime.datetime) -> bool:
        return now - self.stored_at > self.ttl


def select_quote_ttl(category: AssetCategory, mode: QuoteMode) -> datetime.timedelta:
    ttl = settings.cache
    is_crypto = category is AssetCategory.CRYPTO
    if mode is QuoteMode.INTRADAY:
        seconds = ttl.intraday_ttl_seconds
    elif mode is QuoteMode.HISTORICAL:
        seconds = ttl.crypto_historical_ttl_seconds if is_crypto else ttl.historical_ttl_seconds
    else:
        seconds = ttl.crypto_current_ttl_seconds if is_crypto else ttl.current_ttl_seconds
    return datetime.timedelta(seconds=seconds)


class QuoteCache:
    def __init__(self, clock: Clock = system_clock) -> None:
        self._clock = clock
        self._entries: dict[str, CachedQuote] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> QuoteResult | None:
        now = self._clock()
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            if entry.is_expired(now):
                del self._entries[key]
                return None
            return entry.result

    def put(self, key: str, result: QuoteResult, ttl: datetime.timedelta) -> None:
        entry = CachedQuote(result=result, stored_at=self._clock(), ttl=ttl)
        with self._lock:
            self._entries[key] = entry

    def clean_expired(self) -> int:
        now = self._clock()
        with self._lock:
            expired = [key for key, entry in self._entries.items() if entry.is_expired(now)]
            for key in expired:
                del self._entries[key]
        return len(expired)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


class RateCache:
    """Rates keyed by currency pair or index name.

    Unlike quotes, expired rates are kept around: callers fall back to the
    last known value when the live provider is down.
    """

    def __init__(self, ttl: datetime.timedelta, clock: Clock = system_clock) -> None:
        self._ttl = ttl
        self._clock = clock
        self._entries: dict[str, CachedRate] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> Decimal | None:
        now = self._clock()
        with self._lock:
            entry = self._entries.get(key)
        if entry is None or entry.is_expired(now):
            return None
        return entry.rate

    def get_stale(self, key: str) -> Decimal | None:
        with self._lock:
            entry = self._entries.get(key)
        return entry.rate if entry is not None else None

    def put(self, key: str, rate: Decimal) -> None:
        entry = CachedRate(rate=rate, stored_at=self._clock(), ttl=self._ttl)
        with self._lock:
            self._entries[key] = entry

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
