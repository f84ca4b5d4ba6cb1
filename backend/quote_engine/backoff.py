"""Per-domain cool-down after provider failures.

Each (domain, kind) pair gets an expiry instant when first recorded. A domain
is blocked while any of its records is live; records expire on read.
"""
from __future__ import annotations

import datetime
import threading
from enum import Enum

from quote_engine.clock import Clock, system_clock
from quote_engine.config.settings import settings


class FailureKind(str, Enum):
    SSL = "ssl"
    RATE_LIMIT = "rate_limit"
    GENERAL = "general"


def cooldown_for(kind: FailureKind) -> datetime.timedelta:
    backoff = settings.backoff
    seconds = {
        FailureKind.SSL: backoff.ssl_seconds,
        FailureKind.RATE_LIMIT: backoff.rate_limit_seconds,
        FailureKind.GENERAL: backoff.general_seconds,
    }[kind]
    return datetime.timedelta(seconds=seconds)


class FailureBackoffTracker:
    def __init__(self, clock: Clock = system_clock) -> None:
        self._clock = clock
        self._records: dict[tuple[str, FailureKind], datetime.datetime] = {}
        self._lock = threading.Lock()

    def is_blocked(self, domain: str) -> bool:
        return bool(self.active_kinds(domain))

    def active_kinds(self, domain: str) -> list[FailureKind]:
        now = self._clock()
        active: list[FailureKind] = []
        with self._lock:
            for kind in FailureKind:
                key = (domain, kind)
                expires_at = self._records.get(key)
                if expires_at is None:
                    continue
                if now >= expires_at:
                    del self._records[key]
                    continue
                active.append(kind)
        return active

    def record_failure(self, domain: str, kind: FailureKind) -> bool:
        """Start a cool-down; returns False if one was already running."""
        now = self._clock()
        key = (domain, kind)
        with self._lock:
            expires_at = self._records.get(key)
            if expires_at is not None and now < expires_at:
                return False
            self._records[key] = now + cooldown_for(kind)
        return True

    def clean_expired(self) -> int:
        now = self._clock()
        with self._lock:
            expired = [key for key, expires_at in self._records.items() if now >= expires_at]
            for key in expired:
                del self._records[key]
        return len(expired)

    def clear(self) -> None:
        with self._lock:
            self._records.clear()
