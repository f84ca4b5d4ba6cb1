from __future__ import annotations

import threading

import structlog

from quote_engine.config.settings import settings
from quote_engine.service import QuoteService

logger = structlog.get_logger(__name__)


class CacheJanitor:
    """Daemon thread that sweeps expired cache entries on a fixed interval."""

    def __init__(self, service: QuoteService, interval_seconds: float | None = None) -> None:
        self._service = service
        self._interval = (
            interval_seconds if interval_seconds is not None else settings.janitor_interval_seconds
        )
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        if self.running:
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._run, name="quote-cache-janitor", daemon=True)
        self._thread.start()

    def stop(self, timeout: float | None = None) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None

    def run_once(self) -> None:
        try:
            self._service.clean_expired_cache()
        except Exception:
            logger.exception("cache_sweep_failed")

    def _run(self) -> None:
        self.run_once()
        while not self._stop.wait(self._interval):
            self.run_once()
