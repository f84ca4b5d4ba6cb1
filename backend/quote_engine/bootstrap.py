from __future__ import annotations

import structlog

from quote_engine.clock import Clock, system_clock
from quote_engine.config.logging import configure_logging
from quote_engine.config.settings import settings
from quote_engine.jobs.janitor import CacheJanitor
from quote_engine.providers.http import HttpFetcher
from quote_engine.service import QuoteService

logger = structlog.get_logger(__name__)


def start_quote_engine(
    fetcher: HttpFetcher | None = None,
    clock: Clock = system_clock,
    start_janitor: bool = True,
    log_level: str | None = None,
) -> tuple[QuoteService, CacheJanitor]:
    """Host startup hook: logging, the shared service and its cache janitor."""
    configure_logging(log_level)
    service = QuoteService(fetcher=fetcher, clock=clock)
    janitor = CacheJanitor(service)
    if start_janitor:
        janitor.start()
    logger.info(
        "quote_engine_started",
        janitor=janitor.running,
        janitor_interval_seconds=settings.janitor_interval_seconds,
    )
    return service, janitor
