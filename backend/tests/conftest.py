import datetime
from typing import Any

import pytest

from quote_engine.backoff import FailureBackoffTracker
from quote_engine.providers.http import FetchResult, extract_domain


class FakeClock:
    def __init__(self, now: datetime.datetime) -> None:
        self.now = now

    def __call__(self) -> datetime.datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now += datetime.timedelta(**kwargs)


class FakeFetcher:
    """Answers by URL fragment; unknown URLs look like a dead host."""

    def __init__(self, clock: FakeClock) -> None:
        self.backoff = FailureBackoffTracker(clock)
        self.routes: list[tuple[str, FetchResult]] = []
        self.calls: list[str] = []

    def add(
        self,
        fragment: str,
        payload: Any = None,
        status: str = "ok",
        status_code: int | None = 200,
    ) -> None:
        self.routes.append(
            (
                fragment,
                FetchResult(
                    url=fragment,
                    domain="",
                    status=status,
                    status_code=status_code,
                    payload=payload,
                ),
            )
        )

    def calls_to(self, fragment: str) -> list[str]:
        return [url for url in self.calls if fragment in url]

    def get_json(self, url: str) -> FetchResult:
        self.calls.append(url)
        for fragment, result in self.routes:
            if fragment in url:
                return result.model_copy(update={"url": url, "domain": extract_domain(url)})
        return FetchResult(url=url, domain=extract_domain(url), status="error")


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(datetime.datetime(2024, 7, 10, 12, 0))


@pytest.fixture
def fetcher(clock: FakeClock) -> FakeFetcher:
    return FakeFetcher(clock)
