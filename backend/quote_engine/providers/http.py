from __future__ import annotations

import http.client
import json
import socket
import ssl
from typing import Any, Callable
from urllib.error import HTTPError, URLError
from urllib.parse import urlencode, urlparse
from urllib.request import Request, urlopen

import structlog
from pydantic import BaseModel

from quote_engine.backoff import FailureBackoffTracker, FailureKind
from quote_engine.config.settings import settings

logger = structlog.get_logger(__name__)

Opener = Callable[..., Any]


class FetchResult(BaseModel):
    url: str
    domain: str
    status: str
    status_code: int | None = None
    payload: Any = None
    detail: str | None = None

    @property
    def ok(self) -> bool:
        return self.status == "ok"

    @property
    def has_body(self) -> bool:
        return self.status in ("ok", "http_error") and self.payload is not None


def build_url(base_url: str, path: str, params: dict[str, str] | None = None) -> str:
    url = f"{base_url.rstrip('/')}/{path.lstrip('/')}" if path else base_url
    if params:
        url = f"{url}?{urlencode(params)}"
    return url


def extract_domain(url: str) -> str:
    return urlparse(url).hostname or url


def _is_ssl_failure(exc: BaseException) -> bool:
    if isinstance(exc, ssl.SSLError):
        return True
    reason = getattr(exc, "reason", None)
    if isinstance(reason, ssl.SSLError):
        return True
    message = str(reason if reason is not None else exc).lower()
    return any(marker in message for marker in ("ssl", "tls", "certificate"))


class HttpFetcher:
    """Blocking JSON GET shared by every provider.

    Transport problems never raise: they come back as a ``FetchResult``
    status and open a cool-down for the domain in the backoff tracker.
    """

    def __init__(
        self,
        backoff: FailureBackoffTracker,
        opener: Opener = urlopen,
        timeout: float | None = None,
    ) -> None:
        self.backoff = backoff
        self._opener = opener
        self._timeout = timeout if timeout is not None else settings.providers.timeout_seconds

    def get_json(self, url: str) -> FetchResult:
        domain = extract_domain(url)
        if self.backoff.is_blocked(domain):
            return FetchResult(url=url, domain=domain, status="blocked")

        try:
            request = Request(
                url,
                headers={
                    "User-Agent": settings.providers.user_agent,
                    "Accept": "application/json",
                },
            )
            with self._opener(request, timeout=self._timeout) as response:
                status_code = getattr(response, "status", 200)
                raw = response.read()
        except HTTPError as exc:
            return self._http_error(url, domain, exc)
        except (TimeoutError, socket.timeout) as exc:
            return self._transport_failure(url, domain, FailureKind.GENERAL, "timeout", exc)
        except URLError as exc:
            kind = FailureKind.SSL if _is_ssl_failure(exc) else FailureKind.GENERAL
            return self._transport_failure(url, domain, kind, "unreachable", exc)
        except OSError as exc:
            kind = FailureKind.SSL if _is_ssl_failure(exc) else FailureKind.GENERAL
            return self._transport_failure(url, domain, kind, "connection", exc)
        except http.client.HTTPException as exc:
            return self._transport_failure(url, domain, FailureKind.GENERAL, "protocol", exc)
        except ValueError as exc:
            # Malformed URL: the request never left, so the domain is not penalised.
            logger.info("provider_invalid_url", domain=domain, url=url, error=str(exc))
            return FetchResult(url=url, domain=domain, status="invalid", detail=str(exc))

        try:
            payload = json.loads(raw.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError):
            logger.info(
                "provider_invalid_json",
                domain=domain,
                preview=raw[:200].decode("utf-8", errors="replace"),
            )
            return FetchResult(
                url=url, domain=domain, status="invalid", status_code=status_code
            )
        return FetchResult(
            url=url, domain=domain, status="ok", status_code=status_code, payload=payload
        )

    def _http_error(self, url: str, domain: str, exc: HTTPError) -> FetchResult:
        if exc.code == 429:
            if self.backoff.record_failure(domain, FailureKind.RATE_LIMIT):
                logger.warning(
                    "provider_rate_limited",
                    domain=domain,
                    cooldown_seconds=settings.backoff.rate_limit_seconds,
                )
            return FetchResult(url=url, domain=domain, status="rate_limited", status_code=429)

        # Error bodies still go to the parsers: they hold the "not found" markers.
        payload = None
        try:
            raw = exc.read() if exc.fp is not None else b""
            payload = json.loads(raw.decode("utf-8")) if raw else None
        except (OSError, http.client.HTTPException, UnicodeDecodeError, json.JSONDecodeError):
            payload = None
        if exc.code != 404:
            logger.info("provider_http_error", domain=domain, status_code=exc.code)
        return FetchResult(
            url=url,
            domain=domain,
            status="http_error",
            status_code=exc.code,
            payload=payload,
        )

    def _transport_failure(
        self,
        url: str,
        domain: str,
        kind: FailureKind,
        reason: str,
        exc: BaseException,
    ) -> FetchResult:
        if self.backoff.record_failure(domain, kind):
            logger.warning(
                "provider_transport_failure",
                domain=domain,
                kind=kind.value,
                reason=reason,
                error=str(exc),
            )
        status = "ssl_error" if kind is FailureKind.SSL else "error"
        return FetchResult(url=url, domain=domain, status=status, detail=str(exc))
