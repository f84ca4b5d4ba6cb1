from decimal import Decimal

from quote_engine.providers.brasilapi import IndexRateService, parse_ipca, parse_selic
from quote_engine.providers.exchange_rate import ExchangeRateService
from quote_engine.schemas.fixed_income import RateIndex

from conftest import FakeClock, FakeFetcher


def test_same_currency_is_identity(fetcher: FakeFetcher, clock: FakeClock) -> None:
    service = ExchangeRateService(fetcher, clock)

    assert service.rate("brl", "BRL") == Decimal("1")
    assert fetcher.calls == []


def test_usd_brl_is_fetched_and_cached(fetcher: FakeFetcher, clock: FakeClock) -> None:
    fetcher.add("exchangerate-api.com", {"base": "USD", "rates": {"BRL": 5.4321, "EUR": 0.92}})
    service = ExchangeRateService(fetcher, clock)

    assert service.rate("USD", "BRL") == Decimal("5.4321")
    clock.advance(minutes=59)
    assert service.rate("USD", "BRL") == Decimal("5.4321")
    assert len(fetcher.calls) == 1

    clock.advance(minutes=2)
    service.rate("USD", "BRL")
    assert len(fetcher.calls) == 2


def test_unreachable_provider_uses_fallback_rate(fetcher: FakeFetcher, clock: FakeClock) -> None:
    service = ExchangeRateService(fetcher, clock)

    assert service.rate("USD", "BRL") == Decimal("6.0")
    # The fallback is not cached, so the next call retries.
    service.rate("USD", "BRL")
    assert len(fetcher.calls) == 2


def test_expired_rate_is_preferred_over_fallback(fetcher: FakeFetcher, clock: FakeClock) -> None:
    service = ExchangeRateService(fetcher, clock)
    service.cache.put("USD_BRL", Decimal("5.10"))

    clock.advance(hours=3)

    assert service.rate("USD", "BRL") == Decimal("5.10")
    assert len(fetcher.calls) == 1


def test_unsupported_pair_uses_fallback_without_network(fetcher: FakeFetcher, clock: FakeClock) -> None:
    service = ExchangeRateService(fetcher, clock)

    assert service.rate("EUR", "BRL") == Decimal("6.0")
    assert fetcher.calls == []


def test_parse_selic_and_ipca_payloads() -> None:
    assert parse_selic({"nome": "Selic", "valor": 10.5}) == Decimal("10.5")
    assert parse_selic([{"valor": 11.25}, {"valor": "10.75"}]) == Decimal("10.75")
    assert parse_selic({"nome": "Selic"}) is None

    series = [
        {"mes": "2024-04", "acumulado12Meses": 3.69},
        {"mes": "2024-05", "acumulado12Meses": 3.93},
        {"mes": "2024-06"},
    ]
    assert parse_ipca(series) == Decimal("3.93")
    assert parse_ipca([]) is None


def test_cdi_is_derived_from_selic(fetcher: FakeFetcher, clock: FakeClock) -> None:
    fetcher.add("taxas/v1/selic", {"nome": "Selic", "valor": 10.5})
    service = IndexRateService(fetcher, clock)

    assert service.annual_rate(RateIndex.SELIC) == Decimal("10.5")
    assert service.annual_rate(RateIndex.CDI) == Decimal("10.35")
    assert service.annual_rate(RateIndex.NONE) == Decimal("0")
    assert len(fetcher.calls) == 1


def test_ipca_uses_latest_accumulated_value(fetcher: FakeFetcher, clock: FakeClock) -> None:
    fetcher.add("ibge/inflacao/v1/ipca", [{"acumulado12Meses": 4.5}, {"acumulado12Meses": 4.23}])
    service = IndexRateService(fetcher, clock)

    assert service.annual_rate(RateIndex.IPCA) == Decimal("4.23")


def test_index_rates_fall_back_to_constants(fetcher: FakeFetcher, clock: FakeClock) -> None:
    service = IndexRateService(fetcher, clock)

    assert service.selic() == Decimal("10.5")
    assert service.annual_rate(RateIndex.CDI) == Decimal("10.35")
    assert service.ipca() == Decimal("4.62")


def test_index_rates_are_cached_for_an_hour(fetcher: FakeFetcher, clock: FakeClock) -> None:
    fetcher.add("taxas/v1/selic", {"valor": 10.75})
    service = IndexRateService(fetcher, clock)

    service.selic()
    clock.advance(minutes=30)
    service.selic()
    assert len(fetcher.calls) == 1

    clock.advance(minutes=31)
    service.selic()
    assert len(fetcher.calls) == 2
