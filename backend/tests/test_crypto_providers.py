import datetime
import time
from decimal import Decimal
from urllib.parse import parse_qs, urlparse

from quote_engine.clock import system_clock
from quote_engine.config.settings import settings
from quote_engine.providers import binance, coingecko
from quote_engine.providers.common import NOT_FOUND_MESSAGE
from quote_engine.schemas.quote import AssetCategory, QuoteMode, QuoteRequest

from conftest import FakeClock, FakeFetcher


def ms(*args: int) -> int:
    return int(datetime.datetime(*args, tzinfo=datetime.UTC).timestamp() * 1000)


def kline(open_time: int, close: str) -> list:
    return [open_time, "1.0", "2.0", "0.5", close, "10.0", open_time + 3599999, "0", 1, "0", "0", "0"]


def test_trading_pair_and_coin_id_tables() -> None:
    assert binance.trading_pair("btc") == "BTCUSDT"
    assert binance.trading_pair(" binance   coin ") == "BNBUSDT"
    assert binance.trading_pair("PEPE") == "PEPEUSDT"
    assert coingecko.coin_id("polygon") == "matic-network"
    assert coingecko.coin_id("Shiba Inu") == "shiba-inu"


def test_symbol_tables_come_from_settings() -> None:
    previous = dict(settings.symbols.binance_pairs)
    settings.symbols.binance_pairs["WBTC"] = "WBTCBTC"
    try:
        assert binance.trading_pair("wbtc") == "WBTCBTC"
    finally:
        settings.symbols.binance_pairs.clear()
        settings.symbols.binance_pairs.update(previous)


def test_current_price_uses_ticker_endpoint(fetcher: FakeFetcher, clock: FakeClock) -> None:
    fetcher.add("ticker/price", {"symbol": "BTCUSDT", "price": "57123.45000000"})
    request = QuoteRequest(symbol="BTC", category=AssetCategory.CRYPTO)

    result = binance.fetch_quote(fetcher, request, QuoteMode.CURRENT, clock())

    assert result.success is True
    assert result.price == Decimal("57123.45000000")
    assert result.currency == "USD"
    assert result.asset_name == "Bitcoin"


def test_intraday_picks_nearest_hourly_candle(fetcher: FakeFetcher, clock: FakeClock) -> None:
    fetcher.add(
        "klines",
        [
            kline(ms(2024, 7, 10, 10), "100"),
            kline(ms(2024, 7, 10, 11), "105"),
            kline(ms(2024, 7, 10, 12), "110"),
        ],
    )
    request = QuoteRequest(symbol="ETH", category=AssetCategory.CRYPTO, date=datetime.date(2024, 7, 10), time=datetime.datetime(2024, 7, 10, 11, 40))

    result = binance.fetch_quote(fetcher, request, QuoteMode.INTRADAY, clock())

    assert result.price == Decimal("105")
    query = parse_qs(urlparse(fetcher.calls[0]).query)
    assert query["interval"] == ["1h"]
    assert query["startTime"] == [str(ms(2024, 7, 10))]
    # Capped at "now" for today's candles.
    assert query["endTime"] == [str(ms(2024, 7, 10, 12))]


def test_intraday_without_exact_hour_uses_closest_timestamp(fetcher: FakeFetcher, clock: FakeClock) -> None:
    fetcher.add("klines", [kline(ms(2024, 7, 10, 8), "90"), kline(ms(2024, 7, 10, 10), "100")])
    request = QuoteRequest(symbol="ETH", category=AssetCategory.CRYPTO, date=datetime.date(2024, 7, 10), time=datetime.datetime(2024, 7, 10, 9, 50))

    result = binance.fetch_quote(fetcher, request, QuoteMode.INTRADAY, clock())

    # 09:50 floors to 09:00, equidistant from both candles; the earlier one is kept.
    assert result.price == Decimal("90")


def test_today_without_time_uses_latest_candle(fetcher: FakeFetcher, clock: FakeClock) -> None:
    fetcher.add("klines", [kline(ms(2024, 7, 10, 10), "100"), kline(ms(2024, 7, 10, 11), "101.5")])
    request = QuoteRequest(symbol="SOL", category=AssetCategory.CRYPTO, date=datetime.date(2024, 7, 10))

    result = binance.fetch_quote(fetcher, request, QuoteMode.TODAY, clock())

    assert result.price == Decimal("101.5")


def test_past_day_uses_daily_candle(fetcher: FakeFetcher, clock: FakeClock) -> None:
    fetcher.add("klines", [kline(ms(2024, 7, 1), "61000.5")])
    request = QuoteRequest(symbol="BTC", category=AssetCategory.CRYPTO, date=datetime.date(2024, 7, 1))

    result = binance.fetch_quote(fetcher, request, QuoteMode.HISTORICAL, clock())

    assert result.price == Decimal("61000.5")
    query = parse_qs(urlparse(fetcher.calls[0]).query)
    assert query["interval"] == ["1d"]
    assert query["limit"] == ["1"]


def test_binance_error_body_is_a_failure(fetcher: FakeFetcher, clock: FakeClock) -> None:
    fetcher.add("ticker/price", {"code": -1121, "msg": "Invalid symbol."}, status="http_error", status_code=400)
    request = QuoteRequest(symbol="NOPE", category=AssetCategory.CRYPTO)

    result = binance.fetch_quote(fetcher, request, QuoteMode.CURRENT, clock())

    assert result.success is False


def test_coingecko_current_price(fetcher: FakeFetcher, clock: FakeClock) -> None:
    fetcher.add("simple/price", {"cardano": {"usd": 0.3921}})
    request = QuoteRequest(symbol="ADA", category=AssetCategory.CRYPTO)

    result = coingecko.fetch_quote(fetcher, request, QuoteMode.CURRENT, clock().date())

    assert result.success is True
    assert result.price == Decimal("0.3921")
    assert "ids=cardano" in fetcher.calls[0]


def test_coingecko_historical_picks_point_nearest_midnight(fetcher: FakeFetcher, clock: FakeClock) -> None:
    fetcher.add(
        "market_chart",
        {
            "prices": [
                [ms(2024, 6, 30, 22), 3400.0],
                [ms(2024, 7, 1, 1), 3450.5],
                [ms(2024, 7, 1, 12), 3500.0],
            ]
        },
    )
    request = QuoteRequest(symbol="ETH", category=AssetCategory.CRYPTO, date=datetime.date(2024, 7, 1))

    result = coingecko.fetch_quote(fetcher, request, QuoteMode.HISTORICAL, clock().date())

    assert result.price == Decimal("3450.5")
    assert "days=9" in fetcher.calls[0]


def test_coingecko_error_is_not_found(fetcher: FakeFetcher, clock: FakeClock) -> None:
    fetcher.add("simple/price", {"error": "coin not found"})
    request = QuoteRequest(symbol="UNKNOWNCOIN", category=AssetCategory.CRYPTO)

    result = coingecko.fetch_quote(fetcher, request, QuoteMode.CURRENT, clock().date())

    assert result.success is False
    assert result.message == NOT_FOUND_MESSAGE


def test_today_window_ends_at_real_instant_for_offset_clock() -> None:
    sao_paulo = datetime.timezone(datetime.timedelta(hours=-3))
    clock = FakeClock(datetime.datetime(2024, 7, 10, 9, 0, tzinfo=sao_paulo))
    request = QuoteRequest(symbol="BTC", category=AssetCategory.CRYPTO, date=datetime.date(2024, 7, 10))

    url = binance.build_quote_url("BTCUSDT", request, QuoteMode.TODAY, clock())

    query = parse_qs(urlparse(url).query)
    assert query["endTime"] == [str(ms(2024, 7, 10, 12))]
    assert query["startTime"] == [str(ms(2024, 7, 9, 12))]


def test_system_clock_window_tracks_epoch_time() -> None:
    now = system_clock()
    request = QuoteRequest(symbol="BTC", category=AssetCategory.CRYPTO, date=now.date())

    url = binance.build_quote_url("BTCUSDT", request, QuoteMode.TODAY, now)

    end_time = int(parse_qs(urlparse(url).query)["endTime"][0])
    assert now.tzinfo is not None
    assert abs(end_time - time.time() * 1000) < 60_000


def test_coin_id_is_quoted_in_market_chart_path(clock: FakeClock) -> None:
    request = QuoteRequest(symbol="BTC", category=AssetCategory.CRYPTO, date=datetime.date(2024, 7, 1))

    url = coingecko.build_quote_url("odd/coin?id", request, QuoteMode.HISTORICAL, clock().date())

    assert urlparse(url).path.endswith("/coins/odd%2Fcoin%3Fid/market_chart")
