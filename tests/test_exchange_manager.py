# tests/test_exchange_manager.py

import pytest
from unittest.mock import AsyncMock, MagicMock

import ccxt.async_support as ccxt

from core.exchange_manager import AsyncExchangeManager
from core.utils import ExchangeInitError
from data_models import BidAsk


def mock_client(ticker=None, markets=None, taker=None, currencies=None):
    client = MagicMock()
    client.markets = markets if markets is not None else {"FOO/USDT": {}}
    client.fees = {"trading": {"taker": taker}} if taker is not None else {}
    client.has = {"fetchCurrencies": currencies is not None}
    client.currencies = {}
    client.fetch_ticker = AsyncMock(side_effect=ticker) if isinstance(ticker, Exception) else AsyncMock(return_value=ticker)
    client.fetch_order_book = AsyncMock(return_value={"bids": [[99.0, 2.0]], "asks": [[101.0, 3.0]]})
    client.fetch_currencies = AsyncMock(return_value=currencies or {})
    client.close = AsyncMock()
    return client


@pytest.fixture
def manager():
    return AsyncExchangeManager({}, fees_config={
        "default_trading_fee": 0.002,
        "trading_fees": {"kraken": 0.0026},
        "withdrawal_fees": {"*": {"btc": 0.0002}, "okx": {"FOO": 3}},
    })


def test_unsupported_exchange_raises():
    with pytest.raises(ExchangeInitError):
        AsyncExchangeManager({"not_a_real_exchange": {}})


def test_best_bid_ask_parsing():
    book = {"bids": [[99.5, 2.0], [99.0, 5.0]], "asks": [[100.5, 1.5], [101.0, 4.0]]}

    assert AsyncExchangeManager.get_best_bid_ask(book) == BidAsk(bid=99.5, bid_size=2.0, ask=100.5, ask_size=1.5)
    assert AsyncExchangeManager.get_best_bid_ask({"bids": [], "asks": [[1.0, 1.0]]}) is None
    assert AsyncExchangeManager.get_best_bid_ask(None) is None


@pytest.mark.asyncio
async def test_quotes_skip_failing_and_unlisted_venues(manager):
    manager.exchanges = {
        "binance": mock_client({"last": 100.0, "quoteVolume": 5e6, "timestamp": 123}),
        "kraken": mock_client(ccxt.ExchangeError("bad symbol")),
        "okx": mock_client({"last": None}),
        "kucoin": mock_client({"last": 101.0}, markets={"BAR/USDT": {}}),
        "bybit": mock_client({"last": 102.5, "timestamp": None}),
    }

    quotes = await manager.get_quotes_across_exchanges("FOO/USDT")

    assert [(q.exchange, q.price) for q in quotes] == [("binance", 100.0), ("bybit", 102.5)]
    assert quotes[0].volume_24h == 5e6 and quotes[0].timestamp == 123
    manager.exchanges["kucoin"].fetch_ticker.assert_not_called()


@pytest.mark.asyncio
async def test_order_book_for_bare_symbol_uses_quote_currency(manager):
    manager.exchanges = {"binance": mock_client()}

    book = await manager.fetch_order_book("binance", "FOO")

    manager.exchanges["binance"].fetch_order_book.assert_awaited_once_with("FOO/USDT", limit=10)
    assert book["exchange"] == "binance" and book["symbol"] == "FOO/USDT"


@pytest.mark.asyncio
async def test_order_book_unknown_exchange(manager):
    with pytest.raises(ValueError):
        await manager.fetch_order_book("nowhere", "FOO")


@pytest.mark.asyncio
async def test_trading_fee_lookup_order(manager):
    manager.exchanges = {"binance": mock_client(taker=0.00075), "okx": mock_client()}

    assert await manager.get_trading_fee("kraken") == 0.0026    # configured
    assert await manager.get_trading_fee("binance") == 0.00075  # advertised by ccxt
    assert await manager.get_trading_fee("okx") == 0.002        # default


@pytest.mark.asyncio
async def test_withdrawal_fee_lookup_order(manager):
    manager.exchanges = {"binance": mock_client(currencies={"ETH": {"fee": 0.004}})}

    assert await manager.get_withdrawal_fee("okx", "foo") == 3.0
    assert await manager.get_withdrawal_fee("binance", "BTC") == 0.0002
    assert await manager.get_withdrawal_fee("binance", "ETH") == 0.004
    assert await manager.get_withdrawal_fee("binance", "DOGE") == 0.0
    manager.exchanges["binance"].fetch_currencies.assert_awaited_once()


@pytest.mark.asyncio
async def test_init_exchanges_drops_failing_venue(manager):
    good_a, good_b, bad = mock_client(), mock_client(), mock_client()
    good_a.load_markets = AsyncMock(return_value={})
    good_b.load_markets = AsyncMock(return_value={})
    bad.load_markets = AsyncMock(side_effect=ccxt.ExchangeError("maintenance"))
    manager.exchanges = {"a": good_a, "b": good_b, "c": bad}

    await manager.init_exchanges()

    assert list(manager.exchanges) == ["a", "b"]
    bad.close.assert_awaited_once()


@pytest.mark.asyncio
async def test_init_exchanges_needs_two_venues(manager):
    only = mock_client()
    only.load_markets = AsyncMock(return_value={})
    manager.exchanges = {"a": only}

    with pytest.raises(ExchangeInitError):
        await manager.init_exchanges()
