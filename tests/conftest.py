# tests/conftest.py

import pytest
from unittest.mock import MagicMock

from config import logging_config
logging_config.setup_custom_log_levels()

from core.exchange_manager import AsyncExchangeManager
from core.exchange_status import ExchangeStatusService
from core.utils import ScannerConfig
from data_models import Quote
from fee_model import FeeModel
from order_book_verifier import OrderBookVerifier
from valuation import Valuation
from scanner import PairwiseScanner


def make_book(bid, ask, bid_size=1.0, ask_size=1.0):
    return {"bids": [[bid, bid_size]], "asks": [[ask, ask_size]]}


def make_quote(exchange, price, symbol="FOO/USDT"):
    return Quote(exchange=exchange, symbol=symbol, price=price, volume_24h=1_000_000.0, timestamp=1_700_000_000_000)


@pytest.fixture
def scanner_config():
    return ScannerConfig(
        trade_size_usdt=1000.0,
        min_net_profit_percentage=0.5,
        order_book_verification=True,
        bid_ask_tolerance=0.001,
    )


@pytest.fixture
def price_source():
    """
    A mock AsyncExchangeManager with 0.1% taker fees, no withdrawal fee,
    and order books that sit exactly at the quoted prices.
    """
    source = MagicMock(spec=AsyncExchangeManager)
    source.get_trading_fee.return_value = 0.001
    source.get_withdrawal_fee.return_value = 0.0
    source.get_quotes_across_exchanges.return_value = []
    source.fetch_order_book.return_value = None
    source.get_best_bid_ask.side_effect = AsyncExchangeManager.get_best_bid_ask
    return source


@pytest.fixture
def venue_status():
    return ExchangeStatusService()


@pytest.fixture
def valuation(scanner_config, price_source):
    verifier = OrderBookVerifier(price_source, tolerance=scanner_config.bid_ask_tolerance)
    return Valuation(scanner_config, FeeModel(price_source), verifier)


@pytest.fixture
def scanner(scanner_config, price_source, venue_status, valuation):
    return PairwiseScanner(scanner_config, price_source, venue_status, valuation)


@pytest.fixture
def books_at_quotes(price_source):
    """Makes fetch_order_book return a tight book around each venue's given mid."""
    def configure(mids):
        async def fetch(ex_id, symbol):
            if ex_id not in mids:
                return None
            return make_book(mids[ex_id], mids[ex_id])
        price_source.fetch_order_book.side_effect = fetch
    return configure
