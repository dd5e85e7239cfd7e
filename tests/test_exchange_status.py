# tests/test_exchange_status.py

import pytest
from unittest.mock import MagicMock

from core.exchange_manager import AsyncExchangeManager
from core.exchange_status import ExchangeStatusService


@pytest.fixture
def exchange_manager():
    manager = MagicMock(spec=AsyncExchangeManager)
    manager.exchanges = {"binance": MagicMock(), "kraken": MagicMock()}
    currencies = {
        "binance": {"FOO": {"withdraw": False, "deposit": True}, "BAR": {"withdraw": None}},
        "kraken": {"FOO": {"withdraw": True, "deposit": False}},
    }
    manager.get_currencies.side_effect = lambda ex_id: currencies[ex_id]
    return manager


def test_unknown_status_is_eligible():
    assert ExchangeStatusService().is_venue_pair_eligible("binance", "kraken", "FOO/USDT") is True


def test_manual_suspension_vetoes_matching_direction_only():
    status = ExchangeStatusService()
    status.suspend("binance", "foo", withdraw=True)

    assert status.is_venue_pair_eligible("binance", "kraken", "FOO") is False
    assert status.is_venue_pair_eligible("kraken", "binance", "FOO") is True

    status.resume("binance", "FOO")
    assert status.is_venue_pair_eligible("binance", "kraken", "FOO") is True


def test_deposit_suspension_on_sell_side_vetoes():
    status = ExchangeStatusService()
    status.suspend("kraken", "FOO", deposit=True)

    assert status.is_venue_pair_eligible("binance", "kraken", "FOO") is False
    assert status.is_venue_pair_eligible("kraken", "binance", "FOO") is True


@pytest.mark.asyncio
async def test_refresh_reads_currency_flags(exchange_manager):
    status = ExchangeStatusService(exchange_manager)

    await status.refresh()

    assert status.is_withdrawal_suspended("binance", "FOO")
    assert status.is_deposit_suspended("kraken", "FOO")
    assert not status.is_withdrawal_suspended("binance", "BAR")
    assert status.is_venue_pair_eligible("binance", "kraken", "FOO") is False
    assert status.is_venue_pair_eligible("kraken", "binance", "FOO") is True


@pytest.mark.asyncio
async def test_refresh_is_cached_until_ttl(exchange_manager):
    status = ExchangeStatusService(exchange_manager, ttl_s=600)

    await status.refresh()
    await status.refresh()
    assert exchange_manager.get_currencies.await_count == 2  # one per exchange

    await status.refresh(force=True)
    assert exchange_manager.get_currencies.await_count == 4


@pytest.mark.asyncio
async def test_refresh_failure_on_one_exchange_keeps_others(exchange_manager):
    def currencies(ex_id):
        if ex_id == "binance":
            raise RuntimeError("rate limited")
        return {"FOO": {"deposit": False}}

    exchange_manager.get_currencies.side_effect = currencies
    status = ExchangeStatusService(exchange_manager)

    await status.refresh()

    assert status.is_deposit_suspended("kraken", "FOO")
    assert not status.is_withdrawal_suspended("binance", "FOO")
