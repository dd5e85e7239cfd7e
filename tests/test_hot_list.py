# tests/test_hot_list.py

import pytest

import hot_list as hot_list_module
from hot_list import HotList


@pytest.fixture
def clock(mocker):
    now = {"t": 1_000.0}
    mocker.patch.object(hot_list_module.time, "time", side_effect=lambda: now["t"])
    return now


def test_seed_symbols_never_expire(clock):
    hot = HotList(seed_symbols=["btc", "ETH"], ttl_s=10)
    clock["t"] += 1_000

    assert hot.get_symbols_to_scan() == {"BTC", "ETH"}


def test_added_symbols_expire_after_ttl(clock):
    hot = HotList(ttl_s=10)
    hot.add("PEPE", "volume_spike")
    assert hot.get_symbols_to_scan() == {"PEPE"}

    clock["t"] += 11
    assert hot.get_symbols_to_scan() == set()


def test_oldest_non_permanent_entry_is_evicted_when_full(clock):
    hot = HotList(seed_symbols=["BTC"], max_size=3)
    hot.add("AAA", "volume_spike")
    clock["t"] += 1
    hot.add("BBB", "volume_spike")
    clock["t"] += 1

    assert hot.add("CCC", "high_volume") is True
    assert hot.get_symbols_to_scan() == {"BTC", "BBB", "CCC"}


def test_full_list_of_permanent_symbols_refuses_new_entries(clock):
    hot = HotList(seed_symbols=["BTC", "ETH"], max_size=2)

    assert hot.add("SOL", "volume_spike") is False
    assert "SOL" not in hot.get_symbols_to_scan()


@pytest.mark.asyncio
async def test_record_occurrence_tracks_history_and_keeps_symbol_hot(clock):
    hot = HotList(ttl_s=10)

    await hot.record_occurrence("foo", 1.0)
    clock["t"] += 5
    await hot.record_occurrence("FOO", 2.0)

    history = hot.get_history("FOO")
    assert history.occurrences == 2
    assert history.average_profit == pytest.approx(1.5)
    assert history.last_seen == clock["t"]

    clock["t"] += 8  # 13s after first record, 8s after the refresh
    assert hot.get_symbols_to_scan() == {"FOO"}
