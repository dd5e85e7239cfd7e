# hot_list.py

import time
from dataclasses import dataclass
from typing import Dict, Iterable, Optional, Set

from config.logging_config import get_logger


@dataclass
class HotCoin:
    symbol: str
    added_at: float
    reason: str
    permanent: bool = False


@dataclass
class HistoricalArbitrage:
    symbol: str
    occurrences: int = 0
    last_seen: float = 0.0
    average_profit: float = 0.0


class HotList:
    """
    In-memory set of coins worth scanning.

    Coins seeded from config never expire; coins added later drop out after ttl_s
    unless they keep showing arbitrage. The list never grows past max_size;
    the oldest non-permanent entry is evicted first.
    """

    def __init__(self, seed_symbols: Optional[Iterable[str]] = None, max_size: int = 20, ttl_s: float = 3600.0):
        self.max_size = max_size
        self.ttl_s = ttl_s
        self.logger = get_logger(__name__)
        self.coins: Dict[str, HotCoin] = {}
        self.history: Dict[str, HistoricalArbitrage] = {}

        now = time.time()
        for symbol in seed_symbols or []:
            symbol = symbol.upper()
            self.coins[symbol] = HotCoin(symbol=symbol, added_at=now, reason='configured', permanent=True)

    def add(self, symbol: str, reason: str) -> bool:
        """Adds or refreshes a coin. Returns False when the list is full of permanent coins."""
        symbol = symbol.upper()
        now = time.time()
        existing = self.coins.get(symbol)
        if existing:
            existing.added_at = now
            return True

        self._expire(now)
        if len(self.coins) >= self.max_size:
            evictable = [coin for coin in self.coins.values() if not coin.permanent]
            if not evictable:
                self.logger.debug(f"Hot list full, not adding {symbol}.")
                return False
            oldest = min(evictable, key=lambda coin: coin.added_at)
            del self.coins[oldest.symbol]
            self.logger.debug(f"Evicted {oldest.symbol} from hot list to make room for {symbol}.")

        self.coins[symbol] = HotCoin(symbol=symbol, added_at=now, reason=reason)
        self.logger.info(f"Added {symbol} to hot list ({reason}).")
        return True

    def remove(self, symbol: str) -> None:
        self.coins.pop(symbol.upper(), None)

    def _expire(self, now: float) -> None:
        expired = [
            coin.symbol for coin in self.coins.values()
            if not coin.permanent and now - coin.added_at > self.ttl_s
        ]
        for symbol in expired:
            del self.coins[symbol]
            self.logger.debug(f"{symbol} expired from hot list.")

    def get_symbols_to_scan(self) -> Set[str]:
        self._expire(time.time())
        return set(self.coins)

    async def record_occurrence(self, symbol: str, net_profit_percentage: float) -> None:
        """Counts an alerted arbitrage for the coin and keeps it hot."""
        symbol = symbol.upper()
        record = self.history.setdefault(symbol, HistoricalArbitrage(symbol=symbol))
        record.average_profit = (
            (record.average_profit * record.occurrences + net_profit_percentage) / (record.occurrences + 1)
        )
        record.occurrences += 1
        record.last_seen = time.time()

        self.add(symbol, 'historical_pattern')
        self.logger.debug(
            f"Recorded arbitrage for {symbol}: {record.occurrences} occurrence(s), "
            f"avg {record.average_profit:.3f}%"
        )

    def get_history(self, symbol: str) -> Optional[HistoricalArbitrage]:
        return self.history.get(symbol.upper())
