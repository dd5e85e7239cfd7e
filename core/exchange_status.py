import time
from typing import Any, Dict, Iterable, Optional, Set, Tuple

from core.utils import split_symbol
from config.logging_config import get_logger


class ExchangeStatusService:
    """
    Tracks which assets have deposits or withdrawals suspended on which exchange.

    Status comes from ccxt currency info (refreshed by refresh(), kept for ttl_s)
    plus manual suspensions. Unknown status counts as open.
    """

    def __init__(self, exchange_manager=None, ttl_s: float = 600.0):
        self.exchange_manager = exchange_manager
        self.ttl_s = ttl_s
        self.logger = get_logger(__name__)
        # (exchange, asset) -> flag
        self._withdraw_suspended: Set[Tuple[str, str]] = set()
        self._deposit_suspended: Set[Tuple[str, str]] = set()
        self._manual_withdraw: Set[Tuple[str, str]] = set()
        self._manual_deposit: Set[Tuple[str, str]] = set()
        self.last_refresh_ts: float = 0.0

    async def refresh(self, ex_ids: Optional[Iterable[str]] = None, force: bool = False) -> None:
        """Reloads deposit/withdraw flags from the exchanges when the cache is stale."""
        if self.exchange_manager is None:
            return
        now = time.time()
        if not force and (now - self.last_refresh_ts) < self.ttl_s:
            return

        if ex_ids is None:
            ex_ids = list(self.exchange_manager.exchanges.keys())

        withdraw_suspended, deposit_suspended = set(), set()
        for ex_id in ex_ids:
            self.exchange_manager.invalidate_currencies(ex_id)
            try:
                currencies = await self.exchange_manager.get_currencies(ex_id)
            except Exception as e:
                self.logger.warning(f"Could not refresh deposit/withdrawal status for {ex_id}: {e}")
                continue
            for asset, info in (currencies or {}).items():
                withdraw_suspended.update(self._suspended(ex_id, asset, info, 'withdraw'))
                deposit_suspended.update(self._suspended(ex_id, asset, info, 'deposit'))

        self._withdraw_suspended = withdraw_suspended
        self._deposit_suspended = deposit_suspended
        self.last_refresh_ts = now
        self.logger.info(
            f"Venue status refreshed: {len(withdraw_suspended)} withdrawal and "
            f"{len(deposit_suspended)} deposit suspensions."
        )

    @staticmethod
    def _suspended(ex_id: str, asset: str, info: Dict[str, Any], flag: str):
        if (info or {}).get(flag) is False:
            return {(ex_id, asset.upper())}
        return set()

    def suspend(self, ex_id: str, asset: str, withdraw: bool = False, deposit: bool = False) -> None:
        key = (ex_id, asset.upper())
        if withdraw:
            self._manual_withdraw.add(key)
        if deposit:
            self._manual_deposit.add(key)

    def resume(self, ex_id: str, asset: str) -> None:
        key = (ex_id, asset.upper())
        self._manual_withdraw.discard(key)
        self._manual_deposit.discard(key)

    def is_withdrawal_suspended(self, ex_id: str, asset: str) -> bool:
        key = (ex_id, asset.upper())
        return key in self._withdraw_suspended or key in self._manual_withdraw

    def is_deposit_suspended(self, ex_id: str, asset: str) -> bool:
        key = (ex_id, asset.upper())
        return key in self._deposit_suspended or key in self._manual_deposit

    def is_venue_pair_eligible(self, buy_exchange: str, sell_exchange: str, symbol: str) -> bool:
        """False when the coin cannot leave the buy venue or cannot arrive at the sell venue."""
        asset, _ = split_symbol(symbol)
        if self.is_withdrawal_suspended(buy_exchange, asset):
            return False
        if self.is_deposit_suspended(sell_exchange, asset):
            return False
        return True
