# aggregator.py

import asyncio
from typing import Iterable, List, Optional

from data_models import Opportunity, SymbolScanResult
from interfaces import Notifier, SymbolSource
from scanner import PairwiseScanner
from core.utils import ScannerConfig
from config.logging_config import get_logger


class OpportunityAggregator:
    """
    Runs one full scan cycle over the hot symbols, collects every fee-net-positive
    opportunity, and alerts/records the ones that clear the threshold and were
    confirmed against the order book.
    """
    def __init__(
        self,
        config: ScannerConfig,
        scanner: PairwiseScanner,
        hot_list: SymbolSource,
        notifier: Notifier,
    ):
        self.config = config
        self.scanner = scanner
        self.hot_list = hot_list
        self.notifier = notifier
        self.logger = get_logger(__name__)
        self.last_results: List[SymbolScanResult] = []

    async def scan_all(self, symbols: Optional[Iterable[str]] = None) -> List[Opportunity]:
        if symbols is None:
            symbols = self.hot_list.get_symbols_to_scan()
        symbols = sorted(set(symbols))

        if not symbols:
            self.logger.debug("No hot coins to scan for arbitrage")
            self.last_results = []
            return []

        self.logger.info(f"Scanning {len(symbols)} hot coins for arbitrage...")

        if self.config.max_concurrent_symbols > 1:
            semaphore = asyncio.Semaphore(self.config.max_concurrent_symbols)

            async def bounded(symbol):
                async with semaphore:
                    return await self._scan_symbol(symbol)

            results = list(await asyncio.gather(*(bounded(s) for s in symbols)))
        else:
            results = [await self._scan_symbol(symbol) for symbol in symbols]

        self.last_results = results

        opportunities = [opp for result in results for opp in result.opportunities]
        skipped = [result for result in results if not result.ok]
        self.logger.success(
            f"Found {len(opportunities)} arbitrage opportunities "
            f"({len(skipped)} of {len(symbols)} symbols skipped)"
        )

        await self._dispatch_alerts(opportunities)
        return opportunities

    async def _scan_symbol(self, symbol: str) -> SymbolScanResult:
        try:
            return SymbolScanResult(symbol=symbol, opportunities=await self.scanner.scan(symbol))
        except Exception as e:
            self.logger.warning(f"Failed to scan arbitrage for {symbol}: {e}")
            self.logger.debug(f"Scan failure details for {symbol}", exc_info=True)
            return SymbolScanResult(symbol=symbol, error=f"{type(e).__name__}: {e}")

    async def _dispatch_alerts(self, opportunities: List[Opportunity]) -> None:
        for opportunity in self.filter_by_threshold(opportunities):
            if not opportunity.order_book_confirmed:
                self.logger.debug(
                    f"Skipping unconfirmed opportunity: {opportunity.symbol} "
                    f"{opportunity.buy_exchange}->{opportunity.sell_exchange}"
                )
                continue

            try:
                await self.notifier.send_alert(opportunity)
            except Exception as e:
                self.logger.error(f"Failed to send alert for {opportunity.symbol}: {e}")

            try:
                await self.hot_list.record_occurrence(opportunity.symbol, opportunity.net_profit_percentage)
            except Exception as e:
                self.logger.error(f"Failed to record arbitrage occurrence for {opportunity.symbol}: {e}")

    # --- Utilities ---

    def sort_by_profit(self, opportunities: List[Opportunity]) -> List[Opportunity]:
        """Stable sort, highest net profit first."""
        return sorted(opportunities, key=lambda opp: opp.net_profit, reverse=True)

    def filter_by_threshold(
        self, opportunities: List[Opportunity], threshold: Optional[float] = None
    ) -> List[Opportunity]:
        if threshold is None:
            threshold = self.config.min_net_profit_percentage
        return [opp for opp in opportunities if opp.net_profit_percentage >= threshold]

    def get_best_opportunity(self, opportunities: List[Opportunity]) -> Optional[Opportunity]:
        if not opportunities:
            return None
        return self.sort_by_profit(opportunities)[0]

    def is_profitable(self, opportunity: Opportunity) -> bool:
        return (
            opportunity.net_profit_percentage >= self.config.min_net_profit_percentage
            and opportunity.net_profit > 0
        )

    def calculate_potential_profit(self, buy_price: float, sell_price: float, total_fees: float) -> float:
        """Net profit percentage of the configured notional for a given spread and cost."""
        trade_amount = self.config.trade_size_usdt
        gross_profit = (sell_price - buy_price) / buy_price * trade_amount
        return (gross_profit - total_fees) / trade_amount * 100
