import asyncio
import time
from typing import Any, Dict, List, Optional

from aggregator import OpportunityAggregator
from core.exchange_status import ExchangeStatusService
from core.utils import ScannerConfig
from config.logging_config import get_logger
from data_models import Opportunity


class AsyncArbitrageScanner:
    """
    The scan loop: runs one aggregator cycle per interval until a stop
    condition is met or the task is cancelled. A cycle always runs to completion.
    """
    def __init__(
        self,
        config: Dict[str, Any],
        scanner_config: ScannerConfig,
        aggregator: OpportunityAggregator,
        exchange_status: Optional[ExchangeStatusService] = None,
    ):
        self.config = config
        self.scanner_config = scanner_config
        self.aggregator = aggregator
        self.exchange_status = exchange_status
        self.logger = get_logger(__name__)

        self.stop_conditions = self.config.get('stop_conditions') or {}

        # --- Scanner State ---
        self.is_running = False
        self.start_time = None
        self.cycles_completed = 0
        self.last_opportunities: List[Opportunity] = []

    async def run(self):
        """The main async execution loop."""
        self.is_running = True
        self.start_time = time.time()
        self.logger.info("Starting asynchronous arbitrage scanner...")

        while self.is_running:
            try:
                if self._check_stop_conditions():
                    self.is_running = False
                    continue

                await self.run_cycle()

                if self._check_stop_conditions():
                    self.is_running = False
                    continue

                self.logger.info(f"Waiting for {self.scanner_config.scan_interval_s} seconds until next scan...")
                await asyncio.sleep(self.scanner_config.scan_interval_s)

            except asyncio.CancelledError:
                self.logger.info("Scanner run task was cancelled.")
                self.is_running = False
            except Exception as e:
                self.logger.error(f"An error occurred in the main scan loop: {e}", exc_info=True)
                self.is_running = False

        self.logger.info(f"Scanner loop finished after {self.cycles_completed} cycle(s).")

    async def run_cycle(self) -> List[Opportunity]:
        self.logger.info("--- Starting new scan cycle ---")
        if self.exchange_status is not None:
            await self.exchange_status.refresh()

        opportunities = await self.aggregator.scan_all()
        self.last_opportunities = opportunities
        self.cycles_completed += 1

        best = self.aggregator.get_best_opportunity(opportunities)
        if best:
            self.logger.info(
                f"Best opportunity: {best.symbol} {best.buy_exchange}->{best.sell_exchange} "
                f"net ${best.net_profit:.4f} ({best.net_profit_percentage:.3f}%), "
                f"confirmed={best.order_book_confirmed}"
            )
        else:
            self.logger.info("No profitable opportunities found in this cycle.")
        return opportunities

    def _check_stop_conditions(self) -> bool:
        if not self.stop_conditions:
            return False

        max_cycles = self.stop_conditions.get('max_cycles')
        if max_cycles is not None and self.cycles_completed >= max_cycles:
            self.logger.info(f"Stop condition met: Maximum cycles ({max_cycles}) reached.")
            return True

        run_duration_s = self.stop_conditions.get('run_duration_s')
        if run_duration_s is not None and (time.time() - self.start_time) >= run_duration_s:
            self.logger.info(f"Stop condition met: Maximum run duration ({run_duration_s}s) reached.")
            return True

        return False

    def stop(self):
        self.is_running = False
