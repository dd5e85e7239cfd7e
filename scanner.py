# scanner.py

from itertools import combinations
from typing import List

from data_models import Opportunity
from interfaces import PriceSource, VenueStatus
from valuation import Valuation
from core.utils import ScannerConfig
from config.logging_config import get_logger


class PairwiseScanner:
    """
    Compares one symbol's price on every pair of exchanges that list it.
    n quotes give n*(n-1)/2 comparisons; the cheaper venue of each pair is the buy side.
    """
    def __init__(
        self,
        config: ScannerConfig,
        price_source: PriceSource,
        venue_status: VenueStatus,
        valuation: Valuation,
    ):
        self.config = config
        self.price_source = price_source
        self.venue_status = venue_status
        self.valuation = valuation
        self.logger = get_logger(__name__)
        self.last_pair_evaluations = 0

    async def scan(self, symbol: str) -> List[Opportunity]:
        self.last_pair_evaluations = 0
        trading_pair = f"{symbol}/{self.config.quote_currency}"
        quotes = await self.price_source.get_quotes_across_exchanges(trading_pair)

        if len(quotes) < 2:
            self.logger.debug(f"{trading_pair}: only {len(quotes)} quote(s), nothing to compare.")
            return []

        opportunities = []
        for quote1, quote2 in combinations(quotes, 2):
            self.last_pair_evaluations += 1

            if quote1.price < quote2.price:
                buy, sell = quote1, quote2
            else:
                buy, sell = quote2, quote1

            if not self.venue_status.is_venue_pair_eligible(buy.exchange, sell.exchange, symbol):
                self.logger.debug(f"{symbol}: {buy.exchange}->{sell.exchange} vetoed (deposit/withdrawal suspended).")
                continue

            opportunity = await self.valuation.value(
                symbol, buy.exchange, sell.exchange, buy.price, sell.price, self.config.trade_size_usdt
            )
            if opportunity is not None:
                opportunities.append(opportunity)

        return opportunities
