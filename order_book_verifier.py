# order_book_verifier.py

import asyncio
import math

from data_models import OrderBookCheck
from interfaces import PriceSource
from config.logging_config import get_logger

DEFAULT_TOLERANCE = 0.001  # 0.1%


def _at_most(value: float, limit: float) -> bool:
    return value <= limit or math.isclose(value, limit, rel_tol=1e-12)


def _at_least(value: float, limit: float) -> bool:
    return value >= limit or math.isclose(value, limit, rel_tol=1e-12)


class OrderBookVerifier:
    """
    Re-checks an opportunity found on ticker prices against the live top of book.

    We buy at the buy venue's best ask and sell at the sell venue's best bid, so
    the opportunity holds only while that ask is still at or below the buy price
    and that bid still at or above the sell price, within the tolerance band.
    Never raises: anything that goes wrong yields an unconfirmed result.
    """
    def __init__(self, price_source: PriceSource, tolerance: float = DEFAULT_TOLERANCE):
        self.price_source = price_source
        self.tolerance = tolerance
        self.logger = get_logger(__name__)

    async def verify(
        self,
        symbol: str,
        buy_exchange: str,
        sell_exchange: str,
        buy_price: float,
        sell_price: float,
    ) -> OrderBookCheck:
        try:
            buy_book, sell_book = await asyncio.gather(
                self.price_source.fetch_order_book(buy_exchange, symbol),
                self.price_source.fetch_order_book(sell_exchange, symbol),
            )

            buy_top = self.price_source.get_best_bid_ask(buy_book)
            sell_top = self.price_source.get_best_bid_ask(sell_book)

            if buy_top is None or sell_top is None:
                self.logger.debug(f"Order book verification failed for {symbol}: missing data")
                return OrderBookCheck.unconfirmed()

            buy_ask_valid = _at_most(buy_top.ask, buy_price * (1 + self.tolerance))
            sell_bid_valid = _at_least(sell_top.bid, sell_price * (1 - self.tolerance))
            confirmed = buy_ask_valid and sell_bid_valid

            if not confirmed:
                self.logger.debug(
                    f"Order book verification failed for {symbol}: "
                    f"buy ask {buy_top.ask} vs price {buy_price} on {buy_exchange}, "
                    f"sell bid {sell_top.bid} vs price {sell_price} on {sell_exchange}"
                )

            return OrderBookCheck(confirmed=confirmed, buy_book=buy_top, sell_book=sell_top)
        except Exception as e:
            self.logger.debug(f"Order book verification error for {symbol}: {e}")
            return OrderBookCheck.unconfirmed()
