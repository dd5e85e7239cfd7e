# valuation.py

import time
from typing import Optional

from data_models import Opportunity
from fee_model import FeeModel
from order_book_verifier import OrderBookVerifier
from core.utils import ScannerConfig
from config.logging_config import get_logger


class Valuation:
    """Turns a priced exchange pair into a fee-net-positive Opportunity, or None."""

    def __init__(self, config: ScannerConfig, fee_model: FeeModel, verifier: OrderBookVerifier):
        self.config = config
        self.fee_model = fee_model
        self.verifier = verifier
        self.logger = get_logger(__name__)

    async def value(
        self,
        symbol: str,
        buy_exchange: str,
        sell_exchange: str,
        buy_price: float,
        sell_price: float,
        trade_amount: Optional[float] = None,
    ) -> Optional[Opportunity]:
        if trade_amount is None:
            trade_amount = self.config.trade_size_usdt

        # Equal prices can never clear fees.
        if sell_price <= buy_price:
            return None

        price_difference = sell_price - buy_price
        percentage_difference = price_difference / buy_price * 100
        estimated_profit = percentage_difference / 100 * trade_amount

        fees = await self.fee_model.compute_fees(symbol, buy_exchange, sell_exchange, buy_price, trade_amount)

        net_profit = estimated_profit - fees.total_fees
        net_profit_percentage = net_profit / trade_amount * 100

        if net_profit <= 0:
            return None

        verification = None
        if self.config.order_book_verification:
            verification = await self.verifier.verify(symbol, buy_exchange, sell_exchange, buy_price, sell_price)

        return Opportunity(
            symbol=symbol,
            buy_exchange=buy_exchange,
            sell_exchange=sell_exchange,
            buy_price=buy_price,
            sell_price=sell_price,
            price_difference=price_difference,
            percentage_difference=percentage_difference,
            estimated_profit=estimated_profit,
            fees=fees,
            net_profit=net_profit,
            net_profit_percentage=net_profit_percentage,
            trade_amount=trade_amount,
            timestamp=int(time.time() * 1000),
            verification=verification,
        )
