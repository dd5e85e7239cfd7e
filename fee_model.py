# fee_model.py

from data_models import FeeBreakdown
from interfaces import PriceSource
from core.utils import split_symbol
from config.logging_config import get_logger


class FeeModel:
    """
    Prices every cost of a round trip for a fixed notional:
    taker fee on both legs, the buy venue's withdrawal fee (quoted in the base
    asset, converted at the buy price) and a network fee that stays zero for
    exchange-to-exchange transfers.
    """
    def __init__(self, price_source: PriceSource):
        self.price_source = price_source
        self.logger = get_logger(__name__)

    async def compute_fees(
        self,
        symbol: str,
        buy_exchange: str,
        sell_exchange: str,
        buy_price: float,
        trade_amount: float,
    ) -> FeeBreakdown:
        buy_rate = await self.price_source.get_trading_fee(buy_exchange)
        sell_rate = await self.price_source.get_trading_fee(sell_exchange)

        base_asset, _ = split_symbol(symbol)
        withdrawal_fee_in_coin = await self.price_source.get_withdrawal_fee(buy_exchange, base_asset)

        fees = FeeBreakdown(
            buy_trading_fee=trade_amount * buy_rate,
            sell_trading_fee=trade_amount * sell_rate,
            withdrawal_fee=withdrawal_fee_in_coin * buy_price,
            network_fee=0.0,
        )
        self.logger.debug(
            f"Fees for {symbol} {buy_exchange}->{sell_exchange}: "
            f"buy={fees.buy_trading_fee:.4f} sell={fees.sell_trading_fee:.4f} "
            f"withdrawal={fees.withdrawal_fee:.4f} total={fees.total_fees:.4f}"
        )
        return fees
