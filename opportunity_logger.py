# opportunity_logger.py

import logging
import os
from logging.handlers import RotatingFileHandler

from config.logging_config import get_logger
from data_models import Opportunity

CSV_HEADER = (
    "timestamp_ms,symbol,buy_exchange,sell_exchange,buy_price,sell_price,"
    "trade_amount,total_fees,net_profit,net_profit_pct,buy_ask,sell_bid"
)


class OpportunityLogger:
    """
    Alert sink for confirmed opportunities: a TRADE-level line on the main log
    and a row in a structured CSV file.
    """
    def __init__(self, filename: str = "opportunities.csv"):
        self.filename = filename
        self.log = get_logger(__name__)
        self.csv_logger = self._setup_logger()
        self._write_header()

    def _setup_logger(self) -> logging.Logger:
        csv_logger = logging.getLogger(f'opportunity_csv.{os.path.abspath(self.filename)}')
        csv_logger.setLevel(logging.INFO)
        csv_logger.propagate = False

        if not csv_logger.handlers:
            handler = RotatingFileHandler(self.filename, maxBytes=5*1024*1024, backupCount=2)
            handler.setFormatter(logging.Formatter('%(message)s'))
            csv_logger.addHandler(handler)

        return csv_logger

    def _write_header(self):
        """Writes the CSV header if the file is new or empty."""
        try:
            with open(self.filename, 'r') as f:
                has_content = f.read(1)
        except FileNotFoundError:
            has_content = ''
        if not has_content:
            self.csv_logger.info(CSV_HEADER)

    async def send_alert(self, opportunity: Opportunity) -> None:
        check = opportunity.verification
        self.log.trade(
            f"ARBITRAGE {opportunity.symbol}: buy {opportunity.buy_exchange} @ {opportunity.buy_price:.8g}, "
            f"sell {opportunity.sell_exchange} @ {opportunity.sell_price:.8g} | "
            f"net ${opportunity.net_profit:.2f} ({opportunity.net_profit_percentage:.3f}%) "
            f"on ${opportunity.trade_amount:,.0f}, fees ${opportunity.fees.total_fees:.2f}"
        )
        self.csv_logger.info(
            f"{opportunity.timestamp},"
            f"{opportunity.symbol},"
            f"{opportunity.buy_exchange},"
            f"{opportunity.sell_exchange},"
            f"{opportunity.buy_price:.8f},"
            f"{opportunity.sell_price:.8f},"
            f"{opportunity.trade_amount:.2f},"
            f"{opportunity.fees.total_fees:.8f},"
            f"{opportunity.net_profit:.8f},"
            f"{opportunity.net_profit_percentage:.6f},"
            f"{check.buy_ask if check and check.buy_ask is not None else ''},"
            f"{check.sell_bid if check and check.sell_bid is not None else ''}"
        )
