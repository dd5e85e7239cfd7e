# interfaces.py
"""
Collaborator contracts the arbitrage engine depends on.
The concrete implementations live in core/exchange_manager.py, core/exchange_status.py,
hot_list.py and opportunity_logger.py; tests substitute mocks.
"""

from typing import Any, Dict, List, Optional, Protocol, Set

from data_models import BidAsk, Opportunity, Quote


class PriceSource(Protocol):
    async def get_quotes_across_exchanges(self, trading_pair: str) -> List[Quote]:
        ...

    async def fetch_order_book(self, ex_id: str, symbol: str) -> Optional[Dict[str, Any]]:
        ...

    def get_best_bid_ask(self, order_book: Optional[Dict[str, Any]]) -> Optional[BidAsk]:
        ...

    async def get_trading_fee(self, ex_id: str) -> float:
        ...

    async def get_withdrawal_fee(self, ex_id: str, asset: str) -> float:
        ...


class VenueStatus(Protocol):
    def is_venue_pair_eligible(self, buy_exchange: str, sell_exchange: str, symbol: str) -> bool:
        ...


class SymbolSource(Protocol):
    def get_symbols_to_scan(self) -> Set[str]:
        ...

    async def record_occurrence(self, symbol: str, net_profit_percentage: float) -> None:
        ...


class Notifier(Protocol):
    async def send_alert(self, opportunity: Opportunity) -> None:
        ...
