#data_models.py

from dataclasses import dataclass, field, asdict
from enum import Enum
from typing import List, Optional


class VenueType(str, Enum):
    CEX = "CEX"
    DEX = "DEX"


@dataclass(frozen=True)
class Quote:
    """A last-trade price snapshot for one symbol on one venue."""
    exchange: str
    symbol: str
    price: float
    volume_24h: float
    timestamp: int
    venue_type: VenueType = VenueType.CEX


@dataclass(frozen=True)
class FeeBreakdown:
    """All costs of one round trip, in quote currency. total_fees is always the sum of the four parts."""
    buy_trading_fee: float
    sell_trading_fee: float
    withdrawal_fee: float
    network_fee: float = 0.0

    @property
    def total_fees(self) -> float:
        return self.buy_trading_fee + self.sell_trading_fee + self.withdrawal_fee + self.network_fee

    def to_dict(self):
        data = asdict(self)
        data['total_fees'] = self.total_fees
        return data


@dataclass(frozen=True)
class BidAsk:
    """Best bid and best ask of one order book."""
    bid: float
    bid_size: float
    ask: float
    ask_size: float


@dataclass(frozen=True)
class OrderBookCheck:
    """
    Result of re-checking an opportunity against live top-of-book.
    Either both books were read (all four prices present) or neither was.
    """
    confirmed: bool
    buy_book: Optional[BidAsk] = None
    sell_book: Optional[BidAsk] = None

    def __post_init__(self):
        if (self.buy_book is None) != (self.sell_book is None):
            raise ValueError("OrderBookCheck needs both books or neither")
        if self.confirmed and self.buy_book is None:
            raise ValueError("A confirmed OrderBookCheck must carry both books")

    @classmethod
    def unconfirmed(cls) -> "OrderBookCheck":
        return cls(confirmed=False)

    @property
    def buy_bid(self) -> Optional[float]:
        return self.buy_book.bid if self.buy_book else None

    @property
    def buy_ask(self) -> Optional[float]:
        return self.buy_book.ask if self.buy_book else None

    @property
    def sell_bid(self) -> Optional[float]:
        return self.sell_book.bid if self.sell_book else None

    @property
    def sell_ask(self) -> Optional[float]:
        return self.sell_book.ask if self.sell_book else None


@dataclass(frozen=True)
class Opportunity:
    """A fee-net-positive cross-exchange arbitrage opportunity for a fixed trade notional."""
    symbol: str
    buy_exchange: str
    sell_exchange: str
    buy_price: float
    sell_price: float
    price_difference: float
    percentage_difference: float
    estimated_profit: float
    fees: FeeBreakdown
    net_profit: float
    net_profit_percentage: float
    trade_amount: float
    timestamp: int
    verification: Optional[OrderBookCheck] = None

    @property
    def order_book_confirmed(self) -> bool:
        return self.verification is not None and self.verification.confirmed

    def to_dict(self):
        check = self.verification or OrderBookCheck.unconfirmed()
        return {
            'symbol': self.symbol,
            'buy_exchange': self.buy_exchange,
            'sell_exchange': self.sell_exchange,
            'buy_price': self.buy_price,
            'sell_price': self.sell_price,
            'price_difference': self.price_difference,
            'percentage_difference': self.percentage_difference,
            'estimated_profit': self.estimated_profit,
            'fees': self.fees.to_dict(),
            'net_profit': self.net_profit,
            'net_profit_percentage': self.net_profit_percentage,
            'trade_amount': self.trade_amount,
            'timestamp': self.timestamp,
            'order_book_confirmed': self.order_book_confirmed,
            'buy_bid': check.buy_bid,
            'buy_ask': check.buy_ask,
            'sell_bid': check.sell_bid,
            'sell_ask': check.sell_ask,
        }


@dataclass
class SymbolScanResult:
    """Outcome of scanning one symbol: a list of opportunities, or the reason it was skipped."""
    symbol: str
    opportunities: List[Opportunity] = field(default_factory=list)
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None
