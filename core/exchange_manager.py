import asyncio
import time
from typing import Any, Dict, List, Optional

import ccxt.async_support as ccxt

from core.utils import retry_ccxt_call, split_symbol, ExchangeInitError
from config.logging_config import get_logger
from data_models import BidAsk, Quote, VenueType

DEFAULT_TRADING_FEE = 0.001  # 0.1% taker


class AsyncExchangeManager:
    """
    Asynchronous read-only access to every configured exchange through ccxt:
    tickers across venues, order books, trading and withdrawal fees.
    Public market data needs no API keys; keys are passed through when present.
    """

    def __init__(self, exchanges_config: Dict[str, Any], fees_config: Optional[Dict[str, Any]] = None,
                 quote_currency: str = "USDT", order_book_limit: int = 10):
        self.logger = get_logger(__name__)
        self.exchanges: Dict[str, ccxt.Exchange] = {}
        self.quote_currency = quote_currency.upper()
        self.order_book_limit = order_book_limit

        fees_config = fees_config or {}
        self.default_trading_fee = float(fees_config.get('default_trading_fee', DEFAULT_TRADING_FEE))
        self.trading_fees: Dict[str, float] = {
            ex_id: float(rate) for ex_id, rate in (fees_config.get('trading_fees') or {}).items()
        }
        # {exchange: {asset: amount_in_asset}}, '*' matches any exchange
        self.withdrawal_fees: Dict[str, Dict[str, float]] = {
            ex_id: {asset.upper(): float(amount) for asset, amount in (assets or {}).items()}
            for ex_id, assets in (fees_config.get('withdrawal_fees') or {}).items()
        }
        self.default_withdrawal_fee = float(fees_config.get('default_withdrawal_fee', 0.0))

        self._currencies: Dict[str, Dict[str, Any]] = {}

        self._initialize_clients(exchanges_config or {})

    # ----------------------------------------------------------------------
    # CLIENT INIT
    # ----------------------------------------------------------------------
    def _initialize_clients(self, exchanges_config: Dict[str, Any]):
        for ex_id, ex_config in exchanges_config.items():
            ex_config = ex_config or {}
            try:
                exchange_class = getattr(ccxt, ex_id)
            except AttributeError:
                raise ExchangeInitError(f"Exchange '{ex_id}' is not supported by ccxt.")

            params = {'enableRateLimit': True, 'options': {'defaultType': 'spot'}}
            if ex_config.get('api_key') and ex_config.get('api_secret'):
                params['apiKey'] = ex_config['api_key']
                params['secret'] = ex_config['api_secret']
            if ex_config.get('password'):
                params['password'] = ex_config['password']

            try:
                exchange = exchange_class(params)
            except Exception as e:
                raise ExchangeInitError(f"Failed to initialize exchange '{ex_id}': {e}")

            if ex_config.get('sandbox'):
                try:
                    exchange.set_sandbox_mode(True)
                    self.logger.info(f"'{ex_id}' set to sandbox mode.")
                except ccxt.NotSupported:
                    self.logger.warning(f"Exchange '{ex_id}' does not support set_sandbox_mode().")

            self.exchanges[ex_id] = exchange
            self.logger.info(f"Initialized async exchange client: {ex_id}")

    async def init_exchanges(self):
        """Loads markets for all exchanges; venues that fail are dropped from the scan."""
        self.logger.info("Loading markets for all exchanges...")
        ex_ids = list(self.exchanges.keys())
        results = await asyncio.gather(
            *(self._load_markets(self.exchanges[ex_id]) for ex_id in ex_ids), return_exceptions=True
        )
        for ex_id, result in zip(ex_ids, results):
            if isinstance(result, ccxt.AuthenticationError):
                raise result
            if isinstance(result, Exception):
                self.logger.error(f"Error loading markets for {ex_id}: {result}. Dropping it from the scan.")
                await self.exchanges.pop(ex_id).close()
        if len(self.exchanges) < 2:
            raise ExchangeInitError(
                f"At least two exchanges are needed for arbitrage, only {len(self.exchanges)} loaded."
            )
        self.logger.info(f"Markets loaded for: {', '.join(self.exchanges)}")

    @retry_ccxt_call()
    async def _load_markets(self, exchange: ccxt.Exchange):
        return await exchange.load_markets()

    def _client(self, ex_id: str) -> ccxt.Exchange:
        if ex_id not in self.exchanges:
            raise ValueError(f"Unknown exchange id: {ex_id}")
        return self.exchanges[ex_id]

    def _pair(self, symbol: str) -> str:
        base, quote = split_symbol(symbol)
        return f"{base}/{quote or self.quote_currency}"

    # ----------------------------------------------------------------------
    # MARKET DATA
    # ----------------------------------------------------------------------
    @retry_ccxt_call()
    async def _fetch_ticker(self, exchange: ccxt.Exchange, pair: str) -> Dict[str, Any]:
        return await exchange.fetch_ticker(pair)

    async def get_quotes_across_exchanges(self, trading_pair: str) -> List[Quote]:
        """Fetches the pair's ticker concurrently on every exchange that lists it."""
        pair = self._pair(trading_pair)
        listing = {
            ex_id: ex for ex_id, ex in self.exchanges.items()
            if not ex.markets or pair in ex.markets
        }
        if not listing:
            return []

        results = await asyncio.gather(
            *(self._fetch_ticker(ex, pair) for ex in listing.values()), return_exceptions=True
        )

        quotes = []
        for ex_id, ticker in zip(listing.keys(), results):
            if isinstance(ticker, Exception):
                self.logger.debug(f"Could not fetch ticker for {pair} on {ex_id}: {ticker}")
                continue
            price = ticker.get('last') if ticker else None
            if not price or price <= 0:
                self.logger.debug(f"No usable last price for {pair} on {ex_id}.")
                continue
            quotes.append(Quote(
                exchange=ex_id,
                symbol=pair,
                price=float(price),
                volume_24h=float(ticker.get('quoteVolume') or 0.0),
                timestamp=int(ticker.get('timestamp') or time.time() * 1000),
                venue_type=VenueType.CEX,
            ))
        return quotes

    @retry_ccxt_call()
    async def _fetch_order_book_raw(self, exchange: ccxt.Exchange, pair: str) -> Dict[str, Any]:
        return await exchange.fetch_order_book(pair, limit=self.order_book_limit)

    async def fetch_order_book(self, ex_id: str, symbol: str) -> Optional[Dict[str, Any]]:
        """Fetches the order book for a bare coin or BASE/QUOTE pair on one exchange."""
        pair = self._pair(symbol)
        ob = await self._fetch_order_book_raw(self._client(ex_id), pair)
        if ob:
            ob["exchange"] = ex_id
            ob["symbol"] = pair
        return ob

    @staticmethod
    def get_best_bid_ask(order_book: Optional[Dict[str, Any]]) -> Optional[BidAsk]:
        """Top of book, or None when either side is empty."""
        if not order_book or not order_book.get("bids") or not order_book.get("asks"):
            return None
        best_bid, best_ask = order_book["bids"][0], order_book["asks"][0]
        return BidAsk(
            bid=float(best_bid[0]),
            bid_size=float(best_bid[1]),
            ask=float(best_ask[0]),
            ask_size=float(best_ask[1]),
        )

    # ----------------------------------------------------------------------
    # FEES
    # ----------------------------------------------------------------------
    async def get_trading_fee(self, ex_id: str) -> float:
        """Configured rate first, then the exchange's advertised taker fee, then the default."""
        if ex_id in self.trading_fees:
            return self.trading_fees[ex_id]

        exchange = self.exchanges.get(ex_id)
        if exchange is not None:
            taker = (exchange.fees or {}).get('trading', {}).get('taker')
            if taker is not None:
                return float(taker)

        return self.default_trading_fee

    @retry_ccxt_call()
    async def _fetch_currencies(self, exchange: ccxt.Exchange) -> Dict[str, Any]:
        return await exchange.fetch_currencies()

    async def get_currencies(self, ex_id: str) -> Dict[str, Any]:
        """ccxt currency info (fees, deposit/withdraw flags), fetched once per exchange."""
        if ex_id not in self._currencies:
            exchange = self._client(ex_id)
            currencies = {}
            if exchange.has.get('fetchCurrencies'):
                try:
                    currencies = await self._fetch_currencies(exchange) or {}
                except Exception as e:
                    self.logger.warning(f"Could not fetch currencies for {ex_id}: {e}")
                    currencies = exchange.currencies or {}
            self._currencies[ex_id] = currencies
        return self._currencies[ex_id]

    def invalidate_currencies(self, ex_id: Optional[str] = None) -> None:
        if ex_id is None:
            self._currencies.clear()
        else:
            self._currencies.pop(ex_id, None)

    async def get_withdrawal_fee(self, ex_id: str, asset: str) -> float:
        """Withdrawal fee in units of the asset; falls back to configured values."""
        asset = asset.upper()
        for key in (ex_id, '*'):
            configured = self.withdrawal_fees.get(key, {})
            if asset in configured:
                return configured[asset]

        if ex_id in self.exchanges:
            currency = (await self.get_currencies(ex_id)).get(asset) or {}
            fee = currency.get('fee')
            if fee is not None:
                return float(fee)

        return self.default_withdrawal_fee

    # ----------------------------------------------------------------------
    # SHUTDOWN
    # ----------------------------------------------------------------------
    async def close(self):
        """Gracefully closes all exchange connections."""
        self.logger.info("Closing all exchange connections...")
        results = await asyncio.gather(*(ex.close() for ex in self.exchanges.values()), return_exceptions=True)
        for ex_id, result in zip(self.exchanges.keys(), results):
            if isinstance(result, Exception):
                self.logger.warning(f"Failed to close {ex_id}: {result}")
        self.logger.info("All exchange connections closed.")
