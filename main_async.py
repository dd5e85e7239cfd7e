import asyncio
import logging
import os

import ccxt.async_support as ccxt
from dotenv import load_dotenv

from config.logging_config import setup_logging
from core.utils import load_config, ConfigError, ExchangeInitError, ScannerConfig
from core.exchange_manager import AsyncExchangeManager
from core.exchange_status import ExchangeStatusService
from fee_model import FeeModel
from order_book_verifier import OrderBookVerifier
from valuation import Valuation
from scanner import PairwiseScanner
from hot_list import HotList
from opportunity_logger import OpportunityLogger
from aggregator import OpportunityAggregator
from async_bot_engine import AsyncArbitrageScanner


def inject_api_keys(config: dict) -> dict:
    """
    Loads optional API keys from the .env file into the exchanges section.
    ENABLED_EXCHANGES, when set, replaces the configured exchange list.
    """
    load_dotenv()

    exchanges = dict(config.get('exchanges') or {})
    enabled_exchanges_str = os.getenv("ENABLED_EXCHANGES")
    if enabled_exchanges_str:
        enabled = [ex.strip() for ex in enabled_exchanges_str.lower().split(',') if ex.strip()]
        exchanges = {ex_id: exchanges.get(ex_id) or {} for ex_id in enabled}

    if len(exchanges) < 2:
        raise ConfigError("CRITICAL ERROR: At least two exchanges must be configured for arbitrage scanning.")

    for ex_id in list(exchanges):
        ex_config = dict(exchanges[ex_id] or {})
        api_key = os.getenv(f"{ex_id.upper()}_API_KEY")
        api_secret = os.getenv(f"{ex_id.upper()}_SECRET")
        password = os.getenv(f"{ex_id.upper()}_PASSPHRASE")
        if api_key and api_secret:
            ex_config['api_key'] = api_key
            ex_config['api_secret'] = api_secret
        if password:
            ex_config['password'] = password
        exchanges[ex_id] = ex_config

    config['exchanges'] = exchanges
    logging.info(f"Exchanges enabled: {', '.join(exchanges)}")
    return config


def build_scanner(config: dict, exchange_manager: AsyncExchangeManager) -> AsyncArbitrageScanner:
    """Wires every service once; each receives its collaborators explicitly."""
    scanner_config = ScannerConfig.from_dict(config['trading_parameters'])
    hot_list_config = config.get('hot_list') or {}
    status_config = config.get('exchange_status') or {}

    exchange_status = ExchangeStatusService(exchange_manager, ttl_s=float(status_config.get('ttl_s', 600)))
    for entry in status_config.get('suspended') or []:
        exchange_status.suspend(
            entry['exchange'], entry['asset'],
            withdraw=bool(entry.get('withdraw', True)), deposit=bool(entry.get('deposit', True)),
        )

    fee_model = FeeModel(exchange_manager)
    verifier = OrderBookVerifier(exchange_manager, tolerance=scanner_config.bid_ask_tolerance)
    valuation = Valuation(scanner_config, fee_model, verifier)
    scanner = PairwiseScanner(scanner_config, exchange_manager, exchange_status, valuation)

    hot_list = HotList(
        seed_symbols=config['trading_parameters']['symbols_to_scan'],
        max_size=int(hot_list_config.get('size', 20)),
        ttl_s=float(hot_list_config.get('ttl_s', 3600)),
    )
    notifier = OpportunityLogger(config.get('alerts', {}).get('csv_file', 'opportunities.csv'))
    aggregator = OpportunityAggregator(scanner_config, scanner, hot_list, notifier)

    return AsyncArbitrageScanner(config, scanner_config, aggregator, exchange_status)


async def main(config_path: str = None):
    """
    The main entry point for the asynchronous scanner.
    Initializes all components and starts the scan loop.
    """
    exchange_manager = None
    try:
        config = load_config(config_path)
        setup_logging(config.get('logging', {}).get('level', 'INFO'))
        config = inject_api_keys(config)

        scanner_config = ScannerConfig.from_dict(config['trading_parameters'])
        exchange_manager = AsyncExchangeManager(
            config['exchanges'],
            fees_config=config.get('fees'),
            quote_currency=scanner_config.quote_currency,
        )
        await exchange_manager.init_exchanges()

        scanner = build_scanner(config, exchange_manager)
        await scanner.run()

    except (ConfigError, ExchangeInitError, ValueError) as e:
        logging.error(f"Configuration Error: {e}")
    except ccxt.AuthenticationError as e:
        logging.error(f"Authentication Failed: {e}. Please check your API keys and permissions.")
    except Exception as e:
        logging.error(f"An unexpected error occurred during startup: {e}", exc_info=True)
    finally:
        if exchange_manager:
            await exchange_manager.close()


def run():
    try:
        asyncio.run(main(os.getenv("ARB_SCANNER_CONFIG")))
    except KeyboardInterrupt:
        logging.info("Shutdown signal received (Ctrl+C). Exiting gracefully.")


if __name__ == "__main__":
    run()
