# utils.py

import asyncio
import functools
import os
from dataclasses import dataclass
from typing import Any, Dict, Optional

import ccxt.async_support as ccxt
import yaml

from config.logging_config import get_logger

logger = get_logger(__name__)


# --- Custom Exceptions ---
class ConfigError(Exception):
    """Custom exception for configuration file errors."""
    pass


class ExchangeInitError(Exception):
    """Custom exception for errors during exchange client initialization."""
    pass


# --- Decorator for CCXT Retries ---
def retry_ccxt_call(max_retries: int = 3, delay: float = 1.0):
    """Decorator to retry async CCXT API calls with exponential backoff."""
    def decorator(func):
        @functools.wraps(func)
        async def wrapper(*args, **kwargs):
            wait = delay
            for i in range(max_retries):
                try:
                    return await func(*args, **kwargs)
                except (ccxt.NetworkError, ccxt.ExchangeNotAvailable, ccxt.RequestTimeout) as e:
                    logger.warning(f"CCXT call {func.__name__} failed (network issue): {e}. Retrying... ({i+1}/{max_retries})")
                    if i == max_retries - 1:
                        logger.error(f"CCXT call {func.__name__} failed after {max_retries} retries.")
                        raise
                    await asyncio.sleep(wait)
                    wait *= 2
                except ccxt.ExchangeError as e:
                    logger.debug(f"CCXT call {func.__name__} failed (non-recoverable): {e}")
                    raise
        return wrapper
    return decorator


# --- Scanner Configuration ---
@dataclass(frozen=True)
class ScannerConfig:
    """Read-only scanner settings, built once at startup and passed to the services that need them."""
    trade_size_usdt: float = 1000.0
    min_net_profit_percentage: float = 0.5
    order_book_verification: bool = True
    bid_ask_tolerance: float = 0.001
    quote_currency: str = "USDT"
    scan_interval_s: float = 30.0
    max_concurrent_symbols: int = 1

    @classmethod
    def from_dict(cls, params: Optional[Dict[str, Any]]) -> "ScannerConfig":
        params = params or {}
        defaults = cls()
        try:
            cfg = cls(
                trade_size_usdt=float(params.get('trade_size_usdt', defaults.trade_size_usdt)),
                min_net_profit_percentage=float(params.get('min_net_profit_percentage', defaults.min_net_profit_percentage)),
                order_book_verification=params.get('order_book_verification', defaults.order_book_verification),
                bid_ask_tolerance=float(params.get('bid_ask_tolerance', defaults.bid_ask_tolerance)),
                quote_currency=str(params.get('quote_currency', defaults.quote_currency)).upper(),
                scan_interval_s=float(params.get('scan_interval_s', defaults.scan_interval_s)),
                max_concurrent_symbols=int(params.get('max_concurrent_symbols', defaults.max_concurrent_symbols)),
            )
        except (TypeError, ValueError) as e:
            raise ConfigError(f"CRITICAL ERROR: Invalid value in 'trading_parameters': {e}")

        if not isinstance(cfg.order_book_verification, bool):
            raise ConfigError("CRITICAL ERROR: 'order_book_verification' must be true or false.")
        if cfg.trade_size_usdt <= 0:
            raise ConfigError("CRITICAL ERROR: 'trade_size_usdt' must be positive.")
        if not 0 <= cfg.bid_ask_tolerance < 1:
            raise ConfigError("CRITICAL ERROR: 'bid_ask_tolerance' must be a fraction between 0 and 1.")
        if cfg.max_concurrent_symbols < 1:
            raise ConfigError("CRITICAL ERROR: 'max_concurrent_symbols' must be at least 1.")
        return cfg


# --- Configuration Loading ---
def validate_config(config):
    """Validates the structure of the config file."""
    if not isinstance(config, dict):
        raise ConfigError("CRITICAL ERROR: config.yaml must contain a mapping at the top level.")

    if "trading_parameters" not in config or not isinstance(config["trading_parameters"], dict):
        raise ConfigError("CRITICAL ERROR: Missing or invalid section 'trading_parameters' in config.yaml.")

    required_keys = ['symbols_to_scan', 'trade_size_usdt', 'scan_interval_s']
    for key in required_keys:
        if key not in config['trading_parameters']:
            raise ConfigError(f"CRITICAL ERROR: Missing required key '{key}' in 'trading_parameters'.")

    if not isinstance(config['trading_parameters']['symbols_to_scan'], list):
        raise ConfigError("CRITICAL ERROR: 'symbols_to_scan' must be a list of coin symbols.")

    return True


def load_config(filepath: str = None):
    """Loads and validates the configuration file."""
    if filepath is None:
        base_dir = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))  # project root
        filepath = os.path.join(base_dir, "config", "config.yaml")
    try:
        with open(filepath, 'r') as f:
            config = yaml.safe_load(f)
        validate_config(config)
        return config
    except FileNotFoundError:
        raise ConfigError(f"CRITICAL ERROR: Configuration file '{filepath}' not found.")
    except yaml.YAMLError as e:
        raise ConfigError(f"CRITICAL ERROR: Could not decode '{filepath}'. YAML error: {e}")


def split_symbol(symbol: str):
    """'BTC/USDT' -> ('BTC', 'USDT'); a bare 'BTC' -> ('BTC', None)."""
    if '/' in symbol:
        base, quote = symbol.split('/', 1)
        return base.upper(), quote.upper()
    return symbol.upper(), None
