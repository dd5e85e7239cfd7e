# logging_config.py

import logging
import json
from logging.handlers import RotatingFileHandler

# --- Custom Log Levels ---
TRADE = 25
SUCCESS = 26


def setup_custom_log_levels():
    """
    Adds custom TRADE and SUCCESS log levels and methods to Python's logging.
    Safe to call repeatedly; both the scanner and the test suite call it.
    """
    if not hasattr(logging, 'TRADE'):
        logging.addLevelName(TRADE, "TRADE")
        logging.TRADE = TRADE

    if not hasattr(logging, 'SUCCESS'):
        logging.addLevelName(SUCCESS, "SUCCESS")
        logging.SUCCESS = SUCCESS

    def trade(self, message, *args, **kws):
        if self.isEnabledFor(TRADE):
            self._log(TRADE, message, args, **kws)

    def success(self, message, *args, **kws):
        if self.isEnabledFor(SUCCESS):
            self._log(SUCCESS, message, args, **kws)

    if not hasattr(logging.Logger, 'trade'):
        logging.Logger.trade = trade

    if not hasattr(logging.Logger, 'success'):
        logging.Logger.success = success


def get_logger(name: str) -> logging.Logger:
    """Returns a module logger with the TRADE/SUCCESS helpers available."""
    setup_custom_log_levels()
    return logging.getLogger(name)


# --- JSON Formatter for Structured Logging ---
class JsonFormatter(logging.Formatter):
    """Formats log records into a JSON string."""
    def format(self, record):
        log_object = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "message": record.getMessage(),
            "module": record.module,
            "funcName": record.funcName,
            "lineNo": record.lineno
        }
        if record.exc_info:
            log_object['exc_info'] = self.formatException(record.exc_info)
        return json.dumps(log_object)


def setup_logging(level: str = "INFO", log_file: str = "scanner.log", json_log_file: str = "scanner_structured.log"):
    """Configures the root logger for dual file output (human-readable and JSON) plus console."""
    setup_custom_log_levels()

    logger = logging.getLogger()
    logger.setLevel(getattr(logging, str(level).upper(), logging.INFO))

    if logger.hasHandlers():
        logger.handlers.clear()

    # --- Human-Readable Log File Handler ---
    log_format_string = '%(asctime)s - %(levelname)s - [%(module)s:%(lineno)d] - %(message)s'
    human_formatter = logging.Formatter(log_format_string)
    file_handler = RotatingFileHandler(log_file, maxBytes=5*1024*1024, backupCount=2)
    file_handler.setFormatter(human_formatter)
    logger.addHandler(file_handler)

    # --- Structured JSON Log File Handler ---
    json_handler = RotatingFileHandler(json_log_file, maxBytes=5*1024*1024, backupCount=2)
    json_handler.setFormatter(JsonFormatter())
    logger.addHandler(json_handler)

    # --- Console Handler ---
    console_handler = logging.StreamHandler()
    console_handler.setFormatter(human_formatter)
    logger.addHandler(console_handler)

    # ccxt is chatty at DEBUG
    logging.getLogger("ccxt").setLevel(logging.WARNING)

    logging.info("Logging configured with human-readable, JSON, and console outputs.")
