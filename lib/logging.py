"""
Logging module - shared logger setup
"""
import logging

LOGGER_NAME = "hms"
LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def setup_logging(level: str = "INFO") -> logging.Logger:
    """Configure the application logger once (idempotent)"""
    root = logging.getLogger(LOGGER_NAME)
    root.setLevel(level.upper())

    if not root.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        root.addHandler(handler)
    return root


def get_logger(name: str) -> logging.Logger:
    """Child logger under the application namespace"""
    return logging.getLogger(f"{LOGGER_NAME}.{name}")
