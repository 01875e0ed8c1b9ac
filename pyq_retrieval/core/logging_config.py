"""
Centralized logging configuration for the PYQ retrieval service.
"""
import logging
import sys
from typing import Optional
from pyq_retrieval.core.config import settings


LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def setup_logging(level: Optional[str] = None) -> logging.Logger:
    """
    Configure the service logger once.

    Args:
        level: Level name, defaults to settings.log_level

    Returns:
        The "pyq_retrieval" logger with a single stdout handler
    """
    log_level = getattr(logging, (level or settings.log_level).upper(), logging.INFO)

    logger = logging.getLogger("pyq_retrieval")
    logger.setLevel(log_level)
    # Uvicorn configures the root logger; keep service lines from printing twice
    logger.propagate = False

    # Remove existing handlers to avoid duplicates on reload
    logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(log_level)
    console_handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt='%Y-%m-%d %H:%M:%S'))
    logger.addHandler(console_handler)

    return logger


# Global logger instance
logger = setup_logging()
