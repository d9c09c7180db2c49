"""Utility functions for the dashboard."""
import logging
import time
from datetime import datetime
from typing import Optional

from coinwatch.config import LOG_DIR


def setup_logger(name: str = __name__) -> logging.Logger:
    """Set up and return a logger instance."""
    log_file = LOG_DIR / f"dashboard_{datetime.now().strftime('%Y%m%d')}.log"

    logger = logging.getLogger(name)
    logger.setLevel(logging.INFO)

    # Avoid duplicate handlers
    if logger.handlers:
        return logger

    # File handler
    file_handler = logging.FileHandler(log_file, encoding='utf-8')
    file_handler.setLevel(logging.INFO)

    # Console handler
    console_handler = logging.StreamHandler()
    console_handler.setLevel(logging.INFO)

    # Formatter
    formatter = logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )
    file_handler.setFormatter(formatter)
    console_handler.setFormatter(formatter)

    logger.addHandler(file_handler)
    logger.addHandler(console_handler)

    return logger


def now_ms() -> int:
    """Current wall-clock time in epoch milliseconds."""
    return int(time.time() * 1000)


def format_currency(value: Optional[float]) -> str:
    """Format a USD price, keeping more precision for sub-dollar assets."""
    if value is None:
        return "—"
    if abs(value) < 1:
        return f"${value:,.4f}"
    return f"${value:,.2f}"


def format_change(value: Optional[float]) -> str:
    """Format a signed 24h percentage change."""
    if value is None:
        return "—"
    return f"{value:+.2f}%"
