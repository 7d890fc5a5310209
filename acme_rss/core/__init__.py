"""
Core utilities for acme-rss: configuration management and structured logging.
"""

from .config import Settings, get_settings
from .logging import configure_logging, get_logger, log_exception

__all__ = [
    # Configuration
    "Settings",
    "get_settings",
    # Logging
    "configure_logging",
    "get_logger",
    "log_exception",
]
