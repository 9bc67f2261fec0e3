"""Utility modules for redeployer."""

from redeployer.utils.config_loader import ConfigLoaderError, load_settings
from redeployer.utils.logging import JsonFormatter, configure_logging, get_logger

__all__ = [
    "ConfigLoaderError",
    "JsonFormatter",
    "configure_logging",
    "get_logger",
    "load_settings",
]
