"""
Config package for the crypto backtester.

Provides centralized configuration loading from root .env file.
"""

from config.settings import (
    load_config,
    get_binance_credentials,
    get_binance_base_url,
    get_log_level,
    is_config_loaded,
)

__all__ = [
    'load_config',
    'get_binance_credentials',
    'get_binance_base_url',
    'get_log_level',
    'is_config_loaded',
]
