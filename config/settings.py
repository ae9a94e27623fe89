"""
Centralized Configuration Loading for the crypto backtester.

- Single source of truth for environment variables
- Loads the project root .env once
- Warns (does not fail) when exchange credentials are missing, since
  backtests only need the public market data endpoints

Usage:
    from config.settings import load_config, get_binance_credentials

    # At app startup (call once)
    load_config()

    creds = get_binance_credentials()
"""

import os
from pathlib import Path
from typing import Dict, Optional

# Flag to track if config has been loaded
_CONFIG_LOADED = False

DEFAULT_BINANCE_BASE_URL = 'https://api.binance.com'


def load_config(force_reload: bool = False, env_path: Optional[Path] = None) -> None:
    """
    Load environment variables from the project root .env file.

    Safe to call repeatedly; only the first call (or a forced reload)
    touches the filesystem. A missing .env is not an error because
    deployments usually set variables directly.

    Args:
        force_reload: If True, reload even if already loaded
        env_path: Explicit .env location (defaults to project root)
    """
    global _CONFIG_LOADED

    if _CONFIG_LOADED and not force_reload:
        return

    # Import here to avoid circular imports
    from dotenv import load_dotenv

    if env_path is None:
        project_root = Path(__file__).parent.parent
        env_path = project_root / '.env'

    if env_path.exists():
        load_dotenv(env_path, override=True)

    _CONFIG_LOADED = True

    _validate_required_vars()


def _validate_required_vars(strict: bool = False) -> None:
    """
    Validate that exchange credentials are set.

    Args:
        strict: If True, raise ValueError on missing vars. If False, warn only.

    Raises:
        ValueError: If strict=True and any required variable is missing
    """
    import warnings

    required_vars = [
        'BINANCE_API_KEY',
        'BINANCE_API_SECRET',
    ]

    missing = []
    for var in required_vars:
        value = os.getenv(var)
        if not value or value.strip() == '':
            missing.append(var)

    if missing:
        msg = f"Missing environment variables: {missing}. Signed endpoints will be unavailable."
        if strict:
            raise ValueError(msg + " Check your .env file at project root.")
        else:
            warnings.warn(msg, UserWarning)


def get_binance_credentials() -> Dict[str, Optional[str]]:
    """
    Get Binance API credentials.

    Returns:
        Dict with api_key, api_secret and base_url. Key and secret are
        None when not configured.
    """
    load_config()
    return {
        'api_key': os.getenv('BINANCE_API_KEY') or None,
        'api_secret': os.getenv('BINANCE_API_SECRET') or None,
        'base_url': get_binance_base_url(),
    }


def get_binance_base_url() -> str:
    """Get the Binance REST base URL (overridable for testnet)."""
    load_config()
    return os.getenv('BINANCE_BASE_URL', DEFAULT_BINANCE_BASE_URL).rstrip('/')


def get_log_level() -> str:
    """Get the logging level name used by command-line runners."""
    load_config()
    return os.getenv('LOG_LEVEL', 'INFO').upper()


def is_config_loaded() -> bool:
    """Check if configuration has been loaded."""
    return _CONFIG_LOADED
