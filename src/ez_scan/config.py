"""Configuration defaults and environment overrides."""

import os
from typing import Dict, Optional

from .expression.symbols import DEFAULT_ALIASES, SymbolTable


def default_config() -> Dict:
    """Default configuration."""
    return {
        'backend': {
            'url': None,
            'api_key': '',
            'path': '/scan',
            'timeout': 30,
        },
        'executor': {
            'timeout': 30.0,
            'cache_ttl': 0.0,
        },
        'scan': {
            'market': 'india',
        },
        'symbols': {
            'aliases': dict(DEFAULT_ALIASES),
        },
        'logging': {
            'level': 'INFO',
            'file': None,
        },
    }


def config_from_env() -> Dict:
    """Build config dict from environment variables."""
    config: Dict = {}

    # Backend
    backend_url = os.getenv('EZSCAN_BACKEND_URL', '').strip()
    api_key = os.getenv('EZSCAN_API_KEY', '').strip()
    if backend_url or api_key:
        config['backend'] = {}
        if backend_url:
            config['backend']['url'] = backend_url
        if api_key:
            config['backend']['api_key'] = api_key

    # Executor
    timeout = os.getenv('EZSCAN_TIMEOUT', '').strip()
    cache_ttl = os.getenv('EZSCAN_CACHE_TTL', '').strip()
    if timeout or cache_ttl:
        config['executor'] = {}
        if timeout:
            config['executor']['timeout'] = float(timeout)
            config['backend'] = {**config.get('backend', {}), 'timeout': float(timeout)}
        if cache_ttl:
            config['executor']['cache_ttl'] = float(cache_ttl)

    # Scan defaults
    market = os.getenv('EZSCAN_MARKET', '').strip()
    if market:
        config['scan'] = {'market': market}

    # Symbol aliases, e.g. "c=close,v=volume"
    symbols_raw = os.getenv('EZSCAN_SYMBOLS', '').strip()
    if symbols_raw:
        aliases = dict(DEFAULT_ALIASES)
        aliases.update(SymbolTable.from_string(symbols_raw).aliases)
        config['symbols'] = {'aliases': aliases}

    # Logging
    log_level = os.getenv('EZSCAN_LOG_LEVEL', '').strip().upper()
    log_file = os.getenv('EZSCAN_LOG_FILE', '').strip()
    if log_level or log_file:
        config['logging'] = {}
        if log_level:
            config['logging']['level'] = log_level
        if log_file:
            config['logging']['file'] = log_file

    return config


def merge_config(base: Dict, overrides: Optional[Dict]) -> Dict:
    """Merge *overrides* into *base* one section deep."""
    if overrides:
        for key, val in overrides.items():
            if isinstance(val, dict) and key in base and isinstance(base[key], dict):
                base[key].update(val)
            else:
                base[key] = val
    return base


def load_config(overrides: Optional[Dict] = None) -> Dict:
    """Defaults, then environment, then explicit overrides."""
    config = merge_config(default_config(), config_from_env())
    return merge_config(config, overrides)
