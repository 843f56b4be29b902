"""
Client settings - read from the environment (and a local .env file)
"""

import os
from typing import Dict, Optional

from dotenv import load_dotenv

load_dotenv()

API_LOCATION = 'https://api.btcmarkets.net'

RATE_LIMIT_10 = 'limit10'
RATE_LIMIT_25 = 'limit25'

# Rate classes: name -> (seconds between permits, burst)
RATE_LIMITS: Dict[str, tuple] = {
    RATE_LIMIT_10: (1.0, 10),   # 10 calls / 10 seconds
    RATE_LIMIT_25: (0.4, 25),   # 25 calls / 10 seconds
}


def _optional_float(value: Optional[str]) -> Optional[float]:
    if value is None or value.strip() == '':
        return None
    return float(value)


def get_settings() -> Dict:
    """Read client settings from the current environment."""
    return {
        'api_key': os.environ.get('BTCMARKETS_API_KEY', ''),
        'api_secret': os.environ.get('BTCMARKETS_API_SECRET', ''),
        'base_url': os.environ.get('BTCMARKETS_BASE_URL', API_LOCATION),
        'timeout': float(os.environ.get('BTCMARKETS_TIMEOUT', 10)),
        'acquire_timeout': _optional_float(os.environ.get('BTCMARKETS_ACQUIRE_TIMEOUT')),
    }

