"""
Pytest configuration and shared fixtures for the BTC Markets client tests.

The HTTP session is always a mock: no test talks to the exchange.
"""

import json
from typing import Any, Optional
from unittest.mock import Mock

import pytest
import requests

from btcmarkets.client import BTCMarketsClient
from btcmarkets.rate_limiter import RateLimiterGroup

TEST_API_KEY = 'test-api-key'
# base64 of b"secret-key-for-tests"
TEST_API_SECRET = 'c2VjcmV0LWtleS1mb3ItdGVzdHM='
TEST_SECRET_BYTES = b'secret-key-for-tests'
TEST_TIMESTAMP = '1500000000000'


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line("markers", "slow: mark test as slow running (real timers)")


def make_response(payload: Any = None, status_code: int = 200, text: Optional[str] = None) -> Mock:
    """Build a stand-in for requests.Response."""
    response = Mock(spec=requests.Response)
    response.status_code = status_code
    if text is not None:
        response.text = text
        try:
            decoded = json.loads(text)
        except ValueError as e:
            response.json.side_effect = ValueError(str(e))
        else:
            response.json.return_value = decoded
    else:
        response.text = json.dumps(payload)
        response.json.return_value = payload
    return response


def fast_rate_limiters() -> RateLimiterGroup:
    """Rate classes with millisecond intervals so tests do not crawl."""
    return RateLimiterGroup({
        'limit10': (0.001, 10),
        'limit25': (0.001, 25),
    })


@pytest.fixture
def session() -> Mock:
    """Mock requests.Session."""
    return Mock(spec=requests.Session)


@pytest.fixture
def client(session, monkeypatch):
    """Client wired to the mock session with a fixed timestamp."""
    client = BTCMarketsClient(
        api_key=TEST_API_KEY,
        api_secret=TEST_API_SECRET,
        session=session,
        rate_limiters=fast_rate_limiters(),
    )
    monkeypatch.setattr(client, '_get_timestamp', lambda: TEST_TIMESTAMP)
    yield client
    client.close()


# Sample payloads, shaped like the exchange's responses

@pytest.fixture
def order_payload() -> dict:
    return {
        'id': 1003245675,
        'currency': 'AUD',
        'instrument': 'BTC',
        'orderSide': 'Bid',
        'ordertype': 'Limit',
        'creationTime': 1378862733366,
        'status': 'Placed',
        'errorMessage': None,
        'price': 13000000000,
        'volume': 10000000,
        'openVolume': 10000000,
        'clientRequestId': None,
        'trades': [
            {
                'id': 374367855,
                'creationTime': 1492232900701,
                'description': None,
                'price': 13000000000,
                'volume': 5000000,
                'fee': 110500,
            }
        ],
    }


@pytest.fixture
def tick_payload() -> dict:
    return {
        'bestBid': 844.0,
        'bestAsk': 844.98,
        'lastPrice': 845.0,
        'currency': 'AUD',
        'instrument': 'BTC',
        'timestamp': 1476242958,
        'volume24h': 172.60804,
    }
