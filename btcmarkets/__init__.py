"""
BTC Markets API Client and Rate Limiting

This package provides:
- BTCMarketsClient: Signed, rate limited client for the BTC Markets REST API
- RateLimiter: Ticker driven token bucket rate limiter
- RateLimiterGroup: One rate limiter per endpoint rate class
- Typed enums and response objects, whole/decimal amount conversion
"""

from .amounts import decimal_to_whole, whole_to_decimal
from .client import BTCMarketsClient, create_btcmarkets_client
from .errors import (
    BTCMarketsError,
    ConfigurationError,
    DecodeError,
    ExchangeError,
    HTTPStatusError,
    RateLimiterStopped,
    RateLimitTimeout,
    TransportError,
)
from .rate_limiter import RateLimiter, RateLimiterGroup, start_rate_limiter
from .types import (
    AccountBalance,
    Currency,
    Instrument,
    MarketTick,
    MarketTrade,
    Order,
    OrderCancellation,
    OrderCancelled,
    OrderCreated,
    OrderList,
    Orderbook,
    OrderbookLevel,
    OrderSide,
    OrderStatus,
    OrderTrade,
    OrderType,
    TradeHistory,
    TradingFee,
    Withdrawal,
    describe_trades,
)

__all__ = [
    'BTCMarketsClient',
    'create_btcmarkets_client',
    'RateLimiter',
    'RateLimiterGroup',
    'start_rate_limiter',
    'BTCMarketsError',
    'ConfigurationError',
    'DecodeError',
    'ExchangeError',
    'HTTPStatusError',
    'RateLimiterStopped',
    'RateLimitTimeout',
    'TransportError',
    'decimal_to_whole',
    'whole_to_decimal',
    'AccountBalance',
    'Currency',
    'Instrument',
    'MarketTick',
    'MarketTrade',
    'Order',
    'OrderCancellation',
    'OrderCancelled',
    'OrderCreated',
    'OrderList',
    'Orderbook',
    'OrderbookLevel',
    'OrderSide',
    'OrderStatus',
    'OrderTrade',
    'OrderType',
    'TradeHistory',
    'TradingFee',
    'Withdrawal',
    'describe_trades',
]
