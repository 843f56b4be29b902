"""
Exceptions raised by the BTC Markets client.

Each failure mode has its own class, so a dropped connection can be told
apart from an order the exchange refused.
"""

from typing import Optional


class BTCMarketsError(Exception):
    """Base exception for all client errors."""


class ConfigurationError(BTCMarketsError):
    """Missing or malformed credentials/settings, raised before any request."""


class RateLimitTimeout(BTCMarketsError):
    """No permit became available before the wait timeout expired."""

    def __init__(self, name: str, timeout: float):
        self.name = name
        self.timeout = timeout
        super().__init__(f"Rate limiter '{name}' timed out after {timeout:.3f}s")


class RateLimiterStopped(BTCMarketsError):
    """Permit requested from a rate limiter that is no longer running."""


class TransportError(BTCMarketsError):
    """Network level failure (DNS, connect, read timeout, ...)."""


class HTTPStatusError(TransportError):
    """The exchange answered with a non-2xx status code."""

    def __init__(self, status_code: int, path: str, message: str = ''):
        self.status_code = status_code
        self.path = path
        self.message = message
        text = f"HTTP {status_code} for {path}"
        if message:
            text += f": {message}"
        super().__init__(text)


class DecodeError(BTCMarketsError):
    """Response body is not valid JSON or does not have the expected shape."""


class ExchangeError(BTCMarketsError):
    """A well-formed response in which the exchange reported success=false."""

    def __init__(self, message: str, code: Optional[int] = None):
        self.code = code
        self.message = message
        if code is None:
            super().__init__(f"BTC Markets API Error: {message}")
        else:
            super().__init__(f"BTC Markets API Error [{code}]: {message}")
