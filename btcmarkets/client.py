"""
BTC Markets API Client

This module provides a client for the BTC Markets REST API covering market
data, account information, order management and fund transfers.

Endpoints used:
- GET  /market/:instrument/:currency/tick - Best bid/ask and last price
- GET  /market/:instrument/:currency/orderbook - Order book snapshot
- GET  /market/:instrument/:currency/trades - Recent trades
- GET  /account/balance - Balances per asset
- GET  /account/:instrument/:currency/tradingfee - Trading fee rate
- POST /order/create - Place an order
- POST /order/cancel - Cancel orders
- POST /order/history - Order history
- POST /order/open - Open orders
- POST /order/trade/history - Trade history
- POST /order/detail - Order details
- POST /fundtransfer/withdrawCrypto - Withdraw crypto to an address
- POST /fundtransfer/withdrawEFT - Withdraw AUD to a bank account
"""

import logging
import uuid
from typing import Any, Callable, Dict, List, Optional, Union

import requests

from .amounts import has_two_decimal_places
from .config import API_LOCATION, RATE_LIMITS, RATE_LIMIT_10, RATE_LIMIT_25, get_settings
from .errors import (
    ConfigurationError,
    DecodeError,
    ExchangeError,
    HTTPStatusError,
    TransportError,
)
from .rate_limiter import RateLimiterGroup
from .signing import decode_secret, get_timestamp, serialize_body, sign
from .types import (
    AccountBalance,
    Currency,
    Instrument,
    MarketTick,
    MarketTrade,
    OrderCancelled,
    OrderCreated,
    OrderList,
    Orderbook,
    OrderSide,
    OrderType,
    TradeHistory,
    TradingFee,
    Withdrawal,
)

logger = logging.getLogger(__name__)

# Price sent with market orders in case the API ever stops ignoring it:
# bids go in at the lowest possible price, asks at the highest.
MARKET_BID_PRICE = 1
MARKET_ASK_PRICE = 99999900000000

OrderIds = Union[int, List[int]]


class BTCMarketsClient:
    """
    BTC Markets API Client.

    Every call is paced by the rate limiter of its endpoint's rate class and,
    for private endpoints, signed with the account secret.

    Usage:
        with BTCMarketsClient(api_key='your-key', api_secret='base64-secret') as client:
            tick = client.market_tick(Instrument.BTC, Currency.AUD)
            balances = client.account_balance()
    """

    BASE_URL = API_LOCATION

    def __init__(
        self,
        api_key: str,
        api_secret: str,
        base_url: str = None,
        timeout: float = 10,
        acquire_timeout: Optional[float] = None,
        session: Optional[requests.Session] = None,
        rate_limiters: Optional[RateLimiterGroup] = None,
    ):
        """
        Initialize BTC Markets API client.

        Args:
            api_key: BTC Markets API key
            api_secret: BTC Markets private key, base64 encoded as issued
            base_url: Override the API location
            timeout: HTTP request timeout in seconds
            acquire_timeout: Maximum seconds to wait for a rate limit permit
                (None = wait indefinitely)
            session: HTTP session to send requests through
            rate_limiters: Pre-built (unstarted) rate limiters; defaults to
                the exchange's published limits

        Raises:
            ConfigurationError: If the key is empty or the secret is not
                valid base64
        """
        if not api_key:
            raise ConfigurationError("API key is required")

        self.api_key = api_key
        self._secret = decode_secret(api_secret)
        self.base_url = (base_url or self.BASE_URL).rstrip('/')
        self.timeout = timeout
        self.acquire_timeout = acquire_timeout

        self.session = session if session is not None else requests.Session()
        self._owns_session = session is None

        self.rate_limiters = rate_limiters if rate_limiters is not None else RateLimiterGroup(RATE_LIMITS)
        self.rate_limiters.start_all()

    @classmethod
    def from_env(cls, **kwargs) -> 'BTCMarketsClient':
        """
        Create client from environment variables.

        Expected env vars:
            BTCMARKETS_API_KEY
            BTCMARKETS_API_SECRET
        Optional:
            BTCMARKETS_BASE_URL
            BTCMARKETS_TIMEOUT
            BTCMARKETS_ACQUIRE_TIMEOUT
        """
        settings = get_settings()
        options = {
            'api_key': settings['api_key'],
            'api_secret': settings['api_secret'],
            'base_url': settings['base_url'],
            'timeout': settings['timeout'],
            'acquire_timeout': settings['acquire_timeout'],
        }
        options.update(kwargs)
        return cls(**options)

    def close(self) -> None:
        """Stop the rate limiters and release the HTTP session if we created it."""
        self.rate_limiters.stop_all()
        if self._owns_session:
            self.session.close()

    def __enter__(self) -> 'BTCMarketsClient':
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def __repr__(self) -> str:
        return f"BTCMarketsClient(api_key={self.api_key!r})"

    def _get_timestamp(self) -> str:
        """Get millisecond timestamp for API requests."""
        return get_timestamp()

    def _sign(self, path: str, timestamp: str, body: str = '') -> str:
        """Generate the base64 HMAC-SHA512 signature for a request."""
        return sign(self._secret, path, timestamp, body)

    def _get_headers(self, path: str, body: str = '', signed: bool = True) -> Dict[str, str]:
        """
        Generate request headers.

        For authenticated requests, includes:
            - apikey
            - timestamp
            - signature
        """
        headers = {
            'Accept': 'application/json',
            'Accept-Charset': 'UTF-8',
            'Content-Type': 'application/json',
        }

        if signed:
            timestamp = self._get_timestamp()
            headers.update({
                'apikey': self.api_key,
                'timestamp': timestamp,
                'signature': self._sign(path, timestamp, body),
            })

        return headers

    def _request(
        self,
        method: str,
        path: str,
        body: Any = None,
        rate_class: str = RATE_LIMIT_10,
        signed: bool = True,
        query: Dict = None
    ) -> Any:
        """
        Make a rate limited API request and return the decoded JSON payload.

        Args:
            method: HTTP method
            path: API endpoint path (signed as-is, without the query string)
            body: JSON-serialisable body for POST requests
            rate_class: Which rate limiter to wait on
            signed: Attach apikey/timestamp/signature headers
            query: Query parameters for GET requests

        Returns:
            Decoded JSON payload

        Raises:
            RateLimitTimeout: No permit within ``acquire_timeout``
            TransportError: Network failure
            HTTPStatusError: Non-2xx response
            DecodeError: Response body is not JSON
            ExchangeError: Exchange reported success=false
        """
        self.rate_limiters.wait(rate_class, timeout=self.acquire_timeout)

        url = self.base_url + path
        payload = serialize_body(body) if method.upper() != 'GET' else ''
        headers = self._get_headers(path, payload, signed)

        try:
            if method.upper() == 'GET':
                response = self.session.get(
                    url, params=query, headers=headers, timeout=self.timeout
                )
            else:
                response = self.session.post(
                    url, data=payload.encode('utf-8'), headers=headers, timeout=self.timeout
                )
        except requests.exceptions.RequestException as e:
            logger.warning("%s %s failed: %s", method, path, e)
            raise TransportError(f"{method} {path} failed: {e}") from e

        logger.debug("%s %s [%s] -> %s", method, path, rate_class, response.status_code)

        if not 200 <= response.status_code < 300:
            message = self._error_message(response)
            logger.warning("%s %s returned HTTP %s: %s", method, path, response.status_code, message)
            raise HTTPStatusError(response.status_code, path, message)

        try:
            result = response.json()
        except ValueError as e:
            raise DecodeError(f"{method} {path} returned invalid JSON: {e}") from e

        # Check for API-level errors
        if isinstance(result, dict) and result.get('success') is False:
            error_msg = result.get('errorMessage') or 'Unknown error'
            error_code = result.get('errorCode')
            logger.warning("%s %s rejected by exchange [%s]: %s", method, path, error_code, error_msg)
            raise ExchangeError(error_msg, error_code)

        return result

    @staticmethod
    def _error_message(response: requests.Response) -> str:
        try:
            info = response.json()
        except ValueError:
            return response.text.strip()
        if isinstance(info, dict) and info.get('errorMessage'):
            return str(info['errorMessage'])
        return str(info)

    @staticmethod
    def _decode(payload: Any, decoder: Callable[[Any], Any], path: str) -> Any:
        try:
            return decoder(payload)
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            raise DecodeError(f"Unexpected response shape from {path}: {e!r}") from e

    def get(
        self,
        path: str,
        decoder: Callable[[Any], Any],
        rate_class: str = RATE_LIMIT_10,
        signed: bool = True,
        query: Dict = None
    ) -> Any:
        """Send a GET request and decode the payload with ``decoder``."""
        payload = self._request('GET', path, rate_class=rate_class, signed=signed, query=query)
        return self._decode(payload, decoder, path)

    def post(
        self,
        path: str,
        body: Any,
        decoder: Callable[[Any], Any],
        rate_class: str = RATE_LIMIT_10
    ) -> Any:
        """Send a signed POST request and decode the payload with ``decoder``."""
        payload = self._request('POST', path, body=body, rate_class=rate_class)
        return self._decode(payload, decoder, path)

    # =========================================================================
    # Market Endpoints - No Authentication Required
    # =========================================================================

    def market_tick(self, instrument: Instrument, currency: Currency) -> MarketTick:
        """
        Get best bid/ask, last price and 24h volume.

        GET /market/:instrument/:currency/tick
        """
        instrument, currency = Instrument(instrument), Currency(currency)
        path = f'/market/{instrument.value}/{currency.value}/tick'
        return self.get(path, MarketTick.from_dict, signed=False)

    def market_orderbook(self, instrument: Instrument, currency: Currency) -> Orderbook:
        """
        Get the current order book.

        GET /market/:instrument/:currency/orderbook
        """
        instrument, currency = Instrument(instrument), Currency(currency)
        path = f'/market/{instrument.value}/{currency.value}/orderbook'
        return self.get(path, Orderbook.from_dict, signed=False)

    def market_trades(
        self,
        instrument: Instrument,
        currency: Currency,
        since: Optional[int] = None
    ) -> List[MarketTrade]:
        """
        Get recent trades.

        GET /market/:instrument/:currency/trades

        Args:
            instrument: Traded asset
            currency: Quote currency
            since: When set and greater than 0, only trades after this trade ID
        """
        instrument, currency = Instrument(instrument), Currency(currency)
        path = f'/market/{instrument.value}/{currency.value}/trades'
        query = {'since': since} if since and since > 0 else None
        return self.get(path, MarketTrade.from_list, signed=False, query=query)

    # =========================================================================
    # Account Endpoints - Authentication Required
    # =========================================================================

    def account_balance(self) -> List[AccountBalance]:
        """
        Get balances for every asset held.

        GET /account/balance
        """
        return self.get('/account/balance', AccountBalance.from_list)

    def account_trading_fee(self, instrument: Instrument, currency: Currency) -> TradingFee:
        """
        Get the trading fee rate and 30 day volume for a market.

        GET /account/:instrument/:currency/tradingfee
        """
        instrument, currency = Instrument(instrument), Currency(currency)
        path = f'/account/{instrument.value}/{currency.value}/tradingfee'
        return self.get(path, TradingFee.from_dict)

    # =========================================================================
    # Order Endpoints - Authentication Required
    # =========================================================================

    def order_create(
        self,
        currency: Currency,
        instrument: Instrument,
        price: int,
        volume: int,
        side: OrderSide,
        order_type: OrderType,
        client_request_id: str = None
    ) -> OrderCreated:
        """
        Place an order.

        POST /order/create

        Args:
            currency: Quote currency
            instrument: Traded asset
            price: Limit price as a whole amount (x 10^8); ignored for
                market orders
            volume: Volume as a whole amount (x 10^8)
            side: OrderSide.BID (buy) or OrderSide.ASK (sell)
            order_type: OrderType.LIMIT or OrderType.MARKET
            client_request_id: Caller reference (defaults to a fresh UUID)

        Returns:
            OrderCreated with the exchange's order ID

        Raises:
            ValueError: Invalid price/volume, before any request is made
            ExchangeError: The exchange rejected the order
        """
        currency, instrument = Currency(currency), Instrument(instrument)
        side, order_type = OrderSide(side), OrderType(order_type)

        if isinstance(volume, bool) or not isinstance(volume, int) or volume <= 0:
            raise ValueError(f"Volume must be a positive whole amount, got: {volume!r}")

        if order_type == OrderType.MARKET:
            price = MARKET_BID_PRICE if side == OrderSide.BID else MARKET_ASK_PRICE
        else:
            if isinstance(price, bool) or not isinstance(price, int) or price <= 0:
                raise ValueError(f"Price must be a positive whole amount, got: {price!r}")
            if currency == Currency.AUD and not has_two_decimal_places(price):
                raise ValueError("AUD currency only allows two decimal places")

        data = {
            'currency': currency.value,
            'instrument': instrument.value,
            'price': price,
            'volume': volume,
            'orderSide': side.value,
            'ordertype': order_type.value,
            'clientRequestId': client_request_id or str(uuid.uuid4()),
        }

        return self.post('/order/create', data, OrderCreated.from_dict)

    def order_cancel(self, order_ids: OrderIds) -> OrderCancelled:
        """
        Cancel one or more orders.

        POST /order/cancel

        A top-level rejection raises ExchangeError. Per-order outcomes are in
        the result's ``responses``; see ``OrderCancelled.failed``.
        """
        data = {'orderIds': self._order_ids(order_ids)}
        return self.post('/order/cancel', data, OrderCancelled.from_dict, rate_class=RATE_LIMIT_25)

    def order_history(
        self,
        currency: Currency,
        instrument: Instrument,
        limit: int = 10,
        since: int = 0
    ) -> OrderList:
        """
        Get historical orders, newest first.

        POST /order/history
        """
        data = self._order_query(currency, instrument, limit, since)
        return self.post('/order/history', data, OrderList.from_dict)

    def order_open(
        self,
        currency: Currency,
        instrument: Instrument,
        limit: int = 10,
        since: int = 0
    ) -> OrderList:
        """
        Get orders that are still open.

        POST /order/open
        """
        data = self._order_query(currency, instrument, limit, since)
        return self.post('/order/open', data, OrderList.from_dict, rate_class=RATE_LIMIT_25)

    def order_trade_history(
        self,
        currency: Currency,
        instrument: Instrument,
        limit: int = 10,
        since: int = 0
    ) -> TradeHistory:
        """
        Get the account's executed trades.

        POST /order/trade/history
        """
        data = self._order_query(currency, instrument, limit, since)
        return self.post('/order/trade/history', data, TradeHistory.from_dict)

    def order_detail(self, order_ids: OrderIds) -> OrderList:
        """
        Get details for specific orders.

        POST /order/detail
        """
        data = {'orderIds': self._order_ids(order_ids)}
        return self.post('/order/detail', data, OrderList.from_dict, rate_class=RATE_LIMIT_25)

    @staticmethod
    def _order_ids(order_ids: OrderIds) -> List[int]:
        if isinstance(order_ids, int) and not isinstance(order_ids, bool):
            order_ids = [order_ids]
        ids = [int(order_id) for order_id in order_ids]
        if not ids:
            raise ValueError("Order IDs list cannot be empty")
        return ids

    @staticmethod
    def _order_query(currency: Currency, instrument: Instrument, limit: int, since: int) -> Dict:
        if limit <= 0:
            raise ValueError("Limit must be positive")
        return {
            'currency': Currency(currency).value,
            'instrument': Instrument(instrument).value,
            'limit': limit,
            'since': since,
        }

    # =========================================================================
    # Fund Transfer Endpoints - Authentication Required
    # =========================================================================

    def withdraw_crypto(self, amount: int, address: str, currency: Instrument) -> Withdrawal:
        """
        Withdraw crypto to an external address.

        POST /fundtransfer/withdrawCrypto

        Args:
            amount: Whole amount (x 10^8) to withdraw
            address: Destination wallet address
            currency: Asset to withdraw
        """
        if isinstance(amount, bool) or not isinstance(amount, int) or amount <= 0:
            raise ValueError(f"Amount must be a positive whole amount, got: {amount!r}")
        if not address or not address.strip():
            raise ValueError("Address cannot be empty")

        data = {
            'amount': amount,
            'address': address,
            'currency': Instrument(currency).value,
        }
        return self.post('/fundtransfer/withdrawCrypto', data, Withdrawal.from_dict)

    def withdraw_eft(
        self,
        account_name: str,
        account_number: str,
        bank_name: str,
        bsb_number: str,
        amount: int,
        currency: Currency = Currency.AUD
    ) -> Withdrawal:
        """
        Withdraw fiat to a bank account by EFT.

        POST /fundtransfer/withdrawEFT
        """
        if isinstance(amount, bool) or not isinstance(amount, int) or amount <= 0:
            raise ValueError(f"Amount must be a positive whole amount, got: {amount!r}")
        for name, value in (('account_name', account_name),
                            ('account_number', account_number),
                            ('bank_name', bank_name),
                            ('bsb_number', bsb_number)):
            if not value or not str(value).strip():
                raise ValueError(f"{name} cannot be empty")

        data = {
            'accountName': account_name,
            'accountNumber': account_number,
            'bankName': bank_name,
            'bsbNumber': bsb_number,
            'amount': amount,
            'currency': Currency(currency).value,
        }
        return self.post('/fundtransfer/withdrawEFT', data, Withdrawal.from_dict)


# Convenience function to create client from environment
def create_btcmarkets_client(**kwargs) -> BTCMarketsClient:
    """Create BTC Markets client from environment variables."""
    return BTCMarketsClient.from_env(**kwargs)
