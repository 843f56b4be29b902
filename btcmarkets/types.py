"""
Enumerations and response types for the BTC Markets API.

Every response type is built through ``from_dict`` (or ``from_list``), which
validates enum values and required keys at the boundary. Unknown enum values
raise ValueError and missing keys raise KeyError; the client turns both into
DecodeError.
"""

from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any, Dict, List, Optional, Union

from .amounts import whole_to_decimal


class Currency(str, Enum):
    """Fiat currency an instrument is quoted in."""
    AUD = 'AUD'


class Instrument(str, Enum):
    """Tradeable crypto asset."""
    BCH = 'BCH'
    BTC = 'BTC'
    ETH = 'ETH'
    ETC = 'ETC'
    LTC = 'LTC'
    XRP = 'XRP'


class OrderSide(str, Enum):
    """Ask sells the instrument, Bid buys it."""
    ASK = 'Ask'
    BID = 'Bid'


class OrderType(str, Enum):
    """Limit orders trade at the given price, Market orders at market value."""
    LIMIT = 'Limit'
    MARKET = 'Market'


class OrderStatus(str, Enum):
    """Lifecycle state of an order as reported by the exchange."""
    NEW = 'New'
    PLACED = 'Placed'
    FAILED = 'Failed'
    ERROR = 'Error'
    CANCELLED = 'Cancelled'
    PARTIALLY_CANCELLED = 'Partially Cancelled'
    FULLY_MATCHED = 'Fully Matched'
    PARTIALLY_MATCHED = 'Partially Matched'


Asset = Union[Currency, Instrument]


def parse_asset(value: str) -> Asset:
    """Parse a balance/withdrawal asset code, which may be fiat or crypto."""
    try:
        return Currency(value)
    except ValueError:
        return Instrument(value)


def _decimal(value: Any) -> Decimal:
    # Market data arrives as JSON floats; go through str to keep the printed value
    if isinstance(value, bool) or not isinstance(value, (int, float, str)):
        raise TypeError(f"Expected a number, got: {value!r}")
    try:
        result = Decimal(str(value))
    except InvalidOperation as e:
        raise ValueError(f"Invalid number: {value!r}") from e
    if not result.is_finite():
        raise ValueError(f"Number must be finite, got: {value!r}")
    return result


def _whole(value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise TypeError(f"Expected a whole amount, got: {value!r}")
    return value


def _list(data: Any, key: str) -> List[Any]:
    items = data.get(key) or []
    if not isinstance(items, list):
        raise TypeError(f"Expected '{key}' to be a list, got: {items!r}")
    return items


# =========================================================================
# Account
# =========================================================================

@dataclass(frozen=True)
class AccountBalance:
    asset: Asset
    balance: int
    pending_funds: int

    @classmethod
    def from_dict(cls, data: Dict) -> 'AccountBalance':
        return cls(
            asset=parse_asset(data['currency']),
            balance=_whole(data['balance']),
            pending_funds=_whole(data['pendingFunds']),
        )

    @classmethod
    def from_list(cls, data: List[Dict]) -> List['AccountBalance']:
        if not isinstance(data, list):
            raise TypeError(f"Expected a list of balances, got: {type(data).__name__}")
        return [cls.from_dict(item) for item in data]

    @property
    def balance_decimal(self) -> Decimal:
        return whole_to_decimal(self.balance)

    @property
    def pending_funds_decimal(self) -> Decimal:
        return whole_to_decimal(self.pending_funds)

    def __str__(self) -> str:
        return f"{self.asset.value}: {self.balance_decimal:f}"


@dataclass(frozen=True)
class TradingFee:
    trading_fee_rate: int
    volume_30_day: int

    @classmethod
    def from_dict(cls, data: Dict) -> 'TradingFee':
        return cls(
            trading_fee_rate=_whole(data['tradingFeeRate']),
            volume_30_day=_whole(data['volume30Day']),
        )

    @property
    def trading_fee_rate_decimal(self) -> Decimal:
        return whole_to_decimal(self.trading_fee_rate)


# =========================================================================
# Market
# =========================================================================

@dataclass(frozen=True)
class MarketTick:
    best_bid: Decimal
    best_ask: Decimal
    last_price: Decimal
    currency: Currency
    instrument: Instrument
    timestamp: int
    volume_24h: Decimal

    @classmethod
    def from_dict(cls, data: Dict) -> 'MarketTick':
        return cls(
            best_bid=_decimal(data['bestBid']),
            best_ask=_decimal(data['bestAsk']),
            last_price=_decimal(data['lastPrice']),
            currency=Currency(data['currency']),
            instrument=Instrument(data['instrument']),
            timestamp=int(data['timestamp']),
            volume_24h=_decimal(data['volume24h']),
        )


@dataclass(frozen=True)
class OrderbookLevel:
    price: Decimal
    volume: Decimal

    @classmethod
    def from_pair(cls, pair: List) -> 'OrderbookLevel':
        price, volume = pair
        return cls(price=_decimal(price), volume=_decimal(volume))


@dataclass(frozen=True)
class Orderbook:
    currency: Currency
    instrument: Instrument
    timestamp: int
    bids: List[OrderbookLevel]
    asks: List[OrderbookLevel]

    @classmethod
    def from_dict(cls, data: Dict) -> 'Orderbook':
        return cls(
            currency=Currency(data['currency']),
            instrument=Instrument(data['instrument']),
            timestamp=int(data['timestamp']),
            bids=[OrderbookLevel.from_pair(level) for level in _list(data, 'bids')],
            asks=[OrderbookLevel.from_pair(level) for level in _list(data, 'asks')],
        )


@dataclass(frozen=True)
class MarketTrade:
    trade_id: int
    amount: Decimal
    price: Decimal
    timestamp: int

    @classmethod
    def from_dict(cls, data: Dict) -> 'MarketTrade':
        return cls(
            trade_id=int(data['tid']),
            amount=_decimal(data['amount']),
            price=_decimal(data['price']),
            timestamp=int(data['date']),
        )

    @classmethod
    def from_list(cls, data: List[Dict]) -> List['MarketTrade']:
        if not isinstance(data, list):
            raise TypeError(f"Expected a list of trades, got: {type(data).__name__}")
        return [cls.from_dict(item) for item in data]

    @property
    def total(self) -> Decimal:
        return self.amount * self.price

    def __str__(self) -> str:
        return f"Trade {self.trade_id}: {self.total:f} - {self.amount:f} at {self.price:f}"


def describe_trades(trades: List[MarketTrade]) -> str:
    """Render trades one per line for display."""
    return ''.join(f"{trade}\n" for trade in trades)


# =========================================================================
# Orders
# =========================================================================

@dataclass(frozen=True)
class OrderCreated:
    order_id: int
    client_request_id: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict) -> 'OrderCreated':
        return cls(
            order_id=int(data['id']),
            client_request_id=data.get('clientRequestId'),
        )


@dataclass(frozen=True)
class OrderCancellation:
    """Outcome of cancelling one order within an /order/cancel call."""
    order_id: int
    success: bool
    error_code: Optional[int] = None
    error_message: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict) -> 'OrderCancellation':
        return cls(
            order_id=int(data['id']),
            success=bool(data['success']),
            error_code=data.get('errorCode'),
            error_message=data.get('errorMessage'),
        )


@dataclass(frozen=True)
class OrderCancelled:
    responses: List[OrderCancellation] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Dict) -> 'OrderCancelled':
        return cls(
            responses=[OrderCancellation.from_dict(item) for item in _list(data, 'responses')]
        )

    @property
    def failed(self) -> List[OrderCancellation]:
        return [item for item in self.responses if not item.success]


@dataclass(frozen=True)
class OrderTrade:
    """A fill belonging to an order."""
    trade_id: int
    created: int
    description: Optional[str]
    price: int
    volume: int
    fee: int
    side: Optional[OrderSide] = None
    order_id: Optional[int] = None

    @classmethod
    def from_dict(cls, data: Dict) -> 'OrderTrade':
        side = data.get('side')
        order_id = data.get('orderId')
        return cls(
            trade_id=int(data['id']),
            created=int(data['creationTime']),
            description=data.get('description'),
            price=_whole(data['price']),
            volume=_whole(data['volume']),
            fee=_whole(data['fee']),
            side=OrderSide(side) if side is not None else None,
            order_id=int(order_id) if order_id is not None else None,
        )


@dataclass(frozen=True)
class Order:
    order_id: int
    currency: Currency
    instrument: Instrument
    side: OrderSide
    order_type: OrderType
    created: int
    status: OrderStatus
    error_message: Optional[str]
    price: int
    volume: int
    open_volume: int
    client_request_id: Optional[str] = None
    trades: List[OrderTrade] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Dict) -> 'Order':
        return cls(
            order_id=int(data['id']),
            currency=Currency(data['currency']),
            instrument=Instrument(data['instrument']),
            side=OrderSide(data['orderSide']),
            order_type=OrderType(data['ordertype']),
            created=int(data['creationTime']),
            status=OrderStatus(data['status']),
            error_message=data.get('errorMessage'),
            price=_whole(data['price']),
            volume=_whole(data['volume']),
            open_volume=_whole(data['openVolume']),
            client_request_id=data.get('clientRequestId'),
            trades=[OrderTrade.from_dict(item) for item in _list(data, 'trades')],
        )


@dataclass(frozen=True)
class OrderList:
    """Orders returned by /order/history, /order/open and /order/detail."""
    orders: List[Order] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Dict) -> 'OrderList':
        return cls(orders=[Order.from_dict(item) for item in _list(data, 'orders')])


@dataclass(frozen=True)
class TradeHistory:
    trades: List[OrderTrade] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Dict) -> 'TradeHistory':
        return cls(trades=[OrderTrade.from_dict(item) for item in _list(data, 'trades')])


# =========================================================================
# Fund transfer
# =========================================================================

@dataclass(frozen=True)
class Withdrawal:
    fund_transfer_id: int
    status: str
    description: Optional[str]
    created: Optional[int]
    currency: Asset
    amount: int
    fee: int

    @classmethod
    def from_dict(cls, data: Dict) -> 'Withdrawal':
        created = data.get('creationTime')
        return cls(
            fund_transfer_id=int(data['fundTransferId']),
            status=data['status'],
            description=data.get('description'),
            created=int(created) if created is not None else None,
            currency=parse_asset(data['currency']),
            amount=_whole(data['amount']),
            fee=_whole(data.get('fee', 0)),
        )
