"""Dataclasses for courier reconciliation: Order, PaymentLineItem, buckets and the report."""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field, replace
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Tuple

from courier_accounts.reconciliation.money import ZERO, amount_or_zero, as_float, to_decimal

SPLIT_PAYMENT_SUBTYPE = "onther"  # literal stored by the order form for split payments
TOTAL_COURIERS = "total"  # courier selection meaning "every assigned courier"


class OrderStatus(str, Enum):
    """Order lifecycle statuses recognised by the accounting views."""

    PENDING = "pending"
    ASSIGNED = "assigned"
    DELIVERED = "delivered"
    CANCELED = "canceled"
    PARTIAL = "partial"
    RETURN = "return"
    RECEIVING_PART = "receiving_part"
    HAND_TO_HAND = "hand_to_hand"  # exchange order


TERMINAL_STATUSES = (
    OrderStatus.DELIVERED,
    OrderStatus.CANCELED,
    OrderStatus.PARTIAL,
    OrderStatus.RETURN,
    OrderStatus.RECEIVING_PART,
    OrderStatus.HAND_TO_HAND,
)


class PaymentChannel(str, Enum):
    """Canonical payment channel a raw payment string is bucketed into."""

    CASH = "cash"
    PAYMOB = "paymob"
    VALU = "valu"
    VISA_MACHINE = "visa_machine"
    INSTAPAY = "instapay"
    WALLET = "wallet"
    ON_HAND = "on_hand"  # physical cash carried by the courier
    OTHER = "other"


# Channels the courier collects at the door; summed into "total cash on delivery".
COD_CHANNELS = (
    PaymentChannel.VISA_MACHINE,
    PaymentChannel.INSTAPAY,
    PaymentChannel.WALLET,
    PaymentChannel.ON_HAND,
)


def _text(value: Any) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, float) and value != value:  # NaN from dataframe exports
        return None
    text = str(value).strip()
    return text or None


# attribute name -> orders table column
_COLUMNS: Dict[str, str] = {
    "id": "id",
    "order_number": "order_id",
    "total_order_fees": "total_order_fees",
    "delivery_fee": "delivery_fee",
    "partial_paid_amount": "partial_paid_amount",
    "hold_fee": "hold_fee",
    "admin_delivery_fee": "admin_delivery_fee",
    "extra_fee": "extra_fee",
    "status": "status",
    "payment_method": "payment_method",
    "payment_sub_type": "payment_sub_type",
    "collected_by": "collected_by",
    "other_payments": "onther_payments",
    "hold_fee_comment": "hold_fee_comment",
    "hold_fee_created_by": "hold_fee_created_by",
    "hold_fee_created_at": "hold_fee_created_at",
    "hold_fee_added_at": "hold_fee_added_at",
    "hold_fee_removed_at": "hold_fee_removed_at",
    "assigned_courier_id": "assigned_courier_id",
    "courier_name": "courier_name",
    "updated_at": "updated_at",
    "assigned_at": "assigned_at",
}

_MONEY_ATTRS = frozenset(
    {
        "total_order_fees",
        "delivery_fee",
        "partial_paid_amount",
        "hold_fee",
        "admin_delivery_fee",
        "extra_fee",
    }
)


def _coerce(attr: str, value: Any) -> Any:
    if attr in _MONEY_ATTRS:
        return to_decimal(value)
    if attr == "other_payments":
        if isinstance(value, float) and value != value:
            return None
        return value
    if attr == "status":
        return (_text(value) or "").lower()
    if attr == "payment_method":
        return _text(value) or ""
    if attr in ("id", "order_number"):
        return _text(value) or ""
    return _text(value)


@dataclass(frozen=True)
class Order:
    """Snapshot of one order row as read from the orders table."""

    id: str
    order_number: str = ""
    total_order_fees: Optional[Decimal] = None
    delivery_fee: Optional[Decimal] = None
    partial_paid_amount: Optional[Decimal] = None  # may arrive negative; always read as magnitude
    hold_fee: Optional[Decimal] = None  # > 0 while a hold is active
    admin_delivery_fee: Optional[Decimal] = None
    extra_fee: Optional[Decimal] = None
    status: str = ""
    payment_method: str = ""
    payment_sub_type: Optional[str] = None
    collected_by: Optional[str] = None
    other_payments: Any = None  # list of {method, amount} or its JSON text
    hold_fee_comment: Optional[str] = None
    hold_fee_created_by: Optional[str] = None
    hold_fee_created_at: Optional[str] = None
    hold_fee_added_at: Optional[str] = None
    hold_fee_removed_at: Optional[str] = None
    assigned_courier_id: Optional[str] = None
    courier_name: Optional[str] = None
    updated_at: Optional[str] = None
    assigned_at: Optional[str] = None

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> "Order":
        """
        Build an Order from an orders-table row (column names as stored).

        A nested `assigned_courier` join fills courier_name when the row has none.
        """
        kwargs: Dict[str, Any] = {}
        for attr, column in _COLUMNS.items():
            if column in record:
                kwargs[attr] = _coerce(attr, record[column])
        if not kwargs.get("courier_name"):
            joined = record.get("assigned_courier")
            if isinstance(joined, Mapping):
                kwargs["courier_name"] = _text(joined.get("name"))
        kwargs.setdefault("id", "")
        return cls(**kwargs)

    def with_fields(self, record: Mapping[str, Any]) -> "Order":
        """Return a copy with the given orders-table columns replaced."""
        changes: Dict[str, Any] = {}
        for attr, column in _COLUMNS.items():
            if column in record:
                changes[attr] = _coerce(attr, record[column])
        return replace(self, **changes)

    @property
    def known_status(self) -> Optional[OrderStatus]:
        try:
            return OrderStatus(self.status)
        except ValueError:
            return None

    @property
    def has_active_hold(self) -> bool:
        return amount_or_zero(self.hold_fee) > 0


@dataclass(frozen=True)
class SubPayment:
    """One leg of a split payment."""

    method: str
    amount: Decimal


@dataclass(frozen=True)
class PaymentLineItem:
    """One order's contribution to one payment channel."""

    order: Order
    channel: PaymentChannel
    amount: Decimal
    sub_method: Optional[str] = None  # raw sub-payment method for split items
    is_split: bool = False


@dataclass(frozen=True)
class StatusBucket:
    status: str
    count: int = 0
    original_value: Decimal = ZERO
    collected: Decimal = ZERO
    orders: Tuple[Order, ...] = ()

    def merged_with(self, other: "StatusBucket") -> "StatusBucket":
        return StatusBucket(
            status=self.status,
            count=self.count + other.count,
            original_value=self.original_value + other.original_value,
            collected=self.collected + other.collected,
            orders=self.orders + other.orders,
        )

    def as_dict(self) -> Dict[str, Any]:
        return {
            "status": self.status,
            "count": self.count,
            "original_value": as_float(self.original_value),
            "collected": as_float(self.collected),
        }


@dataclass(frozen=True)
class StatusBreakdown:
    """Per-status buckets plus the bucket for missing/unknown statuses."""

    buckets: Dict[OrderStatus, StatusBucket]
    unrecognized: StatusBucket

    def get(self, status: OrderStatus) -> StatusBucket:
        return self.buckets.get(status) or StatusBucket(status=status.value)

    @property
    def recognized_count(self) -> int:
        return sum(b.count for b in self.buckets.values())

    @property
    def recognized_value(self) -> Decimal:
        return sum((b.original_value for b in self.buckets.values()), ZERO)


@dataclass(frozen=True)
class ChannelBucket:
    channel: str
    count: int = 0
    amount: Decimal = ZERO
    items: Tuple[PaymentLineItem, ...] = ()

    @property
    def orders(self) -> List[Order]:
        return [item.order for item in self.items]

    def as_dict(self) -> Dict[str, Any]:
        return {
            "channel": self.channel,
            "count": self.count,
            "amount": as_float(self.amount),
        }


@dataclass(frozen=True)
class HoldFeeLedger:
    """Active and removed hold fees after the ledger date filter."""

    active: Tuple[Order, ...] = ()
    removed: Tuple[Order, ...] = ()

    @property
    def active_amount(self) -> Decimal:
        return sum((amount_or_zero(o.hold_fee) for o in self.active), ZERO)

    def as_dict(self) -> Dict[str, Any]:
        return {
            "active_count": len(self.active),
            "active_amount": as_float(self.active_amount),
            "removed_count": len(self.removed),
        }


@dataclass(frozen=True)
class ReportScope:
    """
    Which orders a report covers and how they are presented.

    courier_id None covers every order; TOTAL_COURIERS covers every assigned order.
    courier_view marks a courier looking at their own orders.
    """

    courier_id: Optional[str] = None
    courier_view: bool = False
    include_hold_fees: bool = True

    @property
    def courier_scoped(self) -> bool:
        return self.courier_view or self.courier_id is not None

    def includes(self, order: Order) -> bool:
        if self.courier_id is None:
            return True
        if self.courier_id == TOTAL_COURIERS:
            return order.assigned_courier_id is not None
        return order.assigned_courier_id == self.courier_id


@dataclass
class ReportDiagnostics:
    """Data-quality signals collected while building one report. Never raised."""

    unrecognized_payment_methods: Counter = field(default_factory=Counter)
    unknown_statuses: Counter = field(default_factory=Counter)
    unknown_status_order_ids: List[str] = field(default_factory=list)
    malformed_split_payments: List[str] = field(default_factory=list)
    negative_partial_amounts: List[str] = field(default_factory=list)
    count_mismatch: Optional[Tuple[int, int]] = None  # (in scope, sum of buckets)
    value_mismatch: Optional[Tuple[Decimal, Decimal]] = None

    @property
    def has_issues(self) -> bool:
        return bool(
            self.unrecognized_payment_methods
            or self.unknown_statuses
            or self.malformed_split_payments
            or self.negative_partial_amounts
            or self.count_mismatch
            or self.value_mismatch
        )

    def as_dict(self) -> Dict[str, Any]:
        return {
            "unrecognized_payment_methods": dict(self.unrecognized_payment_methods),
            "unknown_statuses": dict(self.unknown_statuses),
            "unknown_status_order_ids": list(self.unknown_status_order_ids),
            "malformed_split_payments": list(self.malformed_split_payments),
            "negative_partial_amounts": list(self.negative_partial_amounts),
            "count_mismatch": list(self.count_mismatch) if self.count_mismatch else None,
            "value_mismatch": (
                [as_float(v) for v in self.value_mismatch] if self.value_mismatch else None
            ),
        }


@dataclass(frozen=True)
class ReconciliationReport:
    """Aggregated counts and amounts for one courier/date scope."""

    scope: ReportScope
    orders: Tuple[Order, ...]
    total_orders_count: int
    total_original_value: Decimal
    statuses: Dict[OrderStatus, StatusBucket]
    unrecognized: StatusBucket
    channels: Dict[PaymentChannel, ChannelBucket]
    total_cod: ChannelBucket
    total_hand_to_accounting: Decimal
    accounting_difference: Decimal
    total_hold_fees: Decimal
    total_extra_fees: Decimal
    total_admin_delivery_fees: Decimal
    adjusted_total: Decimal
    total_delivery_fees: Decimal
    total_partial_amounts: Decimal
    raw_method_totals: Dict[str, Decimal]
    line_items: Tuple[PaymentLineItem, ...]
    diagnostics: ReportDiagnostics

    def status(self, status: OrderStatus) -> StatusBucket:
        return self.statuses.get(status) or StatusBucket(status=OrderStatus(status).value)

    def channel(self, channel: PaymentChannel) -> ChannelBucket:
        return self.channels.get(channel) or ChannelBucket(channel=PaymentChannel(channel).value)

    def as_dict(self) -> Dict[str, Any]:
        return {
            "scope": {
                "courier_id": self.scope.courier_id,
                "courier_view": self.scope.courier_view,
                "include_hold_fees": self.scope.include_hold_fees,
            },
            "totals": {
                "orders_count": self.total_orders_count,
                "original_value": as_float(self.total_original_value),
                "hold_fees": as_float(self.total_hold_fees),
                "extra_fees": as_float(self.total_extra_fees),
                "admin_delivery_fees": as_float(self.total_admin_delivery_fees),
                "adjusted_total": as_float(self.adjusted_total),
                "delivery_fees": as_float(self.total_delivery_fees),
                "partial_amounts": as_float(self.total_partial_amounts),
                "hand_to_accounting": as_float(self.total_hand_to_accounting),
                "accounting_difference": as_float(self.accounting_difference),
            },
            "statuses": {s.value: b.as_dict() for s, b in self.statuses.items()},
            "unrecognized_statuses": self.unrecognized.as_dict(),
            "channels": {c.value: b.as_dict() for c, b in self.channels.items()},
            "total_cod": self.total_cod.as_dict(),
            "raw_method_totals": {k: as_float(v) for k, v in self.raw_method_totals.items()},
            "diagnostics": self.diagnostics.as_dict(),
        }


@dataclass(frozen=True)
class OrderSnapshot:
    """
    Externally owned order set a report is computed from.

    Each update yields a new snapshot with a higher generation; results built
    from an older generation are stale.
    """

    orders: Tuple[Order, ...] = ()
    hold_fee_orders: Tuple[Order, ...] = ()
    generation: int = 0

    def apply_update(self, order_id: str, record: Mapping[str, Any]) -> "OrderSnapshot":
        def _refresh(items: Tuple[Order, ...]) -> Tuple[Order, ...]:
            return tuple(o.with_fields(record) if o.id == order_id else o for o in items)

        return OrderSnapshot(
            orders=_refresh(self.orders),
            hold_fee_orders=_refresh(self.hold_fee_orders),
            generation=self.generation + 1,
        )

    def is_newer_than(self, other: "OrderSnapshot") -> bool:
        return self.generation > other.generation


