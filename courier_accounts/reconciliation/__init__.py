"""
Courier reconciliation engine.

Turns an order snapshot plus a courier/date scope into payment-channel,
status and hold-fee totals for the accounting dashboard.
"""

from courier_accounts.reconciliation.models import (
    Order,
    OrderStatus,
    PaymentChannel,
    PaymentLineItem,
    ReconciliationReport,
    ReportScope,
)
from courier_accounts.reconciliation.report import compute_report

__all__ = [
    "Order",
    "OrderStatus",
    "PaymentChannel",
    "PaymentLineItem",
    "ReconciliationReport",
    "ReportScope",
    "compute_report",
]
