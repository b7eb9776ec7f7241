# pizzashop/ordering/status.py
from __future__ import annotations

from enum import Enum
from typing import Any, Dict, NamedTuple, Type


class OrderStatus(str, Enum):
    pending = "pending"
    processing = "processing"
    shipped = "shipped"
    delivered = "delivered"
    cancelled = "cancelled"


class PaymentStatus(str, Enum):
    pending = "pending"
    paid = "paid"
    refunded = "refunded"
    failed = "failed"


class DeliveryStatus(str, Enum):
    pending = "pending"
    shipped = "shipped"
    delivered = "delivered"
    # single "l" is the stored value for this axis
    canceled = "canceled"


class StatusAxis(NamedTuple):
    column: str
    enum: Type[Enum]
    label: str


# The three axes are independent; nothing ties e.g. payment to order status.
AXES: Dict[str, StatusAxis] = {
    "status": StatusAxis("status", OrderStatus, "order status"),
    "payment_status": StatusAxis("payment_status", PaymentStatus, "payment status"),
    "delivery_status": StatusAxis("delivery_status", DeliveryStatus, "delivery status"),
}


def parse_status(axis: StatusAxis, raw: Any) -> Enum | None:
    if not isinstance(raw, str):
        return None
    try:
        return axis.enum(raw)
    except ValueError:
        return None
