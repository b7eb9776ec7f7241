# pizzashop/routers/orders.py
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Query
from sqlalchemy.orm import Session

from ..config import Settings
from ..db import get_db
from ..deps import get_mailer, get_settings, require_capability, require_user
from ..emailer import Mailer, notify, send_order_confirmation
from ..models import Order, User
from ..ordering import workflow
from ..paging import pagination
from ..roles import Capability
from ..schemas import (
    CreateOrderIn,
    DeliveryStatusIn,
    OrderDetailOut,
    OrderOut,
    OrderWithEmailOut,
    PaymentStatusIn,
    StatusIn,
)

router = APIRouter(prefix="/api/v1/orders", tags=["orders"])

manage_status = require_capability(Capability.manage_order_status)


def _order(o: Order) -> dict:
    return OrderOut.model_validate(o).model_dump(mode="json")


# -------------------
# Any authenticated user
# -------------------
@router.post("", status_code=201)
def create_order(
    payload: CreateOrderIn,
    tasks: BackgroundTasks,
    user: User = Depends(require_user),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
    mailer: Mailer = Depends(get_mailer),
):
    order = workflow.create_order(db, user, payload, settings.order_pricing)

    # sent after commit; a mail failure never undoes the order
    lines = workflow.summary_lines(db, order.id)
    email, order_id, total = user.email, order.id, order.total_amount
    tasks.add_task(
        notify,
        lambda: send_order_confirmation(mailer, email, order_id, total, lines),
        "order confirmation",
    )
    return {"success": True, "order": _order(order), "message": "Order created successfully"}


@router.get("/customer/{customer_id}")
def orders_by_customer(
    customer_id: int,
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1, le=100),
    user: User = Depends(require_user),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    orders, total = workflow.list_customer_orders(
        db, customer_id, user, page, limit, empty_not_found=settings.empty_history_not_found
    )
    return {
        "success": True,
        "data": [_order(o) for o in orders],
        "pagination": pagination(page, limit, total),
    }


@router.get("/{order_id}")
def get_order(order_id: int, user: User = Depends(require_user), db: Session = Depends(get_db)):
    order = workflow.get_order(db, order_id, user)
    return {"success": True, "data": OrderDetailOut.model_validate(order).model_dump(mode="json")}


# -------------------
# Admin / staff
# -------------------
@router.get("")
def list_orders(
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1, le=100),
    status: Optional[str] = Query(default=None),
    _staff: User = Depends(require_capability(Capability.view_all_orders)),
    db: Session = Depends(get_db),
):
    orders, total = workflow.list_orders(db, page, limit, status)
    return {
        "success": True,
        "data": [OrderWithEmailOut.model_validate(o).model_dump(mode="json") for o in orders],
        "pagination": pagination(page, limit, total),
    }


@router.put("/{order_id}/status")
def update_order_status(
    order_id: int,
    payload: StatusIn,
    _staff: User = Depends(manage_status),
    db: Session = Depends(get_db),
):
    order = workflow.update_status(db, order_id, "status", payload.status)
    return {"success": True, "data": _order(order), "message": "Order status updated"}


@router.put("/{order_id}/payment-status")
def update_payment_status(
    order_id: int,
    payload: PaymentStatusIn,
    _staff: User = Depends(manage_status),
    db: Session = Depends(get_db),
):
    order = workflow.update_status(db, order_id, "payment_status", payload.payment_status)
    return {"success": True, "data": _order(order), "message": "Payment status updated"}


@router.put("/{order_id}/delivery-status")
def update_delivery_status(
    order_id: int,
    payload: DeliveryStatusIn,
    _staff: User = Depends(manage_status),
    db: Session = Depends(get_db),
):
    order = workflow.update_status(db, order_id, "delivery_status", payload.delivery_status)
    return {"success": True, "data": _order(order), "message": "Delivery status updated"}


@router.delete("/{order_id}")
def delete_order(
    order_id: int,
    _admin: User = Depends(require_capability(Capability.delete_orders)),
    db: Session = Depends(get_db),
):
    workflow.delete_order(db, order_id)
    return {"success": True, "message": "Order deleted successfully"}
