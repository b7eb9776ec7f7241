# pizzashop/ordering/workflow.py
from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, List, Optional, Tuple

from sqlalchemy import delete, func, select
from sqlalchemy.orm import Session, joinedload, selectinload

from ..db import transaction
from ..errors import ApiError, AuthenticationFailure, AuthorizationFailure, NotFound, UnexpectedFailure, ValidationFailure
from ..models import Order, OrderItem, Pizza, User
from ..paging import offset_for
from ..roles import Capability, has_capability
from ..schemas import CreateOrderIn, OrderLineIn
from .pricing import order_total, price_lines
from .status import AXES, OrderStatus, parse_status

logger = logging.getLogger(__name__)


def parse_lines(raw_items: Any) -> List[OrderLineIn]:
    if not raw_items or not isinstance(raw_items, list):
        raise ValidationFailure("Invalid order items")
    # per-line problems surface as pydantic ValidationError -> 422
    return [OrderLineIn.model_validate(x) for x in raw_items]


def create_order(db: Session, user: User, payload: CreateOrderIn, pricing: str) -> Order:
    """Insert the order header and all of its lines as one unit of work.

    Nothing is left behind when any insert fails.
    """
    lines = parse_lines(payload.items)

    try:
        with transaction(db):
            priced = price_lines(db, lines, pricing)
            order = Order(
                user_id=user.id,
                total_amount=order_total(priced),
                delivery_address=payload.delivery_address,
                special_instructions=payload.special_instructions,
                status=OrderStatus.pending,
            )
            db.add(order)
            db.flush()

            for line in priced:
                db.add(
                    OrderItem(
                        order_id=order.id,
                        pizza_id=line.pizza_id,
                        quantity=line.quantity,
                        price=line.price,
                    )
                )
            db.flush()
    except ApiError:
        raise
    except Exception as exc:
        raise UnexpectedFailure("Order creation failed") from exc

    logger.info("Order %s created for user %s (%d items, total %.2f)", order.id, user.id, len(priced), order.total_amount)
    return order


def summary_lines(db: Session, order_id: int) -> List[str]:
    rows = db.execute(
        select(OrderItem.quantity, OrderItem.price, Pizza.name)
        .join(Pizza, Pizza.id == OrderItem.pizza_id)
        .where(OrderItem.order_id == order_id)
        .order_by(OrderItem.id)
    ).all()
    return [f"{qty} x {name} @ {price:.2f}" for qty, price, name in rows]


def _can_view_any(user: User) -> bool:
    return has_capability(user.role, Capability.view_all_orders)


def get_order(db: Session, order_id: int, requester: User) -> Order:
    order = db.get(Order, order_id, options=[selectinload(Order.items), joinedload(Order.user)])

    # existence first, ownership second
    if order is None:
        raise NotFound("Order not found")
    if order.user_id != requester.id and not _can_view_any(requester):
        raise AuthorizationFailure("Unauthorized access")
    return order


def list_customer_orders(
    db: Session,
    customer_id: int,
    requester: Optional[User],
    page: int,
    limit: int,
    empty_not_found: bool = False,
) -> Tuple[List[Order], int]:
    if requester is None:
        raise AuthenticationFailure("Unauthorized access, user not logged in")
    if customer_id != requester.id and not _can_view_any(requester):
        raise AuthorizationFailure("Unauthorized access")

    total = db.scalar(select(func.count(Order.id)).where(Order.user_id == customer_id)) or 0
    orders = list(
        db.scalars(
            select(Order)
            .where(Order.user_id == customer_id)
            .order_by(Order.created_at.desc(), Order.id.desc())
            .limit(limit)
            .offset(offset_for(page, limit))
        )
    )

    if not orders and empty_not_found:
        raise NotFound("No orders found for customer")
    return orders, total


def list_orders(db: Session, page: int, limit: int, status: Optional[str] = None) -> Tuple[List[Order], int]:
    stmt = select(Order).options(joinedload(Order.user))
    count = select(func.count(Order.id))

    if status:
        wanted = parse_status(AXES["status"], status)
        if wanted is None:
            raise ValidationFailure("Invalid order status")
        stmt = stmt.where(Order.status == wanted)
        count = count.where(Order.status == wanted)

    total = db.scalar(count) or 0
    orders = list(
        db.scalars(
            stmt.order_by(Order.created_at.desc(), Order.id.desc()).limit(limit).offset(offset_for(page, limit))
        )
    )
    return orders, total


def update_status(db: Session, order_id: int, axis_name: str, raw: Any) -> Order:
    """Set one status axis. The other two axes are left alone."""
    axis = AXES[axis_name]
    value = parse_status(axis, raw)
    if value is None:
        raise ValidationFailure(f"Invalid {axis.label}")

    order = db.get(Order, order_id)
    if order is None:
        raise NotFound("Order not found")

    with transaction(db):
        setattr(order, axis.column, value)
        order.updated_at = datetime.utcnow()

    logger.info("Order %s %s -> %s", order_id, axis.column, value.value)
    return order


def delete_order(db: Session, order_id: int) -> None:
    try:
        with transaction(db):
            db.execute(delete(OrderItem).where(OrderItem.order_id == order_id))
            res = db.execute(delete(Order).where(Order.id == order_id))
            if res.rowcount == 0:
                # raising here undoes the item delete above
                raise NotFound("Order not found")
    except ApiError:
        raise
    except Exception as exc:
        raise UnexpectedFailure("Failed to delete order") from exc

    logger.info("Order %s deleted", order_id)
