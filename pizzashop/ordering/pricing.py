# pizzashop/ordering/pricing.py
from __future__ import annotations

from decimal import Decimal
from typing import Dict, Iterable, List, NamedTuple

from sqlalchemy import select
from sqlalchemy.orm import Session

from ..errors import ValidationFailure
from ..models import Pizza
from ..schemas import OrderLineIn

CLIENT = "client"
CATALOG = "catalog"
POLICIES = {CLIENT, CATALOG}
CENT = Decimal("0.01")


class PricedLine(NamedTuple):
    pizza_id: int
    quantity: int
    price: float


def order_total(lines: Iterable[PricedLine]) -> float:
    """Sum of price x quantity, computed in decimal and rounded to the cent."""
    total = sum((Decimal(str(line.price)) * line.quantity for line in lines), Decimal("0"))
    return float(total.quantize(CENT))


def price_lines(db: Session, lines: List[OrderLineIn], policy: str) -> List[PricedLine]:
    """Fix the unit price stored with each line.

    client  -> the price sent by the caller is kept as-is
    catalog -> the pizza's current catalog price replaces it
    """
    if policy not in POLICIES:
        raise ValueError(f"Unknown pricing policy: {policy!r}")

    if policy == CLIENT:
        return [PricedLine(x.pizza_id, x.quantity, float(x.price)) for x in lines]

    ids = {x.pizza_id for x in lines}
    rows = db.execute(select(Pizza.id, Pizza.price).where(Pizza.id.in_(ids))).all()
    catalog: Dict[int, float] = {pid: float(price) for pid, price in rows}

    unknown = sorted(ids - set(catalog))
    if unknown:
        raise ValidationFailure(f"Unknown pizza ids: {', '.join(str(i) for i in unknown)}")

    return [PricedLine(x.pizza_id, x.quantity, catalog[x.pizza_id]) for x in lines]
