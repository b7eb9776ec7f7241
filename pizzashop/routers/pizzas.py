# pizzashop/routers/pizzas.py
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ..catalog import pizzas as service
from ..db import get_db
from ..deps import require_capability
from ..models import Pizza, User
from ..paging import pagination
from ..roles import Capability
from ..schemas import PizzaIn, PizzaOut

router = APIRouter(prefix="/api/v1/pizzas", tags=["pizzas"])

catalog_admin = require_capability(Capability.manage_catalog)


def _pizza(p: Pizza) -> dict:
    return PizzaOut.model_validate(p).model_dump(mode="json")


# -------------------
# Public
# -------------------
@router.get("")
def list_pizzas(
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1, le=100),
    min_price: Optional[float] = Query(default=None, alias="minPrice"),
    max_price: Optional[float] = Query(default=None, alias="maxPrice"),
    size: Optional[str] = None,
    search: Optional[str] = None,
    db: Session = Depends(get_db),
):
    rows, total = service.list_pizzas(db, page, limit, min_price, max_price, size, search)
    return {"success": True, "data": [_pizza(p) for p in rows], "pagination": pagination(page, limit, total)}


@router.get("/by-slug/{slug}")
def get_pizza_by_slug(slug: str, db: Session = Depends(get_db)):
    return {"success": True, "data": _pizza(service.get_pizza_by_slug(db, slug))}


@router.get("/{pizza_id}")
def get_pizza(pizza_id: int, db: Session = Depends(get_db)):
    return {"success": True, "data": _pizza(service.get_pizza(db, pizza_id))}


# -------------------
# Admin
# -------------------
@router.post("", status_code=201)
def create_pizza(payload: PizzaIn, _admin: User = Depends(catalog_admin), db: Session = Depends(get_db)):
    pizza = service.create_pizza(db, payload)
    return {"success": True, "data": _pizza(pizza), "message": "Pizza created successfully"}


@router.put("/{pizza_id}")
def update_pizza(pizza_id: int, payload: PizzaIn, _admin: User = Depends(catalog_admin), db: Session = Depends(get_db)):
    pizza = service.update_pizza(db, pizza_id, payload)
    return {"success": True, "data": _pizza(pizza), "message": "Pizza updated successfully"}


@router.delete("/{pizza_id}")
def delete_pizza(pizza_id: int, _admin: User = Depends(catalog_admin), db: Session = Depends(get_db)):
    service.delete_pizza(db, pizza_id)
    return {"success": True, "message": "Pizza deleted successfully"}
