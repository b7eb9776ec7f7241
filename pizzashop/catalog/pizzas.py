# pizzashop/catalog/pizzas.py
from __future__ import annotations

import logging
from typing import List, Optional, Tuple

from sqlalchemy import delete, func, insert, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, selectinload

from ..db import transaction
from ..errors import ApiError, Conflict, NotFound, UnexpectedFailure, ValidationFailure, is_unique_violation
from ..models import Ingredient, OrderItem, Pizza, pizza_ingredients
from ..paging import offset_for
from ..schemas import PizzaIn
from .slugs import unique_slug

logger = logging.getLogger(__name__)


def _slug_taken(db: Session, slug: str) -> bool:
    return db.scalar(select(Pizza.id).where(Pizza.slug == slug)) is not None


def _check_ingredients(db: Session, ids: List[int]) -> List[int]:
    wanted = list(dict.fromkeys(ids))  # de-dup, keep order
    if not wanted:
        return []
    found = set(db.scalars(select(Ingredient.id).where(Ingredient.id.in_(wanted))))
    missing = [i for i in wanted if i not in found]
    if missing:
        raise ValidationFailure(f"Unknown ingredient ids: {', '.join(str(i) for i in missing)}")
    return wanted


def _link_ingredients(db: Session, pizza_id: int, ingredient_ids: List[int]) -> None:
    if ingredient_ids:
        db.execute(
            insert(pizza_ingredients),
            [{"pizza_id": pizza_id, "ingredient_id": i} for i in ingredient_ids],
        )


def get_pizza(db: Session, pizza_id: int) -> Pizza:
    """Pizza plus its ingredient list, freshly read."""
    pizza = db.get(Pizza, pizza_id, options=[selectinload(Pizza.ingredients)], populate_existing=True)
    if pizza is None:
        raise NotFound("Pizza not found")
    return pizza


def get_pizza_by_slug(db: Session, slug: str) -> Pizza:
    pizza = db.scalar(select(Pizza).options(selectinload(Pizza.ingredients)).where(Pizza.slug == slug))
    if pizza is None:
        raise NotFound("Pizza not found")
    return pizza


def create_pizza(db: Session, payload: PizzaIn) -> Pizza:
    try:
        with transaction(db):
            ingredient_ids = _check_ingredients(db, payload.ingredients)
            pizza = Pizza(
                name=payload.name,
                slug=unique_slug(payload.name, lambda s: _slug_taken(db, s)),
                description=payload.description,
                price=float(payload.price),
                size=payload.size,
                image=payload.image,
            )
            db.add(pizza)
            db.flush()
            _link_ingredients(db, pizza.id, ingredient_ids)
    except ApiError:
        raise
    except IntegrityError as exc:
        if is_unique_violation(exc):
            raise Conflict("Pizza with this name or slug already exists") from exc
        raise UnexpectedFailure("Pizza creation failed") from exc

    logger.info("Pizza %s created (slug=%s)", pizza.id, pizza.slug)
    return get_pizza(db, pizza.id)


def list_pizzas(
    db: Session,
    page: int,
    limit: int,
    min_price: Optional[float] = None,
    max_price: Optional[float] = None,
    size: Optional[str] = None,
    search: Optional[str] = None,
) -> Tuple[List[Pizza], int]:
    filters = []
    if min_price is not None:
        filters.append(Pizza.price >= min_price)
    if max_price is not None:
        filters.append(Pizza.price <= max_price)
    if size:
        filters.append(Pizza.size == size)
    if search:
        filters.append(func.lower(Pizza.name).like(f"%{search.lower()}%"))

    total = db.scalar(select(func.count(Pizza.id)).where(*filters)) or 0
    rows = db.scalars(
        select(Pizza)
        .options(selectinload(Pizza.ingredients))
        .where(*filters)
        .order_by(Pizza.created_at.desc(), Pizza.id.desc())
        .limit(limit)
        .offset(offset_for(page, limit))
    )
    return list(rows), total


def update_pizza(db: Session, pizza_id: int, payload: PizzaIn) -> Pizza:
    """Replace the pizza's fields and its whole ingredient set. The slug stays put."""
    try:
        with transaction(db):
            pizza = db.get(Pizza, pizza_id)
            if pizza is None:
                raise NotFound("Pizza not found")
            ingredient_ids = _check_ingredients(db, payload.ingredients)

            pizza.name = payload.name
            pizza.description = payload.description
            pizza.price = float(payload.price)
            pizza.size = payload.size
            pizza.image = payload.image
            db.flush()

            db.execute(delete(pizza_ingredients).where(pizza_ingredients.c.pizza_id == pizza_id))
            _link_ingredients(db, pizza_id, ingredient_ids)
    except ApiError:
        raise
    except Exception as exc:
        raise UnexpectedFailure("Failed to update pizza") from exc

    return get_pizza(db, pizza_id)


def delete_pizza(db: Session, pizza_id: int) -> None:
    with transaction(db):
        if db.get(Pizza, pizza_id) is None:
            raise NotFound("Pizza not found")

        ordered = db.scalar(select(func.count(OrderItem.id)).where(OrderItem.pizza_id == pizza_id))
        if ordered:
            raise Conflict("Pizza is referenced by existing orders")

        # associations go, the ingredients themselves stay
        db.execute(delete(pizza_ingredients).where(pizza_ingredients.c.pizza_id == pizza_id))
        db.execute(delete(Pizza).where(Pizza.id == pizza_id))

    logger.info("Pizza %s deleted", pizza_id)
