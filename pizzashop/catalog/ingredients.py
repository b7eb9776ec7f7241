# pizzashop/catalog/ingredients.py
from __future__ import annotations

import logging
from typing import List, Tuple

from sqlalchemy import delete, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..db import transaction
from ..errors import Conflict, NotFound, ValidationFailure, is_unique_violation
from ..models import Ingredient, pizza_ingredients
from ..paging import offset_for
from ..schemas import IngredientCreateIn, IngredientIn

logger = logging.getLogger(__name__)


def _name_taken(db: Session, name: str, exclude_id: int | None = None) -> bool:
    stmt = select(Ingredient.id).where(Ingredient.name == name)
    if exclude_id is not None:
        stmt = stmt.where(Ingredient.id != exclude_id)
    return db.scalar(stmt) is not None


def create_ingredient(db: Session, payload: IngredientCreateIn) -> Ingredient:
    if _name_taken(db, payload.name):
        raise Conflict("Ingredient already exists")

    ing = Ingredient(name=payload.name, description=payload.description)
    try:
        with transaction(db):
            db.add(ing)
    except IntegrityError as exc:
        # lost a race with a concurrent insert of the same name
        if is_unique_violation(exc):
            raise Conflict("Ingredient already exists") from exc
        raise
    return ing


def list_ingredients(db: Session, page: int, limit: int) -> Tuple[List[Ingredient], int]:
    total = db.scalar(select(func.count(Ingredient.id))) or 0
    rows = db.scalars(
        select(Ingredient).order_by(Ingredient.name).limit(limit).offset(offset_for(page, limit))
    )
    return list(rows), total


def get_ingredient(db: Session, ingredient_id: int) -> Ingredient:
    ing = db.get(Ingredient, ingredient_id)
    if ing is None:
        raise NotFound("Ingredient not found")
    return ing


def update_ingredient(db: Session, ingredient_id: int, payload: IngredientIn) -> Ingredient:
    ing = get_ingredient(db, ingredient_id)
    if _name_taken(db, payload.name, exclude_id=ingredient_id):
        raise Conflict("Ingredient already exists")

    with transaction(db):
        ing.name = payload.name
        ing.description = payload.description
    return ing


def delete_ingredient(db: Session, ingredient_id: int) -> None:
    with transaction(db):
        used = db.scalar(
            select(func.count()).select_from(pizza_ingredients).where(pizza_ingredients.c.ingredient_id == ingredient_id)
        )
        if used:
            raise ValidationFailure("Cannot delete ingredient used in pizzas")

        res = db.execute(delete(Ingredient).where(Ingredient.id == ingredient_id))
        if res.rowcount == 0:
            raise NotFound("Ingredient not found")

    logger.info("Ingredient %s deleted", ingredient_id)
