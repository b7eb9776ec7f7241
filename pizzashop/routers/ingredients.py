# pizzashop/routers/ingredients.py
from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ..catalog import ingredients as service
from ..db import get_db
from ..deps import require_capability
from ..models import Ingredient, User
from ..paging import pagination
from ..roles import Capability
from ..schemas import IngredientCreateIn, IngredientIn, IngredientOut

router = APIRouter(prefix="/api/v1/ingredients", tags=["ingredients"])

catalog_admin = require_capability(Capability.manage_catalog)


def _ingredient(i: Ingredient) -> dict:
    return IngredientOut.model_validate(i).model_dump(mode="json")


@router.get("")
def list_ingredients(
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=20, ge=1, le=100),
    db: Session = Depends(get_db),
):
    rows, total = service.list_ingredients(db, page, limit)
    return {"success": True, "data": [_ingredient(i) for i in rows], "pagination": pagination(page, limit, total)}


@router.get("/{ingredient_id}")
def get_ingredient(ingredient_id: int, db: Session = Depends(get_db)):
    return {"success": True, "data": _ingredient(service.get_ingredient(db, ingredient_id))}


@router.post("", status_code=201)
def create_ingredient(payload: IngredientCreateIn, _admin: User = Depends(catalog_admin), db: Session = Depends(get_db)):
    ing = service.create_ingredient(db, payload)
    return {"success": True, "data": _ingredient(ing), "message": "Ingredient created successfully"}


@router.put("/{ingredient_id}")
def update_ingredient(
    ingredient_id: int,
    payload: IngredientIn,
    _admin: User = Depends(catalog_admin),
    db: Session = Depends(get_db),
):
    ing = service.update_ingredient(db, ingredient_id, payload)
    return {"success": True, "data": _ingredient(ing), "message": "Ingredient updated successfully"}


@router.delete("/{ingredient_id}")
def delete_ingredient(ingredient_id: int, _admin: User = Depends(catalog_admin), db: Session = Depends(get_db)):
    service.delete_ingredient(db, ingredient_id)
    return {"success": True, "message": "Ingredient deleted successfully"}
