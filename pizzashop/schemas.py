# pizzashop/schemas.py
from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Annotated, Any, List, Optional

from pydantic import AfterValidator, BaseModel, ConfigDict, EmailStr, Field

from .ordering.status import DeliveryStatus, OrderStatus, PaymentStatus
from .roles import Role


def _not_blank(v: str) -> str:
    v = v.strip()
    if not v:
        raise ValueError("must not be empty")
    return v


NonBlank = Annotated[str, AfterValidator(_not_blank)]

# at most two decimal places
Money = Annotated[Decimal, Field(decimal_places=2)]


# -------------------
# Users
# -------------------
class RegisterIn(BaseModel):
    name: NonBlank
    email: EmailStr
    phone: NonBlank
    password: str = Field(min_length=8)


class LoginIn(BaseModel):
    email: EmailStr
    password: str


class ForgotPasswordIn(BaseModel):
    email: EmailStr


class ResetPasswordIn(BaseModel):
    token: str
    new_password: str = Field(min_length=8, alias="newPassword")

    model_config = ConfigDict(populate_by_name=True)


class ProfileUpdateIn(BaseModel):
    name: Optional[str] = None
    phone: Optional[str] = None


class UserOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    email: str
    phone: Optional[str] = None
    role: Role
    is_verified: bool
    created_at: Optional[datetime] = None


# -------------------
# Catalog
# -------------------
class IngredientIn(BaseModel):
    name: NonBlank
    description: Optional[str] = None


class IngredientCreateIn(IngredientIn):
    description: NonBlank


class IngredientOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    description: Optional[str] = None
    created_at: Optional[datetime] = None


class PizzaIn(BaseModel):
    name: NonBlank
    price: Money = Field(gt=0)
    size: NonBlank
    description: Optional[str] = None
    image: Optional[str] = None
    ingredients: List[int] = Field(default_factory=list)


class PizzaOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    slug: str
    description: Optional[str] = None
    price: float
    size: str
    image: Optional[str] = None
    created_at: Optional[datetime] = None
    ingredients: List[IngredientOut] = Field(default_factory=list)


# -------------------
# Orders
# -------------------
class OrderLineIn(BaseModel):
    pizza_id: int
    quantity: int = Field(gt=0)
    price: Money = Field(ge=0)


class CreateOrderIn(BaseModel):
    # shape checked by the workflow so a missing/empty list is a 400, not a 422
    items: Any = None
    delivery_address: NonBlank
    special_instructions: Optional[str] = None


class StatusIn(BaseModel):
    status: Any = None


class PaymentStatusIn(BaseModel):
    payment_status: Any = None


class DeliveryStatusIn(BaseModel):
    delivery_status: Any = None


class OrderItemOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    order_id: int
    pizza_id: int
    quantity: int
    price: float


class OrderOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: int
    total_amount: float
    delivery_address: str
    special_instructions: Optional[str] = None
    status: OrderStatus
    payment_status: PaymentStatus
    delivery_status: DeliveryStatus
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class OrderWithEmailOut(OrderOut):
    customer_email: Optional[str] = None


class OrderDetailOut(OrderWithEmailOut):
    items: List[OrderItemOut] = Field(default_factory=list)


class Pagination(BaseModel):
    page: int
    limit: int
    total: int
