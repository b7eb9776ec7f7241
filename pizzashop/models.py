# pizzashop/models.py
from __future__ import annotations

from datetime import datetime

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    Enum,
    Float,
    ForeignKey,
    Integer,
    String,
    Table,
    Text,
)
from sqlalchemy.orm import relationship

from .db import Base
from .ordering.status import DeliveryStatus, OrderStatus, PaymentStatus
from .roles import Role


def _str_enum(enum_cls, name: str) -> Enum:
    # store the enum *values* ("admin"), not member names
    return Enum(
        enum_cls,
        name=name,
        native_enum=False,
        length=20,
        values_callable=lambda e: [m.value for m in e],
    )


class User(Base):
    __tablename__ = "users"
    id = Column(Integer, primary_key=True)
    name = Column(String, nullable=False)
    email = Column(String, unique=True, index=True, nullable=False)
    phone = Column(String, nullable=True)
    password_hash = Column(String, nullable=False)
    role = Column(_str_enum(Role, "user_role"), nullable=False, default=Role.customer)
    is_verified = Column(Boolean, nullable=False, default=False)

    # three separate slots so a login never clobbers a pending reset and vice versa
    verification_token = Column(Text, nullable=True)
    refresh_token = Column(Text, nullable=True)
    reset_token = Column(Text, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow)

    orders = relationship("Order", back_populates="user")


pizza_ingredients = Table(
    "pizza_ingredients",
    Base.metadata,
    Column("pizza_id", Integer, ForeignKey("pizzas.id", ondelete="CASCADE"), primary_key=True),
    Column("ingredient_id", Integer, ForeignKey("ingredients.id", ondelete="RESTRICT"), primary_key=True),
)


class Ingredient(Base):
    __tablename__ = "ingredients"
    id = Column(Integer, primary_key=True)
    name = Column(String, unique=True, nullable=False)
    description = Column(Text, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)


class Pizza(Base):
    __tablename__ = "pizzas"
    id = Column(Integer, primary_key=True)
    name = Column(String, nullable=False)
    slug = Column(String, unique=True, index=True, nullable=False)
    description = Column(Text, nullable=True)
    price = Column(Float, nullable=False)
    size = Column(String, nullable=False)
    image = Column(String, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)

    ingredients = relationship(
        "Ingredient",
        secondary=pizza_ingredients,
        order_by="Ingredient.name",
    )


class Order(Base):
    __tablename__ = "orders"
    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    total_amount = Column(Float, nullable=False)
    delivery_address = Column(Text, nullable=False)
    special_instructions = Column(Text, nullable=True)
    status = Column(_str_enum(OrderStatus, "order_status"), nullable=False, default=OrderStatus.pending)
    payment_status = Column(
        _str_enum(PaymentStatus, "payment_status"), nullable=False, default=PaymentStatus.pending
    )
    delivery_status = Column(
        _str_enum(DeliveryStatus, "delivery_status"), nullable=False, default=DeliveryStatus.pending
    )
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow)

    user = relationship("User", back_populates="orders")
    items = relationship("OrderItem", back_populates="order", order_by="OrderItem.id")

    @property
    def customer_email(self) -> str | None:
        return self.user.email if self.user else None


class OrderItem(Base):
    __tablename__ = "order_items"
    __table_args__ = (CheckConstraint("quantity > 0", name="ck_order_items_quantity"),)

    id = Column(Integer, primary_key=True)
    order_id = Column(Integer, ForeignKey("orders.id"), nullable=False, index=True)
    pizza_id = Column(Integer, ForeignKey("pizzas.id"), nullable=False)
    quantity = Column(Integer, nullable=False)
    price = Column(Float, nullable=False)  # unit price captured when the order was placed

    order = relationship("Order", back_populates="items")
