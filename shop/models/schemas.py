from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, Field


class Product(BaseModel):
    id: int
    name: str
    price: Decimal = Field(ge=0)


class Order(BaseModel):
    id: int
    product_id: int
    quantity: int
    total: Decimal
    created_at: datetime


class NewProduct(BaseModel):
    """Seed row; ids are assigned by the database."""

    name: str
    price: Decimal = Field(ge=0)
