"""Product catalog lookups and purchase checks."""
from typing import Literal

from pydantic import BaseModel, Field

from farmstand.core.errors import ValidationError
from farmstand.data.products import get_product_entries


class Product(BaseModel):
    id: str
    slug: str
    name: str
    description: str = ""
    image: str = ""
    currency: Literal["CAD"] = "CAD"
    price_cents: int = Field(ge=0)
    stripe_price_id: str
    unit: str
    in_stock: bool
    max_per_order: int = Field(gt=0)
    pickup_only: bool = True


_CATALOG: list[Product] = [Product(**p) for p in get_product_entries()]


def all_products() -> list[Product]:
    return list(_CATALOG)


def find_by_slug(slug: str) -> Product | None:
    return next((p for p in _CATALOG if p.slug == slug), None)


def assert_purchasable(product: Product, qty: int) -> None:
    if not product.in_stock:
        raise ValidationError("Item out of stock")
    if qty < 1 or qty > product.max_per_order:
        raise ValidationError("Invalid quantity")


def find_by_id(product_id: str) -> Product | None:
    return next((p for p in _CATALOG if p.id == product_id), None)
