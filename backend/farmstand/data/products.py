"""
Farm store catalog. Prices are in cents (CAD); stripe_price_id must match the Stripe dashboard.

Edit here when the season's lineup changes; services.products validates every entry at import.
"""
from typing import TypedDict


class ProductEntry(TypedDict, total=False):
    id: str
    slug: str
    name: str
    description: str
    image: str
    currency: str
    price_cents: int
    stripe_price_id: str
    unit: str
    in_stock: bool
    max_per_order: int
    pickup_only: bool


PRODUCTS: list[ProductEntry] = [
    {
        "id": "eggs-dozen",
        "slug": "farm-eggs-dozen",
        "name": "Farm Fresh Eggs (Dozen)",
        "description": "Pasture-raised eggs collected daily.",
        "image": "/images/eggs.jpg",
        "currency": "CAD",
        "price_cents": 800,
        "stripe_price_id": "price_eggs_dozen",
        "unit": "dozen",
        "in_stock": True,
        "max_per_order": 4,
    },
    {
        "id": "bouquet-seasonal",
        "slug": "seasonal-bouquet",
        "name": "Seasonal Flower Bouquet",
        "description": "Hand-tied bouquet of whatever is blooming this week.",
        "image": "/images/bouquet.jpg",
        "currency": "CAD",
        "price_cents": 3500,
        "stripe_price_id": "price_bouquet_seasonal",
        "unit": "bouquet",
        "in_stock": True,
        "max_per_order": 3,
    },
    {
        "id": "honey-500g",
        "slug": "wildflower-honey",
        "name": "Wildflower Honey 500g",
        "description": "Raw honey from hives on the property.",
        "image": "/images/honey.jpg",
        "currency": "CAD",
        "price_cents": 1400,
        "stripe_price_id": "price_honey_500g",
        "unit": "jar",
        "in_stock": True,
        "max_per_order": 6,
    },
    {
        "id": "veg-box",
        "slug": "veggie-box",
        "name": "Market Veggie Box",
        "description": "Weekly mixed vegetables.",
        "image": "/images/veg-box.jpg",
        "currency": "CAD",
        "price_cents": 4500,
        "stripe_price_id": "price_veg_box",
        "unit": "box",
        "in_stock": False,
        "max_per_order": 2,
    },
]


def get_product_entries() -> list[dict]:
    return [dict(p) for p in PRODUCTS]
