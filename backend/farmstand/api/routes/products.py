from typing import Any

from fastapi import APIRouter

from farmstand.services.products import all_products

router = APIRouter()


@router.get("")
def list_products() -> dict[str, Any]:
    """Storefront catalog; stripe_price_id stays server-side."""
    return {"products": [p.model_dump(exclude={"stripe_price_id"}) for p in all_products()]}
