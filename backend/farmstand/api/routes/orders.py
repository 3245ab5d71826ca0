"""Staff order endpoints: status changes and today's run sheet."""
from typing import Any

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.orm import Session

from farmstand.db.session import get_db
from farmstand.services.orders import order_to_dict, orders_today, update_order_status

router = APIRouter()


class UpdateStatusRequest(BaseModel):
    status: str


@router.patch("/{order_id}/status")
def patch_order_status(order_id: int, body: UpdateStatusRequest, db: Session = Depends(get_db)) -> dict[str, Any]:
    order = update_order_status(db, order_id, body.status)
    return {"order": order_to_dict(order)}


@router.get("/today")
def get_orders_today(db: Session = Depends(get_db)) -> dict[str, Any]:
    return orders_today(db)
