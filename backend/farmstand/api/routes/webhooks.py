"""Backfill orders for paid sessions whose webhook was missed."""
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from farmstand.db.session import get_db
from farmstand.services.payment_completion import reconcile_recent_sessions
from farmstand.services.payments import StripeGateway, get_payment_gateway

router = APIRouter()


@router.post("/reconcile")
def reconcile(
    db: Session = Depends(get_db),
    gateway: StripeGateway = Depends(get_payment_gateway),
) -> dict[str, int]:
    return reconcile_recent_sessions(db, gateway)
