"""
Product waitlist: customers join or leave; staff trigger the back-in-stock email.
"""
from typing import Any

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from farmstand.core.errors import ValidationError
from farmstand.db.session import get_db
from farmstand.services.waitlist import join_waitlist, leave_waitlist, notify_waitlist

router = APIRouter()

EMAIL_PATTERN = r"^[^@\s]+@[^@\s]+\.[^@\s]+$"


class JoinWaitlistRequest(BaseModel):
    product_id: str = Field(min_length=1, max_length=64)
    email: str = Field(max_length=255, pattern=EMAIL_PATTERN)


class NotifyWaitlistRequest(BaseModel):
    product_id: str = Field(min_length=1, max_length=64)


@router.post("")
def post_join_waitlist(body: JoinWaitlistRequest, db: Session = Depends(get_db)) -> dict[str, Any]:
    entry, already_exists = join_waitlist(db, body.product_id, body.email)
    if already_exists:
        return {"message": "Already on waitlist", "already_exists": True}
    return {"message": "Successfully added to waitlist", "waitlistEntry": entry}


@router.delete("")
def delete_waitlist_entry(
    product_id: str | None = Query(None),
    email: str | None = Query(None),
    db: Session = Depends(get_db),
) -> dict[str, Any]:
    if not product_id or not email:
        raise ValidationError("Product ID and email are required")
    leave_waitlist(db, product_id, email)
    return {"message": "Successfully removed from waitlist"}


@router.post("/notify")
def post_notify_waitlist(body: NotifyWaitlistRequest, db: Session = Depends(get_db)) -> dict[str, Any]:
    return notify_waitlist(db, body.product_id)
