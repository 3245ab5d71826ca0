from typing import Any

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from farmstand.db.session import get_db
from farmstand.services.pickups import pickups_today

router = APIRouter()


@router.get("/today")
def get_pickups_today(db: Session = Depends(get_db)) -> dict[str, Any]:
    """Reserved vs capacity for today plus every slot in time order."""
    return pickups_today(db)
