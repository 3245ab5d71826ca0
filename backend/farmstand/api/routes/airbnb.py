from typing import Any

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from farmstand.db.session import get_db
from farmstand.services.occupancy import refresh_occupancy

router = APIRouter()


@router.post("/refresh")
def refresh(db: Session = Depends(get_db)) -> dict[str, Any]:
    return refresh_occupancy(db)
