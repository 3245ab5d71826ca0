"""
Tracked links: staff list and create short links; /r/{slug} counts the visit and redirects.
"""
from typing import Any

from fastapi import APIRouter, Depends, Request
from fastapi.responses import RedirectResponse
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from farmstand.db.session import get_db
from farmstand.services.links import create_link, list_links, record_hit

router = APIRouter()
redirect_router = APIRouter()


class CreateLinkRequest(BaseModel):
    target_url: str = Field(min_length=1, max_length=2048)
    label: str | None = Field(None, max_length=255)
    utm_source: str | None = Field(None, max_length=128)
    utm_medium: str | None = Field(None, max_length=128)
    utm_campaign: str | None = Field(None, max_length=128)


@router.get("")
def get_links(db: Session = Depends(get_db)) -> dict[str, Any]:
    return {"links": list_links(db)}


@router.post("", status_code=201)
def post_link(body: CreateLinkRequest, db: Session = Depends(get_db)) -> dict[str, Any]:
    return {
        "link": create_link(
            db,
            body.target_url,
            label=body.label,
            utm_source=body.utm_source,
            utm_medium=body.utm_medium,
            utm_campaign=body.utm_campaign,
        )
    }


@redirect_router.get("/r/{slug}", include_in_schema=False)
def follow_link(slug: str, request: Request, db: Session = Depends(get_db)) -> RedirectResponse:
    forwarded = request.headers.get("x-forwarded-for") or request.headers.get("x-real-ip")
    ip = forwarded.split(",")[0].strip() if forwarded else (request.client.host if request.client else None)
    target = record_hit(db, slug, ip, request.headers.get("user-agent"))
    return RedirectResponse(target, status_code=302)
