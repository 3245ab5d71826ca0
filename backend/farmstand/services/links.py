"""Tracked short links: create, list with hit counts, and resolve a slug to its UTM-tagged target."""
import logging
import secrets
import string
from datetime import datetime, timedelta
from typing import Any
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, selectinload

from farmstand.core.dates import as_utc, utcnow
from farmstand.core.errors import NotFoundError, ValidationError
from farmstand.models.link import LinkHit, TrackedLink

logger = logging.getLogger(__name__)

SLUG_ALPHABET = string.ascii_lowercase + string.digits
SLUG_LENGTH = 6
RECENT_HITS_DAYS = 7


def _new_slug(db: Session) -> str:
    while True:
        slug = "".join(secrets.choice(SLUG_ALPHABET) for _ in range(SLUG_LENGTH))
        if not db.query(TrackedLink.id).filter(TrackedLink.short_slug == slug).first():
            return slug


def _link_to_dict(link: TrackedLink, now: datetime) -> dict[str, Any]:
    since = now - timedelta(days=RECENT_HITS_DAYS)
    return {
        "id": link.id,
        "label": link.label,
        "target_url": link.target_url,
        "short_slug": link.short_slug,
        "utm_source": link.utm_source,
        "utm_medium": link.utm_medium,
        "utm_campaign": link.utm_campaign,
        "active": link.active,
        "created_at": link.created_at.isoformat() if link.created_at else None,
        "hits": len(link.hits),
        "recentHits": sum(1 for h in link.hits if h.ts is not None and as_utc(h.ts) > since),
    }


def list_links(db: Session, now: datetime | None = None) -> list[dict[str, Any]]:
    now = now or utcnow()
    links = (
        db.query(TrackedLink)
        .options(selectinload(TrackedLink.hits))
        .filter(TrackedLink.active.is_(True))
        .order_by(TrackedLink.created_at.desc(), TrackedLink.id.desc())
        .all()
    )
    return [_link_to_dict(link, now) for link in links]


def create_link(
    db: Session,
    target_url: str,
    *,
    label: str | None = None,
    utm_source: str | None = None,
    utm_medium: str | None = None,
    utm_campaign: str | None = None,
) -> dict[str, Any]:
    parts = urlsplit(target_url or "")
    if parts.scheme not in ("http", "https") or not parts.netloc:
        raise ValidationError("target_url must be an absolute http(s) URL")
    link = TrackedLink(
        label=label,
        target_url=target_url,
        short_slug=_new_slug(db),
        utm_source=utm_source,
        utm_medium=utm_medium,
        utm_campaign=utm_campaign,
        active=True,
    )
    db.add(link)
    db.commit()
    db.refresh(link)
    logger.info("Created link %s -> %s", link.short_slug, target_url)
    return _link_to_dict(link, utcnow())


def tagged_target(link: TrackedLink) -> str:
    """target_url with the link's UTM tags set (overriding any already in the URL)."""
    parts = urlsplit(link.target_url)
    query = dict(parse_qsl(parts.query, keep_blank_values=True))
    for key in ("utm_source", "utm_medium", "utm_campaign"):
        value = getattr(link, key)
        if value:
            query[key] = value
    return urlunsplit(parts._replace(query=urlencode(query)))


def record_hit(db: Session, slug: str, ip: str | None, ua: str | None) -> str:
    """Log one visit and return where to redirect. A failed hit insert does not block the redirect."""
    link = db.query(TrackedLink).filter(TrackedLink.short_slug == slug).first()
    if link is None or not link.active:
        raise NotFoundError("Link not found")
    target = tagged_target(link)
    try:
        db.add(LinkHit(link_id=link.id, ip=(ip or "unknown")[:64], ua=(ua or "unknown")[:512]))
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.exception("Error logging hit for link %s: %s", slug, e)
    return target
