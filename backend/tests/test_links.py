from datetime import timedelta
from urllib.parse import parse_qs, urlsplit

from farmstand.core.dates import utcnow
from farmstand.models import LinkHit, TrackedLink
from farmstand.services.links import list_links


def _create(client, **overrides):
    body = {
        "label": "Instagram bio",
        "target_url": "https://littlebowmeadows.ca/shop?ref=bio",
        "utm_source": "instagram",
        "utm_medium": "bio",
        "utm_campaign": "fall_eggs",
    }
    body.update(overrides)
    return client.post("/api/links", json=body)


def test_create_link_assigns_short_slug(client, db):
    r = _create(client)

    assert r.status_code == 201
    link = r.json()["link"]
    assert len(link["short_slug"]) == 6
    assert link["short_slug"].isalnum()
    assert link["hits"] == 0
    assert db.query(TrackedLink).count() == 1


def test_create_link_requires_absolute_url(client, db):
    r = _create(client, target_url="/shop")
    assert r.status_code == 400
    assert r.json() == {"error": "target_url must be an absolute http(s) URL"}


def test_redirect_counts_hit_and_tags_url(client, db):
    slug = _create(client).json()["link"]["short_slug"]

    r = client.get(f"/r/{slug}", headers={"User-Agent": "pytest", "X-Forwarded-For": "203.0.113.9, 10.0.0.1"}, follow_redirects=False)

    assert r.status_code == 302
    target = urlsplit(r.headers["location"])
    assert target.netloc == "littlebowmeadows.ca"
    assert parse_qs(target.query) == {
        "ref": ["bio"],
        "utm_source": ["instagram"],
        "utm_medium": ["bio"],
        "utm_campaign": ["fall_eggs"],
    }
    hit = db.query(LinkHit).one()
    assert hit.ip == "203.0.113.9"
    assert hit.ua == "pytest"


def test_unknown_or_inactive_slug_is_404(client, db):
    slug = _create(client).json()["link"]["short_slug"]
    link = db.query(TrackedLink).one()
    link.active = False
    db.commit()

    assert client.get(f"/r/{slug}", follow_redirects=False).status_code == 404
    r = client.get("/r/nope12", follow_redirects=False)
    assert r.status_code == 404
    assert r.json() == {"error": "Link not found"}


def test_list_links_counts_recent_hits(client, db):
    slug = _create(client).json()["link"]["short_slug"]
    client.get(f"/r/{slug}", follow_redirects=False)
    link = db.query(TrackedLink).one()
    db.add(LinkHit(link_id=link.id, ts=utcnow() - timedelta(days=30), ip="old", ua="old"))
    db.commit()

    listed = client.get("/api/links").json()["links"]

    assert len(listed) == 1
    assert listed[0]["hits"] == 2
    assert listed[0]["recentHits"] == 1
    assert list_links(db, now=utcnow() + timedelta(days=60))[0]["recentHits"] == 0
