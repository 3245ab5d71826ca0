"""Short tracked links (/r/{short_slug}) with UTM tags, and one row per redirect served."""
from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String, Text, true
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from farmstand.db.base import Base


class TrackedLink(Base):
    __tablename__ = "links"

    id = Column(Integer, primary_key=True, autoincrement=True)
    label = Column(String(255), nullable=True)
    target_url = Column(Text, nullable=False)
    short_slug = Column(String(32), nullable=False, unique=True, index=True)
    utm_source = Column(String(128), nullable=True)
    utm_medium = Column(String(128), nullable=True)
    utm_campaign = Column(String(128), nullable=True)
    active = Column(Boolean, nullable=False, default=True, server_default=true())
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    hits = relationship("LinkHit", back_populates="link", cascade="all, delete-orphan")


class LinkHit(Base):
    __tablename__ = "link_hits"

    id = Column(Integer, primary_key=True, autoincrement=True)
    link_id = Column(Integer, ForeignKey("links.id"), nullable=False, index=True)
    ts = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    ip = Column(String(64), nullable=True)
    ua = Column(String(512), nullable=True)

    link = relationship("TrackedLink", back_populates="hits")
