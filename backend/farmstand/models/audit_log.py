"""Append-only audit trail for system (webhook, sweep) and staff actions."""
from sqlalchemy import JSON, Column, DateTime, Integer, String
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.sql import func

from farmstand.db.base import Base

_JSON = JSON().with_variant(JSONB(), "postgresql")


class AuditLog(Base):
    __tablename__ = "audit_log"

    id = Column(Integer, primary_key=True, autoincrement=True)
    ts = Column(DateTime(timezone=True), server_default=func.now(), nullable=False, index=True)
    actor = Column(String(64), nullable=False)  # system | staff | api
    action = Column(String(64), nullable=False, index=True)
    entity = Column(String(64), nullable=False, index=True)
    entity_id = Column(String(64), nullable=True)
    old_values = Column(_JSON, nullable=True)
    new_values = Column(_JSON, nullable=True)
    meta = Column(_JSON, nullable=True)
