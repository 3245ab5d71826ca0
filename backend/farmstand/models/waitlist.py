"""Customers waiting for an out-of-stock product; notified_at is set once the restock email went out."""
from sqlalchemy import Column, DateTime, Integer, String, UniqueConstraint
from sqlalchemy.sql import func

from farmstand.db.base import Base


class WaitlistEntry(Base):
    __tablename__ = "waitlist"
    __table_args__ = (UniqueConstraint("product_id", "email", name="uq_waitlist_product_email"),)

    id = Column(Integer, primary_key=True, autoincrement=True)
    product_id = Column(String(64), nullable=False, index=True)
    email = Column(String(255), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    notified_at = Column(DateTime(timezone=True), nullable=True)

    def to_dict(self):
        return {
            "id": self.id,
            "product_id": self.product_id,
            "email": self.email,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "notified_at": self.notified_at.isoformat() if self.notified_at else None,
        }
