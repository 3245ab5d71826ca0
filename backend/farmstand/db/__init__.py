from farmstand.db.base import Base
from farmstand.db.session import get_db, engine, SessionLocal
from farmstand.db.tables import ALL_TABLE_NAMES, SEED_TABLE_NAMES

__all__ = ["get_db", "engine", "SessionLocal", "Base", "ALL_TABLE_NAMES", "SEED_TABLE_NAMES"]
