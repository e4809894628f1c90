"""Database layer for boqunits with async SQLAlchemy."""

from boqunits.db.connection import close_db, get_session, init_db
from boqunits.db.models import Base, BoqModel, CompanyModel, UnitModel

__all__ = [
    "Base",
    "BoqModel",
    "CompanyModel",
    "UnitModel",
    "close_db",
    "get_session",
    "init_db",
]
