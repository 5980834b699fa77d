from lgu_auth.db.base import Base
from lgu_auth.db.session import Database, get_database, get_db

__all__ = ["Base", "Database", "get_database", "get_db"]
