"""Database package"""

from assetdesk.db.session import AsyncSessionLocal, engine, get_db
from assetdesk.models.base import Base

__all__ = ["Base", "AsyncSessionLocal", "engine", "get_db"]
