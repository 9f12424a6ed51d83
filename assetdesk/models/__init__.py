"""
Database models package.

WHY: Centralizing model imports ensures Alembic can discover all models
for migration generation and makes it easier to import models elsewhere.
"""

from assetdesk.models.base import Base, TimestampMixin, utcnow
from assetdesk.models.organization import Organization, Role
from assetdesk.models.record import NamespacedRecord, RecordKind, record_path
from assetdesk.models.invitation import Invitation

__all__ = [
    "Base",
    "TimestampMixin",
    "utcnow",
    "Organization",
    "Role",
    "NamespacedRecord",
    "RecordKind",
    "record_path",
    "Invitation",
]
