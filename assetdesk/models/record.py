"""
Namespaced record model.

WHAT: One row per document stored under an organization, addressed by
``organizations/{organization_id}/{kind}/{record_id}``.

WHY: Assets, categories, spaces, tasks, suggestions and settings are
structurally interchangeable for the data-access layer: a free-form field
map plus the same audit columns. Keeping them in one table keyed by
(organization, kind, id) lets the org store scope every statement with a
single predicate on ``organization_id``.

HOW: Entity fields live in the ``data`` JSON column; audit fields are real
columns so they can be filtered and ordered in SQL and can never be
overwritten through ``data``.
"""

from enum import Enum

from sqlalchemy import Column, String, DateTime, ForeignKey, Index
from sqlalchemy.orm import relationship

from assetdesk.models.base import Base
from assetdesk.models.types import DocumentJSON


class RecordKind(str, Enum):
    """Collections that live under an organization."""

    ASSETS = "assets"
    CATEGORIES = "categories"
    SPACES = "spaces"
    TASKS = "tasks"
    SUGGESTIONS = "suggestions"
    SETTINGS = "settings"


def record_path(organization_id: str, kind: str, record_id: str | None = None) -> str:
    """Storage path of a collection, or of one record when ``record_id`` is given."""
    path = f"organizations/{organization_id}/{kind}"
    if record_id is not None:
        path = f"{path}/{record_id}"
    return path


class NamespacedRecord(Base):
    """
    Organization-scoped document.

    Attributes:
        organization_id: Owning organization (derived from the store, never from caller data)
        kind: Collection name (see RecordKind)
        record_id: Caller-chosen id, unique within (organization, kind)
        path: Full storage path
        data: Entity fields; explicit nulls are kept as JSON null
        created_by: User id of the creator
        created_at: Creation time, immutable
        updated_at: Last write time, strictly increasing per record
    """

    __tablename__ = "namespaced_records"

    organization_id = Column(
        String(64),
        ForeignKey("organizations.id", ondelete="CASCADE"),
        primary_key=True,
    )
    kind = Column(String(32), primary_key=True)
    record_id = Column(String(128), primary_key=True)

    path = Column(String(512), nullable=False, unique=True)
    data = Column(DocumentJSON, nullable=False, default=dict)

    created_by = Column(String(128), nullable=False)
    created_at = Column(DateTime, nullable=False)
    updated_at = Column(DateTime, nullable=False)

    organization = relationship("Organization", back_populates="records")

    __table_args__ = (
        Index("ix_namespaced_records_org_kind_created", "organization_id", "kind", "created_at"),
    )

    def to_dict(self) -> dict:
        """
        Flatten into the document shape callers see.

        ``id`` comes from the path segment; audit fields always win over
        anything stored in ``data``.
        """
        document = dict(self.data or {})
        document.update(
            {
                "id": self.record_id,
                "organizationId": self.organization_id,
                "createdBy": self.created_by,
                "createdAt": self.created_at,
                "updatedAt": self.updated_at,
            }
        )
        return document

    def __repr__(self) -> str:
        return f"<NamespacedRecord(path={self.path})>"
