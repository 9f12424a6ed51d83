"""
Organization model.

WHY: Organizations are the tenant boundary. Every asset, category, space,
task and suggestion lives under exactly one organization, and the
``members`` map on this row is the single source of truth for who may
touch that data.
"""

from enum import Enum

from sqlalchemy import Column, String, JSON
from sqlalchemy.orm import relationship

from assetdesk.models.base import Base, TimestampMixin


class Role(str, Enum):
    """
    Member role within one organization.

    - FULL_ACCESS: read, write, manage members and settings
    - LIMITED_ACCESS: read only
    """

    FULL_ACCESS = "FULL_ACCESS"
    LIMITED_ACCESS = "LIMITED_ACCESS"

    @property
    def rank(self) -> int:
        return 2 if self is Role.FULL_ACCESS else 1

    def allows(self, required: "Role") -> bool:
        """Whether this role satisfies ``required`` (FULL_ACCESS implies LIMITED_ACCESS)."""
        return self.rank >= required.rank


class Organization(Base, TimestampMixin):
    """
    Organization model representing a tenant.

    Attributes:
        id: Organization id (string, also the first path segment of its records)
        name: Display name
        members: ``{user_id: Role value}``
        settings: ``{quotaUsed, quotaLimit, currency}`` plus free-form keys
    """

    __tablename__ = "organizations"

    id = Column(String(64), primary_key=True)
    name = Column(String(255), nullable=False, index=True)

    # WHY: A JSON map mirrors the membership document read by the access check
    members = Column(JSON, nullable=False, default=dict)

    settings = Column(JSON, nullable=False, default=dict)

    records = relationship(
        "NamespacedRecord",
        back_populates="organization",
        cascade="all, delete-orphan",
        passive_deletes=True,
        lazy="noload",
    )

    def role_of(self, user_id: str) -> Role | None:
        """Return the member's role, or None when not a member."""
        value = (self.members or {}).get(user_id)
        return Role(value) if value else None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "members": dict(self.members or {}),
            "settings": dict(self.settings or {}),
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
        }

    def __repr__(self) -> str:
        return f"<Organization(id={self.id}, name={self.name})>"
