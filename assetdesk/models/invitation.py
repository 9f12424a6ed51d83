"""
Organization invitation model.

WHAT: A single-use token that adds its redeemer to an organization with
a preset role.

WHY: Members are added by invitation rather than by editing the member
map directly, so the inviter's role is checked once, at creation time.
"""

from sqlalchemy import Column, String, DateTime, Boolean, ForeignKey

from assetdesk.models.base import Base, utcnow


class Invitation(Base):
    """
    Invitation to join an organization.

    Attributes:
        token: Random URL-safe token (primary key)
        organization_id: Target organization
        email: Invitee email (informational; any authenticated user may redeem)
        role: Role granted on acceptance
        created_by: Inviting user id
        expires_at: Acceptance deadline
        used/used_at/used_by: Redemption state
    """

    __tablename__ = "invitations"

    token = Column(String(64), primary_key=True)
    organization_id = Column(
        String(64),
        ForeignKey("organizations.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    email = Column(String(255), nullable=False)
    role = Column(String(32), nullable=False)
    created_by = Column(String(128), nullable=False)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    expires_at = Column(DateTime, nullable=False)

    used = Column(Boolean, nullable=False, default=False)
    used_at = Column(DateTime, nullable=True)
    used_by = Column(String(128), nullable=True)

    def is_redeemable(self, now=None) -> bool:
        """True when not yet used and not past expiry."""
        now = now or utcnow()
        return not self.used and self.expires_at > now

    def __repr__(self) -> str:
        return f"<Invitation(org={self.organization_id}, email={self.email}, used={self.used})>"
