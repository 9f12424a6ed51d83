"""
Organization and invitation DAOs.

WHAT: Data access for tenant-root rows: the organization document with its
member map and settings, and the invitations that add members to it.

WHY: These rows sit above the org-scoped namespace (they define it), so
they are accessed by id rather than through OrgScopedStore.
"""

from datetime import datetime
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from assetdesk.dao.base import BaseDAO
from assetdesk.models.base import utcnow
from assetdesk.models.invitation import Invitation
from assetdesk.models.organization import Organization, Role


class OrganizationDAO(BaseDAO[Organization]):
    """Data Access Object for organizations."""

    def __init__(self, session: AsyncSession):
        super().__init__(Organization, session)

    async def list_for_user(self, user_id: str) -> List[Organization]:
        """
        Organizations the user is a member of, ordered by name.

        Membership lives in a JSON map, so the filter is applied after the
        read to stay portable across SQLite and PostgreSQL.
        """
        result = await self.session.execute(select(Organization).order_by(Organization.name))
        return [org for org in result.scalars().all() if user_id in (org.members or {})]

    async def set_member(self, org: Organization, user_id: str, role: Role) -> Organization:
        """
        Add a member or change an existing member's role.

        The members dict is replaced rather than mutated in place so the
        JSON column is marked dirty.
        """
        members = dict(org.members or {})
        members[user_id] = Role(role).value
        org.members = members
        await self.flush("update")
        await self.session.refresh(org)
        return org

    async def remove_member(self, org: Organization, user_id: str) -> Organization:
        """Remove a member; no-op when absent."""
        members = dict(org.members or {})
        members.pop(user_id, None)
        org.members = members
        await self.flush("update")
        await self.session.refresh(org)
        return org


class InvitationDAO(BaseDAO[Invitation]):
    """Data Access Object for organization invitations."""

    pk_field = "token"

    def __init__(self, session: AsyncSession):
        super().__init__(Invitation, session)

    async def get_by_token(self, token: str) -> Optional[Invitation]:
        return await self.get_by_id(token)

    async def list_pending(self, organization_id: str, now: datetime | None = None) -> List[Invitation]:
        """Unused, unexpired invitations for an organization, newest first."""
        now = now or utcnow()
        result = await self.session.execute(
            select(Invitation)
            .where(
                Invitation.organization_id == organization_id,
                Invitation.used.is_(False),
                Invitation.expires_at > now,
            )
            .order_by(Invitation.created_at.desc())
        )
        return list(result.scalars().all())

    async def mark_used(self, invitation: Invitation, user_id: str) -> Invitation:
        """Consume the invitation."""
        invitation.used = True
        invitation.used_at = utcnow()
        invitation.used_by = user_id
        await self.flush("update")
        return invitation
