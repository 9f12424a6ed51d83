"""
Membership check.

WHAT: Resolve a user's role in an organization from the organization's
member map.

WHY: Every organization-scoped operation is gated behind this single
decision, taken once before an OrgScopedStore is constructed. "No access"
is returned as a value; ``authorize`` turns it into AuthorizationDenied,
which is distinct from a missing record.

The lookup is one read of the organization row and is not cached.
"""

import logging
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from assetdesk.core.exceptions import AuthorizationDenied
from assetdesk.dao.organization import OrganizationDAO
from assetdesk.models.organization import Role
from assetdesk.services.authorization import ensure_role

logger = logging.getLogger(__name__)


class MembershipService:
    """Role lookup against ``Organization.members``."""

    def __init__(self, session: AsyncSession):
        self.session = session
        self.org_dao = OrganizationDAO(session)

    async def check_access(self, user_id: str, organization_id: str) -> Optional[Role]:
        """
        Return the user's role, or None when the user has no access.

        A missing organization is also "no access", so non-members cannot
        discover which organization ids exist.
        """
        org = await self.org_dao.get_by_id(organization_id)
        if org is None:
            return None
        return org.role_of(user_id)

    async def authorize(
        self,
        user_id: str,
        organization_id: str,
        minimum: Role = Role.LIMITED_ACCESS,
    ) -> Role:
        """
        Require membership (and optionally a minimum role).

        Returns:
            The user's role

        Raises:
            AuthorizationDenied: User is not a member
            InsufficientPermissionsError: Member role is below ``minimum``
        """
        role = await self.check_access(user_id, organization_id)
        if role is None:
            logger.info(f"Access denied: user {user_id} is not a member of {organization_id}")
            raise AuthorizationDenied(organization_id=organization_id)

        ensure_role(role, minimum)
        return role
