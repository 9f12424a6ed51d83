"""
Organization management service.

WHAT: Create organizations, edit their settings, manage the member map and
issue/redeem invitations.

WHY: The organization row is the tenant boundary and the membership
source for every access check, so changes to it follow stricter rules than
ordinary records:
1. Only FULL_ACCESS members may change settings or membership
2. A member cannot change or remove their own membership (an organization
   can never lose its last administrator by self-demotion)
3. New members join through single-use, expiring invitations

HOW: Orchestrates OrganizationDAO and InvitationDAO. The caller's role is
resolved by MembershipService before these methods are called.
"""

import logging
import secrets
import uuid
from datetime import timedelta
from typing import Any, Dict, List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from assetdesk.core.config import settings
from assetdesk.core.exceptions import (
    InvitationExpiredError,
    InvitationNotFoundError,
    MembershipRuleViolation,
    OrganizationNotFoundError,
    ValidationError,
)
from assetdesk.dao.organization import InvitationDAO, OrganizationDAO
from assetdesk.models.base import utcnow
from assetdesk.models.invitation import Invitation
from assetdesk.models.organization import Organization, Role
from assetdesk.services.authorization import ensure_role

logger = logging.getLogger(__name__)

# Settings keys maintained by the service rather than by callers
PROTECTED_SETTINGS = {"quotaUsed"}


class OrganizationService:
    """
    Service for organization lifecycle and membership.

    Args:
        session: Async database session
    """

    def __init__(self, session: AsyncSession):
        self.session = session
        self.org_dao = OrganizationDAO(session)
        self.invitation_dao = InvitationDAO(session)

    async def create_organization(
        self,
        name: str,
        creator_id: str,
        currency: Optional[str] = None,
    ) -> Organization:
        """
        Create an organization with the creator as its first FULL_ACCESS member.

        Args:
            name: Display name
            creator_id: User id of the creator
            currency: Default currency for task costs

        Returns:
            The new organization
        """
        name = (name or "").strip()
        if not name:
            raise ValidationError(message="Organization name is required")

        org = await self.org_dao.create(
            id=uuid.uuid4().hex,
            name=name,
            members={creator_id: Role.FULL_ACCESS.value},
            settings={
                "quotaUsed": 0,
                "quotaLimit": settings.AI_QUOTA_DEFAULT_LIMIT,
                "currency": (currency or settings.DEFAULT_CURRENCY).upper(),
            },
        )
        logger.info(f"Organization {org.id} created by {creator_id}")
        return org

    async def get_organization(self, org_id: str) -> Organization:
        """
        Raises:
            OrganizationNotFoundError: Unknown id
        """
        org = await self.org_dao.get_by_id(org_id)
        if org is None:
            raise OrganizationNotFoundError(organization_id=org_id)
        return org

    async def list_for_user(self, user_id: str) -> List[Organization]:
        return await self.org_dao.list_for_user(user_id)

    async def update_organization(
        self,
        org_id: str,
        actor_role: Role,
        name: Optional[str] = None,
        settings_update: Optional[Dict[str, Any]] = None,
    ) -> Organization:
        """
        Rename an organization and/or merge settings key by key.

        ``quotaUsed`` is owned by the suggestion quota and is ignored here.
        """
        ensure_role(actor_role, Role.FULL_ACCESS)
        org = await self.get_organization(org_id)

        changes: Dict[str, Any] = {}
        if name is not None:
            name = name.strip()
            if not name:
                raise ValidationError(message="Organization name cannot be empty")
            changes["name"] = name
        if settings_update:
            merged = dict(org.settings or {})
            for key, value in settings_update.items():
                if key in PROTECTED_SETTINGS:
                    continue
                merged[key] = value
            if isinstance(merged.get("currency"), str):
                merged["currency"] = merged["currency"].upper()
            changes["settings"] = merged

        if not changes:
            return org

        org = await self.org_dao.update(org_id, **changes)
        logger.info(f"Organization {org_id} updated: {sorted(changes)}")
        return org

    async def update_member_role(
        self,
        org_id: str,
        actor_id: str,
        actor_role: Role,
        user_id: str,
        role: Role,
    ) -> Organization:
        """
        Change an existing member's role.

        Raises:
            InsufficientPermissionsError: Actor is not FULL_ACCESS
            MembershipRuleViolation: Actor targets themself, or target is not a member
        """
        ensure_role(actor_role, Role.FULL_ACCESS)
        if user_id == actor_id:
            raise MembershipRuleViolation(message="You cannot change your own role")

        org = await self.get_organization(org_id)
        if org.role_of(user_id) is None:
            raise MembershipRuleViolation(
                message="User is not a member of this organization",
                user_id=user_id,
            )

        org = await self.org_dao.set_member(org, user_id, Role(role))
        logger.info(f"Member {user_id} of {org_id} set to {Role(role).value} by {actor_id}")
        return org

    async def remove_member(
        self,
        org_id: str,
        actor_id: str,
        actor_role: Role,
        user_id: str,
    ) -> Organization:
        """
        Remove a member from the organization.

        Removing a non-member is a no-op.

        Raises:
            InsufficientPermissionsError: Actor is not FULL_ACCESS
            MembershipRuleViolation: Actor removes themself
        """
        ensure_role(actor_role, Role.FULL_ACCESS)
        if user_id == actor_id:
            raise MembershipRuleViolation(message="You cannot remove yourself")

        org = await self.get_organization(org_id)
        if org.role_of(user_id) is None:
            return org

        org = await self.org_dao.remove_member(org, user_id)
        logger.info(f"Member {user_id} removed from {org_id} by {actor_id}")
        return org

    async def create_invitation(
        self,
        org_id: str,
        actor_id: str,
        actor_role: Role,
        email: str,
        role: Role = Role.LIMITED_ACCESS,
    ) -> Invitation:
        """
        Issue a single-use invitation token.

        Returns:
            The invitation; its token is the value to share with the invitee
        """
        ensure_role(actor_role, Role.FULL_ACCESS)
        await self.get_organization(org_id)

        now = utcnow()
        invitation = await self.invitation_dao.create(
            token=secrets.token_urlsafe(32),
            organization_id=org_id,
            email=email.strip().lower(),
            role=Role(role).value,
            created_by=actor_id,
            created_at=now,
            expires_at=now + timedelta(days=settings.INVITATION_EXPIRY_DAYS),
        )
        logger.info(f"Invitation to {org_id} created by {actor_id}")
        return invitation

    async def list_invitations(self, org_id: str, actor_role: Role) -> List[Invitation]:
        ensure_role(actor_role, Role.FULL_ACCESS)
        return await self.invitation_dao.list_pending(org_id)

    async def accept_invitation(self, token: str, user_id: str) -> Organization:
        """
        Redeem an invitation for the authenticated user.

        An existing member keeps the higher of their current role and the
        invited role.

        Raises:
            InvitationNotFoundError: Unknown token
            InvitationExpiredError: Token already used or past expiry
        """
        invitation = await self.invitation_dao.get_by_token(token)
        if invitation is None:
            raise InvitationNotFoundError()
        if not invitation.is_redeemable():
            raise InvitationExpiredError(organization_id=invitation.organization_id)

        org = await self.get_organization(invitation.organization_id)
        invited = Role(invitation.role)
        current = org.role_of(user_id)
        if current is None or not current.allows(invited):
            org = await self.org_dao.set_member(org, user_id, invited)

        await self.invitation_dao.mark_used(invitation, user_id)
        logger.info(f"User {user_id} joined {org.id} as {org.role_of(user_id).value}")
        return org
