"""
Tests for OrganizationService.

WHY: The organization row is the membership source for every access
check. These tests ensure:
1. Creators become the first FULL_ACCESS member
2. Only FULL_ACCESS members change settings or membership
3. Members cannot change or remove their own membership
4. Invitations are single-use and expire
"""

from datetime import timedelta

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from assetdesk.core.config import settings
from assetdesk.core.exceptions import (
    InsufficientPermissionsError,
    InvitationExpiredError,
    InvitationNotFoundError,
    MembershipRuleViolation,
    OrganizationNotFoundError,
    ValidationError,
)
from assetdesk.models.base import utcnow
from assetdesk.models.organization import Role
from assetdesk.services.organization_service import OrganizationService
from tests.factories import OrganizationFactory


class TestOrganizationLifecycle:
    """Test organization creation and settings."""

    @pytest.mark.asyncio
    async def test_create_makes_creator_full_access(self, db_session: AsyncSession):
        org = await OrganizationService(db_session).create_organization("Riverside", "u1", currency="eur")

        assert org.name == "Riverside"
        assert org.members == {"u1": "FULL_ACCESS"}
        assert org.settings == {
            "quotaUsed": 0,
            "quotaLimit": settings.AI_QUOTA_DEFAULT_LIMIT,
            "currency": "EUR",
        }
        assert org.created_at is not None

    @pytest.mark.asyncio
    async def test_create_requires_name(self, db_session: AsyncSession):
        with pytest.raises(ValidationError):
            await OrganizationService(db_session).create_organization("   ", "u1")

    @pytest.mark.asyncio
    async def test_list_for_user(self, db_session: AsyncSession):
        await OrganizationFactory.create(db_session, name="Beta", members={"u1": "LIMITED_ACCESS"})
        await OrganizationFactory.create(db_session, name="Alpha", members={"u1": "FULL_ACCESS"})
        await OrganizationFactory.create(db_session, name="Gamma", members={"u2": "FULL_ACCESS"})

        orgs = await OrganizationService(db_session).list_for_user("u1")

        assert [o.name for o in orgs] == ["Alpha", "Beta"]

    @pytest.mark.asyncio
    async def test_get_unknown_org(self, db_session: AsyncSession):
        with pytest.raises(OrganizationNotFoundError):
            await OrganizationService(db_session).get_organization("missing")

    @pytest.mark.asyncio
    async def test_update_merges_settings_and_protects_quota_used(self, db_session: AsyncSession):
        org = await OrganizationFactory.create(db_session, members={"u1": "FULL_ACCESS"})

        updated = await OrganizationService(db_session).update_organization(
            org.id,
            Role.FULL_ACCESS,
            name="Renamed",
            settings_update={"currency": "gbp", "quotaUsed": 999, "timezone": "Europe/London"},
        )

        assert updated.name == "Renamed"
        assert updated.settings["currency"] == "GBP"
        assert updated.settings["quotaUsed"] == 0
        assert updated.settings["quotaLimit"] == 100
        assert updated.settings["timezone"] == "Europe/London"

    @pytest.mark.asyncio
    async def test_limited_member_cannot_update(self, db_session: AsyncSession):
        org = await OrganizationFactory.create(db_session)

        with pytest.raises(InsufficientPermissionsError):
            await OrganizationService(db_session).update_organization(org.id, Role.LIMITED_ACCESS, name="X")


class TestMembershipManagement:
    """Test member role changes and removal."""

    @pytest.fixture
    async def org(self, db_session: AsyncSession):
        return await OrganizationFactory.create(
            db_session,
            members={"admin": "FULL_ACCESS", "tech": "LIMITED_ACCESS"},
        )

    @pytest.mark.asyncio
    async def test_promote_member(self, db_session: AsyncSession, org):
        updated = await OrganizationService(db_session).update_member_role(
            org.id, "admin", Role.FULL_ACCESS, "tech", Role.FULL_ACCESS
        )

        assert updated.members["tech"] == "FULL_ACCESS"

    @pytest.mark.asyncio
    async def test_cannot_change_own_role(self, db_session: AsyncSession, org):
        with pytest.raises(MembershipRuleViolation):
            await OrganizationService(db_session).update_member_role(
                org.id, "admin", Role.FULL_ACCESS, "admin", Role.LIMITED_ACCESS
            )

    @pytest.mark.asyncio
    async def test_cannot_change_role_of_non_member(self, db_session: AsyncSession, org):
        with pytest.raises(MembershipRuleViolation):
            await OrganizationService(db_session).update_member_role(
                org.id, "admin", Role.FULL_ACCESS, "stranger", Role.FULL_ACCESS
            )

    @pytest.mark.asyncio
    async def test_limited_member_cannot_change_roles(self, db_session: AsyncSession, org):
        with pytest.raises(InsufficientPermissionsError):
            await OrganizationService(db_session).update_member_role(
                org.id, "tech", Role.LIMITED_ACCESS, "admin", Role.LIMITED_ACCESS
            )

    @pytest.mark.asyncio
    async def test_remove_member(self, db_session: AsyncSession, org):
        updated = await OrganizationService(db_session).remove_member(org.id, "admin", Role.FULL_ACCESS, "tech")

        assert "tech" not in updated.members
        assert updated.members == {"admin": "FULL_ACCESS"}

    @pytest.mark.asyncio
    async def test_remove_non_member_is_noop(self, db_session: AsyncSession, org):
        updated = await OrganizationService(db_session).remove_member(
            org.id, "admin", Role.FULL_ACCESS, "stranger"
        )

        assert set(updated.members) == {"admin", "tech"}

    @pytest.mark.asyncio
    async def test_cannot_remove_self(self, db_session: AsyncSession, org):
        with pytest.raises(MembershipRuleViolation):
            await OrganizationService(db_session).remove_member(org.id, "admin", Role.FULL_ACCESS, "admin")


class TestInvitations:
    """Test invitation issue and redemption."""

    @pytest.fixture
    async def org(self, db_session: AsyncSession):
        return await OrganizationFactory.create(
            db_session,
            members={"admin": "FULL_ACCESS", "tech": "LIMITED_ACCESS"},
        )

    @pytest.mark.asyncio
    async def test_create_invitation(self, db_session: AsyncSession, org):
        invitation = await OrganizationService(db_session).create_invitation(
            org.id, "admin", Role.FULL_ACCESS, " New@Example.com "
        )

        assert invitation.email == "new@example.com"
        assert invitation.role == "LIMITED_ACCESS"
        assert invitation.created_by == "admin"
        assert len(invitation.token) >= 32
        assert invitation.expires_at - invitation.created_at == timedelta(days=settings.INVITATION_EXPIRY_DAYS)

    @pytest.mark.asyncio
    async def test_limited_member_cannot_invite(self, db_session: AsyncSession, org):
        with pytest.raises(InsufficientPermissionsError):
            await OrganizationService(db_session).create_invitation(org.id, "tech", Role.LIMITED_ACCESS, "a@b.co")

    @pytest.mark.asyncio
    async def test_accept_adds_member_and_consumes_token(self, db_session: AsyncSession, org):
        service = OrganizationService(db_session)
        invitation = await service.create_invitation(org.id, "admin", Role.FULL_ACCESS, "new@example.com")

        joined = await service.accept_invitation(invitation.token, "newbie")

        assert joined.members["newbie"] == "LIMITED_ACCESS"
        assert invitation.used is True
        assert invitation.used_by == "newbie"
        assert await service.list_invitations(org.id, Role.FULL_ACCESS) == []

        with pytest.raises(InvitationExpiredError):
            await service.accept_invitation(invitation.token, "someone-else")

    @pytest.mark.asyncio
    async def test_accept_keeps_higher_existing_role(self, db_session: AsyncSession, org):
        service = OrganizationService(db_session)
        invitation = await service.create_invitation(org.id, "admin", Role.FULL_ACCESS, "admin@example.com")

        joined = await service.accept_invitation(invitation.token, "admin")

        assert joined.members["admin"] == "FULL_ACCESS"

    @pytest.mark.asyncio
    async def test_accept_upgrades_existing_member(self, db_session: AsyncSession, org):
        service = OrganizationService(db_session)
        invitation = await service.create_invitation(
            org.id, "admin", Role.FULL_ACCESS, "tech@example.com", Role.FULL_ACCESS
        )

        joined = await service.accept_invitation(invitation.token, "tech")

        assert joined.members["tech"] == "FULL_ACCESS"

    @pytest.mark.asyncio
    async def test_expired_invitation_rejected(self, db_session: AsyncSession, org):
        service = OrganizationService(db_session)
        invitation = await service.create_invitation(org.id, "admin", Role.FULL_ACCESS, "late@example.com")
        invitation.expires_at = utcnow() - timedelta(minutes=1)
        await db_session.flush()

        with pytest.raises(InvitationExpiredError):
            await service.accept_invitation(invitation.token, "late")
        assert await service.list_invitations(org.id, Role.FULL_ACCESS) == []

    @pytest.mark.asyncio
    async def test_unknown_token(self, db_session: AsyncSession, org):
        with pytest.raises(InvitationNotFoundError):
            await OrganizationService(db_session).accept_invitation("nope", "u9")
