"""
Tests for the membership check and role enforcement.

WHY: Every organization-scoped request passes this gate exactly once.
These tests ensure:
1. Non-members get "no access", never a missing-data result
2. FULL_ACCESS implies every LIMITED_ACCESS permission
3. LIMITED_ACCESS members can read but every write is refused
"""

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from assetdesk.core.exceptions import AuthorizationDenied, InsufficientPermissionsError
from assetdesk.models.organization import Role
from assetdesk.services.authorization import GuardedOrgStore, ensure_role, requires_role
from assetdesk.services.membership import MembershipService
from tests.factories import OrganizationFactory, StoreFactory


class TestMembershipCheck:
    """Test role lookup against the member map."""

    @pytest.fixture
    async def org(self, db_session: AsyncSession):
        return await OrganizationFactory.create(
            db_session,
            org_id="org1",
            members={"u1": Role.FULL_ACCESS, "u3": Role.LIMITED_ACCESS},
        )

    @pytest.mark.asyncio
    async def test_member_role_returned(self, db_session: AsyncSession, org):
        service = MembershipService(db_session)

        assert await service.check_access("u1", "org1") is Role.FULL_ACCESS
        assert await service.check_access("u3", "org1") is Role.LIMITED_ACCESS

    @pytest.mark.asyncio
    async def test_non_member_has_no_access(self, db_session: AsyncSession, org):
        assert await MembershipService(db_session).check_access("u2", "org1") is None

    @pytest.mark.asyncio
    async def test_unknown_org_has_no_access(self, db_session: AsyncSession, org):
        assert await MembershipService(db_session).check_access("u1", "missing") is None

    @pytest.mark.asyncio
    async def test_authorize_denies_non_member(self, db_session: AsyncSession, org):
        with pytest.raises(AuthorizationDenied):
            await MembershipService(db_session).authorize("u2", "org1")

    @pytest.mark.asyncio
    async def test_authorize_denies_unknown_org_as_authorization_failure(self, db_session: AsyncSession, org):
        with pytest.raises(AuthorizationDenied):
            await MembershipService(db_session).authorize("u1", "missing")

    @pytest.mark.asyncio
    async def test_authorize_minimum_role(self, db_session: AsyncSession, org):
        service = MembershipService(db_session)

        assert await service.authorize("u1", "org1", Role.FULL_ACCESS) is Role.FULL_ACCESS
        with pytest.raises(InsufficientPermissionsError):
            await service.authorize("u3", "org1", Role.FULL_ACCESS)

    @pytest.mark.asyncio
    async def test_check_rereads_membership(self, db_session: AsyncSession, org):
        """Membership changes are visible to the next check (no caching)."""
        service = MembershipService(db_session)
        assert await service.check_access("u2", "org1") is None

        org.members = dict(org.members, u2=Role.LIMITED_ACCESS.value)
        await db_session.flush()

        assert await service.check_access("u2", "org1") is Role.LIMITED_ACCESS


class TestRoles:
    """Test role ordering helpers."""

    def test_full_access_implies_limited(self):
        assert Role.FULL_ACCESS.allows(Role.LIMITED_ACCESS)
        assert Role.FULL_ACCESS.allows(Role.FULL_ACCESS)
        assert not Role.LIMITED_ACCESS.allows(Role.FULL_ACCESS)

    def test_ensure_role(self):
        ensure_role(Role.FULL_ACCESS, Role.LIMITED_ACCESS)
        with pytest.raises(InsufficientPermissionsError):
            ensure_role(Role.LIMITED_ACCESS, Role.FULL_ACCESS)

    @pytest.mark.asyncio
    async def test_requires_role_decorator(self):
        class Thing:
            def __init__(self, role):
                self.role = role

            @requires_role(Role.FULL_ACCESS)
            async def wipe(self):
                return "wiped"

        assert Thing.wipe.required_role is Role.FULL_ACCESS
        assert await Thing(Role.FULL_ACCESS).wipe() == "wiped"
        with pytest.raises(InsufficientPermissionsError):
            await Thing(Role.LIMITED_ACCESS).wipe()


class TestGuardedOrgStore:
    """Test per-operation role checks around the store."""

    @pytest.fixture
    async def stores(self, db_session: AsyncSession):
        await OrganizationFactory.create(
            db_session,
            org_id="org1",
            members={"u1": Role.FULL_ACCESS, "u3": Role.LIMITED_ACCESS},
        )
        full = StoreFactory.guarded(db_session, "org1", "u1", Role.FULL_ACCESS)
        limited = StoreFactory.guarded(db_session, "org1", "u3", Role.LIMITED_ACCESS)
        await full.create("assets", "a1", {"name": "Drill"})
        return full, limited

    @pytest.mark.asyncio
    async def test_limited_member_can_read(self, stores):
        _, limited = stores

        assert (await limited.get("assets", "a1"))["name"] == "Drill"
        assert len(await limited.query("assets")) == 1
        assert await limited.count("assets") == 1

    @pytest.mark.asyncio
    async def test_limited_member_cannot_write(self, stores):
        full, limited = stores

        with pytest.raises(InsufficientPermissionsError):
            await limited.create("assets", "a2", {"name": "Saw"})
        with pytest.raises(InsufficientPermissionsError):
            await limited.update("assets", "a1", {"name": "Hacked"})
        with pytest.raises(InsufficientPermissionsError):
            await limited.delete("assets", "a1")

        assert (await full.get("assets", "a1"))["name"] == "Drill"

    @pytest.mark.asyncio
    async def test_properties(self, stores):
        full, limited = stores

        assert isinstance(full, GuardedOrgStore)
        assert full.can_write is True
        assert limited.can_write is False
        assert limited.organization_id == "org1"
        assert limited.acting_user_id == "u3"
