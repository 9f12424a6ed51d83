"""
Tests for organization-scoping enforcement.

WHY: Org-scoping is CRITICAL for multi-tenant security (OWASP A01: Broken Access Control).
These tests ensure that a store bound to one organization can never read,
update or delete another organization's records, even given their ids.
"""

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from assetdesk.core.exceptions import RecordNotFoundError
from assetdesk.dao.org_store import OrgScopedStore
from assetdesk.dao.query import where
from tests.factories import OrganizationFactory


class TestOrgScopingEnforcement:
    """Test multi-tenancy org-scoping enforcement."""

    @pytest.fixture
    async def stores(self, db_session: AsyncSession):
        """Two organizations holding records with the same ids."""
        await OrganizationFactory.create(db_session, name="Org A", org_id="orgA", members={"ua": "FULL_ACCESS"})
        await OrganizationFactory.create(db_session, name="Org B", org_id="orgB", members={"ub": "FULL_ACCESS"})

        store_a = OrgScopedStore(db_session, "orgA", "ua")
        store_b = OrgScopedStore(db_session, "orgB", "ub")

        await store_a.create("assets", "shared", {"name": "A drill"})
        await store_b.create("assets", "shared", {"name": "B drill"})
        await store_b.create("assets", "b-only", {"name": "B saw"})
        return store_a, store_b

    @pytest.mark.asyncio
    async def test_get_returns_own_record_only(self, stores):
        store_a, store_b = stores

        assert (await store_a.get("assets", "shared"))["name"] == "A drill"
        assert (await store_b.get("assets", "shared"))["name"] == "B drill"

    @pytest.mark.asyncio
    async def test_get_other_org_id_returns_none(self, stores):
        store_a, _ = stores

        assert await store_a.get("assets", "b-only") is None

    @pytest.mark.asyncio
    async def test_query_never_returns_other_org_records(self, stores):
        store_a, _ = stores

        assets = await store_a.query("assets")
        assert [a["name"] for a in assets] == ["A drill"]
        assert all(a["organizationId"] == "orgA" for a in assets)

        by_name = await store_a.query("assets", [where("name", "==", "B saw")])
        assert by_name == []

    @pytest.mark.asyncio
    async def test_update_cannot_reach_other_org(self, stores):
        store_a, store_b = stores

        with pytest.raises(RecordNotFoundError):
            await store_a.update("assets", "b-only", {"name": "hijacked"})

        await store_a.update("assets", "shared", {"name": "A drill v2"})
        assert (await store_b.get("assets", "shared"))["name"] == "B drill"

    @pytest.mark.asyncio
    async def test_delete_cannot_reach_other_org(self, stores):
        store_a, store_b = stores

        assert await store_a.delete("assets", "b-only") is False
        assert await store_b.get("assets", "b-only") is not None

        await store_a.delete("assets", "shared")
        assert await store_b.get("assets", "shared") is not None

    @pytest.mark.asyncio
    async def test_org_fields_in_input_do_not_retarget_writes(self, stores):
        store_a, store_b = stores

        await store_a.create("assets", "sneaky", {"name": "x", "organizationId": "orgB"})

        assert await store_b.get("assets", "sneaky") is None
        assert (await store_a.get("assets", "sneaky"))["organizationId"] == "orgA"
