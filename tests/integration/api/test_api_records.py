"""
Integration tests for organization-scoped record endpoints.

WHY: These tests drive assets, categories, spaces, tasks and suggestions
through HTTP to ensure:
1. Every route is gated by membership (403 for outsiders)
2. LIMITED_ACCESS members read but cannot write
3. Records never cross organization boundaries
4. Response bodies use the documented camelCase shape
"""

from unittest.mock import AsyncMock, MagicMock
from types import SimpleNamespace

import pytest
from httpx import AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from assetdesk.core.deps import get_ai_client
from assetdesk.dao.org_store import OrgScopedStore
from assetdesk.models.record import RecordKind
from assetdesk.main import app
from tests.factories import OrganizationFactory


@pytest.fixture
async def orgs(db_session: AsyncSession):
    """Two organizations; ``tech`` is a LIMITED_ACCESS member of the first."""
    org = await OrganizationFactory.create(
        db_session,
        org_id="org1",
        members={"admin": "FULL_ACCESS", "tech": "LIMITED_ACCESS"},
    )
    other = await OrganizationFactory.create(db_session, org_id="org2", members={"rival": "FULL_ACCESS"})
    return org, other


class TestAssetEndpoints:
    """Test asset routes."""

    @pytest.mark.asyncio
    async def test_asset_crud(self, client: AsyncClient, orgs, auth_headers):
        created = await client.post(
            "/api/organizations/org1/assets",
            json={"name": "Drill", "metadata": {"serialNumber": "D-1"}},
            headers=auth_headers("admin"),
        )
        assert created.status_code == 201
        asset = created.json()
        assert asset["organizationId"] == "org1"
        assert asset["createdBy"] == "admin"
        assert asset["metadata"] == {"serialNumber": "D-1"}

        renamed = await client.patch(
            f"/api/organizations/org1/assets/{asset['id']}",
            json={"name": "Impact Drill"},
            headers=auth_headers("admin"),
        )
        assert renamed.status_code == 200
        assert renamed.json()["name"] == "Impact Drill"
        assert renamed.json()["createdAt"] == asset["createdAt"]
        assert renamed.json()["updatedAt"] != asset["updatedAt"]

        deleted = await client.delete(f"/api/organizations/org1/assets/{asset['id']}", headers=auth_headers("admin"))
        assert deleted.status_code == 204

        missing = await client.get(f"/api/organizations/org1/assets/{asset['id']}", headers=auth_headers("admin"))
        assert missing.status_code == 404

    @pytest.mark.asyncio
    async def test_limited_member_reads_but_cannot_write(self, client: AsyncClient, orgs, auth_headers):
        await client.post("/api/organizations/org1/assets", json={"name": "Drill"}, headers=auth_headers("admin"))

        listed = await client.get("/api/organizations/org1/assets", headers=auth_headers("tech"))
        created = await client.post(
            "/api/organizations/org1/assets", json={"name": "Saw"}, headers=auth_headers("tech")
        )

        assert listed.status_code == 200
        assert [a["name"] for a in listed.json()] == ["Drill"]
        assert created.status_code == 403
        assert created.json()["error"] == "InsufficientPermissionsError"

    @pytest.mark.asyncio
    async def test_outsider_is_refused(self, client: AsyncClient, orgs, auth_headers):
        response = await client.get("/api/organizations/org1/assets", headers=auth_headers("rival"))

        assert response.status_code == 403
        assert response.json()["error"] == "AuthorizationDenied"

    @pytest.mark.asyncio
    async def test_records_do_not_cross_orgs(self, client: AsyncClient, orgs, auth_headers):
        created = await client.post(
            "/api/organizations/org1/assets", json={"name": "Drill"}, headers=auth_headers("admin")
        )
        asset_id = created.json()["id"]

        theirs = await client.get("/api/organizations/org2/assets", headers=auth_headers("rival"))
        cross_read = await client.get(f"/api/organizations/org2/assets/{asset_id}", headers=auth_headers("rival"))

        assert theirs.json() == []
        assert cross_read.status_code == 404

    @pytest.mark.asyncio
    async def test_list_search_and_sort(self, client: AsyncClient, orgs, auth_headers):
        for name in ("Saw", "Drill", "Ladder"):
            await client.post("/api/organizations/org1/assets", json={"name": name}, headers=auth_headers("admin"))

        by_name = await client.get(
            "/api/organizations/org1/assets",
            params={"sort": "name", "direction": "asc"},
            headers=auth_headers("admin"),
        )
        searched = await client.get(
            "/api/organizations/org1/assets", params={"search": "dri"}, headers=auth_headers("admin")
        )
        bad_sort = await client.get(
            "/api/organizations/org1/assets", params={"sort": "secret"}, headers=auth_headers("admin")
        )

        assert [a["name"] for a in by_name.json()] == ["Drill", "Ladder", "Saw"]
        assert [a["name"] for a in searched.json()] == ["Drill"]
        assert bad_sort.status_code == 400

    @pytest.mark.asyncio
    async def test_replace_images(self, client: AsyncClient, orgs, auth_headers, s3_client):
        created = await client.post(
            "/api/organizations/org1/assets", json={"name": "Drill"}, headers=auth_headers("admin")
        )
        asset_id = created.json()["id"]

        response = await client.put(
            f"/api/organizations/org1/assets/{asset_id}/images",
            files=[("files", ("front.png", b"png-bytes", "image/png"))],
            headers=auth_headers("admin"),
        )
        urls = await client.get(f"/api/organizations/org1/assets/{asset_id}/images", headers=auth_headers("tech"))

        assert response.status_code == 200
        images = response.json()["images"]
        assert len(images) == 1 and images[0].startswith("assets/org1/")
        s3_client.put_object.assert_called_once()
        assert urls.json() == [f"https://s3.test/{images[0]}?expires=600"]

    @pytest.mark.asyncio
    async def test_share_asset(self, client: AsyncClient, orgs, auth_headers):
        created = await client.post(
            "/api/organizations/org1/assets", json={"name": "Drill"}, headers=auth_headers("admin")
        )
        asset_id = created.json()["id"]

        response = await client.get(
            f"/api/organizations/org1/assets/{asset_id}/share",
            params={"phone": "+44 7700 900123"},
            headers=auth_headers("tech"),
        )

        assert response.status_code == 200
        body = response.json()
        assert body["shareUrl"].startswith("https://wa.me/447700900123?text=")
        assert body["deepLink"].endswith(f"/dashboard/assets?id={asset_id}")
        assert "*Drill*" in body["message"]


class TestHierarchyEndpoints:
    """Test category and space routes."""

    @pytest.mark.asyncio
    async def test_space_tree(self, client: AsyncClient, orgs, auth_headers):
        building = await client.post(
            "/api/organizations/org1/spaces", json={"name": "Building A"}, headers=auth_headers("admin")
        )
        await client.post(
            "/api/organizations/org1/spaces",
            json={"name": "Floor 1", "parentId": building.json()["id"]},
            headers=auth_headers("admin"),
        )

        tree = await client.get("/api/organizations/org1/spaces/tree", headers=auth_headers("tech"))

        assert tree.status_code == 200
        assert tree.json()[0]["name"] == "Building A"
        assert tree.json()[0]["children"][0]["name"] == "Floor 1"

    @pytest.mark.asyncio
    async def test_delete_category_in_use(self, client: AsyncClient, orgs, auth_headers):
        category = await client.post(
            "/api/organizations/org1/categories", json={"name": "Pumps"}, headers=auth_headers("admin")
        )
        category_id = category.json()["id"]
        await client.post(
            "/api/organizations/org1/assets",
            json={"name": "Sump pump", "categoryId": category_id},
            headers=auth_headers("admin"),
        )

        response = await client.delete(
            f"/api/organizations/org1/categories/{category_id}", headers=auth_headers("admin")
        )

        assert response.status_code == 422
        assert response.json()["error"] == "HierarchyConflictError"


class TestTaskEndpoints:
    """Test task routes."""

    @pytest.mark.asyncio
    async def test_task_flow(self, client: AsyncClient, orgs, auth_headers):
        created = await client.post(
            "/api/organizations/org1/tasks",
            json={
                "title": "Replace filter",
                "priority": "HIGH",
                "dueDate": "2025-01-31T09:00:00Z",
                "checklist": ["Shut off unit"],
                "recurring": {"frequency": "MONTHLY"},
            },
            headers=auth_headers("admin"),
        )
        assert created.status_code == 201
        task = created.json()
        assert task["status"] == "PENDING"
        assert task["recurring"]["nextDueDate"].startswith("2025-01-31T09:00:00")
        assert task["totalCost"] == 0

        cost = await client.post(
            f"/api/organizations/org1/tasks/{task['id']}/costs",
            json={"amount": 42.5, "description": "Filter"},
            headers=auth_headers("admin"),
        )
        assert cost.status_code == 201
        assert cost.json()["totalCost"] == 42.5
        assert cost.json()["costs"][0]["currency"] == "USD"

        done = await client.put(
            f"/api/organizations/org1/tasks/{task['id']}/status",
            json={"status": "COMPLETED", "completionNotes": "Done"},
            headers=auth_headers("admin"),
        )
        assert done.status_code == 200
        assert done.json()["completedBy"] == "admin"
        assert done.json()["recurring"]["nextDueDate"].startswith("2025-02-28")

        completed = await client.get(
            "/api/organizations/org1/tasks", params={"status": "COMPLETED"}, headers=auth_headers("tech")
        )
        assert [t["id"] for t in completed.json()] == [task["id"]]

    @pytest.mark.asyncio
    async def test_limited_member_cannot_change_status(self, client: AsyncClient, orgs, auth_headers):
        created = await client.post(
            "/api/organizations/org1/tasks", json={"title": "Sweep"}, headers=auth_headers("admin")
        )

        response = await client.put(
            f"/api/organizations/org1/tasks/{created.json()['id']}/status",
            json={"status": "COMPLETED"},
            headers=auth_headers("tech"),
        )

        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_checklist_update(self, client: AsyncClient, orgs, auth_headers):
        created = await client.post(
            "/api/organizations/org1/tasks",
            json={"title": "Service", "checklist": ["one"]},
            headers=auth_headers("admin"),
        )
        task = created.json()
        item = task["checklist"][0]

        response = await client.put(
            f"/api/organizations/org1/tasks/{task['id']}/checklist",
            json={"items": [{"id": item["id"], "text": "one", "completed": True}]},
            headers=auth_headers("admin"),
        )

        assert response.status_code == 200
        assert response.json()["checklist"][0]["completedBy"] == "admin"

    @pytest.mark.asyncio
    async def test_share_task(self, client: AsyncClient, orgs, auth_headers):
        created = await client.post(
            "/api/organizations/org1/tasks", json={"title": "Sweep"}, headers=auth_headers("admin")
        )

        response = await client.get(
            f"/api/organizations/org1/tasks/{created.json()['id']}/share",
            params={"mobile": "true"},
            headers=auth_headers("admin"),
        )

        assert response.status_code == 200
        assert response.json()["shareUrl"].startswith("whatsapp://send?text=")


class TestSuggestionEndpoints:
    """Test suggestion routes with a mocked OpenAI client."""

    @pytest.mark.asyncio
    async def test_unavailable_without_client(self, client: AsyncClient, orgs, auth_headers):
        quota = await client.get("/api/organizations/org1/suggestions/quota", headers=auth_headers("tech"))
        generate = await client.post(
            "/api/organizations/org1/suggestions", json={"assetId": "x"}, headers=auth_headers("admin")
        )

        assert quota.status_code == 200
        assert quota.json()["available"] is False
        assert quota.json()["requestsUsed"] == 0
        assert generate.status_code == 503

    @pytest.mark.asyncio
    async def test_generate_and_list(self, client: AsyncClient, orgs, auth_headers):
        ai_client = MagicMock()
        ai_client.chat.completions.create = AsyncMock(
            return_value=SimpleNamespace(
                choices=[
                    SimpleNamespace(
                        message=SimpleNamespace(
                            content='[{"title": "Grease", "description": "Bearings", "priority": "LOW"}]'
                        )
                    )
                ]
            )
        )
        app.dependency_overrides[get_ai_client] = lambda: ai_client

        asset = await client.post(
            "/api/organizations/org1/assets", json={"name": "Pump"}, headers=auth_headers("admin")
        )
        asset_id = asset.json()["id"]

        generated = await client.post(
            "/api/organizations/org1/suggestions", json={"assetId": asset_id}, headers=auth_headers("admin")
        )
        listed = await client.get(
            "/api/organizations/org1/suggestions", params={"assetId": asset_id}, headers=auth_headers("tech")
        )
        quota = await client.get("/api/organizations/org1/suggestions/quota", headers=auth_headers("tech"))

        assert generated.status_code == 201
        assert generated.json()[0]["title"] == "Grease"
        assert generated.json()[0]["aiGenerated"] is True
        assert [s["title"] for s in listed.json()] == ["Grease"]
        assert quota.json()["requestsUsed"] == 1
        assert quota.json()["available"] is True


class TestExplicitNullOverHttp:
    """
    PATCH with an explicit JSON null clears a field.

    WHY: The cleared field is persisted as null (never dropped), and every
    later read of the record must still serialize.
    """

    @pytest.mark.asyncio
    async def test_asset_fields_cleared(self, client: AsyncClient, db_session: AsyncSession, orgs, auth_headers):
        created = await client.post(
            "/api/organizations/org1/assets",
            json={"name": "Drill", "description": "Cordless", "metadata": {"serialNumber": "D-1"}},
            headers=auth_headers("admin"),
        )
        asset_id = created.json()["id"]

        patched = await client.patch(
            f"/api/organizations/org1/assets/{asset_id}",
            json={"metadata": None, "description": None},
            headers=auth_headers("admin"),
        )
        fetched = await client.get(f"/api/organizations/org1/assets/{asset_id}", headers=auth_headers("tech"))
        listed = await client.get("/api/organizations/org1/assets", headers=auth_headers("tech"))

        assert patched.status_code == 200
        assert fetched.status_code == 200
        assert fetched.json()["metadata"] is None
        assert fetched.json()["description"] is None
        assert listed.status_code == 200
        assert [a["id"] for a in listed.json()] == [asset_id]

        stored = await OrgScopedStore(db_session, "org1", "admin").get(RecordKind.ASSETS, asset_id)
        assert "metadata" in stored and stored["metadata"] is None

    @pytest.mark.asyncio
    async def test_cleared_asset_can_be_shared(self, client: AsyncClient, orgs, auth_headers):
        created = await client.post(
            "/api/organizations/org1/assets",
            json={"name": "Drill", "metadata": {"serialNumber": "D-1"}},
            headers=auth_headers("admin"),
        )
        asset_id = created.json()["id"]
        await client.patch(
            f"/api/organizations/org1/assets/{asset_id}", json={"metadata": None}, headers=auth_headers("admin")
        )

        response = await client.get(f"/api/organizations/org1/assets/{asset_id}/share", headers=auth_headers("admin"))

        assert response.status_code == 200
        assert "Specifications" not in response.json()["message"]

    @pytest.mark.asyncio
    async def test_task_fields_cleared(self, client: AsyncClient, db_session: AsyncSession, orgs, auth_headers):
        created = await client.post(
            "/api/organizations/org1/tasks",
            json={
                "title": "Replace filter",
                "description": "Return-air filters",
                "assignedTo": "tech",
                "dueDate": "2025-01-31T09:00:00Z",
            },
            headers=auth_headers("admin"),
        )
        task_id = created.json()["id"]

        patched = await client.patch(
            f"/api/organizations/org1/tasks/{task_id}",
            json={"description": None, "assignedTo": None, "dueDate": None},
            headers=auth_headers("admin"),
        )
        fetched = await client.get(f"/api/organizations/org1/tasks/{task_id}", headers=auth_headers("tech"))
        listed = await client.get(
            "/api/organizations/org1/tasks", params={"search": "filter"}, headers=auth_headers("tech")
        )

        assert patched.status_code == 200
        assert fetched.status_code == 200
        body = fetched.json()
        assert body["description"] is None
        assert body["assignedTo"] is None
        assert body["dueDate"] is None
        assert listed.status_code == 200
        assert [t["id"] for t in listed.json()] == [task_id]

        stored = await OrgScopedStore(db_session, "org1", "admin").get(RecordKind.TASKS, task_id)
        assert "description" in stored and stored["description"] is None

    @pytest.mark.asyncio
    async def test_task_priority_cannot_be_cleared(self, client: AsyncClient, orgs, auth_headers):
        created = await client.post(
            "/api/organizations/org1/tasks", json={"title": "Sweep"}, headers=auth_headers("admin")
        )
        task_id = created.json()["id"]

        response = await client.patch(
            f"/api/organizations/org1/tasks/{task_id}", json={"priority": None}, headers=auth_headers("admin")
        )
        fetched = await client.get(f"/api/organizations/org1/tasks/{task_id}", headers=auth_headers("admin"))

        assert response.status_code == 400
        assert fetched.json()["priority"] == "MEDIUM"

    @pytest.mark.asyncio
    async def test_category_fields_cleared(self, client: AsyncClient, orgs, auth_headers):
        created = await client.post(
            "/api/organizations/org1/categories",
            json={"name": "Pumps", "description": "Water", "color": "#2563eb"},
            headers=auth_headers("admin"),
        )
        category_id = created.json()["id"]

        patched = await client.patch(
            f"/api/organizations/org1/categories/{category_id}",
            json={"description": None, "color": None},
            headers=auth_headers("admin"),
        )
        fetched = await client.get(f"/api/organizations/org1/categories/{category_id}", headers=auth_headers("tech"))
        tree = await client.get("/api/organizations/org1/categories/tree", headers=auth_headers("tech"))

        assert patched.status_code == 200
        assert fetched.status_code == 200
        assert fetched.json()["description"] is None
        assert fetched.json()["color"] is None
        assert tree.status_code == 200

    @pytest.mark.asyncio
    async def test_space_fields_cleared(self, client: AsyncClient, orgs, auth_headers):
        building = await client.post(
            "/api/organizations/org1/spaces", json={"name": "Building A"}, headers=auth_headers("admin")
        )
        created = await client.post(
            "/api/organizations/org1/spaces",
            json={
                "name": "Floor 1",
                "parentId": building.json()["id"],
                "location": {"address": "1 Main St"},
            },
            headers=auth_headers("admin"),
        )
        space_id = created.json()["id"]

        patched = await client.patch(
            f"/api/organizations/org1/spaces/{space_id}",
            json={"location": None, "parentId": None},
            headers=auth_headers("admin"),
        )
        fetched = await client.get(f"/api/organizations/org1/spaces/{space_id}", headers=auth_headers("tech"))
        listed = await client.get("/api/organizations/org1/spaces", headers=auth_headers("tech"))

        assert patched.status_code == 200
        assert fetched.status_code == 200
        assert fetched.json()["location"] is None
        assert fetched.json()["parentId"] is None
        assert listed.status_code == 200
        assert len(listed.json()) == 2
