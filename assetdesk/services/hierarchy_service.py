"""
Category and space hierarchies.

WHAT: CRUD plus tree building for the two hierarchical record kinds:
asset categories and physical spaces (building > floor > room).

WHY: Both kinds are a forest linked by ``parentId``. The rules that keep
the forest well-formed are the same for both:
1. A parent must exist in the same organization
2. A node cannot become its own ancestor
3. A node with children, or with assets filed under it, cannot be deleted
"""

import logging
from typing import Any, Dict, List, Optional

from assetdesk.core.exceptions import HierarchyConflictError, RecordNotFoundError, ValidationError
from assetdesk.dao.org_store import new_record_id
from assetdesk.dao.query import order_by, where
from assetdesk.models.record import RecordKind
from assetdesk.services.authorization import GuardedOrgStore

logger = logging.getLogger(__name__)


class HierarchyService:
    """
    Tree-structured records of one kind.

    Subclasses set ``kind``, the writable ``fields``, the asset field that
    references this kind and a human label for messages.
    """

    kind: RecordKind
    fields: tuple = ("name", "description", "parentId")
    asset_field: str = ""
    label: str = "node"

    def __init__(self, store: GuardedOrgStore):
        self.store = store

    async def get(self, node_id: str) -> Dict[str, Any]:
        node = await self.store.get(self.kind, node_id)
        if node is None:
            raise RecordNotFoundError(message=f"{self.label.capitalize()} not found", id=node_id)
        return node

    async def list(self) -> List[Dict[str, Any]]:
        """All nodes ordered by name."""
        return await self.store.query(self.kind, order_by=[order_by("name")])

    async def _check_parent(self, node_id: Optional[str], parent_id: Optional[str]) -> None:
        if not parent_id:
            return
        if parent_id == node_id:
            raise HierarchyConflictError(message=f"A {self.label} cannot be its own parent")
        parent = await self.store.get(self.kind, parent_id)
        if parent is None:
            raise ValidationError(message=f"Parent {self.label} not found", parentId=parent_id)
        if node_id is None:
            return

        # Walk up from the new parent; reaching node_id would close a cycle
        seen = set()
        current = parent
        while current is not None and current.get("parentId"):
            ancestor_id = current["parentId"]
            if ancestor_id == node_id:
                raise HierarchyConflictError(
                    message=f"A {self.label} cannot be moved under its own descendant"
                )
            if ancestor_id in seen:
                break
            seen.add(ancestor_id)
            current = await self.store.get(self.kind, ancestor_id)

    def _pick(self, data: Dict[str, Any], partial: bool) -> Dict[str, Any]:
        if partial:
            picked = {key: value for key, value in data.items() if key in self.fields}
        else:
            picked = {key: data.get(key) for key in self.fields}
        if "name" in picked or not partial:
            picked["name"] = (picked.get("name") or "").strip()
            if not picked["name"]:
                raise ValidationError(message=f"{self.label.capitalize()} name is required", field="name")
        if "parentId" in picked and not picked["parentId"]:
            picked["parentId"] = None
        return picked

    async def create(self, data: Dict[str, Any]) -> Dict[str, Any]:
        fields = self._pick(data, partial=False)
        await self._check_parent(None, fields.get("parentId"))
        node = await self.store.create(self.kind, new_record_id(), fields)
        logger.info(f"{self.label.capitalize()} {node['id']} created in {self.store.organization_id}")
        return node

    async def update(self, node_id: str, data: Dict[str, Any]) -> Dict[str, Any]:
        await self.get(node_id)
        fields = self._pick(data, partial=True)
        if "parentId" in fields:
            await self._check_parent(node_id, fields["parentId"])
        return await self.store.update(self.kind, node_id, fields)

    async def delete(self, node_id: str) -> None:
        """
        Raises:
            HierarchyConflictError: Node has children or assets reference it
        """
        await self.get(node_id)
        if await self.store.query(self.kind, [where("parentId", "==", node_id)], limit=1):
            raise HierarchyConflictError(
                message=f"Cannot delete a {self.label} that has children",
                id=node_id,
            )
        if self.asset_field and await self.store.query(
            RecordKind.ASSETS, [where(self.asset_field, "==", node_id)], limit=1
        ):
            raise HierarchyConflictError(
                message=f"Cannot delete a {self.label} that still has assets",
                id=node_id,
            )
        await self.store.delete(self.kind, node_id)
        logger.info(f"{self.label.capitalize()} {node_id} deleted from {self.store.organization_id}")

    async def tree(self) -> List[Dict[str, Any]]:
        """
        Nested forest; each node gains a ``children`` list, siblings by name.

        Nodes whose parent no longer exists are treated as roots.
        """
        nodes = await self.list()
        by_id = {node["id"]: dict(node, children=[]) for node in nodes}
        roots = []
        for node in nodes:
            entry = by_id[node["id"]]
            parent = by_id.get(node.get("parentId") or "")
            if parent is not None and parent is not entry:
                parent["children"].append(entry)
            else:
                roots.append(entry)
        return roots


class CategoryService(HierarchyService):
    """Asset categories."""

    kind = RecordKind.CATEGORIES
    fields = ("name", "description", "parentId", "color", "icon")
    asset_field = "categoryId"
    label = "category"


class SpaceService(HierarchyService):
    """Physical spaces."""

    kind = RecordKind.SPACES
    fields = ("name", "description", "parentId", "location")
    asset_field = "spaceId"
    label = "space"
