"""
Asset service.

WHAT: Create, update, delete and list an organization's physical assets,
including their image attachments.

WHY: An asset write touches two systems (object storage for images, the
org store for the record) with no transaction spanning them. This service
owns the ordering:
- create/update upload images before writing the record
- delete removes the record first, then its images; image cleanup is
  best-effort and only logged, so a failure leaves an orphaned object
  rather than a record pointing at missing images

HOW: Works through a GuardedOrgStore (role enforced per operation) and an
injected AttachmentStorage.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence

from assetdesk.core.exceptions import RecordNotFoundError, ValidationError
from assetdesk.dao.org_store import new_record_id
from assetdesk.dao.query import order_by, text_search, where
from assetdesk.models.organization import Role
from assetdesk.models.record import RecordKind
from assetdesk.services.authorization import GuardedOrgStore, ensure_role
from assetdesk.services.storage_service import AttachmentStorage

logger = logging.getLogger(__name__)

ASSET_FIELDS = ("name", "description", "categoryId", "spaceId", "metadata")
SORTABLE_FIELDS = ("name", "createdAt", "updatedAt")
SEARCH_FIELDS = ("name", "description")


@dataclass
class Attachment:
    """An uploaded file waiting to be stored."""

    data: bytes
    content_type: str
    filename: Optional[str] = None


class AssetService:
    """
    Service for asset management.

    Args:
        store: Role-guarded store for the current organization
        storage: Attachment storage
    """

    def __init__(self, store: GuardedOrgStore, storage: AttachmentStorage):
        self.store = store
        self.storage = storage

    @property
    def org_id(self) -> str:
        return self.store.organization_id

    async def _check_references(self, data: Dict[str, Any]) -> None:
        """Category and space ids must point at records of this organization."""
        for field, kind in (("categoryId", RecordKind.CATEGORIES), ("spaceId", RecordKind.SPACES)):
            ref = data.get(field)
            if ref and await self.store.get(kind, ref) is None:
                raise ValidationError(
                    message=f"Unknown {field}",
                    field=field,
                    value=ref,
                )

    async def _upload_all(self, images: Sequence[Attachment]) -> List[str]:
        refs = []
        for image in images:
            refs.append(
                await self.storage.upload(self.org_id, image.data, image.content_type, image.filename)
            )
        return refs

    async def _delete_images(self, refs: Sequence[str]) -> None:
        for ref in refs or []:
            try:
                await self.storage.delete(self.org_id, ref)
            except Exception as e:
                logger.warning(f"Failed to delete image {ref}: {e}")

    async def get_asset(self, asset_id: str) -> Dict[str, Any]:
        """
        Raises:
            RecordNotFoundError: Asset does not exist in this organization
        """
        asset = await self.store.get(RecordKind.ASSETS, asset_id)
        if asset is None:
            raise RecordNotFoundError(message="Asset not found", asset_id=asset_id)
        return asset

    async def create_asset(
        self,
        data: Dict[str, Any],
        images: Sequence[Attachment] = (),
    ) -> Dict[str, Any]:
        """
        Create an asset, uploading its images first.

        Args:
            data: Asset fields (name required)
            images: Files to attach

        Returns:
            The created asset
        """
        ensure_role(self.store.role, Role.FULL_ACCESS)
        name = (data.get("name") or "").strip()
        if not name:
            raise ValidationError(message="Asset name is required", field="name")

        fields = {key: data.get(key) for key in ASSET_FIELDS}
        fields["name"] = name
        fields["metadata"] = fields["metadata"] or {}
        await self._check_references(fields)

        fields["images"] = await self._upload_all(images)
        asset = await self.store.create(RecordKind.ASSETS, new_record_id(), fields)
        logger.info(f"Asset {asset['id']} created in {self.org_id}")
        return asset

    async def update_asset(
        self,
        asset_id: str,
        data: Dict[str, Any],
        images: Optional[Sequence[Attachment]] = None,
    ) -> Dict[str, Any]:
        """
        Update asset fields. When ``images`` is given it replaces the
        current set: old images are deleted, then the new ones uploaded.

        Only keys present in ``data`` are written; a key mapped to None
        clears the field.
        """
        ensure_role(self.store.role, Role.FULL_ACCESS)
        current = await self.get_asset(asset_id)

        fields = {key: value for key, value in data.items() if key in ASSET_FIELDS}
        if "name" in fields:
            fields["name"] = (fields["name"] or "").strip()
            if not fields["name"]:
                raise ValidationError(message="Asset name cannot be empty", field="name")
        await self._check_references(fields)

        if images is not None:
            await self._delete_images(current.get("images") or [])
            fields["images"] = await self._upload_all(images)

        return await self.store.update(RecordKind.ASSETS, asset_id, fields)

    async def delete_asset(self, asset_id: str) -> None:
        """
        Delete the asset record, then its images.

        Not atomic: images that fail to delete are left behind and logged.
        """
        ensure_role(self.store.role, Role.FULL_ACCESS)
        asset = await self.get_asset(asset_id)
        await self.store.delete(RecordKind.ASSETS, asset_id)
        await self._delete_images(asset.get("images") or [])
        logger.info(f"Asset {asset_id} deleted from {self.org_id}")

    async def list_assets(
        self,
        category_ids: Optional[Sequence[str]] = None,
        space_ids: Optional[Sequence[str]] = None,
        created_after: Optional[datetime] = None,
        created_before: Optional[datetime] = None,
        search: Optional[str] = None,
        sort_field: str = "createdAt",
        sort_direction: str = "desc",
    ) -> List[Dict[str, Any]]:
        """
        List assets matching every given filter.

        Args:
            category_ids: Any of these categories
            space_ids: Any of these spaces
            created_after: Created at or after
            created_before: Created at or before
            search: Case-insensitive text over name and description
            sort_field: name, createdAt or updatedAt
            sort_direction: asc or desc
        """
        if sort_field not in SORTABLE_FIELDS:
            raise ValidationError(message=f"Cannot sort assets by '{sort_field}'", field=sort_field)

        constraints = []
        if category_ids:
            constraints.append(where("categoryId", "in", list(category_ids)))
        if space_ids:
            constraints.append(where("spaceId", "in", list(space_ids)))
        if created_after:
            constraints.append(where("createdAt", ">=", created_after))
        if created_before:
            constraints.append(where("createdAt", "<=", created_before))

        assets = await self.store.query(
            RecordKind.ASSETS,
            constraints,
            order_by=[order_by(sort_field, sort_direction)],
        )
        return text_search(assets, search, SEARCH_FIELDS)

    async def image_urls(self, asset: Dict[str, Any]) -> List[str]:
        """Presigned URLs for an asset's images."""
        return [await self.storage.url_for(self.org_id, ref) for ref in asset.get("images") or []]
