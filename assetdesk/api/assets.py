"""
Asset API endpoints.

WHAT: CRUD, filtered listing, image attachments and WhatsApp sharing for
an organization's assets.

HOW: Every route is scoped by ``/organizations/{org_id}``; AssetService
works through the request's role-guarded store, so LIMITED_ACCESS members
can read but every write returns 403.
"""

from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, File, Query, UploadFile, status

from assetdesk.core.deps import get_asset_service, get_share_service
from assetdesk.schemas.asset import AssetCreate, AssetResponse, AssetUpdate
from assetdesk.schemas.common import ShareResponse
from assetdesk.services.asset_service import AssetService, Attachment
from assetdesk.services.share_service import ShareService

router = APIRouter(prefix="/organizations/{org_id}/assets", tags=["assets"])


@router.post(
    "",
    response_model=AssetResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create asset",
)
async def create_asset(
    data: AssetCreate,
    service: AssetService = Depends(get_asset_service),
) -> dict:
    return await service.create_asset(data.to_fields())


@router.get(
    "",
    response_model=List[AssetResponse],
    summary="List assets",
    description="Filter by categories, spaces and creation window; free-text search over name and description",
)
async def list_assets(
    category_ids: Optional[List[str]] = Query(default=None, alias="categoryId"),
    space_ids: Optional[List[str]] = Query(default=None, alias="spaceId"),
    created_after: Optional[datetime] = Query(default=None, alias="createdAfter"),
    created_before: Optional[datetime] = Query(default=None, alias="createdBefore"),
    search: Optional[str] = Query(default=None, max_length=200),
    sort: str = Query(default="createdAt", pattern="^(name|createdAt|updatedAt)$"),
    direction: str = Query(default="desc", pattern="^(asc|desc)$"),
    service: AssetService = Depends(get_asset_service),
) -> List[dict]:
    return await service.list_assets(
        category_ids=category_ids,
        space_ids=space_ids,
        created_after=created_after,
        created_before=created_before,
        search=search,
        sort_field=sort,
        sort_direction=direction,
    )


@router.get("/{asset_id}", response_model=AssetResponse, summary="Get asset")
async def get_asset(
    asset_id: str,
    service: AssetService = Depends(get_asset_service),
) -> dict:
    return await service.get_asset(asset_id)


@router.patch("/{asset_id}", response_model=AssetResponse, summary="Update asset")
async def update_asset(
    asset_id: str,
    data: AssetUpdate,
    service: AssetService = Depends(get_asset_service),
) -> dict:
    return await service.update_asset(asset_id, data.to_fields())


@router.put(
    "/{asset_id}/images",
    response_model=AssetResponse,
    summary="Replace asset images",
    description="Deletes the current images and uploads the given files in their place",
)
async def replace_images(
    asset_id: str,
    files: List[UploadFile] = File(default=[]),
    service: AssetService = Depends(get_asset_service),
) -> dict:
    images = [
        Attachment(
            data=await upload.read(),
            content_type=upload.content_type or "application/octet-stream",
            filename=upload.filename,
        )
        for upload in files
    ]
    return await service.update_asset(asset_id, {}, images=images)


@router.get("/{asset_id}/images", response_model=List[str], summary="Image download URLs")
async def image_urls(
    asset_id: str,
    service: AssetService = Depends(get_asset_service),
) -> List[str]:
    asset = await service.get_asset(asset_id)
    return await service.image_urls(asset)


@router.delete("/{asset_id}", status_code=status.HTTP_204_NO_CONTENT, summary="Delete asset")
async def delete_asset(
    asset_id: str,
    service: AssetService = Depends(get_asset_service),
) -> None:
    await service.delete_asset(asset_id)


@router.get("/{asset_id}/share", response_model=ShareResponse, summary="WhatsApp share links")
async def share_asset(
    asset_id: str,
    phone: Optional[str] = Query(default=None, max_length=32),
    mobile: bool = Query(default=False),
    service: AssetService = Depends(get_asset_service),
    share: ShareService = Depends(get_share_service),
) -> ShareResponse:
    asset = await service.get_asset(asset_id)
    message = share.format_asset_message(asset)
    return ShareResponse(
        message=message,
        share_url=share.whatsapp_url(message, phone=phone, mobile=mobile),
        deep_link=share.deep_link("asset", asset_id),
        qr_code_url=share.qr_code_url(message),
    )
