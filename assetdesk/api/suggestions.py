"""
AI maintenance suggestion API endpoints.

WHAT: Generate suggestions for an asset, browse and delete stored
suggestions, and read the organization's monthly quota.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status

from assetdesk.core.deps import get_suggestion_service
from assetdesk.schemas.suggestion import QuotaResponse, SuggestionGenerate, SuggestionResponse
from assetdesk.services.suggestion_service import SuggestionService

router = APIRouter(prefix="/organizations/{org_id}/suggestions", tags=["suggestions"])


@router.post(
    "",
    response_model=List[SuggestionResponse],
    status_code=status.HTTP_201_CREATED,
    summary="Generate suggestions",
    description="Ask the AI model for maintenance suggestions for one asset (FULL_ACCESS, counts against quota)",
)
async def generate_suggestions(
    data: SuggestionGenerate,
    service: SuggestionService = Depends(get_suggestion_service),
) -> List[dict]:
    return await service.generate_for_asset(data.asset_id)


@router.get("", response_model=List[SuggestionResponse], summary="Suggestion history")
async def list_suggestions(
    asset_id: Optional[str] = Query(default=None, alias="assetId"),
    service: SuggestionService = Depends(get_suggestion_service),
) -> List[dict]:
    return await service.history(asset_id)


@router.get("/quota", response_model=QuotaResponse, summary="AI quota usage")
async def quota(service: SuggestionService = Depends(get_suggestion_service)) -> QuotaResponse:
    usage = await service.quota_usage()
    return QuotaResponse(
        requests_used=usage["requestsUsed"],
        requests_limit=usage["requestsLimit"],
        reset_date=usage["resetDate"],
        available=service.is_available,
    )


@router.delete("/{suggestion_id}", status_code=status.HTTP_204_NO_CONTENT, summary="Delete suggestion")
async def delete_suggestion(
    suggestion_id: str,
    service: SuggestionService = Depends(get_suggestion_service),
) -> None:
    await service.delete(suggestion_id)
