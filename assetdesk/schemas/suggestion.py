"""
Pydantic schemas for AI suggestion endpoints.
"""

from datetime import datetime

from pydantic import BaseModel, Field

from assetdesk.schemas.common import RecordResponse
from assetdesk.services.task_service import TaskPriority


class SuggestionGenerate(BaseModel):
    asset_id: str = Field(..., alias="assetId", min_length=1)

    class Config:
        populate_by_name = True
        json_schema_extra = {"example": {"assetId": "hvac-2"}}


class SuggestionResponse(RecordResponse):
    asset_id: str = Field(..., alias="assetId")
    title: str
    description: str
    priority: TaskPriority
    estimated_cost: float | None = Field(default=None, alias="estimatedCost")
    ai_generated: bool = Field(default=True, alias="aiGenerated")


class QuotaResponse(BaseModel):
    requests_used: int = Field(..., alias="requestsUsed")
    requests_limit: int = Field(..., alias="requestsLimit")
    reset_date: datetime = Field(..., alias="resetDate")
    available: bool = Field(..., description="Whether an AI provider is configured")

    class Config:
        populate_by_name = True
