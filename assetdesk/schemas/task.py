"""
Pydantic schemas for task endpoints.
"""

from datetime import datetime
from typing import List

from pydantic import BaseModel, Field

from assetdesk.schemas.common import CamelModel, RecordResponse
from assetdesk.services.recurrence import RecurrenceFrequency
from assetdesk.services.task_service import TaskPriority, TaskStatus


class RecurringInput(CamelModel):
    frequency: RecurrenceFrequency
    interval: int = Field(default=1, ge=1, le=365)
    end_date: datetime | None = Field(default=None, alias="endDate")
    max_occurrences: int | None = Field(default=None, ge=1, alias="maxOccurrences")

    def to_fields(self) -> dict:
        return self.model_dump(by_alias=True, mode="python")


class TaskCreate(CamelModel):
    """Task creation request; ``checklist`` is a list of item texts."""

    title: str = Field(..., min_length=1, max_length=255)
    description: str = Field(default="", max_length=5000)
    priority: TaskPriority = TaskPriority.MEDIUM
    assigned_to: str | None = Field(default=None, alias="assignedTo")
    asset_id: str | None = Field(default=None, alias="assetId")
    due_date: datetime | None = Field(default=None, alias="dueDate")
    checklist: List[str] = Field(default_factory=list)
    recurring: RecurringInput | None = None

    class Config:
        populate_by_name = True
        json_schema_extra = {
            "example": {
                "title": "Replace air filters",
                "description": "All four return-air filters",
                "priority": "HIGH",
                "assetId": "hvac-2",
                "dueDate": "2025-11-01T09:00:00Z",
                "checklist": ["Shut off unit", "Swap filters", "Log pressure drop"],
                "recurring": {"frequency": "MONTHLY", "interval": 3},
            }
        }

    def to_fields(self) -> dict:
        return self.model_dump(by_alias=True)


class TaskUpdate(CamelModel):
    title: str | None = Field(default=None, min_length=1, max_length=255)
    description: str | None = Field(default=None, max_length=5000)
    priority: TaskPriority | None = None
    assigned_to: str | None = Field(default=None, alias="assignedTo")
    asset_id: str | None = Field(default=None, alias="assetId")
    due_date: datetime | None = Field(default=None, alias="dueDate")
    checklist: List[str] | None = None
    recurring: RecurringInput | None = None


class StatusUpdate(CamelModel):
    status: TaskStatus
    completion_notes: str | None = Field(default=None, alias="completionNotes", max_length=5000)


class ChecklistItemInput(CamelModel):
    id: str | None = None
    text: str = Field(..., min_length=1, max_length=500)
    completed: bool = False
    completed_at: datetime | None = Field(default=None, alias="completedAt")
    completed_by: str | None = Field(default=None, alias="completedBy")


class ChecklistUpdate(BaseModel):
    items: List[ChecklistItemInput]


class CostCreate(CamelModel):
    amount: float = Field(..., ge=0)
    currency: str | None = Field(default=None, min_length=3, max_length=3)
    description: str | None = Field(default=None, max_length=500)
    receipt: str | None = Field(default=None, description="Attachment reference")


class ChecklistItem(CamelModel):
    id: str
    text: str
    completed: bool = False
    completed_at: datetime | None = Field(default=None, alias="completedAt")
    completed_by: str | None = Field(default=None, alias="completedBy")


class TaskCost(CamelModel):
    id: str
    amount: float
    currency: str
    description: str | None = None
    receipt: str | None = None
    added_at: datetime = Field(..., alias="addedAt")
    added_by: str = Field(..., alias="addedBy")


class RecurringConfig(CamelModel):
    frequency: RecurrenceFrequency
    interval: int
    end_date: datetime | None = Field(default=None, alias="endDate")
    max_occurrences: int | None = Field(default=None, alias="maxOccurrences")
    start_date: datetime | None = Field(default=None, alias="startDate")
    next_due_date: datetime | None = Field(default=None, alias="nextDueDate")
    occurrence_count: int = Field(default=0, alias="occurrenceCount")


class TaskResponse(RecordResponse):
    title: str
    description: str | None = ""
    status: TaskStatus
    priority: TaskPriority
    assigned_to: str | None = Field(default=None, alias="assignedTo")
    asset_id: str | None = Field(default=None, alias="assetId")
    checklist: List[ChecklistItem] = Field(default_factory=list)
    costs: List[TaskCost] = Field(default_factory=list)
    recurring: RecurringConfig | None = None
    due_date: datetime | None = Field(default=None, alias="dueDate")
    completed_at: datetime | None = Field(default=None, alias="completedAt")
    completed_by: str | None = Field(default=None, alias="completedBy")
    completion_notes: str | None = Field(default=None, alias="completionNotes")
    total_cost: float = Field(default=0, alias="totalCost")
