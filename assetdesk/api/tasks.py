"""
Maintenance task API endpoints.

WHAT: Task CRUD, status transitions, checklist updates, cost entries and
WhatsApp sharing.

HOW: Scoped by ``/organizations/{org_id}``; TaskService works through the
request's role-guarded store.
"""

from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status

from assetdesk.core.deps import OrgContext, get_org_context, get_share_service, get_task_service
from assetdesk.models.record import RecordKind
from assetdesk.schemas.common import ShareResponse
from assetdesk.schemas.task import (
    ChecklistUpdate,
    CostCreate,
    StatusUpdate,
    TaskCreate,
    TaskResponse,
    TaskUpdate,
)
from assetdesk.services.share_service import ShareService
from assetdesk.services.task_service import TaskPriority, TaskService, TaskStatus, total_cost

router = APIRouter(prefix="/organizations/{org_id}/tasks", tags=["tasks"])


def _with_total(task: dict) -> dict:
    return dict(task, totalCost=float(total_cost(task)))


@router.post(
    "",
    response_model=TaskResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create task",
)
async def create_task(
    data: TaskCreate,
    service: TaskService = Depends(get_task_service),
) -> dict:
    return _with_total(await service.create_task(data.to_fields()))


@router.get(
    "",
    response_model=List[TaskResponse],
    summary="List tasks",
    description="Filter by status, priority, assignee, asset and due window; free-text search over title, description and checklist",
)
async def list_tasks(
    status_filter: Optional[List[TaskStatus]] = Query(default=None, alias="status"),
    priority: Optional[List[TaskPriority]] = Query(default=None),
    assigned_to: Optional[List[str]] = Query(default=None, alias="assignedTo"),
    asset_ids: Optional[List[str]] = Query(default=None, alias="assetId"),
    due_before: Optional[datetime] = Query(default=None, alias="dueBefore"),
    due_after: Optional[datetime] = Query(default=None, alias="dueAfter"),
    search: Optional[str] = Query(default=None, max_length=200),
    sort: str = Query(default="createdAt", pattern="^(title|priority|dueDate|createdAt|status)$"),
    direction: str = Query(default="desc", pattern="^(asc|desc)$"),
    service: TaskService = Depends(get_task_service),
) -> List[dict]:
    tasks = await service.list_tasks(
        status=[s.value for s in status_filter] if status_filter else None,
        priority=[p.value for p in priority] if priority else None,
        assigned_to=assigned_to,
        asset_ids=asset_ids,
        due_before=due_before,
        due_after=due_after,
        search=search,
        sort_field=sort,
        sort_direction=direction,
    )
    return [_with_total(task) for task in tasks]


@router.get("/{task_id}", response_model=TaskResponse, summary="Get task")
async def get_task(task_id: str, service: TaskService = Depends(get_task_service)) -> dict:
    return _with_total(await service.get_task(task_id))


@router.patch("/{task_id}", response_model=TaskResponse, summary="Update task")
async def update_task(
    task_id: str,
    data: TaskUpdate,
    service: TaskService = Depends(get_task_service),
) -> dict:
    return _with_total(await service.update_task(task_id, data.to_fields()))


@router.delete("/{task_id}", status_code=status.HTTP_204_NO_CONTENT, summary="Delete task")
async def delete_task(task_id: str, service: TaskService = Depends(get_task_service)) -> None:
    await service.delete_task(task_id)


@router.put("/{task_id}/status", response_model=TaskResponse, summary="Change status")
async def update_status(
    task_id: str,
    data: StatusUpdate,
    service: TaskService = Depends(get_task_service),
) -> dict:
    return _with_total(await service.update_status(task_id, data.status, data.completion_notes))


@router.put("/{task_id}/checklist", response_model=TaskResponse, summary="Replace checklist")
async def update_checklist(
    task_id: str,
    data: ChecklistUpdate,
    service: TaskService = Depends(get_task_service),
) -> dict:
    items = [item.model_dump(by_alias=True) for item in data.items]
    return _with_total(await service.update_checklist(task_id, items))


@router.post(
    "/{task_id}/costs",
    response_model=TaskResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Add cost",
)
async def add_cost(
    task_id: str,
    data: CostCreate,
    service: TaskService = Depends(get_task_service),
) -> dict:
    task = await service.add_cost(
        task_id,
        data.amount,
        currency=data.currency,
        description=data.description,
        receipt=data.receipt,
    )
    return _with_total(task)


@router.delete("/{task_id}/costs/{cost_id}", response_model=TaskResponse, summary="Remove cost")
async def remove_cost(
    task_id: str,
    cost_id: str,
    service: TaskService = Depends(get_task_service),
) -> dict:
    return _with_total(await service.remove_cost(task_id, cost_id))


@router.get("/{task_id}/share", response_model=ShareResponse, summary="WhatsApp share links")
async def share_task(
    task_id: str,
    phone: Optional[str] = Query(default=None, max_length=32),
    mobile: bool = Query(default=False),
    ctx: OrgContext = Depends(get_org_context),
    service: TaskService = Depends(get_task_service),
    share: ShareService = Depends(get_share_service),
) -> ShareResponse:
    task = await service.get_task(task_id)
    asset = None
    if task.get("assetId"):
        asset = await ctx.store.get(RecordKind.ASSETS, task["assetId"])
    message = share.format_task_message(task, asset)
    return ShareResponse(
        message=message,
        share_url=share.whatsapp_url(message, phone=phone, mobile=mobile),
        deep_link=share.deep_link("task", task_id),
        qr_code_url=share.qr_code_url(message),
    )
