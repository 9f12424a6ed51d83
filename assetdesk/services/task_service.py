"""
Maintenance task service.

WHAT: Task CRUD with status transitions, checklists, costs and recurrence.

WHY: Tasks carry nested state (checklist items, cost entries, a recurrence
config) that must be stamped with the acting user and time as it changes.
Keeping that logic here means the org store only ever sees whole field
values, and every nested stamp uses the same clock and identity.

HOW: Works through a GuardedOrgStore; nested arrays are read, modified and
written back whole (last writer wins).
"""

import logging
import uuid
from datetime import datetime
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence

from assetdesk.core.config import settings
from assetdesk.core.exceptions import RecordNotFoundError, ValidationError
from assetdesk.dao.org_store import new_record_id
from assetdesk.dao.query import normalize_value, order_by, sort_documents, text_search, where
from assetdesk.models.base import utcnow
from assetdesk.models.record import RecordKind
from assetdesk.services import recurrence
from assetdesk.services.authorization import GuardedOrgStore

logger = logging.getLogger(__name__)


class TaskStatus(str, Enum):
    PENDING = "PENDING"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


class TaskPriority(str, Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    URGENT = "URGENT"


PRIORITY_RANK = {
    TaskPriority.LOW.value: 0,
    TaskPriority.MEDIUM.value: 1,
    TaskPriority.HIGH.value: 2,
    TaskPriority.URGENT.value: 3,
}

EDITABLE_FIELDS = ("title", "description", "priority", "assignedTo", "assetId", "dueDate")
SORTABLE_FIELDS = ("title", "priority", "dueDate", "createdAt", "status")
SEARCH_FIELDS = ("title", "description", "checklist.text")


def _short_id() -> str:
    return uuid.uuid4().hex[:12]


def checklist_from_texts(texts: Sequence[str]) -> List[Dict[str, Any]]:
    """Fresh, uncompleted checklist items; blank lines are dropped."""
    return [
        {"id": _short_id(), "text": text.strip(), "completed": False}
        for text in texts or []
        if text and text.strip()
    ]


def total_cost(task: Dict[str, Any]) -> Decimal:
    """Sum of all cost entries on a task."""
    return sum((Decimal(str(cost.get("amount") or 0)) for cost in task.get("costs") or []), Decimal("0"))


class TaskService:
    """
    Service for maintenance tasks.

    Args:
        store: Role-guarded store for the current organization
        default_currency: Currency for costs added without one
    """

    def __init__(self, store: GuardedOrgStore, default_currency: Optional[str] = None):
        self.store = store
        self.default_currency = (default_currency or settings.DEFAULT_CURRENCY).upper()

    @property
    def user_id(self) -> str:
        return self.store.acting_user_id

    async def get_task(self, task_id: str) -> Dict[str, Any]:
        task = await self.store.get(RecordKind.TASKS, task_id)
        if task is None:
            raise RecordNotFoundError(message="Task not found", task_id=task_id)
        return task

    async def _check_asset(self, asset_id: Optional[str]) -> None:
        if asset_id and await self.store.get(RecordKind.ASSETS, asset_id) is None:
            raise ValidationError(message="Unknown assetId", field="assetId", value=asset_id)

    @staticmethod
    def _validate_priority(priority: Any) -> str:
        try:
            return TaskPriority(priority).value
        except ValueError:
            raise ValidationError(message=f"Invalid priority '{priority}'", field="priority")

    async def create_task(self, data: Dict[str, Any]) -> Dict[str, Any]:
        """
        Create a PENDING task.

        Args:
            data: title, description, priority, assignedTo, assetId, dueDate,
                checklist (list of item texts), recurring (frequency,
                interval, endDate, maxOccurrences)
        """
        title = (data.get("title") or "").strip()
        if not title:
            raise ValidationError(message="Task title is required", field="title")
        await self._check_asset(data.get("assetId"))

        due_date = normalize_value(data.get("dueDate"))
        fields = {
            "title": title,
            "description": data.get("description") or "",
            "status": TaskStatus.PENDING.value,
            "priority": self._validate_priority(data.get("priority") or TaskPriority.MEDIUM),
            "assignedTo": data.get("assignedTo"),
            "assetId": data.get("assetId"),
            "checklist": checklist_from_texts(data.get("checklist") or []),
            "costs": [],
            "recurring": recurrence.build_config(data.get("recurring"), due_date),
            "dueDate": due_date,
            "completedAt": None,
            "completedBy": None,
            "completionNotes": None,
        }
        task = await self.store.create(RecordKind.TASKS, new_record_id(), fields)
        logger.info(f"Task {task['id']} created in {self.store.organization_id}")
        return task

    async def update_task(self, task_id: str, data: Dict[str, Any]) -> Dict[str, Any]:
        """
        Update editable fields.

        A ``checklist`` of texts replaces the checklist with fresh items. A
        ``recurring`` config is rebuilt from the (new or current) due date.
        """
        current = await self.get_task(task_id)
        fields = {key: value for key, value in data.items() if key in EDITABLE_FIELDS}

        if "title" in fields:
            fields["title"] = (fields["title"] or "").strip()
            if not fields["title"]:
                raise ValidationError(message="Task title cannot be empty", field="title")
        if "priority" in fields:
            fields["priority"] = self._validate_priority(fields["priority"])
        if "assetId" in fields:
            await self._check_asset(fields["assetId"])
        if "checklist" in data:
            fields["checklist"] = checklist_from_texts(data["checklist"] or [])
        if "recurring" in data:
            due_date = fields.get("dueDate", current.get("dueDate"))
            fields["recurring"] = recurrence.build_config(data["recurring"], due_date)

        return await self.store.update(RecordKind.TASKS, task_id, fields)

    async def delete_task(self, task_id: str) -> None:
        await self.get_task(task_id)
        await self.store.delete(RecordKind.TASKS, task_id)
        logger.info(f"Task {task_id} deleted from {self.store.organization_id}")

    async def update_status(
        self,
        task_id: str,
        status: str,
        completion_notes: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Change task status.

        COMPLETED stamps completedAt/completedBy (and notes when given) and,
        for a recurring task, advances its schedule. Any other status clears
        the completion fields to explicit nulls.
        """
        try:
            status = TaskStatus(status)
        except ValueError:
            raise ValidationError(message=f"Invalid status '{status}'", field="status")

        task = await self.get_task(task_id)
        fields: Dict[str, Any] = {"status": status.value}

        if status is TaskStatus.COMPLETED:
            fields["completedAt"] = utcnow()
            fields["completedBy"] = self.user_id
            if completion_notes:
                fields["completionNotes"] = completion_notes
            recurring = task.get("recurring")
            if recurring and task.get("status") != TaskStatus.COMPLETED.value:
                fields["recurring"] = recurrence.advance(recurring)
        else:
            fields["completedAt"] = None
            fields["completedBy"] = None
            fields["completionNotes"] = None

        updated = await self.store.update(RecordKind.TASKS, task_id, fields)
        logger.info(f"Task {task_id} status -> {status.value} by {self.user_id}")
        return updated

    async def update_checklist(self, task_id: str, items: Sequence[Dict[str, Any]]) -> Dict[str, Any]:
        """
        Replace the checklist, stamping items that became completed.

        Items without an id get one; items unchecked again lose their stamps.
        """
        await self.get_task(task_id)
        now = utcnow()
        checklist = []
        for item in items:
            text = (item.get("text") or "").strip()
            if not text:
                raise ValidationError(message="Checklist item text is required", field="checklist")
            completed = bool(item.get("completed"))
            entry = {
                "id": item.get("id") or _short_id(),
                "text": text,
                "completed": completed,
                "completedAt": None,
                "completedBy": None,
            }
            if completed:
                entry["completedAt"] = item.get("completedAt") or now
                entry["completedBy"] = item.get("completedBy") or self.user_id
            checklist.append(entry)

        return await self.store.update(RecordKind.TASKS, task_id, {"checklist": checklist})

    async def add_cost(
        self,
        task_id: str,
        amount: Any,
        currency: Optional[str] = None,
        description: Optional[str] = None,
        receipt: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Append a cost entry stamped with the acting user and time."""
        try:
            value = Decimal(str(amount))
        except (InvalidOperation, ValueError):
            raise ValidationError(message="Cost amount must be a number", field="amount")
        if not value.is_finite() or value < 0:
            raise ValidationError(message="Cost amount must be zero or positive", field="amount")

        task = await self.get_task(task_id)
        cost = {
            "id": _short_id(),
            "amount": float(value),
            "currency": (currency or self.default_currency).upper(),
            "description": description,
            "receipt": receipt,
            "addedAt": utcnow(),
            "addedBy": self.user_id,
        }
        costs = list(task.get("costs") or []) + [cost]
        return await self.store.update(RecordKind.TASKS, task_id, {"costs": costs})

    async def remove_cost(self, task_id: str, cost_id: str) -> Dict[str, Any]:
        task = await self.get_task(task_id)
        costs = [cost for cost in task.get("costs") or [] if cost.get("id") != cost_id]
        return await self.store.update(RecordKind.TASKS, task_id, {"costs": costs})

    async def list_tasks(
        self,
        status: Optional[Sequence[str]] = None,
        priority: Optional[Sequence[str]] = None,
        assigned_to: Optional[Sequence[str]] = None,
        asset_ids: Optional[Sequence[str]] = None,
        due_before: Optional[datetime] = None,
        due_after: Optional[datetime] = None,
        search: Optional[str] = None,
        sort_field: str = "createdAt",
        sort_direction: str = "desc",
    ) -> List[Dict[str, Any]]:
        """
        List tasks matching every given filter.

        Priority sorts by urgency (LOW < MEDIUM < HIGH < URGENT), not by name.
        """
        if sort_field not in SORTABLE_FIELDS:
            raise ValidationError(message=f"Cannot sort tasks by '{sort_field}'", field=sort_field)

        constraints = []
        if status:
            constraints.append(where("status", "in", list(status)))
        if priority:
            constraints.append(where("priority", "in", list(priority)))
        if assigned_to:
            constraints.append(where("assignedTo", "in", list(assigned_to)))
        if asset_ids:
            constraints.append(where("assetId", "in", list(asset_ids)))
        if due_before:
            constraints.append(where("dueDate", "<=", due_before))
        if due_after:
            constraints.append(where("dueDate", ">=", due_after))

        if sort_field == "priority":
            tasks = await self.store.query(RecordKind.TASKS, constraints)
            ranked = [dict(task, _rank=PRIORITY_RANK.get(task.get("priority"))) for task in tasks]
            ranked = sort_documents(ranked, [order_by("_rank", sort_direction)])
            tasks = [{k: v for k, v in task.items() if k != "_rank"} for task in ranked]
        else:
            tasks = await self.store.query(
                RecordKind.TASKS,
                constraints,
                order_by=[order_by(sort_field, sort_direction)],
            )
        return text_search(tasks, search, SEARCH_FIELDS)
