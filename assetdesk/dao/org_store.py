"""
Organization-scoped record store.

WHAT: Generic create/get/update/delete/query over the documents that live
under ``organizations/{organization_id}/{kind}/{record_id}``.

WHY: Every read and write of tenant data goes through one object bound to
one organization, so no calling code can address another tenant's rows:
the organization id is fixed at construction and added to every statement,
and it is never taken from caller-supplied fields. The same object stamps
the audit trail (creator, timestamps) on every write.

HOW:
- Entity fields are stored in ``NamespacedRecord.data``; audit fields are
  real columns and are stripped from caller input.
- "No value" (``UNSET`` or ``None``) is persisted as an explicit JSON null.
- ``update`` of a missing record raises RecordNotFoundError.
- ``updated_at`` is strictly increasing per record.
- Predicates on audit fields are applied in SQL; predicates on entity fields,
  ordering and limits are applied to the scoped result set.
- The store does not check roles. Wrap it in GuardedOrgStore for that.
"""

import logging
import uuid
from datetime import timedelta
from typing import Any, Dict, List, Mapping, Optional, Sequence

from sqlalchemy import select, delete
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from assetdesk.core.exceptions import (
    InvalidRecordKindError,
    RecordAlreadyExistsError,
    RecordNotFoundError,
    StorageWriteError,
    ValidationError,
)
from assetdesk.dao.query import Constraint, OrderBy, Operator, normalize_value, sort_documents
from assetdesk.models.base import utcnow
from assetdesk.models.record import NamespacedRecord, RecordKind, record_path

logger = logging.getLogger(__name__)


class _Unset:
    """Marker for a field the caller explicitly cleared."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "UNSET"

    def __bool__(self) -> bool:
        return False


UNSET = _Unset()

AUDIT_FIELDS = ("id", "organizationId", "createdBy", "createdAt", "updatedAt")

# Audit fields that map onto filterable columns
_AUDIT_COLUMNS = {
    "id": NamespacedRecord.record_id,
    "createdBy": NamespacedRecord.created_by,
    "createdAt": NamespacedRecord.created_at,
    "updatedAt": NamespacedRecord.updated_at,
}

_SQL_OPERATORS = {
    Operator.EQ: lambda col, v: col == v,
    Operator.NE: lambda col, v: col != v,
    Operator.LT: lambda col, v: col < v,
    Operator.LE: lambda col, v: col <= v,
    Operator.GT: lambda col, v: col > v,
    Operator.GE: lambda col, v: col >= v,
    Operator.IN: lambda col, v: col.in_(list(v)),
    Operator.NOT_IN: lambda col, v: col.not_in(list(v)),
}


def new_record_id() -> str:
    """Generate a record id for callers that do not choose their own."""
    return uuid.uuid4().hex


def _clean(value: Any) -> Any:
    if value is UNSET:
        return None
    if isinstance(value, Mapping):
        return {k: _clean(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_clean(v) for v in value]
    return normalize_value(value)


def normalize_fields(fields: Optional[Mapping[str, Any]]) -> Dict[str, Any]:
    """
    Prepare caller fields for persistence.

    - ``UNSET`` and ``None`` both become an explicit null (key kept).
    - Audit fields and ``id`` are dropped; the store owns them.
    - Datetimes become naive UTC, dates become midnight datetimes,
      enums become their values.
    """
    return {
        key: _clean(value)
        for key, value in (fields or {}).items()
        if key not in AUDIT_FIELDS
    }


def validate_kind(kind: Any) -> str:
    """Return the collection name for ``kind`` or raise InvalidRecordKindError."""
    try:
        return RecordKind(kind).value
    except ValueError:
        raise InvalidRecordKindError(
            message=f"Unknown record kind '{kind}'",
            kind=str(kind),
        )


def validate_record_id(record_id: Any) -> str:
    if not isinstance(record_id, str) or not record_id or "/" in record_id or len(record_id) > 128:
        raise ValidationError(
            message="Record id must be a non-empty string without '/'",
            record_id=str(record_id),
        )
    return record_id


class OrgScopedStore:
    """
    CRUD and query surface restricted to one organization's namespace.

    The organization and acting user are fixed for the lifetime of the
    instance. Membership is not re-validated here: the caller runs the
    membership check before constructing the store.
    """

    def __init__(self, session: AsyncSession, organization_id: str, acting_user_id: str):
        if not organization_id:
            raise ValidationError(message="organization_id is required")
        if not acting_user_id:
            raise ValidationError(message="acting_user_id is required")
        self._session = session
        self._organization_id = organization_id
        self._acting_user_id = acting_user_id

    @property
    def organization_id(self) -> str:
        return self._organization_id

    @property
    def acting_user_id(self) -> str:
        return self._acting_user_id

    def path(self, kind: str, record_id: Optional[str] = None) -> str:
        return record_path(self._organization_id, validate_kind(kind), record_id)

    async def _load(self, kind: str, record_id: str) -> Optional[NamespacedRecord]:
        result = await self._session.execute(
            select(NamespacedRecord).where(
                NamespacedRecord.organization_id == self._organization_id,
                NamespacedRecord.kind == kind,
                NamespacedRecord.record_id == record_id,
            )
        )
        return result.scalar_one_or_none()

    async def _flush(self, action: str, path: str) -> None:
        try:
            await self._session.flush()
        except SQLAlchemyError as e:
            logger.error(f"Failed to {action} {path}: {e}")
            raise StorageWriteError(
                message=f"Failed to {action} record",
                path=path,
            ) from e

    @staticmethod
    def _next_timestamp(previous):
        now = utcnow()
        if previous is not None and now <= previous:
            now = previous + timedelta(microseconds=1)
        return now

    async def create(self, kind: str, record_id: str, fields: Optional[Mapping[str, Any]] = None) -> dict:
        """
        Create a record in this organization.

        Args:
            kind: Collection name (see RecordKind)
            record_id: Caller-chosen id, unique within the collection
            fields: Entity fields; audit fields are ignored

        Returns:
            The stored record as a document

        Raises:
            InvalidRecordKindError: Unknown kind
            RecordAlreadyExistsError: A record already exists at the path
            StorageWriteError: The database rejected the write
        """
        kind = validate_kind(kind)
        record_id = validate_record_id(record_id)
        path = record_path(self._organization_id, kind, record_id)

        if await self._load(kind, record_id) is not None:
            raise RecordAlreadyExistsError(path=path)

        now = utcnow()
        record = NamespacedRecord(
            organization_id=self._organization_id,
            kind=kind,
            record_id=record_id,
            path=path,
            data=normalize_fields(fields),
            created_by=self._acting_user_id,
            created_at=now,
            updated_at=now,
        )
        self._session.add(record)
        await self._flush("create", path)

        logger.info(f"Created {path} by {self._acting_user_id}")
        return record.to_dict()

    async def update(self, kind: str, record_id: str, fields: Optional[Mapping[str, Any]] = None) -> dict:
        """
        Merge fields into an existing record and re-stamp ``updatedAt``.

        ``createdAt``, ``createdBy`` and ``organizationId`` are never changed.

        Raises:
            RecordNotFoundError: No record at the path
            StorageWriteError: The database rejected the write
        """
        kind = validate_kind(kind)
        record_id = validate_record_id(record_id)
        path = record_path(self._organization_id, kind, record_id)

        record = await self._load(kind, record_id)
        if record is None:
            raise RecordNotFoundError(message=f"Record not found: {kind}/{record_id}", path=path)

        data = dict(record.data or {})
        data.update(normalize_fields(fields))
        # A new dict marks the JSON column dirty
        record.data = data
        record.updated_at = self._next_timestamp(record.updated_at)
        await self._flush("update", path)

        logger.info(f"Updated {path} by {self._acting_user_id}")
        return record.to_dict()

    async def delete(self, kind: str, record_id: str) -> bool:
        """
        Physically remove a record. Idempotent.

        Returns:
            True if a record was removed, False if none existed
        """
        kind = validate_kind(kind)
        record_id = validate_record_id(record_id)
        path = record_path(self._organization_id, kind, record_id)

        try:
            result = await self._session.execute(
                delete(NamespacedRecord).where(
                    NamespacedRecord.organization_id == self._organization_id,
                    NamespacedRecord.kind == kind,
                    NamespacedRecord.record_id == record_id,
                )
            )
        except SQLAlchemyError as e:
            logger.error(f"Failed to delete {path}: {e}")
            raise StorageWriteError(message="Failed to delete record", path=path) from e

        deleted = result.rowcount > 0
        if deleted:
            logger.info(f"Deleted {path} by {self._acting_user_id}")
        return deleted

    async def get(self, kind: str, record_id: str) -> Optional[dict]:
        """Return the record as a document, or None when absent."""
        kind = validate_kind(kind)
        record_id = validate_record_id(record_id)
        record = await self._load(kind, record_id)
        return record.to_dict() if record is not None else None

    async def query(
        self,
        kind: str,
        constraints: Sequence[Constraint] = (),
        order_by: Sequence[OrderBy] = (),
        limit: Optional[int] = None,
    ) -> List[dict]:
        """
        Records of one kind in this organization matching every constraint.

        Args:
            kind: Collection name
            constraints: Predicates, all of which must hold
            order_by: Sort keys; without them records come back in creation order
            limit: Maximum number of records, applied after filtering and ordering

        Returns:
            A fresh list of documents; each call re-reads current state
        """
        kind = validate_kind(kind)
        constraints = list(constraints)

        stmt = select(NamespacedRecord).where(
            NamespacedRecord.organization_id == self._organization_id,
            NamespacedRecord.kind == kind,
        )
        for constraint in constraints:
            column = _AUDIT_COLUMNS.get(constraint.field)
            build = _SQL_OPERATORS.get(constraint.op)
            if column is not None and build is not None and constraint.value is not None:
                stmt = stmt.where(build(column, constraint.value))
        stmt = stmt.order_by(NamespacedRecord.created_at, NamespacedRecord.record_id)

        result = await self._session.execute(stmt)
        documents = [record.to_dict() for record in result.scalars().all()]
        documents = [d for d in documents if all(c.matches(d) for c in constraints)]

        if order_by:
            documents = sort_documents(documents, order_by)
        if limit is not None:
            documents = documents[: max(limit, 0)]
        return documents

    async def count(self, kind: str, constraints: Sequence[Constraint] = ()) -> int:
        return len(await self.query(kind, constraints))
