"""
Centralized role enforcement.

WHAT: A ``requires_role`` decorator and a role-guarded wrapper around
OrgScopedStore.

WHY: The store itself performs no role check. Rather than re-checking the
member's role at every call site, domain services receive a
GuardedOrgStore: reads are open to every member, writes require
FULL_ACCESS. A LIMITED_ACCESS member therefore cannot mutate data through
any service, whatever the calling code forgets to check.
"""

import functools
import logging
from typing import Any, Mapping, Optional, Sequence

from assetdesk.core.exceptions import InsufficientPermissionsError
from assetdesk.dao.org_store import OrgScopedStore
from assetdesk.dao.query import Constraint, OrderBy
from assetdesk.models.organization import Role

logger = logging.getLogger(__name__)


def ensure_role(role: Role, minimum: Role) -> None:
    """
    Raise unless ``role`` satisfies ``minimum``.

    Raises:
        InsufficientPermissionsError: Role is below the minimum
    """
    if not Role(role).allows(Role(minimum)):
        raise InsufficientPermissionsError(
            message=f"{Role(minimum).value} role required",
            role=Role(role).value,
        )


def requires_role(minimum: Role):
    """
    Decorator for async methods of objects exposing ``.role``.

    Example:
        class Thing:
            @requires_role(Role.FULL_ACCESS)
            async def delete(self, ...): ...
    """

    def decorator(func):
        @functools.wraps(func)
        async def wrapper(self, *args, **kwargs):
            try:
                ensure_role(self.role, minimum)
            except InsufficientPermissionsError:
                logger.info(
                    f"Denied {func.__name__} for {getattr(self, 'acting_user_id', '?')} "
                    f"with role {Role(self.role).value}"
                )
                raise
            return await func(self, *args, **kwargs)

        wrapper.required_role = minimum
        return wrapper

    return decorator


class GuardedOrgStore:
    """
    OrgScopedStore with per-operation role checks.

    Same surface as the wrapped store.
    """

    def __init__(self, store: OrgScopedStore, role: Role):
        self._store = store
        self._role = Role(role)

    @property
    def role(self) -> Role:
        return self._role

    @property
    def organization_id(self) -> str:
        return self._store.organization_id

    @property
    def acting_user_id(self) -> str:
        return self._store.acting_user_id

    @property
    def can_write(self) -> bool:
        return self._role.allows(Role.FULL_ACCESS)

    @requires_role(Role.FULL_ACCESS)
    async def create(self, kind: str, record_id: str, fields: Optional[Mapping[str, Any]] = None) -> dict:
        return await self._store.create(kind, record_id, fields)

    @requires_role(Role.FULL_ACCESS)
    async def update(self, kind: str, record_id: str, fields: Optional[Mapping[str, Any]] = None) -> dict:
        return await self._store.update(kind, record_id, fields)

    @requires_role(Role.FULL_ACCESS)
    async def delete(self, kind: str, record_id: str) -> bool:
        return await self._store.delete(kind, record_id)

    @requires_role(Role.LIMITED_ACCESS)
    async def get(self, kind: str, record_id: str) -> Optional[dict]:
        return await self._store.get(kind, record_id)

    @requires_role(Role.LIMITED_ACCESS)
    async def query(
        self,
        kind: str,
        constraints: Sequence[Constraint] = (),
        order_by: Sequence[OrderBy] = (),
        limit: Optional[int] = None,
    ) -> list:
        return await self._store.query(kind, constraints, order_by=order_by, limit=limit)

    @requires_role(Role.LIMITED_ACCESS)
    async def count(self, kind: str, constraints: Sequence[Constraint] = ()) -> int:
        return await self._store.count(kind, constraints)
