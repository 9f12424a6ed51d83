"""
Data Access Object (DAO) package.

WHY: DAOs provide a clean separation between database operations and business logic,
making the codebase more testable and maintainable.
"""

from assetdesk.dao.base import BaseDAO
from assetdesk.dao.organization import OrganizationDAO, InvitationDAO
from assetdesk.dao.org_store import (
    OrgScopedStore,
    UNSET,
    AUDIT_FIELDS,
    new_record_id,
    normalize_fields,
)
from assetdesk.dao.query import Constraint, OrderBy, Operator, where, order_by, text_search

__all__ = [
    "BaseDAO",
    "OrganizationDAO",
    "InvitationDAO",
    "OrgScopedStore",
    "UNSET",
    "AUDIT_FIELDS",
    "new_record_id",
    "normalize_fields",
    "Constraint",
    "OrderBy",
    "Operator",
    "where",
    "order_by",
    "text_search",
]
