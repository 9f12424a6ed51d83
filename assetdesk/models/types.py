"""
Column types for document data.

WHAT: A JSON column that round-trips datetimes.

WHY: Task due dates, checklist completion times and quota reset dates live
inside the free-form ``data`` map. Plain JSON would turn them into strings
and break range queries and ordering on them.
"""

from datetime import datetime
from enum import Enum
from typing import Any

from sqlalchemy import JSON
from sqlalchemy.types import TypeDecorator

DATETIME_TAG = "$datetime"


def encode_document(value: Any) -> Any:
    """Replace datetimes with tagged ISO strings, recursively."""
    if isinstance(value, datetime):
        return {DATETIME_TAG: value.isoformat()}
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, dict):
        return {k: encode_document(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [encode_document(v) for v in value]
    return value


def decode_document(value: Any) -> Any:
    """Inverse of encode_document."""
    if isinstance(value, dict):
        if len(value) == 1 and DATETIME_TAG in value:
            return datetime.fromisoformat(value[DATETIME_TAG])
        return {k: decode_document(v) for k, v in value.items()}
    if isinstance(value, list):
        return [decode_document(v) for v in value]
    return value


class DocumentJSON(TypeDecorator):
    """JSON column whose values may contain datetimes."""

    impl = JSON
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        return encode_document(value)

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        return decode_document(value)
