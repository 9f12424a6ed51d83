"""
Query constraints for organization-scoped collections.

WHAT: (field, operator, value) predicates, ordering, and client-side text
search over documents returned by the org store.

WHY: Callers describe filters the same way regardless of whether a field
is an audit column (filtered in SQL) or lives inside the document map
(filtered after the scoped read). Free-text search is never pushed to the
database; it runs over the already-scoped result set.
"""

from dataclasses import dataclass
from datetime import date, datetime, timezone
from enum import Enum
from typing import Any, Iterable, List, Sequence

from assetdesk.core.exceptions import InvalidQueryError


class Operator(str, Enum):
    """Supported comparison operators."""

    EQ = "=="
    NE = "!="
    LT = "<"
    LE = "<="
    GT = ">"
    GE = ">="
    IN = "in"
    NOT_IN = "not-in"
    ARRAY_CONTAINS = "array-contains"
    ARRAY_CONTAINS_ANY = "array-contains-any"


LIST_OPERATORS = {Operator.IN, Operator.NOT_IN, Operator.ARRAY_CONTAINS_ANY}
RANGE_OPERATORS = {Operator.LT, Operator.LE, Operator.GT, Operator.GE}

_MISSING = object()


def normalize_value(value: Any) -> Any:
    """
    Normalize a stored or compared value.

    Aware datetimes become naive UTC, bare dates become midnight datetimes,
    enums become their values. Containers are walked recursively.
    """
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            return value.astimezone(timezone.utc).replace(tzinfo=None)
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, dict):
        return {k: normalize_value(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [normalize_value(v) for v in value]
    return value


@dataclass(frozen=True)
class Constraint:
    """A single ``field <op> value`` predicate. Dotted fields address nested maps."""

    field: str
    op: Operator
    value: Any

    def __post_init__(self):
        try:
            op = Operator(self.op)
        except ValueError:
            raise InvalidQueryError(
                message=f"Unsupported operator '{self.op}'",
                field=self.field,
            )
        if not self.field:
            raise InvalidQueryError(message="Constraint field is required")
        if op in LIST_OPERATORS and not isinstance(self.value, (list, tuple, set)):
            raise InvalidQueryError(
                message=f"Operator '{op.value}' requires a list value",
                field=self.field,
            )
        object.__setattr__(self, "op", op)
        object.__setattr__(self, "value", normalize_value(self.value))

    def matches(self, document: dict) -> bool:
        """Evaluate against a flattened document."""
        actual = get_field(document, self.field)
        if actual is _MISSING:
            return False

        op, expected = self.op, self.value
        if op is Operator.EQ:
            return actual == expected
        if op is Operator.NE:
            return actual is not None and actual != expected
        if op is Operator.IN:
            return actual in expected
        if op is Operator.NOT_IN:
            return actual is not None and actual not in expected
        if op is Operator.ARRAY_CONTAINS:
            return isinstance(actual, list) and expected in actual
        if op is Operator.ARRAY_CONTAINS_ANY:
            return isinstance(actual, list) and any(v in actual for v in expected)

        if actual is None or expected is None:
            return False
        try:
            if op is Operator.LT:
                return actual < expected
            if op is Operator.LE:
                return actual <= expected
            if op is Operator.GT:
                return actual > expected
            return actual >= expected
        except TypeError:
            # Mismatched types never match
            return False


@dataclass(frozen=True)
class OrderBy:
    """Sort key for query results."""

    field: str
    direction: str = "asc"

    def __post_init__(self):
        direction = (self.direction or "asc").lower()
        if direction not in ("asc", "desc"):
            raise InvalidQueryError(
                message=f"Invalid sort direction '{self.direction}'",
                field=self.field,
            )
        object.__setattr__(self, "direction", direction)

    @property
    def descending(self) -> bool:
        return self.direction == "desc"


def where(field: str, op: str, value: Any) -> Constraint:
    """Shorthand constructor: ``where("status", "in", ["PENDING"])``."""
    return Constraint(field, op, value)


def order_by(field: str, direction: str = "asc") -> OrderBy:
    """Shorthand constructor: ``order_by("createdAt", "desc")``."""
    return OrderBy(field, direction)


def get_field(document: dict, path: str) -> Any:
    """Read a dotted path from a document; returns a sentinel when absent."""
    current: Any = document
    for part in path.split("."):
        if not isinstance(current, dict) or part not in current:
            return _MISSING
        current = current[part]
    return current


def sort_documents(documents: List[dict], ordering: Sequence[OrderBy]) -> List[dict]:
    """
    Stable multi-key sort. Nulls and missing values sort first ascending.

    Raises:
        InvalidQueryError: If values of one field are not mutually comparable
    """
    result = list(documents)
    for key in reversed(list(ordering)):

        def sort_key(document, _field=key.field):
            value = get_field(document, _field)
            if value is _MISSING or value is None:
                return (0, 0)
            return (1, value)

        try:
            result.sort(key=sort_key, reverse=key.descending)
        except TypeError:
            raise InvalidQueryError(
                message=f"Cannot order by '{key.field}': mixed value types",
                field=key.field,
            )
    return result


def _text_values(value: Any) -> Iterable[str]:
    if isinstance(value, str):
        yield value
    elif isinstance(value, list):
        for item in value:
            yield from _text_values(item)


def _collect(value: Any, parts: List[str]) -> Iterable[Any]:
    """Walk a dotted path, fanning out over lists (``checklist.text``)."""
    if not parts:
        yield value
        return
    if isinstance(value, list):
        for item in value:
            yield from _collect(item, parts)
    elif isinstance(value, dict) and parts[0] in value:
        yield from _collect(value[parts[0]], parts[1:])


def text_search(documents: Iterable[dict], term: str | None, fields: Sequence[str]) -> List[dict]:
    """
    Case-insensitive substring search over selected text fields.

    Args:
        documents: Query results
        term: Search text; empty or None returns the input unchanged
        fields: Dotted field paths; list values are searched element-wise

    Returns:
        Documents where any field contains the term, in input order
    """
    documents = list(documents)
    needle = (term or "").strip().lower()
    if not needle:
        return documents

    matched = []
    for document in documents:
        for field in fields:
            hits = (
                text
                for value in _collect(document, field.split("."))
                for text in _text_values(value)
            )
            if any(needle in text.lower() for text in hits):
                matched.append(document)
                break
    return matched
