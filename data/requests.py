"""
Typed Request Structures

Request objects for table queries and remote procedure calls. Each one
validates itself before dispatch and renders the PostgREST query
parameters the gateway sends.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Tuple

from utils.exceptions import ValidationError

FILTER_OPERATORS = ("eq", "neq", "in", "ilike", "lt", "gt", "is", "not.is", "or")


def _render_value(value: Any) -> str:
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if hasattr(value, "value"):
        return str(value.value)
    return str(value)


@dataclass(frozen=True)
class Filter:
    """A single row filter, rendered as ``column=op.value``."""
    column: str
    op: str
    value: Any

    def __post_init__(self):
        if self.op not in FILTER_OPERATORS:
            raise ValidationError(f"Unsupported filter operator: {self.op}")
        if not self.column:
            raise ValidationError("Filter column is required")

    @classmethod
    def eq(cls, column: str, value: Any) -> "Filter":
        return cls(column, "eq", value)

    @classmethod
    def in_(cls, column: str, values: Sequence[Any]) -> "Filter":
        return cls(column, "in", tuple(values))

    @classmethod
    def ilike(cls, column: str, pattern: str) -> "Filter":
        return cls(column, "ilike", pattern)

    @classmethod
    def any_of(cls, expression: str) -> "Filter":
        """An ``or=(...)`` filter over a PostgREST boolean expression."""
        return cls("or", "or", expression)

    def to_param(self) -> Tuple[str, str]:
        if self.op == "or":
            return "or", f"({self.value})"
        if self.op == "in":
            items = ",".join(_render_value(v) for v in self.value)
            return self.column, f"in.({items})"
        return self.column, f"{self.op}.{_render_value(self.value)}"


@dataclass(frozen=True)
class Ordering:
    column: str
    ascending: bool = False

    def to_param(self) -> str:
        return f"{self.column}.{'asc' if self.ascending else 'desc'}"


@dataclass
class TableQuery:
    """
    A read against one table.

    ``range_start``/``range_end`` are inclusive on both ends, matching the
    backend's ``range(offset, offset + limit - 1)`` convention. ``limit``
    is used when no range is given.
    """
    table: str
    select: str = "*"
    filters: List[Filter] = field(default_factory=list)
    order: Optional[Ordering] = None
    range_start: Optional[int] = None
    range_end: Optional[int] = None
    limit: Optional[int] = None

    @classmethod
    def page(cls, table: str, offset: int, limit: int, **kwargs) -> "TableQuery":
        """Build a query for ``limit`` rows starting at ``offset``."""
        return cls(table=table, range_start=offset, range_end=offset + limit - 1, **kwargs)

    def validate(self) -> None:
        if not self.table:
            raise ValidationError("Table name is required")
        if (self.range_start is None) != (self.range_end is None):
            raise ValidationError("range_start and range_end must be given together")
        if self.range_start is not None:
            if self.range_start < 0:
                raise ValidationError(f"range_start must be non-negative, got {self.range_start}")
            if self.range_end < self.range_start:
                raise ValidationError(f"Empty range {self.range_start}..{self.range_end}")
        if self.limit is not None and self.limit <= 0:
            raise ValidationError(f"limit must be positive, got {self.limit}")

    def to_params(self) -> List[Tuple[str, str]]:
        self.validate()
        params = [("select", self.select)]
        params.extend(f.to_param() for f in self.filters)
        if self.order:
            params.append(("order", self.order.to_param()))
        if self.range_start is not None:
            params.append(("offset", str(self.range_start)))
            params.append(("limit", str(self.range_end - self.range_start + 1)))
        elif self.limit is not None:
            params.append(("limit", str(self.limit)))
        return params


def filter_params(filters: Sequence[Filter]) -> List[Tuple[str, str]]:
    """Render filters for a write (update/delete) that must target specific rows."""
    if not filters:
        raise ValidationError("Refusing an unfiltered write; at least one filter is required")
    return [f.to_param() for f in filters]


@dataclass(frozen=True)
class CuratedFeedRequest:
    limit: int
    offset: int

    def to_params(self) -> Dict[str, Any]:
        if self.limit <= 0:
            raise ValidationError(f"limit must be positive, got {self.limit}")
        if self.offset < 0:
            raise ValidationError(f"offset must be non-negative, got {self.offset}")
        return {"limit": self.limit, "offset": self.offset}


@dataclass(frozen=True)
class RecordViewRequest:
    post_id: str
    user_id: str

    def to_params(self) -> Dict[str, Any]:
        if not self.post_id or not self.user_id:
            raise ValidationError("post_id and user_id are required to record a view")
        return {"post_id": self.post_id, "user_id": self.user_id}
