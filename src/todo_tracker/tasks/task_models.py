# src/todo_tracker/tasks/task_models.py

from __future__ import annotations

import math
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import StrEnum
from typing import Any

from ..core.errors import ValidationError

TITLE_MAX_LEN = 200
DESCRIPTION_MAX_LEN = 1000
SEARCH_MAX_LEN = 100
PAGE_LIMIT_MAX = 100
DEFAULT_PAGE_LIMIT = 10


class Priority(StrEnum):
    """
    Task priority.

    The stored value is the display text. Sorting by priority orders on this
    text directly (High < Low < Medium), not on severity.
    """

    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"

    @classmethod
    def from_db(cls, raw: str | None) -> Priority:
        if not raw:
            return cls.LOW
        try:
            return cls(raw)
        except ValueError:
            return cls.LOW


class SortField(StrEnum):
    DUE_DATE = "due_date"
    PRIORITY = "priority"
    CREATED_AT = "created_at"


class SortOrder(StrEnum):
    ASC = "asc"
    DESC = "desc"


@dataclass(slots=True)
class Subtask:
    id: str
    title: str
    is_completed: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "title": self.title, "is_completed": self.is_completed}


@dataclass(slots=True)
class Task:
    id: int
    owner_id: str
    title: str
    description: str
    is_completed: bool
    priority: Priority
    due_date: float | None
    subtasks: list[Subtask] = field(default_factory=list)
    notification_sent: bool = False
    created_at: float = 0.0
    updated_at: float = 0.0

    @property
    def completed_subtasks_count(self) -> int:
        return sum(1 for s in self.subtasks if s.is_completed)

    @property
    def total_subtasks_count(self) -> int:
        return len(self.subtasks)

    def to_dict(self) -> dict[str, Any]:
        """JSON object representation with nested subtasks."""
        return {
            "id": self.id,
            "owner_id": self.owner_id,
            "title": self.title,
            "description": self.description,
            "is_completed": self.is_completed,
            "priority": self.priority.value,
            "due_date": self.due_date,
            "subtasks": [s.to_dict() for s in self.subtasks],
            "notification_sent": self.notification_sent,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }


@dataclass(frozen=True, slots=True)
class DueTask:
    """A task joined with its owner's email (None when the owner is unknown)."""

    task: Task
    owner_email: str | None


@dataclass(frozen=True, slots=True)
class TaskStats:
    total: int = 0
    completed: int = 0
    pending: int = 0
    high_priority: int = 0
    overdue: int = 0


@dataclass(frozen=True, slots=True)
class TaskPage:
    tasks: list[Task]
    current_page: int
    total_pages: int
    total_tasks: int

    @property
    def has_next_page(self) -> bool:
        return self.current_page < self.total_pages

    @property
    def has_prev_page(self) -> bool:
        return self.current_page > 1

    @classmethod
    def build(cls, tasks: list[Task], *, page: int, limit: int, total: int) -> TaskPage:
        return cls(
            tasks=tasks,
            current_page=page,
            total_pages=math.ceil(total / limit) if total else 0,
            total_tasks=total,
        )


def parse_timestamp(value: Any, *, field_name: str) -> float | None:
    """
    Accept epoch seconds, a datetime or an ISO 8601 string.
    Naive datetimes are read as UTC.
    """
    if value is None or value == "":
        return None
    if isinstance(value, bool):
        raise ValidationError(f"{field_name} must be a valid date", field=field_name)
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        try:
            value = datetime.fromisoformat(value.strip())
        except ValueError:
            raise ValidationError(f"{field_name} must be a valid date", field=field_name) from None
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value.timestamp()
    raise ValidationError(f"{field_name} must be a valid date", field=field_name)


def parse_bool(value: Any, *, field_name: str) -> bool:
    if isinstance(value, bool):
        return value
    raw = str(value).strip().lower()
    if raw == "true":
        return True
    if raw == "false":
        return False
    raise ValidationError(f"{field_name} must be a boolean", field=field_name)


def _coerce_enum(enum_cls: type[Any], value: Any, field_name: str, message: str) -> Any:
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(value)
    except ValueError:
        raise ValidationError(message, field=field_name) from None


def _parse_int(value: Any, *, field_name: str) -> int:
    if isinstance(value, bool):
        raise ValidationError(f"{field_name} must be an integer", field=field_name)
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field_name} must be an integer", field=field_name) from None


@dataclass(frozen=True, slots=True)
class TaskFilters:
    """
    Closed set of listing filters.

    Fields left as None are not applied. sort_by=None means created_at.
    """

    priority: Priority | None = None
    is_completed: bool | None = None
    due_date_from: float | None = None
    due_date_to: float | None = None
    search: str | None = None
    sort_by: SortField | None = None
    sort_order: SortOrder = SortOrder.DESC
    page: int = 1
    limit: int = DEFAULT_PAGE_LIMIT

    KEYS = frozenset(
        {
            "page",
            "limit",
            "priority",
            "is_completed",
            "sort_by",
            "sort_order",
            "due_date_from",
            "due_date_to",
            "search",
        }
    )

    def __post_init__(self) -> None:
        # Frozen record: normalise enum fields in place.
        if self.priority is not None:
            object.__setattr__(
                self,
                "priority",
                _coerce_enum(Priority, self.priority, "priority", "Priority must be Low, Medium, or High"),
            )
        if self.sort_by is not None:
            object.__setattr__(
                self,
                "sort_by",
                _coerce_enum(
                    SortField, self.sort_by, "sort_by", "sort_by must be due_date, priority, or created_at"
                ),
            )
        object.__setattr__(
            self,
            "sort_order",
            _coerce_enum(SortOrder, self.sort_order, "sort_order", "sort_order must be asc or desc"),
        )
        if self.page < 1:
            raise ValidationError("Page must be a positive integer", field="page")
        if not 1 <= self.limit <= PAGE_LIMIT_MAX:
            raise ValidationError(f"Limit must be between 1 and {PAGE_LIMIT_MAX}", field="limit")
        if self.search is not None and not 1 <= len(self.search) <= SEARCH_MAX_LEN:
            raise ValidationError(
                f"Search query must be between 1 and {SEARCH_MAX_LEN} characters", field="search"
            )

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit

    @classmethod
    def from_query(cls, params: Mapping[str, Any]) -> TaskFilters:
        """
        Build filters from raw query parameters (strings as received over HTTP).

        Unknown keys are rejected; empty values count as "not provided".
        """
        unknown = sorted(set(params) - cls.KEYS)
        if unknown:
            raise ValidationError(f"Unknown filter parameter(s): {', '.join(unknown)}")

        values = {k: v for k, v in params.items() if v is not None and v != ""}
        kwargs: dict[str, Any] = {}

        if "page" in values:
            kwargs["page"] = _parse_int(values["page"], field_name="page")
        if "limit" in values:
            kwargs["limit"] = _parse_int(values["limit"], field_name="limit")

        for key in ("priority", "sort_by", "sort_order"):
            if key in values:
                kwargs[key] = values[key]

        if "is_completed" in values:
            kwargs["is_completed"] = parse_bool(values["is_completed"], field_name="is_completed")

        for key in ("due_date_from", "due_date_to"):
            if key in values:
                kwargs[key] = parse_timestamp(values[key], field_name=key)

        if "search" in values:
            kwargs["search"] = str(values["search"])

        return cls(**kwargs)
