# src/todo_tracker/tasks/task_aggregate.py

from __future__ import annotations

"""
Task aggregate.

A Task together with its owned subtasks is one consistency boundary. All
subtask mutations go through TaskAggregate so the completion rule is applied
after every change:

- non-empty subtasks, all completed -> task completed
- anything else leaves task.is_completed as it is (never auto-uncomplete)
"""

import time
import uuid
from collections.abc import Iterable, Mapping
from typing import Any

from ..core.errors import NotFoundError, ValidationError
from .task_models import (
    DESCRIPTION_MAX_LEN,
    TITLE_MAX_LEN,
    Priority,
    Subtask,
    Task,
    parse_bool,
)

UNSET: Any = object()


def validate_title(title: Any, *, what: str = "Task") -> str:
    if not isinstance(title, str):
        raise ValidationError(f"{what} title is required", field="title")
    clean = title.strip()
    if not clean:
        raise ValidationError(f"{what} title is required", field="title")
    if len(clean) > TITLE_MAX_LEN:
        raise ValidationError(
            f"{what} title cannot exceed {TITLE_MAX_LEN} characters", field="title"
        )
    return clean


def validate_description(description: Any) -> str:
    if description is None:
        return ""
    if not isinstance(description, str):
        raise ValidationError("Task description must be a string", field="description")
    clean = description.strip()
    if len(clean) > DESCRIPTION_MAX_LEN:
        raise ValidationError(
            f"Task description cannot exceed {DESCRIPTION_MAX_LEN} characters",
            field="description",
        )
    return clean


def parse_priority(raw: Any) -> Priority:
    if raw is None:
        return Priority.LOW
    if isinstance(raw, Priority):
        return raw
    try:
        return Priority(raw)
    except ValueError:
        raise ValidationError("Priority must be Low, Medium, or High", field="priority") from None


def new_subtask_id() -> str:
    return uuid.uuid4().hex


def parse_completed(value: Any) -> bool:
    return parse_bool(value, field_name="is_completed")


def build_subtask(title: Any, is_completed: Any = False) -> Subtask:
    return Subtask(
        id=new_subtask_id(),
        title=validate_title(title, what="Subtask"),
        is_completed=False if is_completed is None else parse_completed(is_completed),
    )


def is_overdue(task: Task, now_ts: float | None = None) -> bool:
    """True iff the task has a due date in the past and is not completed."""
    if task.due_date is None or task.is_completed:
        return False
    if now_ts is None:
        now_ts = time.time()
    return task.due_date < now_ts


class TaskAggregate:
    """Mutation operations over a single loaded Task."""

    def __init__(self, task: Task) -> None:
        self.task = task

    def _find_subtask(self, subtask_id: str) -> Subtask:
        for sub in self.task.subtasks:
            if sub.id == subtask_id:
                return sub
        raise NotFoundError("Subtask not found")

    def set_subtasks(self, items: Iterable[Mapping[str, Any]]) -> list[Subtask]:
        """Replace all subtasks at once; completion is evaluated on the full list."""
        subs = []
        for item in items:
            if not isinstance(item, Mapping):
                raise ValidationError("Subtasks must be an array of objects", field="subtasks")
            subs.append(build_subtask(item.get("title"), item.get("is_completed", False)))
        self.task.subtasks = subs
        self.recompute_completion()
        return subs

    def add_subtask(self, title: str, is_completed: bool = False) -> Subtask:
        sub = build_subtask(title, is_completed)
        self.task.subtasks.append(sub)
        self.recompute_completion()
        return sub

    def update_subtask(
        self,
        subtask_id: str,
        *,
        title: str | Any = UNSET,
        is_completed: bool | Any = UNSET,
    ) -> Subtask:
        sub = self._find_subtask(subtask_id)
        if title is not UNSET:
            sub.title = validate_title(title, what="Subtask")
        if is_completed is not UNSET:
            sub.is_completed = parse_completed(is_completed)
        self.recompute_completion()
        return sub

    def toggle_subtask(self, subtask_id: str) -> Subtask:
        sub = self._find_subtask(subtask_id)
        sub.is_completed = not sub.is_completed
        self.recompute_completion()
        return sub

    def remove_subtask(self, subtask_id: str) -> Subtask:
        sub = self._find_subtask(subtask_id)
        self.task.subtasks.remove(sub)
        # Removing the last incomplete subtask may complete the task.
        self.recompute_completion()
        return sub

    def recompute_completion(self) -> bool:
        subs = self.task.subtasks
        if subs and all(s.is_completed for s in subs):
            self.task.is_completed = True
        return self.task.is_completed

    def toggle_completion(self) -> bool:
        # Does not cascade to subtasks.
        self.task.is_completed = not self.task.is_completed
        return self.task.is_completed

    def is_overdue(self, now_ts: float | None = None) -> bool:
        return is_overdue(self.task, now_ts)
