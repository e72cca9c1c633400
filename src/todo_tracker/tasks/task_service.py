# src/todo_tracker/tasks/task_service.py

"""
Task service - owner-scoped task operations.

Each operation is one logical unit: load the task by (task_id, owner_id),
mutate it through TaskAggregate, persist it through TaskStore. A task that does
not exist and a task owned by someone else are reported the same way.
"""

from __future__ import annotations

import contextlib
import logging
import threading
import time
from collections.abc import Callable, Iterable, Iterator, Mapping
from datetime import datetime, timedelta
from typing import Any

from ..core.errors import NotFoundError, ValidationError
from .task_aggregate import (
    UNSET,
    TaskAggregate,
    parse_completed,
    parse_priority,
    validate_description,
    validate_title,
)
from .task_models import Task, TaskFilters, TaskPage, TaskStats, parse_timestamp
from .task_store import TaskStore

logger = logging.getLogger(__name__)


def _coerce_task_id(task_id: Any) -> int:
    # A malformed id cannot name any task.
    if isinstance(task_id, bool):
        raise NotFoundError("Task not found")
    try:
        return int(task_id)
    except (TypeError, ValueError):
        raise NotFoundError("Task not found") from None


class TaskService:
    """Service for task business logic on top of TaskStore."""

    def __init__(self, store: TaskStore, *, clock: Callable[[], float] = time.time) -> None:
        self.store = store
        self._clock = clock
        self._guard = threading.Lock()
        self._locks: dict[int, list[Any]] = {}  # task_id -> [lock, users]

    # ---- per-task serialization ----

    @contextlib.contextmanager
    def _locked(self, task_id: Any) -> Iterator[None]:
        task_id = _coerce_task_id(task_id)
        with self._guard:
            entry = self._locks.setdefault(task_id, [threading.Lock(), 0])
            entry[1] += 1
        try:
            with entry[0]:
                yield
        finally:
            with self._guard:
                entry[1] -= 1
                if entry[1] == 0:
                    self._locks.pop(task_id, None)

    def _load(self, task_id: int, owner_id: str) -> Task:
        task = self.store.get_for_owner(_coerce_task_id(task_id), owner_id)
        if task is None:
            raise NotFoundError("Task not found")
        return task

    def _persist(self, task: Task, *, reset_notification: bool = False) -> Task:
        # Completion rule is enforced on every save.
        TaskAggregate(task).recompute_completion()
        if not self.store.save(task, reset_notification=reset_notification):
            # Deleted between load and save.
            raise NotFoundError("Task not found")
        return task

    # ---- reads ----

    def get(self, task_id: int, owner_id: str) -> Task:
        return self._load(task_id, owner_id)

    def list_tasks(
        self, owner_id: str, filters: TaskFilters | Mapping[str, Any] | None = None
    ) -> TaskPage:
        if filters is None:
            filters = TaskFilters()
        elif not isinstance(filters, TaskFilters):
            filters = TaskFilters.from_query(filters)
        return self.store.find_by_owner_with_filters(owner_id, filters)

    def stats(self, owner_id: str) -> TaskStats:
        return self.store.aggregate_stats(owner_id, now_ts=self._clock())

    def due_today(self, owner_id: str) -> list[Task]:
        """Open tasks due between local midnight today and tomorrow."""
        now = datetime.fromtimestamp(self._clock()).astimezone()
        start = now.replace(hour=0, minute=0, second=0, microsecond=0)
        end = start + timedelta(days=1)
        return self.store.find_due_between_for_owner(owner_id, start.timestamp(), end.timestamp())

    # ---- task mutations ----

    def create(
        self,
        owner_id: str,
        *,
        title: str,
        description: str | None = None,
        priority: Any = None,
        due_date: Any = None,
        subtasks: Iterable[Mapping[str, Any]] | None = None,
    ) -> Task:
        if not owner_id:
            raise ValidationError("User ID is required", field="owner_id")

        due_ts = parse_timestamp(due_date, field_name="due_date")
        if due_ts is not None and due_ts < self._clock():
            raise ValidationError("Due date cannot be in the past", field="due_date")

        task = Task(
            id=0,
            owner_id=owner_id,
            title=validate_title(title),
            description=validate_description(description),
            is_completed=False,
            priority=parse_priority(priority),
            due_date=due_ts,
            notification_sent=False,
        )

        TaskAggregate(task).set_subtasks(subtasks or ())

        self.store.insert(task)
        logger.info("Task created id=%s owner=%s", task.id, owner_id)
        return task

    def update(
        self,
        task_id: int,
        owner_id: str,
        *,
        title: Any = UNSET,
        description: Any = UNSET,
        priority: Any = UNSET,
        due_date: Any = UNSET,
        is_completed: Any = UNSET,
    ) -> Task:
        """Partial update; arguments left out are not touched."""
        with self._locked(task_id):
            task = self._load(task_id, owner_id)

            if title is not UNSET:
                task.title = validate_title(title)
            if description is not UNSET:
                task.description = validate_description(description)
            if priority is not UNSET:
                task.priority = parse_priority(priority)
            if is_completed is not UNSET:
                task.is_completed = parse_completed(is_completed)

            reschedule = False
            if due_date is not UNSET:
                # No past-date check here; only creation is constrained.
                new_due = parse_timestamp(due_date, field_name="due_date")
                reschedule = new_due != task.due_date
                task.due_date = new_due

            self._persist(task, reset_notification=reschedule)
            if reschedule:
                logger.debug("Task %s rescheduled; reminder flag reset", task_id)
            return task

    def delete(self, task_id: int, owner_id: str) -> None:
        with self._locked(task_id):
            if not self.store.delete_for_owner(_coerce_task_id(task_id), owner_id):
                raise NotFoundError("Task not found")
        logger.info("Task deleted id=%s owner=%s", task_id, owner_id)

    def toggle_task_completion(self, task_id: int, owner_id: str) -> Task:
        with self._locked(task_id):
            task = self._load(task_id, owner_id)
            TaskAggregate(task).toggle_completion()
            return self._persist(task)

    # ---- subtask mutations ----

    def add_subtask(
        self, task_id: int, owner_id: str, title: str, is_completed: bool = False
    ) -> Task:
        with self._locked(task_id):
            task = self._load(task_id, owner_id)
            TaskAggregate(task).add_subtask(title, is_completed)
            return self._persist(task)

    def update_subtask(
        self,
        task_id: int,
        owner_id: str,
        subtask_id: str,
        *,
        title: Any = UNSET,
        is_completed: Any = UNSET,
    ) -> Task:
        with self._locked(task_id):
            task = self._load(task_id, owner_id)
            TaskAggregate(task).update_subtask(subtask_id, title=title, is_completed=is_completed)
            return self._persist(task)

    def remove_subtask(self, task_id: int, owner_id: str, subtask_id: str) -> Task:
        with self._locked(task_id):
            task = self._load(task_id, owner_id)
            TaskAggregate(task).remove_subtask(subtask_id)
            return self._persist(task)

    def toggle_subtask_completion(self, task_id: int, owner_id: str, subtask_id: str) -> Task:
        with self._locked(task_id):
            task = self._load(task_id, owner_id)
            TaskAggregate(task).toggle_subtask(subtask_id)
            return self._persist(task)
