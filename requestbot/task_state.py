"""Task state as explicit variants instead of nullable columns.

The ``tasks`` table stores ``assigned_to`` and ``completed_at`` as nullable
columns; everything above the store works with :class:`TaskSnapshot`, where
a completed task without an assignee cannot be constructed.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from datetime import datetime

from requestbot.db_models import Task
from requestbot.utils import as_utc


class TaskState(str, enum.Enum):
    open_unassigned = "open_unassigned"
    open_assigned = "open_assigned"
    completed = "completed"


@dataclass(frozen=True)
class Unassigned:
    pass


@dataclass(frozen=True)
class Assigned:
    user_id: str
    since: datetime | None = None


@dataclass(frozen=True)
class Open:
    pass


@dataclass(frozen=True)
class Completed:
    at: datetime


Assignment = Unassigned | Assigned
Completion = Open | Completed

UNASSIGNED = Unassigned()
OPEN = Open()


@dataclass(frozen=True)
class TaskSnapshot:
    task_id: str
    request_id: str
    weight: int
    description: str
    assignment: Assignment
    completion: Completion

    def __post_init__(self) -> None:
        if isinstance(self.completion, Completed) and isinstance(self.assignment, Unassigned):
            raise ValueError(f"Task {self.task_id} is completed but has no assignee")

    @classmethod
    def from_row(cls, task: Task) -> TaskSnapshot:
        assignment: Assignment = UNASSIGNED
        if task.assigned_to is not None:
            since = as_utc(task.started_at) if task.started_at else None
            assignment = Assigned(task.assigned_to, since)
        completion: Completion = OPEN
        if task.completed_at is not None:
            completion = Completed(as_utc(task.completed_at))
        return cls(
            task_id=task.id,
            request_id=task.request_id,
            weight=task.weight,
            description=task.description,
            assignment=assignment,
            completion=completion,
        )

    @property
    def state(self) -> TaskState:
        if isinstance(self.completion, Completed):
            return TaskState.completed
        if isinstance(self.assignment, Assigned):
            return TaskState.open_assigned
        return TaskState.open_unassigned

    @property
    def assignee_id(self) -> str | None:
        if isinstance(self.assignment, Assigned):
            return self.assignment.user_id
        return None

    @property
    def completed_at(self) -> datetime | None:
        if isinstance(self.completion, Completed):
            return self.completion.at
        return None
