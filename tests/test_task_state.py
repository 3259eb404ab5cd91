from __future__ import annotations

from datetime import UTC, datetime

import pytest

from requestbot.db_models import Task
from requestbot.task_state import (
    OPEN,
    UNASSIGNED,
    Assigned,
    Completed,
    TaskSnapshot,
    TaskState,
)


def _row(**kwargs) -> Task:
    return Task(id="tk_1", request_id="rq_1", weight=1, description="sweep", **kwargs)


def test_open_unassigned_row():
    snap = TaskSnapshot.from_row(_row())
    assert snap.assignment == UNASSIGNED
    assert snap.completion == OPEN
    assert snap.state == TaskState.open_unassigned
    assert snap.assignee_id is None
    assert snap.completed_at is None


def test_naive_timestamps_are_read_as_utc():
    started = datetime(2024, 6, 18, 12, 0)
    snap = TaskSnapshot.from_row(_row(assigned_to="us_a", started_at=started))
    assert snap.state == TaskState.open_assigned
    assert snap.assignment == Assigned("us_a", started.replace(tzinfo=UTC))


def test_completed_row():
    done = datetime(2024, 6, 18, 13, 0, tzinfo=UTC)
    snap = TaskSnapshot.from_row(_row(assigned_to="us_a", completed_at=done))
    assert snap.state == TaskState.completed
    assert snap.completion == Completed(done)
    assert snap.completed_at == done


def test_completed_without_assignee_is_unrepresentable():
    with pytest.raises(ValueError, match="no assignee"):
        TaskSnapshot(
            task_id="tk_1",
            request_id="rq_1",
            weight=1,
            description="sweep",
            assignment=UNASSIGNED,
            completion=Completed(datetime.now(UTC)),
        )
