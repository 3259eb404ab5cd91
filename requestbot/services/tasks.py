"""Task store: persistence helpers for the ``tasks`` table.

The conditional updates return the affected row count so the lifecycle
engine can tell a lost race from a successful transition. Nothing here
commits.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import func, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from requestbot.db_models import Task
from requestbot.errors import TaskNotFound
from requestbot.ids import task_id as make_task_id


def add_tasks(session: AsyncSession, rid: str, descriptions: list[str], first_weight: int = 1) -> list[Task]:
    tasks = [
        Task(id=make_task_id(), request_id=rid, weight=first_weight + i, description=desc)
        for i, desc in enumerate(descriptions)
    ]
    session.add_all(tasks)
    return tasks


async def get_task(session: AsyncSession, tid: str) -> Task:
    # populate_existing: the row may have been changed by a bulk UPDATE
    task = await session.get(Task, tid, populate_existing=True)
    if task is None:
        raise TaskNotFound(f"task {tid} not found")
    return task


async def list_tasks(session: AsyncSession, rid: str) -> list[Task]:
    result = await session.execute(
        select(Task)
        .where(Task.request_id == rid)
        .order_by(Task.weight.asc())
        .execution_options(populate_existing=True)
    )
    return list(result.scalars().all())


async def next_weight(session: AsyncSession, rid: str) -> int:
    result = await session.execute(select(func.max(Task.weight)).where(Task.request_id == rid))
    current = result.scalar_one_or_none()
    return (current or 0) + 1


async def assign_if_unassigned(session: AsyncSession, tid: str, assignee_id: str, now: datetime) -> int:
    result = await session.execute(
        update(Task)
        .where(
            Task.id == tid,
            Task.assigned_to == None,  # noqa: E711
            Task.completed_at == None,  # noqa: E711
        )
        .values(assigned_to=assignee_id, started_at=now)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount


async def complete_if_assigned(session: AsyncSession, tid: str, at: datetime) -> int:
    result = await session.execute(
        update(Task)
        .where(
            Task.id == tid,
            Task.assigned_to != None,  # noqa: E711
            Task.completed_at == None,  # noqa: E711
        )
        .values(completed_at=at)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount


async def set_assignee(session: AsyncSession, tid: str, assignee_id: str, now: datetime) -> int:
    """Overwrite the assignee; ``started_at`` is only filled in if it was empty."""
    result = await session.execute(
        update(Task)
        .where(Task.id == tid)
        .values(assigned_to=assignee_id, started_at=func.coalesce(Task.started_at, now))
        .execution_options(synchronize_session=False)
    )
    return result.rowcount
