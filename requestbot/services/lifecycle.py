"""Request/task lifecycle engine.

Every operation runs in a single transaction through ``atomic``: it either
commits all of its changes or leaves the store untouched. Transitions on one
task are single conditional UPDATE statements, so two concurrent commands
against the same task serialize in the database and the precondition is
checked in the same statement that applies the effect.
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime

from sqlalchemy.ext.asyncio import AsyncSession

from requestbot.content import render_request
from requestbot.database import atomic, store_errors
from requestbot.db_models import Request, Task
from requestbot.errors import (
    RequestNotFound,
    TaskAlreadyAssigned,
    TaskAlreadyCompleted,
    TaskUnassigned,
)
from requestbot.models import RenderedRequest
from requestbot.services import requests as request_store
from requestbot.services import tasks as task_store
from requestbot.services.users import external_ids
from requestbot.task_state import Assigned, Completed, TaskSnapshot, Unassigned
from requestbot.utils import as_utc

logger = logging.getLogger("requestbot.lifecycle")


def _now() -> datetime:
    return datetime.now(UTC)


# ---------------------------------------------------------------------------
# Requests
# ---------------------------------------------------------------------------


async def create_request(
    session: AsyncSession,
    creator_id: str,
    title: str,
    tasks: list[str] | None = None,
    channel_id: str | None = None,
    thumbnail_url: str | None = None,
    created_by_schedule: str | None = None,
) -> Request:
    """Create a request together with its initial tasks (weights 1..N)."""
    async with atomic(session):
        request = request_store.add_request(
            session,
            creator_id,
            title,
            channel_id=channel_id,
            thumbnail_url=thumbnail_url,
            created_by_schedule=created_by_schedule,
        )
        # Flush so the request row exists for the FK on tasks
        await session.flush()
        if tasks:
            task_store.add_tasks(session, request.id, tasks)

    logger.info(
        "Created request %s by %s with %d tasks", request.id, creator_id, len(tasks or [])
    )
    return request


async def repeat_request(
    session: AsyncSession,
    creator_id: str,
    source: Request,
    channel_id: str | None = None,
) -> Request:
    """Open a fresh copy of ``source`` (same title and tasks) for ``creator_id``."""
    with store_errors():
        source_tasks = await task_store.list_tasks(session, source.id)
    return await create_request(
        session,
        creator_id,
        source.title,
        tasks=[t.description for t in source_tasks],
        channel_id=channel_id or source.channel_id,
        thumbnail_url=source.thumbnail_url,
    )


async def attach_message(
    session: AsyncSession, rid: str, channel_id: str, message_id: str
) -> Request:
    """Record where the gateway posted the rendered request."""
    async with atomic(session):
        request = await request_store.get_request(session, rid)
        request.channel_id = channel_id
        request.message_id = message_id
        session.add(request)
    return request


# ---------------------------------------------------------------------------
# Tasks
# ---------------------------------------------------------------------------


async def create_task(session: AsyncSession, rid: str, description: str) -> TaskSnapshot:
    """Append an open, unassigned task to an existing request."""
    async with atomic(session):
        await request_store.get_request(session, rid)
        weight = await task_store.next_weight(session, rid)
        (task,) = task_store.add_tasks(session, rid, [description], first_weight=weight)

    logger.info("Added task %s to request %s", task.id, rid)
    return TaskSnapshot.from_row(task)


async def assign(session: AsyncSession, tid: str, assignee_id: str) -> TaskSnapshot:
    """Claim an open, unassigned task for ``assignee_id``.

    Assigning the current assignee again is a no-op. Any other assignee
    already holding the task wins; use :func:`reassign` to take it over.
    """
    async with atomic(session):
        claimed = await task_store.assign_if_unassigned(session, tid, assignee_id, _now())
        snap = TaskSnapshot.from_row(await task_store.get_task(session, tid))
        if not claimed:
            if isinstance(snap.completion, Completed):
                raise TaskAlreadyCompleted(f"task {tid} is already completed")
            if snap.assignee_id != assignee_id:
                raise TaskAlreadyAssigned(
                    f"task {tid} is already claimed", assignee_id=snap.assignee_id
                )

    if claimed:
        logger.info("Task %s assigned to %s", tid, assignee_id)
    return snap


async def complete(session: AsyncSession, tid: str) -> TaskSnapshot:
    """Mark an assigned task as completed.

    ``completed_at`` never precedes the owning request's ``created_at``.
    """
    async with atomic(session):
        task = await task_store.get_task(session, tid)
        request = await session.get(Request, task.request_id)
        if request is None:
            raise RequestNotFound(f"request {task.request_id} not found")
        at = max(_now(), as_utc(request.created_at))

        done = await task_store.complete_if_assigned(session, tid, at)
        snap = TaskSnapshot.from_row(await task_store.get_task(session, tid))
        if not done:
            if isinstance(snap.completion, Completed):
                raise TaskAlreadyCompleted(f"task {tid} is already completed")
            if isinstance(snap.assignment, Unassigned):
                raise TaskUnassigned(f"task {tid} has not been claimed")

    logger.info("Task %s completed by %s", tid, snap.assignee_id)
    return snap


async def reassign(session: AsyncSession, tid: str, assignee_id: str) -> TaskSnapshot:
    """Hand a task to ``assignee_id``; a completed task stays completed."""
    async with atomic(session):
        await task_store.set_assignee(session, tid, assignee_id, _now())
        snap = TaskSnapshot.from_row(await task_store.get_task(session, tid))

    logger.info("Task %s reassigned to %s (%s)", tid, assignee_id, snap.state.value)
    return snap


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------


async def get_task(session: AsyncSession, tid: str) -> TaskSnapshot:
    with store_errors():
        return TaskSnapshot.from_row(await task_store.get_task(session, tid))


async def list_request_tasks(session: AsyncSession, rid: str) -> list[TaskSnapshot]:
    with store_errors():
        return [TaskSnapshot.from_row(t) for t in await task_store.list_tasks(session, rid)]


async def load_rendered(session: AsyncSession, rid: str) -> RenderedRequest:
    with store_errors():
        request = await request_store.get_request(session, rid)
        rows: list[Task] = await task_store.list_tasks(session, rid)
        snaps = [TaskSnapshot.from_row(t) for t in rows]
        uids = {request.created_by} | {
            s.assignment.user_id for s in snaps if isinstance(s.assignment, Assigned)
        }
        names = await external_ids(session, uids)
    return render_request(request, snaps, names)


async def list_unposted(session: AsyncSession, limit: int = 50) -> list[RenderedRequest]:
    with store_errors():
        requests = await request_store.list_unposted(session, limit)
    return [await load_rendered(session, r.id) for r in requests]
