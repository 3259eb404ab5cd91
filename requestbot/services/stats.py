"""Read-only reporting over requests, tasks and users.

Both reports count requests created on or after a cutoff and are keyed by
the chat-platform user id, largest count first.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import distinct, func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from requestbot.content import render_stats_lines
from requestbot.database import store_errors
from requestbot.db_models import Request, Task, User
from requestbot.models import StatsResponse, UserStat
from requestbot.utils import as_utc


async def requests_created(session: AsyncSession, since: datetime) -> list[UserStat]:
    """Requests per creator."""
    count = func.count(Request.id)
    query = (
        select(User.external_id, count)
        .select_from(Request)
        .join(User, Request.created_by == User.id)
        .where(Request.created_at >= as_utc(since))
        .group_by(User.external_id)
        .order_by(count.desc(), User.external_id.asc())
    )
    with store_errors():
        result = await session.execute(query)
        return [UserStat(external_id=row[0], count=row[1]) for row in result.fetchall()]


async def requests_completed(session: AsyncSession, since: datetime) -> list[UserStat]:
    """Distinct requests per assignee with at least one completed task.

    A request with several tasks completed by the same person counts once.
    """
    count = func.count(distinct(Request.id))
    query = (
        select(User.external_id, count)
        .select_from(Request)
        .join(Task, Task.request_id == Request.id)
        .join(User, Task.assigned_to == User.id)
        .where(Request.created_at >= as_utc(since), Task.completed_at != None)  # noqa: E711
        .group_by(User.external_id)
        .order_by(count.desc(), User.external_id.asc())
    )
    with store_errors():
        result = await session.execute(query)
        return [UserStat(external_id=row[0], count=row[1]) for row in result.fetchall()]


async def build_report(session: AsyncSession, report: str, since: datetime) -> StatsResponse:
    if report == "created":
        rows = await requests_created(session, since)
    else:
        rows = await requests_completed(session, since)
    return StatsResponse(
        report=report,
        since=as_utc(since),
        rows=rows,
        lines=render_stats_lines(rows, report),
    )
