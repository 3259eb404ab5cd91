"""Request store: persistence helpers for the ``requests`` table.

Nothing here commits; the lifecycle engine owns the transaction.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from requestbot.db_models import Request
from requestbot.errors import RequestNotFound
from requestbot.ids import request_id as make_request_id


def add_request(
    session: AsyncSession,
    created_by: str,
    title: str,
    channel_id: str | None = None,
    thumbnail_url: str | None = None,
    created_by_schedule: str | None = None,
) -> Request:
    request = Request(
        id=make_request_id(),
        created_by=created_by,
        title=title,
        channel_id=channel_id,
        thumbnail_url=thumbnail_url,
        created_by_schedule=created_by_schedule,
    )
    session.add(request)
    return request


async def get_request(session: AsyncSession, rid: str) -> Request:
    request = await session.get(Request, rid)
    if request is None:
        raise RequestNotFound(f"request {rid} not found")
    return request


async def find_by_message(session: AsyncSession, message_id: str) -> Request:
    result = await session.execute(select(Request).where(Request.message_id == message_id))
    request = result.scalar_one_or_none()
    if request is None:
        raise RequestNotFound(f"no request posted as message {message_id}")
    return request


async def list_unposted(session: AsyncSession, limit: int = 50) -> list[Request]:
    result = await session.execute(
        select(Request)
        .where(Request.message_id == None)  # noqa: E711
        .order_by(Request.created_at.asc())
        .limit(limit)
    )
    return list(result.scalars().all())


async def latest_by_schedule(session: AsyncSession, schedule_ids: list[str]) -> dict[str, datetime]:
    """Most recent ``created_at`` of the requests each schedule spawned."""
    if not schedule_ids:
        return {}
    result = await session.execute(
        select(Request.created_by_schedule, func.max(Request.created_at))
        .where(Request.created_by_schedule.in_(schedule_ids))
        .group_by(Request.created_by_schedule)
    )
    return {row[0]: row[1] for row in result.fetchall()}
