"""Recurring request schedules."""

from __future__ import annotations

import json
import logging
from datetime import UTC, datetime, timedelta

from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from requestbot.config import settings
from requestbot.database import atomic, store_errors
from requestbot.db_models import Request, RequestSchedule
from requestbot.errors import InvalidCommand, NotScheduleOwner, ScheduleNotFound
from requestbot.ids import schedule_id as make_schedule_id
from requestbot.services import requests as request_store
from requestbot.services.lifecycle import create_request
from requestbot.utils import as_utc, safe_json_loads

logger = logging.getLogger("requestbot.schedules")


async def create_schedule(
    session: AsyncSession,
    creator_id: str,
    title: str,
    tasks: list[str],
    every_seconds: int,
    channel_id: str,
    thumbnail_url: str | None = None,
) -> RequestSchedule:
    if every_seconds < settings.min_schedule_seconds:
        raise InvalidCommand(
            f"every_seconds must be at least {settings.min_schedule_seconds}"
        )
    schedule = RequestSchedule(
        id=make_schedule_id(),
        created_by=creator_id,
        channel_id=channel_id,
        seconds_between_requests=every_seconds,
        title=title,
        tasks=json.dumps(tasks),
        thumbnail_url=thumbnail_url,
    )
    async with atomic(session):
        session.add(schedule)
    logger.info("Created schedule %s every %ds by %s", schedule.id, every_seconds, creator_id)
    return schedule


async def disable_schedule(session: AsyncSession, sid: str, user_id: str) -> RequestSchedule:
    """Stop a schedule. Only its creator may do this; disabling twice is a no-op."""
    async with atomic(session):
        schedule = await session.get(RequestSchedule, sid)
        if schedule is None:
            raise ScheduleNotFound(f"schedule {sid} not found")
        if schedule.created_by != user_id:
            raise NotScheduleOwner(f"schedule {sid} belongs to someone else")
        if schedule.disabled_at is None:
            schedule.disabled_at = datetime.now(UTC)
            session.add(schedule)
    logger.info("Disabled schedule %s", sid)
    return schedule


async def due_schedules(session: AsyncSession, now: datetime | None = None) -> list[RequestSchedule]:
    """Enabled schedules whose last spawned request is at least one interval old."""
    now = now or datetime.now(UTC)
    with store_errors():
        result = await session.execute(
            select(RequestSchedule).where(RequestSchedule.disabled_at == None)  # noqa: E711
        )
        schedules = list(result.scalars().all())
        latest = await request_store.latest_by_schedule(session, [s.id for s in schedules])

    due = []
    for schedule in schedules:
        last = latest.get(schedule.id)
        interval = timedelta(seconds=schedule.seconds_between_requests)
        if last is None or now - as_utc(last) >= interval:
            due.append(schedule)
    return due


async def spawn_scheduled_requests(session: AsyncSession, now: datetime | None = None) -> list[Request]:
    """Create one request for every due schedule."""
    spawned = []
    for schedule in await due_schedules(session, now):
        tasks = safe_json_loads(schedule.tasks) or []
        request = await create_request(
            session,
            schedule.created_by,
            schedule.title,
            tasks=[str(t) for t in tasks],
            channel_id=schedule.channel_id,
            thumbnail_url=schedule.thumbnail_url,
            created_by_schedule=schedule.id,
        )
        logger.info("Schedule %s spawned request %s", schedule.id, request.id)
        spawned.append(request)
    return spawned
