"""Command dispatcher: one decoded gateway event -> one lifecycle operation.

The handler table is built once per ``Dispatcher`` and never mutated. Each
``handle`` call opens its own session, so concurrent calls share nothing
but the session factory.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable, Mapping
from types import MappingProxyType
from typing import Any

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import sessionmaker

from requestbot.config import settings
from requestbot.content import parse_tasks
from requestbot.db_models import User
from requestbot.errors import (
    CommandError,
    InvalidCommand,
    NotFound,
    NotScheduleOwner,
    RequestBotError,
    RequestNotFound,
    ScheduleNotFound,
    StoreUnavailable,
    TaskAlreadyAssigned,
    TaskAlreadyCompleted,
    TaskNotFound,
    TaskUnassigned,
    UnknownCommand,
)
from requestbot.models import (
    AddTask,
    ClaimTask,
    CommandEvent,
    CompleteTask,
    ReassignTask,
    RepeatRequest,
    ResponsePayload,
    ScheduleRequest,
    StatsQuery,
    SubmitRequest,
    UnscheduleRequest,
    decode_command,
)
from requestbot.services import lifecycle, schedules
from requestbot.services import requests as request_store
from requestbot.services.stats import build_report
from requestbot.services.users import resolve_user

logger = logging.getLogger("requestbot.dispatcher")

Handler = Callable[[AsyncSession, User, Any], Awaitable[ResponsePayload]]

GENERIC_FAILURE = "Something went wrong on our side, nothing was changed. Please try again later."
SAVED_NOT_SHOWN = "Done. The updated request can't be shown right now."

_FAILURE_MESSAGES: dict[type[RequestBotError], str] = {
    UnknownCommand: "I don't know that command.",
    RequestNotFound: "That request no longer exists.",
    TaskNotFound: "That task no longer exists.",
    ScheduleNotFound: "That schedule does not exist.",
    TaskUnassigned: "That task has to be claimed before it can be completed.",
    TaskAlreadyCompleted: "That task has already been completed.",
    TaskAlreadyAssigned: "That task has already been claimed by someone else.",
    NotScheduleOwner: "Only the creator of a schedule can stop it.",
}


def failure_message(exc: RequestBotError) -> str:
    if isinstance(exc, StoreUnavailable):
        return GENERIC_FAILURE
    if isinstance(exc, InvalidCommand):
        return f"Invalid command: {exc.detail}"
    for kind in type(exc).__mro__:
        if kind in _FAILURE_MESSAGES:
            return _FAILURE_MESSAGES[kind]
    if isinstance(exc, NotFound):
        return "That no longer exists."
    return f"That can't be done right now: {exc.detail}"


class Dispatcher:
    def __init__(self, session_factory: sessionmaker) -> None:
        self._session_factory = session_factory
        self._handlers: Mapping[str, Handler] = MappingProxyType(
            {
                "request": self._submit_request,
                "add-task": self._add_task,
                "claim-task": self._claim_task,
                "complete-task": self._complete_task,
                "reassign-task": self._reassign_task,
                "repeat-request": self._repeat_request,
                "schedule-request": self._schedule_request,
                "unschedule-request": self._unschedule_request,
                "stats": self._stats,
            }
        )

    @property
    def handlers(self) -> Mapping[str, Handler]:
        return self._handlers

    async def handle(self, event: CommandEvent) -> ResponsePayload:
        try:
            command = decode_command(event)
        except CommandError as exc:
            logger.info("Rejected command %r: %s", event.command_name, exc.detail)
            return ResponsePayload.notice(failure_message(exc))

        handler = self._handlers[command.kind]
        async with self._session_factory() as session:
            try:
                invoker = await resolve_user(session, event.invoker_external_id)
                return await handler(session, invoker, command)
            except (StoreUnavailable, SQLAlchemyError):
                logger.exception("Store failure handling %r", command.kind)
                return ResponsePayload.notice(GENERIC_FAILURE)
            except RequestBotError as exc:
                logger.info(
                    "Command %r by %s failed: %s",
                    command.kind,
                    event.invoker_external_id,
                    exc.detail,
                )
                return ResponsePayload.notice(failure_message(exc))

    # -----------------------------------------------------------------------
    # Handlers
    # -----------------------------------------------------------------------

    async def _rendered(self, session: AsyncSession, rid: str) -> ResponsePayload:
        # The change is already committed at this point
        try:
            return (await lifecycle.load_rendered(session, rid)).payload
        except StoreUnavailable:
            logger.exception("Saved request %s but could not render it", rid)
            return ResponsePayload.notice(SAVED_NOT_SHOWN)

    async def _submit_request(
        self, session: AsyncSession, invoker: User, cmd: SubmitRequest
    ) -> ResponsePayload:
        tasks = parse_tasks(cmd.tasks, limit=settings.max_tasks_per_request)
        if not tasks:
            raise InvalidCommand("tasks: at least one task is required")
        request = await lifecycle.create_request(
            session,
            invoker.id,
            cmd.title,
            tasks=tasks,
            channel_id=cmd.channel_id,
            thumbnail_url=cmd.thumbnail_url,
        )
        return await self._rendered(session, request.id)

    async def _add_task(self, session: AsyncSession, invoker: User, cmd: AddTask) -> ResponsePayload:
        snap = await lifecycle.create_task(session, cmd.request_id, cmd.task)
        return await self._rendered(session, snap.request_id)

    async def _claim_task(
        self, session: AsyncSession, invoker: User, cmd: ClaimTask
    ) -> ResponsePayload:
        snap = await lifecycle.assign(session, cmd.task_id, invoker.id)
        return await self._rendered(session, snap.request_id)

    async def _complete_task(
        self, session: AsyncSession, invoker: User, cmd: CompleteTask
    ) -> ResponsePayload:
        snap = await lifecycle.complete(session, cmd.task_id)
        return await self._rendered(session, snap.request_id)

    async def _reassign_task(
        self, session: AsyncSession, invoker: User, cmd: ReassignTask
    ) -> ResponsePayload:
        assignee = await resolve_user(session, cmd.assignee)
        snap = await lifecycle.reassign(session, cmd.task_id, assignee.id)
        return await self._rendered(session, snap.request_id)

    async def _repeat_request(
        self, session: AsyncSession, invoker: User, cmd: RepeatRequest
    ) -> ResponsePayload:
        if cmd.request_id:
            source = await request_store.get_request(session, cmd.request_id)
        else:
            source = await request_store.find_by_message(session, cmd.message_id)
        request = await lifecycle.repeat_request(
            session, invoker.id, source, channel_id=cmd.channel_id
        )
        return await self._rendered(session, request.id)

    async def _schedule_request(
        self, session: AsyncSession, invoker: User, cmd: ScheduleRequest
    ) -> ResponsePayload:
        tasks = parse_tasks(cmd.tasks, limit=settings.max_tasks_per_request)
        if not tasks:
            raise InvalidCommand("tasks: at least one task is required")
        schedule = await schedules.create_schedule(
            session,
            invoker.id,
            cmd.title,
            tasks,
            cmd.every_seconds,
            cmd.channel_id,
            thumbnail_url=cmd.thumbnail_url,
        )
        return ResponsePayload.notice(
            f"Scheduled {cmd.title!r} every {cmd.every_seconds} seconds (id `{schedule.id}`)."
        )

    async def _unschedule_request(
        self, session: AsyncSession, invoker: User, cmd: UnscheduleRequest
    ) -> ResponsePayload:
        schedule = await schedules.disable_schedule(session, cmd.schedule_id, invoker.id)
        return ResponsePayload.notice(f"Schedule {schedule.title!r} has been stopped.")

    async def _stats(self, session: AsyncSession, invoker: User, cmd: StatsQuery) -> ResponsePayload:
        since = cmd.since or settings.stats_cutoff
        report = await build_report(session, cmd.report, since)
        if not report.lines:
            return ResponsePayload.notice(f"No requests {cmd.report} yet.")
        return ResponsePayload(content="\n".join(report.lines))
