"""Command dispatcher: decoding, routing and failure rendering."""

from __future__ import annotations

import asyncio
from unittest.mock import patch

import pytest
from sqlalchemy import func
from sqlmodel import select

from requestbot.db_models import Request, RequestSchedule, Task
from requestbot.dispatcher import GENERIC_FAILURE, SAVED_NOT_SHOWN, Dispatcher
from requestbot.errors import StoreUnavailable
from requestbot.models import CommandEvent


def _event(command: str, invoker: str = "1001", **args) -> CommandEvent:
    return CommandEvent(command_name=command, args=args, invoker_external_id=invoker)


def _options(payload, custom_id: str) -> list[str]:
    for component in payload.components:
        if component.custom_id == custom_id:
            return [o.value for o in component.options]
    return []


async def _count(factory, model) -> int:
    async with factory() as session:
        result = await session.execute(select(func.count()).select_from(model))
        return result.scalar_one()


@pytest.mark.asyncio
async def test_handler_table_is_read_only(dispatcher):
    assert set(dispatcher.handlers) == {
        "request",
        "add-task",
        "claim-task",
        "complete-task",
        "reassign-task",
        "repeat-request",
        "schedule-request",
        "unschedule-request",
        "stats",
    }
    with pytest.raises(TypeError):
        dispatcher.handlers["evil"] = None  # type: ignore[index]


@pytest.mark.asyncio
async def test_submit_claim_complete_flow(dispatcher):
    payload = await dispatcher.handle(
        _event("request", title="Kitchen", tasks="wash up; {2x} dry", channel_id="555")
    )
    assert payload.content == "Request by <@1001>: Kitchen"
    assert payload.ephemeral is False
    claimable = _options(payload, "claim-task")
    assert len(claimable) == 3

    payload = await dispatcher.handle(_event("claim-task", invoker="1002", task_id=claimable[0]))
    assert "by <@1002>" in payload.embeds[0].description.splitlines()[0]
    assert claimable[0] not in _options(payload, "claim-task")

    payload = await dispatcher.handle(
        _event("complete-task", invoker="1002", task_id=claimable[0])
    )
    assert payload.embeds[0].description.startswith("1. ~~wash up~~, completed at")
    assert claimable[0] not in _options(payload, "complete-task")


@pytest.mark.asyncio
async def test_unknown_command_touches_nothing(db, dispatcher):
    payload = await dispatcher.handle(_event("launch-rockets"))
    assert payload.ephemeral is True
    assert payload.content == "I don't know that command."
    assert await _count(db, Request) == 0


@pytest.mark.asyncio
async def test_invalid_arguments_touch_nothing(db, dispatcher):
    payload = await dispatcher.handle(_event("request", title="Kitchen"))
    assert payload.ephemeral is True
    assert payload.content.startswith("Invalid command: tasks")
    assert await _count(db, Request) == 0


@pytest.mark.asyncio
async def test_request_without_real_tasks_is_rejected(db, dispatcher):
    payload = await dispatcher.handle(_event("request", title="Kitchen", tasks=" ; ;"))
    assert payload.content == "Invalid command: tasks: at least one task is required"
    assert await _count(db, Request) == 0


@pytest.mark.asyncio
async def test_complete_before_claim_reports_it(db, dispatcher):
    payload = await dispatcher.handle(_event("request", title="Kitchen", tasks="wash up"))
    (tid,) = _options(payload, "claim-task")

    payload = await dispatcher.handle(_event("complete-task", task_id=tid))
    assert payload.ephemeral is True
    assert payload.content == "That task has to be claimed before it can be completed."
    async with db() as session:
        task = await session.get(Task, tid)
    assert task.completed_at is None


@pytest.mark.asyncio
async def test_double_complete_reports_already_completed(dispatcher):
    payload = await dispatcher.handle(_event("request", title="Kitchen", tasks="wash up"))
    (tid,) = _options(payload, "claim-task")
    await dispatcher.handle(_event("claim-task", task_id=tid))
    await dispatcher.handle(_event("complete-task", task_id=tid))

    payload = await dispatcher.handle(_event("complete-task", task_id=tid))
    assert payload.content == "That task has already been completed."


@pytest.mark.asyncio
async def test_claim_taken_task_reports_conflict(dispatcher):
    payload = await dispatcher.handle(_event("request", title="Kitchen", tasks="wash up"))
    (tid,) = _options(payload, "claim-task")
    await dispatcher.handle(_event("claim-task", invoker="1002", task_id=tid))

    payload = await dispatcher.handle(_event("claim-task", invoker="1003", task_id=tid))
    assert payload.content == "That task has already been claimed by someone else."


@pytest.mark.asyncio
async def test_missing_task_reports_not_found(dispatcher):
    payload = await dispatcher.handle(_event("claim-task", task_id="tk_missing"))
    assert payload.content == "That task no longer exists."


@pytest.mark.asyncio
async def test_add_task_to_request(db, dispatcher):
    await dispatcher.handle(_event("request", title="Kitchen", tasks="wash up"))
    async with db() as session:
        request = (await session.execute(select(Request))).scalar_one()

    payload = await dispatcher.handle(_event("add-task", request_id=request.id, task="mop"))
    assert payload.embeds[0].description.splitlines()[-1] == "2. mop"


@pytest.mark.asyncio
async def test_reassign_resolves_new_assignee(dispatcher):
    payload = await dispatcher.handle(_event("request", title="Kitchen", tasks="wash up"))
    (tid,) = _options(payload, "claim-task")
    await dispatcher.handle(_event("claim-task", task_id=tid))
    await dispatcher.handle(_event("complete-task", task_id=tid))

    payload = await dispatcher.handle(_event("reassign-task", task_id=tid, assignee="2002"))
    line = payload.embeds[0].description
    assert line.startswith("1. ~~wash up~~, completed at")
    assert line.endswith("by <@2002>")


@pytest.mark.asyncio
async def test_repeat_by_message_id(db, dispatcher):
    payload = await dispatcher.handle(
        _event("request", title="Kitchen", tasks="wash up", channel_id="555")
    )
    (tid,) = _options(payload, "claim-task")
    await dispatcher.handle(_event("claim-task", task_id=tid))
    payload = await dispatcher.handle(_event("complete-task", task_id=tid))
    assert [c.custom_id for c in payload.components] == ["repeat-request"]

    async with db() as session:
        request = (await session.execute(select(Request))).scalar_one()
        request.message_id = "9001"
        session.add(request)
        await session.commit()

    payload = await dispatcher.handle(_event("repeat-request", invoker="1002", message_id="9001"))
    assert payload.content == "Request by <@1002>: Kitchen"
    assert len(_options(payload, "claim-task")) == 1
    assert await _count(db, Request) == 2


@pytest.mark.asyncio
async def test_repeat_requires_a_reference(dispatcher):
    payload = await dispatcher.handle(_event("repeat-request"))
    assert payload.content.startswith("Invalid command:")


@pytest.mark.asyncio
async def test_stats_command(dispatcher):
    payload = await dispatcher.handle(_event("stats", report="created"))
    assert payload.content == "No requests created yet."

    await dispatcher.handle(_event("request", title="Kitchen", tasks="wash up"))
    payload = await dispatcher.handle(
        _event("stats", report="created", since="2000-01-01T00:00:00Z")
    )
    assert payload.content == "- <@1001> - 1 requests created"


@pytest.mark.asyncio
async def test_store_failure_is_generic_and_safe(db, dispatcher):
    with patch(
        "requestbot.dispatcher.resolve_user",
        side_effect=StoreUnavailable("database is locked"),
    ):
        payload = await dispatcher.handle(_event("request", title="Kitchen", tasks="wash up"))
    assert payload.ephemeral is True
    assert payload.content == GENERIC_FAILURE
    assert await _count(db, Request) == 0


@pytest.mark.asyncio
async def test_concurrent_handles_keep_their_own_responses(file_db):
    dispatcher = Dispatcher(file_db)
    events = [_event("request", invoker=str(2000 + i), title=f"R{i}", tasks="a") for i in range(5)]

    payloads = await asyncio.gather(*[dispatcher.handle(e) for e in events])

    for i, payload in enumerate(payloads):
        assert payload.content == f"Request by <@{2000 + i}>: R{i}"


@pytest.mark.asyncio
@pytest.mark.parametrize("raw", ["{999999999999x}a", "{99999999999999999999x}a", "{101x}a"])
async def test_oversized_request_is_rejected_with_a_notice(db, dispatcher, raw):
    payload = await dispatcher.handle(_event("request", title="Kitchen", tasks=raw))
    assert payload.ephemeral is True
    assert payload.content == "Invalid command: tasks: at most 100 tasks allowed"
    assert await _count(db, Request) == 0


@pytest.mark.asyncio
@pytest.mark.parametrize("raw", ["{999999999999x}a", "{60x} a; {41x} b"])
async def test_oversized_schedule_is_rejected_with_a_notice(db, dispatcher, raw):
    payload = await dispatcher.handle(
        _event("schedule-request", title="Bins", tasks=raw, every_seconds=3600, channel_id="555")
    )
    assert payload.ephemeral is True
    assert payload.content == "Invalid command: tasks: at most 100 tasks allowed"
    assert await _count(db, RequestSchedule) == 0


@pytest.mark.asyncio
async def test_render_failure_after_commit_reports_success(db, dispatcher):
    with patch(
        "requestbot.services.lifecycle.load_rendered",
        side_effect=StoreUnavailable("database is locked"),
    ):
        payload = await dispatcher.handle(_event("request", title="Kitchen", tasks="wash up"))
    assert payload.ephemeral is True
    assert payload.content == SAVED_NOT_SHOWN
    assert await _count(db, Request) == 1
