"""Task list parsing and chat-message rendering for requests."""

from __future__ import annotations

import re

from requestbot.db_models import Request
from requestbot.errors import InvalidCommand
from requestbot.models import Component, Embed, RenderedRequest, ResponsePayload, SelectOption
from requestbot.task_state import Assigned, Completed, TaskSnapshot, TaskState
from requestbot.utils import unix_timestamp

# "{3x} fold towels" -> three copies of "fold towels"
_MULTIPLIER_RE = re.compile(r"^\{(\d+)x\}(.*)$", re.DOTALL)

# Chat platform limit on select menu options
MAX_SELECT_OPTIONS = 25
MAX_OPTION_LABEL = 100


def parse_tasks(raw: str, limit: int | None = None) -> list[str]:
    """Split a ``;``-separated task list, expanding ``{Nx}`` multipliers.

    With ``limit`` set, a list that would grow past it raises
    ``InvalidCommand`` before the oversized item is expanded.
    """
    tasks: list[str] = []
    for item in raw.split(";"):
        item = item.strip()
        if not item:
            continue
        count = 1
        match = _MULTIPLIER_RE.match(item)
        if match:
            count = int(match.group(1))
            item = match.group(2).strip()
        if not item:
            continue
        if limit is not None and len(tasks) + count > limit:
            raise InvalidCommand(f"tasks: at most {limit} tasks allowed")
        tasks.extend([item] * count)
    return tasks


def mention(external_id: str) -> str:
    return f"<@{external_id}>"


def _task_line(snap: TaskSnapshot, external_ids: dict[str, str]) -> str:
    strike = "~~" if snap.state == TaskState.completed else ""
    line = f"{snap.weight}. {strike}{snap.description}{strike}"

    moment = None
    if isinstance(snap.completion, Completed):
        moment = ("completed", snap.completion.at)
    elif isinstance(snap.assignment, Assigned) and snap.assignment.since is not None:
        moment = ("claimed", snap.assignment.since)

    if moment:
        verb, at = moment
        ts = unix_timestamp(at)
        line += f", {verb} at <t:{ts}> (<t:{ts}:R>)"
        assignee = external_ids.get(snap.assignee_id or "")
        if assignee:
            line += f" by {mention(assignee)}"
    return line


def _select(custom_id: str, placeholder: str, snaps: list[TaskSnapshot]) -> Component:
    options = [
        SelectOption(
            value=s.task_id,
            label=f"{s.weight}. {s.description}"[:MAX_OPTION_LABEL],
        )
        for s in snaps[:MAX_SELECT_OPTIONS]
    ]
    return Component(type="select", custom_id=custom_id, placeholder=placeholder, options=options)


def render_request(
    request: Request,
    snaps: list[TaskSnapshot],
    external_ids: dict[str, str],
) -> RenderedRequest:
    """Render a request and its tasks into a chat message payload.

    ``external_ids`` maps internal user ids (creator and assignees) to
    chat-platform ids for mentions.
    """
    creator = external_ids.get(request.created_by, request.created_by)
    description = "\n".join(_task_line(s, external_ids) for s in snaps)

    uncompleted = [s for s in snaps if s.state != TaskState.completed]
    unclaimed = [s for s in uncompleted if s.state == TaskState.open_unassigned]

    components: list[Component] = []
    if unclaimed:
        components.append(_select("claim-task", "Claim task", unclaimed))
    if uncompleted:
        components.append(_select("complete-task", "Mark task as completed", uncompleted))
    if not uncompleted and request.channel_id is not None:
        components.append(Component(type="button", custom_id="repeat-request", label="Repeat"))

    payload = ResponsePayload(
        content=f"Request by {mention(creator)}: {request.title}",
        embeds=[Embed(title="Tasks", description=description, thumbnail_url=request.thumbnail_url)],
        components=components,
    )
    return RenderedRequest(
        request_id=request.id,
        channel_id=request.channel_id,
        message_id=request.message_id,
        payload=payload,
    )


def render_stats_lines(rows, noun: str) -> list[str]:
    """``- <@id> - N requests created`` style leaderboard lines."""
    return [f"- {mention(row.external_id)} - {row.count} requests {noun}" for row in rows]
