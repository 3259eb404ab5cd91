"""Pydantic models for command events, typed commands and response payloads."""

from __future__ import annotations

from datetime import datetime
from typing import Annotated, Any, Literal

from pydantic import BaseModel, Field, TypeAdapter, ValidationError, model_validator

from requestbot.errors import InvalidCommand, UnknownCommand

# ---------------------------------------------------------------------------
# Gateway input
# ---------------------------------------------------------------------------


class CommandEvent(BaseModel):
    """A command already decoded by the chat gateway."""

    command_name: str = Field(min_length=1, max_length=100)
    args: dict[str, Any] = Field(default_factory=dict)
    invoker_external_id: str = Field(min_length=1, max_length=64)


# ---------------------------------------------------------------------------
# Typed commands
# ---------------------------------------------------------------------------


class SubmitRequest(BaseModel):
    kind: Literal["request"] = "request"
    title: str = Field(min_length=1, max_length=200, description="A summary of the request")
    tasks: str = Field(
        min_length=1,
        max_length=4000,
        description="One or more tasks to be completed, separated by `;`",
    )
    channel_id: str | None = Field(default=None, max_length=64)
    thumbnail_url: str | None = Field(default=None, max_length=2000)


class AddTask(BaseModel):
    kind: Literal["add-task"] = "add-task"
    request_id: str = Field(min_length=1, max_length=64)
    task: str = Field(min_length=1, max_length=500)


class ClaimTask(BaseModel):
    kind: Literal["claim-task"] = "claim-task"
    task_id: str = Field(min_length=1, max_length=64)


class CompleteTask(BaseModel):
    kind: Literal["complete-task"] = "complete-task"
    task_id: str = Field(min_length=1, max_length=64)


class ReassignTask(BaseModel):
    kind: Literal["reassign-task"] = "reassign-task"
    task_id: str = Field(min_length=1, max_length=64)
    assignee: str = Field(min_length=1, max_length=64, description="Chat-platform user id")


class RepeatRequest(BaseModel):
    kind: Literal["repeat-request"] = "repeat-request"
    request_id: str | None = Field(default=None, max_length=64)
    message_id: str | None = Field(default=None, max_length=64)
    channel_id: str | None = Field(default=None, max_length=64)

    @model_validator(mode="after")
    def _needs_reference(self) -> RepeatRequest:
        if not self.request_id and not self.message_id:
            raise ValueError("either request_id or message_id is required")
        return self


class ScheduleRequest(BaseModel):
    kind: Literal["schedule-request"] = "schedule-request"
    title: str = Field(min_length=1, max_length=200)
    tasks: str = Field(min_length=1, max_length=4000)
    every_seconds: int = Field(ge=1, le=366 * 24 * 3600)
    channel_id: str = Field(min_length=1, max_length=64)
    thumbnail_url: str | None = Field(default=None, max_length=2000)


class UnscheduleRequest(BaseModel):
    kind: Literal["unschedule-request"] = "unschedule-request"
    schedule_id: str = Field(min_length=1, max_length=64)


class StatsQuery(BaseModel):
    kind: Literal["stats"] = "stats"
    report: Literal["created", "completed"] = "completed"
    since: datetime | None = None


Command = Annotated[
    SubmitRequest
    | AddTask
    | ClaimTask
    | CompleteTask
    | ReassignTask
    | RepeatRequest
    | ScheduleRequest
    | UnscheduleRequest
    | StatsQuery,
    Field(discriminator="kind"),
]

_command_adapter: TypeAdapter[Command] = TypeAdapter(Command)

COMMAND_NAMES: frozenset[str] = frozenset(
    model.model_fields["kind"].default
    for model in (
        SubmitRequest,
        AddTask,
        ClaimTask,
        CompleteTask,
        ReassignTask,
        RepeatRequest,
        ScheduleRequest,
        UnscheduleRequest,
        StatsQuery,
    )
)


def decode_command(event: CommandEvent) -> Command:
    """Turn a loosely typed gateway event into one of the known commands."""
    if event.command_name not in COMMAND_NAMES:
        raise UnknownCommand(f"unknown command {event.command_name!r}")
    try:
        return _command_adapter.validate_python({**event.args, "kind": event.command_name})
    except ValidationError as exc:
        problems = "; ".join(
            f"{'.'.join(str(p) for p in err['loc'][1:]) or 'args'}: {err['msg']}"
            for err in exc.errors()
        )
        raise InvalidCommand(problems) from exc


# ---------------------------------------------------------------------------
# Response payloads
# ---------------------------------------------------------------------------


class SelectOption(BaseModel):
    value: str
    label: str


class Component(BaseModel):
    type: Literal["select", "button"]
    custom_id: str
    placeholder: str | None = None
    label: str | None = None
    options: list[SelectOption] = Field(default_factory=list)


class Embed(BaseModel):
    title: str
    description: str
    thumbnail_url: str | None = None


class ResponsePayload(BaseModel):
    content: str
    embeds: list[Embed] = Field(default_factory=list)
    components: list[Component] = Field(default_factory=list)
    ephemeral: bool = False

    @classmethod
    def notice(cls, content: str) -> ResponsePayload:
        """A message only the invoking user sees."""
        return cls(content=content, ephemeral=True)


class RenderedRequest(BaseModel):
    request_id: str
    channel_id: str | None = None
    message_id: str | None = None
    payload: ResponsePayload


# ---------------------------------------------------------------------------
# Reporting / API schemas
# ---------------------------------------------------------------------------


class UserStat(BaseModel):
    external_id: str
    count: int


class StatsResponse(BaseModel):
    report: Literal["created", "completed"]
    since: datetime
    rows: list[UserStat]
    lines: list[str]


class MessageLocation(BaseModel):
    channel_id: str = Field(min_length=1, max_length=64)
    message_id: str = Field(min_length=1, max_length=64)


class ErrorResponse(BaseModel):
    error: str
