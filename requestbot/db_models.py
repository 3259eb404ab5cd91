"""SQLModel table definitions for the request bot."""

from __future__ import annotations

from datetime import UTC, datetime

from sqlalchemy import Index
from sqlmodel import Field, SQLModel


def _utcnow() -> datetime:
    return datetime.now(UTC)


class User(SQLModel, table=True):
    __tablename__ = "users"

    id: str = Field(primary_key=True)
    external_id: str = Field(unique=True, index=True)  # chat-platform user id
    created_at: datetime = Field(default_factory=_utcnow)


class RequestSchedule(SQLModel, table=True):
    __tablename__ = "request_schedules"

    id: str = Field(primary_key=True)
    created_by: str = Field(foreign_key="users.id", index=True)
    created_at: datetime = Field(default_factory=_utcnow)
    disabled_at: datetime | None = Field(default=None, index=True)
    channel_id: str
    seconds_between_requests: int
    title: str
    tasks: str  # JSON-encoded list of task descriptions
    thumbnail_url: str | None = None


class Request(SQLModel, table=True):
    __tablename__ = "requests"
    __table_args__ = (Index("ix_requests_created_by_created_at", "created_by", "created_at"),)

    id: str = Field(primary_key=True)
    created_by: str = Field(foreign_key="users.id")
    created_at: datetime = Field(default_factory=_utcnow, index=True)
    title: str
    channel_id: str | None = None
    # Only known once the gateway has posted the rendered request
    message_id: str | None = Field(default=None, unique=True, index=True)
    thumbnail_url: str | None = None
    created_by_schedule: str | None = Field(
        default=None, foreign_key="request_schedules.id", index=True
    )


class Task(SQLModel, table=True):
    __tablename__ = "tasks"
    __table_args__ = (Index("ix_tasks_request_weight", "request_id", "weight"),)

    id: str = Field(primary_key=True)
    request_id: str = Field(foreign_key="requests.id")
    weight: int
    description: str
    assigned_to: str | None = Field(default=None, foreign_key="users.id", index=True)
    started_at: datetime | None = None
    completed_at: datetime | None = Field(default=None, index=True)
