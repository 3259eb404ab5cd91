"""Test fixtures with in-memory SQLite via SQLModel."""

from __future__ import annotations

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlmodel import SQLModel

from requestbot.api.interactions import get_dispatcher
from requestbot.database import get_db_session
from requestbot.db_models import (  # noqa: F401  register tables
    Request,
    RequestSchedule,
    Task,
    User,
)
from requestbot.dispatcher import Dispatcher
from requestbot.main import app
from requestbot.rate_limit import limiter
from requestbot.services.users import resolve_user


async def _make_factory(url: str, **connect_args):
    engine = create_async_engine(url, echo=False, connect_args=connect_args)
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
    factory = sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)  # type: ignore[call-overload]
    return engine, factory


@pytest.fixture
async def db():
    engine, factory = await _make_factory("sqlite+aiosqlite://", check_same_thread=False)
    yield factory
    await engine.dispose()


@pytest.fixture
async def file_db(tmp_path):
    """File-backed database: every session gets its own connection."""
    engine, factory = await _make_factory(
        f"sqlite+aiosqlite:///{tmp_path / 'requestbot.db'}", timeout=30
    )
    yield factory
    await engine.dispose()


@pytest.fixture
def dispatcher(db):
    return Dispatcher(db)


@pytest.fixture
async def client(db, dispatcher):
    async def override_get_db_session():
        async with db() as session:
            yield session

    app.dependency_overrides[get_db_session] = override_get_db_session
    app.dependency_overrides[get_dispatcher] = lambda: dispatcher
    limiter.enabled = False

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()
    limiter.enabled = True


@pytest.fixture
async def users(db):
    """Two resolved users: a requester and a worker."""
    async with db() as session:
        alice = await resolve_user(session, "1001")
        bob = await resolve_user(session, "1002")
    return {"alice": alice, "bob": bob}


async def interact(client: AsyncClient, command: str, invoker: str = "1001", **args) -> dict:
    """Helper: post a command event, return the response payload."""
    resp = await client.post(
        "/v1/interactions",
        json={"command_name": command, "args": args, "invoker_external_id": invoker},
    )
    assert resp.status_code == 200, resp.text
    return resp.json()


def select_options(payload: dict, custom_id: str) -> list[dict]:
    for component in payload["components"]:
        if component["custom_id"] == custom_id:
            return component["options"]
    return []
