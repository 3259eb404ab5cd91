"""Identity resolution: chat-platform user id -> internal user row."""

from __future__ import annotations

import logging

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from requestbot.config import settings
from requestbot.db_models import User
from requestbot.errors import Conflict, StoreUnavailable, UserNotFound
from requestbot.ids import user_id as make_user_id

logger = logging.getLogger("requestbot.users")


async def _find(session: AsyncSession, external_id: str) -> User | None:
    result = await session.execute(select(User).where(User.external_id == external_id))
    return result.scalar_one_or_none()


async def _insert(session: AsyncSession, external_id: str) -> User:
    user = User(id=make_user_id(), external_id=external_id)
    session.add(user)
    try:
        await session.commit()
    except IntegrityError as exc:
        await session.rollback()
        raise Conflict(f"user {external_id} created concurrently") from exc
    return user


async def resolve_user(session: AsyncSession, external_id: str) -> User:
    """Return the user for ``external_id``, creating it on first sight.

    The unique constraint on ``users.external_id`` decides concurrent
    first-sight races: the loser rolls back and looks the winner's row up.
    """
    if not external_id:
        raise ValueError("external_id must be non-empty")

    try:
        for _attempt in range(settings.resolve_attempts):
            user = await _find(session, external_id)
            if user is not None:
                return user
            try:
                user = await _insert(session, external_id)
            except Conflict:
                logger.info("Lost race creating user %s, retrying lookup", external_id)
                continue
            logger.info("Created user %s for external id %s", user.id, external_id)
            return user
    except SQLAlchemyError as exc:
        raise StoreUnavailable(str(exc)) from exc

    raise StoreUnavailable(
        f"could not resolve user {external_id} after {settings.resolve_attempts} attempts"
    )


async def get_user(session: AsyncSession, uid: str) -> User:
    user = await session.get(User, uid)
    if user is None:
        raise UserNotFound(f"user {uid} not found")
    return user


async def external_ids(session: AsyncSession, uids: set[str]) -> dict[str, str]:
    """Map internal user ids to chat-platform ids in one query."""
    if not uids:
        return {}
    result = await session.execute(select(User.id, User.external_id).where(User.id.in_(uids)))
    return {row[0]: row[1] for row in result.fetchall()}
