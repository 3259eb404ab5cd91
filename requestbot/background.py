"""Background tasks: spawn requests from due schedules."""

from __future__ import annotations

import asyncio
import logging

from sqlalchemy.orm import sessionmaker

from requestbot.config import settings
from requestbot.services.schedules import spawn_scheduled_requests

logger = logging.getLogger("requestbot.background")


async def run_once(session_factory: sessionmaker) -> int:
    async with session_factory() as session:
        spawned = await spawn_scheduled_requests(session)
    if spawned:
        logger.info("BG: spawned=%d", len(spawned))
    return len(spawned)


async def background_loop(session_factory: sessionmaker) -> None:
    """Run background maintenance every ``schedule_poll_seconds``."""
    while True:
        try:
            await run_once(session_factory)
        except Exception:
            logger.exception("Background task error")
        await asyncio.sleep(settings.schedule_poll_seconds)
