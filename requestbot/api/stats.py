"""Leaderboard reports."""

from datetime import datetime

from fastapi import APIRouter, Depends, Request

from requestbot.auth import GatewayAuth
from requestbot.config import settings
from requestbot.database import get_db_session
from requestbot.models import StatsResponse
from requestbot.rate_limit import limiter
from requestbot.services.stats import build_report

router = APIRouter(dependencies=[GatewayAuth])


@router.get("/v1/stats/created", response_model=StatsResponse)
@limiter.limit(settings.rate_limit_read)
async def stats_created(
    request: Request, since: datetime | None = None, session=Depends(get_db_session)
):
    """Requests created per user since the cutoff."""
    return await build_report(session, "created", since or settings.stats_cutoff)


@router.get("/v1/stats/completed", response_model=StatsResponse)
@limiter.limit(settings.rate_limit_read)
async def stats_completed(
    request: Request, since: datetime | None = None, session=Depends(get_db_session)
):
    """Distinct requests with a task completed per user since the cutoff."""
    return await build_report(session, "completed", since or settings.stats_cutoff)
