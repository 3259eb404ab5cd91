"""Rendered requests, for the gateway to post and track."""

from fastapi import APIRouter, Depends, Query, Request

from requestbot.auth import GatewayAuth
from requestbot.config import settings
from requestbot.database import get_db_session
from requestbot.models import ErrorResponse, MessageLocation, RenderedRequest
from requestbot.rate_limit import limiter
from requestbot.services import lifecycle

router = APIRouter(dependencies=[GatewayAuth])


@router.get("/v1/requests/unposted", response_model=list[RenderedRequest])
@limiter.limit(settings.rate_limit_read)
async def unposted_requests(
    request: Request,
    limit: int = Query(50, ge=1, le=200),
    session=Depends(get_db_session),
):
    """Requests not yet posted to a channel, e.g. ones spawned by a schedule."""
    return await lifecycle.list_unposted(session, limit)


@router.get(
    "/v1/requests/{request_id}",
    response_model=RenderedRequest,
    responses={404: {"model": ErrorResponse}},
)
@limiter.limit(settings.rate_limit_read)
async def get_request(request: Request, request_id: str, session=Depends(get_db_session)):
    return await lifecycle.load_rendered(session, request_id)


@router.put(
    "/v1/requests/{request_id}/message",
    response_model=RenderedRequest,
    responses={404: {"model": ErrorResponse}},
)
@limiter.limit(settings.rate_limit_interactions)
async def record_message(
    request: Request,
    request_id: str,
    location: MessageLocation,
    session=Depends(get_db_session),
):
    """Remember which message shows this request."""
    await lifecycle.attach_message(session, request_id, location.channel_id, location.message_id)
    return await lifecycle.load_rendered(session, request_id)
