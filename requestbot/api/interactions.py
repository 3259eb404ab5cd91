"""Command events from the chat gateway."""

from fastapi import APIRouter, Depends, Request

from requestbot.auth import GatewayAuth
from requestbot.config import settings
from requestbot.dispatcher import Dispatcher
from requestbot.models import CommandEvent, ErrorResponse, ResponsePayload
from requestbot.rate_limit import limiter

router = APIRouter()


def get_dispatcher(request: Request) -> Dispatcher:
    return request.app.state.dispatcher


@router.post(
    "/v1/interactions",
    response_model=ResponsePayload,
    responses={401: {"model": ErrorResponse}, 403: {"model": ErrorResponse}},
    dependencies=[GatewayAuth],
)
@limiter.limit(settings.rate_limit_interactions)
async def handle_interaction(
    request: Request,
    event: CommandEvent,
    dispatcher: Dispatcher = Depends(get_dispatcher),
) -> ResponsePayload:
    """Run one command and return the message to show the invoking user."""
    return await dispatcher.handle(event)
