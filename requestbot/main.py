"""Request bot: request/task tracking behind a chat command interface."""

from __future__ import annotations

import asyncio
import contextlib
import logging
import re
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import HTTPException
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from requestbot.api.router import api_router
from requestbot.background import background_loop
from requestbot.config import settings
from requestbot.database import close_db, get_session_factory, init_db
from requestbot.dispatcher import Dispatcher
from requestbot.errors import (
    CommandError,
    InvalidTransition,
    NotFound,
    RequestBotError,
    StoreUnavailable,
)
from requestbot.rate_limit import limiter

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("requestbot")


@asynccontextmanager
async def lifespan(app: FastAPI):
    db_url = settings.database_url
    if "://" not in db_url:
        db_url = f"sqlite+aiosqlite:///{db_url}"
    await init_db(db_url)
    safe_url = re.sub(r"://[^:]+:[^@]+@", "://***:***@", db_url)
    logger.info("Database connected: %s", safe_url)

    session_factory = get_session_factory()
    app.state.dispatcher = Dispatcher(session_factory)
    bg_task = asyncio.create_task(background_loop(session_factory))

    yield

    bg_task.cancel()
    with contextlib.suppress(asyncio.CancelledError):
        await bg_task
    await close_db()
    logger.info("Database closed")


app = FastAPI(
    title="Request bot",
    description="Request and task tracking for chat communities",
    version="0.1.0",
    lifespan=lifespan,
)

app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

app.include_router(api_router)

_STATUS_BY_ERROR: list[tuple[type[RequestBotError], int]] = [
    (NotFound, 404),
    (InvalidTransition, 409),
    (CommandError, 400),
    (StoreUnavailable, 503),
]


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    return JSONResponse({"error": exc.detail}, status_code=exc.status_code)


@app.exception_handler(RequestBotError)
async def domain_exception_handler(request: Request, exc: RequestBotError):
    status_code = 500
    for kind, code in _STATUS_BY_ERROR:
        if isinstance(exc, kind):
            status_code = code
            break
    if status_code >= 500:
        logger.error("%s on %s: %s", type(exc).__name__, request.url.path, exc.detail)
        return JSONResponse({"error": "Service unavailable"}, status_code=status_code)
    return JSONResponse({"error": exc.detail}, status_code=status_code)


@app.get("/health")
async def health():
    return {"status": "ok"}


def main():
    import uvicorn

    uvicorn.run(
        "requestbot.main:app",
        host=settings.host,
        port=settings.port,
    )


if __name__ == "__main__":
    main()
