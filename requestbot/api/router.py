"""Mount all API routes."""

from fastapi import APIRouter

from requestbot.api.interactions import router as interactions_router
from requestbot.api.requests import router as requests_router
from requestbot.api.stats import router as stats_router

api_router = APIRouter()
api_router.include_router(interactions_router, tags=["interactions"])
api_router.include_router(requests_router, tags=["requests"])
api_router.include_router(stats_router, tags=["stats"])
