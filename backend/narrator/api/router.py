"""Aggregate the /api routers."""

from fastapi import APIRouter

from narrator.api.summaries import router as summaries_router
from narrator.api.videos import router as videos_router
from narrator.api.voices import router as voices_router

api_router = APIRouter(prefix="/api")
api_router.include_router(videos_router)
api_router.include_router(summaries_router)
api_router.include_router(voices_router)
