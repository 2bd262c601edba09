"""Top-level API router, mounts all domain routers under /api/v1."""

from fastapi import APIRouter

from newsrelay.api.routes import news

api_router = APIRouter()
api_router.include_router(news.router, prefix="/news", tags=["news"])
