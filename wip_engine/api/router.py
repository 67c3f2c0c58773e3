"""Top-level API router."""

from fastapi import APIRouter

from wip_engine.api.routes.health import router as health_router
from wip_engine.api.routes.wip import router as wip_router

api_router = APIRouter()
api_router.include_router(health_router, tags=["health"])
api_router.include_router(wip_router)
