"""API v1 router aggregation: all endpoint modules with their prefix and tags."""

from fastapi import APIRouter

from automation.api.v1.endpoints import health, scheduler, workflows

api_router = APIRouter()

api_router.include_router(health.router, prefix="/health", tags=["health"])
api_router.include_router(workflows.router, prefix="/workflows", tags=["workflows"])
api_router.include_router(scheduler.router, prefix="/scheduler", tags=["scheduler"])
