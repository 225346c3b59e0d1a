"""API v1 router."""
from fastapi import APIRouter

from contentforge.api.v1.endpoints import projects, settings

api_router = APIRouter()
api_router.include_router(projects.router, prefix="/projects", tags=["Projects"])
api_router.include_router(settings.router, prefix="/settings", tags=["Settings"])
