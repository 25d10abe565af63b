from fastapi import APIRouter

from .contexts import router as contexts_router
from .events import router as events_router

api_router = APIRouter(prefix="/api/v1")

api_router.include_router(contexts_router, prefix="/contexts", tags=["contexts"])
api_router.include_router(events_router, prefix="/events", tags=["events"])
