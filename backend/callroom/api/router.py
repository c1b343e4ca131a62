from fastapi import APIRouter

from callroom.api.endpoints import livekit_webhooks, rooms

api_router = APIRouter(prefix="/api")

api_router.include_router(rooms.router)
api_router.include_router(livekit_webhooks.router)
