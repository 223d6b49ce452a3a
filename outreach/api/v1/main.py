from fastapi import APIRouter

from outreach.api.v1.endpoints import channels, messaging, realtime


api_router = APIRouter()
websocket_router = APIRouter() # Router for realtime WebSocket endpoints

api_router.include_router(messaging.router, prefix="/messaging", tags=["messaging"])
api_router.include_router(channels.router, prefix="/channels", tags=["channels"])

websocket_router.include_router(realtime.router, prefix="/messaging", tags=["realtime"])
