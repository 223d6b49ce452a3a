import logging

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
import uvicorn

from outreach.api.v1.main import api_router, websocket_router
from outreach.core.config import settings
from outreach.core.database import Base, engine
from outreach.core.error_handlers import register_exception_handlers
from outreach.models import user, channel, channel_member, message, message_log # Register tables
from outreach.services.connection_manager import manager
from outreach.services.websocket_cleanup_service import cleanup_inactive_sessions

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(
    title=settings.PROJECT_NAME,
    openapi_url=f"{settings.API_V1_STR}/openapi.json",
)

# Parse CORS origins from comma-separated string in settings
cors_origins = [origin.strip() for origin in settings.CORS_ORIGINS.split(",")]
app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)

app.include_router(api_router, prefix=settings.API_V1_STR)
app.include_router(websocket_router, prefix="/ws")

@app.get("/")
async def read_root():
    return {"message": f"{settings.PROJECT_NAME} is running"}


# Initialize scheduler for background tasks
scheduler = AsyncIOScheduler()


@app.on_event("startup")
async def on_startup():
    # Create all database tables
    Base.metadata.create_all(bind=engine)

    if settings.WS_ENABLE_CLEANUP:
        scheduler.add_job(
            cleanup_inactive_sessions,
            'interval',
            seconds=settings.WS_CLEANUP_INTERVAL,
            args=[manager],
            id='websocket_cleanup',
            replace_existing=True
        )
        logger.info(f"[Startup] WebSocket cleanup scheduler started (interval: {settings.WS_CLEANUP_INTERVAL}s, idle timeout: {settings.WS_IDLE_TIMEOUT}s)")
    else:
        logger.info("[Startup] WebSocket cleanup disabled (WS_ENABLE_CLEANUP=False)")

    if not scheduler.running:
        scheduler.start()


@app.on_event("shutdown")
async def on_shutdown():
    logger.info("Server is shutting down...")

    if scheduler.running:
        scheduler.shutdown(wait=False)
        logger.info("[Shutdown] Scheduler stopped")

    # Disconnect all WebSocket clients; their subscriptions are released as the endpoints exit
    await manager.disconnect_all()
    logger.info("[Shutdown] All WebSocket clients disconnected")

if __name__ == "__main__":
    uvicorn.run(app, host=settings.HOST, port=settings.PORT, ws="websockets")
