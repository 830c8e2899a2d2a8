from fastapi import FastAPI
from contextlib import asynccontextmanager
from typing import Optional
from fastapi.middleware.cors import CORSMiddleware

from workboard.config.logging_config import setup_logging
from workboard.config.settings import Settings, settings as default_settings
from workboard.core.errors import register_exception_handlers
from workboard.db.database import Database
from workboard.db.redis_db import RedisStore
from workboard.routers import (
    auth_router, workspace_router, member_router, invitation_router,
    onboarding_router, category_router, task_router,
)
from workboard.services.notification_service import NotificationDispatcher, NotificationSender

def create_app(
    settings: Optional[Settings] = None,
    database: Optional[Database] = None,
    redis_store: Optional[RedisStore] = None,
    sender: Optional[NotificationSender] = None,
) -> FastAPI:
    """Build the API. Handles not passed in are created from ``settings`` at startup."""
    settings = settings or default_settings

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # Startup
        setup_logging(settings.LOG_LEVEL)
        print("Connecting to MongoDB...")
        db = database or Database(settings.MONGODB_URI, settings.MONGODB_DB_NAME, use_transactions=settings.MONGODB_USE_TRANSACTIONS)
        db.connect()
        print("Connecting to Redis...")
        store = redis_store or RedisStore.from_settings(
            settings.REDIS_HOST, settings.REDIS_PORT, settings.REDIS_DB, settings.REDIS_PASSWORD,
            lock_timeout=settings.POSITION_LOCK_TIMEOUT_SECONDS,
            lock_wait=settings.POSITION_LOCK_WAIT_SECONDS,
        )
        notifications = NotificationDispatcher(sender, max_queue_size=settings.NOTIFICATION_QUEUE_SIZE)
        await notifications.start()

        app.state.settings = settings
        app.state.db = db
        app.state.redis = store
        app.state.notifications = notifications
        yield
        # Shutdown
        await notifications.stop()
        print("Disconnecting from Redis...")
        store.close()
        print("Disconnecting from MongoDB...")
        db.close()

    app = FastAPI(
        title=settings.PROJECT_NAME,
        version=settings.PROJECT_VERSION,
        lifespan=lifespan
    )

    if settings.BACKEND_CORS_ORIGINS:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=[str(origin) for origin in settings.BACKEND_CORS_ORIGINS],
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    register_exception_handlers(app, show_error_details=not settings.is_production)

    app.include_router(auth_router.router)
    app.include_router(invitation_router.router)
    app.include_router(workspace_router.router)
    app.include_router(member_router.router)
    app.include_router(onboarding_router.router)
    app.include_router(category_router.router)
    app.include_router(task_router.router)

    @app.get("/")
    async def read_root():
        return {"message": f"Welcome to {settings.PROJECT_NAME} v{settings.PROJECT_VERSION}"}

    @app.get("/health")
    async def health_check():
        mongo_ok = app.state.db.ping()
        return {"status": "ok" if mongo_ok else "degraded", "mongodb": mongo_ok}

    return app

app = create_app()
