"""FastAPI application for transit-backup."""

import logging
import os
import sys
from contextlib import asynccontextmanager
from typing import Optional

import redis.asyncio as redis
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from transit_backup.backup import BackupManager
from transit_backup.config import TransitBackupConfig

from .config import Settings, settings
from .jobs import JobManager
from .routers import backup, health, jobs

# App-managed logging: attach our own stdout handler to the package logger
# so INFO logs show regardless of uvicorn's logging config
backup_logger = logging.getLogger("transit-backup")
backup_logger.setLevel(logging.INFO)
backup_logger.propagate = False
backup_logger.handlers.clear()

console_handler = logging.StreamHandler(sys.stdout)
console_handler.setLevel(logging.INFO)
console_handler.setFormatter(logging.Formatter(
    '%(asctime)s - [%(name)s] - %(levelname)s - %(message)s',
    datefmt='%Y-%m-%d %H:%M:%S'
))
backup_logger.addHandler(console_handler)

# Allow disabling app-managed logging via env var for production
if os.getenv("DISABLE_APP_LOGGING", "false").lower() == "true":
    backup_logger.handlers.clear()
    backup_logger.propagate = True

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage backup manager, job tracking and retention sweeper lifecycle."""
    app_settings: Settings = app.state.settings
    logger.info("Initializing backup manager...")

    try:
        app.state.backup_manager = BackupManager.from_config(TransitBackupConfig.from_env())
        logger.info("Backup manager initialized successfully")
    except Exception as e:
        logger.error(f"Failed to initialize backup manager: {e}")
        raise

    # Initialize Redis client for job tracking if Redis URL is configured
    app.state.redis_client = None
    if app_settings.redis_url:
        try:
            app.state.redis_client = redis.from_url(
                app_settings.redis_url,
                password=app_settings.redis_password,
                encoding="utf-8",
                decode_responses=True
            )
            await app.state.redis_client.ping()
            logger.info("Redis client initialized for job tracking")
        except Exception as e:
            logger.warning(f"Failed to initialize Redis client: {e}")
            app.state.redis_client = None
    else:
        logger.info("Redis not configured - jobs tracked in process")
    app.state.job_manager = JobManager(app.state.redis_client)

    if not app_settings.operator_tokens and getattr(app.state, "operator_check", None) is None:
        logger.warning("No operator tokens configured - backup endpoints are open to every caller")

    if app_settings.enable_retention_sweeper:
        app.state.backup_manager.sweeper.start()

    yield

    # Cleanup
    logger.info("Shutting down backup manager...")
    await app.state.backup_manager.close()
    if app.state.redis_client:
        await app.state.redis_client.close()


def create_app(app_settings: Optional[Settings] = None) -> FastAPI:
    """Create and configure FastAPI application."""
    app_settings = app_settings or settings
    app = FastAPI(
        title=app_settings.api_title,
        version=app_settings.api_version,
        lifespan=lifespan,
        docs_url=f"{app_settings.api_prefix}/docs",
        openapi_url=f"{app_settings.api_prefix}/openapi.json",
    )
    app.state.settings = app_settings
    app.state.job_manager = JobManager()

    app.add_middleware(
        CORSMiddleware,
        allow_origins=app_settings.allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(jobs.router, prefix=app_settings.api_prefix)
    app.include_router(backup.router, prefix=app_settings.api_prefix)
    app.include_router(health.router, prefix=app_settings.api_prefix)

    @app.get("/")
    async def root():
        """Root endpoint."""
        return {
            "name": app_settings.api_title,
            "version": app_settings.api_version,
            "docs": f"{app_settings.api_prefix}/docs"
        }

    return app


# Create default app instance
app = create_app()
