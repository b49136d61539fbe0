"""
Signal Radar FastAPI application entry point.

Pipeline: sources → feeds → dedupe → classify → signals; web pages → snapshots → signals
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from radar import __version__
from radar.config import get_settings
from radar.db.session import SessionLocal, check_db_connection, engine, init_db
from radar.scheduler import PollScheduler
from radar.services.source_config import seed_sources_from_file

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan: startup and shutdown."""
    settings = get_settings()
    logger.info("Signal Radar starting")
    scheduler: PollScheduler | None = None
    try:
        try:
            check_db_connection()
            init_db()
            logger.info("Database connection verified")
        except Exception as e:
            logger.critical("Database unreachable: %s", e)
            raise

        scheduler = PollScheduler.from_settings(settings)
        app.state.scheduler = scheduler

        db = SessionLocal()
        try:
            seed_sources_from_file(db, settings.sources_file, cache=scheduler.cache)
        finally:
            db.close()

        if settings.scheduler_enabled:
            scheduler.start()
        else:
            logger.info("Scheduler disabled (SCHEDULER_ENABLED=false)")

        yield
    finally:
        logger.info("Signal Radar shutting down")
        if scheduler is not None:
            scheduler.shutdown()
        engine.dispose()
        logger.info("Database connection pool closed")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()
    app = FastAPI(
        title=settings.app_name,
        version=__version__,
        lifespan=lifespan,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
    )

    @app.get("/health")
    def health() -> dict:
        """Health check endpoint. Confirms DB connectivity and reports feed cache state."""
        from sqlalchemy import text

        scheduler = getattr(app.state, "scheduler", None)
        feed_cache = scheduler.cache.status() if scheduler is not None else None
        try:
            with engine.connect() as conn:
                conn.execute(text("SELECT 1"))
            return {
                "status": "ok",
                "version": __version__,
                "database": "connected",
                "scheduler": "running" if scheduler is not None and scheduler.running else "stopped",
                "feed_cache": feed_cache,
            }
        except Exception:
            from fastapi.responses import JSONResponse

            return JSONResponse(
                status_code=503,
                content={
                    "status": "unhealthy",
                    "version": __version__,
                    "database": "disconnected",
                },
            )

    return app


app = create_app()
