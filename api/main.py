
"""
FastAPI application initialization
"""

from fastapi import FastAPI
from api.routes import health, data, stats, tables, refresh
from api.middleware import RequestContextMiddleware
from core.config import settings
from core.database import create_engine
from core.logging import setup_logging
from ingestion.coordinator import RefreshCoordinator
from ingestion.scheduler import RefreshScheduler
from models.crime_record import create_tables
import logging

logger = logging.getLogger(__name__)

# Create FastAPI app
app = FastAPI(
    title="Crime Data Updater API",
    description="Blue/green refreshed crime records and the table readers should query",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc"
)

app.add_middleware(RequestContextMiddleware)

# Include routers
app.include_router(health.router)
app.include_router(tables.router)
app.include_router(data.router)
app.include_router(stats.router)
app.include_router(refresh.router)


@app.on_event("startup")
async def startup_event():
    """Wire engine, coordinator and scheduler, then start refreshing"""
    setup_logging(settings.LOG_LEVEL, settings.LOG_FORMAT)

    logger.info("Starting Crime Data Updater API")
    logger.info(f"Environment: {settings.ENVIRONMENT}")
    logger.info(f"Database: {settings.redacted_database_url()}")

    engine = create_engine(settings)
    await create_tables(engine, [settings.BLUE_TABLE, settings.GREEN_TABLE])

    coordinator = RefreshCoordinator.from_settings(settings, engine)
    scheduler = RefreshScheduler(
        coordinator,
        interval_seconds=settings.check_interval_seconds,
        run_on_startup=settings.RUN_ON_STARTUP
    )

    app.state.engine = engine
    app.state.coordinator = coordinator
    app.state.scheduler = scheduler

    scheduler.start()


@app.on_event("shutdown")
async def shutdown_event():
    """Stop refreshing and release the connection pool"""
    logger.info("Shutting down Crime Data Updater API")

    scheduler = getattr(app.state, "scheduler", None)
    if scheduler is not None:
        scheduler.stop()

    engine = getattr(app.state, "engine", None)
    if engine is not None:
        await engine.dispose()


@app.get("/")
async def root():
    """Root endpoint"""
    return {
        "message": "Crime Data Updater API",
        "version": "1.0.0",
        "docs": "/docs",
        "health": "/health",
        "endpoints": {
            "active_table": "/tables/active",
            "tables": "/tables",
            "data": "/data",
            "stats": "/stats",
            "refresh": "/refresh"
        }
    }
