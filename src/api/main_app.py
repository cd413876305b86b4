"""Main FastAPI application for the API layer."""

from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from loguru import logger

from src.config import AppConfig
from src.api.infrastructure.container import init_container, get_container
from src.api.infrastructure.logging import configure_structured_logging
from src.api.routers import executions, rules, sensors

HOUSEKEEPING_JOB_ID = "execution_log_retention"


def build_container_config(config: AppConfig) -> dict:
    """Flatten the settings tree into the dict consumed by the DI container."""
    api_config = config.model_dump()
    api_config["database"].update(url=config.database.url, async_url=config.database.async_url)
    return api_config


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    # Startup
    config = AppConfig()
    configure_structured_logging(level=config.logging.level, log_file=config.logging.file or None)
    logger.info("🚀 Starting greenhouse automation API...")

    init_container(build_container_config(config))
    container = get_container()

    # Create database tables (for development)
    db = container.database()
    db.create_all()
    logger.info("✓ Database initialized")

    # Schedule clock tick and daily execution log cleanup
    ticker = container.schedule_ticker()
    housekeeping = container.housekeeping_service()
    ticker.add_job(
        housekeeping.run_scheduled,
        HOUSEKEEPING_JOB_ID,
        trigger="cron",
        hour=config.retention.run_hour_utc,
        minute=0,
    )
    ticker.start(tick=config.scheduler.enabled)

    logger.info("✓ API ready")

    yield

    # Shutdown
    logger.info("🛑 Shutting down API...")
    ticker.shutdown()
    container.rule_engine().close()
    await db.close()


# Create FastAPI app
app = FastAPI(
    title="Greenhouse Automation API",
    description="Sensor-driven and scheduled automation rules for greenhouse actuators",
    version="1.0.0",
    lifespan=lifespan,
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Configure as needed
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(rules.router)
app.include_router(sensors.router)
app.include_router(executions.router)


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "message": "Greenhouse Automation API",
        "version": "1.0.0",
        "docs": "/docs",
    }


@app.get("/health")
async def health():
    """Health check endpoint."""
    return {"status": "healthy"}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
