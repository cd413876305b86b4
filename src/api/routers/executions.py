"""API routes for execution log maintenance and queued commands."""

from fastapi import APIRouter, Depends, Query
from fastapi.concurrency import run_in_threadpool
from sqlalchemy.ext.asyncio import AsyncSession

from src.api.application.housekeeping_service import HousekeepingService
from src.api.domain.schemas import RetentionResult
from src.api.infrastructure.container import get_container
from src.api.infrastructure.database import get_db
from src.api.infrastructure.repositories import DeviceCommandRepository
from src.config import AppConfig

# Load configuration
_app_config = AppConfig()

router = APIRouter(tags=["executions"])


def get_housekeeping_service() -> HousekeepingService:
    """Get housekeeping service dependency."""
    return get_container().housekeeping_service()


@router.post("/executions/cleanup", response_model=RetentionResult)
async def cleanup_execution_logs(service: HousekeepingService = Depends(get_housekeeping_service)):
    """
    Prune the execution log now.

    Same as the daily job: drops entries past the retention age and keeps at
    most the configured number of newest entries per rule.
    """
    return await run_in_threadpool(service.prune)


@router.get("/commands")
async def list_commands(
    status: str = "pending",
    limit: int = Query(_app_config.query.default_limit, ge=1, le=_app_config.query.max_limit),
    session: AsyncSession = Depends(get_db),
):
    """Commands queued for the device command-delivery subsystem, oldest first."""
    commands = await DeviceCommandRepository(session).list_by_status(status, limit=limit)
    return [
        {
            "id": c.id,
            "actuator_id": c.actuator_id,
            "command_type": c.command_type,
            "value": c.value,
            "status": c.status,
            "rule_id": c.rule_id,
            "created_at": c.created_at,
        }
        for c in commands
    ]
