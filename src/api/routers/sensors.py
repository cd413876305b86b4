"""API routes for sensor registration and reading ingestion."""

from fastapi import APIRouter, Depends, HTTPException, Query, Response
from sqlalchemy.ext.asyncio import AsyncSession

from src.api.application.ingestion_service import ReadingIngestionService
from src.api.application.sensor_service import SensorService
from src.api.domain.exceptions import ResourceNotFoundException
from src.api.domain.schemas import (
    EvaluationResponse,
    ReadingCreate,
    ReadingResponse,
    SensorCreate,
    SensorResponse,
)
from src.api.infrastructure.container import get_container
from src.api.infrastructure.database import get_db
from src.config import AppConfig

# Load configuration
_app_config = AppConfig()

router = APIRouter(prefix="/sensors", tags=["sensors"])


def get_sensor_service() -> SensorService:
    """Get sensor service dependency."""
    return get_container().sensor_service()


def get_ingestion_service() -> ReadingIngestionService:
    """Get reading ingestion service dependency."""
    return get_container().ingestion_service()


@router.post("", response_model=SensorResponse, status_code=201)
async def register_sensor(
    data: SensorCreate,
    session: AsyncSession = Depends(get_db),
    service: SensorService = Depends(get_sensor_service),
):
    """
    Register a sensor (upsert by sensor_id).

    The owner decides whose rules a reading of this sensor evaluates.
    """
    return await service.register(session, data)


@router.get("", response_model=list[SensorResponse])
async def list_sensors(
    owner_id: str,
    session: AsyncSession = Depends(get_db),
    service: SensorService = Depends(get_sensor_service),
):
    """List all sensors of an owner."""
    return await service.list_sensors(session, owner_id)


@router.get("/{sensor_id}", response_model=SensorResponse)
async def get_sensor(
    sensor_id: str,
    session: AsyncSession = Depends(get_db),
    service: SensorService = Depends(get_sensor_service),
):
    try:
        return await service.get_sensor(session, sensor_id)
    except ResourceNotFoundException as e:
        raise HTTPException(status_code=404, detail=e.message)


@router.delete("/{sensor_id}", status_code=204)
async def delete_sensor(
    sensor_id: str,
    session: AsyncSession = Depends(get_db),
    service: SensorService = Depends(get_sensor_service),
):
    try:
        await service.delete_sensor(session, sensor_id)
    except ResourceNotFoundException as e:
        raise HTTPException(status_code=404, detail=e.message)
    return Response(status_code=204)


@router.post("/{sensor_id}/readings", response_model=EvaluationResponse, status_code=201)
async def ingest_reading(
    sensor_id: str,
    data: ReadingCreate,
    session: AsyncSession = Depends(get_db),
    service: ReadingIngestionService = Depends(get_ingestion_service),
):
    """
    Store a reading and evaluate the owner's rules against it.

    At most one rule fires per reading (highest priority, then newest).
    """
    return await service.ingest(session, sensor_id, data)


@router.get("/{sensor_id}/readings", response_model=list[ReadingResponse])
async def list_readings(
    sensor_id: str,
    limit: int = Query(_app_config.query.default_limit, ge=1, le=_app_config.query.max_limit),
    session: AsyncSession = Depends(get_db),
    service: SensorService = Depends(get_sensor_service),
):
    """Most recent readings of a sensor, newest first."""
    return await service.list_readings(session, sensor_id, limit=limit)
