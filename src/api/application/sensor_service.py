"""Service for sensor management."""

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from src.api.domain.exceptions import SensorNotFoundException
from src.api.domain.schemas import ReadingResponse, SensorCreate, SensorResponse
from src.api.infrastructure.repositories import SensorReadingRepository, SensorRepository


class SensorService:
    """Service for the sensor registry (sensor -> owner mapping)."""

    async def register(self, session: AsyncSession, data: SensorCreate) -> SensorResponse:
        """
        Register a sensor, or update it if the sensor_id already exists.

        The owner decides whose rules a reading of this sensor evaluates.
        """
        sensor = await SensorRepository(session).upsert(
            sensor_id=data.sensor_id,
            owner_id=data.owner_id,
            name=data.name,
            unit=data.unit,
        )
        await session.commit()

        logger.info(f"✓ Registered sensor {sensor.sensor_id} for owner {sensor.owner_id}")
        return SensorResponse.model_validate(sensor)

    async def list_sensors(self, session: AsyncSession, owner_id: str) -> list[SensorResponse]:
        """List all sensors of an owner."""
        sensors = await SensorRepository(session).list_by_owner(owner_id)
        return [SensorResponse.model_validate(s) for s in sensors]

    async def get_sensor(self, session: AsyncSession, sensor_id: str) -> SensorResponse:
        sensor = await SensorRepository(session).get_by_sensor_id(sensor_id)
        if not sensor:
            raise SensorNotFoundException(sensor_id)
        return SensorResponse.model_validate(sensor)

    async def delete_sensor(self, session: AsyncSession, sensor_id: str) -> None:
        """Delete a sensor from the registry. Its stored readings are kept."""
        repo = SensorRepository(session)
        sensor = await repo.get_by_sensor_id(sensor_id)
        if not sensor:
            raise SensorNotFoundException(sensor_id)

        await repo.delete(sensor)
        await session.commit()

        logger.info(f"✓ Deleted sensor {sensor_id}")

    async def list_readings(self, session: AsyncSession, sensor_id: str, limit: int = 100) -> list[ReadingResponse]:
        """Most recent readings of a sensor, newest first."""
        readings = await SensorReadingRepository(session).list_by_sensor(sensor_id, limit=limit)
        return [ReadingResponse.model_validate(r) for r in readings]
