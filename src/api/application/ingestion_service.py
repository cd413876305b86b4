"""Service for sensor reading ingestion."""

from fastapi.concurrency import run_in_threadpool
from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from src.api.domain.schemas import CommandResponse, EvaluationResponse, ReadingCreate, ReadingResponse
from src.api.infrastructure.logging import LoggingContext
from src.api.infrastructure.repositories import SensorReadingRepository, SensorRepository
from src.automation.application.rule_engine import RuleEngine
from src.automation.domain.clock import ensure_utc, utcnow
from src.automation.domain.models import EvaluationReport, SensorReading


class ReadingIngestionService:
    """
    Store a reading, then evaluate the owner's rules against it.

    Evaluation runs once per stored reading, inside the same request, so the
    caller gets the outcome back and readings of one sensor are evaluated in
    arrival order.
    """

    def __init__(self, engine: RuleEngine):
        self.engine = engine

    async def ingest(self, session: AsyncSession, sensor_id: str, data: ReadingCreate) -> EvaluationResponse:
        """
        Persist a reading and run the rule engine on it.

        Readings of unregistered sensors are stored but evaluate no rules.
        """
        sensor = await SensorRepository(session).get_by_sensor_id(sensor_id)
        owner_id = sensor.owner_id if sensor else None

        recorded_at = ensure_utc(data.timestamp) if data.timestamp else utcnow()
        row = await SensorReadingRepository(session).create(sensor_id, data.value, recorded_at)
        # The engine reads latest values through its own connection
        await session.commit()

        reading = SensorReading(sensor_id=sensor_id, value=data.value, timestamp=recorded_at, owner_id=owner_id)
        report = await run_in_threadpool(self.evaluate, reading)

        return self._to_response(ReadingResponse.model_validate(row), owner_id, report)

    def evaluate(self, reading: SensorReading) -> EvaluationReport:
        with LoggingContext(owner_id=reading.owner_id or "-", sensor_id=reading.sensor_id):
            report = self.engine.handle_reading(reading)
        if report.fired:
            logger.info(f"Reading {reading.sensor_id}={reading.value} fired rule {report.selected_rule_id}")
        return report

    @staticmethod
    def _to_response(reading: ReadingResponse, owner_id: str | None, report: EvaluationReport) -> EvaluationResponse:
        decision = report.decision
        return EvaluationResponse(
            reading=reading,
            owner_id=owner_id,
            matched_rule_ids=report.matched_rule_ids,
            selected_rule_id=report.selected_rule_id,
            fired=report.fired,
            state_transition=(
                f"{decision.previous_state.value}->{decision.new_state.value}"
                if decision and decision.transitioned
                else None
            ),
            skipped_reason=report.skipped_reason,
            error=report.error,
            commands=[
                CommandResponse(
                    actuator_id=o.request.actuator_id,
                    command_type=o.request.command_type,
                    value=o.request.value,
                    command_id=o.command_id,
                    error=o.error,
                )
                for o in report.outcomes
            ],
        )
