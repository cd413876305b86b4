"""
SQL-backed adapters for the automation engine ports.

The engine is synchronous and runs on worker threads, so these adapters use
the synchronous session factory. Each call runs in its own short transaction.
"""

import uuid
from dataclasses import replace
from datetime import datetime
from typing import Iterable

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from src.api.domain.models import AutomationRule, DeviceCommand, ScheduleRule, SensorReading
from src.api.infrastructure.mappers import log_entry_to_orm, rule_from_orm, runtime_state_from_orm
from src.api.infrastructure.repositories import RULE_LOAD_OPTIONS
from src.automation.domain.exceptions import DispatchError, RuleNotFoundError
from src.automation.domain.models import CommandRequest, ExecutionLogEntry, Rule, RuleRuntimeState
from src.automation.domain.protocols import (
    CommandQueue,
    ExecutionLogSink,
    LatestValueProvider,
    RuleProvider,
    RuntimeStateStore,
    ScheduleStore,
)


class SqlRuleStore(RuleProvider, ScheduleStore, RuntimeStateStore):
    """Rule definitions, schedule bookkeeping and runtime state in the automation tables."""

    def __init__(self, session_factory: sessionmaker[Session]):
        self.session_factory = session_factory

    # RuleProvider

    def list_active_rules(self, owner_id: str) -> list[Rule]:
        with self.session_factory() as session:
            rows = session.scalars(
                select(AutomationRule)
                .options(*RULE_LOAD_OPTIONS)
                .where(AutomationRule.owner_id == owner_id, AutomationRule.is_active.is_(True))
            ).all()
            return [rule_from_orm(row) for row in rows]

    def get_rule(self, rule_id: int) -> Rule | None:
        with self.session_factory() as session:
            row = session.scalars(
                select(AutomationRule).options(*RULE_LOAD_OPTIONS).where(AutomationRule.id == rule_id)
            ).one_or_none()
            return rule_from_orm(row) if row else None

    # ScheduleStore

    def list_scheduled_rules(self) -> list[Rule]:
        with self.session_factory() as session:
            rows = session.scalars(
                select(AutomationRule).options(*RULE_LOAD_OPTIONS).join(AutomationRule.schedule)
            ).all()
            return [rule_from_orm(row) for row in rows]

    def mark_run(self, rule_id: int, last_run_at: datetime, next_run_at: datetime | None) -> None:
        self._update_schedule(rule_id, last_run_at=last_run_at, next_run_at=next_run_at)

    def set_next_run(self, rule_id: int, next_run_at: datetime | None) -> None:
        self._update_schedule(rule_id, next_run_at=next_run_at)

    def _update_schedule(self, rule_id: int, **values) -> None:
        with self.session_factory.begin() as session:
            result = session.execute(update(ScheduleRule).where(ScheduleRule.rule_id == rule_id).values(**values))
            if result.rowcount == 0:
                raise RuleNotFoundError(rule_id)

    # RuntimeStateStore

    def load_state(self, rule_id: int) -> RuleRuntimeState:
        with self.session_factory() as session:
            row = session.get(AutomationRule, rule_id)
            if row is None:
                raise RuleNotFoundError(rule_id)
            return runtime_state_from_orm(row)

    def save_hysteresis_state(self, rule_id: int, state: RuleRuntimeState) -> None:
        with self.session_factory.begin() as session:
            session.execute(
                update(AutomationRule)
                .where(AutomationRule.id == rule_id)
                .values(
                    current_actuator_state=state.current_state.value,
                    last_state_change_at=state.last_state_change_at,
                )
            )

    def record_trigger(self, rule_id: int, triggered_at: datetime) -> RuleRuntimeState:
        with self.session_factory.begin() as session:
            result = session.execute(
                update(AutomationRule)
                .where(AutomationRule.id == rule_id)
                .values(trigger_count=AutomationRule.trigger_count + 1, last_triggered_at=triggered_at)
            )
            if result.rowcount == 0:
                raise RuleNotFoundError(rule_id)
            row = session.get(AutomationRule, rule_id, populate_existing=True)
            return runtime_state_from_orm(row)


class SqlLatestValues(LatestValueProvider):
    """Latest sensor values taken from the sensor_readings table."""

    def __init__(self, session_factory: sessionmaker[Session]):
        self.session_factory = session_factory

    @staticmethod
    def _latest_query(sensor_id: str):
        return (
            select(SensorReading.value)
            .where(SensorReading.sensor_id == sensor_id)
            .order_by(SensorReading.recorded_at.desc(), SensorReading.id.desc())
            .limit(1)
        )

    def get_latest(self, sensor_id: str) -> float | None:
        with self.session_factory() as session:
            return session.scalar(self._latest_query(sensor_id))

    def get_many(self, sensor_ids: Iterable[str]) -> dict[str, float]:
        values = {}
        with self.session_factory() as session:
            for sensor_id in sensor_ids:
                value = session.scalar(self._latest_query(sensor_id))
                if value is not None:
                    values[sensor_id] = value
        return values


class SqlCommandQueue(CommandQueue):
    """Writes pending commands to the device_commands table."""

    def __init__(self, session_factory: sessionmaker[Session]):
        self.session_factory = session_factory

    def submit(self, request: CommandRequest) -> str:
        command_id = uuid.uuid4().hex
        try:
            with self.session_factory.begin() as session:
                session.add(
                    DeviceCommand(
                        id=command_id,
                        actuator_id=request.actuator_id,
                        command_type=request.command_type.value,
                        value=request.value,
                        status=request.status,
                        rule_id=request.rule_id,
                    )
                )
        except SQLAlchemyError as e:
            raise DispatchError(
                f"Failed to queue command for actuator {request.actuator_id}",
                actuator_id=request.actuator_id,
                original_error=e,
            ) from e
        return command_id


class SqlExecutionLogSink(ExecutionLogSink):
    """Appends execution log entries to the rule_execution_logs table."""

    def __init__(self, session_factory: sessionmaker[Session]):
        self.session_factory = session_factory

    def append(self, entry: ExecutionLogEntry) -> ExecutionLogEntry:
        with self.session_factory.begin() as session:
            row = log_entry_to_orm(entry)
            session.add(row)
            session.flush()
            return replace(entry, id=row.id)

