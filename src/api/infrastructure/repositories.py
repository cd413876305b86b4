"""Repositories for data access."""

from datetime import datetime
from typing import Sequence

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from src.api.domain.models import (
    AutomationRule,
    DeviceCommand,
    RuleAction,
    RuleConditionGroup,
    RuleExecutionLog,
    ScheduleRule,
    Sensor,
    SensorReading,
)

# Eager-load options for a complete rule aggregate
RULE_LOAD_OPTIONS = (
    selectinload(AutomationRule.condition_groups).selectinload(RuleConditionGroup.conditions),
    selectinload(AutomationRule.actions),
    selectinload(AutomationRule.schedule),
)


class RuleRepository:
    """Repository for AutomationRule aggregates."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, rule: AutomationRule) -> AutomationRule:
        """Insert a rule together with its groups, conditions, actions and schedule."""
        self.session.add(rule)
        await self.session.flush()
        return await self.get_by_id(rule.id)

    async def get_by_id(self, rule_id: int) -> AutomationRule | None:
        """Get a fully loaded rule by ID."""
        result = await self.session.execute(
            select(AutomationRule)
            .options(*RULE_LOAD_OPTIONS)
            .where(AutomationRule.id == rule_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def list_by_owner(
        self, owner_id: str, active_only: bool = False, limit: int = 100, offset: int = 0
    ) -> list[AutomationRule]:
        """List an owner's rules, highest priority first (newest first among equals)."""
        query = select(AutomationRule).options(*RULE_LOAD_OPTIONS).where(AutomationRule.owner_id == owner_id)
        if active_only:
            query = query.where(AutomationRule.is_active.is_(True))
        result = await self.session.execute(
            query.order_by(AutomationRule.priority.desc(), AutomationRule.created_at.desc(), AutomationRule.id.desc())
            .limit(limit)
            .offset(offset)
        )
        return list(result.scalars().all())

    async def count_by_owner(self, owner_id: str) -> int:
        result = await self.session.execute(
            select(func.count()).select_from(AutomationRule).where(AutomationRule.owner_id == owner_id)
        )
        return result.scalar() or 0

    async def update(self, rule: AutomationRule) -> AutomationRule:
        """Flush pending changes of a rule."""
        await self.session.flush()
        return rule

    async def replace_condition_groups(self, rule: AutomationRule, groups: list[RuleConditionGroup]) -> None:
        """Replace all condition groups of a rule."""
        # Old rows go first so that the (rule_id, group_order) constraint holds
        rule.condition_groups.clear()
        await self.session.flush()
        rule.condition_groups.extend(groups)
        await self.session.flush()

    async def replace_actions(self, rule: AutomationRule, actions: list[RuleAction]) -> None:
        """Replace all actions of a rule."""
        rule.actions.clear()
        await self.session.flush()
        rule.actions.extend(actions)
        await self.session.flush()

    async def replace_schedule(self, rule: AutomationRule, schedule: ScheduleRule | None) -> None:
        """Replace (or remove) the schedule of a rule."""
        if rule.schedule is not None:
            rule.schedule = None
            await self.session.flush()
        if schedule is not None:
            rule.schedule = schedule
            await self.session.flush()

    async def delete(self, rule: AutomationRule) -> None:
        """Delete a rule (cascades to its children and execution logs)."""
        await self.session.delete(rule)
        await self.session.flush()


class ExecutionLogRepository:
    """Repository for rule execution history."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def list_by_rule(self, rule_id: int, limit: int = 100, offset: int = 0) -> list[RuleExecutionLog]:
        """Execution history of a rule, newest first."""
        result = await self.session.execute(
            select(RuleExecutionLog)
            .where(RuleExecutionLog.rule_id == rule_id)
            .order_by(RuleExecutionLog.executed_at.desc(), RuleExecutionLog.id.desc())
            .limit(limit)
            .offset(offset)
        )
        return list(result.scalars().all())

    async def count_by_rule(self, rule_id: int) -> int:
        result = await self.session.execute(
            select(func.count()).select_from(RuleExecutionLog).where(RuleExecutionLog.rule_id == rule_id)
        )
        return result.scalar() or 0


class SensorRepository:
    """Repository for sensor database operations."""

    def __init__(self, session: AsyncSession):
        """Initialize repository with database session."""
        self.session = session

    async def upsert(self, sensor_id: str, owner_id: str, name: str, unit: str | None = None) -> Sensor:
        """
        Upsert a sensor (update if exists, insert if new).

        Uses sensor_id as the unique identifier.
        """
        result = await self.session.execute(select(Sensor).where(Sensor.sensor_id == sensor_id))
        sensor = result.scalar_one_or_none()

        if sensor:
            sensor.owner_id = owner_id
            sensor.name = name
            sensor.unit = unit
        else:
            sensor = Sensor(sensor_id=sensor_id, owner_id=owner_id, name=name, unit=unit)
            self.session.add(sensor)

        await self.session.flush()
        return sensor

    async def get_by_sensor_id(self, sensor_id: str) -> Sensor | None:
        """Get sensor by its external sensor_id."""
        result = await self.session.execute(select(Sensor).where(Sensor.sensor_id == sensor_id))
        return result.scalar_one_or_none()

    async def list_by_owner(self, owner_id: str) -> list[Sensor]:
        """List all sensors of an owner."""
        result = await self.session.execute(
            select(Sensor).where(Sensor.owner_id == owner_id).order_by(Sensor.sensor_id)
        )
        return list(result.scalars().all())

    async def delete(self, sensor: Sensor) -> None:
        """Delete a sensor."""
        await self.session.delete(sensor)
        await self.session.flush()


class SensorReadingRepository:
    """Repository for raw sensor readings."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, sensor_id: str, value: float, recorded_at: datetime) -> SensorReading:
        reading = SensorReading(sensor_id=sensor_id, value=value, recorded_at=recorded_at)
        self.session.add(reading)
        await self.session.flush()
        return reading

    async def list_by_sensor(self, sensor_id: str, limit: int = 100) -> Sequence[SensorReading]:
        """Most recent readings of a sensor, newest first."""
        result = await self.session.execute(
            select(SensorReading)
            .where(SensorReading.sensor_id == sensor_id)
            .order_by(SensorReading.recorded_at.desc(), SensorReading.id.desc())
            .limit(limit)
        )
        return result.scalars().all()


class DeviceCommandRepository:
    """Repository for queued actuator commands."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def list_by_status(self, status: str = "pending", limit: int = 100) -> Sequence[DeviceCommand]:
        """Commands with a given status, oldest first."""
        result = await self.session.execute(
            select(DeviceCommand)
            .where(DeviceCommand.status == status)
            .order_by(DeviceCommand.created_at, DeviceCommand.id)
            .limit(limit)
        )
        return result.scalars().all()
