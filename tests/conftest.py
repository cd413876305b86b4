"""Builders shared by the engine and API tests."""

from datetime import datetime, timezone

import pytest

from src.automation.domain.models import (
    Action,
    ActionType,
    Condition,
    ConditionGroup,
    ConditionOperator,
    Rule,
    SensorReading,
)

OWNER = "grower-1"
T0 = datetime(2026, 10, 19, 12, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def group():
    """Build a condition group from ``(sensor, operator, value[, value_max])`` tuples."""

    def _group(*entries, order: int = 0) -> ConditionGroup:
        conditions = []
        for index, entry in enumerate(entries):
            sensor_id, operator, value, *rest = entry
            conditions.append(
                Condition(
                    sensor_id=sensor_id,
                    operator=ConditionOperator(operator),
                    value=value,
                    value_max=rest[0] if rest else None,
                    condition_order=index,
                )
            )
        return ConditionGroup(conditions=conditions, group_order=order)

    return _group


@pytest.fixture
def make_rule():
    """Build an unsaved rule with sensible defaults (one ON action for ``fan-1``)."""

    def _make(
        name: str = "rule",
        groups: list[ConditionGroup] | None = None,
        actions: list[Action] | None = None,
        priority: int = 0,
        created_at: datetime = T0,
        owner_id: str = OWNER,
        **fields,
    ) -> Rule:
        return Rule(
            id=fields.pop("id", 0),
            owner_id=owner_id,
            name=name,
            created_at=created_at,
            priority=priority,
            condition_groups=groups or [],
            actions=actions if actions is not None else [Action("fan-1", ActionType.ON)],
            **fields,
        )

    return _make


@pytest.fixture
def reading():
    def _reading(sensor_id: str, value: float, at: datetime = T0, owner_id: str | None = OWNER) -> SensorReading:
        return SensorReading(sensor_id=sensor_id, value=value, timestamp=at, owner_id=owner_id)

    return _reading
