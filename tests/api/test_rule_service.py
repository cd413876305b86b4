"""Tests for rule configuration through the service layer."""

from datetime import datetime, timezone
from unittest.mock import MagicMock

import pytest

from src.api.application.rule_service import RuleService
from src.api.domain.exceptions import RuleNotFoundException
from src.api.domain.schemas import RuleCreate, RuleUpdate
from src.automation.domain.exceptions import RuleConfigurationError
from src.automation.domain.models import ExecutionLogEntry, ExecutionStatus


def rule_payload(**overrides) -> dict:
    payload = {
        "owner_id": "grower-1",
        "name": "cool down",
        "priority": 50,
        "condition_groups": [
            {
                "group_order": 0,
                "conditions": [
                    {"sensor_id": "temp", "operator": "gt", "value": 30},
                    {"sensor_id": "humidity", "operator": "lt", "value": 60, "condition_order": 1},
                ],
            }
        ],
        "actions": [{"actuator_id": "fan", "action_type": "set_value", "action_value": 70}],
        "hysteresis": {"on_threshold": 30, "off_threshold": 25},
    }
    payload.update(overrides)
    return payload


@pytest.fixture
def rule_cache():
    return MagicMock()


@pytest.fixture
def service(rule_cache):
    return RuleService(rule_cache=rule_cache, default_min_interval=120)


class TestRuleService:
    async def test_create_and_get(self, service, session, rule_cache):
        created = await service.create_rule(session, RuleCreate(**rule_payload()))

        fetched = await service.get_rule(session, created.id)

        assert fetched.name == "cool down"
        assert fetched.priority == 50
        assert [c.sensor_id for c in fetched.condition_groups[0].conditions] == ["temp", "humidity"]
        assert fetched.actions[0].action_value == 70
        assert fetched.hysteresis.min_state_change_interval_seconds == 120
        assert fetched.state.current_state.value == "unknown"
        rule_cache.invalidate.assert_called_with("grower-1")

    async def test_create_rejects_inconsistent_rule(self, service, session):
        payload = rule_payload(
            condition_groups=[{"conditions": [{"sensor_id": "temp", "operator": "between", "value": 25, "value_max": 20}]}]
        )

        with pytest.raises(RuleConfigurationError) as exc_info:
            await service.create_rule(session, RuleCreate(**payload))

        assert "Maximum value must be greater than minimum value" in exc_info.value.errors

    async def test_create_scheduled_rule_without_conditions(self, service, session):
        payload = rule_payload(
            condition_groups=[],
            hysteresis=None,
            schedule={"schedule_type": "weekly", "time_of_day": "07:00", "timezone": "Europe/Rome", "days_of_week": [1, 3, 5]},
        )

        created = await service.create_rule(session, RuleCreate(**payload))

        assert created.schedule.days_of_week == [1, 3, 5]
        assert created.condition_groups == []

    async def test_list_by_priority(self, service, session):
        await service.create_rule(session, RuleCreate(**rule_payload(name="low", priority=1)))
        await service.create_rule(session, RuleCreate(**rule_payload(name="high", priority=900)))
        await service.create_rule(session, RuleCreate(**rule_payload(name="elsewhere", owner_id="grower-2")))

        listing = await service.list_rules(session, "grower-1")

        assert listing.total == 2
        assert [r.name for r in listing.rules] == ["high", "low"]

    async def test_update_replaces_children_and_removes_hysteresis(self, service, session):
        created = await service.create_rule(session, RuleCreate(**rule_payload()))

        updated = await service.update_rule(
            session,
            created.id,
            RuleUpdate(
                priority=10,
                condition_groups=[{"conditions": [{"sensor_id": "co2", "operator": "gte", "value": 1200}]}],
                actions=[{"actuator_id": "vent", "action_type": "on"}],
                hysteresis=None,
            ),
        )

        assert updated.priority == 10
        assert updated.name == "cool down"
        assert [c.sensor_id for c in updated.condition_groups[0].conditions] == ["co2"]
        assert [a.actuator_id for a in updated.actions] == ["vent"]
        assert updated.hysteresis is None

    async def test_update_keeps_omitted_fields(self, service, session):
        created = await service.create_rule(session, RuleCreate(**rule_payload()))

        updated = await service.update_rule(session, created.id, RuleUpdate(name="renamed"))

        assert updated.name == "renamed"
        assert updated.hysteresis is not None
        assert len(updated.actions) == 1

    async def test_update_validates_result(self, service, session):
        created = await service.create_rule(session, RuleCreate(**rule_payload()))

        with pytest.raises(RuleConfigurationError):
            await service.update_rule(
                session,
                created.id,
                RuleUpdate(hysteresis={"on_threshold": 20, "off_threshold": 20}),
            )

    async def test_set_active(self, service, session):
        created = await service.create_rule(session, RuleCreate(**rule_payload()))

        deactivated = await service.set_active(session, created.id, False)

        assert not deactivated.is_active
        assert (await service.list_rules(session, "grower-1", active_only=True)).rules == []

    async def test_delete_and_missing(self, service, session):
        created = await service.create_rule(session, RuleCreate(**rule_payload()))

        await service.delete_rule(session, created.id)

        with pytest.raises(RuleNotFoundException):
            await service.get_rule(session, created.id)
        with pytest.raises(RuleNotFoundException):
            await service.delete_rule(session, created.id)

    async def test_history_newest_first(self, service, session, log_sink):
        created = await service.create_rule(session, RuleCreate(**rule_payload()))
        for hour, status in [(8, ExecutionStatus.SUCCESS), (9, ExecutionStatus.SKIPPED)]:
            log_sink.append(
                ExecutionLogEntry(
                    rule_id=created.id,
                    executed_at=datetime(2026, 10, 19, hour, tzinfo=timezone.utc),
                    status=status,
                )
            )

        history = await service.get_history(session, created.id)

        assert history.total == 2
        assert [e.execution_status for e in history.entries] == [ExecutionStatus.SKIPPED, ExecutionStatus.SUCCESS]
