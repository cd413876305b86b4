"""Service for automation rule configuration."""

from dataclasses import replace

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from src.api.domain.exceptions import RuleNotFoundException
from src.api.domain.schemas import (
    ExecutionHistoryResponse,
    ExecutionLogResponse,
    HysteresisSchema,
    RuleCreate,
    RuleListResponse,
    RuleResponse,
    RuleUpdate,
    ScheduleSchema,
)
from src.api.infrastructure.mappers import (
    actions_to_orm,
    apply_hysteresis,
    condition_groups_to_orm,
    rule_from_orm,
    rule_to_orm,
    schedule_to_orm,
)
from src.api.infrastructure.repositories import ExecutionLogRepository, RuleRepository
from src.automation.application.rule_validator import validate_rule
from src.automation.domain.clock import utcnow
from src.automation.domain.models import (
    Action,
    Condition,
    ConditionGroup,
    HysteresisConfig,
    Rule,
    ScheduleRule,
)
from src.automation.infrastructure.rule_loader import CachedRuleProvider


class RuleService:
    """
    CRUD over rule aggregates.

    Every write is validated with ``validate_rule`` before it reaches the
    database and drops the owner's entry from the engine's rule cache.
    """

    def __init__(self, rule_cache: CachedRuleProvider | None = None, default_min_interval: int = 60):
        self.rule_cache = rule_cache
        self.default_min_interval = default_min_interval

    async def create_rule(self, session: AsyncSession, data: RuleCreate) -> RuleResponse:
        """
        Validate and store a new rule.

        Raises:
            RuleConfigurationError: if the rule is inconsistent
        """
        now = utcnow()
        rule = Rule(
            id=0,
            owner_id=data.owner_id,
            name=data.name,
            created_at=now,
            priority=data.priority,
            is_active=data.is_active,
            description=data.description,
            condition_groups=self._groups(data.condition_groups),
            actions=self._actions(data.actions),
            hysteresis=self._hysteresis(data.hysteresis),
            schedule=self._schedule(data.schedule, now),
        )
        validate_rule(rule)

        repo = RuleRepository(session)
        row = await repo.create(rule_to_orm(rule, self.default_min_interval))
        await session.commit()
        self._invalidate(rule.owner_id)

        logger.info(f"✓ Created rule {row.id} '{row.name}' for owner {row.owner_id} (priority {row.priority})")
        return self.to_response(rule_from_orm(row))

    async def get_rule(self, session: AsyncSession, rule_id: int) -> RuleResponse:
        row = await RuleRepository(session).get_by_id(rule_id)
        if not row:
            raise RuleNotFoundException(rule_id)
        return self.to_response(rule_from_orm(row))

    async def list_rules(
        self, session: AsyncSession, owner_id: str, active_only: bool = False, limit: int = 100, offset: int = 0
    ) -> RuleListResponse:
        """List an owner's rules ordered by priority."""
        repo = RuleRepository(session)
        rows = await repo.list_by_owner(owner_id, active_only=active_only, limit=limit, offset=offset)
        total = await repo.count_by_owner(owner_id)
        return RuleListResponse(rules=[self.to_response(rule_from_orm(r)) for r in rows], total=total)

    async def update_rule(self, session: AsyncSession, rule_id: int, data: RuleUpdate) -> RuleResponse:
        """
        Apply a partial update. Conditions, actions and schedule are replaced wholesale.

        Raises:
            RuleNotFoundException: if the rule does not exist
            RuleConfigurationError: if the updated rule is inconsistent
        """
        repo = RuleRepository(session)
        row = await repo.get_by_id(rule_id)
        if not row:
            raise RuleNotFoundException(rule_id)

        fields = data.model_fields_set
        current = rule_from_orm(row)
        changes = {}
        for name in ("name", "description", "priority", "is_active"):
            if name in fields and (getattr(data, name) is not None or name == "description"):
                changes[name] = getattr(data, name)
        if "condition_groups" in fields and data.condition_groups is not None:
            changes["condition_groups"] = self._groups(data.condition_groups)
        if "actions" in fields and data.actions is not None:
            changes["actions"] = self._actions(data.actions)
        if "hysteresis" in fields:
            changes["hysteresis"] = self._hysteresis(data.hysteresis)
        if "schedule" in fields:
            changes["schedule"] = self._schedule(data.schedule, utcnow())

        updated = replace(current, **changes)
        validate_rule(updated)

        row.name = updated.name
        row.description = updated.description
        row.priority = updated.priority
        row.is_active = updated.is_active
        apply_hysteresis(row, updated.hysteresis, self.default_min_interval)
        if "condition_groups" in changes:
            await repo.replace_condition_groups(row, condition_groups_to_orm(updated))
        if "actions" in changes:
            await repo.replace_actions(row, actions_to_orm(updated))
        if "schedule" in changes:
            await repo.replace_schedule(row, schedule_to_orm(updated.schedule) if updated.schedule else None)
        await repo.update(row)
        await session.commit()
        self._invalidate(row.owner_id)

        logger.info(f"✓ Updated rule {rule_id} ({', '.join(sorted(changes)) or 'no changes'})")
        return await self.get_rule(session, rule_id)

    async def set_active(self, session: AsyncSession, rule_id: int, is_active: bool) -> RuleResponse:
        """Activate or deactivate a rule."""
        repo = RuleRepository(session)
        row = await repo.get_by_id(rule_id)
        if not row:
            raise RuleNotFoundException(rule_id)

        row.is_active = is_active
        await repo.update(row)
        await session.commit()
        self._invalidate(row.owner_id)

        logger.info(f"✓ Rule {rule_id} {'activated' if is_active else 'deactivated'}")
        return await self.get_rule(session, rule_id)

    async def delete_rule(self, session: AsyncSession, rule_id: int) -> None:
        """Delete a rule with its conditions, actions, schedule and execution history."""
        repo = RuleRepository(session)
        row = await repo.get_by_id(rule_id)
        if not row:
            raise RuleNotFoundException(rule_id)

        owner_id = row.owner_id
        await repo.delete(row)
        await session.commit()
        self._invalidate(owner_id)

        logger.info(f"✓ Deleted rule {rule_id}")

    async def get_history(
        self, session: AsyncSession, rule_id: int, limit: int = 100, offset: int = 0
    ) -> ExecutionHistoryResponse:
        """Execution log of a rule, newest first."""
        if not await RuleRepository(session).get_by_id(rule_id):
            raise RuleNotFoundException(rule_id)

        log_repo = ExecutionLogRepository(session)
        entries = await log_repo.list_by_rule(rule_id, limit=limit, offset=offset)
        total = await log_repo.count_by_rule(rule_id)
        return ExecutionHistoryResponse(
            entries=[ExecutionLogResponse.model_validate(e) for e in entries],
            total=total,
        )

    @staticmethod
    def to_response(rule: Rule) -> RuleResponse:
        return RuleResponse.model_validate(rule)

    def _invalidate(self, owner_id: str) -> None:
        if self.rule_cache is not None:
            self.rule_cache.invalidate(owner_id)

    @staticmethod
    def _groups(groups) -> list[ConditionGroup]:
        return [
            ConditionGroup(
                group_order=g.group_order,
                conditions=[
                    Condition(
                        sensor_id=c.sensor_id,
                        operator=c.operator,
                        value=c.value,
                        value_max=c.value_max,
                        condition_order=c.condition_order,
                    )
                    for c in g.conditions
                ],
            )
            for g in groups
        ]

    @staticmethod
    def _actions(actions) -> list[Action]:
        return [
            Action(
                actuator_id=a.actuator_id,
                action_type=a.action_type,
                action_value=a.action_value,
                action_order=a.action_order,
            )
            for a in actions
        ]

    def _hysteresis(self, data: HysteresisSchema | None) -> HysteresisConfig | None:
        if data is None:
            return None
        return HysteresisConfig(
            on_threshold=data.on_threshold,
            off_threshold=data.off_threshold,
            min_state_change_interval_seconds=data.min_state_change_interval_seconds or self.default_min_interval,
        )

    @staticmethod
    def _schedule(data: ScheduleSchema | None, created_at) -> ScheduleRule | None:
        if data is None:
            return None
        return ScheduleRule(
            schedule_type=data.schedule_type,
            time_of_day=data.time_of_day,
            timezone=data.timezone,
            days_of_week=data.days_of_week,
            cron_expression=data.cron_expression,
            created_at=created_at,
        )
