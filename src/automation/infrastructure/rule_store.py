"""In-memory rule configuration store."""

import copy
import itertools
import threading
from dataclasses import replace
from datetime import datetime

from loguru import logger

from src.automation.application.rule_validator import validate_rule
from src.automation.domain.clock import utcnow
from src.automation.domain.exceptions import RuleNotFoundError
from src.automation.domain.models import Rule, RuleRuntimeState
from src.automation.domain.protocols import RuleProvider, RuntimeStateStore, ScheduleStore


class InMemoryRuleStore(RuleProvider, ScheduleStore, RuntimeStateStore):
    """
    Rule aggregates and their runtime state kept in process memory.

    Definitions are validated on save. Runtime state lives apart from the
    definitions so that re-saving a rule does not reset its hysteresis state.
    """

    def __init__(self, rules: list[Rule] | None = None):
        self._rules: dict[int, Rule] = {}
        self._states: dict[int, RuleRuntimeState] = {}
        self._ids = itertools.count(1)
        self._lock = threading.RLock()
        for rule in rules or []:
            self.save(rule)

    def save(self, rule: Rule) -> Rule:
        """
        Validate and store a rule. A rule with ``id == 0`` gets a new id.

        Raises:
            RuleConfigurationError: if the aggregate is inconsistent
        """
        validate_rule(rule)
        with self._lock:
            stored = copy.deepcopy(rule)
            if stored.id == 0:
                stored.id = next(self._ids)
                while stored.id in self._rules:
                    stored.id = next(self._ids)
            if stored.schedule is not None and stored.schedule.created_at is None:
                stored.schedule.created_at = stored.created_at
            if stored.id not in self._states:
                self._states[stored.id] = stored.state.copy()
            self._rules[stored.id] = stored
            logger.debug(f"Saved rule {stored.id} '{stored.name}' for owner {stored.owner_id}")
            return self._materialize(stored)

    def delete(self, rule_id: int) -> None:
        with self._lock:
            if self._rules.pop(rule_id, None) is None:
                raise RuleNotFoundError(rule_id)
            self._states.pop(rule_id, None)

    def set_active(self, rule_id: int, is_active: bool) -> Rule:
        with self._lock:
            rule = self._rules.get(rule_id)
            if rule is None:
                raise RuleNotFoundError(rule_id)
            rule.is_active = is_active
            return self._materialize(rule)

    def _materialize(self, rule: Rule) -> Rule:
        """Detached copy carrying the current runtime state."""
        result = copy.deepcopy(rule)
        result.state = self._states.get(rule.id, RuleRuntimeState()).copy()
        return result

    # RuleProvider

    def list_active_rules(self, owner_id: str) -> list[Rule]:
        with self._lock:
            return [self._materialize(r) for r in self._rules.values() if r.owner_id == owner_id and r.is_active]

    def get_rule(self, rule_id: int) -> Rule | None:
        with self._lock:
            rule = self._rules.get(rule_id)
            return self._materialize(rule) if rule else None

    def list_rules(self, owner_id: str) -> list[Rule]:
        """All rules of an owner, highest priority first."""
        with self._lock:
            rules = [self._materialize(r) for r in self._rules.values() if r.owner_id == owner_id]
        return sorted(rules, key=lambda r: (r.priority, r.created_at), reverse=True)

    # ScheduleStore

    def list_scheduled_rules(self) -> list[Rule]:
        with self._lock:
            return [self._materialize(r) for r in self._rules.values() if r.schedule is not None]

    def mark_run(self, rule_id: int, last_run_at: datetime, next_run_at: datetime | None) -> None:
        with self._lock:
            rule = self._rules.get(rule_id)
            if rule is None or rule.schedule is None:
                raise RuleNotFoundError(rule_id)
            rule.schedule = replace(rule.schedule, last_run_at=last_run_at, next_run_at=next_run_at)

    def set_next_run(self, rule_id: int, next_run_at: datetime | None) -> None:
        with self._lock:
            rule = self._rules.get(rule_id)
            if rule is None or rule.schedule is None:
                raise RuleNotFoundError(rule_id)
            rule.schedule = replace(rule.schedule, next_run_at=next_run_at)

    # RuntimeStateStore

    def load_state(self, rule_id: int) -> RuleRuntimeState:
        with self._lock:
            if rule_id not in self._rules:
                raise RuleNotFoundError(rule_id)
            return self._states.setdefault(rule_id, RuleRuntimeState()).copy()

    def save_hysteresis_state(self, rule_id: int, state: RuleRuntimeState) -> None:
        with self._lock:
            current = self._states.setdefault(rule_id, RuleRuntimeState())
            current.current_state = state.current_state
            current.last_state_change_at = state.last_state_change_at

    def record_trigger(self, rule_id: int, triggered_at: datetime) -> RuleRuntimeState:
        with self._lock:
            current = self._states.setdefault(rule_id, RuleRuntimeState())
            current.trigger_count += 1
            current.last_triggered_at = triggered_at
            return current.copy()


def new_rule(owner_id: str, name: str, **fields) -> Rule:
    """Unsaved rule (``id == 0``) created now."""
    fields.setdefault("created_at", utcnow())
    return Rule(id=0, owner_id=owner_id, name=name, **fields)
