"""Rule providers layered over a rule configuration store."""

import threading
import time
from typing import Callable

from loguru import logger

from src.automation.domain.models import Rule
from src.automation.domain.protocols import RuleProvider


class CachedRuleProvider(RuleProvider):
    """
    Per-owner TTL cache of active rule definitions.

    Rule definitions are read-mostly; runtime state is never taken from the
    cache (the hysteresis gate and dispatcher re-read it under the rule lock).
    """

    def __init__(self, source: RuleProvider, ttl_seconds: float = 30.0, clock: Callable[[], float] = time.monotonic):
        self.source = source
        self.ttl_seconds = ttl_seconds
        self.clock = clock
        self._cache: dict[str, tuple[float, list[Rule]]] = {}
        self._lock = threading.Lock()

    def list_active_rules(self, owner_id: str) -> list[Rule]:
        now = self.clock()
        with self._lock:
            cached = self._cache.get(owner_id)
            if cached is not None and now - cached[0] < self.ttl_seconds:
                return cached[1]

        rules = self.source.list_active_rules(owner_id)
        with self._lock:
            self._cache[owner_id] = (now, rules)
        logger.debug(f"Loaded {len(rules)} active rules for owner {owner_id}")
        return rules

    def get_rule(self, rule_id: int) -> Rule | None:
        return self.source.get_rule(rule_id)

    def invalidate(self, owner_id: str | None = None) -> None:
        """Drop cached rules of one owner, or of everyone."""
        with self._lock:
            if owner_id is None:
                self._cache.clear()
            else:
                self._cache.pop(owner_id, None)


class DictRuleProvider(RuleProvider):
    """Simple provider over a pre-built list of rules."""

    def __init__(self, rules: list[Rule]):
        """Initialize with rule list."""
        self.rules = rules

    def list_active_rules(self, owner_id: str) -> list[Rule]:
        return [r for r in self.rules if r.owner_id == owner_id and r.is_active]

    def get_rule(self, rule_id: int) -> Rule | None:
        return next((r for r in self.rules if r.id == rule_id), None)
