"""Infrastructure layer for the automation rule engine."""

from src.automation.infrastructure.command_queue import InMemoryCommandQueue
from src.automation.infrastructure.event_sink import InMemoryExecutionLogSink
from src.automation.infrastructure.latest_values import InMemoryLatestValues
from src.automation.infrastructure.rule_loader import CachedRuleProvider, DictRuleProvider
from src.automation.infrastructure.rule_lock import KeyedLockRegistry
from src.automation.infrastructure.rule_store import InMemoryRuleStore

__all__ = [
    "InMemoryCommandQueue",
    "InMemoryExecutionLogSink",
    "InMemoryLatestValues",
    "CachedRuleProvider",
    "DictRuleProvider",
    "KeyedLockRegistry",
    "InMemoryRuleStore",
]
