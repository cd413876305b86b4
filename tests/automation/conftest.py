"""In-memory collaborators for rule engine tests."""

import pytest

from src.automation.application.rule_engine import RuleEngine
from src.automation.domain.models import EngineSettings
from src.automation.infrastructure.command_queue import InMemoryCommandQueue
from src.automation.infrastructure.event_sink import InMemoryExecutionLogSink
from src.automation.infrastructure.latest_values import InMemoryLatestValues
from src.automation.infrastructure.rule_store import InMemoryRuleStore


@pytest.fixture
def store():
    return InMemoryRuleStore()


@pytest.fixture
def values():
    return InMemoryLatestValues()


@pytest.fixture
def queue():
    return InMemoryCommandQueue()


@pytest.fixture
def sink():
    return InMemoryExecutionLogSink()


@pytest.fixture
def settings():
    return EngineSettings(lock_timeout_seconds=0.2, dispatch_timeout_seconds=1.0, tick_interval_seconds=60)


@pytest.fixture
def engine(store, values, queue, sink, settings):
    engine = RuleEngine(
        rule_provider=store,
        latest_values=values,
        state_store=store,
        command_queue=queue,
        log_sink=sink,
        schedule_store=store,
        settings=settings,
    )
    yield engine
    engine.close()
