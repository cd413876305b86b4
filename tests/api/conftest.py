"""Database fixtures for API and SQL adapter tests (SQLite file shared by the sync and async engines)."""

import pytest

from src.api.infrastructure.database import Database
from src.api.infrastructure.engine_adapters import (
    SqlCommandQueue,
    SqlExecutionLogSink,
    SqlLatestValues,
    SqlRuleStore,
)
from src.api.infrastructure.mappers import rule_to_orm
from src.automation.application.rule_engine import RuleEngine
from src.automation.domain.models import EngineSettings, Rule


@pytest.fixture
def db_path(tmp_path):
    return tmp_path / "automation.db"


@pytest.fixture
def database(db_path):
    db = Database(f"sqlite:///{db_path}", f"sqlite+aiosqlite:///{db_path}")
    db.create_all()
    yield db
    db.sync_engine.dispose()


@pytest.fixture
async def session(database):
    async with database.async_session_factory() as session:
        yield session
    await database.async_engine.dispose()


@pytest.fixture
def session_factory(database):
    return database.sync_session_factory


@pytest.fixture
def persist(session_factory):
    """Insert a domain rule and return it with its database id."""

    def _persist(rule: Rule) -> Rule:
        with session_factory.begin() as s:
            row = rule_to_orm(rule)
            s.add(row)
            s.flush()
            rule.id = row.id
        return rule

    return _persist


@pytest.fixture
def rule_store(session_factory):
    return SqlRuleStore(session_factory)


@pytest.fixture
def log_sink(session_factory):
    return SqlExecutionLogSink(session_factory)


@pytest.fixture
def sql_engine(session_factory, rule_store, log_sink):
    engine = RuleEngine(
        rule_provider=rule_store,
        latest_values=SqlLatestValues(session_factory),
        state_store=rule_store,
        command_queue=SqlCommandQueue(session_factory),
        log_sink=log_sink,
        schedule_store=rule_store,
        settings=EngineSettings(lock_timeout_seconds=1.0, dispatch_timeout_seconds=5.0),
    )
    yield engine
    engine.close()
