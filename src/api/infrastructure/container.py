"""Dependency injection container for API layer."""

from dependency_injector import containers, providers

from src.api.application.housekeeping_service import HousekeepingService
from src.api.application.ingestion_service import ReadingIngestionService
from src.api.application.rule_service import RuleService
from src.api.application.sensor_service import SensorService
from src.api.infrastructure.database import Database
from src.api.infrastructure.engine_adapters import (
    SqlCommandQueue,
    SqlExecutionLogSink,
    SqlLatestValues,
    SqlRuleStore,
)
from src.automation.application.rule_engine import RuleEngine
from src.automation.domain.models import EngineSettings
from src.automation.infrastructure.rule_loader import CachedRuleProvider
from src.automation.infrastructure.scheduler import ScheduleTicker


class APIContainer(containers.DeclarativeContainer):
    """Dependency injection container for API layer."""

    config = providers.Configuration()

    # Database
    database = providers.Singleton(
        Database,
        database_url=config.database.url,
        async_database_url=config.database.async_url,
    )
    session_factory = database.provided.sync_session_factory

    # Engine ports
    rule_store = providers.Singleton(SqlRuleStore, session_factory=session_factory)
    rule_cache = providers.Singleton(
        CachedRuleProvider,
        source=rule_store,
        ttl_seconds=config.engine.rule_cache_ttl_seconds,
    )
    latest_values = providers.Singleton(SqlLatestValues, session_factory=session_factory)
    command_queue = providers.Singleton(SqlCommandQueue, session_factory=session_factory)
    execution_log_sink = providers.Singleton(SqlExecutionLogSink, session_factory=session_factory)

    # Rule engine
    engine_settings = providers.Singleton(
        EngineSettings,
        lock_timeout_seconds=config.engine.lock_timeout_seconds,
        dispatch_timeout_seconds=config.engine.dispatch_timeout_seconds,
        dispatch_settle_timeout_seconds=config.engine.dispatch_settle_timeout_seconds,
        tick_interval_seconds=config.scheduler.tick_interval_seconds,
        dispatch_workers=config.engine.dispatch_workers,
        audit_unselected_matches=config.engine.audit_unselected_matches,
    )
    rule_engine = providers.Singleton(
        RuleEngine,
        rule_provider=rule_cache,
        latest_values=latest_values,
        state_store=rule_store,
        command_queue=command_queue,
        log_sink=execution_log_sink,
        schedule_store=rule_store,
        settings=engine_settings,
    )
    schedule_ticker = providers.Singleton(
        ScheduleTicker,
        engine=rule_engine,
        interval_seconds=config.scheduler.tick_interval_seconds,
    )

    # Services
    rule_service = providers.Singleton(
        RuleService,
        rule_cache=rule_cache,
        default_min_interval=config.engine.default_min_state_change_interval_seconds,
    )
    sensor_service = providers.Singleton(SensorService)
    ingestion_service = providers.Singleton(ReadingIngestionService, engine=rule_engine)
    housekeeping_service = providers.Singleton(
        HousekeepingService,
        session_factory=session_factory,
        max_age_days=config.retention.max_age_days,
        max_entries_per_rule=config.retention.max_entries_per_rule,
    )


# Global container instance
_container: APIContainer | None = None


def init_container(config) -> APIContainer:
    """Initialize the global container."""
    global _container
    _container = APIContainer()
    _container.config.from_dict(config)
    return _container


def get_container() -> APIContainer:
    """Get the global container instance."""
    if _container is None:
        raise RuntimeError("Container not initialized. Call init_container() first.")
    return _container
