"""Configuration for the application."""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class DatabaseConfig(BaseSettings):
    """Configuration for database."""

    model_config = SettingsConfigDict(env_prefix="DATABASE_", env_file=".env", extra="ignore")

    host: str = Field(default="localhost", description="Database host")
    port: int = Field(default=5432, description="Database port")
    name: str = Field(default="greenhouse_db", description="Database name")
    user: str = Field(default="greenhouse_user", description="Database user")
    password: str = Field(default="greenhouse_password", description="Database password")
    dsn: str | None = Field(default=None, description="Full synchronous URL, overrides the fields above")
    async_dsn: str | None = Field(default=None, description="Full asynchronous URL, overrides the fields above")

    @property
    def url(self) -> str:
        """Get synchronous database URL."""
        if self.dsn:
            return self.dsn
        return f"postgresql://{self.user}:{self.password}@{self.host}:{self.port}/{self.name}"

    @property
    def async_url(self) -> str:
        """Get asynchronous database URL."""
        if self.async_dsn:
            return self.async_dsn
        return f"postgresql+asyncpg://{self.user}:{self.password}@{self.host}:{self.port}/{self.name}"


class EngineConfig(BaseSettings):
    """Configuration for the rule evaluation engine."""

    model_config = SettingsConfigDict(env_prefix="ENGINE_", env_file=".env", extra="ignore")

    lock_timeout_seconds: float = Field(default=2.0, gt=0, description="Max wait for a rule's state lock")
    dispatch_timeout_seconds: float = Field(default=5.0, gt=0, description="Max wait for one command submission")
    dispatch_settle_timeout_seconds: float = Field(
        default=10.0, gt=0, description="Max wait for a timed-out submission to land before the next action"
    )
    rule_cache_ttl_seconds: float = Field(default=30.0, ge=0, description="TTL of the per-owner rule cache")
    audit_unselected_matches: bool = Field(
        default=False, description="Log matching rules that lost priority resolution as skipped"
    )
    default_min_state_change_interval_seconds: int = Field(
        default=60, ge=10, description="Dwell time applied when a rule does not set one"
    )
    dispatch_workers: int = Field(default=4, ge=1, description="Threads submitting commands to the queue")


class SchedulerConfig(BaseSettings):
    """Configuration for the schedule clock tick."""

    model_config = SettingsConfigDict(env_prefix="SCHEDULER_", env_file=".env", extra="ignore")

    enabled: bool = Field(default=True, description="Run the periodic schedule tick")
    tick_interval_seconds: float = Field(default=60.0, ge=1, description="Seconds between schedule ticks")


class RetentionConfig(BaseSettings):
    """Configuration for execution log retention."""

    model_config = SettingsConfigDict(env_prefix="RETENTION_", env_file=".env", extra="ignore")

    max_age_days: int = Field(default=90, ge=1, description="Delete execution logs older than this")
    max_entries_per_rule: int = Field(default=1000, ge=1, description="Keep at most this many logs per rule")
    run_hour_utc: int = Field(default=2, ge=0, le=23, description="Hour (UTC) of the daily cleanup")


class QueryConfig(BaseSettings):
    """Configuration for API query limits."""

    model_config = SettingsConfigDict(env_prefix="QUERY_", env_file=".env", extra="ignore")

    default_limit: int = Field(default=100, ge=1, description="Default number of items to return")
    max_limit: int = Field(default=1000, ge=1, description="Maximum number of items that can be requested")
    default_offset: int = Field(default=0, ge=0, description="Default pagination offset")


class LoggingConfig(BaseSettings):
    """Configuration for logging."""

    model_config = SettingsConfigDict(env_prefix="LOG_", env_file=".env", extra="ignore")

    level: str = Field(default="INFO", description="Minimum log level")
    file: str | None = Field(default="logs/automation.log", description="Log file path (empty disables the file sink)")


class AppConfig(BaseSettings):
    """Application configuration."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    engine: EngineConfig = Field(default_factory=EngineConfig)
    scheduler: SchedulerConfig = Field(default_factory=SchedulerConfig)
    retention: RetentionConfig = Field(default_factory=RetentionConfig)
    query: QueryConfig = Field(default_factory=QueryConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
