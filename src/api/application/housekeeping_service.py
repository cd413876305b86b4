"""Service for execution log retention."""

from datetime import datetime, timedelta

from loguru import logger
from sqlalchemy import delete, func, select
from sqlalchemy.orm import Session, sessionmaker

from src.api.domain.models import RuleExecutionLog
from src.api.domain.schemas import RetentionResult
from src.automation.domain.clock import ensure_utc, utcnow


class HousekeepingService:
    """
    Prune the execution log.

    Entries older than ``max_age_days`` are deleted, then every rule keeps at
    most ``max_entries_per_rule`` of its newest entries. Runs on the scheduler
    thread (daily job) or on demand, always through the synchronous engine.
    """

    def __init__(self, session_factory: sessionmaker[Session], max_age_days: int = 90, max_entries_per_rule: int = 1000):
        self.session_factory = session_factory
        self.max_age_days = max_age_days
        self.max_entries_per_rule = max_entries_per_rule

    def prune(self, now: datetime | None = None) -> RetentionResult:
        now = ensure_utc(now) if now else utcnow()
        cutoff = now - timedelta(days=self.max_age_days)

        with self.session_factory.begin() as session:
            expired = session.execute(
                delete(RuleExecutionLog)
                .where(RuleExecutionLog.executed_at < cutoff)
                .execution_options(synchronize_session=False)
            ).rowcount or 0

            overflow = 0
            for rule_id in self._rules_exceeding(session):
                overflow += self._trim_rule(session, rule_id)

        logger.info(
            f"✓ Execution log cleanup: {expired} expired (before {cutoff.date().isoformat()}), "
            f"{overflow} over the per-rule limit of {self.max_entries_per_rule}"
        )
        return RetentionResult(expired_deleted=expired, overflow_deleted=overflow)

    def run_scheduled(self) -> None:
        """Entry point for the daily job; failures are logged, never raised into the scheduler."""
        try:
            self.prune()
        except Exception as e:
            logger.exception(f"Execution log cleanup failed: {e}")

    def _rules_exceeding(self, session: Session) -> list[int]:
        return list(
            session.scalars(
                select(RuleExecutionLog.rule_id)
                .group_by(RuleExecutionLog.rule_id)
                .having(func.count(RuleExecutionLog.id) > self.max_entries_per_rule)
            ).all()
        )

    def _trim_rule(self, session: Session, rule_id: int) -> int:
        newest = (
            select(RuleExecutionLog.id)
            .where(RuleExecutionLog.rule_id == rule_id)
            .order_by(RuleExecutionLog.executed_at.desc(), RuleExecutionLog.id.desc())
            .limit(self.max_entries_per_rule)
            .scalar_subquery()
        )
        result = session.execute(
            delete(RuleExecutionLog)
            .where(RuleExecutionLog.rule_id == rule_id, RuleExecutionLog.id.not_in(newest))
            .execution_options(synchronize_session=False)
        )
        return result.rowcount or 0
