"""Periodic clock tick driving schedule rules."""

from typing import Callable

from apscheduler.schedulers.background import BackgroundScheduler
from loguru import logger

from src.automation.application.rule_engine import RuleEngine

TICK_JOB_ID = "automation_schedule_tick"


class ScheduleTicker:
    """Runs ``RuleEngine.handle_tick`` on an APScheduler interval job."""

    def __init__(self, engine: RuleEngine, interval_seconds: float = 60.0, scheduler: BackgroundScheduler | None = None):
        self.engine = engine
        self.interval_seconds = interval_seconds
        self.scheduler = scheduler or BackgroundScheduler(timezone="UTC")

    def tick(self) -> None:
        try:
            reports = self.engine.handle_tick()
        except Exception as e:
            logger.exception(f"Schedule tick failed: {e}")
            return
        fired = sum(1 for r in reports if r.fired)
        if reports:
            logger.info(f"Schedule tick: {len(reports)} due, {fired} fired")

    def add_job(self, func: Callable[[], None], job_id: str, **trigger_args) -> None:
        """Register another periodic job (e.g. housekeeping) on the same scheduler."""
        self.scheduler.add_job(func, id=job_id, replace_existing=True, **trigger_args)

    def start(self, tick: bool = True) -> None:
        """Start the scheduler, with the schedule tick unless ``tick`` is False."""
        if tick:
            self.scheduler.add_job(
                self.tick,
                "interval",
                seconds=self.interval_seconds,
                id=TICK_JOB_ID,
                replace_existing=True,
                max_instances=1,
                coalesce=True,
            )
        self.scheduler.start()
        if tick:
            logger.info(f"Schedule ticker started (every {self.interval_seconds}s)")
        else:
            logger.info("Scheduler started without schedule tick")

    def shutdown(self) -> None:
        if self.scheduler.running:
            self.scheduler.shutdown(wait=False)
        logger.info("Schedule ticker stopped")
