"""Periodic evaluate() ticks driven by APScheduler."""

from __future__ import annotations

import logging

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger

from .engine import DeviceTimeAccountingEngine

logger = logging.getLogger("wear_tracker.scheduler")

JOB_ID = "wear_tracker_evaluate"


class EvaluationScheduler:
    """Calls engine.evaluate() every `interval_seconds` on a background thread."""

    def __init__(
        self,
        engine: DeviceTimeAccountingEngine,
        interval_seconds: float = 60.0,
        scheduler: BackgroundScheduler | None = None,
    ):
        self.engine = engine
        self.interval_seconds = interval_seconds
        self.scheduler = scheduler or BackgroundScheduler()

    def tick(self) -> None:
        try:
            result = self.engine.evaluate()
        except Exception:
            logger.exception("Evaluation tick failed")
            return
        if result.mutated:
            logger.debug(
                f"Tick: {len(result.rolled_over)} rollover(s), "
                f"{len(result.notifications)} notification(s)"
            )

    def start(self) -> None:
        self.scheduler.add_job(
            self.tick,
            trigger=IntervalTrigger(seconds=self.interval_seconds),
            id=JOB_ID,
            name="evaluate devices",
            replace_existing=True,
            max_instances=1,
            coalesce=True,
        )
        if not self.scheduler.running:
            self.scheduler.start()
        logger.info(f"Evaluating devices every {self.interval_seconds:g}s")

    def shutdown(self) -> None:
        if self.scheduler.running:
            self.scheduler.shutdown(wait=False)
