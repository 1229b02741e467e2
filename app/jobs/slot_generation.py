import logging
from typing import Callable, Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger
from sqlalchemy.orm import Session

from app.core.config import Settings, settings as default_settings
from app.db.session import SessionLocal
from app.services.slot_automation import GenerationSummary, SchedulingAutomationJob

logger = logging.getLogger(__name__)

DAILY_JOB_ID = "daily_slot_generation"
WEEKLY_JOB_ID = "weekly_slot_generation"


def _run(kind: str, session_factory: Callable[[], Session]) -> Optional[GenerationSummary]:
    db = session_factory()
    try:
        job = SchedulingAutomationJob(db)
        summary = job.run_weekly() if kind == "weekly" else job.run_daily()
        logger.info(
            "Scheduled %s slot generation: %d generated, %d skipped, %d errors",
            kind, summary.generated, summary.skipped, summary.errors,
        )
        return summary
    except Exception:
        logger.exception("Scheduled %s slot generation failed", kind)
        return None
    finally:
        db.close()


def run_daily_generation(session_factory: Callable[[], Session] = SessionLocal) -> Optional[GenerationSummary]:
    return _run("daily", session_factory)


def run_weekly_generation(session_factory: Callable[[], Session] = SessionLocal) -> Optional[GenerationSummary]:
    return _run("weekly", session_factory)


def build_scheduler(
    config: Settings = default_settings,
    session_factory: Callable[[], Session] = SessionLocal,
) -> AsyncIOScheduler:
    """Scheduler with the daily and weekly generation jobs registered (not started)."""
    # Jobs touch the database synchronously, so they run on a single worker thread
    scheduler = AsyncIOScheduler(
        executors={"default": {"type": "threadpool", "max_workers": 1}},
        job_defaults={"coalesce": True, "max_instances": 1},
        timezone=config.SCHEDULER_TIMEZONE,
    )
    scheduler.add_job(
        run_daily_generation,
        CronTrigger.from_crontab(config.DAILY_GENERATION_CRON, timezone=config.SCHEDULER_TIMEZONE),
        args=[session_factory],
        id=DAILY_JOB_ID,
        replace_existing=True,
    )
    scheduler.add_job(
        run_weekly_generation,
        CronTrigger.from_crontab(config.WEEKLY_GENERATION_CRON, timezone=config.SCHEDULER_TIMEZONE),
        args=[session_factory],
        id=WEEKLY_JOB_ID,
        replace_existing=True,
    )
    logger.info(
        "Slot generation scheduled: daily '%s', weekly '%s' (%s)",
        config.DAILY_GENERATION_CRON, config.WEEKLY_GENERATION_CRON, config.SCHEDULER_TIMEZONE,
    )
    return scheduler
